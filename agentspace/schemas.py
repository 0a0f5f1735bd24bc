"""
Pydantic schemas shared by the AgentSpace engines.

Design Philosophy:
- Closed enums for every label the engines branch on (mode, action, layer,
  behavior, tactical pattern) so dispatch is exhaustive rather than stringly typed
- Per-mode agent payloads: puzzle cells use ``PuzzleCell`` (see ``puzzle.py``),
  players use ``PlayerValue``
- Round records have identical shape in both modes so the run controller and the
  analysis builders never branch on payload layout
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field


# ============================================================================
# Closed label sets
# ============================================================================


class SpaceKind(str, Enum):
    """Execution mode of an AgentSpace."""

    PUZZLE = "puzzle"
    GAME = "game"


class ActionType(str, Enum):
    """What an agent did in a round."""

    ELIMINATE = "eliminate"
    CONFIRM = "confirm"
    MOVE = "move"
    NONE = "none"


class ReasoningLayer(str, Enum):
    """Propagation technique that produced a reasoning-trace entry."""

    LAYER1_ELIMINATION = "layer1_elimination"
    LAYER2_NAKED_PAIR = "layer2_naked_pair"
    LAYER2_HIDDEN_SINGLE = "layer2_hidden_single"
    LAYER2_POINTING_PAIR = "layer2_pointing_pair"
    LAYER3_BACKTRACK = "layer3_backtrack"


class Behavior(str, Enum):
    """Decision behavior of a player agent.

    ``reactive``, ``proactive`` and ``contemplative`` have their own decision
    procedures. ``competitive``, ``cooperative`` and ``search`` all delegate to
    minimax; they differ only in the volitional tendency they start from.
    """

    REACTIVE = "reactive"
    PROACTIVE = "proactive"
    CONTEMPLATIVE = "contemplative"
    COMPETITIVE = "competitive"
    COOPERATIVE = "cooperative"
    SEARCH = "search"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Behavior":
        """Map a strategy label to a behavior (unknown labels mean minimax search)."""
        if not label:
            return cls.SEARCH
        try:
            return cls(label.strip().lower())
        except ValueError:
            return cls.SEARCH


class TacticalPattern(str, Enum):
    """Board features a player perceives before deciding."""

    THREAT = "threat"
    OPPORTUNITY = "opportunity"
    FORK = "fork"
    BLOCK = "block"
    CENTER = "center"
    CORNER = "corner"
    NONE = "none"


class Tendency(str, Enum):
    """Volitional tendency label carried in a player's deep metadata."""

    EXPAND = "expand"
    CONTRACT = "contract"
    HARMONIZE = "harmonize"
    SPIRAL = "spiral"
    REST = "rest"


# ============================================================================
# Agent payloads and memory
# ============================================================================


class PlayerValue(BaseModel):
    """Payload of a player agent in game mode."""

    player: int = Field(..., description="Player index (1 or 2)")
    strategy: str = Field(..., description="Strategy label passed to move search")
    behavior: Behavior = Field(..., description="Decision behavior derived from the strategy")


class AgentMemoryEntry(BaseModel):
    """One entry in an agent's append-only memory log."""

    step: int = Field(..., description="Round number the memory was recorded in (0 = setup)")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    memory_type: str = Field(..., description="Memory category (observation, decision, action, ...)")
    summary: str = Field(..., description="Human-readable description")
    data: Dict[str, Any] = Field(default_factory=dict, description="Structured details")


# ============================================================================
# Round records
# ============================================================================


class Action(BaseModel):
    """What one agent did during one round."""

    agent_id: str
    action_type: ActionType
    detail: str = Field("", description="Human-readable explanation")
    data: Dict[str, Any] = Field(default_factory=dict, description="Optional structured payload")


class RoundMetrics(BaseModel):
    """Per-round activity counts.

    ``convergence_ratio`` is the fraction of active agents that produced a
    ``none`` action; ``1.0`` means nobody changed anything.
    """

    active_agents: int = Field(..., ge=0)
    total_actions: int = Field(..., ge=0, description="Number of non-none actions")
    none_count: int = Field(..., ge=0)
    convergence_ratio: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_actions(cls, actions: Sequence[Action], active_agents: int) -> "RoundMetrics":
        none_count = sum(1 for a in actions if a.action_type == ActionType.NONE)
        total_actions = len(actions) - none_count
        ratio = none_count / active_agents if active_agents > 0 else 1.0
        return cls(
            active_agents=active_agents,
            total_actions=total_actions,
            none_count=none_count,
            convergence_ratio=min(1.0, max(0.0, ratio)),
        )


class AgentSpaceRound(BaseModel):
    """One executed round. Same shape in puzzle and game mode."""

    round_number: int = Field(..., ge=1, description="1-based, increasing within a run")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    actions: List[Action] = Field(default_factory=list)
    metrics: RoundMetrics


class ReasoningTraceEntry(BaseModel):
    """Which propagation technique changed which cell, and how."""

    round_number: int
    layer: ReasoningLayer
    cell: Tuple[int, int] = Field(..., description="(row, col) of the affected cell")
    detail: str


# ============================================================================
# Game-mode decision records
# ============================================================================


class TacticalPerception(BaseModel):
    """Transient tactical read of the board, recomputed every turn."""

    patterns: List[TacticalPattern] = Field(default_factory=list)
    urgency: float = Field(0.0, ge=0.0, le=1.0)
    threats: List[int] = Field(default_factory=list, description="Moves that would win for the opponent")
    opportunities: List[int] = Field(default_factory=list, description="Moves that win immediately")
    legal_moves: List[int] = Field(default_factory=list)


class TacticalRecord(BaseModel):
    """Tactical perception remembered for match analysis."""

    round_number: int
    player: int
    patterns: List[TacticalPattern]
    urgency: float


class MoveDecision(BaseModel):
    """Outcome of a player's decision procedure."""

    position: int
    score: float = 0.0
    search_nodes: int = Field(0, ge=0, description="Search cost reported by the decision procedure")
    behavior: Behavior
    reason: str = ""
    stochastic: bool = Field(False, description="True when the move came from random choice or sampling")
