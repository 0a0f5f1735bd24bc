"""
Result and analysis builders.

Everything here reads the space's round history and payload without mutating
anything:

- ``build_result``: unified result record for either mode
- ``get_difficulty_analysis``: how hard a puzzle was, from the reasoning trace
- ``get_match_analysis``: per-player move count, search cost and tactics
- ``get_sigma``: compact snapshot metrics of a space
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .games import GameMove
from .propagation import BACKTRACK_MARKER
from .relations import RelationSummary, get_relation_summary
from .schemas import ActionType, AgentSpaceRound, ReasoningLayer, SpaceKind, TacticalPattern
from .space import AgentSpace, get_grid
from .will import WillSummary, get_will_summary

CONVERGED_RATIO = 0.95

LAYER_WEIGHTS: Dict[ReasoningLayer, int] = {
    ReasoningLayer.LAYER1_ELIMINATION: 1,
    ReasoningLayer.LAYER2_NAKED_PAIR: 5,
    ReasoningLayer.LAYER2_HIDDEN_SINGLE: 4,
    ReasoningLayer.LAYER2_POINTING_PAIR: 6,
    ReasoningLayer.LAYER3_BACKTRACK: 15,
}
MAX_DIFFICULTY_SCORE = 100

DifficultyLevel = Literal["easy", "medium", "hard", "expert"]


class DifficultyAnalysis(BaseModel):
    level: DifficultyLevel
    score: int = Field(..., ge=0, le=MAX_DIFFICULTY_SCORE)
    layer_counts: Dict[str, int] = Field(..., description="Reasoning-trace entries per layer")
    layers_used: List[str]
    backtrack_count: int = Field(..., ge=0, description="Backtracking guesses on the surviving path")
    total_steps: int = Field(..., ge=0, description="Length of the reasoning trace")


class PlayerMatchStats(BaseModel):
    player: int
    agent_id: str
    strategy: str
    behavior: str
    move_count: int
    total_search_nodes: int
    avg_search_nodes: float
    tactical_patterns: Dict[str, int]


class MatchAnalysis(BaseModel):
    game: str
    winner: Optional[int]
    total_moves: int
    players: List[PlayerMatchStats]
    tactical_summary: str


class FlowSummary(BaseModel):
    momentum: Literal["converged", "expanding", "rest"]
    round_rate: float = Field(..., description="Average non-none actions per round")


class MemorySummary(BaseModel):
    total_actions: int
    round_history: List[int] = Field(..., description="Non-none actions per round")


class AgentSpaceSigma(BaseModel):
    kind: SpaceKind
    total_rounds: int
    converged: bool
    solved: bool
    agent_count: int
    convergence_history: List[float]
    field: Dict[str, Any]
    flow: FlowSummary
    memory: MemorySummary


class AgentSpaceResult(BaseModel):
    """Outcome of a run. Puzzle-only and game-only fields are None in the other mode."""

    kind: SpaceKind
    total_rounds: int
    converged: bool
    solved: bool
    rounds: List[AgentSpaceRound]

    # Puzzle mode
    grid: Optional[List[List[int]]] = None
    total_eliminations: Optional[int] = None
    total_confirmations: Optional[int] = None
    difficulty: Optional[DifficultyAnalysis] = None
    relation_summary: Optional[RelationSummary] = None

    # Game mode
    winner: Optional[int] = None
    move_history: Optional[List[GameMove]] = None
    final_board: Optional[List[int]] = None
    match_analysis: Optional[MatchAnalysis] = None
    will_summary: Optional[WillSummary] = None


def _converged(space: AgentSpace) -> bool:
    return bool(space.convergence_history) and space.convergence_history[-1] >= CONVERGED_RATIO


def count_backtracks(space: AgentSpace) -> int:
    return sum(
        1
        for round_ in space.rounds
        for action in round_.actions
        if BACKTRACK_MARKER in action.detail
    )


def get_difficulty_analysis(space: AgentSpace) -> Optional[DifficultyAnalysis]:
    """Classify a puzzle run by the techniques it needed.

    Levels, highest first: expert (any backtracking), hard (pointing pair),
    medium (naked pair or hidden single), easy.
    """
    if space.puzzle is None:
        return None
    trace = space.puzzle.reasoning_trace
    counts = {layer: 0 for layer in ReasoningLayer}
    for entry in trace:
        counts[entry.layer] += 1
    backtracks = count_backtracks(space)

    score = sum(
        LAYER_WEIGHTS[layer] * count
        for layer, count in counts.items()
        if layer != ReasoningLayer.LAYER3_BACKTRACK
    )
    score += LAYER_WEIGHTS[ReasoningLayer.LAYER3_BACKTRACK] * backtracks
    score = min(MAX_DIFFICULTY_SCORE, score)

    if backtracks > 0:
        level = "expert"
    elif counts[ReasoningLayer.LAYER2_POINTING_PAIR]:
        level = "hard"
    elif counts[ReasoningLayer.LAYER2_NAKED_PAIR] or counts[ReasoningLayer.LAYER2_HIDDEN_SINGLE]:
        level = "medium"
    else:
        level = "easy"

    return DifficultyAnalysis(
        level=level,
        score=score,
        layer_counts={layer.value: count for layer, count in counts.items()},
        layers_used=[layer.value for layer, count in counts.items() if count > 0],
        backtrack_count=backtracks,
        total_steps=len(trace),
    )


def _result_label(winner: Optional[int], status: str) -> str:
    if winner is not None:
        return f"player {winner} wins"
    if status == "draw":
        return "draw"
    return "in progress"


def get_match_analysis(space: AgentSpace) -> Optional[MatchAnalysis]:
    if space.game is None:
        return None
    game = space.game

    moves = {1: 0, 2: 0}
    nodes = {1: 0, 2: 0}
    for round_ in space.rounds:
        for action in round_.actions:
            if action.action_type != ActionType.MOVE:
                continue
            player = action.data["player"]
            moves[player] += 1
            nodes[player] += action.data.get("search_nodes", 0)

    tallies = {player: {pattern.value: 0 for pattern in TacticalPattern} for player in (1, 2)}
    for record in game.tactical_history:
        for pattern in record.patterns:
            tallies[record.player][pattern.value] += 1

    players: List[PlayerMatchStats] = []
    summary_parts: List[str] = []
    for player in (1, 2):
        count = moves[player]
        behavior = game.behavior_of(player).value
        stats = PlayerMatchStats(
            player=player,
            agent_id=f"player_{player}",
            strategy=game.strategy_of(player),
            behavior=behavior,
            move_count=count,
            total_search_nodes=nodes[player],
            avg_search_nodes=round(nodes[player] / count, 2) if count else 0.0,
            tactical_patterns=tallies[player],
        )
        players.append(stats)
        seen = [f"{name}x{n}" for name, n in stats.tactical_patterns.items() if n]
        summary_parts.append(
            f"Player {player} ({behavior}): {count} moves, "
            f"{stats.total_search_nodes} search nodes (avg {stats.avg_search_nodes}), "
            f"patterns: {', '.join(seen) if seen else 'none'}"
        )

    state = game.state
    summary_parts.append(f"Result: {_result_label(state.winner, state.status.value)}")
    return MatchAnalysis(
        game=game.game_name,
        winner=state.winner,
        total_moves=moves[1] + moves[2],
        players=players,
        tactical_summary=" | ".join(summary_parts),
    )


def get_sigma(space: AgentSpace) -> AgentSpaceSigma:
    """Snapshot metrics: size, convergence, mode field, flow and action totals."""
    round_history = [round_.metrics.total_actions for round_ in space.rounds]
    total_actions = sum(round_history)
    total_rounds = len(space.rounds)

    field: Dict[str, Any]
    if space.puzzle is not None:
        pd = space.puzzle
        confirmed = sum(1 for row in get_grid(space) for value in row if value)
        field = {
            "type": pd.puzzle_type,
            "size": pd.size,
            "total_cells": pd.size * pd.size,
            "confirmed_cells": confirmed,
            "remaining_cells": pd.size * pd.size - confirmed,
            "total_eliminations": pd.total_eliminations,
            "total_confirmations": pd.total_confirmations,
            "constraints": len(pd.constraints),
        }
    else:
        game = space.game
        field = {
            "game": game.game_name,
            "turn_count": game.state.turn_count,
            "status": game.state.status.value,
            "winner": game.state.winner,
            "strategies": list(game.strategies),
            "search_nodes": game.search_nodes,
            "move_count": len(game.state.move_history),
        }

    if space.solved:
        momentum = "converged"
    elif total_rounds:
        momentum = "expanding"
    else:
        momentum = "rest"

    return AgentSpaceSigma(
        kind=space.kind,
        total_rounds=total_rounds,
        converged=_converged(space),
        solved=space.solved,
        agent_count=len(space.agent_ids),
        convergence_history=list(space.convergence_history),
        field=field,
        flow=FlowSummary(
            momentum=momentum,
            round_rate=round(total_actions / total_rounds, 4) if total_rounds else 0.0,
        ),
        memory=MemorySummary(total_actions=total_actions, round_history=round_history),
    )


def build_result(space: AgentSpace) -> AgentSpaceResult:
    result = AgentSpaceResult(
        kind=space.kind,
        total_rounds=len(space.rounds),
        converged=_converged(space),
        solved=space.solved,
        rounds=list(space.rounds),
    )
    if space.puzzle is not None:
        result.grid = get_grid(space)
        result.total_eliminations = space.puzzle.total_eliminations
        result.total_confirmations = space.puzzle.total_confirmations
        result.difficulty = get_difficulty_analysis(space)
        result.relation_summary = get_relation_summary(space)
    else:
        state = space.game.state
        result.winner = state.winner
        result.move_history = [move.model_copy() for move in state.move_history]
        result.final_board = list(state.board)
        result.match_analysis = get_match_analysis(space)
        result.will_summary = get_will_summary(space)
    return result
