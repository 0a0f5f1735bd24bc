"""
AgentSpace: the aggregate both round engines operate on.

An AgentSpace is created once from a puzzle or a game definition and then
mutated in place round by round. It owns the agent arena (``AgentRegistry``),
an event bus, a mediator, the round history and exactly one mode payload:

- ``PuzzleAgentData`` for puzzle mode (one cell agent per grid cell)
- ``GameAgentData`` for game mode (two player agents)

Cell agents are addressed through two parallel maps over the arena:
``cell_map`` (row, col) -> arena index and ``pos_map`` arena index -> (row, col).
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .event_bus import EventBus
from .games import GameRules, GameSpace, GameState
from .mediator import Mediator
from .puzzle import ConstraintGroup, Position, PuzzleCell, PuzzleSpace, box_size
from .registry import Agent, AgentRegistry
from .schemas import (
    Action,
    AgentSpaceRound,
    Behavior,
    PlayerValue,
    ReasoningTraceEntry,
    RoundMetrics,
    SpaceKind,
    TacticalRecord,
)
from .will import WillHistoryEntry, WillState, initial_will


class SpaceKindError(ValueError):
    """Raised when a mode-specific accessor is used on the other mode."""

    def __init__(self, *, expected: SpaceKind, actual: SpaceKind, operation: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{operation} requires a {expected.value} space, but this space is {actual.value}"
        )


@dataclass
class PuzzleAgentData:
    """Puzzle-mode payload.

    Attributes:
        size: Grid side length.
        puzzle_type: sudoku, latin_square or custom.
        constraints: All-different groups (read-only after construction).
        cell_map: (row, col) -> arena index.
        pos_map: arena index -> (row, col).
        groups_by_cell: (row, col) -> indices into ``constraints``.
        total_eliminations: Candidates removed during the run (never decreases).
        total_confirmations: Cells confirmed during the run (never decreases).
        reasoning_trace: Technique events in the order they happened.
    """

    size: int
    puzzle_type: str
    constraints: List[ConstraintGroup]
    cell_map: Dict[Position, int]
    pos_map: Dict[int, Position]
    groups_by_cell: Dict[Position, List[int]]
    total_eliminations: int = 0
    total_confirmations: int = 0
    reasoning_trace: List[ReasoningTraceEntry] = field(default_factory=list)

    @property
    def has_blocks(self) -> bool:
        return any(group.kind == "block" for group in self.constraints)

    def groups_of(self, pos: Position) -> List[ConstraintGroup]:
        return [self.constraints[i] for i in self.groups_by_cell.get(pos, [])]


@dataclass
class GameAgentData:
    """Game-mode payload.

    ``state`` is an owned copy of the game state and is replaced, never mutated,
    after each move. ``will_states``, ``move_scores`` and the two tuples are
    keyed or ordered by player index (1, 2).
    """

    game_name: str
    rules: GameRules
    state: GameState
    max_depth: int
    strategies: Tuple[str, str]
    behaviors: Tuple[Behavior, Behavior]
    search_nodes: int = 0
    tactical_history: List[TacticalRecord] = field(default_factory=list)
    will_states: Dict[int, WillState] = field(default_factory=dict)
    will_history: List[WillHistoryEntry] = field(default_factory=list)
    move_scores: Dict[int, List[float]] = field(default_factory=lambda: {1: [], 2: []})
    rng: random.Random = field(default_factory=random.Random)

    def strategy_of(self, player: int) -> str:
        return self.strategies[player - 1]

    def behavior_of(self, player: int) -> Behavior:
        return self.behaviors[player - 1]


@dataclass
class AgentSpace:
    kind: SpaceKind
    registry: AgentRegistry
    event_bus: EventBus
    mediator: Mediator
    agent_ids: List[str]
    puzzle: Optional[PuzzleAgentData] = None
    game: Optional[GameAgentData] = None
    rounds: List[AgentSpaceRound] = field(default_factory=list)
    convergence_history: List[float] = field(default_factory=list)
    solved: bool = False

    def __post_init__(self) -> None:
        if (self.puzzle is None) == (self.game is None):
            raise ValueError("AgentSpace needs exactly one of puzzle or game data")
        if self.kind == SpaceKind.PUZZLE and self.puzzle is None:
            raise ValueError("Puzzle space created without puzzle data")
        if self.kind == SpaceKind.GAME and self.game is None:
            raise ValueError("Game space created without game data")

    @property
    def round_count(self) -> int:
        return len(self.rounds)

    @property
    def next_round_number(self) -> int:
        return len(self.rounds) + 1

    def active_agents(self) -> List[Agent]:
        agents = (self.registry.get(agent_id) for agent_id in self.agent_ids)
        return [agent for agent in agents if agent is not None and agent.is_active]

    def cell_agent(self, pos: Position) -> Agent:
        return self.registry.at(self.puzzle.cell_map[pos])

    def cell(self, pos: Position) -> PuzzleCell:
        return self.cell_agent(pos).value

    def record_round(self, actions: Sequence[Action], active_agents: int) -> AgentSpaceRound:
        """Append a round built from ``actions`` and update the convergence history."""
        round_ = AgentSpaceRound(
            round_number=self.next_round_number,
            actions=list(actions),
            metrics=RoundMetrics.from_actions(actions, active_agents),
        )
        self.rounds.append(round_)
        self.convergence_history.append(round_.metrics.convergence_ratio)
        return round_


# =============================
# Factories
# =============================


def cell_agent_id(row: int, col: int) -> str:
    return f"cell_{row}_{col}"


def player_agent_id(player: int) -> str:
    return f"player_{player}"


def create_puzzle_agent_space(puzzle: PuzzleSpace) -> AgentSpace:
    """Spawn one cell agent per grid cell, in row-major order."""
    registry = AgentRegistry()
    mediator = Mediator(default_strategy="cooperative")
    cell_map: Dict[Position, int] = {}
    pos_map: Dict[int, Position] = {}
    agent_ids: List[str] = []

    for row in puzzle.cells:
        for cell in row:
            agent_id = cell_agent_id(cell.row, cell.col)
            agent = registry.spawn(cell.model_copy(deep=True), agent_id=agent_id, behavior="cell")
            if cell.fixed:
                agent.add_memory(0, "observation", f"initial value {cell.value} (fixed)")
            elif cell.confirmed:
                agent.add_memory(0, "observation", f"initial value {cell.value} (setup propagation)")
            cell_map[cell.position] = agent.index
            pos_map[agent.index] = cell.position
            agent_ids.append(agent_id)

    groups_by_cell: Dict[Position, List[int]] = {pos: [] for pos in cell_map}
    for index, group in enumerate(puzzle.constraints):
        for pos in group.cells:
            groups_by_cell[pos].append(index)

    data = PuzzleAgentData(
        size=puzzle.size,
        puzzle_type=puzzle.puzzle_type,
        constraints=[group.model_copy(deep=True) for group in puzzle.constraints],
        cell_map=cell_map,
        pos_map=pos_map,
        groups_by_cell=groups_by_cell,
    )
    return AgentSpace(
        kind=SpaceKind.PUZZLE,
        registry=registry,
        event_bus=EventBus(),
        mediator=mediator,
        agent_ids=agent_ids,
        puzzle=data,
    )


def create_game_agent_space(
    game: GameSpace,
    p1_strategy: Optional[str] = None,
    p2_strategy: Optional[str] = None,
    *,
    rng: Optional[random.Random] = None,
) -> AgentSpace:
    """Spawn ``player_1`` and ``player_2``.

    Args:
        game: Game definition; its state is copied, not shared.
        p1_strategy: Strategy label for player 1 (defaults to ``game.strategy``).
        p2_strategy: Strategy label for player 2 (defaults to ``game.strategy``).
        rng: Random source for reactive and contemplative players. Unseeded by default.
    """
    registry = AgentRegistry()
    mediator = Mediator(default_strategy="priority")
    strategies = (p1_strategy or game.strategy, p2_strategy or game.strategy)
    behaviors = (Behavior.from_label(strategies[0]), Behavior.from_label(strategies[1]))

    agent_ids: List[str] = []
    will_states: Dict[int, WillState] = {}
    for player in (1, 2):
        agent_id = player_agent_id(player)
        behavior = behaviors[player - 1]
        value = PlayerValue(player=player, strategy=strategies[player - 1], behavior=behavior)
        agent = registry.spawn(value, agent_id=agent_id, behavior=behavior.value)
        will_states[player] = initial_will(behavior)
        agent.set_deep_meta({"will": will_states[player].model_dump(mode="json")})
        agent.add_memory(0, "observation", f"joined {game.name} as player {player} ({value.strategy})")
        mediator.set_agent_priority(agent_id, 1.0)
        agent_ids.append(agent_id)

    data = GameAgentData(
        game_name=game.name,
        rules=game.rules,
        state=game.state.model_copy(deep=True),
        max_depth=game.max_depth,
        strategies=strategies,
        behaviors=behaviors,
        will_states=will_states,
        rng=rng or random.Random(),
    )
    return AgentSpace(
        kind=SpaceKind.GAME,
        registry=registry,
        event_bus=EventBus(),
        mediator=mediator,
        agent_ids=agent_ids,
        game=data,
    )


# =============================
# Read-only accessors
# =============================


def get_grid(space: AgentSpace) -> List[List[int]]:
    """Current grid of confirmed values (0 = unconfirmed)."""
    if space.puzzle is None:
        raise SpaceKindError(expected=SpaceKind.PUZZLE, actual=space.kind, operation="get_grid")
    size = space.puzzle.size
    return [[space.cell((r, c)).value for c in range(size)] for r in range(size)]


def get_game_state(space: AgentSpace) -> Optional[GameState]:
    """Copy of the current game state, or None for puzzle spaces."""
    if space.game is None:
        return None
    return space.game.state.model_copy(deep=True)


def get_reasoning_trace(space: AgentSpace) -> List[ReasoningTraceEntry]:
    if space.puzzle is None:
        return []
    return list(space.puzzle.reasoning_trace)


def format_puzzle(space: AgentSpace) -> str:
    """Grid rendering with block separators; unconfirmed cells show as '·'."""
    if space.puzzle is None:
        return ""
    grid = get_grid(space)
    size = space.puzzle.size
    box = box_size(size) if space.puzzle.has_blocks else size
    width = len(str(size))
    lines: List[str] = []
    for r, row in enumerate(grid):
        if r > 0 and r % box == 0:
            lines.append("─" * (size * (width + 1) + 2 * (size // box - 1) - 1))
        parts: List[str] = []
        for c, value in enumerate(row):
            if c > 0 and c % box == 0:
                parts.append("│")
            parts.append(str(value).rjust(width) if value else "·".rjust(width))
        lines.append(" ".join(parts))
    return "\n".join(lines)


def format_game(space: AgentSpace) -> str:
    if space.game is None:
        return ""
    game = space.game
    state = game.state
    header = f"{game.game_name} | turn {state.turn_count} | {state.status.value}"
    if state.winner is not None:
        header += f" | winner: player {state.winner}"
    return f"{header}\n{game.rules.format_board(state)}"


def format_board(space: AgentSpace) -> str:
    """Render either mode."""
    if space.kind == SpaceKind.PUZZLE:
        return format_puzzle(space)
    return format_game(space)
