"""
Puzzle propagation engine.

One round visits every active cell agent in arena order. An unconfirmed cell
tries the reasoning layers in fixed priority and stops at the first one that
changes something:

1. direct elimination (layer 1): drop values confirmed in any group the cell
   belongs to, confirming the cell when one candidate is left
2. naked pair (layer 2)
3. hidden single (layer 2)
4. pointing pair (layer 2, 9×9 block puzzles only)

Direct elimination reads a map of confirmed values frozen at the start of the
round, so all cells perceive the same snapshot. The layer 2 techniques read and
mutate live state, so later cells in a round see what earlier cells changed.
Cascading confirmations within one round depend on this asymmetry.

When whole rounds stop producing actions the run controller calls
``backtrack``: guess a value for the most constrained cell, propagate, and roll
back to an explicit ``Checkpoint`` when the guess leads to a contradiction.
Backtracking never raises; it reports failure by returning False.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .puzzle import EliminationEntry, Position, PuzzleCell
from .registry import Agent
from .schemas import Action, ActionType, AgentSpaceRound, ReasoningLayer, ReasoningTraceEntry
from .space import AgentSpace

# Marks round actions produced by a backtracking guess; difficulty analysis counts them.
BACKTRACK_MARKER = "[backtrack]"

SOLVED = "solved"
CONTRADICTION = "contradiction"
STALLED = "stalled"


@dataclass
class LayerOutcome:
    """What one reasoning layer did for the perceiving cell."""

    action: Action
    eliminations: int = 0
    confirmations: int = 0


@dataclass(frozen=True)
class CellCheckpoint:
    value: int
    candidates: Tuple[int, ...]
    history_length: int


@dataclass(frozen=True)
class Checkpoint:
    """Everything a failed backtracking branch must put back.

    ``cells`` is indexed by arena index. The cumulative elimination and
    confirmation counters are not part of the checkpoint: they measure effort
    spent and never decrease.
    """

    cells: Tuple[CellCheckpoint, ...]
    round_count: int
    history_length: int
    trace_length: int
    solved: bool


# =============================
# Shared mutations
# =============================


def _fmt(pos: Position) -> str:
    return f"({pos[0]},{pos[1]})"


def _trace(space: AgentSpace, round_number: int, layer: ReasoningLayer, pos: Position, detail: str) -> None:
    space.puzzle.reasoning_trace.append(
        ReasoningTraceEntry(round_number=round_number, layer=layer, cell=pos, detail=detail)
    )


def _eliminate(
    space: AgentSpace,
    cell: PuzzleCell,
    value: int,
    *,
    reason: str,
    source: Position,
    round_number: int,
) -> None:
    cell.candidates.remove(value)
    cell.elimination_history.append(
        EliminationEntry(candidate=value, reason=reason, source=source, step=round_number)
    )
    space.puzzle.total_eliminations += 1


def _confirm(
    space: AgentSpace,
    agent: Agent,
    value: int,
    *,
    round_number: int,
    layer: ReasoningLayer,
    detail: str,
) -> None:
    cell: PuzzleCell = agent.value
    cell.confirm(value)
    space.puzzle.total_confirmations += 1
    _trace(space, round_number, layer, cell.position, detail)
    agent.add_memory(round_number, "action", detail, {"value": value, "layer": layer.value})
    space.event_bus.emit(
        "entity:transform",
        {"row": cell.row, "col": cell.col, "value": value, "layer": layer.value},
        source=agent.id,
    )


def collect_confirmed(space: AgentSpace) -> Dict[Position, int]:
    """Map of every confirmed cell to its value."""
    confirmed: Dict[Position, int] = {}
    for agent in space.active_agents():
        cell: PuzzleCell = agent.value
        if cell.confirmed:
            confirmed[cell.position] = cell.value
    return confirmed


def _peer_positions(space: AgentSpace, pos: Position) -> List[Position]:
    seen = {pos}
    peers: List[Position] = []
    for group in space.puzzle.groups_of(pos):
        for other in group.cells:
            if other not in seen:
                seen.add(other)
                peers.append(other)
    return peers


# =============================
# Reasoning layers
# =============================


def direct_elimination(
    space: AgentSpace,
    agent: Agent,
    confirmed: Dict[Position, int],
    round_number: int,
) -> Optional[LayerOutcome]:
    """Layer 1: remove values confirmed in the cell's groups (per ``confirmed``)."""
    cell: PuzzleCell = agent.value
    pos = cell.position

    sources: Dict[int, Tuple[Position, str]] = {}
    for group in space.puzzle.groups_of(pos):
        for other in group.cells:
            if other != pos and other in confirmed:
                sources.setdefault(confirmed[other], (other, group.kind))

    eliminated = [value for value in cell.candidates if value in sources]
    for value in eliminated:
        source, kind = sources[value]
        _eliminate(space, cell, value, reason=f"{kind}_conflict", source=source, round_number=round_number)

    if len(cell.candidates) == 1:
        value = cell.candidates[0]
        detail = f"{_fmt(pos)} = {value} by elimination"
        _confirm(space, agent, value, round_number=round_number,
                 layer=ReasoningLayer.LAYER1_ELIMINATION, detail=detail)
        action = Action(
            agent_id=agent.id,
            action_type=ActionType.CONFIRM,
            detail=detail,
            data={"row": cell.row, "col": cell.col, "value": value, "eliminated": eliminated},
        )
        return LayerOutcome(action=action, eliminations=len(eliminated), confirmations=1)

    if not eliminated:
        return None

    detail = f"{_fmt(pos)} eliminated {eliminated}, remaining {cell.candidates}"
    _trace(space, round_number, ReasoningLayer.LAYER1_ELIMINATION, pos, detail)
    action = Action(
        agent_id=agent.id,
        action_type=ActionType.ELIMINATE,
        detail=detail,
        data={
            "row": cell.row,
            "col": cell.col,
            "eliminated": eliminated,
            "remaining": list(cell.candidates),
        },
    )
    return LayerOutcome(action=action, eliminations=len(eliminated))


def _remove_from_cells(
    space: AgentSpace,
    targets: List[Position],
    values: List[int],
    *,
    layer: ReasoningLayer,
    reason: str,
    source: Position,
    round_number: int,
) -> Tuple[int, int]:
    """Strip ``values`` from unconfirmed ``targets``; confirm cells left with one candidate."""
    eliminations = confirmations = 0
    for target in targets:
        other_agent = space.cell_agent(target)
        other: PuzzleCell = other_agent.value
        if other.confirmed:
            continue
        removed = [value for value in other.candidates if value in values]
        if not removed:
            continue
        for value in removed:
            _eliminate(space, other, value, reason=reason, source=source, round_number=round_number)
        eliminations += len(removed)
        if len(other.candidates) == 1:
            value = other.candidates[0]
            _confirm(space, other_agent, value, round_number=round_number, layer=layer,
                     detail=f"{_fmt(target)} = {value} after {reason.replace('_', ' ')} from {_fmt(source)}")
            confirmations += 1
        else:
            _trace(space, round_number, layer, target,
                   f"{_fmt(target)} lost {removed} to {reason.replace('_', ' ')} from {_fmt(source)}")
    return eliminations, confirmations


def naked_pair(space: AgentSpace, agent: Agent, round_number: int) -> Optional[LayerOutcome]:
    """Two cells of a group holding the same two candidates claim both values.

    The first group and peer (in iteration order) that removes anything wins.
    Re-running on a grid where the pair values are already gone is a no-op.
    """
    cell: PuzzleCell = agent.value
    if len(cell.candidates) != 2:
        return None
    pos = cell.position
    pair = sorted(cell.candidates)

    for group in space.puzzle.groups_of(pos):
        for peer_pos in group.cells:
            if peer_pos == pos:
                continue
            peer = space.cell(peer_pos)
            if peer.confirmed or sorted(peer.candidates) != pair:
                continue
            targets = [p for p in group.cells if p not in (pos, peer_pos)]
            eliminations, confirmations = _remove_from_cells(
                space, targets, pair,
                layer=ReasoningLayer.LAYER2_NAKED_PAIR,
                reason="naked_pair",
                source=pos,
                round_number=round_number,
            )
            if eliminations:
                detail = (
                    f"Naked pair {pair} at {_fmt(pos)} and {_fmt(peer_pos)} in {group.label}: "
                    f"{eliminations} eliminated, {confirmations} confirmed"
                )
                action = Action(
                    agent_id=agent.id,
                    action_type=ActionType.ELIMINATE,
                    detail=detail,
                    data={
                        "row": cell.row,
                        "col": cell.col,
                        "pair": pair,
                        "peer": list(peer_pos),
                        "group": group.label,
                        "eliminated": eliminations,
                        "confirmed": confirmations,
                    },
                )
                return LayerOutcome(action=action, eliminations=eliminations, confirmations=confirmations)
    return None


def is_valid_guess(space: AgentSpace, pos: Position, value: int) -> bool:
    """True when no cell sharing a group with ``pos`` currently holds ``value``."""
    return all(space.cell(peer).value != value for peer in _peer_positions(space, pos))


def hidden_single(space: AgentSpace, agent: Agent, round_number: int) -> Optional[LayerOutcome]:
    """Confirm the cell if it is the only place left for a value in one of its groups.

    Only groups spanning the whole value range count, since smaller custom groups
    need not contain every value.
    """
    cell: PuzzleCell = agent.value
    pos = cell.position
    size = space.puzzle.size

    for group in space.puzzle.groups_of(pos):
        if len(group.cells) != size:
            continue
        members = [space.cell(p) for p in group.cells]
        held = {member.value for member in members if member.confirmed}
        for value in list(cell.candidates):
            if value in held:
                continue
            holders = [m.position for m in members if not m.confirmed and value in m.candidates]
            if holders != [pos] or not is_valid_guess(space, pos, value):
                continue
            others = [v for v in cell.candidates if v != value]
            for other in others:
                _eliminate(space, cell, other, reason="hidden_single", source=pos, round_number=round_number)
            detail = f"{_fmt(pos)} = {value} is the only place for {value} in {group.label}"
            _confirm(space, agent, value, round_number=round_number,
                     layer=ReasoningLayer.LAYER2_HIDDEN_SINGLE, detail=detail)
            action = Action(
                agent_id=agent.id,
                action_type=ActionType.CONFIRM,
                detail=f"Hidden single: {detail}",
                data={"row": cell.row, "col": cell.col, "value": value, "group": group.label},
            )
            return LayerOutcome(action=action, eliminations=len(others), confirmations=1)
    return None


def pointing_pair(space: AgentSpace, agent: Agent, round_number: int) -> Optional[LayerOutcome]:
    """A value confined to one row or column of the cell's block leaves the rest of that line."""
    pd = space.puzzle
    if pd.size != 9 or not pd.has_blocks:
        return None
    cell: PuzzleCell = agent.value
    pos = cell.position
    block = next((g for g in pd.groups_of(pos) if g.kind == "block"), None)
    if block is None:
        return None
    in_block = set(block.cells)

    for value in list(cell.candidates):
        if any(space.cell(p).value == value for p in block.cells):
            continue
        holders = [p for p in block.cells if not space.cell(p).confirmed and value in space.cell(p).candidates]
        rows = {p[0] for p in holders}
        cols = {p[1] for p in holders}
        if len(rows) == 1:
            line = f"row {pos[0]}"
            targets = [(pos[0], c) for c in range(pd.size) if (pos[0], c) not in in_block]
        elif len(cols) == 1:
            line = f"column {pos[1]}"
            targets = [(r, pos[1]) for r in range(pd.size) if (r, pos[1]) not in in_block]
        else:
            continue
        eliminations, confirmations = _remove_from_cells(
            space, targets, [value],
            layer=ReasoningLayer.LAYER2_POINTING_PAIR,
            reason="pointing_pair",
            source=pos,
            round_number=round_number,
        )
        if eliminations:
            detail = (
                f"Pointing pair: {value} confined to {line} in {block.label}, "
                f"{eliminations} eliminated outside the block"
            )
            action = Action(
                agent_id=agent.id,
                action_type=ActionType.ELIMINATE,
                detail=detail,
                data={"row": cell.row, "col": cell.col, "value": value, "line": line,
                      "eliminated": eliminations, "confirmed": confirmations},
            )
            return LayerOutcome(action=action, eliminations=eliminations, confirmations=confirmations)
    return None


# =============================
# Round
# =============================


def has_contradiction(space: AgentSpace) -> bool:
    """An unconfirmed cell without candidates, or a value confirmed twice in a group."""
    for agent in space.active_agents():
        cell: PuzzleCell = agent.value
        if not cell.confirmed and not cell.candidates:
            return True
    for group in space.puzzle.constraints:
        values = [space.cell(p).value for p in group.cells if space.cell(p).confirmed]
        if len(values) != len(set(values)):
            return True
    return False


def run_puzzle_round(space: AgentSpace) -> AgentSpaceRound:
    """Advance every unconfirmed cell agent by one layer of reasoning.

    The space is marked solved by a round that starts with every cell confirmed
    and no group conflict. Such a round is all ``none``, so a solved run always
    ends on a convergence ratio of 1.0.
    """
    round_number = space.next_round_number
    space.event_bus.emit("space:round_start", {"round": round_number, "kind": "puzzle"}, source="space")

    agents = space.active_agents()
    complete_at_start = all(agent.value.confirmed for agent in agents)
    confirmed = collect_confirmed(space)

    actions: List[Action] = []
    for agent in agents:
        cell: PuzzleCell = agent.value
        if cell.confirmed:
            actions.append(Action(agent_id=agent.id, action_type=ActionType.NONE, detail="confirmed"))
            continue
        outcome = (
            direct_elimination(space, agent, confirmed, round_number)
            or naked_pair(space, agent, round_number)
            or hidden_single(space, agent, round_number)
            or pointing_pair(space, agent, round_number)
        )
        if outcome is None:
            actions.append(
                Action(
                    agent_id=agent.id,
                    action_type=ActionType.NONE,
                    detail=f"no deduction for {_fmt(cell.position)} ({len(cell.candidates)} candidates)",
                )
            )
        else:
            actions.append(outcome.action)

    round_ = space.record_round(actions, len(agents))
    if complete_at_start and not has_contradiction(space):
        space.solved = True

    space.event_bus.emit(
        "space:round_end",
        {
            "round": round_number,
            "total_actions": round_.metrics.total_actions,
            "convergence_ratio": round_.metrics.convergence_ratio,
            "solved": space.solved,
        },
        source="space",
    )
    return round_


# =============================
# Backtracking
# =============================


def take_checkpoint(space: AgentSpace) -> Checkpoint:
    cells = tuple(
        CellCheckpoint(
            value=agent.value.value,
            candidates=tuple(agent.value.candidates),
            history_length=len(agent.value.elimination_history),
        )
        for agent in space.registry
    )
    return Checkpoint(
        cells=cells,
        round_count=len(space.rounds),
        history_length=len(space.convergence_history),
        trace_length=len(space.puzzle.reasoning_trace),
        solved=space.solved,
    )


def restore_checkpoint(space: AgentSpace, checkpoint: Checkpoint) -> None:
    """Put every cell, the round history and the trace back as they were."""
    for agent, saved in zip(space.registry, checkpoint.cells):
        cell: PuzzleCell = agent.value
        cell.value = saved.value
        cell.candidates = list(saved.candidates)
        del cell.elimination_history[saved.history_length:]
    del space.rounds[checkpoint.round_count:]
    del space.convergence_history[checkpoint.history_length:]
    del space.puzzle.reasoning_trace[checkpoint.trace_length:]
    space.solved = checkpoint.solved


def _select_mrv(space: AgentSpace) -> Optional[Agent]:
    """Unconfirmed cell with the fewest candidates (first in arena order on ties)."""
    best: Optional[Agent] = None
    for agent in space.active_agents():
        cell: PuzzleCell = agent.value
        if cell.confirmed or not cell.candidates:
            continue
        if best is None or len(cell.candidates) < len(best.value.candidates):
            best = agent
    return best


def _apply_guess(space: AgentSpace, agent: Agent, value: int, depth: int) -> AgentSpaceRound:
    """Confirm ``value`` tentatively and record the guess as its own round."""
    round_number = space.next_round_number
    cell: PuzzleCell = agent.value
    for other in [v for v in cell.candidates if v != value]:
        _eliminate(space, cell, other, reason="backtrack_guess", source=cell.position, round_number=round_number)
    detail = f"{BACKTRACK_MARKER} guess {_fmt(cell.position)} = {value} (depth {depth})"
    _confirm(space, agent, value, round_number=round_number,
             layer=ReasoningLayer.LAYER3_BACKTRACK, detail=detail)

    agents = space.active_agents()
    actions = [
        Action(
            agent_id=agent.id,
            action_type=ActionType.CONFIRM,
            detail=detail,
            data={"row": cell.row, "col": cell.col, "value": value, "depth": depth},
        )
    ]
    actions.extend(
        Action(agent_id=other.id, action_type=ActionType.NONE, detail="waiting on backtrack guess")
        for other in agents
        if other.id != agent.id
    )
    return space.record_round(actions, len(agents))


def _propagate(space: AgentSpace) -> str:
    """Run rounds until the grid is solved, contradicts itself, or stops changing."""
    while True:
        if has_contradiction(space):
            return CONTRADICTION
        round_ = run_puzzle_round(space)
        if space.solved:
            return SOLVED
        if round_.metrics.total_actions == 0:
            return CONTRADICTION if has_contradiction(space) else STALLED


def backtrack(space: AgentSpace, depth: int = 0) -> bool:
    """Guess-and-verify search with minimum-remaining-values ordering.

    Returns True when the puzzle ends up solved. On False the space is exactly
    as it was before the call, apart from the cumulative counters and agent
    memories.
    """
    target = _select_mrv(space)
    if target is None:
        return False
    cell: PuzzleCell = target.value
    pos = cell.position

    for guess in list(cell.candidates):
        if not is_valid_guess(space, pos, guess):
            continue
        checkpoint = take_checkpoint(space)
        _apply_guess(space, target, guess, depth)
        space.event_bus.emit(
            "space:backtrack",
            {"row": pos[0], "col": pos[1], "value": guess, "depth": depth, "outcome": "guess"},
            source=target.id,
        )

        outcome = _propagate(space)
        if outcome == SOLVED:
            return True
        if outcome == STALLED and backtrack(space, depth + 1):
            return True

        restore_checkpoint(space, checkpoint)
        target.add_memory(
            space.next_round_number,
            "backtrack",
            f"abandoned guess {guess} at {_fmt(pos)} ({outcome})",
            {"value": guess, "depth": depth},
        )
        space.event_bus.emit(
            "space:backtrack",
            {"row": pos[0], "col": pos[1], "value": guess, "depth": depth, "outcome": "abandoned"},
            source=target.id,
        )
    return False
