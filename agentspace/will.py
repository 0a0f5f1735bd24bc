"""
Volitional tendency metadata for player agents.

Every player carries a ``WillState`` (a tendency label plus a strength in
[0, 1]). After each of its moves the tendency is re-derived from the trend of
its recent move scores and its behavior. Pairs of wills can be compared
(``detect_conflict``) or pulled toward a shared tendency (``align_wills``).

This metadata is only read by post-hoc analysis; it never feeds back into move
selection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Sequence

from pydantic import BaseModel, Field

from .schemas import Behavior, Tendency

if TYPE_CHECKING:  # pragma: no cover
    from .space import AgentSpace

INITIAL_STRENGTH = 0.5
TREND_WINDOW = 3

INITIAL_TENDENCY: Dict[Behavior, Tendency] = {
    Behavior.REACTIVE: Tendency.CONTRACT,
    Behavior.PROACTIVE: Tendency.EXPAND,
    Behavior.CONTEMPLATIVE: Tendency.SPIRAL,
    Behavior.COMPETITIVE: Tendency.EXPAND,
    Behavior.COOPERATIVE: Tendency.HARMONIZE,
    Behavior.SEARCH: Tendency.SPIRAL,
}

# Base tension between two distinct tendencies; identical tendencies have none.
_BASE_TENSION: Dict[FrozenSet[Tendency], float] = {
    frozenset({Tendency.EXPAND, Tendency.CONTRACT}): 1.0,
    frozenset({Tendency.EXPAND, Tendency.HARMONIZE}): 0.6,
    frozenset({Tendency.EXPAND, Tendency.SPIRAL}): 0.5,
    frozenset({Tendency.CONTRACT, Tendency.SPIRAL}): 0.5,
    frozenset({Tendency.CONTRACT, Tendency.HARMONIZE}): 0.4,
    frozenset({Tendency.HARMONIZE, Tendency.SPIRAL}): 0.3,
}
_REST_TENSION = 0.1


class WillState(BaseModel):
    tendency: Tendency
    strength: float = Field(INITIAL_STRENGTH, ge=0.0, le=1.0)


class WillEvolution(BaseModel):
    """One autonomous update of a will."""

    previous: WillState
    evolved: WillState
    reason: str
    autonomous: bool = True


class WillHistoryEntry(BaseModel):
    round_number: int
    player: int
    agent_id: str
    score: float
    evolution: WillEvolution


class WillConflict(BaseModel):
    refs: List[str]
    tendencies: List[Tendency]
    tension: float = Field(..., ge=0.0, le=1.0)
    resolution: str


class WillAlignment(BaseModel):
    refs: List[str]
    harmony: float = Field(..., ge=0.0, le=1.0)
    method: str
    before: List[WillState]
    after: List[WillState]


class PlayerWillSummary(BaseModel):
    player: int
    agent_id: str
    behavior: Behavior
    initial_tendency: Tendency
    final_tendency: Tendency
    final_strength: float
    total_evolutions: int


class WillSummary(BaseModel):
    players: List[PlayerWillSummary]
    will_history: List[WillHistoryEntry]
    conflict: Optional[WillConflict] = None


def initial_will(behavior: Behavior) -> WillState:
    return WillState(tendency=INITIAL_TENDENCY[behavior], strength=INITIAL_STRENGTH)


def evolve_will(previous: WillState, recent_scores: Sequence[float], behavior: Behavior) -> WillEvolution:
    """Derive the next will from the trend of the latest move scores.

    A positive trend pushes toward ``expand`` and a negative one toward
    ``contract``; cooperative players stay ``harmonize`` unless they are losing
    ground. A flat trend keeps the current tendency. Strength is an exponential
    average of the trend's magnitude, reinforced while the tendency holds.
    """
    window = list(recent_scores)[-TREND_WINDOW:]
    trend = sum(window) / len(window) if window else 0.0
    magnitude = abs(trend) / (abs(trend) + 1.0)

    if behavior == Behavior.COOPERATIVE and trend >= 0:
        tendency = Tendency.HARMONIZE
    elif trend > 0:
        tendency = Tendency.EXPAND
    elif trend < 0:
        tendency = Tendency.CONTRACT
    elif previous.tendency == Tendency.REST:
        tendency = INITIAL_TENDENCY[behavior]
    else:
        tendency = previous.tendency

    strength = 0.7 * previous.strength + 0.3 * magnitude
    if tendency == previous.tendency:
        strength += 0.05
    strength = round(min(1.0, max(0.0, strength)), 4)

    reason = (
        f"trend {trend:+.2f} over last {len(window)} move(s): "
        f"{previous.tendency.value} -> {tendency.value}"
    )
    return WillEvolution(
        previous=previous,
        evolved=WillState(tendency=tendency, strength=strength),
        reason=reason,
    )


def _base_tension(a: Tendency, b: Tendency) -> float:
    if a == b:
        return 0.0
    if Tendency.REST in (a, b):
        return _REST_TENSION
    return _BASE_TENSION[frozenset({a, b})]


def _tension(a: WillState, b: WillState) -> float:
    mean_strength = (a.strength + b.strength) / 2
    return round(_base_tension(a.tendency, b.tendency) * (0.5 + 0.5 * mean_strength), 4)


def detect_conflict(a: WillState, b: WillState, refs: Sequence[str]) -> WillConflict:
    tension = _tension(a, b)
    if tension == 0:
        resolution = "aligned: both wills share a tendency"
    elif tension < 0.3:
        resolution = "coexist: tendencies differ but barely interfere"
    elif tension < 0.7:
        resolution = "negotiate: adjust toward a compromise tendency"
    else:
        resolution = "compete: the stronger will prevails"
    return WillConflict(
        refs=list(refs),
        tendencies=[a.tendency, b.tendency],
        tension=tension,
        resolution=resolution,
    )


def align_wills(a: WillState, b: WillState, refs: Sequence[str]) -> WillAlignment:
    """Pull two wills toward one tendency.

    Low tension converges on the shared or stronger tendency with averaged
    strength, moderate tension meets at ``harmonize``, and high tension lets the
    stronger will dominate (the first will wins ties).
    """
    tension = _tension(a, b)
    harmony = round(1.0 - tension, 4)
    mean_strength = round((a.strength + b.strength) / 2, 4)
    stronger = a if a.strength >= b.strength else b

    if tension < 0.3:
        method = "mutual"
        after = [WillState(tendency=stronger.tendency, strength=mean_strength)] * 2
    elif tension < 0.7:
        method = "compromise"
        after = [WillState(tendency=Tendency.HARMONIZE, strength=mean_strength)] * 2
    else:
        method = "dominant"
        after = [
            WillState(tendency=stronger.tendency, strength=stronger.strength),
            WillState(tendency=stronger.tendency, strength=round(mean_strength / 2, 4)),
        ]
        if stronger is b:
            after.reverse()

    return WillAlignment(
        refs=list(refs),
        harmony=harmony,
        method=method,
        before=[a, b],
        after=[state.model_copy() for state in after],
    )


# =============================
# Space-level queries
# =============================


def _player_refs(space: "AgentSpace") -> List[str]:
    return list(space.agent_ids[:2])


def detect_game_will_conflict(space: "AgentSpace") -> Optional[WillConflict]:
    if space.game is None:
        return None
    wills = space.game.will_states
    return detect_conflict(wills[1], wills[2], _player_refs(space))


def align_game_wills(space: "AgentSpace") -> Optional[WillAlignment]:
    """Align both players' wills and store the result on the agents."""
    if space.game is None:
        return None
    game = space.game
    alignment = align_wills(game.will_states[1], game.will_states[2], _player_refs(space))
    for player, state in zip((1, 2), alignment.after):
        game.will_states[player] = state
        agent = space.registry.require(f"player_{player}")
        agent.set_deep_meta({"will": state.model_dump(mode="json")})
    return alignment


def get_will_summary(space: "AgentSpace") -> Optional[WillSummary]:
    if space.game is None:
        return None
    game = space.game
    players: List[PlayerWillSummary] = []
    for player in (1, 2):
        behavior = game.behaviors[player - 1]
        history = [entry for entry in game.will_history if entry.player == player]
        final = game.will_states[player]
        players.append(
            PlayerWillSummary(
                player=player,
                agent_id=f"player_{player}",
                behavior=behavior,
                initial_tendency=INITIAL_TENDENCY[behavior],
                final_tendency=final.tendency,
                final_strength=final.strength,
                total_evolutions=len(history),
            )
        )
    return WillSummary(
        players=players,
        will_history=list(game.will_history),
        conflict=detect_game_will_conflict(space),
    )
