"""
Game decision engine.

One game round is one turn: the player to move perceives the board, picks a
move with its behavior's procedure, applies it through the rules, and updates
its volitional tendency. The opponent records a ``none`` action.

Behaviors:
- reactive: block a threat when urgency is high, otherwise play at random
- proactive: take a winning move, otherwise prefer center then corners
- contemplative: Monte-Carlo playouts per legal move
- competitive / cooperative / search: delegate to ``select_best_move``

Only the reactive random choice and contemplative sampling draw from the
space's random source; every other path is deterministic.
"""

from __future__ import annotations

import os
import random
from typing import List, Optional

from .config import Config
from .games import GameRules, GameSpace, GameState, GameStatus, IllegalMoveError, select_best_move
from .registry import Agent
from .schemas import (
    Action,
    ActionType,
    AgentSpaceRound,
    Behavior,
    MoveDecision,
    TacticalPattern,
    TacticalPerception,
    TacticalRecord,
)
from .space import AgentSpace, player_agent_id
from .will import WillHistoryEntry, evolve_will

POSITIONAL_PREFERENCE = (4, 0, 2, 6, 8)


def _simulate(rules: GameRules, state: GameState, position: int) -> Optional[GameState]:
    """Apply a speculative move; illegal moves simply do not count."""
    try:
        return rules.apply_move(state, position)
    except IllegalMoveError:
        return None


def perceive_tactics(rules: GameRules, state: GameState) -> TacticalPerception:
    """Read threats, opportunities and positional features for the player to move."""
    player = state.current_player
    opponent = state.opponent
    legal = rules.get_legal_moves(state)
    as_opponent = state.model_copy(update={"current_player": opponent})

    opportunities: List[int] = []
    threats: List[int] = []
    for move in legal:
        after = _simulate(rules, state, move)
        if after is not None and after.winner == player:
            opportunities.append(move)
        after_opponent = _simulate(rules, as_opponent, move)
        if after_opponent is not None and after_opponent.winner == opponent:
            threats.append(move)

    patterns: List[TacticalPattern] = []
    if threats:
        patterns.extend([TacticalPattern.THREAT, TacticalPattern.BLOCK])
    if opportunities:
        patterns.append(TacticalPattern.OPPORTUNITY)
    if len(opportunities) >= 2:
        patterns.append(TacticalPattern.FORK)
    if rules.center_position is not None and rules.center_position in legal:
        patterns.append(TacticalPattern.CENTER)
    if any(corner in legal for corner in rules.corner_positions):
        patterns.append(TacticalPattern.CORNER)
    if not patterns:
        patterns.append(TacticalPattern.NONE)

    if threats:
        urgency = min(1.0, 0.5 * len(threats))
    elif opportunities:
        urgency = 0.3
    else:
        urgency = 0.0

    return TacticalPerception(
        patterns=patterns,
        urgency=urgency,
        threats=threats,
        opportunities=opportunities,
        legal_moves=legal,
    )


# =============================
# Behaviors
# =============================


def reactive_move(
    rules: GameRules,
    state: GameState,
    perception: TacticalPerception,
    rng: random.Random,
) -> MoveDecision:
    if perception.urgency > 0.5 and perception.threats:
        move = perception.threats[0]
        after = rules.apply_move(state, move)
        return MoveDecision(
            position=move,
            score=rules.evaluate(after, state.current_player),
            behavior=Behavior.REACTIVE,
            reason=f"blocked threat at {move}",
        )
    move = rng.choice(perception.legal_moves)
    after = rules.apply_move(state, move)
    return MoveDecision(
        position=move,
        score=rules.evaluate(after, state.current_player),
        search_nodes=1,
        behavior=Behavior.REACTIVE,
        reason="random legal move",
        stochastic=True,
    )


def proactive_move(rules: GameRules, state: GameState, perception: TacticalPerception) -> MoveDecision:
    legal = perception.legal_moves
    if perception.opportunities:
        move, reason = perception.opportunities[0], "took winning opportunity"
    else:
        preferred = [p for p in POSITIONAL_PREFERENCE if p in legal]
        if preferred:
            move, reason = preferred[0], "positional preference"
        else:
            move, reason = legal[0], "first legal move"
    after = rules.apply_move(state, move)
    return MoveDecision(
        position=move,
        score=rules.evaluate(after, state.current_player),
        behavior=Behavior.PROACTIVE,
        reason=reason,
    )


def _playout(rules: GameRules, state: GameState, rng: random.Random, depth_cap: int) -> Optional[int]:
    """Play random moves to the end (or the depth cap). Returns the winner, if any."""
    depth = 0
    while not state.is_over and depth < depth_cap:
        moves = rules.get_legal_moves(state)
        if not moves:
            break
        state = rules.apply_move(state, rng.choice(moves))
        depth += 1
    return state.winner if state.status == GameStatus.WIN else None


def monte_carlo_move(
    rules: GameRules,
    state: GameState,
    rng: random.Random,
    samples: Optional[int] = None,
    depth_cap: Optional[int] = None,
) -> MoveDecision:
    """Score each legal move by ``(wins + 0.5 * draws) / samples`` over random playouts.

    Playouts cut off by the depth cap count as draws. The reported search cost is
    the total number of playouts.
    """
    samples = samples or Config.MONTE_CARLO_SAMPLES
    depth_cap = depth_cap or Config.MONTE_CARLO_DEPTH
    player = state.current_player

    best_move, best_score, total = -1, -1.0, 0
    for move in rules.get_legal_moves(state):
        after = rules.apply_move(state, move)
        wins = draws = 0
        for _ in range(samples):
            winner = _playout(rules, after, rng, depth_cap)
            if winner == player:
                wins += 1
            elif winner is None:
                draws += 1
        total += samples
        score = (wins + 0.5 * draws) / samples
        if score > best_score:
            best_move, best_score = move, score

    return MoveDecision(
        position=best_move,
        score=best_score,
        search_nodes=total,
        behavior=Behavior.CONTEMPLATIVE,
        reason=f"best playout score {best_score:.2f} over {samples} samples per move",
        stochastic=True,
    )


def search_move(space: AgentSpace, player: int) -> MoveDecision:
    game = space.game
    strategy = game.strategy_of(player)
    result = select_best_move(
        GameSpace(state=game.state, rules=game.rules, strategy=strategy, max_depth=game.max_depth),
        rng=game.rng,
    )
    return MoveDecision(
        position=result.move,
        score=result.score,
        search_nodes=result.search_nodes,
        behavior=game.behavior_of(player),
        reason=f"{strategy} search",
        stochastic=strategy == "random",
    )


def decide(space: AgentSpace, player: int, perception: TacticalPerception) -> MoveDecision:
    """Dispatch to the player's behavior."""
    game = space.game
    behavior = game.behavior_of(player)
    if behavior == Behavior.REACTIVE:
        return reactive_move(game.rules, game.state, perception, game.rng)
    if behavior == Behavior.PROACTIVE:
        return proactive_move(game.rules, game.state, perception)
    if behavior == Behavior.CONTEMPLATIVE:
        return monte_carlo_move(game.rules, game.state, game.rng)
    if behavior in (Behavior.COMPETITIVE, Behavior.COOPERATIVE, Behavior.SEARCH):
        return search_move(space, player)
    raise ValueError(f"Unhandled behavior: {behavior}")


# =============================
# Round
# =============================


def _record_will(space: AgentSpace, agent: Agent, player: int, score: float, round_number: int) -> None:
    game = space.game
    game.move_scores[player].append(score)
    evolution = evolve_will(game.will_states[player], game.move_scores[player], game.behavior_of(player))
    game.will_states[player] = evolution.evolved
    game.will_history.append(
        WillHistoryEntry(
            round_number=round_number,
            player=player,
            agent_id=agent.id,
            score=score,
            evolution=evolution,
        )
    )
    agent.set_deep_meta({"will": evolution.evolved.model_dump(mode="json")})


def _game_over_round(space: AgentSpace) -> AgentSpaceRound:
    state = space.game.state
    detail = f"game over ({state.status.value})"
    actions = [
        Action(agent_id=agent_id, action_type=ActionType.NONE, detail=detail)
        for agent_id in space.agent_ids
    ]
    space.solved = True
    return space.record_round(actions, len(space.agent_ids))


def run_game_round(space: AgentSpace) -> AgentSpaceRound:
    """Play one turn for the player to move.

    Raises:
        AgentNotFoundError: if the acting player agent is missing.
    """
    game = space.game
    if game.state.is_over:
        return _game_over_round(space)

    round_number = space.next_round_number
    player = game.state.current_player
    agent = space.registry.require(player_agent_id(player))
    opponent_id = player_agent_id(game.state.opponent)
    space.event_bus.emit("space:round_start", {"round": round_number, "kind": "game"}, source="space")

    perception = perceive_tactics(game.rules, game.state)
    agent.add_memory(
        round_number,
        "perception",
        f"patterns {[p.value for p in perception.patterns]}, urgency {perception.urgency:.1f}",
        {"threats": perception.threats, "opportunities": perception.opportunities},
    )
    space.event_bus.emit("agent:perceive", perception.model_dump(mode="json"), source=agent.id)

    decision = decide(space, player, perception)
    space.event_bus.emit("agent:decide", decision.model_dump(mode="json"), source=agent.id)

    new_state = game.rules.apply_move(game.state, decision.position)
    game.state = new_state
    game.search_nodes += decision.search_nodes
    game.tactical_history.append(
        TacticalRecord(
            round_number=round_number,
            player=player,
            patterns=perception.patterns,
            urgency=perception.urgency,
        )
    )
    label = new_state.move_history[-1].label
    agent.add_memory(round_number, "action", f"{label} ({decision.reason})", {"position": decision.position})
    _record_will(space, agent, player, decision.score, round_number)
    space.event_bus.emit(
        "agent:act",
        {"position": decision.position, "label": label, "status": new_state.status.value},
        source=agent.id,
    )

    if os.getenv("DEBUG_DECISIONS", "").lower() in {"1", "true", "yes"}:
        print(f"[DEBUG_DECISIONS] {agent.id}: {decision.reason} -> {decision.position} (score {decision.score})")

    actions = [
        Action(
            agent_id=agent.id,
            action_type=ActionType.MOVE,
            detail=label,
            data={
                "player": player,
                "position": decision.position,
                "score": decision.score,
                "strategy": game.strategy_of(player),
                "behavior": decision.behavior.value,
                "search_nodes": decision.search_nodes,
                "stochastic": decision.stochastic,
                "patterns": [p.value for p in perception.patterns],
                "urgency": perception.urgency,
            },
        ),
        Action(agent_id=opponent_id, action_type=ActionType.NONE, detail="waiting for turn"),
    ]
    round_ = space.record_round(actions, len(space.agent_ids))
    if new_state.status != GameStatus.PLAYING:
        space.solved = True

    space.event_bus.emit(
        "space:round_end",
        {"round": round_number, "status": new_state.status.value, "solved": space.solved},
        source="space",
    )
    return round_
