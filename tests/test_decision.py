"""Tests for tactical perception, player behaviors and game rounds."""

import contextlib
import io
import random

import pytest

from agentspace.config import Config
from agentspace.decision import (
    monte_carlo_move,
    perceive_tactics,
    proactive_move,
    reactive_move,
    run_game_round,
)
from agentspace.games import GameState, NimRules, TicTacToeRules, create_game_space
from agentspace.registry import AgentNotFoundError, AgentRegistry
from agentspace.schemas import ActionType, Behavior, TacticalPattern
from agentspace.space import create_game_agent_space

# X at 0 and 1, O at 3 and 4, X to move: one opportunity (2), one threat (5).
RACE_BOARD = [1, 1, 0, 2, 2, 0, 0, 0, 0]
# O at 0, 4 and 6 threatens 2, 3 and 8; X (1, 5, 7) has nothing.
DOUBLE_THREAT_BOARD = [2, 1, 0, 0, 2, 1, 2, 1, 0]
# X at 0, 1 and 3 wins at 2 or 6; O (4, 5, 8) threatens 2.
FORK_BOARD = [1, 1, 0, 1, 2, 2, 0, 0, 2]


def _ttt(board):
    return GameState(board=list(board), current_player=1)


def _game_space(board, p1, p2="minimax", seed=0):
    game = create_game_space("tic_tac_toe", board=board)
    return create_game_agent_space(game, p1, p2, rng=random.Random(seed))


# =============================
# Perception
# =============================


def test_empty_board_perceives_center_and_corners():
    perception = perceive_tactics(TicTacToeRules(), TicTacToeRules().initial_state())

    assert perception.patterns == [TacticalPattern.CENTER, TacticalPattern.CORNER]
    assert perception.urgency == 0.0
    assert perception.threats == []
    assert perception.opportunities == []
    assert len(perception.legal_moves) == 9


def test_threat_and_opportunity_are_both_perceived():
    perception = perceive_tactics(TicTacToeRules(), _ttt(RACE_BOARD))

    assert perception.opportunities == [2]
    assert perception.threats == [5]
    assert TacticalPattern.THREAT in perception.patterns
    assert TacticalPattern.BLOCK in perception.patterns
    assert TacticalPattern.OPPORTUNITY in perception.patterns
    assert TacticalPattern.FORK not in perception.patterns
    assert TacticalPattern.CENTER not in perception.patterns
    assert perception.urgency == 0.5


def test_two_opportunities_make_a_fork():
    perception = perceive_tactics(TicTacToeRules(), _ttt(FORK_BOARD))

    assert perception.opportunities == [2, 6]
    assert TacticalPattern.FORK in perception.patterns
    assert perception.threats == [2]


def test_urgency_is_capped_at_one():
    perception = perceive_tactics(TicTacToeRules(), _ttt(DOUBLE_THREAT_BOARD))
    assert perception.threats == [2, 3, 8]
    assert perception.urgency == 1.0


def test_perception_without_positions_reports_none():
    rules = NimRules(stones=10)
    perception = perceive_tactics(rules, rules.initial_state())
    assert perception.patterns == [TacticalPattern.NONE]


# =============================
# Behaviors
# =============================


def test_proactive_takes_the_opportunity():
    rules = TicTacToeRules()
    state = _ttt(RACE_BOARD)
    decision = proactive_move(rules, state, perceive_tactics(rules, state))

    assert decision.position == 2
    assert decision.behavior == Behavior.PROACTIVE
    assert decision.score == 10
    assert not decision.stochastic


def test_proactive_prefers_center_then_corners():
    rules = TicTacToeRules()
    state = rules.initial_state()
    assert proactive_move(rules, state, perceive_tactics(rules, state)).position == 4

    state = _ttt([0, 0, 0, 0, 2, 0, 0, 0, 0])
    assert proactive_move(rules, state, perceive_tactics(rules, state)).position == 0


def test_reactive_blocks_under_high_urgency():
    rules = TicTacToeRules()
    state = _ttt(DOUBLE_THREAT_BOARD)
    decision = reactive_move(rules, state, perceive_tactics(rules, state), random.Random(0))

    assert decision.position == 2
    assert not decision.stochastic


def test_reactive_plays_randomly_under_low_urgency():
    rules = TicTacToeRules()
    state = _ttt(RACE_BOARD)
    perception = perceive_tactics(rules, state)
    decision = reactive_move(rules, state, perception, random.Random(3))

    assert decision.stochastic
    assert decision.position in perception.legal_moves


def test_monte_carlo_cost_and_immediate_win():
    rules = TicTacToeRules()
    decision = monte_carlo_move(rules, _ttt(RACE_BOARD), random.Random(7), samples=6, depth_cap=9)

    assert decision.position == 2
    assert decision.score == 1.0
    assert decision.search_nodes == 5 * 6
    assert decision.stochastic


def test_monte_carlo_is_reproducible_with_a_seed():
    rules = TicTacToeRules()
    state = rules.initial_state()
    first = monte_carlo_move(rules, state, random.Random(11), samples=4)
    second = monte_carlo_move(rules, state, random.Random(11), samples=4)
    assert first.position == second.position
    assert first.score == second.score


# =============================
# Game rounds
# =============================


def test_game_round_records_move_and_waiting_opponent():
    space = _game_space(DOUBLE_THREAT_BOARD, "reactive")
    round_ = run_game_round(space)

    move, waiting = round_.actions
    assert move.action_type == ActionType.MOVE
    assert move.agent_id == "player_1"
    assert move.data["position"] == 2
    assert move.data["behavior"] == "reactive"
    assert "threat" in move.data["patterns"]
    assert move.data["urgency"] == 1.0
    assert waiting.action_type == ActionType.NONE
    assert waiting.agent_id == "player_2"
    assert round_.metrics.convergence_ratio == 0.5

    assert space.game.state.current_player == 2
    assert len(space.game.tactical_history) == 1
    assert len(space.game.will_history) == 1


def test_game_round_emits_agent_events():
    space = _game_space(RACE_BOARD, "proactive")
    topics = []
    space.event_bus.on("agent", lambda event: topics.append(event.topic))

    run_game_round(space)

    assert topics == ["agent:perceive", "agent:decide", "agent:act"]
    assert space.solved
    assert space.game.state.winner == 1


def test_contemplative_search_cost_is_accumulated(monkeypatch):
    monkeypatch.setattr(Config, "MONTE_CARLO_SAMPLES", 3)
    space = _game_space(None, "contemplative", seed=5)
    round_ = run_game_round(space)

    assert round_.actions[0].data["search_nodes"] == 9 * 3
    assert round_.actions[0].data["stochastic"] is True
    assert space.game.search_nodes == 27


def test_missing_player_agent_aborts_the_round():
    space = _game_space(None, "minimax")
    space.registry = AgentRegistry()

    with pytest.raises(AgentNotFoundError):
        run_game_round(space)


def test_debug_decisions_flag_prints(monkeypatch):
    monkeypatch.setenv("DEBUG_DECISIONS", "1")
    space = _game_space(RACE_BOARD, "proactive")
    buffer = io.StringIO()
    with contextlib.redirect_stdout(buffer):
        run_game_round(space)
    assert "[DEBUG_DECISIONS] player_1" in buffer.getvalue()
