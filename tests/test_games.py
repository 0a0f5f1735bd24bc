"""Tests for the game rules and move search."""

import random

import pytest

from agentspace.games import (
    CoinFlipRules,
    GameSpace,
    GameState,
    GameStatus,
    IllegalMoveError,
    NimRules,
    RockPaperScissorsRules,
    TicTacToeRules,
    create_game_space,
    select_best_move,
)
from agentspace.games.rock_paper_scissors import PAPER, ROCK, SCISSORS, beats


def _ttt(board, player=1):
    return GameState(board=list(board), current_player=player)


# X at 0 and 1, O at 3 and 4: X wins at 2, O threatens 5.
RACE_BOARD = [1, 1, 0, 2, 2, 0, 0, 0, 0]
# X at 0 and 8, O at 3 and 4: X must block at 5.
BLOCK_BOARD = [1, 0, 0, 2, 2, 0, 0, 0, 1]


# =============================
# Tic-tac-toe
# =============================


def test_apply_move_returns_new_state():
    rules = TicTacToeRules()
    state = rules.initial_state()
    after = rules.apply_move(state, 4)

    assert state.board == [0] * 9
    assert after.board[4] == 1
    assert after.current_player == 2
    assert after.turn_count == 1
    assert after.move_history[-1].label == "X at (1,1)"


def test_win_and_draw_detection():
    rules = TicTacToeRules()
    won = rules.apply_move(_ttt(RACE_BOARD), 2)
    assert won.status == GameStatus.WIN
    assert won.winner == 1
    assert won.is_over

    drawn = rules.apply_move(_ttt([1, 2, 1, 1, 2, 2, 2, 1, 0]), 8)
    assert drawn.status == GameStatus.DRAW
    assert drawn.winner is None


def test_illegal_moves_raise():
    rules = TicTacToeRules()
    with pytest.raises(IllegalMoveError) as excinfo:
        rules.apply_move(_ttt(RACE_BOARD), 0)
    assert excinfo.value.position == 0
    assert 2 in excinfo.value.legal_moves

    finished = rules.apply_move(_ttt(RACE_BOARD), 2)
    with pytest.raises(ValueError):
        rules.apply_move(finished, 5)
    assert rules.get_legal_moves(finished) == []


def test_evaluate_prefers_center_and_corners():
    rules = TicTacToeRules()
    assert rules.evaluate(_ttt([0, 0, 0, 0, 1, 0, 0, 0, 0]), 1) == 3
    assert rules.evaluate(_ttt([1, 0, 1, 0, 0, 0, 0, 0, 0]), 1) == 2
    won = rules.apply_move(_ttt(RACE_BOARD), 2)
    assert rules.evaluate(won, 1) == 10
    assert rules.evaluate(won, 2) == -10


# =============================
# Nim
# =============================


def test_nim_taking_the_last_stone_loses():
    rules = NimRules(stones=3)
    state = rules.initial_state()
    assert rules.get_legal_moves(state) == [1, 2, 3]

    after = rules.apply_move(state, 3)
    assert after.status == GameStatus.WIN
    assert after.winner == 2
    assert "0 left" in after.move_history[-1].label


def test_nim_limits_moves_to_remaining_stones():
    rules = NimRules(stones=2)
    assert rules.get_legal_moves(rules.initial_state()) == [1, 2]
    with pytest.raises(IllegalMoveError):
        rules.apply_move(rules.initial_state(), 3)


def test_nim_evaluate_uses_losing_positions():
    rules = NimRules()
    # Five stones with player 1 to move is a lost position for player 1.
    state = GameState(board=[5], current_player=1)
    assert rules.evaluate(state, 1) == -5
    assert rules.evaluate(state, 2) == 5


# =============================
# Coin flip
# =============================


def _coin_game(rules, calls):
    """Play ``calls`` as (player 1, player 2) strategies: True calls the toss right."""
    state = rules.initial_state()
    while not state.is_over:
        landed = rules.toss(state.turn_count)
        right = calls[state.current_player - 1]
        state = rules.apply_move(state, landed if right else 1 - landed)
    return state


def test_coin_flip_scores_only_correct_calls():
    rules = CoinFlipRules(seed=3)
    state = rules.initial_state()
    landed = rules.toss(0)

    hit = rules.apply_move(state, landed)
    miss = rules.apply_move(state, 1 - landed)

    assert state.board == [0, 0, -1]
    assert hit.board == [1, 0, landed]
    assert miss.board == [0, 0, landed]
    assert hit.current_player == 2
    assert "(hit)" in hit.move_history[-1].label
    assert "(miss)" in miss.move_history[-1].label


def test_coin_flip_tosses_are_reproducible():
    tosses = [CoinFlipRules(seed=3).toss(turn) for turn in range(10)]
    assert tosses == [CoinFlipRules(seed=3).toss(turn) for turn in range(10)]
    assert set(tosses) <= {0, 1}


def test_coin_flip_ends_after_ten_turns():
    rules = CoinFlipRules(seed=5)

    won = _coin_game(rules, (True, False))
    assert won.turn_count == 10
    assert won.status == GameStatus.WIN
    assert won.winner == 1
    assert won.board[:2] == [5, 0]
    assert rules.get_legal_moves(won) == []
    with pytest.raises(IllegalMoveError):
        rules.apply_move(won, 0)

    drawn = _coin_game(rules, (True, True))
    assert drawn.status == GameStatus.DRAW
    assert rules.check_draw(drawn)
    assert rules.evaluate(drawn, 1) == 0


# =============================
# Rock-paper-scissors
# =============================


def test_beats_is_cyclic():
    assert beats(PAPER, ROCK)
    assert beats(SCISSORS, PAPER)
    assert beats(ROCK, SCISSORS)
    assert not beats(ROCK, PAPER)
    assert not beats(ROCK, ROCK)


def test_rps_opening_throw_waits_for_the_answer():
    rules = RockPaperScissorsRules()
    opened = rules.apply_move(rules.initial_state(), ROCK)

    assert opened.board == [0, 0, ROCK]
    assert opened.current_player == 2

    answered = rules.apply_move(opened, PAPER)
    assert answered.board == [0, 1, -1]
    assert answered.current_player == 1
    assert answered.move_history[-1].label == "Player 2 throws Paper"
    assert rules.evaluate(answered, 2) == 1


def test_rps_ends_after_five_rounds():
    rules = RockPaperScissorsRules()
    state = rules.initial_state()
    for _ in range(5):
        state = rules.apply_move(state, ROCK)
        assert not state.is_over
        state = rules.apply_move(state, SCISSORS)

    assert state.status == GameStatus.WIN
    assert state.winner == 1
    assert state.board == [5, 0, -1]
    assert "Round: 5/5" in rules.format_board(state)

    tied = rules.initial_state()
    for _ in range(5):
        tied = rules.apply_move(rules.apply_move(tied, PAPER), PAPER)
    assert tied.status == GameStatus.DRAW
    assert tied.winner is None


# =============================
# Search
# =============================


def test_minimax_takes_the_win():
    game = GameSpace(state=_ttt(RACE_BOARD), rules=TicTacToeRules())
    result = select_best_move(game)
    assert result.move == 2
    assert result.score == 10
    assert result.search_nodes > 0


def test_minimax_blocks_a_threat():
    game = GameSpace(state=_ttt(BLOCK_BOARD), rules=TicTacToeRules())
    assert select_best_move(game).move == 5


def test_minimax_leaves_nim_on_a_losing_count():
    game = GameSpace(state=NimRules(stones=10).initial_state(), rules=NimRules(stones=10))
    # 10 - 1 leaves 9 stones, which is 1 (mod 4).
    assert select_best_move(game).move == 1


def test_greedy_and_defensive_strategies():
    rules = TicTacToeRules()
    greedy = select_best_move(GameSpace(state=_ttt(RACE_BOARD), rules=rules, strategy="greedy"))
    defensive = select_best_move(GameSpace(state=_ttt(RACE_BOARD), rules=rules, strategy="defensive"))

    assert greedy.move == 2
    assert greedy.search_nodes == 5
    assert defensive.move == 2


def test_random_strategy_is_reproducible_with_a_seed():
    rules = TicTacToeRules()
    picks = [
        select_best_move(
            GameSpace(state=rules.initial_state(), rules=rules, strategy="random"),
            rng=random.Random(42),
        ).move
        for _ in range(2)
    ]
    assert picks[0] == picks[1]
    assert picks[0] in range(9)


def test_no_legal_moves_reports_minus_one():
    rules = TicTacToeRules()
    finished = rules.apply_move(_ttt(RACE_BOARD), 2)
    result = select_best_move(GameSpace(state=finished, rules=rules))
    assert result.move == -1
    assert result.search_nodes == 0


# =============================
# Registry
# =============================


def test_create_game_space_by_name():
    ttt = create_game_space("ttt")
    nim = create_game_space("nim", stones=7, strategy="greedy", max_depth=4)

    assert ttt.name == "tic_tac_toe"
    assert ttt.state.board == [0] * 9
    assert nim.state.board == [7]
    assert nim.strategy == "greedy"
    assert nim.max_depth == 4


def test_create_game_space_with_custom_board():
    game = create_game_space("tic_tac_toe", board=RACE_BOARD)
    assert game.state.board == RACE_BOARD
    assert game.state.current_player == 1


def test_unknown_game_is_rejected():
    with pytest.raises(ValueError) as excinfo:
        create_game_space("chess")
    assert "tic_tac_toe" in str(excinfo.value)


def test_create_scoring_games_by_name():
    coin = create_game_space("coin_flip", seed=7)
    rps = create_game_space("rps")

    assert coin.name == "coin_flip"
    assert coin.rules.seed == 7
    assert coin.state.board == [0, 0, -1]
    assert create_game_space("coin_flip").rules.seed == 0
    assert rps.name == "rock_paper_scissors"
    assert create_game_space("rock_paper_scissors").rules.get_legal_moves(rps.state) == [0, 1, 2]
