"""Tests covering the run controller in both modes."""

import random

from agentspace.games import create_game_space
from agentspace.orchestrator import Orchestrator, run, run_round
from agentspace.puzzle import (
    ConstraintGroup,
    create_custom_puzzle_space,
    create_latin_square_space,
    create_sudoku_space,
    parse_grid,
)
from agentspace.schemas import ActionType
from agentspace.space import create_game_agent_space, create_puzzle_agent_space

AMBIGUOUS_4X4 = [
    [1, 2, 0, 0],
    [0, 0, 1, 2],
    [2, 1, 0, 0],
    [0, 0, 2, 1],
]

CLASSIC_9X9 = """
53..7....
6..195...
.98....6.
8...6...3
4..8.3..1
7...2...6
.6....28.
...419..5
....8..79
"""

CLASSIC_9X9_SOLUTION = [
    [5, 3, 4, 6, 7, 8, 9, 1, 2],
    [6, 7, 2, 1, 9, 5, 3, 4, 8],
    [1, 9, 8, 3, 4, 2, 5, 6, 7],
    [8, 5, 9, 7, 6, 1, 4, 2, 3],
    [4, 2, 6, 8, 5, 3, 7, 9, 1],
    [7, 1, 3, 9, 2, 4, 8, 5, 6],
    [9, 6, 1, 5, 3, 7, 2, 8, 4],
    [2, 8, 7, 4, 1, 9, 6, 3, 5],
    [3, 4, 5, 2, 8, 6, 1, 7, 9],
]


def _is_latin(grid):
    size = len(grid)
    expected = list(range(1, size + 1))
    return all(sorted(row) == expected for row in grid) and all(
        sorted(grid[r][c] for r in range(size)) == expected for c in range(size)
    )


def _ambiguous_space():
    return create_puzzle_agent_space(create_latin_square_space(AMBIGUOUS_4X4))


def _ttt_space(p1="minimax", p2="minimax", seed=0):
    return create_game_agent_space(create_game_space("tic_tac_toe"), p1, p2, rng=random.Random(seed))


# =============================
# Puzzle runs
# =============================


def test_ambiguous_puzzle_is_solved_by_backtracking():
    space = _ambiguous_space()
    result = run(space)

    assert result.solved
    assert result.converged
    assert _is_latin(result.grid)
    assert result.difficulty.level == "expert"
    assert result.difficulty.backtrack_count >= 1
    assert space.convergence_history[-1] == 1.0
    assert result.total_rounds == len(result.rounds) == len(space.convergence_history)


def test_every_round_has_one_action_per_cell():
    space = _ambiguous_space()
    result = run(space)
    assert len(space.agent_ids) == 16
    assert all(len(round_.actions) == 16 for round_ in result.rounds)
    assert [r.round_number for r in result.rounds] == list(range(1, result.total_rounds + 1))


def test_counters_never_decrease_across_backtracking():
    space = _ambiguous_space()
    samples = []
    space.event_bus.on(
        "space:round_end",
        lambda event: samples.append((space.puzzle.total_eliminations, space.puzzle.total_confirmations)),
    )

    run(space)

    assert len(samples) >= 3
    assert samples == sorted(samples)
    eliminations = [s[0] for s in samples]
    confirmations = [s[1] for s in samples]
    assert eliminations == sorted(eliminations)
    assert confirmations == sorted(confirmations)


def test_puzzle_solved_during_setup_needs_one_round():
    puzzle = create_sudoku_space(
        [
            [1, 2, 0, 0],
            [3, 4, 0, 0],
            [2, 0, 4, 0],
            [0, 3, 0, 2],
        ]
    )
    result = run(create_puzzle_agent_space(puzzle))

    assert result.solved
    assert result.total_rounds == 1
    assert result.rounds[0].metrics.convergence_ratio == 1.0
    assert result.difficulty.level == "easy"
    assert result.difficulty.score == 0
    assert result.total_confirmations == 0


def test_four_clue_sudoku_is_solved_by_propagation_rounds():
    puzzle = create_sudoku_space(
        [
            [1, 0, 0, 0],
            [0, 0, 0, 2],
            [0, 0, 4, 0],
            [0, 3, 0, 0],
        ]
    )
    # Setup leaves eight cells open; the first round confirms all of them.
    assert sum(not cell.confirmed for row in puzzle.cells for cell in row) == 8
    space = create_puzzle_agent_space(puzzle)
    result = run(space, max_rounds=100)

    assert result.solved
    assert 1 < result.total_rounds <= 100
    assert result.grid == [
        [1, 2, 3, 4],
        [3, 4, 1, 2],
        [2, 1, 4, 3],
        [4, 3, 2, 1],
    ]
    assert result.rounds[0].metrics.total_actions == 8
    assert result.total_confirmations == 8
    assert result.difficulty.backtrack_count == 0
    assert result.difficulty.layers_used == ["layer1_elimination"]
    assert space.convergence_history[-1] == 1.0
    assert result.rounds[-1].metrics.convergence_ratio == 1.0


def test_classic_sudoku_is_solved():
    space = create_puzzle_agent_space(create_sudoku_space(parse_grid(CLASSIC_9X9)))
    result = run(space)

    assert result.solved
    assert result.grid == CLASSIC_9X9_SOLUTION
    assert result.total_confirmations > 0
    # 27 groups of 9 cells, 36 pairs each.
    assert result.relation_summary.total_bindings == 972
    assert result.relation_summary.constraint_bindings["block"] == 324


def test_unsolvable_puzzle_stops_after_stagnation():
    clique = ConstraintGroup(cells=[(0, 0), (0, 1), (0, 2), (1, 0)], label="clique")
    puzzle = create_custom_puzzle_space(3, [[0] * 3 for _ in range(3)], [clique])
    space = create_puzzle_agent_space(puzzle)

    result = run(space, max_rounds=50)

    assert not result.solved
    assert result.total_rounds == 4
    assert result.difficulty.backtrack_count == 0
    assert result.grid == [[0] * 3 for _ in range(3)]


# =============================
# Game runs
# =============================


def test_minimax_self_play_draws():
    result = run(_ttt_space())

    assert result.solved
    assert result.winner is None
    assert result.total_rounds == 9
    assert 0 not in result.final_board
    assert len(result.move_history) == 9
    assert result.match_analysis.total_moves == 9


def test_minimax_self_play_is_deterministic():
    first = run(_ttt_space())
    second = run(_ttt_space())
    assert [m.position for m in first.move_history] == [m.position for m in second.move_history]


def test_nim_first_player_wins_with_minimax():
    space = create_game_agent_space(create_game_space("nim"), "minimax", "minimax")
    result = run(space)
    assert result.winner == 1
    assert result.final_board == [0]


def test_minimax_callers_split_the_coin_flips():
    space = create_game_agent_space(create_game_space("coin_flip", seed=11), "minimax", "minimax")
    result = run(space)

    assert result.solved
    assert result.winner is None
    assert result.final_board[:2] == [5, 5]
    assert len(result.move_history) == 10
    assert all("(hit)" in move.label for move in result.move_history)


def test_second_thrower_wins_rock_paper_scissors():
    space = create_game_agent_space(create_game_space("rps", max_depth=2), "minimax", "minimax")
    result = run(space)

    assert result.winner == 2
    assert result.final_board == [0, 5, -1]
    assert len(result.move_history) == 10
    assert result.match_analysis.game == "rock_paper_scissors"


def test_round_budget_exhaustion_is_not_an_error():
    result = run(_ttt_space(), max_rounds=3)

    assert not result.solved
    assert result.total_rounds == 3
    assert result.winner is None


def test_game_over_round_is_all_none():
    space = _ttt_space()
    run(space)
    board_before = list(space.game.state.board)

    round_ = run_round(space)

    assert all(action.action_type == ActionType.NONE for action in round_.actions)
    assert round_.metrics.convergence_ratio == 1.0
    assert space.game.state.board == board_before


def test_game_stops_at_convergence_threshold():
    result = run(_ttt_space(), convergence_threshold=0.5)
    assert result.total_rounds == 1


def test_round_listeners_receive_each_round():
    space = _ttt_space("proactive", "reactive", seed=4)
    seen = []

    def broken(space, round_):
        raise RuntimeError("listener failure")

    orchestrator = Orchestrator(
        space,
        max_rounds=4,
        round_listeners=[lambda s, r: seen.append(r.round_number), broken],
        verbose=False,
    )
    result = orchestrator.run()

    assert seen == list(range(1, result.total_rounds + 1))
