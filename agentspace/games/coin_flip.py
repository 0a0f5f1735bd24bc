"""Coin-flip guessing: players alternate calling the toss, the better caller after ten turns wins.

Board layout is ``[player 1 hits, player 2 hits, last toss]`` with ``-1`` before
the first toss. Tosses come from a seeded generator keyed on the turn number, so
``apply_move`` stays a pure function of the state.
"""

import random
from typing import List, Optional

from .base import GameMove, GameRules, GameState, GameStatus, opponent_of

HEADS, TAILS = 0, 1
SIDES = ("heads", "tails")
TOTAL_TURNS = 10


class CoinFlipRules(GameRules):
    name = "coin_flip"

    def __init__(self, seed: int = 0) -> None:
        self.seed = seed

    def toss(self, turn: int) -> int:
        """Side the coin lands on for ``turn``."""
        return TAILS if random.Random(f"{self.seed}:{turn}").random() > 0.5 else HEADS

    def initial_board(self) -> List[int]:
        return [0, 0, -1]

    def get_legal_moves(self, state: GameState) -> List[int]:
        if state.is_over:
            return []
        return [HEADS, TAILS]

    def apply_move(self, state: GameState, position: int) -> GameState:
        self._require_legal(state, position)
        player = state.current_player
        landed = self.toss(state.turn_count)
        hit = position == landed
        board = list(state.board)
        if hit:
            board[player - 1] += 1
        board[2] = landed
        move = GameMove(
            player=player,
            position=position,
            label=f"Player {player} called {SIDES[position]}, got {SIDES[landed]} ({'hit' if hit else 'miss'})",
        )
        new_state = state.model_copy(
            update={
                "board": board,
                "current_player": opponent_of(player),
                "move_history": state.move_history + [move],
                "turn_count": state.turn_count + 1,
            }
        )
        if new_state.turn_count >= TOTAL_TURNS:
            first, second = board[0], board[1]
            if first == second:
                new_state.status = GameStatus.DRAW
            else:
                new_state.status = GameStatus.WIN
                new_state.winner = 1 if first > second else 2
        return new_state

    def check_win(self, state: GameState) -> Optional[int]:
        return state.winner

    def check_draw(self, state: GameState) -> bool:
        return state.status == GameStatus.DRAW

    def evaluate(self, state: GameState, player: int) -> float:
        return state.board[player - 1] - state.board[opponent_of(player) - 1]

    def format_board(self, state: GameState) -> str:
        return f"P1: {state.board[0]} | P2: {state.board[1]} | Turn: {state.turn_count}/{TOTAL_TURNS}"
