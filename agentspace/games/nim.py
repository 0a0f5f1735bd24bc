"""Misère nim: one heap, take 1 to 3 stones, whoever takes the last stone loses."""

from typing import List, Optional

from .base import GameMove, GameRules, GameState, GameStatus, opponent_of

DEFAULT_STONES = 10
MAX_TAKE = 3


class NimRules(GameRules):
    name = "nim"

    def __init__(self, stones: int = DEFAULT_STONES) -> None:
        if stones < 1:
            raise ValueError("Nim needs at least one stone")
        self.stones = stones

    def initial_board(self) -> List[int]:
        return [self.stones]

    def get_legal_moves(self, state: GameState) -> List[int]:
        if state.is_over:
            return []
        return list(range(1, min(MAX_TAKE, state.board[0]) + 1))

    def apply_move(self, state: GameState, position: int) -> GameState:
        self._require_legal(state, position)
        player = state.current_player
        remaining = state.board[0] - position
        move = GameMove(
            player=player,
            position=position,
            label=f"Player {player} takes {position} ({remaining} left)",
        )
        new_state = state.model_copy(
            update={
                "board": [remaining],
                "current_player": opponent_of(player),
                "move_history": state.move_history + [move],
                "turn_count": state.turn_count + 1,
            }
        )
        if remaining <= 0:
            new_state.status = GameStatus.WIN
            new_state.winner = opponent_of(player)
        return new_state

    def check_win(self, state: GameState) -> Optional[int]:
        return state.winner

    def check_draw(self, state: GameState) -> bool:
        return False

    def evaluate(self, state: GameState, player: int) -> float:
        if state.winner == player:
            return 10
        if state.winner is not None:
            return -10
        # Positions with stones ≡ 1 (mod 4) lose for the player to move.
        losing_to_move = (state.board[0] - 1) % 4 == 0
        if state.current_player == player:
            return -5 if losing_to_move else 5
        return 5 if losing_to_move else -5

    def format_board(self, state: GameState) -> str:
        stones = state.board[0]
        shown = max(self.stones, stones)
        return f"Stones: {'●' * stones}{'○' * (shown - stones)} ({stones} remaining)"
