"""Rock-paper-scissors over five rounds.

Board layout is ``[player 1 wins, player 2 wins, pending throw]``. The opening
throw of a round waits in the third slot (``-1`` when empty) until the other
player answers, so the answering player moves with that throw in view.
"""

from typing import List, Optional

from .base import GameMove, GameRules, GameState, GameStatus, opponent_of

ROCK, PAPER, SCISSORS = 0, 1, 2
THROWS = ("Rock", "Paper", "Scissors")
TOTAL_ROUNDS = 5


def beats(throw: int, other: int) -> bool:
    """True when ``throw`` wins against ``other``."""
    return throw == (other + 1) % 3


class RockPaperScissorsRules(GameRules):
    name = "rock_paper_scissors"

    def initial_board(self) -> List[int]:
        return [0, 0, -1]

    def get_legal_moves(self, state: GameState) -> List[int]:
        if state.is_over:
            return []
        return [ROCK, PAPER, SCISSORS]

    def apply_move(self, state: GameState, position: int) -> GameState:
        self._require_legal(state, position)
        player = state.current_player
        move = GameMove(player=player, position=position, label=f"Player {player} throws {THROWS[position]}")
        update = {
            "current_player": opponent_of(player),
            "move_history": state.move_history + [move],
            "turn_count": state.turn_count + 1,
        }
        pending = state.board[2]
        if pending < 0:
            update["board"] = [state.board[0], state.board[1], position]
            return state.model_copy(update=update)

        board = [state.board[0], state.board[1], -1]
        if beats(position, pending):
            board[player - 1] += 1
        elif beats(pending, position):
            board[opponent_of(player) - 1] += 1
        update["board"] = board
        new_state = state.model_copy(update=update)

        if self.round_number(state) >= TOTAL_ROUNDS:
            if board[0] == board[1]:
                new_state.status = GameStatus.DRAW
            else:
                new_state.status = GameStatus.WIN
                new_state.winner = 1 if board[0] > board[1] else 2
        return new_state

    @staticmethod
    def round_number(state: GameState) -> int:
        return state.turn_count // 2 + 1

    def check_win(self, state: GameState) -> Optional[int]:
        return state.winner

    def check_draw(self, state: GameState) -> bool:
        return state.status == GameStatus.DRAW

    def evaluate(self, state: GameState, player: int) -> float:
        return state.board[player - 1] - state.board[opponent_of(player) - 1]

    def format_board(self, state: GameState) -> str:
        shown = min(self.round_number(state), TOTAL_ROUNDS)
        return f"P1: {state.board[0]} | P2: {state.board[1]} | Round: {shown}/{TOTAL_ROUNDS}"
