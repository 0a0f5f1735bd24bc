"""Tic-tac-toe on a 3×3 board stored row-major (0 empty, 1 = X, 2 = O)."""

from typing import List, Optional

from .base import GameMove, GameRules, GameState, GameStatus, opponent_of

LINES = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),             # diagonals
)
SYMBOLS = (".", "X", "O")


class TicTacToeRules(GameRules):
    name = "tic_tac_toe"
    center_position = 4
    corner_positions = (0, 2, 6, 8)

    def initial_board(self) -> List[int]:
        return [0] * 9

    def get_legal_moves(self, state: GameState) -> List[int]:
        if state.is_over:
            return []
        return [i for i, cell in enumerate(state.board) if cell == 0]

    def apply_move(self, state: GameState, position: int) -> GameState:
        self._require_legal(state, position)
        player = state.current_player
        board = list(state.board)
        board[position] = player
        move = GameMove(
            player=player,
            position=position,
            label=f"{SYMBOLS[player]} at ({position // 3},{position % 3})",
        )
        new_state = state.model_copy(
            update={
                "board": board,
                "current_player": opponent_of(player),
                "move_history": state.move_history + [move],
                "status": GameStatus.PLAYING,
                "winner": None,
                "turn_count": state.turn_count + 1,
            }
        )
        winner = self.check_win(new_state)
        if winner is not None:
            new_state.status = GameStatus.WIN
            new_state.winner = winner
        elif self.check_draw(new_state):
            new_state.status = GameStatus.DRAW
        return new_state

    def check_win(self, state: GameState) -> Optional[int]:
        board = state.board
        for a, b, c in LINES:
            if board[a] and board[a] == board[b] == board[c]:
                return board[a]
        return None

    def check_draw(self, state: GameState) -> bool:
        return self.check_win(state) is None and all(cell != 0 for cell in state.board)

    def evaluate(self, state: GameState, player: int) -> float:
        winner = self.check_win(state)
        if winner == player:
            return 10
        if winner is not None:
            return -10
        if self.check_draw(state):
            return 0
        # Positional heuristic: center is worth 3, each corner 1.
        score = 3 if state.board[self.center_position] == player else 0
        score += sum(1 for corner in self.corner_positions if state.board[corner] == player)
        return score

    def format_board(self, state: GameState) -> str:
        rows = []
        for r in range(3):
            rows.append(" ".join(SYMBOLS[cell] for cell in state.board[r * 3:r * 3 + 3]))
        return "\n".join(rows)
