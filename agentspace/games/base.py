"""
GameRules interface for two-player, turn-based games.

Rules are pure: ``apply_move`` returns a new ``GameState`` and never mutates
its input, so the decision engine can simulate threats, opportunities and
playouts against the live state without copying it first.

Subclasses implement move generation, move application, terminal detection,
a heuristic evaluation from a given player's perspective, and a text rendering.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class IllegalMoveError(ValueError):
    """Raised by ``GameRules.apply_move`` for a move that is not legal in the state."""

    def __init__(self, *, rules: str, position: int, legal_moves: List[int], status: str) -> None:
        self.rules = rules
        self.position = position
        self.legal_moves = legal_moves
        if status != GameStatus.PLAYING.value:
            reason = f"the game is already over ({status})"
        else:
            reason = f"legal moves are {legal_moves}"
        super().__init__(f"Illegal move {position} in {rules}: {reason}")


class GameStatus(str, Enum):
    PLAYING = "playing"
    WIN = "win"
    DRAW = "draw"


class GameMove(BaseModel):
    """A move already played."""

    player: int
    position: int
    label: str = ""


class GameState(BaseModel):
    """Snapshot of a game between player 1 and player 2."""

    board: List[int] = Field(..., description="Game-specific board encoding")
    current_player: int = Field(1, description="Player to move (1 or 2)")
    move_history: List[GameMove] = Field(default_factory=list)
    status: GameStatus = GameStatus.PLAYING
    winner: Optional[int] = None
    turn_count: int = 0

    @property
    def is_over(self) -> bool:
        return self.status != GameStatus.PLAYING

    @property
    def opponent(self) -> int:
        return opponent_of(self.current_player)


def opponent_of(player: int) -> int:
    return 2 if player == 1 else 1


class GameRules(ABC):
    """Abstract base class for the rules of one game.

    Class attributes:
        name: Registry name of the game.
        center_position: Position perceived as the center, if the board has one.
        corner_positions: Positions perceived as corners.
    """

    name: str = "game"
    center_position: Optional[int] = None
    corner_positions: Tuple[int, ...] = ()

    @abstractmethod
    def initial_board(self) -> List[int]:
        """Board of a fresh game."""

    @abstractmethod
    def get_legal_moves(self, state: GameState) -> List[int]:
        """Positions the player to move may play, in a stable order."""

    @abstractmethod
    def apply_move(self, state: GameState, position: int) -> GameState:
        """Return the state after the current player plays ``position``.

        Raises:
            IllegalMoveError: if ``position`` is not legal in ``state``.
        """

    @abstractmethod
    def check_win(self, state: GameState) -> Optional[int]:
        """Winning player, or None."""

    @abstractmethod
    def check_draw(self, state: GameState) -> bool:
        """True when the game ended without a winner."""

    @abstractmethod
    def evaluate(self, state: GameState, player: int) -> float:
        """Heuristic value of ``state`` for ``player`` (positive is good)."""

    @abstractmethod
    def format_board(self, state: GameState) -> str:
        """Human-readable board."""

    def initial_state(self) -> GameState:
        return GameState(board=self.initial_board())

    def _require_legal(self, state: GameState, position: int) -> None:
        legal = self.get_legal_moves(state)
        if state.is_over or position not in legal:
            raise IllegalMoveError(
                rules=self.name,
                position=position,
                legal_moves=legal,
                status=state.status.value,
            )


@dataclass
class GameSpace:
    """A game definition plus search settings.

    Attributes:
        state: Current game state.
        rules: Rules handle.
        strategy: Move-selection label used by ``select_best_move``
            (``minimax``, ``random``, ``greedy`` or ``defensive``).
        max_depth: Minimax depth budget.
        search_nodes: Cumulative search cost.
    """

    state: GameState
    rules: GameRules
    strategy: str = "minimax"
    max_depth: int = 9
    search_nodes: int = 0

    @property
    def name(self) -> str:
        return self.rules.name
