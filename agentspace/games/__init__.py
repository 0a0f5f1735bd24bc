"""Game rules, game definitions and move search."""

from typing import Callable, Dict, List, Optional

from .base import (
    GameMove,
    GameRules,
    GameSpace,
    GameState,
    GameStatus,
    IllegalMoveError,
    opponent_of,
)
from .coin_flip import CoinFlipRules
from .nim import NimRules
from .rock_paper_scissors import RockPaperScissorsRules
from .search import SearchResult, minimax, select_best_move
from .tic_tac_toe import TicTacToeRules

GAME_REGISTRY: Dict[str, Callable[..., GameRules]] = {
    "tic_tac_toe": TicTacToeRules,
    "ttt": TicTacToeRules,
    "nim": NimRules,
    "coin_flip": CoinFlipRules,
    "rock_paper_scissors": RockPaperScissorsRules,
    "rps": RockPaperScissorsRules,
}


def create_game_space(
    name: str,
    *,
    board: Optional[List[int]] = None,
    stones: Optional[int] = None,
    seed: Optional[int] = None,
    strategy: str = "minimax",
    max_depth: int = 9,
) -> GameSpace:
    """Build a fresh game with player 1 to move.

    Args:
        name: Registry name (``tic_tac_toe``/``ttt``, ``nim``, ``coin_flip``,
            ``rock_paper_scissors``/``rps``).
        board: Optional starting board overriding the game's default.
        stones: Starting heap for nim.
        seed: Toss seed for coin_flip.
    """
    factory = GAME_REGISTRY.get(name)
    if factory is None:
        known = ", ".join(sorted(GAME_REGISTRY))
        raise ValueError(f"Unknown game '{name}' (available: {known})")
    if factory is NimRules and stones:
        rules = factory(stones)
    elif factory is CoinFlipRules and seed is not None:
        rules = factory(seed)
    else:
        rules = factory()
    state = rules.initial_state()
    if board is not None:
        state.board = list(board)
    return GameSpace(state=state, rules=rules, strategy=strategy, max_depth=max_depth)


__all__ = [
    "GAME_REGISTRY",
    "CoinFlipRules",
    "GameMove",
    "GameRules",
    "GameSpace",
    "GameState",
    "GameStatus",
    "IllegalMoveError",
    "NimRules",
    "RockPaperScissorsRules",
    "SearchResult",
    "TicTacToeRules",
    "create_game_space",
    "minimax",
    "opponent_of",
    "select_best_move",
]
