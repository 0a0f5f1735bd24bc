"""
Move search over any ``GameRules``.

``select_best_move`` is the single entry point. Strategy labels:

- ``random``: uniform choice among legal moves
- ``greedy``: best immediate evaluation for the player to move
- ``defensive``: worst immediate evaluation for the opponent
- anything else: alpha-beta minimax to ``game.max_depth`` plies

Ties always go to the first move in legal-move order, which keeps every
strategy except ``random`` deterministic.
"""

from __future__ import annotations

import math
import random
from typing import Optional

from pydantic import BaseModel, Field

from .base import GameRules, GameSpace, GameState, opponent_of


class SearchResult(BaseModel):
    move: int = Field(..., description="Chosen position, -1 when no legal move exists")
    score: float = 0.0
    search_nodes: int = Field(0, ge=0)


def minimax(
    state: GameState,
    rules: GameRules,
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    player: int,
    counter: list,
) -> float:
    """Alpha-beta minimax value of ``state`` for ``player``.

    ``counter`` is a one-element list incremented once per visited node.
    """
    counter[0] += 1
    if rules.check_win(state) is not None or rules.check_draw(state) or depth <= 0:
        return rules.evaluate(state, player)

    moves = rules.get_legal_moves(state)
    if not moves:
        return rules.evaluate(state, player)

    if maximizing:
        best = -math.inf
        for move in moves:
            value = minimax(rules.apply_move(state, move), rules, depth - 1, alpha, beta, False, player, counter)
            best = max(best, value)
            alpha = max(alpha, value)
            if beta <= alpha:
                break
        return best

    best = math.inf
    for move in moves:
        value = minimax(rules.apply_move(state, move), rules, depth - 1, alpha, beta, True, player, counter)
        best = min(best, value)
        beta = min(beta, value)
        if beta <= alpha:
            break
    return best


def select_best_move(game: GameSpace, rng: Optional[random.Random] = None) -> SearchResult:
    """Choose a move for the player to move in ``game.state``."""
    state, rules = game.state, game.rules
    moves = rules.get_legal_moves(state)
    if not moves:
        return SearchResult(move=-1, score=0.0, search_nodes=0)

    player = state.current_player

    if game.strategy == "random":
        chooser = rng or random
        return SearchResult(move=chooser.choice(moves), score=0.0, search_nodes=1)

    if game.strategy in ("greedy", "defensive"):
        best_move, best_score = moves[0], -math.inf
        for move in moves:
            after = rules.apply_move(state, move)
            if game.strategy == "greedy":
                score = rules.evaluate(after, player)
            else:
                score = -rules.evaluate(after, opponent_of(player))
            if score > best_score:
                best_move, best_score = move, score
        return SearchResult(move=best_move, score=best_score, search_nodes=len(moves))

    counter = [0]
    best_move, best_score = moves[0], -math.inf
    for move in moves:
        after = rules.apply_move(state, move)
        # The best root score so far is a valid lower bound for later siblings;
        # a sibling that cannot beat it fails low and keeps the earlier move.
        score = minimax(after, rules, game.max_depth - 1, best_score, math.inf, False, player, counter)
        if score > best_score:
            best_move, best_score = move, score
    return SearchResult(move=best_move, score=best_score, search_nodes=counter[0])
