"""
Round/run controller.

Mode-agnostic driver over an ``AgentSpace``:

1. ``run_round`` dispatches to the puzzle or game engine by the space's kind
2. ``run`` repeats rounds until the space is solved, the convergence threshold
   is met, or the round budget runs out, applying the stagnation policy for
   puzzles (two consecutive zero-action rounds trigger backtracking)

All dependencies are passed in; nothing is read from disk. Console output is
opt-in (``verbose``) and colour-tagged by operation kind.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from .analysis import AgentSpaceResult, build_result
from .config import Config
from .decision import run_game_round
from .logging_utils import (
    LOG_TAG_DETERMINISTIC,
    LOG_TAG_ERROR,
    LOG_TAG_INFO,
    LOG_TAG_STOCHASTIC,
    LOG_TAG_SUCCESS,
    log_deterministic,
    log_error,
    log_info,
    log_stochastic,
    log_success,
)
from .propagation import backtrack, run_puzzle_round
from .schemas import ActionType, AgentSpaceRound, SpaceKind
from .space import AgentSpace, format_board

# Consecutive zero-action puzzle rounds before backtracking is attempted.
STAGNATION_BACKTRACK_AT = 2
# Puzzle runs that meet the threshold stop only past this many stagnant rounds.
STAGNATION_STOP_AFTER = 3

RoundListener = Callable[[AgentSpace, AgentSpaceRound], None]


def run_round(space: AgentSpace) -> AgentSpaceRound:
    """Execute exactly one round. Both modes return the same record shape."""
    if space.kind == SpaceKind.PUZZLE:
        return run_puzzle_round(space)
    if space.kind == SpaceKind.GAME:
        return run_game_round(space)
    raise ValueError(f"Unknown space kind: {space.kind}")


class Orchestrator:
    """Drives an AgentSpace round by round.

    Args:
        space: Space to run (mutated in place).
        max_rounds: Round budget (defaults to ``Config.DEFAULT_MAX_ROUNDS``).
        convergence_threshold: Ratio at which a run may stop
            (defaults to ``Config.DEFAULT_CONVERGENCE_THRESHOLD``).
        round_listeners: Callables invoked after each round with
            ``(space, round)``. Listener failures are logged, not raised.
        verbose: Print a header and per-round summaries.
    """

    def __init__(
        self,
        space: AgentSpace,
        *,
        max_rounds: Optional[int] = None,
        convergence_threshold: Optional[float] = None,
        round_listeners: Optional[List[RoundListener]] = None,
        verbose: Optional[bool] = None,
    ) -> None:
        self.space = space
        self.max_rounds = Config.DEFAULT_MAX_ROUNDS if max_rounds is None else max_rounds
        self.convergence_threshold = (
            Config.DEFAULT_CONVERGENCE_THRESHOLD
            if convergence_threshold is None
            else convergence_threshold
        )
        self.round_listeners = round_listeners or []
        self.verbose = Config.VERBOSE if verbose is None else verbose

    def run_round(self) -> AgentSpaceRound:
        round_ = run_round(self.space)
        if self.verbose:
            self._print_round_summary(round_)
        # Listener failures are logged but don't stop the run.
        for listener in self.round_listeners:
            try:
                listener(self.space, round_)
            except Exception as exc:  # pragma: no cover - diagnostic hook
                log_error(f"  {LOG_TAG_ERROR} [Analysis] Listener failed: {exc}")
        return round_

    def run(self) -> AgentSpaceResult:
        """Run until solved, converged, or out of budget.

        Running out of budget is not an error: the result simply reports
        ``solved=False``.
        """
        space = self.space
        if self.verbose:
            print(f"Starting {space.kind.value} run")
            print(f"Agents: {len(space.agent_ids)}, Max rounds: {self.max_rounds}\n")

        stagnant = 0
        # A failed search restores the exact same state, so it is not repeated
        # until some round makes progress again.
        search_exhausted = False

        for _ in range(self.max_rounds):
            round_ = self.run_round()
            if space.solved:
                break

            if space.kind == SpaceKind.PUZZLE:
                if round_.metrics.total_actions == 0:
                    stagnant += 1
                else:
                    stagnant = 0
                    search_exhausted = False

                if stagnant >= STAGNATION_BACKTRACK_AT and not search_exhausted:
                    if self._backtrack():
                        stagnant = 0
                        if space.solved:
                            break
                        continue
                    search_exhausted = True

            if round_.metrics.convergence_ratio >= self.convergence_threshold:
                if space.kind == SpaceKind.GAME:
                    break
                if stagnant > STAGNATION_STOP_AFTER:
                    break

        result = build_result(space)
        if self.verbose:
            self._print_result(result)
        return result

    def _backtrack(self) -> bool:
        space = self.space
        rounds_before = space.round_count
        if self.verbose:
            log_deterministic(f"  {LOG_TAG_DETERMINISTIC} [Backtrack] Propagation stalled, searching...")
        solved = backtrack(space)
        if self.verbose:
            if solved:
                added = space.round_count - rounds_before
                log_success(f"  {LOG_TAG_SUCCESS} [Backtrack] Search succeeded ({added} rounds)")
            else:
                log_error(f"  {LOG_TAG_ERROR} [Backtrack] Search exhausted")
        return solved

    def _print_round_summary(self, round_: AgentSpaceRound) -> None:
        metrics = round_.metrics
        header = (
            f"=== Round {round_.round_number} === actions={metrics.total_actions} "
            f"ratio={metrics.convergence_ratio:.2f}"
        )
        log_info(header)
        for action in round_.actions:
            if action.action_type == ActionType.NONE:
                continue
            if action.data.get("stochastic"):
                log_stochastic(f"  {LOG_TAG_STOCHASTIC} [{action.agent_id}] {action.detail}")
            else:
                log_deterministic(f"  {LOG_TAG_DETERMINISTIC} [{action.agent_id}] {action.detail}")

    def _print_result(self, result: AgentSpaceResult) -> None:
        print()
        print(format_board(self.space))
        if result.solved:
            log_success(f"{LOG_TAG_SUCCESS} Finished after {result.total_rounds} rounds")
        else:
            log_info(f"{LOG_TAG_INFO} Stopped unsolved after {result.total_rounds} rounds")


def run(
    space: AgentSpace,
    max_rounds: int = 100,
    convergence_threshold: float = 1.0,
) -> AgentSpaceResult:
    """Run ``space`` to completion with the given budget and threshold."""
    return Orchestrator(
        space,
        max_rounds=max_rounds,
        convergence_threshold=convergence_threshold,
    ).run()
