"""
Puzzle grid and constraint-group model.

A ``PuzzleSpace`` is the externally supplied definition a puzzle AgentSpace is
built from: an N×N grid of cells (value 0 = unconfirmed) and a list of
all-different constraint groups. The factories below also run one initial
propagation pass so that candidates never contain values given in the same group.

Confirmed cells carry an empty candidate list; every value a cell loses is kept
in its ``elimination_history`` so a backtracking checkpoint can restore it by
truncating the history.
"""

from __future__ import annotations

import math
import re
from typing import Iterable, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

GroupKind = Literal["row", "column", "block", "custom"]
Position = Tuple[int, int]


class EliminationEntry(BaseModel):
    """A candidate removed from a cell, and why."""

    candidate: int
    reason: str = Field(..., description="Technique or constraint that removed the candidate")
    source: Position = Field((-1, -1), description="Cell that caused the removal ((-1, -1) for setup)")
    step: int = Field(0, description="Round number of the removal (0 = setup)")


class PuzzleCell(BaseModel):
    """One grid cell. Used both in the puzzle definition and as a cell agent's payload."""

    row: int
    col: int
    value: int = Field(0, ge=0, description="Confirmed value, 0 while unconfirmed")
    candidates: List[int] = Field(default_factory=list)
    fixed: bool = Field(False, description="True for values given by the puzzle")
    elimination_history: List[EliminationEntry] = Field(default_factory=list)

    @property
    def position(self) -> Position:
        return (self.row, self.col)

    @property
    def confirmed(self) -> bool:
        return self.value > 0

    def confirm(self, value: int) -> None:
        self.value = value
        self.candidates = []


class ConstraintGroup(BaseModel):
    """Cells that must hold pairwise distinct values."""

    kind: GroupKind = "custom"
    cells: List[Position]
    label: str = ""


class PuzzleSpace(BaseModel):
    """Complete puzzle definition consumed by ``create_puzzle_agent_space``."""

    puzzle_type: str = Field(..., description="sudoku, latin_square or custom")
    size: int = Field(..., ge=1)
    cells: List[List[PuzzleCell]]
    constraints: List[ConstraintGroup]

    def cell(self, row: int, col: int) -> PuzzleCell:
        return self.cells[row][col]


# =============================
# Constraint builders
# =============================


def row_groups(size: int) -> List[ConstraintGroup]:
    return [
        ConstraintGroup(kind="row", cells=[(r, c) for c in range(size)], label=f"row {r}")
        for r in range(size)
    ]


def column_groups(size: int) -> List[ConstraintGroup]:
    return [
        ConstraintGroup(kind="column", cells=[(r, c) for r in range(size)], label=f"column {c}")
        for c in range(size)
    ]


def block_groups(size: int) -> List[ConstraintGroup]:
    """Square blocks of side √size, listed row-major."""
    box = box_size(size)
    groups: List[ConstraintGroup] = []
    for br in range(box):
        for bc in range(box):
            cells = [
                (br * box + r, bc * box + c)
                for r in range(box)
                for c in range(box)
            ]
            groups.append(ConstraintGroup(kind="block", cells=cells, label=f"block ({br},{bc})"))
    return groups


def box_size(size: int) -> int:
    return int(round(math.sqrt(size)))


# =============================
# Factories
# =============================


def _validate_grid(grid: Sequence[Sequence[int]], size: int) -> None:
    if len(grid) != size:
        raise ValueError(f"Grid has {len(grid)} rows, expected {size}")
    for r, row in enumerate(grid):
        if len(row) != size:
            raise ValueError(f"Grid row {r} has {len(row)} cells, expected {size}")
        for c, value in enumerate(row):
            if not 0 <= value <= size:
                raise ValueError(f"Cell ({r},{c}) holds {value}; values must lie in 0..{size}")


def _build_cells(grid: Sequence[Sequence[int]], size: int) -> List[List[PuzzleCell]]:
    cells: List[List[PuzzleCell]] = []
    for r in range(size):
        row: List[PuzzleCell] = []
        for c in range(size):
            given = grid[r][c]
            if given > 0:
                row.append(PuzzleCell(row=r, col=c, value=given, candidates=[], fixed=True))
            else:
                row.append(PuzzleCell(row=r, col=c, candidates=list(range(1, size + 1))))
        cells.append(row)
    return cells


def _initial_propagation(space: PuzzleSpace) -> None:
    """Remove each group's given values from its unconfirmed cells.

    Groups are visited in order and each group reads the values confirmed so far,
    so a cell confirmed by an early group already constrains later groups.
    """
    for group in space.constraints:
        confirmed = {space.cell(r, c).value for r, c in group.cells if space.cell(r, c).confirmed}
        for r, c in group.cells:
            cell = space.cell(r, c)
            if cell.confirmed:
                continue
            for value in sorted(confirmed):
                if value in cell.candidates:
                    cell.candidates.remove(value)
                    cell.elimination_history.append(
                        EliminationEntry(candidate=value, reason=f"{group.kind}_initial", step=0)
                    )
            if len(cell.candidates) == 1:
                cell.confirm(cell.candidates[0])


def _make_space(
    puzzle_type: str,
    grid: Sequence[Sequence[int]],
    size: int,
    constraints: List[ConstraintGroup],
) -> PuzzleSpace:
    _validate_grid(grid, size)
    space = PuzzleSpace(
        puzzle_type=puzzle_type,
        size=size,
        cells=_build_cells(grid, size),
        constraints=constraints,
    )
    _initial_propagation(space)
    return space


def create_sudoku_space(grid: Sequence[Sequence[int]]) -> PuzzleSpace:
    """Sudoku-style puzzle: rows, columns and √n×√n blocks.

    Args:
        grid: N×N values, 0 for empty cells. N must be a perfect square.
    """
    size = len(grid)
    if box_size(size) ** 2 != size:
        raise ValueError(f"Sudoku size must be a perfect square (got {size})")
    constraints = row_groups(size) + column_groups(size) + block_groups(size)
    return _make_space("sudoku", grid, size, constraints)


def create_latin_square_space(grid: Sequence[Sequence[int]]) -> PuzzleSpace:
    """Latin square: rows and columns only."""
    size = len(grid)
    return _make_space("latin_square", grid, size, row_groups(size) + column_groups(size))


def create_custom_puzzle_space(
    size: int,
    grid: Sequence[Sequence[int]],
    constraints: Iterable[ConstraintGroup],
) -> PuzzleSpace:
    """Puzzle with caller-supplied all-different groups."""
    groups = list(constraints)
    for group in groups:
        for r, c in group.cells:
            if not (0 <= r < size and 0 <= c < size):
                raise ValueError(f"Constraint '{group.label}' references ({r},{c}) outside the grid")
    return _make_space("custom", grid, size, groups)


def parse_grid(text: str) -> List[List[int]]:
    """Parse a grid written as digits, '.' or '0' for blanks.

    Whitespace and separators are ignored, so both a single 81-character line and
    a boxed multi-line layout work.
    """
    flat = [0 if ch == "." else int(ch) for ch in re.sub(r"[^0-9.]", "", text)]
    size = int(round(math.sqrt(len(flat))))
    if size == 0 or size * size != len(flat):
        raise ValueError(f"Grid text holds {len(flat)} cells, which is not a perfect square")
    return [flat[r * size:(r + 1) * size] for r in range(size)]


def get_grid(space: PuzzleSpace) -> List[List[int]]:
    return [[cell.value for cell in row] for row in space.cells]


def get_candidates(space: PuzzleSpace, row: int, col: int) -> Optional[List[int]]:
    if not (0 <= row < space.size and 0 <= col < space.size):
        return None
    return list(space.cell(row, col).candidates)
