"""
Board - Grid state and incremental win detection.

The board is the single point of grid mutation.
All placements go through apply_move().

Design principles:
- Column-major grid, row 0 is the bottom
- Gravity-fed: a column fills from the bottom row upward
- Append-only: a cell that holds a mark never becomes empty again
- Win detection only looks at a window of (connect - 1) cells around
  the last placement, never at the whole board
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Sequence

from ..config import COLUMNS, ROWS, CONNECT_N
from ..errors import ColumnFull, GameOverError, InvalidMove


class Cell(IntEnum):
    """Contents of a single board cell."""
    EMPTY = 0
    PLAYER_1 = 1
    PLAYER_2 = 2
    WINNER_1 = 3  # Post-game highlight only
    WINNER_2 = 4

    @classmethod
    def for_slot(cls, slot: int) -> Cell:
        return cls(slot + 1)

    @classmethod
    def winner_for_slot(cls, slot: int) -> Cell:
        return cls(slot + 3)


@dataclass(frozen=True)
class Position:
    """A board coordinate."""
    column: int
    row: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.column, self.row)


@dataclass(frozen=True)
class WinResult:
    """
    Outcome of win detection for one placement.

    `cells` is empty when the placement did not win, otherwise it holds the
    winning line ordered by increasing column (increasing row for verticals).
    """
    cells: tuple[Position, ...] = ()
    direction: str | None = None

    @property
    def is_win(self) -> bool:
        return bool(self.cells)


NO_WIN = WinResult()

# Scan order breaks ties between lines completed by the same placement.
DIRECTIONS: tuple[tuple[str, int, int], ...] = (
    ("vertical", 0, 1),
    ("horizontal", 1, 0),
    ("ascending", 1, 1),
    ("descending", 1, -1),
)


def _axis_window(pos: int, delta: int, size: int, reach: int) -> tuple[int, int]:
    """Offsets (lo, hi) along one axis that stay on the board."""
    if delta == 0:
        return -reach, reach
    below = min(reach, pos)  # max(0, pos - reach)
    above = min(reach, size - 1 - pos)  # min(bound, pos + reach)
    if delta > 0:
        return -below, above
    return -above, below


@dataclass
class Board:
    """
    A gravity-fed connection board.

    Usage:
        board = Board()
        result = board.apply_move(3, slot=0)
        if result.is_win:
            board.mark_winning_line(result)
    """
    columns: int = COLUMNS
    rows: int = ROWS
    connect: int = CONNECT_N

    cells: list[list[Cell]] = field(init=False, repr=False)
    heights: list[int] = field(init=False, repr=False)
    winner_slot: int | None = field(default=None, init=False)

    def __post_init__(self):
        if self.columns < 1 or self.rows < 1:
            raise ValueError("Board needs at least one column and one row")
        if self.connect < 2:
            raise ValueError("Connect length must be at least 2")
        self.cells = [[Cell.EMPTY] * self.rows for _ in range(self.columns)]
        self.heights = [0] * self.columns

    @classmethod
    def from_cells(
        cls,
        cells: Sequence[Sequence[int]],
        connect: int = CONNECT_N,
    ) -> Board:
        """
        Build a board from a column-major grid of cell values.

        Each column must be filled bottom-up without gaps.
        """
        board = cls(columns=len(cells), rows=len(cells[0]), connect=connect)
        for x, column in enumerate(cells):
            if len(column) != board.rows:
                raise ValueError(f"Column {x} has {len(column)} rows, expected {board.rows}")
            height = 0
            for y, value in enumerate(column):
                cell = Cell(value)
                if cell is Cell.EMPTY:
                    continue
                if y != height:
                    raise ValueError(f"Column {x} has a gap below row {y}")
                board.cells[x][y] = cell
                height += 1
            board.heights[x] = height
        return board

    @property
    def move_count(self) -> int:
        return sum(self.heights)

    def apply_move(self, column: int, slot: int) -> WinResult:
        """
        Drop the slot's mark into a column and check for a win.

        Raises ColumnFull when the column has no free row; the board is
        left untouched in that case.
        """
        if self.winner_slot is not None:
            raise GameOverError("The game already has a winner")
        if not 0 <= column < self.columns:
            raise InvalidMove(f"Column {column} out of range 0-{self.columns - 1}")
        if slot not in (0, 1):
            raise InvalidMove(f"Unknown player slot: {slot}")

        row = self.heights[column]
        if row >= self.rows:
            raise ColumnFull(column)

        self.cells[column][row] = Cell.for_slot(slot)
        self.heights[column] = row + 1

        result = self.check(column, row)
        if result.is_win:
            self.winner_slot = slot
        return result

    def check(self, column: int, row: int) -> WinResult:
        """Check whether the mark at (column, row) completes a line."""
        mark = self.cells[column][row]
        if mark not in (Cell.PLAYER_1, Cell.PLAYER_2):
            return NO_WIN

        for name, dx, dy in DIRECTIONS:
            line = self._scan(column, row, dx, dy, mark)
            if line:
                return WinResult(cells=line, direction=name)
        return NO_WIN

    def _scan(
        self,
        column: int,
        row: int,
        dx: int,
        dy: int,
        mark: Cell,
    ) -> tuple[Position, ...] | None:
        """Slide a run-length counter along one direction through (column, row)."""
        reach = self.connect - 1
        lo_x, hi_x = _axis_window(column, dx, self.columns, reach)
        lo_y, hi_y = _axis_window(row, dy, self.rows, reach)
        lo, hi = max(lo_x, lo_y), min(hi_x, hi_y)

        run = 0
        for k in range(lo, hi + 1):
            x, y = column + k * dx, row + k * dy
            if self.cells[x][y] == mark:
                run += 1
                if run == self.connect:
                    return tuple(
                        Position(x - i * dx, y - i * dy)
                        for i in reversed(range(self.connect))
                    )
            else:
                run = 0
        return None

    def mark_winning_line(self, result: WinResult) -> None:
        """Highlight the winning line once the game is over."""
        if self.winner_slot is None or not result.is_win:
            raise GameOverError("No winning line to highlight")
        highlight = Cell.winner_for_slot(self.winner_slot)
        for pos in result.cells:
            self.cells[pos.column][pos.row] = highlight

    def is_column_full(self, column: int) -> bool:
        return self.cells[column][self.rows - 1] is not Cell.EMPTY

    def is_full(self) -> bool:
        """True when the top row of every column is occupied."""
        return all(self.is_column_full(x) for x in range(self.columns))

    def free_columns(self) -> list[int]:
        return [x for x in range(self.columns) if not self.is_column_full(x)]

    def snapshot(self) -> tuple[tuple[Cell, ...], ...]:
        """Immutable column-major copy of the grid."""
        return tuple(tuple(column) for column in self.cells)
