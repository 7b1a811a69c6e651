"""
Engine Core - Board state and move vocabulary.

The engine core is pure:
1. Holds the grid
2. Applies moves with gravity
3. Detects wins around the last placement
4. Parses column selectors

No I/O and no concurrency live here.
"""

from .board import Board, Cell, Position, WinResult, NO_WIN, DIRECTIONS
from .action import (
    COLUMN_SELECTORS,
    MoveEvent,
    MoveOutcome,
    TimeoutEvent,
    parse_selector,
    selectors_for,
)

__all__ = [
    "Board",
    "Cell",
    "Position",
    "WinResult",
    "NO_WIN",
    "DIRECTIONS",
    "COLUMN_SELECTORS",
    "MoveEvent",
    "MoveOutcome",
    "TimeoutEvent",
    "parse_selector",
    "selectors_for",
]
