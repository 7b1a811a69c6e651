"""
Move Actions - Column selectors, move events and outcomes.

A move reaches the engine as a token (a keycap reaction such as "4⃣",
or a plain digit) tagged with the actor who produced it. The input source
parses the token into a column index before the game loop ever sees it.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


# One keycap per column, left to right
COLUMN_SELECTORS: tuple[str, ...] = (
    "1⃣", "2⃣", "3⃣", "4⃣", "5⃣", "6⃣", "7⃣",
    "8⃣", "9⃣",
)


def parse_selector(token: str, columns: int) -> int | None:
    """
    Parse a column selector into a zero-based column index.

    Accepts a keycap token or a 1-based digit string ("1" .. str(columns)).
    Returns None for anything malformed or out of range.
    """
    if not isinstance(token, str):
        return None
    token = token.strip().replace("\ufe0f", "")  # emoji presentation selector
    if token in COLUMN_SELECTORS:
        column = COLUMN_SELECTORS.index(token)
    elif token.isdecimal():
        column = int(token) - 1
    else:
        return None
    if 0 <= column < columns:
        return column
    return None


def selectors_for(columns: int) -> tuple[str, ...]:
    """Selectors a display should offer for a board of this width."""
    return COLUMN_SELECTORS[:columns]


class MoveOutcome(Enum):
    """Result of one AWAITING_MOVE entry."""
    PLACED = "placed"
    WIN = "win"
    COLUMN_FULL = "column_full"
    DRAW = "draw"
    TIMEOUT = "timeout"
    ERROR = "error"
    ABORTED = "aborted"


@dataclass(frozen=True)
class MoveEvent:
    """A column chosen by the actor a request was addressed to."""
    actor_id: str
    column: int


@dataclass(frozen=True)
class TimeoutEvent:
    """The actor did not move before the deadline."""
    actor_id: str
    timeout: float
