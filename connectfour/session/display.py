"""
Display - Render sinks and status text.

The display is a read-only projection of the session. The core pushes a
frame (status text + board snapshot) after every transition; what the sink
does with it (edit a chat message, store it for an HTTP client, print it)
is invisible to the game.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Protocol, Sequence, TextIO
import sys
import threading
import time

from ..engine_core.action import MoveOutcome
from ..engine_core.board import Cell

# One symbol per Cell value
EMOJIS: dict[Cell, str] = {
    Cell.EMPTY: "⚪",
    Cell.PLAYER_1: "🔵",
    Cell.PLAYER_2: "🔴",
    Cell.WINNER_1: "💙",
    Cell.WINNER_2: "💖",
}

ASCII: dict[Cell, str] = {
    Cell.EMPTY: ".",
    Cell.PLAYER_1: "X",
    Cell.PLAYER_2: "O",
    Cell.WINNER_1: "#",
    Cell.WINNER_2: "@",
}

COLORS = ("Blue", "Red")

Snapshot = Sequence[Sequence[Cell]]


class RenderSink(Protocol):
    """Contract for anything that shows frames to players."""

    async def render(self, key: str, status_text: str, snapshot: Snapshot) -> None:
        ...


def render_table(snapshot: Snapshot, symbols: dict[Cell, str] = EMOJIS, sep: str = " ") -> str:
    """Draw a column-major snapshot with the top row first."""
    if not snapshot:
        return ""
    rows = len(snapshot[0])
    lines = []
    for y in reversed(range(rows)):
        lines.append(sep.join(symbols[Cell(column[y])] for column in snapshot))
    return "\n".join(lines)


def status_text(
    outcome: MoveOutcome | None,
    player_name: str,
    slot: int,
    timeout: float | None = None,
) -> str:
    """
    Headline shown above the board.

    `player_name`/`slot` are the actor whose turn it is, or the winner
    once the game is won.
    """
    label = f"{player_name} ({COLORS[slot]})"
    if outcome is MoveOutcome.WIN:
        return f"Winner is: {label}"
    if outcome is MoveOutcome.DRAW:
        return "This match concluded in a draw!"
    if outcome is MoveOutcome.TIMEOUT:
        seconds = f" within {timeout:g} seconds" if timeout is not None else ""
        return f"The match ended: {label} did not move{seconds}."
    if outcome is MoveOutcome.ERROR:
        return "The match was interrupted by an unexpected error."
    if outcome is MoveOutcome.COLUMN_FULL:
        return f"The line is full! Turn for: {label}"
    return f"Turn for: {label}"


@dataclass(frozen=True)
class Frame:
    """One rendered view of a session."""
    key: str
    status_text: str
    table: str
    rendered_at: float


@dataclass
class MemorySink:
    """Keeps the latest frame per session key, for polling clients."""
    symbols: dict[Cell, str] = field(default_factory=lambda: dict(EMOJIS))
    _frames: dict[str, Frame] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    async def render(self, key: str, status_text: str, snapshot: Snapshot) -> None:
        frame = Frame(
            key=key,
            status_text=status_text,
            table=render_table(snapshot, self.symbols),
            rendered_at=time.time(),
        )
        with self._lock:
            self._frames[key] = frame

    def latest(self, key: str) -> Frame | None:
        with self._lock:
            return self._frames.get(key)


class StreamSink:
    """Writes every frame to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None, symbols: dict[Cell, str] = EMOJIS):
        self.stream = stream or sys.stdout
        self.symbols = symbols

    async def render(self, key: str, status_text: str, snapshot: Snapshot) -> None:
        self.stream.write(f"\n{status_text}\n{render_table(snapshot, self.symbols)}\n")
        self.stream.flush()
