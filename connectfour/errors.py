"""
Errors - Exception taxonomy for the engine.

Three families:
- Expected game outcomes raised internally and caught by the game loop
  (ColumnFull). They never escape as exceptions.
- Precondition violations (InvalidMove, GameOverError, SessionDisposed).
  They signal a defect in the caller.
- Transport failures (TransportError, InputClosed). They end the session.
"""

from __future__ import annotations


class ConnectFourError(Exception):
    """Base class for all engine errors."""


class InvalidMove(ConnectFourError, ValueError):
    """Column or slot out of range."""


class GameOverError(InvalidMove):
    """A move was attempted after the game ended."""


class ColumnFull(ConnectFourError):
    """The selected column has no free row."""

    def __init__(self, column: int):
        super().__init__(f"Column {column} is full")
        self.column = column


class SlotOccupied(ConnectFourError):
    """A running session already exists for this key."""

    def __init__(self, key: str):
        super().__init__(f"A game is already running for {key!r}")
        self.key = key


class SessionDisposed(ConnectFourError):
    """Operation on a session that has been disposed."""


class TransportError(ConnectFourError):
    """A collaborator (input source or display sink) failed permanently."""


class InputClosed(TransportError):
    """The move-input source was closed while a request was pending."""
