"""
Session Module - Manages ephemeral game sessions.

A session represents one game between two players:
- Created for a key (the place the game is hosted)
- Holds the board and the game loop
- Waits for moves from the input source, with a timeout
- Disposed when the game ends or the host goes away

Sessions are EPHEMERAL:
- No persistence
- At most one running session per key
"""

from .manager import SessionManager, Session, SessionState, SessionStatus, Player
from .game_loop import GameLoop, LoopState, EndReason, TurnResult
from .input import MoveInputSource, ReactionCollector
from .display import RenderSink, MemorySink, StreamSink, Frame, render_table, status_text

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
    "SessionStatus",
    "Player",
    "GameLoop",
    "LoopState",
    "EndReason",
    "TurnResult",
    "MoveInputSource",
    "ReactionCollector",
    "RenderSink",
    "MemorySink",
    "StreamSink",
    "Frame",
    "render_table",
    "status_text",
]
