"""
API Module - HTTP interface to game sessions.

Exposes the engine via a REST API. A client:
1. Creates a session for a key with two player identities
2. Posts move tokens on behalf of the players
3. Polls the session for the rendered frame
4. Deletes the session when the hosting place goes away

The API is one concrete move-input source and display sink; the engine
itself knows nothing about HTTP.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    MoveRequest,
    # Responses
    SessionResponse,
    MoveResponse,
    SessionListResponse,
    EndSessionResponse,
    HealthResponse,
    ErrorResponse,
    # Shared
    PlayerIdentity,
    PlayerInfo,
    FrameInfo,
    # Enums
    SessionStatus,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "MoveRequest",
    # Responses
    "SessionResponse",
    "MoveResponse",
    "SessionListResponse",
    "EndSessionResponse",
    "HealthResponse",
    "ErrorResponse",
    # Shared
    "PlayerIdentity",
    "PlayerInfo",
    "FrameInfo",
    # Enums
    "SessionStatus",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
