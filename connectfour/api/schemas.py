"""
Pydantic Schemas for API - Request/response models for OpenAPI.

Error Codes:
- SESSION_NOT_FOUND: No session was ever created for this key
- SLOT_OCCUPIED: A game is already running for this key
- VALIDATION_ERROR: Request body is invalid
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    CREATED = "created"
    RUNNING = "running"
    DISPOSED = "disposed"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SLOT_OCCUPIED = "SLOT_OCCUPIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PlayerIdentity(BaseModel):
    """A player as supplied by the caller."""
    player_id: str = Field(..., min_length=1, description="Stable identity used to match moves")
    name: str = Field(..., min_length=1, description="Display name")


class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: str
    name: str
    slot: int = Field(..., ge=0, le=1)
    color: str
    is_current_turn: bool = False
    is_winner: bool = False

    model_config = {"from_attributes": True}


class FrameInfo(BaseModel):
    """The latest frame pushed to the display."""
    status_text: str
    table: str
    rendered_at: float


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to start a game for a key."""
    key: str = Field(..., min_length=1, description="Where the game is hosted, e.g. a channel id")
    challenger: PlayerIdentity
    challengee: PlayerIdentity
    random_seed: Optional[int] = Field(None, description="Seed for picking the first player")


class MoveRequest(BaseModel):
    """A move token produced by a player."""
    player_id: str = Field(..., min_length=1)
    selector: str = Field(..., description="Column keycap (1⃣..7⃣) or 1-based column number")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Full view of a session."""
    key: str
    status: SessionStatus
    players: list[PlayerInfo]
    current_turn_player_id: Optional[str] = None
    winner_player_id: Optional[str] = None
    loop_state: str
    end_reason: Optional[str] = None
    winning_line: list[tuple[int, int]] = Field(default_factory=list)
    board: list[list[int]] = Field(
        default_factory=list, description="Column-major cell values, row 0 at the bottom"
    )
    status_text: str
    move_count: int = 0
    selectors: list[str] = Field(
        default_factory=list, description="Column keycaps a client can offer, left to right"
    )
    frame: Optional[FrameInfo] = None
    created_at: float
    api_version: str = "v1"


class MoveResponse(BaseModel):
    """Whether a move token resolved the pending request."""
    key: str
    accepted: bool
    waiting_for: Optional[str] = Field(None, description="Player the game waits for")
    discarded: int = Field(0, description="Inputs this game has discarded so far")


class SessionListResponse(BaseModel):
    """List of running sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response from forcing a session to end."""
    success: bool
    key: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
