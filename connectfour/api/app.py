"""
FastAPI Application - REST API around game sessions.

Endpoints:
    POST   /api/v1/sessions              Create and start a game for a key
    GET    /api/v1/sessions              List running games
    GET    /api/v1/sessions/{key}        Get game status and latest frame
    POST   /api/v1/sessions/{key}/moves  Deliver a move token
    DELETE /api/v1/sessions/{key}        Force the game to end

Move Flow:
    1. POST /moves with the player's id and a column selector
    2. The token only counts if it is that player's turn and well formed;
       otherwise it is discarded and `accepted=false` is returned
    3. Poll GET /sessions/{key} for the rendered frame

All responses are JSON with explicit Pydantic schemas.
"""

from contextlib import asynccontextmanager
from typing import Annotated, Optional, Union
import os

from .. import __version__

# Environment configuration
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        CreateSessionRequest,
        MoveRequest,
        # Response models
        SessionResponse,
        MoveResponse,
        ErrorResponse,
        SessionListResponse,
        EndSessionResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )
    from ..errors import SlotOccupied

    api_service = service or APIService()

    @asynccontextmanager
    async def lifespan(app):
        yield
        await api_service.shutdown()

    app = FastAPI(
        title="ConnectFour Engine API",
        description="""
Two-player connection game sessions.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | No game exists for the key |
| `SLOT_OCCUPIED` | A game is already running for the key |
| `VALIDATION_ERROR` | Request is invalid |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.service = api_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        status_code=201,
        responses={409: {"model": ErrorResponse, "description": "A game is already running"}},
        tags=["Sessions"],
        summary="Create and start a game",
    )
    async def create_session(body: CreateSessionRequest) -> Union[SessionResponse, JSONResponse]:
        """
        Start a game between two players for a key.

        The first player is picked at random. Only one game may run per key.
        """
        if body.challenger.player_id == body.challengee.player_id:
            return make_error_response(
                ErrorCode.VALIDATION_ERROR,
                "A player cannot challenge themselves",
            )
        try:
            return await api_service.create_session(body)
        except SlotOccupied as e:
            return make_error_response(
                ErrorCode.SLOT_OCCUPIED,
                str(e),
                status_code=409,
                details={"key": e.key},
            )

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List running games",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{key}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get game status",
    )
    async def get_session(key: str) -> Union[SessionResponse, JSONResponse]:
        """Get the current status of a game, including the latest frame."""
        response = api_service.get_session(key)
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, status_code=404)
        return response

    @app.post(
        "/api/v1/sessions/{key}/moves",
        response_model=MoveResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Game Loop"],
        summary="Deliver a move token",
    )
    async def submit_move(key: str, body: MoveRequest) -> Union[MoveResponse, JSONResponse]:
        """
        Offer a move to the running game.

        **Request Body:**
        ```json
        {"player_id": "alice", "selector": "4⃣"}
        ```
        """
        response = api_service.submit_move(key, body)
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, status_code=404)
        return response

    @app.delete(
        "/api/v1/sessions/{key}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="Force a game to end",
    )
    async def end_session(
        key: str,
        reason: Annotated[str, Query(description="Reason for ending")] = "forced",
    ) -> EndSessionResponse:
        """End a running game and release its key."""
        success = api_service.end_session(key, reason)
        return EndSessionResponse(success=success, key=key)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service="connectfour-engine",
            version=__version__,
        )

    return app


# For running directly: uvicorn connectfour.api.app:app
app = create_app()
