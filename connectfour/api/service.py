"""
API Service - Business logic layer between the HTTP app and the sessions.

The service:
1. Creates sessions and runs each game as an asyncio task
2. Feeds move tokens to the session's input source
3. Keeps the latest frame of every session for polling clients
4. Forces teardown on request and on shutdown

This layer is framework-agnostic (can be used with FastAPI, a chat bot, etc.)
Its coroutines must run on the event loop that hosts the games.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import partial
import asyncio
import logging

from .schemas import (
    CreateSessionRequest,
    MoveRequest,
    SessionResponse,
    MoveResponse,
    ErrorResponse,
    ErrorCode,
    PlayerInfo,
    FrameInfo,
    SessionStatus,
)
from ..config import Settings
from ..engine_core.action import selectors_for
from ..session import SessionManager, Session, Player, MemorySink, ReactionCollector
from ..session.display import COLORS

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        response = await service.create_session(request)
        service.submit_move(response.key, MoveRequest(player_id="alice", selector="4"))
        state = service.get_session(response.key)
    """
    settings: Settings = field(default_factory=Settings.from_env)
    session_manager: SessionManager | None = None
    sink: MemorySink = field(default_factory=MemorySink)

    # Latest session per key, kept after the game ends so its result stays readable
    _sessions: dict[str, Session] = field(default_factory=dict)

    # Game tasks per key
    _tasks: dict[str, asyncio.Task] = field(default_factory=dict)

    def __post_init__(self):
        if self.session_manager is None:
            self.session_manager = SessionManager(settings=self.settings)

    async def create_session(self, request: CreateSessionRequest) -> SessionResponse:
        """
        Create a session and start its game in the background.

        Raises SlotOccupied when the key already has a running game.
        """
        session = self.session_manager.create_session(
            key=request.key,
            challenger=Player(request.challenger.player_id, request.challenger.name),
            challengee=Player(request.challengee.player_id, request.challengee.name),
            input_source=ReactionCollector(columns=self.settings.columns),
            sink=self.sink,
            seed=request.random_seed,
        )
        self._sessions[session.key] = session

        task = asyncio.create_task(session.start(), name=f"connectfour:{session.key}")
        task.add_done_callback(partial(self._on_game_done, session.key))
        self._tasks[session.key] = task

        # Let the game render its first frame before answering
        await asyncio.sleep(0)
        return self._session_to_response(session)

    def get_session(self, key: str) -> SessionResponse | ErrorResponse:
        """Get the latest session for a key, running or finished."""
        session = self._sessions.get(key)
        if session is None:
            return ErrorResponse(
                error=f"No game for {key}",
                error_code=ErrorCode.SESSION_NOT_FOUND,
            )
        return self._session_to_response(session)

    def submit_move(self, key: str, request: MoveRequest) -> MoveResponse | ErrorResponse:
        """
        Hand a move token to the running game.

        Tokens that do not answer the pending request are discarded and
        reported as not accepted.
        """
        session = self.session_manager.get_session(key)
        if session is None:
            return ErrorResponse(
                error=f"No running game for {key}",
                error_code=ErrorCode.SESSION_NOT_FOUND,
            )

        accepted = session.input_source.submit(request.player_id, request.selector)
        return MoveResponse(
            key=key,
            accepted=accepted,
            waiting_for=session.input_source.waiting_for,
            discarded=session.input_source.discarded,
        )

    def end_session(self, key: str, reason: str = "forced") -> bool:
        """Force the running game for a key to end."""
        return self.session_manager.end_session(key, reason)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    async def shutdown(self) -> None:
        """Dispose every session and wait for the game tasks to finish."""
        count = self.session_manager.dispose_all("shutdown")
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Shut down %d running session(s)", count)

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _on_game_done(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Game %s failed: %s: %s", key, type(error).__name__, error)

    def _session_to_response(self, session: Session) -> SessionResponse:
        """Convert Session to SessionResponse."""
        status = session.status()
        current_id = status.current_player.player_id if status.current_player else None
        winner_id = status.winner.player_id if status.winner else None

        frame = self.sink.latest(session.key)
        return SessionResponse(
            key=status.key,
            status=SessionStatus(status.state.value),
            players=[
                PlayerInfo(
                    player_id=player.player_id,
                    name=player.name,
                    slot=slot,
                    color=COLORS[slot],
                    is_current_turn=player.player_id == current_id,
                    is_winner=player.player_id == winner_id,
                )
                for slot, player in enumerate(status.players)
            ],
            current_turn_player_id=current_id,
            winner_player_id=winner_id,
            loop_state=status.loop_state.value,
            end_reason=status.end_reason.value if status.end_reason else None,
            winning_line=[pos.as_tuple() for pos in status.winning_line],
            board=[[int(cell) for cell in column] for column in status.board],
            status_text=status.status_text,
            move_count=status.move_count,
            selectors=list(selectors_for(session.settings.columns)),
            frame=FrameInfo(
                status_text=frame.status_text,
                table=frame.table,
                rendered_at=frame.rendered_at,
            ) if frame else None,
            created_at=session.created_at,
        )
