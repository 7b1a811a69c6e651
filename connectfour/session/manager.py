"""
Session Manager - Creates and tracks game sessions.

LIFECYCLE:
1. A collaborator creates a session for a key (a channel, a conversation)
   -> at most one running session per key, enforced by the registry
2. start() picks who moves first and drives the game loop to the end
3. The session disposes itself when the game ends (win, draw, timeout,
   error) or when a collaborator forces it (the hosting channel vanished)
4. Disposal releases the key, closes the move input and happens once

Sessions are EPHEMERAL:
- No persistence
- No rematches: a new game is a new session
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
import random
import threading
import time

from ..config import Settings
from ..engine_core.board import Board, Cell, Position
from ..errors import SessionDisposed, SlotOccupied, TransportError
from .display import RenderSink, status_text
from .game_loop import EndReason, GameLoop, LoopState, TurnResult
from .input import MoveInputSource, ReactionCollector

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a game session."""
    CREATED = "created"  # Registered, not started
    RUNNING = "running"  # Game loop in progress
    DISPOSED = "disposed"  # Finished or torn down


@dataclass(frozen=True)
class Player:
    """A player identity supplied by the caller."""
    player_id: str
    name: str


@dataclass(frozen=True)
class SessionStatus:
    """Read-only view of a session for rendering."""
    key: str
    state: SessionState
    players: tuple[Player, Player]
    current_player: Player | None
    winner: Player | None
    loop_state: LoopState
    end_reason: EndReason | None
    winning_line: tuple[Position, ...]
    board: tuple[tuple[Cell, ...], ...]
    status_text: str
    move_count: int


@dataclass(eq=False)
class Session:
    """
    One addressable game.

    Owns the board and the game loop for its whole life. The manager only
    holds a lookup from key to session.
    """
    key: str
    players: tuple[Player, Player]
    settings: Settings = field(default_factory=Settings)
    input_source: MoveInputSource | None = None
    sink: RenderSink | None = None
    seed: int | None = None
    manager: SessionManager | None = field(default=None, repr=False)
    created_at: float = field(default_factory=time.time)

    state: SessionState = SessionState.CREATED
    dispose_reason: str | None = None

    board: Board = field(init=False, repr=False)
    loop: GameLoop = field(init=False, repr=False)

    def __post_init__(self):
        if len(self.players) != 2:
            raise ValueError("A session needs exactly two players")
        if self.players[0].player_id == self.players[1].player_id:
            raise ValueError("A player cannot challenge themselves")
        self.players = tuple(self.players)
        self.board = Board(
            columns=self.settings.columns,
            rows=self.settings.rows,
            connect=self.settings.connect,
        )
        if self.input_source is None:
            self.input_source = ReactionCollector(columns=self.settings.columns)
        self.loop = GameLoop(self)
        self._rng = random.Random(self.seed)

    @classmethod
    def create(
        cls,
        challenger: Player,
        challengee: Player,
        key: str,
        manager: SessionManager,
        **kwargs,
    ) -> Session:
        """Create and register a session; raises SlotOccupied for a busy key."""
        return manager.create_session(key, challenger, challengee, **kwargs)

    @property
    def is_disposed(self) -> bool:
        return self.state is SessionState.DISPOSED

    def is_active(self) -> bool:
        return self.state in {SessionState.CREATED, SessionState.RUNNING}

    @property
    def current_player(self) -> Player | None:
        if self.loop.state is LoopState.AWAITING_MOVE:
            return self.players[self.loop.current_slot]
        return None

    @property
    def winner(self) -> Player | None:
        if self.loop.winner_slot is None:
            return None
        return self.players[self.loop.winner_slot]

    async def start(self) -> TurnResult | None:
        """
        Play the game to the end.

        A second call while the game is running does nothing. The session
        is disposed when this returns or raises.
        """
        if self.state is SessionState.RUNNING:
            return None
        if self.state is SessionState.DISPOSED:
            raise SessionDisposed(f"Session {self.key!r} has been disposed")

        self.state = SessionState.RUNNING
        first_slot = self._rng.randrange(2)
        self.loop.begin(first_slot)
        logger.info(
            "Session %s started: %s vs %s, %s moves first",
            self.key, self.players[0].name, self.players[1].name,
            self.players[first_slot].name,
        )

        try:
            try:
                await self.render()
            except TransportError as error:
                await self.loop.fail(error, render=False)
            result = await self.loop.run()
            logger.info("Session %s ended: %s", self.key, result.end_reason.value)
            return result
        finally:
            reason = self.loop.end_reason.value if self.loop.end_reason else "aborted"
            self.dispose(reason)

    async def render(self, result: TurnResult | None = None) -> None:
        """Push the current status to the display sink."""
        if self.is_disposed or self.sink is None:
            return
        text = self.status_text(result)
        try:
            await self.sink.render(self.key, text, self.board.snapshot())
        except TransportError:
            raise
        except Exception:
            logger.exception("Failed to render session %s", self.key)

    def status_text(self, result: TurnResult | None = None) -> str:
        if result is None:
            result = self.loop.last_result
        slot = self.loop.current_slot
        return status_text(
            result.outcome if result else None,
            self.players[slot].name,
            slot,
            timeout=self.settings.move_timeout,
        )

    def status(self) -> SessionStatus:
        return SessionStatus(
            key=self.key,
            state=self.state,
            players=self.players,
            current_player=self.current_player,
            winner=self.winner,
            loop_state=self.loop.state,
            end_reason=self.loop.end_reason,
            winning_line=self.loop.winning_line,
            board=self.board.snapshot(),
            status_text=self.status_text(),
            move_count=self.board.move_count,
        )

    def dispose(self, reason: str = "completed") -> bool:
        """
        Release the key and the move input.

        Safe to call any number of times; only the first call does anything.
        """
        if self.state is SessionState.DISPOSED:
            return False
        self.state = SessionState.DISPOSED
        self.dispose_reason = reason
        self.input_source.close()
        if self.manager is not None:
            self.manager.release(self)
        logger.info("Session %s disposed (%s)", self.key, reason)
        return True


class SessionManager:
    """
    Registry of running sessions, one per key.

    Responsibilities:
    - Create sessions, refusing busy keys
    - Look sessions up by key
    - Force teardown from outside the game loop

    Insertion and removal happen under a lock, so two concurrent creates
    for the same key cannot both succeed.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        key: str,
        challenger: Player,
        challengee: Player,
        input_source: MoveInputSource | None = None,
        sink: RenderSink | None = None,
        seed: int | None = None,
    ) -> Session:
        """
        Create and register a new session.

        Raises:
            SlotOccupied: a live session already uses `key`
        """
        with self._lock:
            existing = self._sessions.get(key)
            if existing is not None and existing.is_active():
                raise SlotOccupied(key)
            session = Session(
                key=key,
                players=(challenger, challengee),
                settings=self.settings,
                input_source=input_source,
                sink=sink,
                seed=seed,
                manager=self,
            )
            self._sessions[key] = session

        logger.info("Session %s created", key)
        return session

    def get_session(self, key: str) -> Session | None:
        """Get a session by key."""
        with self._lock:
            return self._sessions.get(key)

    def release(self, session: Session) -> None:
        """Drop the key, but only if it still points at this session."""
        with self._lock:
            if self._sessions.get(session.key) is session:
                del self._sessions[session.key]

    def end_session(self, key: str, reason: str = "forced") -> bool:
        """
        Force a session to end, e.g. when its channel disappeared.

        Returns False when there was nothing to end.
        """
        session = self.get_session(key)
        if session is None:
            return False
        return session.dispose(reason)

    def list_active_sessions(self) -> list[str]:
        """List keys of active sessions."""
        with self._lock:
            return [
                key for key, session in self._sessions.items()
                if session.is_active()
            ]

    def dispose_all(self, reason: str = "shutdown") -> int:
        with self._lock:
            sessions = list(self._sessions.values())
        return sum(1 for session in sessions if session.dispose(reason))
