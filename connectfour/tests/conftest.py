"""
Pytest fixtures for ConnectFour tests.
"""

import asyncio

import pytest

from ..config import Settings
from ..engine_core.action import MoveEvent, TimeoutEvent
from ..engine_core.board import Board
from ..errors import InputClosed
from ..session import Player, Session, SessionManager


class RecordingSink:
    """Display sink that keeps every frame it is given."""

    def __init__(self):
        self.frames = []

    async def render(self, key, status_text, snapshot):
        self.frames.append((key, status_text, snapshot))

    @property
    def texts(self):
        return [text for _, text, _ in self.frames]


class ScriptedSource:
    """
    Move source that answers requests from a script.

    Items are columns (int) or exceptions to raise. An exhausted script
    answers with a timeout.
    """

    def __init__(self, script=()):
        self.script = list(script)
        self.requests = []
        self.close_calls = 0

    async def request_move(self, actor_id, timeout):
        self.requests.append(actor_id)
        if self.close_calls:
            raise InputClosed("closed")
        if not self.script:
            return TimeoutEvent(actor_id=actor_id, timeout=timeout)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return MoveEvent(actor_id=actor_id, column=item)

    def close(self):
        self.close_calls += 1


def make_board(columns=None, width=7, height=5):
    """Build a board from {column: [bottom-up values]}."""
    grid = [[0] * height for _ in range(width)]
    for x, values in (columns or {}).items():
        for y, value in enumerate(values):
            grid[x][y] = value
    return Board.from_cells(grid)


def draw_cells(width=7, height=5):
    """A full grid with no four-in-a-row for either player."""
    return [
        [1 if (x // 2 + y) % 2 == 0 else 2 for y in range(height)]
        for x in range(width)
    ]


async def wait_for_request(collector, attempts=200):
    """Yield to the event loop until the collector has a pending request."""
    for _ in range(attempts):
        if collector.waiting_for is not None:
            return collector.waiting_for
        await asyncio.sleep(0)
    raise AssertionError("No move was requested")


@pytest.fixture
def settings() -> Settings:
    return Settings(move_timeout=5.0)


@pytest.fixture
def alice() -> Player:
    return Player(player_id="u-alice", name="Alice")


@pytest.fixture
def bob() -> Player:
    return Player(player_id="u-bob", name="Bob")


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def manager(settings) -> SessionManager:
    return SessionManager(settings=settings)


@pytest.fixture
def make_session(settings, alice, bob, sink):
    """Factory for unregistered sessions driven by a scripted source."""

    def factory(script=(), board=None, source=None):
        session = Session(
            key="channel-1",
            players=(alice, bob),
            settings=settings,
            input_source=source or ScriptedSource(script),
            sink=sink,
        )
        if board is not None:
            session.board = board
        return session

    return factory
