"""
Tests for session lifecycle and the registry.

Tests:
- One running session per key
- start() idempotence and first-player pick
- Full games through the real input source
- Disposal: idempotent, releases the key, closes the input
- Forced teardown from outside the loop
"""

import asyncio
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from ..config import Settings
from ..engine_core.action import MoveOutcome
from ..errors import SessionDisposed, SlotOccupied, TransportError
from ..session import EndReason, Player, Session, SessionManager, SessionState, LoopState
from ..session.input import ReactionCollector
from .conftest import RecordingSink, ScriptedSource, wait_for_request


class CountingCollector(ReactionCollector):
    """ReactionCollector that counts close() calls."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.close_calls = 0

    def close(self):
        self.close_calls += 1
        super().close()


async def play_columns(session, columns):
    """Feed columns to whoever the session is waiting for."""
    collector = session.input_source
    for column in columns:
        actor = await wait_for_request(collector)
        assert collector.submit(actor, str(column + 1))


class TestRegistry:
    """Tests for SessionManager."""

    def test_second_create_on_same_key_fails(self, manager, alice, bob):
        manager.create_session("channel-1", alice, bob)

        with pytest.raises(SlotOccupied) as excinfo:
            manager.create_session("channel-1", bob, alice)
        assert excinfo.value.key == "channel-1"

    def test_distinct_keys_are_independent(self, manager, alice, bob):
        first = manager.create_session("channel-1", alice, bob)
        second = manager.create_session("channel-2", alice, bob)

        assert first is not second
        assert first.board is not second.board
        assert sorted(manager.list_active_sessions()) == ["channel-1", "channel-2"]

        manager.end_session("channel-1")
        assert manager.list_active_sessions() == ["channel-2"]
        assert second.is_active()

    def test_key_is_free_after_dispose(self, manager, alice, bob):
        first = manager.create_session("channel-1", alice, bob)
        first.dispose()

        second = manager.create_session("channel-1", alice, bob)
        assert manager.get_session("channel-1") is second

    def test_disposing_old_session_keeps_new_one(self, manager, alice, bob):
        first = manager.create_session("channel-1", alice, bob)
        first.dispose()
        second = manager.create_session("channel-1", alice, bob)

        first.dispose()
        assert manager.get_session("channel-1") is second

    def test_concurrent_creates_for_one_key(self, manager, alice, bob):
        def attempt(_):
            try:
                return manager.create_session("channel-1", alice, bob)
            except SlotOccupied:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(16)))

        created = [session for session in results if session is not None]
        assert len(created) == 1
        assert manager.get_session("channel-1") is created[0]

    def test_session_create_registers(self, manager, alice, bob):
        session = Session.create(alice, bob, "channel-9", manager)
        assert manager.get_session("channel-9") is session

        with pytest.raises(SlotOccupied):
            Session.create(bob, alice, "channel-9", manager)

    def test_end_unknown_session(self, manager):
        assert manager.end_session("nowhere") is False

    def test_dispose_all(self, manager, alice, bob):
        sessions = [manager.create_session(f"channel-{i}", alice, bob) for i in range(3)]

        assert manager.dispose_all() == 3
        assert manager.list_active_sessions() == []
        assert all(session.is_disposed for session in sessions)

    def test_players_must_differ(self, manager, alice):
        with pytest.raises(ValueError):
            manager.create_session("channel-1", alice, Player(alice.player_id, "Alias"))


class TestDispose:
    """Tests for idempotent disposal."""

    def test_dispose_twice(self, manager, alice, bob):
        collector = CountingCollector()
        session = manager.create_session("channel-1", alice, bob, input_source=collector)

        assert session.dispose() is True
        assert session.dispose() is False

        assert collector.close_calls == 1
        assert session.state is SessionState.DISPOSED
        assert manager.get_session("channel-1") is None

    def test_start_after_dispose_fails(self, manager, alice, bob):
        session = manager.create_session("channel-1", alice, bob)
        session.dispose()

        with pytest.raises(SessionDisposed):
            asyncio.run(session.start())

    def test_forced_teardown_while_waiting(self, manager, alice, bob, sink):
        session = manager.create_session("channel-1", alice, bob, sink=sink)

        async def scenario():
            game = asyncio.create_task(session.start())
            await wait_for_request(session.input_source)
            frames_before = len(sink.frames)
            assert manager.end_session("channel-1", reason="channel deleted")
            result = await game
            return result, frames_before

        result, frames_before = asyncio.run(scenario())

        assert result.outcome is MoveOutcome.ABORTED
        assert session.dispose_reason == "channel deleted"
        assert len(sink.frames) == frames_before
        assert manager.get_session("channel-1") is None


class TestStart:
    """Tests for driving whole games."""

    def test_first_player_is_seeded(self, manager, alice, bob):
        seed = 11
        expected = random.Random(seed).randrange(2)
        session = manager.create_session("channel-1", alice, bob, seed=seed)

        async def scenario():
            game = asyncio.create_task(session.start())
            actor = await wait_for_request(session.input_source)
            session.dispose()
            await game
            return actor

        assert asyncio.run(scenario()) == session.players[expected].player_id

    def test_first_player_is_random(self, alice, bob):
        firsts = set()
        for seed in range(20):
            manager = SessionManager(settings=Settings(move_timeout=5.0))
            session = manager.create_session("channel-1", alice, bob, seed=seed)

            async def scenario():
                game = asyncio.create_task(session.start())
                await wait_for_request(session.input_source)
                slot = session.loop.current_slot
                session.dispose()
                await game
                return slot

            firsts.add(asyncio.run(scenario()))
        assert firsts == {0, 1}

    def test_full_game_to_a_win(self, manager, alice, bob, sink):
        session = manager.create_session("channel-1", alice, bob, sink=sink, seed=3)

        async def scenario():
            game = asyncio.create_task(session.start())
            await play_columns(session, [3, 4, 3, 4, 3, 4, 3])
            return await game

        result = asyncio.run(scenario())
        first = session.players[random.Random(3).randrange(2)]

        assert result.outcome is MoveOutcome.WIN
        assert session.winner == first
        assert [p.as_tuple() for p in result.winning_line] == [(3, 0), (3, 1), (3, 2), (3, 3)]
        assert session.is_disposed
        assert session.dispose_reason == "win"
        assert manager.get_session("channel-1") is None
        assert sink.texts[0].startswith(f"Turn for: {first.name}")
        assert sink.texts[-1].startswith(f"Winner is: {first.name}")
        assert len(sink.frames) == 8  # initial frame + one per move

    def test_wrong_player_input_is_ignored(self, manager, alice, bob):
        session = manager.create_session("channel-1", alice, bob)

        async def scenario():
            game = asyncio.create_task(session.start())
            actor = await wait_for_request(session.input_source)
            other = bob.player_id if actor == alice.player_id else alice.player_id
            accepted = session.input_source.submit(other, "1")
            moves = session.board.move_count
            session.dispose()
            await game
            return accepted, moves

        accepted, moves = asyncio.run(scenario())
        assert accepted is False
        assert moves == 0

    def test_timeout_then_late_input(self, alice, bob, sink):
        manager = SessionManager(settings=Settings(move_timeout=0.02))
        session = manager.create_session("channel-1", alice, bob, sink=sink)

        async def scenario():
            result = await session.start()
            late = session.input_source.submit(session.players[result.slot].player_id, "1")
            return result, late

        result, late = asyncio.run(scenario())

        assert result.outcome is MoveOutcome.TIMEOUT
        assert session.loop.end_reason is EndReason.TIMEOUT
        assert late is False
        assert session.board.move_count == 0
        assert session.dispose_reason == "timeout"
        assert "did not move" in sink.texts[-1]

    def test_second_start_is_noop(self, manager, alice, bob):
        session = manager.create_session("channel-1", alice, bob)

        async def scenario():
            game = asyncio.create_task(session.start())
            await wait_for_request(session.input_source)
            second = await session.start()
            session.dispose()
            await game
            return second

        assert asyncio.run(scenario()) is None

    def test_transport_error_disposes_and_propagates(self, manager, alice, bob):
        source = ScriptedSource([TransportError("channel vanished")])
        session = manager.create_session("channel-1", alice, bob, input_source=source)

        with pytest.raises(TransportError):
            asyncio.run(session.start())

        assert session.is_disposed
        assert session.dispose_reason == "error"
        assert source.close_calls == 1
        assert manager.get_session("channel-1") is None

    def test_unreachable_sink_at_start_ends_with_error(self, manager, alice, bob):
        class GoneSink:
            async def render(self, key, status_text, snapshot):
                raise TransportError("display unreachable")

        source = ScriptedSource([0])
        session = manager.create_session(
            "channel-1", alice, bob, input_source=source, sink=GoneSink(),
        )

        with pytest.raises(TransportError):
            asyncio.run(session.start())

        assert session.dispose_reason == "error"
        assert session.loop.end_reason is EndReason.ERROR
        assert session.status().current_player is None
        assert source.requests == []
        assert manager.get_session("channel-1") is None


class TestStatus:
    """Tests for the read-only status view."""

    def test_status_while_running(self, manager, alice, bob):
        session = manager.create_session("channel-1", alice, bob, seed=5)

        async def scenario():
            game = asyncio.create_task(session.start())
            await play_columns(session, [0])
            await wait_for_request(session.input_source)
            status = session.status()
            session.dispose()
            await game
            return status

        status = asyncio.run(scenario())
        first = random.Random(5).randrange(2)

        assert status.state is SessionState.RUNNING
        assert status.loop_state is LoopState.AWAITING_MOVE
        assert status.current_player == session.players[1 - first]
        assert status.winner is None
        assert status.move_count == 1
        assert status.board[0][0] == first + 1
        assert status.status_text == f"Turn for: {session.players[1 - first].name} ({('Blue', 'Red')[1 - first]})"

    def test_status_before_start(self, alice, bob):
        session = Session(key="channel-1", players=(alice, bob), sink=RecordingSink())
        status = session.status()

        assert status.state is SessionState.CREATED
        assert status.current_player is None
        assert status.move_count == 0
        assert len(status.board) == 7
