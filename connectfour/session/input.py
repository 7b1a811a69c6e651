"""
Move Input - Asynchronous, timeout-bound move acquisition.

The game loop asks for exactly one move at a time:

    event = await source.request_move(actor_id, timeout=60)

and gets back either a MoveEvent from that actor or a TimeoutEvent.
Inputs from other actors, malformed selectors and late arrivals are
discarded by the source and never reach the game loop.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Union
import asyncio
import logging

from ..config import COLUMNS
from ..engine_core.action import MoveEvent, TimeoutEvent, parse_selector
from ..errors import InputClosed

logger = logging.getLogger(__name__)

RequestResult = Union[MoveEvent, TimeoutEvent]


class MoveInputSource(Protocol):
    """Contract the game loop consumes."""

    async def request_move(self, actor_id: str, timeout: float) -> RequestResult:
        ...

    def close(self) -> None:
        ...


@dataclass
class _PendingRequest:
    """One outstanding request; its future is never reused."""
    actor_id: str
    future: asyncio.Future


class ReactionCollector:
    """
    In-process move source fed by submit().

    Each request owns a fresh future that is raced against the deadline
    with asyncio.wait_for, so a stale input can never resolve a later
    request.

    Usage:
        collector = ReactionCollector(columns=7)

        # game loop side
        event = await collector.request_move("alice", timeout=60)

        # transport side (reaction handler, HTTP endpoint, stdin reader)
        collector.submit("alice", "4⃣")
    """

    def __init__(self, columns: int = COLUMNS):
        self.columns = columns
        self._pending: _PendingRequest | None = None
        self._closed = False
        self.discarded = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def waiting_for(self) -> str | None:
        """Actor the outstanding request is addressed to, if any."""
        if self._pending and not self._pending.future.done():
            return self._pending.actor_id
        return None

    async def request_move(self, actor_id: str, timeout: float) -> RequestResult:
        if self._closed:
            raise InputClosed("Move input source is closed")
        if self._pending is not None:
            raise RuntimeError(
                f"A move request for {self._pending.actor_id} is already outstanding"
            )

        future = asyncio.get_running_loop().create_future()
        self._pending = _PendingRequest(actor_id=actor_id, future=future)
        try:
            column = await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            # The deadline can fire in the same tick as an accepted move;
            # a resolved future always wins.
            if not future.done() or future.cancelled():
                logger.debug("Move request for %s timed out after %ss", actor_id, timeout)
                return TimeoutEvent(actor_id=actor_id, timeout=timeout)
            column = future.result()
        finally:
            self._pending = None
        return MoveEvent(actor_id=actor_id, column=column)

    def submit(self, actor_id: str, token: str) -> bool:
        """
        Offer a raw input to the outstanding request.

        Returns True only when the input resolved the request.
        """
        pending = self._pending
        if self._closed or pending is None or pending.future.done():
            return self._discard(actor_id, token, "no pending request")
        if actor_id != pending.actor_id:
            return self._discard(actor_id, token, "not this actor's turn")

        column = parse_selector(token, self.columns)
        if column is None:
            return self._discard(actor_id, token, "malformed selector")

        pending.future.set_result(column)
        return True

    def close(self) -> None:
        """Unsubscribe; a pending request fails with InputClosed."""
        if self._closed:
            return
        self._closed = True
        pending = self._pending
        if pending is not None and not pending.future.done():
            pending.future.set_exception(InputClosed("Move input source closed"))

    def _discard(self, actor_id: str, token: str, why: str) -> bool:
        self.discarded += 1
        logger.debug("Discarded input %r from %s: %s", token, actor_id, why)
        return False
