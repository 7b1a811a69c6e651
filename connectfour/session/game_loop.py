"""
Game Loop - The turn coordinator.

The loop:
1. Check whether the board is full (draw, no request issued)
2. Ask the input source for one move from the current actor
3. Apply the move to the board
4. Interpret the result (win, retry on a full column, next turn)
5. Push a render to the session's display
6. Repeat until the game ends

State machine:
    INIT -> begin() -> AWAITING_MOVE
    AWAITING_MOVE -> placed, no win    -> AWAITING_MOVE (turn flips)
    AWAITING_MOVE -> placed, win       -> ENDED(win)
    AWAITING_MOVE -> column full       -> AWAITING_MOVE (same actor retries)
    AWAITING_MOVE -> board full        -> ENDED(draw)
    AWAITING_MOVE -> timeout           -> ENDED(timeout)
    AWAITING_MOVE -> transport failure -> ENDED(error), re-raised once
    AWAITING_MOVE -> session disposed  -> ENDED(aborted), nothing rendered
    AWAITING_MOVE -> invalid column    -> AWAITING_MOVE, InvalidMove raised

Only one move request is ever outstanding: step() awaits it before doing
anything else.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
import contextlib
import logging

from ..engine_core.action import MoveOutcome, TimeoutEvent
from ..engine_core.board import Position
from ..errors import ColumnFull, GameOverError, InputClosed, InvalidMove, TransportError

if TYPE_CHECKING:
    from .manager import Session

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """State of the game loop."""
    INIT = "init"
    AWAITING_MOVE = "awaiting_move"
    ENDED = "ended"


class EndReason(Enum):
    """Why a game ended."""
    WIN = "win"
    DRAW = "draw"
    TIMEOUT = "timeout"
    ERROR = "error"
    ABORTED = "aborted"


@dataclass
class TurnResult:
    """
    Result of one AWAITING_MOVE entry.

    `slot` is the actor the entry was addressed to.
    """
    outcome: MoveOutcome
    loop_state: LoopState
    slot: int

    column: int | None = None
    position: Position | None = None

    # Game over info
    winning_line: tuple[Position, ...] = ()
    end_reason: EndReason | None = None
    error: BaseException | None = None

    @property
    def ended(self) -> bool:
        return self.loop_state is LoopState.ENDED


class GameLoop:
    """
    The main game loop driver.

    Usage:
        loop = GameLoop(session)
        loop.begin(first_slot=0)
        result = await loop.run()

        if result.end_reason is EndReason.WIN:
            show_winner(result.winning_line)
    """

    def __init__(self, session: Session):
        self.session = session
        self.state = LoopState.INIT
        self.current_slot = 0
        self.winner_slot: int | None = None
        self.end_reason: EndReason | None = None
        self.winning_line: tuple[Position, ...] = ()
        self.last_result: TurnResult | None = None

    @property
    def board(self):
        return self.session.board

    @property
    def timeout(self) -> float:
        return self.session.settings.move_timeout

    def begin(self, first_slot: int) -> None:
        if self.state is not LoopState.INIT:
            raise RuntimeError("Game loop already started")
        if first_slot not in (0, 1):
            raise ValueError(f"Unknown player slot: {first_slot}")
        self.current_slot = first_slot
        self.state = LoopState.AWAITING_MOVE

    async def run(self) -> TurnResult:
        """Drive the game until it ends and return the final result."""
        if self.state is LoopState.INIT:
            raise RuntimeError("Call begin() before run()")
        while self.state is LoopState.AWAITING_MOVE:
            await self.step()
        return self.last_result

    async def step(self) -> TurnResult:
        """Run one AWAITING_MOVE entry and render the transition."""
        self._require_awaiting()
        try:
            result = await self._next_transition()
        except InvalidMove:
            # A bad column fails this call only; the loop keeps waiting on the same actor
            raise
        except Exception as error:
            if isinstance(error, InputClosed) and self.session.is_disposed:
                return self._abort()
            await self.fail(error)

        try:
            await self.session.render(result)
        except TransportError as error:
            await self.fail(error, render=False)
        return result

    def apply(self, column: int) -> TurnResult:
        """Apply the current actor's column to the board."""
        self._require_awaiting()
        slot = self.current_slot

        try:
            win = self.board.apply_move(column, slot)
        except ColumnFull:
            logger.debug("%s: column %d is full, slot %d retries", self.session.key, column, slot)
            return self._record(TurnResult(
                outcome=MoveOutcome.COLUMN_FULL,
                loop_state=self.state,
                slot=slot,
                column=column,
            ))

        position = Position(column, self.board.heights[column] - 1)
        if win.is_win:
            self.board.mark_winning_line(win)
            self.winner_slot = slot
            self.winning_line = win.cells
            self._end(EndReason.WIN)
            return self._record(TurnResult(
                outcome=MoveOutcome.WIN,
                loop_state=self.state,
                slot=slot,
                column=column,
                position=position,
                winning_line=win.cells,
                end_reason=EndReason.WIN,
            ))

        self.current_slot = 1 - slot
        return self._record(TurnResult(
            outcome=MoveOutcome.PLACED,
            loop_state=self.state,
            slot=slot,
            column=column,
            position=position,
        ))

    async def _next_transition(self) -> TurnResult:
        slot = self.current_slot
        if self.board.is_full():
            self._end(EndReason.DRAW)
            return self._record(TurnResult(
                outcome=MoveOutcome.DRAW,
                loop_state=self.state,
                slot=slot,
                end_reason=EndReason.DRAW,
            ))

        actor = self.session.players[slot]
        event = await self.session.input_source.request_move(actor.player_id, self.timeout)

        if isinstance(event, TimeoutEvent):
            logger.info("%s: %s did not move within %ss", self.session.key, actor.name, self.timeout)
            self._end(EndReason.TIMEOUT)
            return self._record(TurnResult(
                outcome=MoveOutcome.TIMEOUT,
                loop_state=self.state,
                slot=slot,
                end_reason=EndReason.TIMEOUT,
            ))
        return self.apply(event.column)

    def _abort(self) -> TurnResult:
        self._end(EndReason.ABORTED)
        return self._record(TurnResult(
            outcome=MoveOutcome.ABORTED,
            loop_state=self.state,
            slot=self.current_slot,
            end_reason=EndReason.ABORTED,
        ))

    async def fail(self, error: Exception, render: bool = True) -> None:
        """End the game with an error, render if possible, then re-raise."""
        logger.error("%s: game ended by %s: %s", self.session.key, type(error).__name__, error)
        self._end(EndReason.ERROR)
        result = self._record(TurnResult(
            outcome=MoveOutcome.ERROR,
            loop_state=self.state,
            slot=self.current_slot,
            end_reason=EndReason.ERROR,
            error=error,
        ))
        if render:
            with contextlib.suppress(TransportError):
                await self.session.render(result)
        raise error

    def _require_awaiting(self) -> None:
        if self.state is LoopState.ENDED:
            raise GameOverError("Game is over - no moves accepted")
        if self.state is LoopState.INIT:
            raise RuntimeError("Game loop has not started")

    def _end(self, reason: EndReason) -> None:
        self.state = LoopState.ENDED
        self.end_reason = reason

    def _record(self, result: TurnResult) -> TurnResult:
        self.last_result = result
        return result
