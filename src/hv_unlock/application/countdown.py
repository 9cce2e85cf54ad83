"""Cancellable per-unlock undo countdown.

The timer only tells in-process callers when an unlock has become final.
It never decides eligibility: UnlockEngine.undo always compares against the
stored refund_expires_at, so a timer firing concurrently with an undo
cannot change the outcome.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from src.hv_common.datetime_utils import utc_now
from src.hv_unlock.domain.models import UndoHandle

logger = logging.getLogger(__name__)

OnFinal = Callable[[UndoHandle], Awaitable[None] | None]


class UndoCountdown:
    def __init__(
        self,
        handle: UndoHandle,
        on_final: OnFinal | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.handle = handle
        self._on_final = on_final
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._finalized = False

    def start(self) -> "UndoCountdown":
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(), name=f"undo-countdown-{self.handle.song_id}"
            )
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    def seconds_remaining(self) -> float:
        return self.handle.seconds_remaining(self._clock())

    def cancel(self) -> bool:
        """Stop the timer. False if it already fired or was never started."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    async def wait(self) -> None:
        """Block until the countdown fires or is cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _run(self) -> None:
        await asyncio.sleep(self.seconds_remaining())
        self._finalized = True
        if self._on_final is None:
            return
        try:
            result = self._on_final(self.handle)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("on_final callback failed for song %s", self.handle.song_id)


class CountdownRegistry:
    """Live countdowns keyed by (user_id, song_id); entries leave on fire or cancel."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._countdowns: dict[tuple[str, str], UndoCountdown] = {}

    def __len__(self) -> int:
        return len(self._countdowns)

    def get(self, user_id: str, song_id: str) -> UndoCountdown | None:
        return self._countdowns.get((user_id, song_id))

    def start(self, user_id: str, handle: UndoHandle) -> UndoCountdown:
        key = (user_id, handle.song_id)
        previous = self._countdowns.pop(key, None)
        if previous is not None:
            previous.cancel()

        def _finalize(h: UndoHandle) -> None:
            self._countdowns.pop(key, None)
            logger.info("Unlock final: user=%s song=%s", user_id, h.song_id)

        countdown = UndoCountdown(handle, on_final=_finalize, clock=self._clock).start()
        self._countdowns[key] = countdown
        return countdown

    def cancel(self, user_id: str, song_id: str) -> bool:
        countdown = self._countdowns.pop((user_id, song_id), None)
        return countdown.cancel() if countdown is not None else False

    def cancel_all(self) -> None:
        for countdown in self._countdowns.values():
            countdown.cancel()
        self._countdowns.clear()
