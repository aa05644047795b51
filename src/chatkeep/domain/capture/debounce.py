"""Quiescence-window scheduler for raw change notifications."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

log = logging.getLogger(__name__)


class Debouncer:
    """Coalesce bursts of notifications into single triggers.

    Every ``notify`` cancels the pending timer and starts a new one; only when
    ``delay`` seconds pass without a notification is a trigger put on the
    channel consumed by ``triggers()``.
    """

    def __init__(self, delay: float) -> None:
        if delay < 0:
            raise ValueError("Debounce delay must be non-negative")
        self.delay = delay
        self._timer: asyncio.TimerHandle | None = None
        self._channel: asyncio.Queue[int | None] = asyncio.Queue()
        self._fired = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def notify(self) -> None:
        if self._closed:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.cancel()
        self._channel.put_nowait(None)

    async def triggers(self) -> AsyncIterator[int]:
        while True:
            trigger = await self._channel.get()
            if trigger is None:
                return
            yield trigger

    def _fire(self) -> None:
        self._timer = None
        self._fired += 1
        log.debug("Quiescence reached, emitting trigger %s", self._fired)
        self._channel.put_nowait(self._fired)
