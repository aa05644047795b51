"""Per-key single-flight guard for coroutine work."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Hashable

log = logging.getLogger(__name__)


class SingleFlight[K: Hashable, T]:
    """At most one in-flight task per key; concurrent callers share its result.

    The key is released when the task completes (successfully or not).
    ``reset`` forgets in-flight handles without cancelling them, so a later
    call for a dropped key starts fresh work.
    """

    def __init__(self) -> None:
        self._flights: dict[K, asyncio.Task[T]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._flights

    def __len__(self) -> int:
        return len(self._flights)

    async def run(self, key: K, work: Callable[[], Coroutine[Any, Any, T]]) -> T:
        task = self._flights.get(key)
        if task is None:
            task = asyncio.ensure_future(work())
            self._flights[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        else:
            log.debug("Joining in-flight operation for %s", key)
        return await asyncio.shield(task)

    def reset(self, *, keep: K | None = None) -> None:
        for key in [key for key in self._flights if key != keep]:
            del self._flights[key]

    def _release(self, key: K, task: asyncio.Task[T]) -> None:
        if self._flights.get(key) is task:
            del self._flights[key]
