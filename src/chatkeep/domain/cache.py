"""Time- and size-bounded read-through cache for conversations.

Eviction on overflow is by insertion order (oldest inserted entry first), not
least-recently-used: reads never refresh an entry's slot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from chatkeep.domain.clock import utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from chatkeep.domain.clock import Clock
    from chatkeep.domain.model import Conversation

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL = timedelta(minutes=5)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheStats:
    total_entries: int
    expired_entries: int

    @property
    def valid_entries(self) -> int:
        return self.total_entries - self.expired_entries


@dataclass(slots=True)
class _Entry:
    value: Conversation
    stored_at: datetime


class ConversationCache:
    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utcnow,
    ) -> None:
        if max_entries < 1:
            raise ValueError("Cache must hold at least one entry")
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Conversation | None:
        entry = self._entries.get(key)
        if entry is None or self._is_expired(entry, self._clock()):
            return None
        return entry.value

    def set(self, key: str, value: Conversation) -> None:
        self.purge_expired()
        # re-inserting moves the key to the newest slot
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            log.debug("Cache full, evicted oldest entry %s", oldest)
        self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("Purged %s expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> CacheStats:
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if self._is_expired(entry, now))
        return CacheStats(total_entries=len(self._entries), expired_entries=expired)

    def _is_expired(self, entry: _Entry, now: datetime) -> bool:
        return now - entry.stored_at >= self.ttl


__all__ = ["DEFAULT_MAX_ENTRIES", "DEFAULT_TTL", "CacheStats", "ConversationCache"]
