"""Partition a stored sub-range against a captured list into change sets.

Matching runs in two passes so that a fingerprint fallback never steals a
stored entry that another captured message matches by identifier:

1) derived identifier (positional, valid once positions are corrected)
2) fingerprint equality among stored entries still unmatched
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import TYPE_CHECKING

from chatkeep.domain.clock import utcnow

from .contracts import MessageChanges, MessageUpdate
from .fingerprint import fingerprint
from .normalize import derive_message_id, normalize_message

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from chatkeep.domain.model import Message

log = logging.getLogger(__name__)


def message_key(message: Message) -> str:
    return message.message_id or derive_message_id(message.sender, message.position)


def diff_messages(
    captured: Sequence[Message],
    stored_range: Sequence[Message],
    *,
    now: datetime | None = None,
) -> MessageChanges:
    stamp = now or utcnow()
    current = [normalize_message(message, now=stamp) for message in captured]

    index_by_key: dict[str, int] = {}
    indexes_by_fingerprint: dict[str, list[int]] = defaultdict(list)
    for index, stored in enumerate(stored_range):
        index_by_key.setdefault(message_key(stored), index)
        indexes_by_fingerprint[fingerprint(stored)].append(index)

    matches: dict[int, int] = {}
    claimed: set[int] = set()
    for captured_index, message in enumerate(current):
        stored_index = index_by_key.get(message_key(message))
        if stored_index is not None and stored_index not in claimed:
            matches[captured_index] = stored_index
            claimed.add(stored_index)

    for captured_index, message in enumerate(current):
        if captured_index in matches:
            continue
        for stored_index in indexes_by_fingerprint.get(fingerprint(message), ()):
            if stored_index not in claimed:
                matches[captured_index] = stored_index
                claimed.add(stored_index)
                break

    new: list[Message] = []
    updated: list[MessageUpdate] = []
    unchanged: list[Message] = []
    for captured_index, message in enumerate(current):
        stored_index = matches.get(captured_index)
        if stored_index is None:
            new.append(message)
            continue
        stored = stored_range[stored_index]
        if _differs(message, stored):
            updated.append(
                MessageUpdate(
                    previous=stored,
                    current=replace(
                        message,
                        message_id=derive_message_id(message.sender, message.position),
                        created_at=stored.created_at or message.created_at,
                        updated_at=stamp,
                    ),
                )
            )
        else:
            unchanged.append(stored)

    removed = [
        stored for index, stored in enumerate(stored_range) if index not in claimed
    ]

    changes = MessageChanges(
        new=tuple(new),
        updated=tuple(updated),
        removed=tuple(removed),
        unchanged=tuple(unchanged),
    )
    log.debug("Diff computed: %s", changes.summary())
    return changes


def merge_changes(stored_range: Sequence[Message], changes: MessageChanges) -> list[Message]:
    """Apply removals, replacements and additions, ordered by position."""

    dropped = {message_key(message) for message in changes.removed}
    dropped.update(message_key(update.previous) for update in changes.updated)

    merged = [message for message in stored_range if message_key(message) not in dropped]
    merged.extend(changes.updated_messages)
    merged.extend(changes.new)
    merged.sort(key=lambda message: message.position)
    return merged


def _differs(current: Message, stored: Message) -> bool:
    return (
        current.content != stored.content
        or current.thinking != stored.thinking
        or current.position != stored.position
    )


__all__ = ["diff_messages", "merge_changes", "message_key"]
