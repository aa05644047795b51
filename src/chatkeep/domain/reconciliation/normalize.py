"""Canonicalisation of raw captured turns into normalized messages."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from chatkeep.domain.clock import ensure_utc, utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from chatkeep.domain.model import Message, Sender


def derive_message_id(sender: Sender | str, position: int) -> str:
    return f"msg_{sender}_position_{position}"


def normalize_message(message: Message, *, now: datetime | None = None) -> Message:
    """Fill in identifier and timestamps.

    ``created_at`` defaults to ``now``, ``updated_at`` to ``created_at`` and the
    identifier to ``derive_message_id(sender, position)``. Values already set are
    kept, so normalizing a normalized message returns an equal message.
    """

    created_at = ensure_utc(message.created_at) if message.created_at else None
    if created_at is None:
        created_at = ensure_utc(now) if now is not None else utcnow()
    updated_at = ensure_utc(message.updated_at) if message.updated_at else created_at
    message_id = message.message_id or derive_message_id(message.sender, message.position)

    return replace(
        message,
        message_id=message_id,
        created_at=created_at,
        updated_at=updated_at,
    )


def normalize_messages(
    messages: Sequence[Message],
    *,
    now: datetime | None = None,
) -> list[Message]:
    stamp = now or utcnow()
    return [normalize_message(message, now=stamp) for message in messages]


def reposition(messages: Sequence[Message], offset: int) -> list[Message]:
    """Recompute positions and identifiers as if the list started at ``offset``."""

    corrected: list[Message] = []
    for index, message in enumerate(messages):
        position = offset + index
        corrected.append(
            replace(
                message,
                position=position,
                message_id=derive_message_id(message.sender, position),
            )
        )
    return corrected


__all__ = ["derive_message_id", "normalize_message", "normalize_messages", "reposition"]
