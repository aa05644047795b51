"""Conversation metadata derived from the message list."""

from __future__ import annotations

from typing import TYPE_CHECKING

from chatkeep.domain.model import title_from_messages

if TYPE_CHECKING:
    from datetime import datetime

    from chatkeep.domain.model import Conversation


def refresh_metadata(conversation: Conversation, *, touched: bool, now: datetime) -> None:
    """Recompute derived fields in place.

    ``updated_at`` only moves when ``touched`` is set, so a reconciliation that
    changed nothing never looks like a write.
    """

    if touched:
        conversation.updated_at = now

    if conversation.messages:
        last = conversation.messages[-1]
        conversation.last_message_at = last.updated_at or last.created_at

    if not conversation.title:
        conversation.title = title_from_messages(conversation.messages)
