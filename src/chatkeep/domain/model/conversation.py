"""Conversation aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chatkeep.domain.model.enums import Sender

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from chatkeep.domain.model.message import Message

TITLE_MAX_LENGTH = 50


@dataclass(eq=False, kw_only=True)
class Conversation:
    """A persisted, ordered collection of messages tied to one source session.

    The message list is always replaced as a whole; insertion order is the
    conversational order.
    """

    conversation_id: str
    platform: str
    link: str
    created_at: datetime
    updated_at: datetime
    title: str | None = None
    external_id: str | None = None
    last_message_at: datetime | None = None
    messages: list[Message] = field(default_factory=list["Message"])

    @property
    def message_count(self) -> int:
        return len(self.messages)


def truncate_title(text: str) -> str:
    if len(text) > TITLE_MAX_LENGTH:
        return text[:TITLE_MAX_LENGTH] + "..."
    return text


def title_from_messages(messages: Sequence[Message]) -> str | None:
    """Derive a title from the first user message, truncated like the capture UI does."""

    for message in messages:
        if message.sender == Sender.USER:
            return truncate_title(message.content)
    return None
