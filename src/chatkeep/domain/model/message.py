"""Captured conversational turns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from chatkeep.domain.model.enums import Sender


@dataclass(frozen=True, kw_only=True)
class Message:
    """One utterance in a conversation.

    ``message_id`` is positional (derived from sender and position) and is
    regenerated whenever the position shifts. Raw captures may leave the
    identifier and timestamps unset; see ``reconciliation.normalize``.
    """

    sender: Sender
    content: str
    position: int
    thinking: str = ""
    message_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_normalized(self) -> bool:
        return (
            self.message_id is not None
            and self.created_at is not None
            and self.updated_at is not None
        )
