"""Capability contract for platform-specific message extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from chatkeep.domain.model import Message


@dataclass(frozen=True, slots=True)
class ConversationInfo:
    """Identity hints extracted from a conversation URL."""

    conversation_id: str | None = None
    is_new_conversation: bool = False


@runtime_checkable
class MessageSource[TPage, TElement](Protocol):
    """Turns a rendered page into an ordered list of raw turns.

    Implementations must be safe to call repeatedly. Only content and relative
    order of the returned messages are meaningful; identifiers are positional.
    """

    @property
    def platform(self) -> str: ...

    def is_valid_conversation_url(self, url: str) -> bool: ...

    def extract_conversation_info(self, url: str) -> ConversationInfo: ...

    def extract_messages(self, page: TPage) -> list[Message]: ...

    def is_message_element(self, element: TElement) -> bool: ...

    def extract_title(self, page: TPage) -> str | None: ...
