"""Ports for persisting conversations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chatkeep.domain.model import Conversation


class PersistenceError(RuntimeError):
    """Raised by store adapters when a whole-record read or write fails."""


class ConversationNotFoundError(LookupError):
    """Raised when reconciling against a conversation that does not exist."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


@runtime_checkable
class ConversationRepository(Protocol):
    """Whole-record persistence contract for conversations.

    ``put`` replaces the conversation's metadata and its complete message list;
    there are no partial-field updates.
    """

    def get(self, conversation_id: str) -> Conversation | None: ...

    def put(self, conversation: Conversation) -> None: ...

    def find_by_link(self, link: str) -> Conversation | None: ...

    def find_by_external_id(self, platform: str, external_id: str) -> Conversation | None: ...

    def list_all(self) -> Sequence[Conversation]: ...

    def delete(self, conversation_id: str) -> bool: ...
