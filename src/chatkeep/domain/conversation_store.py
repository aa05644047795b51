"""Read-through access to the conversation store.

Every write goes through exactly one unit of work and one commit, so a
conversation is always persisted as a single record.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatkeep.domain.clock import utcnow
from chatkeep.domain.model import Conversation
from chatkeep.domain.reconciliation.metadata import refresh_metadata
from chatkeep.domain.reconciliation.normalize import normalize_messages, reposition

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from chatkeep.domain.cache import ConversationCache
    from chatkeep.domain.clock import Clock
    from chatkeep.domain.model import Message
    from chatkeep.domain.ports import ConversationUnitOfWork

log = logging.getLogger(__name__)


def generate_conversation_id() -> str:
    return f"conv_{uuid.uuid4().hex}"


@dataclass(slots=True)
class ConversationStore:
    unit_of_work_factory: Callable[[], ConversationUnitOfWork]
    cache: ConversationCache | None = None
    clock: Clock = utcnow

    def get(self, conversation_id: str) -> Conversation | None:
        if self.cache is not None:
            cached = self.cache.get(conversation_id)
            if cached is not None:
                log.debug("Conversation %s served from cache", conversation_id)
                return cached

        with self.unit_of_work_factory() as uow:
            conversation = uow.repositories.conversations.get(conversation_id)

        if conversation is not None and self.cache is not None:
            self.cache.set(conversation_id, conversation)
        return conversation

    def find_by_link(self, link: str) -> Conversation | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.conversations.find_by_link(link)

    def find_by_external_id(self, platform: str, external_id: str) -> Conversation | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.conversations.find_by_external_id(platform, external_id)

    def list_all(self) -> Sequence[Conversation]:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.conversations.list_all()

    def put(self, conversation: Conversation) -> None:
        """Persist ``conversation`` as one record; raises ``PersistenceError`` on failure."""

        with self.unit_of_work_factory() as uow:
            uow.repositories.conversations.put(conversation)
            uow.commit()
        if self.cache is not None:
            self.cache.set(conversation.conversation_id, conversation)

    def delete(self, conversation_id: str) -> bool:
        with self.unit_of_work_factory() as uow:
            deleted = uow.repositories.conversations.delete(conversation_id)
            uow.commit()
        if self.cache is not None:
            self.cache.delete(conversation_id)
        return deleted

    def create(
        self,
        *,
        platform: str,
        link: str,
        messages: Sequence[Message],
        title: str | None = None,
        external_id: str | None = None,
    ) -> Conversation:
        now = self.clock()
        normalized = normalize_messages(reposition(messages, 0), now=now)
        conversation = Conversation(
            conversation_id=generate_conversation_id(),
            platform=platform,
            link=link,
            title=title,
            external_id=external_id,
            created_at=now,
            updated_at=now,
            messages=normalized,
        )
        refresh_metadata(conversation, touched=False, now=now)
        self.put(conversation)
        log.info(
            "Created conversation %s for %s with %s messages",
            conversation.conversation_id,
            link,
            conversation.message_count,
        )
        return conversation

