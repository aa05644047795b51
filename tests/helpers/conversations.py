"""Reusable fakes and builders for conversation tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from chatkeep.domain.conversation_store import ConversationStore
from chatkeep.domain.model import Conversation, Message, Sender
from chatkeep.domain.ports import ConversationRepositories, PersistenceError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from chatkeep.domain.cache import ConversationCache

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def make_message(
    content: str,
    position: int,
    *,
    sender: Sender = Sender.USER,
    thinking: str = "",
) -> Message:
    """Create a raw captured message (no identifier, no timestamps)."""

    return Message(sender=sender, content=content, position=position, thinking=thinking)


def make_turns(labels: Iterable[str], *, start: int = 0) -> list[Message]:
    """Alternate user and AI turns with the given contents, starting at ``start``."""

    return [
        make_message(
            label,
            start + index,
            sender=Sender.USER if (start + index) % 2 == 0 else Sender.AI,
        )
        for index, label in enumerate(labels)
    ]


def labels(messages: Sequence[Message]) -> list[str]:
    return [message.content for message in messages]


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeConversationRepository:
    """In-memory whole-record store that copies on the way in and out."""

    def __init__(self, initial: Iterable[Conversation] | None = None) -> None:
        self.items: dict[str, Conversation] = {}
        self.put_calls = 0
        self.get_calls = 0
        self.fail_puts = False
        for conversation in initial or ():
            self.items[conversation.conversation_id] = _copy(conversation)

    def get(self, conversation_id: str) -> Conversation | None:
        self.get_calls += 1
        stored = self.items.get(conversation_id)
        return _copy(stored) if stored is not None else None

    def put(self, conversation: Conversation) -> None:
        self.put_calls += 1
        if self.fail_puts:
            raise PersistenceError("disk full")
        self.items[conversation.conversation_id] = _copy(conversation)

    def find_by_link(self, link: str) -> Conversation | None:
        for conversation in self.items.values():
            if conversation.link == link:
                return _copy(conversation)
        return None

    def find_by_external_id(self, platform: str, external_id: str) -> Conversation | None:
        for conversation in self.items.values():
            if conversation.platform == platform and conversation.external_id == external_id:
                return _copy(conversation)
        return None

    def list_all(self) -> list[Conversation]:
        return [_copy(conversation) for conversation in self.items.values()]

    def delete(self, conversation_id: str) -> bool:
        return self.items.pop(conversation_id, None) is not None


class FakeConversationUnitOfWork:
    def __init__(self, repository: FakeConversationRepository) -> None:
        self.repositories = ConversationRepositories(conversations=repository)
        self.commits = 0
        self.rollback_called = False

    def __enter__(self) -> FakeConversationUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollback_called = True


def make_fake_store(
    repository: FakeConversationRepository | None = None,
    *,
    cache: ConversationCache | None = None,
    clock: ManualClock | None = None,
) -> tuple[ConversationStore, FakeConversationRepository]:
    repo = repository or FakeConversationRepository()
    store = ConversationStore(
        unit_of_work_factory=lambda: FakeConversationUnitOfWork(repo),
        cache=cache,
        clock=clock or ManualClock(),
    )
    return store, repo


def _copy(conversation: Conversation) -> Conversation:
    return replace(conversation, messages=list(conversation.messages))


if TYPE_CHECKING:
    from chatkeep.domain.ports import ConversationRepository, ConversationUnitOfWork

    _check_repo: ConversationRepository = FakeConversationRepository()
    _check_uow: ConversationUnitOfWork = FakeConversationUnitOfWork(FakeConversationRepository())
