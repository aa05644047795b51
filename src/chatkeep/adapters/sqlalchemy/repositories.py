"""Conversation repository backed by a SQLAlchemy session."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from chatkeep.adapters.sqlalchemy.mappings import conversation_table, message_table
from chatkeep.domain.model import Conversation, Message, Sender
from chatkeep.domain.ports.persistence import PersistenceError
from chatkeep.domain.reconciliation.normalize import derive_message_id

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import RowMapping, Select
    from sqlalchemy.orm import Session


class SqlAlchemyConversationRepository:
    """Whole-record conversation store.

    ``put`` rewrites the conversation row and its complete message list; the
    surrounding unit of work decides when the write becomes visible.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, conversation_id: str) -> Conversation | None:
        return self._load_one(
            select(conversation_table).where(conversation_table.c.id == conversation_id)
        )

    def find_by_link(self, link: str) -> Conversation | None:
        return self._load_one(
            select(conversation_table)
            .where(conversation_table.c.link == link)
            .order_by(conversation_table.c.created_at)
            .limit(1)
        )

    def find_by_external_id(self, platform: str, external_id: str) -> Conversation | None:
        return self._load_one(
            select(conversation_table)
            .where(conversation_table.c.platform == platform)
            .where(conversation_table.c.external_id == external_id)
            .order_by(conversation_table.c.created_at)
            .limit(1)
        )

    def list_all(self) -> Sequence[Conversation]:
        stmt = select(conversation_table).order_by(conversation_table.c.updated_at.desc())
        try:
            rows = self.session.execute(stmt).mappings().all()
            return [self._to_conversation(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not list conversations: {exc}") from exc

    def put(self, conversation: Conversation) -> None:
        values = _conversation_values(conversation)
        try:
            exists = self.session.execute(
                select(conversation_table.c.id).where(
                    conversation_table.c.id == conversation.conversation_id
                )
            ).first()
            if exists is None:
                self.session.execute(insert(conversation_table).values(**values))
            else:
                self.session.execute(
                    update(conversation_table)
                    .where(conversation_table.c.id == conversation.conversation_id)
                    .values(**values)
                )
            self.session.execute(
                delete(message_table).where(
                    message_table.c.conversation_id == conversation.conversation_id
                )
            )
            if conversation.messages:
                self.session.execute(
                    insert(message_table),
                    [
                        _message_values(conversation.conversation_id, message)
                        for message in conversation.messages
                    ],
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Could not save conversation {conversation.conversation_id}: {exc}"
            ) from exc

    def delete(self, conversation_id: str) -> bool:
        try:
            self.session.execute(
                delete(message_table).where(message_table.c.conversation_id == conversation_id)
            )
            result = self.session.execute(
                delete(conversation_table).where(conversation_table.c.id == conversation_id)
            )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete conversation {conversation_id}: {exc}") from exc
        return bool(getattr(result, "rowcount", 0))

    def _load_one(self, stmt: Select[Any]) -> Conversation | None:
        try:
            row = self.session.execute(stmt).mappings().first()
            if row is None:
                return None
            return self._to_conversation(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load conversation: {exc}") from exc

    def _to_conversation(self, row: RowMapping) -> Conversation:
        stmt = (
            select(message_table)
            .where(message_table.c.conversation_id == row["id"])
            .order_by(message_table.c.position)
        )
        messages = [_to_message(message_row) for message_row in self.session.execute(stmt).mappings()]
        return Conversation(
            conversation_id=row["id"],
            platform=row["platform"],
            link=row["link"],
            title=row["title"],
            external_id=row["external_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            last_message_at=row["last_message_at"],
            messages=messages,
        )


def _conversation_values(conversation: Conversation) -> dict[str, object]:
    return {
        "id": conversation.conversation_id,
        "platform": conversation.platform,
        "link": conversation.link,
        "title": conversation.title,
        "external_id": conversation.external_id,
        "created_at": conversation.created_at,
        "updated_at": conversation.updated_at,
        "last_message_at": conversation.last_message_at,
        "message_count": conversation.message_count,
    }


def _message_values(conversation_id: str, message: Message) -> dict[str, object]:
    return {
        "conversation_id": conversation_id,
        "position": message.position,
        "message_id": message.message_id or derive_message_id(message.sender, message.position),
        "sender": Sender(message.sender),
        "content": message.content,
        "thinking": message.thinking,
        "created_at": message.created_at,
        "updated_at": message.updated_at,
    }


def _to_message(row: RowMapping) -> Message:
    return Message(
        sender=Sender(row["sender"]),
        content=row["content"],
        position=row["position"],
        thinking=row["thinking"] or "",
        message_id=row["message_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
