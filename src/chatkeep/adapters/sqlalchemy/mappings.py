"""SQLAlchemy Core tables for persisted conversations."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from chatkeep.domain.model import Sender


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def sender_column_type() -> Enum:
    return Enum(
        Sender,
        native_enum=False,
        length=16,
        values_callable=lambda members: [member.value for member in members],
    )


conversation_table = Table(
    "conversation",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("platform", String(32), nullable=False),
    Column("link", String, nullable=False),
    Column("title", String, nullable=True),
    Column("external_id", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("last_message_at", UTCDateTime(), nullable=True),
    Column("message_count", Integer, nullable=False, default=0),
    Index("ix_conversation_link", "link"),
    Index("ix_conversation_platform_external_id", "platform", "external_id"),
)

message_table = Table(
    "message",
    metadata,
    Column(
        "conversation_id",
        String(64),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("position", Integer, primary_key=True, autoincrement=False),
    Column("message_id", String, nullable=False),
    Column("sender", sender_column_type(), nullable=False),
    Column("content", Text, nullable=False),
    Column("thinking", Text, nullable=False, default=""),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
)
