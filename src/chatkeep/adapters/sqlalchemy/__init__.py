"""SQLAlchemy adapter package for chatkeep."""

from __future__ import annotations

from .mappings import conversation_table, message_table, metadata
from .repositories import SqlAlchemyConversationRepository
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyConversationRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "conversation_table",
    "message_table",
    "metadata",
    "shutdown",
    "startup",
]
