"""Domain port definitions for adapters."""

from __future__ import annotations

from .extraction import ConversationInfo, MessageSource
from .persistence import ConversationNotFoundError, ConversationRepository, PersistenceError
from .unit_of_work import (
    ConversationRepositories,
    ConversationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ConversationInfo",
    "ConversationNotFoundError",
    "ConversationRepositories",
    "ConversationRepository",
    "ConversationUnitOfWork",
    "MessageSource",
    "PersistenceError",
    "RepositoryCollection",
    "UnitOfWork",
]
