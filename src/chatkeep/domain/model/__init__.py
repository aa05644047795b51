"""Domain model for captured conversations."""

from __future__ import annotations

from .conversation import TITLE_MAX_LENGTH, Conversation, title_from_messages, truncate_title
from .enums import Platform, Sender
from .message import Message

__all__ = [
    "TITLE_MAX_LENGTH",
    "Conversation",
    "Message",
    "Platform",
    "Sender",
    "title_from_messages",
    "truncate_title",
]
