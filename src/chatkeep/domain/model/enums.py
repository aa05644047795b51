"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Sender(StrEnum):
    USER = "user"
    AI = "AI"


class Platform(StrEnum):
    CHATGPT = "chatgpt"
    CLAUDE = "claude"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"
