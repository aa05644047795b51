"""Platform message sources reading rendered page snapshots."""

from __future__ import annotations

from .chatgpt import ChatGptSource
from .claude import ClaudeSource
from .deepseek import DeepSeekSource
from .gemini import GeminiSource
from .page import PageElement, PageSnapshot
from .registry import SOURCE_TABLE, UnsupportedPageError, resolve_source

__all__ = [
    "SOURCE_TABLE",
    "ChatGptSource",
    "ClaudeSource",
    "DeepSeekSource",
    "GeminiSource",
    "PageElement",
    "PageSnapshot",
    "UnsupportedPageError",
    "resolve_source",
]
