"""URL-pattern dispatch from a page URL to its message source."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chatkeep.domain.model import Platform

from . import chatgpt, claude, deepseek, gemini
from .chatgpt import ChatGptSource
from .claude import ClaudeSource
from .deepseek import DeepSeekSource
from .gemini import GeminiSource
from .text import host_matches

if TYPE_CHECKING:
    from collections.abc import Callable

    from .page import PageElement, PageSnapshot

log = logging.getLogger(__name__)


class UnsupportedPageError(LookupError):
    """Raised when no message source handles a URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"No message source for {url}")


type PageSource = ChatGptSource | ClaudeSource | GeminiSource | DeepSeekSource

SOURCE_TABLE: tuple[tuple[tuple[str, ...], Platform, Callable[[], PageSource]], ...] = (
    (chatgpt.HOSTS, Platform.CHATGPT, ChatGptSource),
    (claude.HOSTS, Platform.CLAUDE, ClaudeSource),
    (gemini.HOSTS, Platform.GEMINI, GeminiSource),
    (deepseek.HOSTS, Platform.DEEPSEEK, DeepSeekSource),
)


def resolve_source(url: str) -> PageSource:
    for hosts, platform, factory in SOURCE_TABLE:
        if host_matches(url, *hosts):
            log.debug("Resolved %s to the %s source", url, platform)
            return factory()
    raise UnsupportedPageError(url)


if TYPE_CHECKING:
    from chatkeep.domain.ports import MessageSource

    _source_checks: tuple[MessageSource[PageSnapshot, PageElement], ...] = (
        ChatGptSource(),
        ClaudeSource(),
        GeminiSource(),
        DeepSeekSource(),
    )
