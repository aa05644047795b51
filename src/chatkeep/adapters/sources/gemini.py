"""Gemini message source.

Each ``.conversation-container`` block holds one user query and one model
response, in that order.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from chatkeep.domain.model import Message, Platform, Sender, truncate_title
from chatkeep.domain.ports import ConversationInfo

from .page import any_of, attribute, css_class, element_id, tag
from .text import host_matches, tidy_lines, url_path

if TYPE_CHECKING:
    from .page import PageElement, PageSnapshot

log = logging.getLogger(__name__)

HOSTS = ("gemini.google.com",)
_CONVERSATION_PATHS = (
    re.compile(r"^/gem/[^/]+/[^/]+$"),
    re.compile(r"^/app/[^/]+$"),
    re.compile(r"^/[^/]+/[^/]+/app/[^/]+$"),
    re.compile(r"^/[^/]+/[^/]+/gem/[^/]+/[^/]+$"),
)
_EMPTY_PAGE_PATHS = (
    re.compile(r"^/app$"),
    re.compile(r"^/gem/[^/]+$"),
    re.compile(r"^/[^/]+/[^/]+/app$"),
    re.compile(r"^/[^/]+/[^/]+/gem/[^/]+$"),
)
_GENERIC_TITLES = ("Gemini",)

_is_block = css_class("conversation-container")
_is_turn = any_of(tag("user-query"), tag("model-response"))


class GeminiSource:
    platform = Platform.GEMINI

    def is_valid_conversation_url(self, url: str) -> bool:
        if not host_matches(url, *HOSTS):
            return False
        path = url_path(url)
        if any(pattern.match(path) for pattern in _EMPTY_PAGE_PATHS):
            return False
        return any(pattern.match(path) for pattern in _CONVERSATION_PATHS)

    def extract_conversation_info(self, url: str) -> ConversationInfo:
        path = url_path(url).lstrip("/")
        segments = path.split("/")
        found = (
            (len(segments) >= 2 and segments[0] == "app" and segments[1])
            or (len(segments) >= 3 and segments[0] == "gem" and segments[2])
            or (len(segments) >= 4 and segments[2] == "app" and segments[3])
            or (len(segments) >= 5 and segments[2] == "gem" and segments[4])
        )
        if not found:
            return ConversationInfo()
        return ConversationInfo(conversation_id=path.replace("/", "_"))

    def is_message_element(self, element: PageElement) -> bool:
        if _is_block(element) or _is_turn(element):
            return True
        return element.contains(
            any_of(_is_turn, css_class("query-text"), tag("message-content"))
        )

    def extract_title(self, page: PageSnapshot) -> str | None:
        title = (page.title or "").strip()
        if title and title not in _GENERIC_TITLES and "Google" not in title:
            return truncate_title(title)
        first_query = page.find_first(attribute("data-test-id", "user-message"))
        if first_query is not None and (text := first_query.inner_text().strip()):
            return truncate_title(text)
        return None

    def extract_messages(self, page: PageSnapshot) -> list[Message]:
        history = page.find_first(element_id("chat-history"))
        if history is None:
            return []
        blocks = history.find_all(_is_block)
        if any(block.is_editing() for block in blocks):
            log.debug("User is editing a message, skipping extraction")
            return []

        messages: list[Message] = []
        for block in blocks:
            query = block.select(tag("user-query"), css_class("query-text"))
            if query is not None and (content := tidy_lines(query.inner_text())):
                messages.append(
                    Message(sender=Sender.USER, content=content, position=len(messages))
                )
            response = block.select(tag("model-response"), css_class("model-response-text"))
            if response is not None and (content := tidy_lines(response.inner_text())):
                messages.append(
                    Message(sender=Sender.AI, content=content, position=len(messages))
                )
        log.debug("Extracted %s Gemini messages", len(messages))
        return messages
