"""ChatGPT message source."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from chatkeep.domain.model import Message, Platform, Sender

from .page import PageElement, PageSnapshot, any_of, attribute, css_class, tag
from .text import formatted_content, host_matches, path_conversation_info, url_path

if TYPE_CHECKING:
    from chatkeep.domain.ports import ConversationInfo

log = logging.getLogger(__name__)

HOSTS = ("chatgpt.com", "chat.openai.com")
_CONVERSATION_PATHS = (
    re.compile(r"^/c/[^/]+$"),
    re.compile(r"^/g/[^/]+/c/[^/]+$"),
)
_ROLE_ATTRIBUTE = "data-message-author-role"


class ChatGptSource:
    platform = Platform.CHATGPT

    def is_valid_conversation_url(self, url: str) -> bool:
        if not host_matches(url, *HOSTS):
            return False
        path = url_path(url)
        return any(pattern.match(path) for pattern in _CONVERSATION_PATHS)

    def extract_conversation_info(self, url: str) -> ConversationInfo:
        return path_conversation_info(url, reserved={"c", "chat"})

    def is_message_element(self, element: PageElement) -> bool:
        test_id = element.attribute("data-testid") or ""
        return test_id.startswith("conversation-turn-") or _ROLE_ATTRIBUTE in element.attributes

    def extract_title(self, page: PageSnapshot) -> str | None:
        _ = page
        return None

    def extract_messages(self, page: PageSnapshot) -> list[Message]:
        container = (
            page.find_first(tag("main")) or page.find_first(attribute("role", "main")) or page.body
        )
        if any(article.is_editing() for article in container.find_all(tag("article"))):
            log.debug("User is editing a message, skipping extraction")
            return []

        elements = container.find_all(
            any_of(attribute(_ROLE_ATTRIBUTE, "user"), attribute(_ROLE_ATTRIBUTE, "assistant"))
        )
        messages: list[Message] = []
        for element in elements:
            position = len(messages)
            if element.attribute(_ROLE_ATTRIBUTE) == "user":
                message = self._user_message(element, position)
            else:
                message = self._ai_message(element, position)
            if message is not None:
                messages.append(message)
        log.debug("Extracted %s ChatGPT messages", len(messages))
        return messages

    def _user_message(self, element: PageElement, position: int) -> Message | None:
        text_element = element.find_first(css_class("whitespace-pre-wrap"))
        content = text_element.inner_text().strip() if text_element else ""
        if not content:
            return None
        return Message(sender=Sender.USER, content=content, position=position)

    def _ai_message(self, element: PageElement, position: int) -> Message | None:
        markdown = element.find_first(css_class("markdown", "prose"))
        content = formatted_content(markdown.inner_text()) if markdown else ""
        if not content:
            return None
        return Message(
            sender=Sender.AI,
            content=content,
            position=position,
            thinking=_thinking_text(element),
        )


def _thinking_text(element: PageElement) -> str:
    """Text of the last visible reasoning panel rendered beside the answer."""

    thinking = ""
    for child in element.children:
        if child.tag != "div" or child.has_class("markdown") or child.hidden:
            continue
        if child.has_class("flex") or child.contains(tag("button")):
            continue
        text = child.inner_text().strip()
        if text:
            thinking = text
    return thinking
