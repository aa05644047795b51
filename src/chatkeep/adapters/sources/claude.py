"""Claude message source.

Only the formal reply is captured; collapsible thinking blocks are skipped.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from chatkeep.domain.model import Message, Platform, Sender

from .page import attribute, css_class, tag
from .text import host_matches, path_conversation_info, tidy_lines, url_path

if TYPE_CHECKING:
    from chatkeep.domain.ports import ConversationInfo

    from .page import PageElement, PageSnapshot

log = logging.getLogger(__name__)

HOSTS = ("claude.ai",)
_CONVERSATION_PATH = re.compile(r"^/chat/.*$")
_RENDER_COUNT_ATTRIBUTE = "data-test-render-count"


class ClaudeSource:
    platform = Platform.CLAUDE

    def is_valid_conversation_url(self, url: str) -> bool:
        return host_matches(url, *HOSTS) and bool(_CONVERSATION_PATH.match(url_path(url)))

    def extract_conversation_info(self, url: str) -> ConversationInfo:
        return path_conversation_info(url, reserved={"chat"})

    def is_message_element(self, element: PageElement) -> bool:
        return _RENDER_COUNT_ATTRIBUTE in element.attributes

    def extract_title(self, page: PageSnapshot) -> str | None:
        _ = page
        return None

    def extract_messages(self, page: PageSnapshot) -> list[Message]:
        containers = page.find_all(attribute(_RENDER_COUNT_ATTRIBUTE))
        if any(container.is_editing() for container in containers):
            log.debug("User is editing a message, skipping extraction")
            return []

        messages: list[Message] = []
        for container in containers:
            sender: Sender | None = None
            content = ""
            user_message = container.find_first(attribute("data-testid", "user-message"))
            if user_message is not None:
                sender = Sender.USER
                content = tidy_lines(user_message.inner_text())
            reply = container.find_first(css_class("font-claude-response"))
            if reply is not None:
                sender = Sender.AI
                content = _formal_response(reply)
            if sender is not None and content:
                messages.append(Message(sender=sender, content=content, position=len(messages)))
        log.debug("Extracted %s Claude messages", len(messages))
        return messages


def _formal_response(reply: PageElement) -> str:
    parts = [
        text
        for child in reply.children
        if not _is_thinking_block(child) and (text := tidy_lines(child.inner_text()))
    ]
    return "\n\n".join(parts).strip()


def _is_thinking_block(element: PageElement) -> bool:
    collapsible = element.has_class("transition-all", "rounded-lg") and (
        element.has_class("border-0.5") or element.has_class("border")
    )
    return collapsible or element.contains(
        lambda child: child.tag == "button" and "aria-expanded" in child.attributes
    )
