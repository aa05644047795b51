"""DeepSeek message source.

The chat window re-renders turns while streaming, so the same turn can show
up twice in one snapshot. Duplicates are dropped with a context-aware key:
the turn's fingerprint plus a digest of the preceding turn of the other
sender.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from chatkeep.domain.model import Message, Platform, Sender, truncate_title
from chatkeep.domain.reconciliation import FINGERPRINT_LENGTH, content_digest

from .page import any_of, css_class
from .text import formatted_content, host_matches, path_conversation_info, url_path

if TYPE_CHECKING:
    from chatkeep.domain.ports import ConversationInfo

    from .page import PageElement, PageSnapshot

log = logging.getLogger(__name__)

HOSTS = ("chat.deepseek.com",)
_CONVERSATION_PATH = re.compile(r"^/a/chat/s/[^/]+$")
CONTEXT_LENGTH = 50

_chat_window = css_class("dad65929")
_user_turn = css_class("_9663006")
_ai_turn = css_class("_4f9bf79", "_43c05b5")
_user_text = css_class("fbb737a4")
_markdown = any_of(css_class("ds-markdown"), css_class("ds-markdown--block"))
_paragraph = css_class("ds-markdown-paragraph")
_thinking = css_class("e1675d8b")


def _loose_thinking(element: PageElement) -> bool:
    return element.tag == "div" and any(
        "thinking" in name or "thought" in name for name in element.classes
    )


class DeepSeekSource:
    platform = Platform.DEEPSEEK

    def is_valid_conversation_url(self, url: str) -> bool:
        return host_matches(url, *HOSTS) and bool(_CONVERSATION_PATH.match(url_path(url)))

    def extract_conversation_info(self, url: str) -> ConversationInfo:
        return path_conversation_info(url, reserved={"a", "chat"})

    def is_message_element(self, element: PageElement) -> bool:
        if _user_turn(element) or _ai_turn(element):
            return True
        return element.contains(any_of(_paragraph, _thinking))

    def extract_title(self, page: PageSnapshot) -> str | None:
        window = page.find_first(_chat_window)
        if window is None:
            return None
        first_query = window.select(_user_turn, _user_text)
        if first_query is None:
            return None
        return truncate_title(first_query.inner_text().strip())

    def extract_messages(self, page: PageSnapshot) -> list[Message]:
        window = page.find_first(_chat_window)
        if window is None:
            return []
        turns = window.find_all(any_of(_user_turn, _ai_turn))
        if any(turn.is_editing() for turn in turns):
            log.debug("User is editing a message, skipping extraction")
            return []

        messages: list[Message] = []
        seen: set[str] = set()
        for index, turn in enumerate(turns):
            if _user_turn(turn):
                sender = Sender.USER
                text_element = turn.find_first(_user_text)
                content = text_element.inner_text().strip() if text_element else ""
                thinking = ""
            else:
                sender = Sender.AI
                thinking = _thinking_text(turn)
                content = _reply_text(turn, thinking)
            if not content:
                continue

            key = context_key(sender, content, messages)
            if key in seen:
                log.debug("Dropping re-rendered duplicate of turn %s", index)
                continue
            seen.add(key)
            messages.append(
                Message(
                    sender=sender,
                    content=content,
                    position=len(messages),
                    thinking=thinking,
                )
            )
        log.debug("Extracted %s DeepSeek messages", len(messages))
        return messages


def context_key(sender: Sender, content: str, previous: list[Message]) -> str:
    """Dedup key of a turn given the turns already accepted before it."""

    other = Sender.AI if sender == Sender.USER else Sender.USER
    context = next(
        (message.content[:CONTEXT_LENGTH] for message in reversed(previous) if message.sender == other),
        "",
    )
    return f"{sender}:{content[:FINGERPRINT_LENGTH]}:ctx_{content_digest(context)}"


def _thinking_text(turn: PageElement) -> str:
    element = turn.find_first(_thinking) or turn.find_first(_loose_thinking)
    return element.inner_text().strip() if element else ""


def _reply_text(turn: PageElement, thinking: str) -> str:
    markdown = turn.find_first(_markdown)
    if markdown is not None:
        return formatted_content(markdown.inner_text())

    paragraphs = [
        text for paragraph in turn.find_all(_paragraph) if (text := paragraph.inner_text().strip())
    ]
    if paragraphs:
        return "\n".join(paragraphs)

    text = turn.inner_text().strip()
    if thinking and thinking in text:
        return text.replace(thinking, "", 1).strip()
    return text
