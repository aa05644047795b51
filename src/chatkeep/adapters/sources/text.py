"""Text and URL helpers shared by the message sources."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from chatkeep.domain.ports import ConversationInfo

if TYPE_CHECKING:
    from collections.abc import Collection

_BLANK_RUN = re.compile(r"\n\s*\n\s*\n")


def formatted_content(text: str) -> str:
    """Trim and collapse runs of blank lines to a single blank line."""

    return _BLANK_RUN.sub("\n\n", text.strip())


def tidy_lines(text: str) -> str:
    """Trim every line; keep an empty line only when it separates two non-empty ones."""

    lines = [line.strip() for line in text.split("\n")]
    kept = [
        line
        for index, line in enumerate(lines)
        if line or (0 < index < len(lines) - 1 and lines[index - 1] and lines[index + 1])
    ]
    return "\n".join(kept).strip()


def host_matches(url: str, *hosts: str) -> bool:
    hostname = urlsplit(url).hostname or ""
    return any(host in hostname for host in hosts)


def url_path(url: str) -> str:
    return urlsplit(url).path


def path_conversation_info(url: str, *, reserved: Collection[str]) -> ConversationInfo:
    """Use the whole path (slashes replaced) as the platform conversation id."""

    path = url_path(url).lstrip("/")
    if not path or path in reserved:
        return ConversationInfo()
    return ConversationInfo(conversation_id=path.replace("/", "_"))
