from __future__ import annotations

from chatkeep.adapters.sources.text import (
    formatted_content,
    host_matches,
    path_conversation_info,
    tidy_lines,
)
from chatkeep.domain.ports import ConversationInfo


def test_formatted_content_collapses_blank_runs() -> None:
    assert formatted_content("  a\n\n\n\nb\n \n \nc  ") == "a\n\nb\n\nc"
    assert formatted_content("a\n\nb") == "a\n\nb"


def test_tidy_lines_trims_and_keeps_single_separators() -> None:
    assert tidy_lines("  one  \n\n  two\n\n\nthree\n") == "one\n\ntwo\nthree"


def test_host_matches_hostname_only() -> None:
    assert host_matches("https://chatgpt.com/c/1", "chatgpt.com")
    assert not host_matches("https://example.com/?next=chatgpt.com", "chatgpt.com")


def test_path_conversation_info() -> None:
    info = path_conversation_info("https://claude.ai/chat/abc?x=1", reserved={"chat"})

    assert info == ConversationInfo(conversation_id="chat_abc")
    assert path_conversation_info("https://claude.ai/chat", reserved={"chat"}) == ConversationInfo()
    assert path_conversation_info("https://claude.ai/", reserved={"chat"}) == ConversationInfo()
