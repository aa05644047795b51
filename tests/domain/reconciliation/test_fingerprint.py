from __future__ import annotations

from chatkeep.domain.model import Sender
from chatkeep.domain.reconciliation import FINGERPRINT_LENGTH, content_digest, fingerprint
from chatkeep.domain.reconciliation.fingerprint import window_key
from tests.helpers.conversations import make_message


def test_fingerprint_combines_sender_and_content_prefix() -> None:
    assert fingerprint(make_message("hello", 0)) == "user:hello"
    assert fingerprint(make_message("hello", 1, sender=Sender.AI)) == "AI:hello"


def test_fingerprint_ignores_position_and_thinking() -> None:
    first = make_message("same", 0, thinking="a")
    second = make_message("same", 8, thinking="b")

    assert fingerprint(first) == fingerprint(second)


def test_fingerprint_truncates_long_content() -> None:
    prefix = "x" * FINGERPRINT_LENGTH
    first = make_message(prefix + " tail one", 0)
    second = make_message(prefix + " tail two", 2)

    assert fingerprint(first) == fingerprint(second) == f"user:{prefix}"


def test_window_key_joins_with_separator() -> None:
    assert window_key(["user:a", "AI:b"]) == "user:a|AI:b"


def test_content_digest_matches_reference_values() -> None:
    assert content_digest("") == "0"
    assert content_digest("a") == "2p"
    assert content_digest("ab") == "2e9"


def test_content_digest_wraps_to_32_bits() -> None:
    digest = content_digest("a fairly long piece of text that overflows 32 bits many times")

    assert int(digest, 36) <= 2**31
