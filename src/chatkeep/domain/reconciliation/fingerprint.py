"""Cheap content identities used for matching captured and stored messages.

Fingerprints are never persisted. They are deliberately weak: two messages
from the same sender sharing the first ``FINGERPRINT_LENGTH`` characters are
indistinguishable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chatkeep.domain.model import Message

FINGERPRINT_LENGTH: Final[int] = 100
WINDOW_SEPARATOR: Final[str] = "|"

_BASE36_DIGITS: Final[str] = "0123456789abcdefghijklmnopqrstuvwxyz"


def fingerprint(message: Message) -> str:
    return f"{message.sender}:{message.content[:FINGERPRINT_LENGTH]}"


def fingerprints(messages: Sequence[Message]) -> list[str]:
    return [fingerprint(message) for message in messages]


def window_key(window: Sequence[str]) -> str:
    """Concatenate a run of fingerprints into one comparable string."""

    return WINDOW_SEPARATOR.join(window)


def content_digest(text: str) -> str:
    """Return a 32-bit shift/add string hash in base 36.

    Mirrors ``hash = hash * 31 + code_unit`` with signed 32-bit wrap-around over
    UTF-16 code units, then the absolute value.
    """

    value = 0
    encoded = text.encode("utf-16-le")
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        value = ((value << 5) - value + code_unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return _to_base36(abs(value))


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


__all__ = [
    "FINGERPRINT_LENGTH",
    "content_digest",
    "fingerprint",
    "fingerprints",
    "window_key",
]
