"""Head-anchor detection for lazily loaded conversation views.

A source may unload old turns and render them again later, so the first
captured message does not necessarily sit at stored position 0. The detector
looks for the longest run of captured head fingerprints (at most
``MAX_ANCHOR_WINDOW``) that occurs contiguously in the stored list.

Tie-breaks:
- a larger window wins (sizes are tried from largest to smallest)
- for one window size the earliest stored position wins
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from .contracts import NOT_FOUND, AnchorResult
from .fingerprint import fingerprints, window_key

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chatkeep.domain.model import Message

MAX_ANCHOR_WINDOW: Final[int] = 6

log = logging.getLogger(__name__)


def find_anchor(
    captured: Sequence[Message],
    stored: Sequence[Message],
    *,
    max_window: int = MAX_ANCHOR_WINDOW,
) -> AnchorResult:
    if not captured or not stored:
        return NOT_FOUND

    stored_fingerprints = fingerprints(stored)
    captured_head = fingerprints(captured[:max_window])
    window = min(max_window, len(captured))

    for size in range(window, 0, -1):
        anchor_key = window_key(captured_head[:size])
        for index in range(len(stored_fingerprints) - size + 1):
            if window_key(stored_fingerprints[index : index + size]) == anchor_key:
                log.debug("Anchor matched: size=%s, position=%s", size, index)
                return AnchorResult(found=True, position=index, size=size)

    log.debug(
        "No anchor for %s captured against %s stored messages",
        len(captured),
        len(stored),
    )
    return NOT_FOUND


__all__ = ["MAX_ANCHOR_WINDOW", "find_anchor"]
