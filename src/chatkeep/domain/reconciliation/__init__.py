"""Incremental reconciliation of captured message lists into stored conversations.

Layered flow:
1) normalize raw captured turns
2) fingerprint messages for matching
3) find the head anchor of the capture inside the stored list
4) diff the capture against the operation zone
5) merge, re-sort and persist as one record (see ``engine``)
"""

from __future__ import annotations

from .anchor import MAX_ANCHOR_WINDOW, find_anchor
from .contracts import (
    NOT_FOUND,
    AnchorResult,
    MessageChanges,
    MessageUpdate,
    ReconcileMode,
    ReconcileResult,
)
from .diff import diff_messages, merge_changes
from .fingerprint import FINGERPRINT_LENGTH, content_digest, fingerprint
from .normalize import derive_message_id, normalize_message, normalize_messages, reposition

__all__ = [
    "FINGERPRINT_LENGTH",
    "MAX_ANCHOR_WINDOW",
    "NOT_FOUND",
    "AnchorResult",
    "MessageChanges",
    "MessageUpdate",
    "ReconcileMode",
    "ReconcileResult",
    "content_digest",
    "derive_message_id",
    "diff_messages",
    "find_anchor",
    "fingerprint",
    "merge_changes",
    "normalize_message",
    "normalize_messages",
    "reposition",
]
