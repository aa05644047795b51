"""Result types shared by the anchor, diff and orchestration stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chatkeep.domain.model import Conversation, Message


@dataclass(frozen=True, slots=True)
class AnchorResult:
    """Where the head of a captured list reappears inside the stored list.

    ``found=False`` is an expected outcome and selects the full-overwrite path.
    """

    found: bool
    position: int = 0
    size: int = 0

    @property
    def protected_count(self) -> int:
        return self.position if self.found else 0


NOT_FOUND = AnchorResult(found=False)


@dataclass(frozen=True, slots=True)
class MessageUpdate:
    """A stored message superseded by its captured counterpart."""

    previous: Message
    current: Message


@dataclass(frozen=True, slots=True)
class MessageChanges:
    new: tuple[Message, ...] = ()
    updated: tuple[MessageUpdate, ...] = ()
    removed: tuple[Message, ...] = ()
    unchanged: tuple[Message, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.new or self.updated or self.removed)

    @property
    def updated_messages(self) -> tuple[Message, ...]:
        return tuple(update.current for update in self.updated)

    def summary(self) -> dict[str, int]:
        return {
            "new": len(self.new),
            "updated": len(self.updated),
            "removed": len(self.removed),
            "unchanged": len(self.unchanged),
        }


class ReconcileMode(StrEnum):
    """Branch taken by one reconciliation call."""

    FULL_SAVE = "full_save"
    NO_OP = "no_op"
    STANDARD_DIFF = "standard_diff"
    PARTIAL_DIFF = "partial_diff"
    FULL_OVERWRITE = "full_overwrite"


@dataclass(slots=True, kw_only=True)
class ReconcileResult:
    success: bool
    conversation: Conversation | None
    mode: ReconcileMode
    anchor_found: bool = False
    full_overwrite: bool = False
    skipped: bool = False
    anchor: AnchorResult = field(default=NOT_FOUND)
    changes: MessageChanges = field(default_factory=MessageChanges)
    error: str | None = None
