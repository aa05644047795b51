"""Reconciliation orchestrator.

Decision procedure for one call (no state survives beyond the stored record):

- captured list empty          -> NO_OP (stored conversation returned untouched)
- stored list empty            -> FULL_SAVE (everything captured is new)
- anchor found at position 0   -> STANDARD_DIFF over the whole stored list
- anchor found at position p>0 -> PARTIAL_DIFF; ``stored[:p]`` is the protected
                                  zone and is carried over unchanged
- no anchor at any window size -> FULL_OVERWRITE with the normalized capture

Each write is exactly one ``ConversationStore.put`` call; a diff without
changes is reported as ``skipped`` and writes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from chatkeep.domain.ports.persistence import ConversationNotFoundError, PersistenceError

from .anchor import MAX_ANCHOR_WINDOW, find_anchor
from .contracts import AnchorResult, MessageChanges, ReconcileMode, ReconcileResult
from .diff import diff_messages, merge_changes
from .metadata import refresh_metadata
from .normalize import normalize_messages, reposition

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from chatkeep.domain.conversation_store import ConversationStore
    from chatkeep.domain.model import Conversation, Message

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ConversationReconciler:
    store: ConversationStore
    max_anchor_window: int = MAX_ANCHOR_WINDOW

    def reconcile(self, conversation_id: str, captured: Sequence[Message]) -> ReconcileResult:
        conversation = self.store.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        stored = list(conversation.messages)
        now = self.store.clock()

        if not captured:
            log.info("Nothing captured for %s, skipping", conversation_id)
            return ReconcileResult(
                success=True,
                conversation=conversation,
                mode=ReconcileMode.NO_OP,
                skipped=True,
            )

        if not stored:
            messages = normalize_messages(reposition(captured, 0), now=now)
            log.info("Saving %s messages into empty %s", len(messages), conversation_id)
            return self._write(
                conversation,
                messages,
                now=now,
                mode=ReconcileMode.FULL_SAVE,
                changes=MessageChanges(new=tuple(messages)),
            )

        anchor = find_anchor(captured, stored, max_window=self.max_anchor_window)
        if not anchor.found:
            messages = normalize_messages(reposition(captured, 0), now=now)
            log.info(
                "No anchor for %s, overwriting %s stored with %s captured messages",
                conversation_id,
                len(stored),
                len(messages),
            )
            return self._write(
                conversation,
                messages,
                now=now,
                mode=ReconcileMode.FULL_OVERWRITE,
                anchor=anchor,
                changes=MessageChanges(new=tuple(messages), removed=tuple(stored)),
            )

        return self._merge(conversation, stored, captured, anchor=anchor, now=now)

    def _merge(
        self,
        conversation: Conversation,
        stored: list[Message],
        captured: Sequence[Message],
        *,
        anchor: AnchorResult,
        now: datetime,
    ) -> ReconcileResult:
        if anchor.position > 0:
            mode = ReconcileMode.PARTIAL_DIFF
            protected = stored[: anchor.position]
            operation = stored[anchor.position :]
            # continue from the anchored message's stored position, not its index
            corrected = reposition(captured, operation[0].position)
            log.info(
                "Anchor size=%s at %s for %s, protecting %s messages",
                anchor.size,
                anchor.position,
                conversation.conversation_id,
                anchor.protected_count,
            )
        else:
            mode = ReconcileMode.STANDARD_DIFF
            protected = []
            operation = stored
            corrected = list(captured)

        changes = diff_messages(corrected, operation, now=now)
        if not changes.has_changes:
            log.info("No message changes for %s, skipping save", conversation.conversation_id)
            return ReconcileResult(
                success=True,
                conversation=conversation,
                mode=mode,
                anchor_found=True,
                skipped=True,
                anchor=anchor,
                changes=changes,
            )

        merged = [*protected, *merge_changes(operation, changes)]
        merged.sort(key=lambda message: message.position)
        log.info("Merging %s into %s", changes.summary(), conversation.conversation_id)
        return self._write(
            conversation,
            merged,
            now=now,
            mode=mode,
            anchor=anchor,
            changes=changes,
        )

    def _write(
        self,
        conversation: Conversation,
        messages: list[Message],
        *,
        now: datetime,
        mode: ReconcileMode,
        changes: MessageChanges,
        anchor: AnchorResult | None = None,
    ) -> ReconcileResult:
        # the cached instance stays untouched until the write succeeds
        working = replace(conversation, messages=messages)
        refresh_metadata(working, touched=changes.has_changes, now=now)
        anchor_result = anchor or AnchorResult(found=False)
        try:
            self.store.put(working)
        except PersistenceError as exc:
            log.error("Failed to persist %s: %s", conversation.conversation_id, exc)
            return ReconcileResult(
                success=False,
                conversation=conversation,
                mode=mode,
                anchor_found=anchor_result.found,
                full_overwrite=mode is ReconcileMode.FULL_OVERWRITE,
                anchor=anchor_result,
                changes=changes,
                error=str(exc),
            )
        return ReconcileResult(
            success=True,
            conversation=working,
            mode=mode,
            anchor_found=anchor_result.found,
            full_overwrite=mode is ReconcileMode.FULL_OVERWRITE,
            anchor=anchor_result,
            changes=changes,
        )


__all__ = ["ConversationReconciler"]
