"""Capture session: turns page events into conversation creation and reconciliation.

Scheduling is single-threaded and cooperative. Two guards order the work:

- creation of the conversation record is single-flight per ``SessionKey``;
  concurrent callers await the same in-flight creation
- reconciliation is guarded by an in-progress flag that drops (does not
  queue) overlapping requests; the next debounced trigger picks up whatever
  was missed
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Self

from chatkeep.domain.ports.persistence import ConversationNotFoundError, PersistenceError

from .context import SessionKey
from .debounce import Debouncer
from .single_flight import SingleFlight

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from chatkeep.domain.model import Message
    from chatkeep.domain.reconciliation import ReconcileResult

    from .context import CaptureContext

type CaptureSignature = tuple[tuple[str, int, str, str], ...]

log = logging.getLogger(__name__)


def capture_signature(messages: Sequence[Message]) -> CaptureSignature:
    """Everything that matters for change detection, timestamps excluded."""

    return tuple(
        (str(message.sender), message.position, message.content, message.thinking)
        for message in messages
    )


class CaptureSession:
    def __init__(self, context: CaptureContext) -> None:
        self.context = context
        self.session_key: SessionKey | None = None
        self.conversation_id: str | None = None
        self.external_id: str | None = None
        self.last_result: ReconcileResult | None = None
        self._creations: SingleFlight[SessionKey, str | None] = SingleFlight()
        self._debouncer = Debouncer(context.settings.debounce_seconds)
        self._saving = False
        self._last_signature: CaptureSignature | None = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._debouncer.closed

    @property
    def pending(self) -> bool:
        """Whether a debounced change check is scheduled."""

        return self._debouncer.pending

    @property
    def saving(self) -> bool:
        return self._saving

    # session events --------------------------------------------------------

    async def establish(self, url: str, *, external_id: str | None = None) -> str | None:
        """Handle a "session established" event and return the conversation id."""

        source = self.context.source
        if not source.is_valid_conversation_url(url):
            log.info("Not a %s conversation page: %s", source.platform, url)
            return None

        info = source.extract_conversation_info(url)
        key = SessionKey.from_url(source.platform, url)
        if key != self.session_key:
            self._creations.reset()
            self._debouncer.cancel()
            self.session_key = key
            self.conversation_id = None
            self._last_signature = None
        self.external_id = external_id or (
            None if info.is_new_conversation else info.conversation_id
        )
        log.info("Session established: %s %s (external id %s)", key.platform, key.link, self.external_id)

        try:
            if self.context.settings.auto_save:
                conversation_id = await self.find_or_create()
            else:
                conversation_id = self.find()
        except PersistenceError as exc:
            log.error("Could not set up conversation for %s: %s", key.link, exc)
            return None

        if self._superseded(key):
            return None
        self.conversation_id = conversation_id
        if self.conversation_id is None:
            log.info("No conversation found or created for %s", key.link)
            return None

        if self.context.settings.auto_save:
            await self._save()
        return self.conversation_id

    def notify_changed(self, element: object | None = None) -> None:
        """Handle a "content may have changed" notification.

        Notifications about elements the source does not consider message
        elements are ignored.
        """

        if self.closed or not self.context.settings.auto_save:
            return
        if element is not None and not self.context.source.is_message_element(element):
            return
        self._debouncer.notify()

    async def run(self) -> None:
        """Consume coalesced triggers until the session is closed."""

        async for _trigger in self._debouncer.triggers():
            await self.check_for_changes()

    def close(self) -> None:
        self._debouncer.close()
        self._creations.reset()
        log.debug("Capture session closed for %s", self.session_key)

    # conversation lookup and creation -------------------------------------

    def find(
        self, key: SessionKey | None = None, *, external_id: str | None = None
    ) -> str | None:
        """Look up the stored conversation of ``key`` (default: the current session)."""

        if key is None:
            key, external_id = self.session_key, self.external_id
        if key is None:
            return None
        store = self.context.store
        if external_id:
            conversation = store.find_by_external_id(key.platform, external_id)
            if conversation is not None:
                return conversation.conversation_id
        conversation = store.find_by_link(key.link)
        return conversation.conversation_id if conversation is not None else None

    async def find_or_create(self) -> str | None:
        key, external_id = self.session_key, self.external_id
        if key is None:
            return None
        return await self._creations.run(key, lambda: self._create(key, external_id))

    async def _create(self, key: SessionKey, external_id: str | None) -> str | None:
        existing = self.find(key, external_id=external_id)
        if existing is not None:
            return existing

        settings = self.context.settings
        messages = await self._extract_with_retry(
            key,
            retries=settings.creation_retries,
            backoff=settings.creation_backoff_seconds,
        )
        # the page now renders another conversation
        if self._superseded(key):
            return None
        if not messages:
            log.info("Page has no messages, not creating a conversation for %s", key.link)
            return None

        # another writer may have created it while extraction was retrying
        existing = self.context.store.find_by_link(key.link)
        if existing is not None:
            return existing.conversation_id

        conversation = self.context.store.create(
            platform=key.platform,
            link=key.link,
            messages=messages,
            title=self.context.source.extract_title(self.context.page()),
            external_id=external_id,
        )
        return conversation.conversation_id

    # saving -----------------------------------------------------------------

    async def check_for_changes(self) -> ReconcileResult | None:
        """Re-extract and reconcile if the capture differs from the previous one."""

        if not self.context.settings.auto_save or self.session_key is None:
            return None

        messages = self.extract()
        if not messages:
            return None

        signature = capture_signature(messages)
        if signature == self._last_signature:
            log.debug("Captured messages unchanged, skipping")
            return None
        self._last_signature = signature
        return await self._save()

    async def save_now(self) -> ReconcileResult | None:
        """Manual save, independent of the auto-save setting."""

        if self.session_key is None:
            return None
        key = self.session_key
        if self.conversation_id is None:
            try:
                conversation_id = await self.find_or_create()
            except PersistenceError as exc:
                log.error("Manual save failed for %s: %s", key.link, exc)
                return None
            if self._superseded(key):
                return None
            self.conversation_id = conversation_id
        if self.conversation_id is None:
            return None
        return await self._save()

    async def _save(self) -> ReconcileResult | None:
        if self._saving:
            log.debug("Reconciliation already in progress, dropping request")
            return None

        key, conversation_id = self.session_key, self.conversation_id
        self._saving = True
        try:
            if conversation_id is None:
                created = await self.find_or_create()
                if not self._superseded(key):
                    self.conversation_id = created
                return None

            settings = self.context.settings
            messages = await self._extract_with_retry(
                key,
                retries=settings.save_retries,
                backoff=settings.save_backoff_seconds,
            )
            if self._superseded(key):
                return None
            if not messages:
                log.debug("No messages to save for %s", conversation_id)
                return None

            result = self.context.reconciler.reconcile(conversation_id, messages)
        except ConversationNotFoundError as exc:
            log.warning("%s; it will be recreated on the next change", exc)
            if not self._superseded(key):
                self.conversation_id = None
            return None
        except PersistenceError as exc:
            log.error("Saving conversation failed: %s", exc)
            return None
        finally:
            self._saving = False

        self.last_result = result
        if not result.success:
            log.error("Reconciliation of %s failed: %s", conversation_id, result.error)
        return result

    # extraction -------------------------------------------------------------

    def extract(self) -> list[Message]:
        return self.context.source.extract_messages(self.context.page())

    def _superseded(self, key: SessionKey | None) -> bool:
        """Whether the session moved on to another key while ``key``'s work was awaiting."""

        if key == self.session_key:
            return False
        log.info("Dropping stale work for %s, session is now %s", key, self.session_key)
        return True

    async def _extract_with_retry(
        self, key: SessionKey | None, *, retries: int, backoff: float
    ) -> list[Message]:
        """Extract, retrying empty results with linear backoff.

        Gives up early when the session key changes, since the page no longer
        shows ``key``'s conversation.
        """

        attempt = 0
        while True:
            if key != self.session_key:
                return []
            messages = self.extract()
            if messages or attempt >= retries:
                return messages
            attempt += 1
            delay = backoff * attempt
            log.debug("No messages yet, retrying in %.1fs (%s/%s)", delay, attempt, retries)
            await asyncio.sleep(delay)
