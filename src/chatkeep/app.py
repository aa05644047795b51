"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from chatkeep.adapters.sources import resolve_source
from chatkeep.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from chatkeep.config import get_capture_config
from chatkeep.domain.cache import ConversationCache
from chatkeep.domain.capture import CaptureContext, CaptureSession, CaptureSettings
from chatkeep.domain.conversation_store import ConversationStore
from chatkeep.domain.ports.unit_of_work import ConversationUnitOfWork
from chatkeep.domain.reconciliation.engine import ConversationReconciler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chatkeep.adapters.sources import PageSnapshot
    from chatkeep.config import CaptureConfig
    from chatkeep.domain.model import Conversation
    from chatkeep.domain.reconciliation import ReconcileResult

UnitOfWorkFactory = Callable[[], ConversationUnitOfWork]

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CaptureReport:
    conversation_id: str | None
    result: ReconcileResult | None = None


def build_store(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    capture_config: CaptureConfig | None = None,
) -> ConversationStore:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyUnitOfWork
    config = capture_config or get_capture_config()
    cache = ConversationCache(max_entries=config.cache_max_entries, ttl=config.cache_ttl)
    return ConversationStore(unit_of_work_factory=unit_of_work_factory, cache=cache)


def capture_snapshot(
    snapshot: PageSnapshot,
    *,
    url: str | None = None,
    conversation_id: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    capture_config: CaptureConfig | None = None,
) -> CaptureReport:
    """Reconcile one rendered page into the store.

    With ``conversation_id`` the capture is reconciled straight into that
    conversation; otherwise the page is treated as a fresh capture session.
    """

    page_url = url or snapshot.url
    source = resolve_source(page_url)
    config = capture_config or get_capture_config()
    store = build_store(unit_of_work_factory=unit_of_work_factory, capture_config=config)
    log.info("Capturing %s page %s", source.platform, page_url)

    if conversation_id is not None:
        result = ConversationReconciler(store=store).reconcile(
            conversation_id, source.extract_messages(snapshot)
        )
        return CaptureReport(conversation_id=conversation_id, result=result)

    # a static snapshot will not grow, so empty extractions are not retried
    settings = CaptureSettings(
        auto_save=True,
        debounce_seconds=config.debounce_seconds,
        creation_retries=0,
        save_retries=0,
    )
    context = CaptureContext(source=source, page=lambda: snapshot, store=store, settings=settings)
    return asyncio.run(_capture_once(context, page_url))


async def _capture_once(context: CaptureContext, url: str) -> CaptureReport:
    async with CaptureSession(context) as session:
        conversation_id = await session.establish(url)
        return CaptureReport(conversation_id=conversation_id, result=session.last_result)


def show_conversation(
    conversation_id: str, *, unit_of_work_factory: UnitOfWorkFactory | None = None
) -> Conversation | None:
    return build_store(unit_of_work_factory=unit_of_work_factory).get(conversation_id)


def list_conversations(
    *, unit_of_work_factory: UnitOfWorkFactory | None = None
) -> Sequence[Conversation]:
    return build_store(unit_of_work_factory=unit_of_work_factory).list_all()
