from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from chatkeep.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from chatkeep.domain.conversation_store import ConversationStore
from chatkeep.domain.model import Platform
from chatkeep.domain.reconciliation import ReconcileMode
from chatkeep.domain.reconciliation.engine import ConversationReconciler
from tests.helpers.conversations import labels, make_turns

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_migrates_schema() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine, force=True)

    tables = set(inspect(engine).get_table_names())
    assert {"conversation", "message", "alembic_version"} <= tables


def test_repositories_require_an_open_unit_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    with pytest.raises(StartupError):
        _ = sqlite_unit_of_work().repositories


def test_uncommitted_work_is_discarded(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    store = ConversationStore(unit_of_work_factory=sqlite_unit_of_work)
    created = store.create(platform=Platform.CLAUDE, link="https://claude.ai/chat/1", messages=[])

    with pytest.raises(RuntimeError), sqlite_unit_of_work() as uow:
        uow.repositories.conversations.delete(created.conversation_id)
        raise RuntimeError("abort")

    assert store.get(created.conversation_id) is not None


def test_reconciliation_round_trip_through_sqlite(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    store = ConversationStore(unit_of_work_factory=sqlite_unit_of_work)
    created = store.create(
        platform=Platform.CHATGPT,
        link="https://chatgpt.com/c/1",
        messages=make_turns([f"m{i}" for i in range(8)]),
    )
    reconciler = ConversationReconciler(store=store)

    result = reconciler.reconcile(
        created.conversation_id, make_turns([f"m{i}" for i in range(2, 10)], start=2)
    )

    assert result.mode is ReconcileMode.PARTIAL_DIFF
    loaded = store.get(created.conversation_id)
    assert loaded is not None
    assert labels(loaded.messages) == [f"m{i}" for i in range(10)]
    assert loaded.message_count == 10
