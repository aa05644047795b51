from __future__ import annotations

import asyncio
from dataclasses import replace

from chatkeep.domain.capture import CaptureSession, capture_signature
from chatkeep.domain.reconciliation import ReconcileMode, ReconcileResult
from tests.helpers.capture import FAST_SETTINGS, ScriptedPage, make_context
from tests.helpers.conversations import labels, make_fake_store, make_turns

URL = "https://chatgpt.com/c/abc?model=gpt-4o"
LINK = "https://chatgpt.com/c/abc"


def test_establish_creates_conversation_from_first_capture() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q", "a"]))

    async def scenario() -> str | None:
        async with CaptureSession(make_context(store, page)) as session:
            return await session.establish(URL)

    conversation_id = asyncio.run(scenario())

    assert conversation_id is not None
    stored = repo.items[conversation_id]
    assert stored.link == LINK
    assert stored.external_id == "abc"
    assert labels(stored.messages) == ["q", "a"]
    assert len(repo.items) == 1


def test_establish_reuses_existing_conversation() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q", "a"]))

    async def scenario() -> tuple[str | None, str | None]:
        async with CaptureSession(make_context(store, page)) as first:
            first_id = await first.establish(URL)
        async with CaptureSession(make_context(store, page)) as second:
            second_id = await second.establish(LINK)
        return first_id, second_id

    first_id, second_id = asyncio.run(scenario())

    assert first_id == second_id
    assert len(repo.items) == 1


def test_invalid_url_is_ignored() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q"]))

    async def scenario() -> str | None:
        async with CaptureSession(make_context(store, page)) as session:
            return await session.establish("https://chatgpt.com/")

    assert asyncio.run(scenario()) is None
    assert repo.items == {}
    assert page.renders == 0


def test_empty_page_is_retried_then_nothing_is_created() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage([])

    async def scenario() -> str | None:
        async with CaptureSession(make_context(store, page)) as session:
            return await session.establish(URL)

    assert asyncio.run(scenario()) is None
    assert repo.items == {}
    assert page.renders == FAST_SETTINGS.creation_retries + 1


def test_creation_waits_for_late_messages() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage([], [], make_turns(["q"]))

    async def scenario() -> str | None:
        async with CaptureSession(make_context(store, page)) as session:
            return await session.establish(URL)

    conversation_id = asyncio.run(scenario())

    assert conversation_id is not None
    assert labels(repo.items[conversation_id].messages) == ["q"]


def test_concurrent_creation_is_single_flight() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage([], make_turns(["q", "a"]))

    async def scenario() -> list[str | None]:
        async with CaptureSession(
            make_context(store, page, settings=replace(FAST_SETTINGS, auto_save=False))
        ) as session:
            await session.establish(URL)
            return list(await asyncio.gather(session.find_or_create(), session.find_or_create()))

    first, second = asyncio.run(scenario())

    assert first is not None
    assert first == second
    assert len(repo.items) == 1


def test_auto_save_off_only_looks_up() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q"]))
    settings = replace(FAST_SETTINGS, auto_save=False)

    async def scenario() -> tuple[str | None, bool]:
        async with CaptureSession(make_context(store, page, settings=settings)) as session:
            conversation_id = await session.establish(URL)
            session.notify_changed()
            return conversation_id, session.pending

    conversation_id, pending = asyncio.run(scenario())

    assert conversation_id is None
    assert not pending
    assert repo.items == {}
    assert page.renders == 0


def test_auto_save_off_still_finds_existing_conversation() -> None:
    store, _repo = make_fake_store()
    existing = store.create(platform="chatgpt", link=LINK, messages=make_turns(["q"]))
    page = ScriptedPage(make_turns(["q"]))
    settings = replace(FAST_SETTINGS, auto_save=False)

    async def scenario() -> str | None:
        async with CaptureSession(make_context(store, page, settings=settings)) as session:
            return await session.establish(URL)

    assert asyncio.run(scenario()) == existing.conversation_id


def test_change_notifications_are_debounced_into_one_save() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q", "a"]))

    async def scenario() -> tuple[str | None, int]:
        async with CaptureSession(make_context(store, page)) as session:
            conversation_id = await session.establish(URL)
            runner = asyncio.create_task(session.run())
            puts_before = repo.put_calls
            page.show(make_turns(["q", "a", "q2"]))
            for _ in range(5):
                session.notify_changed("turn")
            await asyncio.sleep(0.1)
            session.close()
            await runner
            return conversation_id, repo.put_calls - puts_before

    conversation_id, writes = asyncio.run(scenario())

    assert conversation_id is not None
    assert writes == 1
    assert labels(repo.items[conversation_id].messages) == ["q", "a", "q2"]


def test_notifications_for_other_elements_are_ignored() -> None:
    store, _repo = make_fake_store()
    page = ScriptedPage(make_turns(["q"]))

    async def scenario() -> tuple[bool, bool]:
        async with CaptureSession(make_context(store, page)) as session:
            await session.establish(URL)
            session.notify_changed("sidebar")
            ignored = not session.pending
            session.notify_changed("turn")
            return ignored, session.pending

    ignored, pending = asyncio.run(scenario())
    assert ignored
    assert pending


def test_unchanged_capture_skips_reconciliation() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q", "a"]))

    async def scenario() -> tuple[object, object, int]:
        async with CaptureSession(make_context(store, page)) as session:
            await session.establish(URL)
            page.show(make_turns(["q", "a", "q2"]))
            first = await session.check_for_changes()
            gets_before = repo.get_calls
            second = await session.check_for_changes()
            return first, second, repo.get_calls - gets_before

    first, second, reads = asyncio.run(scenario())

    assert first is not None
    assert second is None
    assert reads == 0


def test_overlapping_saves_are_dropped() -> None:
    store, _repo = make_fake_store()
    page = ScriptedPage(make_turns(["q"]))

    async def scenario() -> list[ReconcileResult | None]:
        async with CaptureSession(make_context(store, page)) as session:
            await session.establish(URL)
            # the first save sees an empty render and backs off, yielding control
            page.show([], make_turns(["q", "a"]))
            return list(await asyncio.gather(session.save_now(), session.save_now()))

    first, second = asyncio.run(scenario())

    assert first is not None
    assert first.mode is ReconcileMode.STANDARD_DIFF
    assert second is None


def test_deleted_conversation_is_recreated_on_next_save() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q", "a"]))

    async def scenario() -> tuple[str | None, object, str | None]:
        async with CaptureSession(make_context(store, page)) as session:
            first_id = await session.establish(URL)
            assert first_id is not None
            store.delete(first_id)
            lost = await session.save_now()
            await session.save_now()
            return first_id, lost, session.conversation_id

    first_id, lost, recreated = asyncio.run(scenario())

    assert lost is None
    assert recreated is not None
    assert recreated != first_id
    assert list(repo.items) == [recreated]


def test_new_session_key_resets_state() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage(make_turns(["q"]))

    async def scenario() -> tuple[str | None, str | None]:
        async with CaptureSession(make_context(store, page)) as session:
            first = await session.establish("https://chatgpt.com/c/one")
            second = await session.establish("https://chatgpt.com/c/two")
            return first, second

    first, second = asyncio.run(scenario())

    assert first != second
    assert {conversation.link for conversation in repo.items.values()} == {
        "https://chatgpt.com/c/one",
        "https://chatgpt.com/c/two",
    }


def test_capture_signature_ignores_timestamps() -> None:
    raw = make_turns(["q", "a"])
    stamped = [replace(message, message_id="x") for message in raw]

    assert capture_signature(raw) == capture_signature(stamped)
    assert capture_signature(raw) != capture_signature(make_turns(["q", "b"]))


def test_stale_establish_does_not_touch_the_new_session() -> None:
    store, repo = make_fake_store()
    page = ScriptedPage([])
    settings = replace(FAST_SETTINGS, creation_backoff_seconds=0.05)
    old_url = "https://chatgpt.com/c/old"
    new_url = "https://chatgpt.com/c/new"

    async def scenario() -> tuple[str | None, str | None, str | None]:
        async with CaptureSession(make_context(store, page, settings=settings)) as session:
            stale = asyncio.create_task(session.establish(old_url))
            # the old page is still empty, so its creation is backing off
            await asyncio.sleep(0.01)
            page.show(make_turns(["new q", "new a"]))
            current = await session.establish(new_url)
            return await stale, current, session.conversation_id

    stale_id, current_id, session_id = asyncio.run(scenario())

    assert stale_id is None
    assert current_id is not None
    assert session_id == current_id
    assert [conversation.link for conversation in repo.items.values()] == [new_url]
    assert labels(repo.items[current_id].messages) == ["new q", "new a"]
