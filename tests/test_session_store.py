from __future__ import annotations

import asyncio

from relay.session import CallSessionStore


def test_session_absent_before_create_and_after_delete():
    async def _run():
        store = CallSessionStore()
        assert await store.get("CA1") is None

        await store.create("CA1", caller_number="+15551234567", greeting="Hi")
        assert "CA1" in store
        assert len(store) == 1

        deleted = await store.delete("CA1")
        assert deleted is not None and deleted.closed
        assert "CA1" not in store
        assert await store.delete("CA1") is None

    asyncio.run(_run())


def test_create_replaces_stale_record_so_one_session_per_call():
    async def _run():
        store = CallSessionStore()
        first = await store.create("CA1", greeting="first")
        second = await store.create("CA1", greeting="second")
        assert len(store) == 1
        assert (await store.get("CA1")) is second
        assert first is not second

    asyncio.run(_run())


def test_lookup_miss_creates_fresh_session():
    async def _run():
        store = CallSessionStore()
        session = await store.get_or_create("CA404")
        assert session.call_sid == "CA404"
        assert session.caller_number == "Unknown"
        assert (await store.get_or_create("CA404")) is session

    asyncio.run(_run())


def test_transcript_renders_in_append_order():
    async def _run():
        store = CallSessionStore()
        session = await store.create("CA1")
        session.append_transcript("user", "hello")
        session.append_transcript("agent", "hi there")
        assert session.render_transcript() == "User: hello\nAgent: hi there\n"

    asyncio.run(_run())


def test_transcript_is_frozen_after_delete():
    async def _run():
        store = CallSessionStore()
        session = await store.create("CA1")
        session.append_transcript("user", "hello")
        await store.delete("CA1")

        assert session.append_transcript("agent", "too late") is False
        assert session.render_transcript() == "User: hello\n"

    asyncio.run(_run())


def test_session_leaks_when_close_never_runs():
    async def _run():
        store = CallSessionStore()
        await store.create("CA-crashed")
        # No relay ever closes this call; nothing else evicts it.
        await asyncio.sleep(0)
        assert "CA-crashed" in store

    asyncio.run(_run())
