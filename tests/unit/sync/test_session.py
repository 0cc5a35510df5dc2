"""End-to-end tests for SyncSession over a mocked store."""

from __future__ import annotations

import pytest
from builders import make_page, make_raw, make_store

from notionbuf import MemoryBuffer, MemoryPageCache, SyncSession
from notionbuf.config import NotionbufConfig


def _remote():
    toggle = make_raw("toggle", "T", block_id="t1")
    toggle["has_children"] = True
    return {
        "page-1": [make_raw("paragraph", "Hello", block_id="p1"), toggle],
        "t1": [make_raw("paragraph", "c", block_id="c1")],
    }


HEADER = ["# Test Page", "", "📍 Workspace", "", "---", ""]


@pytest.fixture
def store():
    return make_store(page=make_page(), children=_remote())


@pytest.fixture
def buffer():
    return MemoryBuffer(["stale content"])


async def _loaded(store, buffer, **kwargs):
    session = SyncSession(store, buffer, NotionbufConfig(token="test_token_1234"), page_id="page-1", **kwargs)
    await session.load()
    return session


class TestLoad:
    async def test_renders_page(self, store, buffer):
        session = await _loaded(store, buffer)

        assert buffer.lines == HEADER + ["Hello", "> T", "  c"]
        assert session.header_lines == 6
        assert session.title == "Test Page"
        assert session.tracker.block_count() == 3
        assert session.tracker.get_block_by_id("c1").parent.id == "t1"
        assert session.last_sync is not None
        assert session.content_hash is not None

    async def test_needs_page_id(self, store, buffer):
        session = SyncSession(store, buffer)
        with pytest.raises(ValueError):
            await session.load()

    async def test_closed_buffer_is_left_alone(self, store, buffer):
        buffer.invalidate()
        session = await _loaded(store, buffer)
        assert buffer.lines == ["stale content"]
        assert not session.tracker.has_blocks()

    async def test_fills_cache(self, store, buffer):
        cache = MemoryPageCache()
        session = await _loaded(store, buffer, cache=cache)
        assert cache.get_page("page-1")["id"] == "page-1"
        assert cache.get_hash("page-1") == session.content_hash
        assert len(cache.get_content("page-1")) == 2

    async def test_remote_change_detection(self, store, buffer):
        session = await _loaded(store, buffer)
        assert not await session.is_remote_changed()

        remote = _remote()
        remote["page-1"].append(make_raw("paragraph", "added elsewhere"))
        async def children(block_id):
            return [dict(b) for b in remote.get(block_id, [])]

        store.get_children.side_effect = children
        assert await session.is_remote_changed()


class TestPush:
    async def test_nothing_to_push(self, store, buffer):
        session = await _loaded(store, buffer)
        result = await session.push()
        assert result.success
        assert result.completed_at is not None
        store.update_block.assert_not_awaited()

    async def test_update_pushed_without_confirmation(self, store, buffer):
        session = await _loaded(store, buffer)
        buffer.replace_line(6, "Hello world")

        result = await session.push()

        assert result.success
        assert result.updated == 1
        store.update_block.assert_awaited_once()
        assert session.tracker.dirty_blocks() == []
        assert session.plan().is_empty()

    async def test_delete_declined_without_callback(self, store, buffer):
        session = await _loaded(store, buffer)
        buffer.set_lines(6, 7, [])

        result = await session.push()

        assert result.declined
        assert not result.success
        store.delete_block.assert_not_awaited()

    async def test_delete_confirmed(self, store, buffer):
        session = await _loaded(store, buffer)
        buffer.set_lines(6, 7, [])
        seen = []

        def confirm(plan):
            seen.append(plan.summary())
            return True

        result = await session.push(confirm=confirm)

        assert result.success
        assert result.deleted == 1
        store.delete_block.assert_awaited_once_with("p1")
        assert seen == [["Deletes: 1 block(s)"]]
        assert session.tracker.get_block_by_id("p1") is None

    async def test_async_confirm_can_decline(self, store, buffer):
        session = await _loaded(store, buffer)
        buffer.set_lines(6, 7, [])

        async def confirm(plan):
            return False

        result = await session.push(confirm=confirm)
        assert result.declined

    async def test_new_child_under_loaded_toggle(self, store, buffer):
        session = await _loaded(store, buffer)
        buffer.set_lines(9, 9, ["  d"])

        result = await session.push()

        assert result.success
        parent_id, blocks = store.append_children.await_args.args
        assert parent_id == "t1"
        assert store.append_children.await_args.kwargs["after"] == "c1"
        assert [c.id for c in session.tracker.get_block_by_id("t1").children] == ["c1", "new-1"]

    async def test_cache_refreshed_after_push(self, store, buffer):
        cache = MemoryPageCache()
        session = await _loaded(store, buffer, cache=cache)
        calls = store.get_children.await_count
        buffer.replace_line(6, "Hello world")

        await session.push()

        assert store.get_children.await_count > calls
        assert session.content_hash == cache.get_hash("page-1")

    async def test_failed_push_keeps_edits_pending(self, store, buffer):
        store.update_block.side_effect = RuntimeError("boom")
        session = await _loaded(store, buffer)
        buffer.replace_line(6, "Hello world")

        result = await session.push()

        assert not result.success
        assert len(result.errors) == 1
        assert session.plan().updates
