"""Tests for NotionStore, the block/page endpoint wrappers and fetch_tree."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from builders import make_raw, make_store

from notionbuf.notion_api import NotionStore, extract_block_ids, fetch_tree
from notionbuf.notion_api.blocks import MAX_APPEND_CHILDREN
from notionbuf.ports import RemoteStore


def _transport(pages=None):
    """Transport double: ``request`` echoes appended children with ids."""
    counter = iter(range(1, 10_000))

    async def request(method, path, **kwargs):
        body = kwargs.get("json") or {}
        if path.endswith("/children") and method == "PATCH":
            return {"results": [{**c, "id": f"id-{next(counter)}"} for c in body["children"]]}
        return {"object": "block", "id": path.rsplit("/", 1)[-1]}

    async def paginate(path, **kwargs):
        for item in (pages or {}).get(path, []):
            yield item

    transport = MagicMock()
    transport.request = AsyncMock(side_effect=request)
    transport.paginate = paginate
    transport.close = AsyncMock()
    return transport


def _paragraphs(count):
    return [{"object": "block", "type": "paragraph", "paragraph": {"rich_text": []}} for _ in range(count)]


class TestNotionStore:
    def test_needs_config_or_transport(self):
        with pytest.raises(ValueError):
            NotionStore()

    def test_is_a_remote_store(self):
        assert isinstance(NotionStore(transport=_transport()), RemoteStore)

    async def test_routes(self):
        transport = _transport()
        store = NotionStore(transport=transport)

        await store.get_page("p1")
        await store.get_block("b1")
        await store.update_block("b1", {"paragraph": {"rich_text": []}})
        await store.delete_block("b1")

        calls = [(c.args[0], c.args[1]) for c in transport.request.await_args_list]
        assert calls == [
            ("GET", "/pages/p1"),
            ("GET", "/blocks/b1"),
            ("PATCH", "/blocks/b1"),
            ("DELETE", "/blocks/b1"),
        ]
        assert transport.request.await_args_list[2].kwargs["json"] == {"paragraph": {"rich_text": []}}

    async def test_append_sends_after(self):
        transport = _transport()
        store = NotionStore(transport=transport)

        created = await store.append_children("parent", _paragraphs(2), after="anchor")

        assert [c["id"] for c in created] == ["id-1", "id-2"]
        body = transport.request.await_args.kwargs["json"]
        assert body["after"] == "anchor"
        assert len(body["children"]) == 2

    async def test_append_without_after_omits_key(self):
        transport = _transport()
        await NotionStore(transport=transport).append_children("parent", _paragraphs(1))
        assert "after" not in transport.request.await_args.kwargs["json"]

    async def test_append_chunks_and_chains(self):
        transport = _transport()
        store = NotionStore(transport=transport)

        created = await store.append_children("parent", _paragraphs(MAX_APPEND_CHILDREN + 20))

        assert len(created) == MAX_APPEND_CHILDREN + 20
        first, second = transport.request.await_args_list
        assert len(first.kwargs["json"]["children"]) == MAX_APPEND_CHILDREN
        assert "after" not in first.kwargs["json"]
        assert second.kwargs["json"]["after"] == f"id-{MAX_APPEND_CHILDREN}"

    async def test_get_children_paginates(self):
        pages = {"/blocks/p1/children": [{"id": "a"}, {"id": "b"}]}
        store = NotionStore(transport=_transport(pages))
        assert await store.get_children("p1") == [{"id": "a"}, {"id": "b"}]

    async def test_context_manager_closes_transport(self):
        transport = _transport()
        async with NotionStore(transport=transport):
            pass
        transport.close.assert_awaited_once()


def test_extract_block_ids():
    response = {"results": [{"id": "a"}, {"object": "block"}, {"id": "b"}]}
    assert extract_block_ids(response) == ["a", "b"]
    assert extract_block_ids({}) == []


class TestFetchTree:
    def _remote(self):
        toggle = make_raw("toggle", "T", block_id="t1")
        toggle["has_children"] = True
        sub = make_raw("child_page", "Sub", block_id="s1")
        sub["has_children"] = True
        divider = make_raw("divider", block_id="d1")
        divider["has_children"] = True
        return {
            "page": [toggle, sub, divider],
            "t1": [make_raw("paragraph", "inner", block_id="i1")],
            "s1": [make_raw("paragraph", "other page")],
            "d1": [make_raw("paragraph", "odd")],
        }

    async def test_children_attached_under_type_key(self):
        store = make_store(children=self._remote())
        toggle, sub, divider = await fetch_tree(store, "page")

        assert [c["id"] for c in toggle["toggle"]["children"]] == ["i1"]
        assert "children" not in sub["child_page"]
        assert divider["divider"]["children"][0]["paragraph"]["rich_text"][0]["text"]["content"] == "odd"
        called = [c.args[0] for c in store.get_children.await_args_list]
        assert "s1" not in called

    async def test_missing_type_data_uses_top_level_key(self):
        block = {"object": "block", "id": "x1", "type": "synced_block", "has_children": True}
        store = make_store(children={"page": [block], "x1": [make_raw("paragraph", "p")]})
        [fetched] = await fetch_tree(store, "page")
        assert len(fetched["children"]) == 1

    async def test_max_depth(self):
        store = make_store(children=self._remote())
        toggle, _, _ = await fetch_tree(store, "page", max_depth=0)
        assert "children" not in toggle["toggle"]
        store.get_children.assert_awaited_once_with("page")
