"""Tests for the in-memory document store and content store."""

import json
import time

import pytest

from portal.content import InMemoryContentStore, content_address, gateway_url
from portal.demo import DEMO_DATA, get_demo_store
from portal.errors import StoreError
from portal.store import InMemoryDocumentStore, new_document_id


@pytest.fixture
def store():
    return InMemoryDocumentStore({
        "users": {"u1": {"displayName": "Asha", "credentials": ["c1"]}},
        "credentials": {"c1": {"type": "degree"}},
    })


class TestInMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_get_existing(self, store):
        doc = await store.get("users", "u1")
        assert doc == {"displayName": "Asha", "credentials": ["c1"]}

    @pytest.mark.asyncio
    async def test_get_missing_is_none(self, store):
        assert await store.get("users", "nobody") is None
        assert await store.get("no_such_collection", "u1") is None

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, store):
        doc = await store.get("users", "u1")
        doc["credentials"].append("tampered")
        assert (await store.get("users", "u1"))["credentials"] == ["c1"]

    @pytest.mark.asyncio
    async def test_reads_are_recorded(self, store):
        await store.get("credentials", "c1")
        await store.get("credentials", "c2")
        assert store.reads == [("credentials", "c1"), ("credentials", "c2")]

    @pytest.mark.asyncio
    async def test_injected_fault(self, store):
        store.set_fault("c1")
        with pytest.raises(StoreError):
            await store.get("credentials", "c1")
        store.clear_fault("c1")
        assert await store.get("credentials", "c1") == {"type": "degree"}

    @pytest.mark.asyncio
    async def test_injected_delay(self, store):
        store.set_delay("c1", 0.1)
        t0 = time.perf_counter()
        await store.get("credentials", "c1")
        assert time.perf_counter() - t0 >= 0.09

    @pytest.mark.asyncio
    async def test_create_and_array_union(self, store):
        new_id = await store.create("credentials", {"type": "diploma"})
        assert len(new_id) == 20
        await store.array_union("users", "u1", "credentials", new_id)
        await store.array_union("users", "u1", "credentials", new_id)
        assert (await store.get("users", "u1"))["credentials"] == ["c1", new_id]

    @pytest.mark.asyncio
    async def test_array_union_missing_document(self, store):
        with pytest.raises(StoreError):
            await store.array_union("users", "ghost", "credentials", "c1")

    @pytest.mark.asyncio
    async def test_write_faults(self, store):
        store.fail_writes("credentials")
        with pytest.raises(StoreError):
            await store.create("credentials", {"type": "degree"})
        # Reads still work
        assert await store.get("credentials", "c1") is not None

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.delete("credentials", "c1")
        assert await store.get("credentials", "c1") is None

    def test_from_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps(DEMO_DATA))
        loaded = InMemoryDocumentStore.from_file(path)
        assert loaded.dump() == DEMO_DATA

    def test_from_file_rejects_non_object(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2]")
        with pytest.raises(StoreError):
            InMemoryDocumentStore.from_file(path)

    def test_new_document_ids_unique(self):
        assert len({new_document_id() for _ in range(100)}) == 100

    def test_demo_store_is_fresh(self):
        a = get_demo_store()
        a.put("users", "u1", {})
        assert get_demo_store().dump()["users"]["u1"]["credentials"]


class TestContentStore:
    @pytest.mark.asyncio
    async def test_put_is_content_addressed(self):
        content = InMemoryContentStore()
        cid1 = await content.put(b"%PDF-1.7 diploma", "diploma.pdf")
        cid2 = await content.put(b"%PDF-1.7 diploma", "copy.pdf")
        assert cid1 == cid2 == content_address(b"%PDF-1.7 diploma")
        assert len(content) == 1
        assert await content.exists(cid1)
        assert content.get(cid1) == b"%PDF-1.7 diploma"

    @pytest.mark.asyncio
    async def test_remove(self):
        content = InMemoryContentStore()
        cid = await content.put(b"data")
        await content.remove(cid)
        assert cid not in content
        await content.remove(cid)  # idempotent

    @pytest.mark.asyncio
    async def test_failing_put(self):
        content = InMemoryContentStore()
        content.fail_puts = True
        with pytest.raises(StoreError):
            await content.put(b"data")

    def test_gateway_url(self):
        assert gateway_url("bafy123") == "https://ipfs.io/ipfs/bafy123"
        assert gateway_url("bafy123", "https://gw.example/ipfs") == "https://gw.example/ipfs/bafy123"

    def test_gateway_url_passes_cid_through(self):
        assert gateway_url("odd cid/with slash") == "https://ipfs.io/ipfs/odd cid/with slash"
