"""Tests for profile resolution."""

import pytest

from portal.config import PortalConfig
from portal.errors import (
    InvalidRequestError,
    MalformedRecordError,
    ProfileNotFound,
    StoreError,
    TransientStoreError,
)
from portal.profile import resolve_profile
from portal.store import InMemoryDocumentStore

FAST = PortalConfig(profile_max_tries=3, retry_backoff=0.0, lookup_timeout=1.0)


class FlakyStore(InMemoryDocumentStore):
    """Fails the first ``failures`` reads, then behaves normally."""

    def __init__(self, data, failures: int):
        super().__init__(data)
        self.failures = failures

    async def get(self, collection, doc_id):
        if self.failures > 0:
            self.failures -= 1
            self.reads.append((collection, doc_id))
            raise StoreError("temporarily unavailable")
        return await super().get(collection, doc_id)


@pytest.fixture
def store():
    return InMemoryDocumentStore({
        "users": {
            "u1": {"displayName": "Asha", "credentials": ["c1", "c2"]},
            "u2": {"displayName": "Leo", "credentials": []},
        },
    })


class TestResolveProfile:
    @pytest.mark.asyncio
    async def test_resolves_profile(self, store):
        profile = await resolve_profile(store, "u1", FAST)
        assert profile.id == "u1"
        assert profile.display_name == "Asha"
        assert profile.credential_ids == ["c1", "c2"]

    @pytest.mark.asyncio
    async def test_empty_credentials(self, store):
        profile = await resolve_profile(store, "u2", FAST)
        assert profile.credential_ids == []

    @pytest.mark.asyncio
    async def test_missing_profile(self, store):
        with pytest.raises(ProfileNotFound) as exc_info:
            await resolve_profile(store, "missing", FAST)
        assert exc_info.value.user_id == "missing"

    @pytest.mark.asyncio
    async def test_missing_profile_not_retried(self, store):
        with pytest.raises(ProfileNotFound):
            await resolve_profile(store, "missing", FAST)
        assert store.reads == [("users", "missing")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", ["", None])
    async def test_empty_user_id_never_queries_store(self, store, user_id):
        with pytest.raises(InvalidRequestError):
            await resolve_profile(store, user_id, FAST)
        assert store.reads == []

    @pytest.mark.asyncio
    async def test_invalid_request_is_value_error(self, store):
        with pytest.raises(ValueError):
            await resolve_profile(store, "", FAST)

    @pytest.mark.asyncio
    async def test_persistent_fault_is_transient_after_retries(self, store):
        store.set_fault("u1")
        with pytest.raises(TransientStoreError):
            await resolve_profile(store, "u1", FAST)
        assert len(store.reads) == 3

    @pytest.mark.asyncio
    async def test_recovers_after_transient_fault(self):
        store = FlakyStore({"users": {"u1": {"credentials": ["c1"]}}}, failures=2)
        profile = await resolve_profile(store, "u1", FAST)
        assert profile.credential_ids == ["c1"]
        assert len(store.reads) == 3

    @pytest.mark.asyncio
    async def test_single_try_config(self):
        store = FlakyStore({"users": {"u1": {}}}, failures=1)
        config = PortalConfig(profile_max_tries=1, retry_backoff=0.0)
        with pytest.raises(TransientStoreError):
            await resolve_profile(store, "u1", config)
        assert len(store.reads) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, store):
        store.set_delay("u1", 0.5)
        config = PortalConfig(profile_max_tries=1, lookup_timeout=0.05)
        with pytest.raises(TransientStoreError):
            await resolve_profile(store, "u1", config)

    @pytest.mark.asyncio
    async def test_custom_collection(self):
        store = InMemoryDocumentStore({"profiles": {"u1": {"credentials": ["c1"]}}})
        config = PortalConfig(profiles_collection="profiles")
        profile = await resolve_profile(store, "u1", config)
        assert profile.credential_ids == ["c1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", ["c1", {"c1": True}, 42])
    async def test_malformed_profile_not_retried(self, stored):
        store = InMemoryDocumentStore({"users": {"u1": {"credentials": stored}}})
        with pytest.raises(MalformedRecordError) as exc_info:
            await resolve_profile(store, "u1", FAST)
        assert exc_info.value.doc_id == "u1"
        assert len(store.reads) == 1

    @pytest.mark.asyncio
    async def test_junk_ids_are_skipped(self):
        store = InMemoryDocumentStore({"users": {"u1": {"credentials": ["c1", "", 1, None, "c2"]}}})
        profile = await resolve_profile(store, "u1", FAST)
        assert profile.credential_ids == ["c1", "c2"]
