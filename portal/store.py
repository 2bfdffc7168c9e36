"""
Document store interface and in-memory implementation.

The portal reads two collections (profiles and credentials) by id. Any
backend that implements ``DocumentStore`` can be plugged in:

  - InMemoryDocumentStore — fixtures, tests, CLI; supports per-id latency
    and fault injection
  - FirestoreRestStore (portal.firestore) — managed document database over HTTPS

Stores return plain dicts (without the id) or ``None`` when the document is
absent, and raise ``StoreError`` for anything else.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Protocol

from .errors import StoreError

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def create(self, collection: str, data: dict) -> str: ...

    async def array_union(
        self, collection: str, doc_id: str, field_name: str, value: Any
    ) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...


def new_document_id() -> str:
    """20-character id, the same length the managed store auto-assigns."""
    return uuid.uuid4().hex[:20]


class InMemoryDocumentStore:
    """
    Dict-backed document store.

    Latency and faults can be injected per document id so tests can observe
    concurrency and partial-failure behaviour:

        store.set_delay("c1", 0.2)         # every read of c1 sleeps 200ms
        store.set_fault("c2")              # reads of c2 raise StoreError
        store.fail_writes("credentials")   # create/update in that collection fail
    """

    def __init__(self, data: dict[str, dict[str, dict]] | None = None):
        self._collections: dict[str, dict[str, dict]] = {}
        self._delays: dict[str, float] = {}
        self._faults: set[str] = set()
        self._failing_writes: set[str] = set()
        self.reads: list[tuple[str, str]] = []
        if data:
            for collection, docs in data.items():
                for doc_id, doc in docs.items():
                    self.put(collection, doc_id, doc)

    # -- fixtures ------------------------------------------------------------

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryDocumentStore":
        """Load ``{"users": {...}, "credentials": {...}}`` from a JSON file."""
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise StoreError(f"Fixture {path} must contain a JSON object")
        return cls(data)

    def dump(self) -> dict[str, dict[str, dict]]:
        return copy.deepcopy(self._collections)

    def put(self, collection: str, doc_id: str, doc: dict) -> None:
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(doc)

    def set_delay(self, doc_id: str, seconds: float) -> None:
        self._delays[doc_id] = seconds

    def set_fault(self, doc_id: str) -> None:
        self._faults.add(doc_id)

    def clear_fault(self, doc_id: str) -> None:
        self._faults.discard(doc_id)

    def fail_writes(self, collection: str) -> None:
        self._failing_writes.add(collection)

    # -- DocumentStore -------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> dict | None:
        self.reads.append((collection, doc_id))
        delay = self._delays.get(doc_id)
        if delay:
            await asyncio.sleep(delay)
        if doc_id in self._faults:
            raise StoreError(
                f"Injected fault reading {collection}/{doc_id}",
                collection=collection, doc_id=doc_id,
            )
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(self, collection: str, data: dict) -> str:
        self._check_writable(collection)
        doc_id = new_document_id()
        self.put(collection, doc_id, data)
        logger.debug(f"Created {collection}/{doc_id}")
        return doc_id

    async def array_union(
        self, collection: str, doc_id: str, field_name: str, value: Any
    ) -> None:
        self._check_writable(collection)
        doc = self._collections.get(collection, {}).get(doc_id)
        if doc is None:
            raise StoreError(
                f"Cannot update missing document {collection}/{doc_id}",
                collection=collection, doc_id=doc_id,
            )
        items = list(doc.get(field_name) or [])
        if value not in items:
            items.append(value)
        doc[field_name] = items

    async def delete(self, collection: str, doc_id: str) -> None:
        self._check_writable(collection)
        self._collections.get(collection, {}).pop(doc_id, None)

    def _check_writable(self, collection: str) -> None:
        if collection in self._failing_writes:
            raise StoreError(
                f"Injected write fault on {collection}", collection=collection
            )
