"""
Content-addressable document storage.

Credential records only hold an opaque ``cid``. The portal never parses it;
it is used to build a viewer URL on a public gateway and to remove an
orphaned upload when the record write fails.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Protocol

from .errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY = "https://ipfs.io/ipfs/"


class ContentStore(Protocol):
    def address(self, data: bytes) -> str: ...

    async def exists(self, cid: str) -> bool: ...

    async def put(self, data: bytes, filename: str = "") -> str: ...

    async def remove(self, cid: str) -> None: ...


def content_address(data: bytes) -> str:
    """Deterministic address for *data* (sha256, hex)."""
    return "sha256-" + hashlib.sha256(data).hexdigest()


def gateway_url(cid: str, gateway: str = DEFAULT_GATEWAY) -> str:
    """Viewer URL for a document. The cid is passed through untouched."""
    return f"{gateway.rstrip('/')}/{cid}"


class InMemoryContentStore:
    """Content store keyed by ``content_address``; can be told to fail puts."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}
        self._names: dict[str, str] = {}
        self.fail_puts = False

    def __contains__(self, cid: str) -> bool:
        return cid in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def get(self, cid: str) -> bytes | None:
        return self._blobs.get(cid)

    def address(self, data: bytes) -> str:
        return content_address(data)

    async def exists(self, cid: str) -> bool:
        return cid in self._blobs

    async def put(self, data: bytes, filename: str = "") -> str:
        if self.fail_puts:
            raise StoreError("Injected fault storing document")
        cid = content_address(data)
        self._blobs[cid] = data
        self._names[cid] = filename
        logger.debug(f"Stored {len(data)} bytes as {cid}")
        return cid

    async def remove(self, cid: str) -> None:
        self._blobs.pop(cid, None)
        self._names.pop(cid, None)
