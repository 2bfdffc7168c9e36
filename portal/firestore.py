"""
Firestore REST backend for the portal document store.

Talks to the managed document database over its public REST API with an
async httpx client, so credential lookups can run concurrently on one
connection pool. Typed Firestore values ({"stringValue": ...},
{"arrayValue": {"values": [...]}}, ...) are decoded to plain Python values.

Environment: FIRESTORE_PROJECT_ID, FIRESTORE_API_KEY (see PortalConfig).
"""

from __future__ import annotations

import base64
import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from .errors import MalformedRecordError, StoreError
from .store import new_document_id

logger = logging.getLogger(__name__)

FIRESTORE_API = "https://firestore.googleapis.com/v1"

_TS_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


# ---------------------------------------------------------------------------
# Value codec
# ---------------------------------------------------------------------------

def _parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp with up to nanosecond precision."""
    m = _TS_RE.match(raw)
    if not m:
        raise ValueError(f"Unrecognised timestamp: {raw!r}")
    frac = (m.group("frac") or "0")[:6].ljust(6, "0")
    tz = m.group("tz")
    tz = "+00:00" if tz == "Z" else tz
    return datetime.fromisoformat(f"{m.group('base')}.{frac}{tz}")


def decode_value(value: dict) -> Any:
    """Convert one typed Firestore value to a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return _parse_timestamp(value["timestampValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: dict) -> dict:
    return {k: decode_value(v) for k, v in fields.items()}


def encode_value(value: Any) -> dict:
    """Convert a Python value to a typed Firestore value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        ts = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": ts}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode()}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict) -> dict:
    return {k: encode_value(v) for k, v in data.items()}


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class FirestoreRestStore:
    """
    DocumentStore backed by the Firestore REST API.

    Usage:
        async with FirestoreRestStore("my-project", api_key="...") as store:
            doc = await store.get("users", "u1")
    """

    def __init__(
        self,
        project_id: str,
        api_key: str = "",
        database: str = "(default)",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        if not project_id:
            raise ValueError("project_id is required")
        self.project_id = project_id
        self.api_key = api_key
        self._db_path = f"projects/{project_id}/databases/{database}"
        self._client = client or httpx.AsyncClient(base_url=FIRESTORE_API, timeout=timeout)

    async def __aenter__(self) -> "FirestoreRestStore":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _doc_path(self, collection: str, doc_id: str = "") -> str:
        path = f"/{self._db_path}/documents/{collection}"
        return f"{path}/{doc_id}" if doc_id else path

    def _params(self, **extra: str) -> dict:
        params = dict(extra)
        if self.api_key:
            params["key"] = self.api_key
        return params

    async def _request(
        self, method: str, url: str, collection: str, doc_id: str = "", **kwargs
    ) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(
                f"{method} {collection}/{doc_id} failed: {e}",
                collection=collection, doc_id=doc_id,
            ) from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response, collection: str, doc_id: str) -> None:
        if resp.status_code >= 400:
            raise StoreError(
                f"Firestore returned {resp.status_code} for {collection}/{doc_id}",
                collection=collection, doc_id=doc_id,
            )

    async def get(self, collection: str, doc_id: str) -> dict | None:
        resp = await self._request(
            "GET", self._doc_path(collection, doc_id), collection, doc_id,
            params=self._params(),
        )
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, collection, doc_id)
        try:
            return decode_fields(resp.json().get("fields", {}))
        except (ValueError, TypeError, AttributeError) as e:
            raise MalformedRecordError(
                f"Cannot decode {collection}/{doc_id}: {e}",
                collection=collection, doc_id=doc_id,
            ) from e

    async def create(self, collection: str, data: dict) -> str:
        doc_id = new_document_id()
        resp = await self._request(
            "POST", self._doc_path(collection), collection, doc_id,
            params=self._params(documentId=doc_id),
            json={"fields": encode_fields(data)},
        )
        self._raise_for_status(resp, collection, doc_id)
        logger.debug(f"Created {collection}/{doc_id}")
        return doc_id

    async def array_union(
        self, collection: str, doc_id: str, field_name: str, value: Any
    ) -> None:
        name = f"{self._db_path}/documents/{collection}/{doc_id}"
        body = {
            "writes": [{
                "transform": {
                    "document": name,
                    "fieldTransforms": [{
                        "fieldPath": field_name,
                        "appendMissingElements": {"values": [encode_value(value)]},
                    }],
                },
                "currentDocument": {"exists": True},
            }]
        }
        resp = await self._request(
            "POST", f"/{self._db_path}/documents:commit", collection, doc_id,
            params=self._params(), json=body,
        )
        self._raise_for_status(resp, collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        resp = await self._request(
            "DELETE", self._doc_path(collection, doc_id), collection, doc_id,
            params=self._params(),
        )
        if resp.status_code != 404:
            self._raise_for_status(resp, collection, doc_id)
