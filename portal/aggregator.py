"""
Credential aggregation — concurrent, all-settle resolution of credential ids.

    ids ──▶ lookup(c1) ─┐
            lookup(c2) ─┼─ gather (all settle) ─▶ keep FOUND ─▶ credentials
            lookup(cN) ─┘

Each lookup is independent and read-only, so they share one store client
without locking. Total latency tracks the slowest lookup, not the sum.
A missing record or a failing/timed-out lookup only drops that id.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Sequence

from .config import PortalConfig
from .errors import InvalidRequestError, StoreError
from .schema import Credential, CredentialAggregate, LookupResult, LookupStatus
from .store import DocumentStore

logger = logging.getLogger(__name__)


def _validate_ids(credential_ids: Sequence[str]) -> list[str]:
    if isinstance(credential_ids, (str, bytes)) or not isinstance(
        credential_ids, (list, tuple)
    ):
        raise InvalidRequestError("credential_ids must be a list of ids")
    for cid in credential_ids:
        if not isinstance(cid, str) or not cid:
            raise InvalidRequestError(f"Invalid credential id: {cid!r}")
    # Looked up once each, first occurrence wins
    return list(dict.fromkeys(credential_ids))


async def lookup_credential(
    store: DocumentStore,
    credential_id: str,
    timeout: float | None = None,
    collection: str = "credentials",
) -> LookupResult:
    """Look up one credential. Never raises; every failure becomes an ERROR result."""
    try:
        doc = await asyncio.wait_for(store.get(collection, credential_id), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Lookup of credential {credential_id} timed out after {timeout}s")
        return LookupResult(credential_id, LookupStatus.ERROR, error="timeout")
    except StoreError as e:
        logger.warning(f"Lookup of credential {credential_id} failed: {e}")
        return LookupResult(credential_id, LookupStatus.ERROR, error=str(e))
    except Exception as e:
        # A store client bug must not take down the other lookups
        logger.warning(
            f"Lookup of credential {credential_id} raised {type(e).__name__}: {e}",
            exc_info=True,
        )
        return LookupResult(credential_id, LookupStatus.ERROR, error=type(e).__name__)

    if doc is None:
        return LookupResult(credential_id, LookupStatus.NOT_FOUND)

    try:
        credential = Credential.model_validate({**doc, "id": credential_id})
    except ValueError as e:
        logger.warning(f"Credential {credential_id} is malformed: {e}")
        return LookupResult(credential_id, LookupStatus.ERROR, error="malformed record")
    return LookupResult(credential_id, LookupStatus.FOUND, credential=credential)


async def aggregate_credentials(
    store: DocumentStore,
    credential_ids: Sequence[str],
    config: PortalConfig | None = None,
) -> CredentialAggregate:
    """
    Resolve every id concurrently and wait for all lookups to settle.

    Only a malformed id list raises (InvalidRequestError); individual
    lookup failures are reported in ``failed_ids`` / ``missing_ids``.
    """
    ids = _validate_ids(credential_ids)
    aggregate = CredentialAggregate()
    if not ids:
        return aggregate

    config = config or PortalConfig()
    results = await asyncio.gather(*(
        lookup_credential(
            store, cid,
            timeout=config.lookup_timeout,
            collection=config.credentials_collection,
        )
        for cid in ids
    ))

    for result in results:
        if result.status == LookupStatus.FOUND:
            aggregate.credentials.append(result.credential)
        elif result.status == LookupStatus.NOT_FOUND:
            aggregate.missing_ids.append(result.credential_id)
        else:
            aggregate.failed_ids.append(result.credential_id)

    if aggregate.missing_ids or aggregate.failed_ids:
        logger.info(
            f"Resolved {len(aggregate.credentials)}/{len(ids)} credentials "
            f"(missing={len(aggregate.missing_ids)}, failed={len(aggregate.failed_ids)})"
        )
    return aggregate


async def resolve_credentials(
    store: DocumentStore,
    credential_ids: Sequence[str],
    config: PortalConfig | None = None,
) -> list[Credential]:
    """Successfully resolved credentials only; order is not guaranteed."""
    aggregate = await aggregate_credentials(store, credential_ids, config)
    return aggregate.credentials


def sort_by_created_at(
    credentials: Iterable[Credential], newest_first: bool = True
) -> list[Credential]:
    return sorted(credentials, key=lambda c: (c.created_at, c.id), reverse=newest_first)
