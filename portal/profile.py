"""
Profile resolution — the first step of every dashboard load.

Absent profiles are permanent (ProfileNotFound, never retried). Store faults
and timeouts are transient and retried with exponential backoff before being
raised as TransientStoreError. A profile document that exists but cannot be
decoded raises MalformedRecordError and is not retried.
"""

from __future__ import annotations

import asyncio
import logging

import backoff
from pydantic import ValidationError

from .config import PortalConfig
from .errors import (
    InvalidRequestError,
    MalformedRecordError,
    ProfileNotFound,
    StoreError,
    TransientStoreError,
)
from .schema import UserProfile
from .store import DocumentStore

logger = logging.getLogger(__name__)


async def _fetch_profile(
    store: DocumentStore, user_id: str, config: PortalConfig
) -> UserProfile:
    try:
        doc = await asyncio.wait_for(
            store.get(config.profiles_collection, user_id),
            timeout=config.lookup_timeout,
        )
    except asyncio.TimeoutError as e:
        raise TransientStoreError(f"Timed out loading profile {user_id}") from e
    except MalformedRecordError:
        raise
    except StoreError as e:
        raise TransientStoreError(f"Could not load profile {user_id}: {e}") from e

    if doc is None:
        raise ProfileNotFound(user_id)
    try:
        return UserProfile.model_validate({**doc, "id": user_id})
    except ValidationError as e:
        raise MalformedRecordError(
            f"Profile {user_id} is malformed: {e.error_count()} invalid field(s)",
            collection=config.profiles_collection, doc_id=user_id,
        ) from e


async def resolve_profile(
    store: DocumentStore,
    user_id: str,
    config: PortalConfig | None = None,
) -> UserProfile:
    """
    Fetch the profile for an authenticated user.

    Raises:
        InvalidRequestError: user_id is empty; the store is not queried.
        ProfileNotFound: no profile document exists.
        TransientStoreError: the store kept failing after all retries.
        MalformedRecordError: the stored profile cannot be decoded.
    """
    if not isinstance(user_id, str) or not user_id:
        raise InvalidRequestError("resolve_profile requires an authenticated user id")
    config = config or PortalConfig()

    fetch = backoff.on_exception(
        backoff.expo,
        TransientStoreError,
        max_tries=max(1, config.profile_max_tries),
        factor=config.retry_backoff,
        jitter=None,
        logger=logger,
    )(_fetch_profile)

    profile = await fetch(store, user_id, config)
    logger.debug(f"Resolved profile {user_id} with {len(profile.credential_ids)} credential ids")
    return profile
