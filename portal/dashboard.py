"""
Student dashboard loader — composes profile resolution and credential
aggregation into a render-ready view.

This is the caller side of the core: resolve_profile and
aggregate_credentials stay free of side effects, and the loader turns their
outcomes into semantic notifications.

  signed out            → ViewState.SIGNED_OUT
  ProfileNotFound       → ViewState.GUEST
  TransientStoreError,
  MalformedRecordError  → previous view kept (or GUEST) + PROFILE_LOAD_FAILED
  otherwise             → ViewState.READY, newest credentials first,
                          one CREDENTIALS_LOAD_FAILED if any lookup errored
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from .aggregator import aggregate_credentials, sort_by_created_at
from .config import PortalConfig
from .errors import MalformedRecordError, ProfileNotFound, TransientStoreError
from .profile import resolve_profile
from .schema import (
    Credential,
    DashboardStats,
    DashboardView,
    Notification,
    NotificationKind,
    NotificationLevel,
    ViewState,
)
from .session import AuthSession, ViewGeneration
from .store import DocumentStore

logger = logging.getLogger(__name__)


def compute_stats(credentials: list[Credential]) -> DashboardStats:
    counts = Counter(c.type or "unknown" for c in credentials)
    return DashboardStats(total=len(credentials), by_type=dict(sorted(counts.items())))


class DashboardLoader:
    """
    Loads dashboard views for one mounted view.

    Usage:
        loader = DashboardLoader(store)
        view = await loader.load(session)          # mounts a new generation
        loader.unmount()                           # drop any in-flight load
    """

    def __init__(self, store: DocumentStore, config: PortalConfig | None = None):
        self.store = store
        self.config = config or PortalConfig()
        self.generations = ViewGeneration()

    async def load(
        self,
        session: AuthSession,
        previous: DashboardView | None = None,
    ) -> Optional[DashboardView]:
        """Build the view for *session*; None if superseded before completion."""
        generation = self.generations.mount()
        return await self.generations.run(generation, self.build(session, previous))

    def unmount(self) -> None:
        self.generations.unmount()

    async def build(
        self,
        session: AuthSession,
        previous: DashboardView | None = None,
    ) -> DashboardView:
        if not session.is_authenticated:
            return DashboardView(state=ViewState.SIGNED_OUT)

        user_id = session.user_id
        try:
            profile = await resolve_profile(self.store, user_id, self.config)
        except ProfileNotFound:
            logger.info(f"No profile for {user_id}; showing guest dashboard")
            return DashboardView(state=ViewState.GUEST)
        except (TransientStoreError, MalformedRecordError) as e:
            logger.warning(f"Profile load failed for {user_id}: {e}")
            notice = Notification(
                kind=NotificationKind.PROFILE_LOAD_FAILED,
                level=NotificationLevel.ERROR,
                detail=str(e),
            )
            base = previous or DashboardView(state=ViewState.GUEST)
            return base.model_copy(update={"notifications": [notice]})

        aggregate = await aggregate_credentials(
            self.store, profile.credential_ids, self.config
        )
        credentials = sort_by_created_at(aggregate.credentials)

        notifications: list[Notification] = []
        if aggregate.failed_ids:
            notifications.append(Notification(
                kind=NotificationKind.CREDENTIALS_LOAD_FAILED,
                level=NotificationLevel.ERROR,
                count=len(aggregate.failed_ids),
            ))

        return DashboardView(
            state=ViewState.READY,
            profile=profile,
            credentials=credentials,
            notifications=notifications,
            stats=compute_stats(credentials),
        )
