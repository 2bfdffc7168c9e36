"""
Explicit auth-session context and per-view load generations.

AuthSession replaces ambient "current user" globals: it is created once per
client, populated on sign-in, cleared on sign-out, and passed to whatever
needs the user id.

ViewGeneration tracks which dashboard load is current. Mounting a view
starts a new generation and cancels the previous in-flight load; results
carrying an old generation are dropped instead of being rendered.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from .schema import Notification, NotificationKind, NotificationLevel

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Identity:
    """Attributes supplied by the identity provider."""
    user_id: str
    name: str = ""
    email: str = ""
    picture: str = ""


class AuthSession:
    def __init__(self, identity: Identity | None = None):
        self._identity: Identity | None = None
        if identity is not None:
            self.sign_in(identity)

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def user_id(self) -> Optional[str]:
        return self._identity.user_id if self._identity else None

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def sign_in(self, identity: Identity) -> None:
        if not identity.user_id:
            raise ValueError("identity.user_id must be non-empty")
        self._identity = identity
        logger.debug(f"Signed in {identity.user_id}")

    def sign_out(self) -> Optional[Notification]:
        """Clear the identity; returns a SIGNED_OUT notice if someone was signed in."""
        if self._identity is None:
            return None
        logger.debug(f"Signed out {self._identity.user_id}")
        self._identity = None
        return Notification(kind=NotificationKind.SIGNED_OUT, level=NotificationLevel.SUCCESS)


class ViewGeneration:
    """
    Generation counter for one mounted view.

        gen = views.mount()
        result = await views.run(gen, load())   # None if superseded
    """

    def __init__(self):
        self._current = 0
        self._task: asyncio.Task | None = None

    @property
    def current(self) -> int:
        return self._current

    def mount(self) -> int:
        self._cancel_inflight()
        self._current += 1
        return self._current

    def unmount(self) -> None:
        self._cancel_inflight()
        self._current += 1

    def is_current(self, generation: int) -> bool:
        return generation == self._current

    async def run(self, generation: int, work: Awaitable[T]) -> Optional[T]:
        """Await *work* for *generation*; None if it was cancelled or superseded."""
        if not self.is_current(generation):
            if asyncio.iscoroutine(work):
                work.close()
            return None
        task = asyncio.ensure_future(work)
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and not self.is_current(generation):
                logger.debug(f"Discarded load for stale generation {generation}")
                return None
            raise
        finally:
            if self._task is task:
                self._task = None
        if not self.is_current(generation):
            logger.debug(f"Discarded result for stale generation {generation}")
            return None
        return result

    def _cancel_inflight(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
