"""Karma aggregation and delivery of recompute triggers.

Karma is never patched incrementally: every recompute is a full rescan of
the user's live posts and comments, so running it twice, late or
concurrently converges on the same value.

Two delivery modes exist. ``InlineKarmaScheduler`` recomputes inside the
request right after the vote committed. ``KarmaWorker`` coalesces triggers
per user and recomputes them in the background, requeueing failures until
they succeed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from threadvote.core.errors import AggregationFailure, EngineError, NotFound
from threadvote.core.settings import settings
from threadvote.db.session import SessionLocal
from threadvote.repositories.user_repo import UserRepository

# Configure logger for this module
logger = logging.getLogger(__name__)


class KarmaAggregator:
    """Derives a user's karma from the cached scores of their content."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session)

    def recompute_karma(self, user_id: int) -> int:
        """Recompute and persist the karma of ``user_id``.

        Returns:
            The new karma value.

        Raises:
            NotFound: If the user does not exist.
            AggregationFailure: If the totals could not be read or stored.
        """
        try:
            if self.users.get_by_id(user_id) is None:
                raise NotFound(f"User {user_id} not found")
            post_total, comment_total = self.users.authored_score_totals(user_id)
            karma = post_total + comment_total
            self.users.store_karma(user_id, karma)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise AggregationFailure(f"Could not persist karma for user {user_id}") from exc

        logger.debug(
            "Karma for user %s is %d (posts %d, comments %d)",
            user_id, karma, post_total, comment_total,
        )
        return karma


class KarmaScheduler(Protocol):
    """Receives "the content of this user changed score" triggers."""

    def schedule(self, user_id: int) -> None:
        """Arrange for the user's karma to be recomputed."""


class InlineKarmaScheduler:
    """Recompute immediately on the caller's session; failures are only logged."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def schedule(self, user_id: int) -> None:
        try:
            KarmaAggregator(self.session).recompute_karma(user_id)
        except EngineError as exc:
            logger.warning("Karma recompute for user %s failed: %s", user_id, exc)


class KarmaWorker:
    """Background recompute loop with per-user coalescing.

    Triggers for the same user that arrive before the worker gets to them
    collapse into a single recompute. A failed recompute stays queued and is
    retried with capped exponential backoff, so every trigger is eventually
    delivered. ``schedule`` must be called from the event loop thread.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        retry_delay: float | None = None,
        max_retry_delay: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._retry_delay = (
            settings.karma_retry_delay_seconds if retry_delay is None else retry_delay
        )
        self._max_retry_delay = (
            settings.karma_retry_max_delay_seconds if max_retry_delay is None else max_retry_delay
        )
        # user id -> consecutive failed attempts
        self._pending: dict[int, int] = {}
        # user id -> loop time before which a failed user is not retried
        self._retry_at: dict[int, float] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._wakeup = asyncio.Event()
        self._stopping = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """True while the background loop is active."""
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> frozenset[int]:
        """User ids waiting for a recompute."""
        return frozenset(self._pending)

    def schedule(self, user_id: int) -> None:
        self._pending.setdefault(user_id, 0)
        self._wakeup.set()

    async def start(self) -> None:
        """Start the background recompute loop."""
        if not self.running:
            self._stopping = False
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the loop after a final attempt at everything still queued."""
        if self._task is None:
            return

        self._stopping = True
        self._wakeup.set()
        await self._task
        self._task = None
        self._cancel_timer()

        for user_id in self._pending:
            logger.error("Karma for user %s left stale at shutdown", user_id)

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            if self._stopping:
                await self.drain(force=True)
                return
            await self.drain()

    async def drain(self, *, force: bool = False) -> None:
        """Recompute every queued user that is due.

        Users still backing off after a failure stay queued unless ``force``
        is set.
        """
        now = asyncio.get_running_loop().time()
        due = [
            user_id for user_id in self._pending
            if force or self._retry_at.get(user_id, now) <= now
        ]
        for user_id in due:
            failures = self._pending.pop(user_id)
            self._retry_at.pop(user_id, None)
            try:
                await asyncio.to_thread(self._recompute, user_id)
            except NotFound:
                logger.warning("Dropping karma recompute for missing user %s", user_id)
            except EngineError as exc:
                self._requeue(user_id, failures + 1, exc)
        self._arm_timer()

    def _requeue(self, user_id: int, failures: int, exc: Exception) -> None:
        # A trigger that arrived meanwhile is folded into the retry.
        self._pending[user_id] = max(self._pending.get(user_id, 0), failures)
        delay = min(self._retry_delay * 2 ** (failures - 1), self._max_retry_delay)
        self._retry_at[user_id] = asyncio.get_running_loop().time() + delay
        logger.warning(
            "Karma recompute for user %s failed (attempt %d), retrying in %.2fs: %s",
            user_id, failures, delay, exc,
        )

    def _arm_timer(self) -> None:
        """Wake the loop when the earliest backed-off user becomes due."""
        self._cancel_timer()
        if self._stopping or not self._retry_at:
            return
        self._timer = asyncio.get_running_loop().call_at(
            min(self._retry_at.values()), self._wakeup.set
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _recompute(self, user_id: int) -> int:
        session = self._session_factory()
        try:
            return KarmaAggregator(session).recompute_karma(user_id)
        finally:
            session.close()
