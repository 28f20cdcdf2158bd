"""Periodic sweep of stale in-memory state.

Every interval:
- drop sessions idle past the session timeout
- expire comment sessions idle past the comment timeout (and tell the user)
- clear the waiting slot when the waiter went away
- reopen admin contact for users whose last contact is past the cooldown
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from mirrorbot.config import Settings
from mirrorbot.content import messages
from mirrorbot.core.matchmaker import Matchmaker
from mirrorbot.core.messenger import Messenger
from mirrorbot.core.session import SessionStore
from mirrorbot.core.storage import SessionFactory, unit_of_work
from mirrorbot.logging_config import get_logger, mask_user_id
from mirrorbot.observability.metrics import SWEEP_REMOVALS, record_state_gauges
from mirrorbot.services.transport import keyboards

logger: Any = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class SweepReport:
    """What one sweep removed."""

    sessions_removed: int = 0
    comments_expired: int = 0
    waiting_cleared: bool = False
    contacts_reopened: int = 0


class CleanupScheduler:
    """Runs the sweep as an independent asyncio task."""

    def __init__(
        self,
        *,
        sessions: SessionStore,
        matchmaker: Matchmaker,
        messenger: Messenger,
        session_factory: SessionFactory,
        interval_seconds: float = 600.0,
        session_idle: timedelta = timedelta(minutes=30),
        comment_idle: timedelta = timedelta(minutes=10),
        waiting_idle: timedelta = timedelta(minutes=30),
        contact_cooldown: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.sessions = sessions
        self.matchmaker = matchmaker
        self.messenger = messenger
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.session_idle = session_idle
        self.comment_idle = comment_idle
        self.waiting_idle = waiting_idle
        self.contact_cooldown = contact_cooldown
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> CleanupScheduler:
        return cls(
            interval_seconds=settings.cleanup_interval_seconds,
            session_idle=timedelta(minutes=settings.session_idle_minutes),
            comment_idle=timedelta(minutes=settings.comment_idle_minutes),
            waiting_idle=timedelta(minutes=settings.waiting_idle_minutes),
            contact_cooldown=timedelta(days=settings.admin_contact_cooldown_days),
            **kwargs,
        )

    async def run_once(self, now: datetime | None = None) -> SweepReport:
        """Run every sweep step once. A failing step is logged and skipped."""
        now = now or self._clock()
        removed = expired = reopened = 0
        waiting_cleared = False

        try:
            sweep = await self.sessions.sweep(
                idle_after=self.session_idle,
                comment_idle_after=self.comment_idle,
                now=now,
            )
            removed = len(sweep.removed)
            expired = len(sweep.expired_comments)
            for user_id in sweep.expired_comments:
                await self.messenger.send_text(
                    user_id, messages.COMMENT_SESSION_EXPIRED, keyboards.MAIN_MENU
                )
        except Exception as e:
            logger.error(f"Session sweep failed: {e}")

        try:
            waiting_cleared = await self._sweep_waiting()
        except Exception as e:
            logger.error(f"Waiting slot sweep failed: {e}")

        try:
            async with unit_of_work(self.session_factory) as repos:
                reopened = await repos.users.reopen_admin_contacts(now - self.contact_cooldown)
        except Exception as e:
            logger.error(f"Admin contact sweep failed: {e}")

        await self.publish_gauges()

        SWEEP_REMOVALS.labels(kind="session").inc(removed)
        SWEEP_REMOVALS.labels(kind="comment").inc(expired)
        SWEEP_REMOVALS.labels(kind="waiting").inc(1 if waiting_cleared else 0)
        SWEEP_REMOVALS.labels(kind="admin_contact").inc(reopened)

        report = SweepReport(
            sessions_removed=removed,
            comments_expired=expired,
            waiting_cleared=waiting_cleared,
            contacts_reopened=reopened,
        )
        if removed or expired or waiting_cleared or reopened:
            logger.info(f"Cleanup sweep: {report}")
        return report

    async def _sweep_waiting(self) -> bool:
        waiting = await self.matchmaker.waiting_user()
        if waiting is None:
            return False
        if await self.sessions.is_active(waiting, self.waiting_idle):
            return False
        cleared = await self.matchmaker.clear_waiting_if(waiting)
        if cleared:
            logger.info(f"Cleared stale waiting user {mask_user_id(waiting)}")
        return cleared

    async def publish_gauges(self) -> None:
        """Push current session, pair and waiting-slot sizes to the gauges."""
        record_state_gauges(
            sessions=await self.sessions.count(),
            pairs=await self.matchmaker.pair_count(),
            waiting=await self.matchmaker.waiting_user() is not None,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop(), name="cleanup-sweep")
        logger.info(f"Cleanup scheduler started (every {self.interval_seconds:.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cleanup scheduler stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
