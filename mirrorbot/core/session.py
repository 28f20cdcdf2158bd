"""Per-user conversational sessions.

Sessions are created lazily on first interaction, touched on every
inbound message and destroyed by the cleanup sweep after inactivity.
All access goes through SessionStore, whose lock is held only for
in-memory mutation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any

from mirrorbot.core.flows import (
    ConfessionDraft,
    Draft,
    FlowKind,
    Step,
    Transition,
    flow_of,
)
from mirrorbot.logging_config import get_logger, mask_user_id

logger: Any = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class UserSession:
    """Transient state for one user.

    The draft always belongs to the flow of the current step; an IDLE
    session has no draft.
    """

    user_id: int
    step: Step = Step.IDLE
    draft: Draft | None = None
    last_active_at: datetime = field(default_factory=_utcnow)

    @property
    def flow(self) -> FlowKind | None:
        return flow_of(self.step)

    @property
    def is_idle(self) -> bool:
        return self.step is Step.IDLE

    def reset(self) -> None:
        self.step = Step.IDLE
        self.draft = None


@dataclass(frozen=True, slots=True)
class SessionSweep:
    """Outcome of one session sweep."""

    removed: tuple[int, ...] = ()
    expired_comments: tuple[int, ...] = ()


class SessionStore:
    """Registry of active user sessions.

    Readers receive copies; mutation happens only through the store.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._sessions: dict[int, UserSession] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def touch(self, user_id: int) -> UserSession:
        """Get or create the user's session and mark it active."""
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = UserSession(user_id=user_id, last_active_at=self._clock())
                self._sessions[user_id] = session
            else:
                session.last_active_at = self._clock()
            return replace(session)

    async def get(self, user_id: int) -> UserSession | None:
        async with self._lock:
            session = self._sessions.get(user_id)
            return replace(session) if session else None

    async def begin(self, user_id: int, step: Step, draft: Draft) -> UserSession:
        """Enter a flow at the given step, replacing any flow in progress."""
        async with self._lock:
            session = self._sessions.setdefault(user_id, UserSession(user_id=user_id))
            session.step = step
            session.draft = draft
            session.last_active_at = self._clock()
            return replace(session)

    async def apply(self, user_id: int, result: Transition) -> UserSession:
        """Store a transition's step and draft. IDLE always clears the draft."""
        async with self._lock:
            session = self._sessions.setdefault(user_id, UserSession(user_id=user_id))
            session.step = result.step
            session.draft = None if result.step is Step.IDLE else result.draft
            return replace(session)

    async def complete_job(self, user_id: int, job_id: str) -> bool:
        """Finish the confession flow if the session still awaits this job.

        Returns:
            False when the user cancelled or the session was swept, in which
            case the job result must be discarded
        """
        async with self._lock:
            session = self._sessions.get(user_id)
            if (
                session is None
                or session.step is not Step.CONFESSION_PROCESSING
                or not isinstance(session.draft, ConfessionDraft)
                or session.draft.job_id != job_id
            ):
                return False
            session.reset()
            return True

    async def reset(self, user_id: int) -> bool:
        """Abandon any flow. Returns True if a flow was in progress."""
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None or session.is_idle:
                return False
            session.reset()
            return True

    async def is_active(self, user_id: int, idle_after: timedelta) -> bool:
        """Check the user has a session touched within idle_after."""
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return False
            return self._clock() - session.last_active_at <= idle_after

    async def sweep(
        self,
        *,
        idle_after: timedelta,
        comment_idle_after: timedelta,
        now: datetime | None = None,
    ) -> SessionSweep:
        """Expire stale comment sessions and drop idle sessions.

        Comment sessions idle past comment_idle_after return to IDLE and are
        reported so the caller can notify the user (after the lock is released).
        Sessions idle past idle_after are destroyed.
        """
        now = now or self._clock()
        expired_comments: list[int] = []
        removed: list[int] = []

        async with self._lock:
            for user_id, session in list(self._sessions.items()):
                idle = now - session.last_active_at
                if session.step is Step.COMMENT_TEXT and idle > comment_idle_after:
                    session.reset()
                    expired_comments.append(user_id)
                if idle > idle_after:
                    del self._sessions[user_id]
                    removed.append(user_id)

        if removed or expired_comments:
            logger.debug(
                f"Session sweep: removed={len(removed)} "
                f"expired_comments={[mask_user_id(u) for u in expired_comments]}"
            )
        return SessionSweep(removed=tuple(removed), expired_comments=tuple(expired_comments))

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)
