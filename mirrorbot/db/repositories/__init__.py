"""Repository pattern implementations for data access."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from mirrorbot.db.repositories.confessions import (
    AsyncConfessionRepository,
    ConfessionStats,
)
from mirrorbot.db.repositories.moderation import (
    AsyncAdminContactRepository,
    AsyncReportRepository,
)
from mirrorbot.db.repositories.profiles import AsyncBlindProfileRepository
from mirrorbot.db.repositories.users import AsyncUserRepository


@dataclass(slots=True)
class Repositories:
    """All repositories bound to one database session."""

    session: AsyncSession
    users: AsyncUserRepository
    confessions: AsyncConfessionRepository
    profiles: AsyncBlindProfileRepository
    reports: AsyncReportRepository
    admin_contacts: AsyncAdminContactRepository

    @classmethod
    def from_session(cls, session: AsyncSession) -> Repositories:
        return cls(
            session=session,
            users=AsyncUserRepository(session),
            confessions=AsyncConfessionRepository(session),
            profiles=AsyncBlindProfileRepository(session),
            reports=AsyncReportRepository(session),
            admin_contacts=AsyncAdminContactRepository(session),
        )


__all__ = [
    "Repositories",
    # User repositories
    "AsyncUserRepository",
    # Confession repositories
    "AsyncConfessionRepository",
    "ConfessionStats",
    # Profile repositories
    "AsyncBlindProfileRepository",
    # Moderation repositories
    "AsyncReportRepository",
    "AsyncAdminContactRepository",
]
