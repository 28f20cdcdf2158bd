"""Blind connection profile repository."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from mirrorbot.db.models import BlindProfileRecord


class AsyncBlindProfileRepository:
    """Async repository for write-once blind profiles."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: int) -> BlindProfileRecord | None:
        return await self.session.get(BlindProfileRecord, user_id)

    async def create(self, record: BlindProfileRecord) -> BlindProfileRecord:
        """Store a new profile. An existing profile is returned unchanged."""
        existing = await self.get(record.user_id)
        if existing:
            return existing
        self.session.add(record)
        await self.session.flush()
        return record
