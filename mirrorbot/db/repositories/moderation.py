"""Report and admin contact repositories."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorbot.db.models import AdminContact, Report

BLIND_CHAT_CONTEXT = "Blind chat"


class AsyncReportRepository:
    """Async repository for abuse reports."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        reporter_id: int,
        reported_id: int,
        reason: str,
        *,
        context: str = BLIND_CHAT_CONTEXT,
    ) -> Report:
        report = Report(
            reporter_id=reporter_id,
            reported_id=reported_id,
            reason=reason,
            context=context,
        )
        self.session.add(report)
        await self.session.flush()
        return report

    async def count_against(self, user_id: int) -> int:
        query = select(func.count(Report.id)).where(Report.reported_id == user_id)  # type: ignore[arg-type]
        return (await self.session.execute(query)).scalar_one()


class AsyncAdminContactRepository:
    """Async repository for one-way admin messages."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, user_id: int, message: str) -> AdminContact:
        contact = AdminContact(user_id=user_id, message=message)
        self.session.add(contact)
        await self.session.flush()
        return contact
