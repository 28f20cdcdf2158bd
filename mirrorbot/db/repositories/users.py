"""User repository: identity, permanent gender, bans and admin-contact allowance."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorbot.db.models import AdminContact, Gender, User


class AsyncUserRepository:
    """Async repository for bot handlers."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def upsert(
        self,
        user_id: int,
        *,
        username: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """Create the user on first contact, refresh names afterwards."""
        user = await self.get(user_id)
        if not user:
            user = User(user_id=user_id)
        user.username = username
        user.first_name = first_name
        user.last_name = last_name
        self.session.add(user)
        return user

    async def set_gender(self, user_id: int, gender: Gender) -> User:
        """Record the user's gender. A gender already set is never changed."""
        user = await self.get(user_id)
        if not user:
            user = User(user_id=user_id)
        if user.gender is None:
            user.gender = gender
            self.session.add(user)
        return user

    async def is_banned(self, user_id: int) -> bool:
        user = await self.get(user_id)
        return bool(user and user.banned)

    async def ban(self, user_id: int) -> None:
        user = await self.get(user_id)
        if not user:
            user = User(user_id=user_id)
        user.banned = True
        self.session.add(user)

    async def can_contact_admin(self, user_id: int) -> bool:
        user = await self.get(user_id)
        return user is None or user.admin_contact_allowed

    async def close_admin_contact(self, user_id: int) -> None:
        user = await self.get(user_id)
        if user:
            user.admin_contact_allowed = False
            self.session.add(user)

    async def reopen_admin_contacts(self, cutoff: datetime) -> int:
        """Allow admin contact again for users whose latest contact predates cutoff.

        Returns:
            Number of users reopened
        """
        latest = (
            select(AdminContact.user_id)
            .group_by(AdminContact.user_id)
            .having(func.max(AdminContact.created_at) < cutoff)
        )
        result = await self.session.execute(
            update(User)
            .where(User.user_id.in_(latest))  # type: ignore[union-attr]
            .where(User.admin_contact_allowed == False)  # noqa: E712
            .values(admin_contact_allowed=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
