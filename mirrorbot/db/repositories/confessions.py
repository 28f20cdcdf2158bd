"""Confession, comment and reaction repositories."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import case, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mirrorbot.db.models import (
    REACTION_EMOJIS,
    Confession,
    ConfessionComment,
    ConfessionReaction,
    ConfessionType,
    ReviewStatus,
)

COMMENT_LIST_LIMIT = 20


@dataclass(frozen=True, slots=True)
class ConfessionStats:
    """Per-user confession totals for the stats screen."""

    total: int = 0
    voice: int = 0
    approved: int = 0


class AsyncConfessionRepository:
    """Async repository for confessions and their engagement."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, confession_id: int) -> Confession | None:
        return await self.session.get(Confession, confession_id)

    async def create_text(self, user_id: int, text: str) -> Confession:
        confession = Confession(user_id=user_id, type=ConfessionType.text, text=text)
        self.session.add(confession)
        await self.session.flush()
        return confession

    async def create_voice(self, user_id: int, voice_ref: str, duration: int) -> Confession:
        confession = Confession(
            user_id=user_id,
            type=ConfessionType.voice,
            voice_ref=voice_ref,
            voice_duration=duration,
        )
        self.session.add(confession)
        await self.session.flush()
        return confession

    async def mark_approved(self, confession: Confession) -> Confession:
        confession.status = ReviewStatus.approved
        confession.posted_at = datetime.now(UTC)
        self.session.add(confession)
        return confession

    async def mark_rejected(self, confession: Confession) -> Confession:
        confession.status = ReviewStatus.rejected
        self.session.add(confession)
        return confession

    async def set_channel_message(self, confession: Confession, message_id: int) -> None:
        confession.channel_message_id = message_id
        self.session.add(confession)

    async def stats_for_user(self, user_id: int) -> ConfessionStats:
        query = select(
            func.count(Confession.id),
            func.sum(case((Confession.type == ConfessionType.voice, 1), else_=0)),
            func.sum(case((Confession.status == ReviewStatus.approved, 1), else_=0)),
        ).where(Confession.user_id == user_id)  # type: ignore[arg-type]
        total, voice, approved = (await self.session.execute(query)).one()
        return ConfessionStats(total=total or 0, voice=voice or 0, approved=approved or 0)

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    async def add_comment(
        self,
        confession_id: int,
        user_id: int,
        text: str,
        *,
        username: str | None = None,
    ) -> ConfessionComment:
        comment = ConfessionComment(
            confession_id=confession_id,
            user_id=user_id,
            username=username,
            text=text,
        )
        self.session.add(comment)
        await self.session.flush()
        return comment

    async def count_comments(self, confession_id: int) -> int:
        query = select(func.count(ConfessionComment.id)).where(
            ConfessionComment.confession_id == confession_id  # type: ignore[arg-type]
        )
        return (await self.session.execute(query)).scalar_one()

    async def latest_comments(
        self, confession_id: int, limit: int = COMMENT_LIST_LIMIT
    ) -> list[ConfessionComment]:
        query = (
            select(ConfessionComment)
            .where(ConfessionComment.confession_id == confession_id)  # type: ignore[arg-type]
            .order_by(desc(ConfessionComment.created_at), desc(ConfessionComment.id))  # type: ignore[arg-type]
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_comments_by_user(self, user_id: int) -> int:
        query = select(func.count(ConfessionComment.id)).where(
            ConfessionComment.user_id == user_id  # type: ignore[arg-type]
        )
        return (await self.session.execute(query)).scalar_one()

    # -------------------------------------------------------------------------
    # Reactions
    # -------------------------------------------------------------------------

    async def toggle_reaction(self, confession_id: int, user_id: int, emoji: str) -> bool:
        """Add the reaction, or remove it if the user already reacted with it.

        Returns:
            True if the reaction now exists
        """
        conditions = (
            ConfessionReaction.confession_id == confession_id,
            ConfessionReaction.user_id == user_id,
            ConfessionReaction.emoji == emoji,
        )
        existing = (
            await self.session.execute(select(ConfessionReaction).where(*conditions))  # type: ignore[arg-type]
        ).scalar_one_or_none()
        if existing:
            await self.session.execute(delete(ConfessionReaction).where(*conditions))  # type: ignore[arg-type]
            return False

        self.session.add(
            ConfessionReaction(confession_id=confession_id, user_id=user_id, emoji=emoji)
        )
        await self.session.flush()
        return True

    async def reaction_counts(self, confession_id: int) -> dict[str, int]:
        query = (
            select(ConfessionReaction.emoji, func.count(ConfessionReaction.id))
            .where(ConfessionReaction.confession_id == confession_id)  # type: ignore[arg-type]
            .group_by(ConfessionReaction.emoji)
        )
        rows = (await self.session.execute(query)).all()
        counts = dict.fromkeys(REACTION_EMOJIS, 0)
        counts.update({emoji: count for emoji, count in rows})
        return counts

    async def count_reactions_by_user(self, user_id: int) -> int:
        query = select(func.count(ConfessionReaction.id)).where(
            ConfessionReaction.user_id == user_id  # type: ignore[arg-type]
        )
        return (await self.session.execute(query)).scalar_one()
