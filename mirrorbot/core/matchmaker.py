"""Blind pairing: single waiting slot plus a symmetric pair registry.

At most one user waits at a time. A newcomer is paired with the waiter
when both profiles accept each other; otherwise the newcomer takes the
slot. Links are always created and removed for both sides together
under one lock, so no reader ever sees a half-linked pair.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, auto
from typing import Any

from mirrorbot.db.models import Gender, PreferredGender
from mirrorbot.logging_config import get_logger, mask_user_id

logger: Any = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BlindProfile:
    """Immutable pairing profile."""

    user_id: int
    gender: Gender
    age: int
    years_on_campus: int
    year_of_study: str
    pref_gender: PreferredGender
    pref_age_min: int
    pref_age_max: int
    profile_complete: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def accepts_gender(seeker: BlindProfile, other: BlindProfile) -> bool:
    """Check the seeker's gender preference admits the other user."""
    if seeker.pref_gender is PreferredGender.both:
        return True
    return seeker.pref_gender.value == other.gender.value


def accepts_age(seeker: BlindProfile, other: BlindProfile) -> bool:
    """Check the other user's age is inside the seeker's preferred range."""
    return seeker.pref_age_min <= other.age <= seeker.pref_age_max


def is_compatible(p1: BlindProfile, p2: BlindProfile) -> bool:
    """Check two profiles can be paired.

    Pairing is opposite-gender only, and each side's gender and age
    preferences must admit the other. Each direction is checked on its own.
    """
    if p1.gender == p2.gender:
        return False
    if not accepts_gender(p1, p2) or not accepts_gender(p2, p1):
        return False
    return accepts_age(p1, p2) and accepts_age(p2, p1)


class MatchStatus(Enum):
    PAIRED = auto()
    WAITING = auto()
    ALREADY_PAIRED = auto()


class EndChatStatus(Enum):
    ENDED = auto()
    NOT_IN_CHAT = auto()


@dataclass(frozen=True, slots=True)
class PairLink:
    """One side of a pair, as seen by its owner."""

    partner_id: int
    partner_display: str
    own_display: str


@dataclass(frozen=True, slots=True)
class WaitingEntry:
    user_id: int
    profile: BlindProfile
    display: str
    since: datetime


@dataclass(frozen=True, slots=True)
class MatchResult:
    status: MatchStatus
    link: PairLink | None = None
    displaced_id: int | None = None


@dataclass(frozen=True, slots=True)
class EndChatResult:
    status: EndChatStatus
    link: PairLink | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Matchmaker:
    """Owns the waiting slot and the pair registry behind one lock."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._pairs: dict[int, PairLink] = {}
        self._waiting: WaitingEntry | None = None
        self._lock = asyncio.Lock()
        self._clock = clock

    async def request_match(
        self, user_id: int, profile: BlindProfile, display: str
    ) -> MatchResult:
        """Pair the user with the waiter or place them in the waiting slot.

        An incompatible waiter is displaced by the newcomer.

        Args:
            user_id: Requesting user
            profile: The user's complete profile
            display: Name the partner will see

        Returns:
            PAIRED with the user's link, WAITING, or ALREADY_PAIRED
        """
        async with self._lock:
            if user_id in self._pairs:
                return MatchResult(status=MatchStatus.ALREADY_PAIRED, link=self._pairs[user_id])

            waiting = self._waiting
            if waiting and waiting.user_id != user_id and is_compatible(profile, waiting.profile):
                own = PairLink(
                    partner_id=waiting.user_id,
                    partner_display=waiting.display,
                    own_display=display,
                )
                self._pairs[user_id] = own
                self._pairs[waiting.user_id] = PairLink(
                    partner_id=user_id,
                    partner_display=display,
                    own_display=waiting.display,
                )
                self._waiting = None
                logger.info(
                    f"Pair connected: {mask_user_id(user_id)} + {mask_user_id(waiting.user_id)}"
                )
                return MatchResult(status=MatchStatus.PAIRED, link=own)

            displaced = None
            if waiting and waiting.user_id != user_id:
                displaced = waiting.user_id
                logger.info(
                    f"Waiting user {mask_user_id(displaced)} displaced by "
                    f"{mask_user_id(user_id)} (incompatible)"
                )
            self._waiting = WaitingEntry(
                user_id=user_id,
                profile=profile,
                display=display,
                since=self._clock(),
            )
            return MatchResult(status=MatchStatus.WAITING, displaced_id=displaced)

    async def end_chat(self, user_id: int) -> EndChatResult:
        """Remove both sides of the user's pair. Idempotent."""
        async with self._lock:
            link = self._pairs.pop(user_id, None)
            if link is None:
                return EndChatResult(status=EndChatStatus.NOT_IN_CHAT)
            self._pairs.pop(link.partner_id, None)
            logger.info(
                f"Pair ended: {mask_user_id(user_id)} + {mask_user_id(link.partner_id)}"
            )
            return EndChatResult(status=EndChatStatus.ENDED, link=link)

    async def cancel_search(self, user_id: int) -> bool:
        """Leave the waiting slot. Returns False if the user was not waiting."""
        async with self._lock:
            if self._waiting and self._waiting.user_id == user_id:
                self._waiting = None
                return True
            return False

    async def clear_waiting_if(self, user_id: int) -> bool:
        """Clear the slot only if this user still occupies it."""
        return await self.cancel_search(user_id)

    async def partner_of(self, user_id: int) -> PairLink | None:
        async with self._lock:
            return self._pairs.get(user_id)

    async def is_waiting(self, user_id: int) -> bool:
        async with self._lock:
            return self._waiting is not None and self._waiting.user_id == user_id

    async def waiting_user(self) -> int | None:
        async with self._lock:
            return self._waiting.user_id if self._waiting else None

    async def pair_count(self) -> int:
        """Number of active pairs (each pair counted once)."""
        async with self._lock:
            return len(self._pairs) // 2
