"""Tests for compatibility rules and the pairing registry."""

import asyncio

import pytest
from conftest import make_profile

from mirrorbot.core.matchmaker import (
    EndChatStatus,
    Matchmaker,
    MatchStatus,
    accepts_age,
    is_compatible,
)
from mirrorbot.db.models import Gender, PreferredGender


class TestCompatibility:
    """Tests for is_compatible and its helpers."""

    def test_same_gender_never_compatible(self) -> None:
        """Same gender is rejected even when every preference would allow it."""
        a = make_profile(1, Gender.male, 22)
        c = make_profile(3, Gender.male, 22)

        assert not is_compatible(a, c)
        assert not is_compatible(c, a)

    @pytest.mark.parametrize("age,ok", [(18, True), (50, True), (17, False), (51, False)])
    def test_age_range_inclusive(self, age: int, ok: bool) -> None:
        seeker = make_profile(1, pref_age_min=18, pref_age_max=50)
        other = make_profile(2, Gender.female, age)

        assert accepts_age(seeker, other) is ok

    def test_checked_in_both_directions(self) -> None:
        """A accepting B is not enough; B must accept A too."""
        a = make_profile(1, Gender.male, 35, pref_age_min=18, pref_age_max=40)
        b = make_profile(2, Gender.female, 24, pref_age_min=20, pref_age_max=28)

        assert accepts_age(a, b)
        assert not accepts_age(b, a)
        assert not is_compatible(a, b)
        assert not is_compatible(b, a)

    def test_gender_preference_checked_per_side(self) -> None:
        a = make_profile(1, Gender.male, 22, pref_gender=PreferredGender.female)
        b = make_profile(2, Gender.female, 22, pref_gender=PreferredGender.female)

        assert not is_compatible(a, b)

    def test_symmetric_for_matching_profiles(self) -> None:
        a = make_profile(1, Gender.male, 22, pref_age_min=18, pref_age_max=30)
        b = make_profile(
            2, Gender.female, 24, pref_gender=PreferredGender.male, pref_age_min=20, pref_age_max=28
        )

        assert is_compatible(a, b)
        assert is_compatible(b, a)


class TestMatchmaking:
    """Tests for request_match, end_chat and the waiting slot."""

    @pytest.mark.asyncio
    async def test_compatible_pair_links_both_sides(self, matchmaker: Matchmaker) -> None:
        """A (male 22, both, 18-30) and B (female 24, male, 20-28) are paired A<->B."""
        a = make_profile(1, Gender.male, 22, pref_age_min=18, pref_age_max=30)
        b = make_profile(
            2, Gender.female, 24, pref_gender=PreferredGender.male, pref_age_min=20, pref_age_max=28
        )

        first = await matchmaker.request_match(1, a, "alpha")
        second = await matchmaker.request_match(2, b, "bravo")

        assert first.status == MatchStatus.WAITING
        assert second.status == MatchStatus.PAIRED
        assert second.link.partner_id == 1
        assert second.link.partner_display == "alpha"
        assert second.link.own_display == "bravo"

        link_a = await matchmaker.partner_of(1)
        link_b = await matchmaker.partner_of(2)
        assert link_a.partner_id == 2
        assert link_b.partner_id == 1
        assert await matchmaker.waiting_user() is None
        assert await matchmaker.pair_count() == 1

    @pytest.mark.asyncio
    async def test_same_gender_users_never_pair(self, matchmaker: Matchmaker) -> None:
        """A and C (both male) leave one of them in the waiting slot."""
        await matchmaker.request_match(1, make_profile(1, Gender.male), "alpha")
        result = await matchmaker.request_match(3, make_profile(3, Gender.male), "charlie")

        assert result.status == MatchStatus.WAITING
        assert await matchmaker.partner_of(1) is None
        assert await matchmaker.partner_of(3) is None
        assert await matchmaker.waiting_user() in (1, 3)

    @pytest.mark.asyncio
    async def test_incompatible_newcomer_displaces_waiter(self, matchmaker: Matchmaker) -> None:
        await matchmaker.request_match(1, make_profile(1, Gender.male), "alpha")
        result = await matchmaker.request_match(3, make_profile(3, Gender.male), "charlie")

        assert result.displaced_id == 1
        assert await matchmaker.waiting_user() == 3
        assert not await matchmaker.is_waiting(1)

    @pytest.mark.asyncio
    async def test_repeat_request_keeps_waiting(self, matchmaker: Matchmaker) -> None:
        profile = make_profile(1)
        await matchmaker.request_match(1, profile, "alpha")
        result = await matchmaker.request_match(1, profile, "alpha")

        assert result.status == MatchStatus.WAITING
        assert result.displaced_id is None
        assert await matchmaker.waiting_user() == 1

    @pytest.mark.asyncio
    async def test_already_paired(self, matchmaker: Matchmaker) -> None:
        await matchmaker.request_match(1, make_profile(1, Gender.male), "alpha")
        await matchmaker.request_match(2, make_profile(2, Gender.female), "bravo")

        result = await matchmaker.request_match(1, make_profile(1, Gender.male), "alpha")

        assert result.status == MatchStatus.ALREADY_PAIRED
        assert result.link.partner_id == 2

    @pytest.mark.asyncio
    async def test_end_chat_removes_both_sides_and_is_idempotent(
        self, matchmaker: Matchmaker
    ) -> None:
        await matchmaker.request_match(1, make_profile(1, Gender.male), "alpha")
        await matchmaker.request_match(2, make_profile(2, Gender.female), "bravo")

        ended = await matchmaker.end_chat(2)
        again = await matchmaker.end_chat(2)
        partner = await matchmaker.end_chat(1)

        assert ended.status == EndChatStatus.ENDED
        assert ended.link.partner_id == 1
        assert again.status == EndChatStatus.NOT_IN_CHAT
        assert partner.status == EndChatStatus.NOT_IN_CHAT
        assert await matchmaker.pair_count() == 0

    @pytest.mark.asyncio
    async def test_cancel_search(self, matchmaker: Matchmaker) -> None:
        await matchmaker.request_match(1, make_profile(1), "alpha")

        assert await matchmaker.cancel_search(2) is False
        assert await matchmaker.cancel_search(1) is True
        assert await matchmaker.waiting_user() is None

    @pytest.mark.asyncio
    async def test_clear_waiting_if_only_clears_named_user(self, matchmaker: Matchmaker) -> None:
        await matchmaker.request_match(1, make_profile(1), "alpha")

        assert await matchmaker.clear_waiting_if(2) is False
        assert await matchmaker.waiting_user() == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_form_one_pair(self, matchmaker: Matchmaker) -> None:
        """No user ends up in two pairs when requests interleave."""
        profiles = [
            make_profile(uid, Gender.male if uid % 2 else Gender.female) for uid in range(1, 9)
        ]
        await asyncio.gather(
            *(matchmaker.request_match(p.user_id, p, f"u{p.user_id}") for p in profiles)
        )

        partners = {}
        for p in profiles:
            link = await matchmaker.partner_of(p.user_id)
            if link:
                partners[p.user_id] = link.partner_id
        for user_id, partner_id in partners.items():
            assert partners[partner_id] == user_id
