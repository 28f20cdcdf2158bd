"""Tests for the report ledger and the automatic ban threshold."""

from unittest.mock import AsyncMock

import pytest
from conftest import make_profile

from mirrorbot.core.exceptions import InvalidReportTarget, PersistenceError
from mirrorbot.core.matchmaker import Matchmaker
from mirrorbot.core.reports import ReportLedger
from mirrorbot.db.models import Gender


async def pair(matchmaker: Matchmaker, a: int, b: int) -> None:
    await matchmaker.request_match(a, make_profile(a, Gender.male), f"u{a}")
    await matchmaker.request_match(b, make_profile(b, Gender.female), f"u{b}")


class TestReportLedger:
    """Tests for ReportLedger.file_report."""

    @pytest.mark.asyncio
    async def test_third_report_fires_hook_once(self, matchmaker: Matchmaker) -> None:
        """Reports 1-2 count, report 3 bans, report 4 does not re-trigger."""
        writer = AsyncMock()
        hook = AsyncMock()
        ledger = ReportLedger(matchmaker, writer, hook, threshold=3)
        await pair(matchmaker, 1, 2)

        outcomes = [await ledger.file_report(1, 2, "Spamming") for _ in range(4)]

        assert [o.count for o in outcomes] == [1, 2, 3, 4]
        assert [o.ban_triggered for o in outcomes] == [False, False, True, False]
        hook.assert_awaited_once_with(2, 1, "Spamming")
        assert writer.await_count == 4

    @pytest.mark.asyncio
    async def test_reports_not_deduplicated_by_reporter(self, matchmaker: Matchmaker) -> None:
        ledger = ReportLedger(matchmaker, AsyncMock(), threshold=3)
        await pair(matchmaker, 1, 2)

        await ledger.file_report(1, 2, "Other")
        await ledger.file_report(1, 2, "Other")

        assert await ledger.count_for(2) == 2

    @pytest.mark.asyncio
    async def test_reporter_must_be_paired_with_target(self, matchmaker: Matchmaker) -> None:
        writer = AsyncMock()
        ledger = ReportLedger(matchmaker, writer)
        await pair(matchmaker, 1, 2)

        with pytest.raises(InvalidReportTarget):
            await ledger.file_report(1, 99, "Harassment")
        with pytest.raises(InvalidReportTarget):
            await ledger.file_report(5, 2, "Harassment")

        writer.assert_not_awaited()
        assert await ledger.count_for(99) == 0

    @pytest.mark.asyncio
    async def test_failed_write_leaves_count(self, matchmaker: Matchmaker) -> None:
        writer = AsyncMock(side_effect=PersistenceError("disk full"))
        ledger = ReportLedger(matchmaker, writer)
        await pair(matchmaker, 1, 2)

        with pytest.raises(PersistenceError):
            await ledger.file_report(1, 2, "Harassment")

        assert await ledger.count_for(2) == 0
