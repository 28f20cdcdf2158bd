"""Abuse report ledger with automatic ban at a threshold."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mirrorbot.core.exceptions import InvalidReportTarget
from mirrorbot.core.matchmaker import Matchmaker
from mirrorbot.logging_config import get_logger, mask_user_id
from mirrorbot.observability.metrics import AUTO_BANS, REPORTS_FILED

logger: Any = get_logger(__name__)

DEFAULT_BAN_THRESHOLD = 3

ReportWriter = Callable[[int, int, str], Awaitable[None]]
ThresholdHook = Callable[[int, int, str], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class ReportOutcome:
    count: int
    ban_triggered: bool


class ReportLedger:
    """Counts reports per user and fires the ban hook exactly once.

    Counts are monotonic and not deduplicated by reporter. The report is
    written through before the counter moves, so a failed write leaves
    the count untouched.
    """

    def __init__(
        self,
        matchmaker: Matchmaker,
        write_report: ReportWriter,
        on_threshold: ThresholdHook | None = None,
        *,
        threshold: int = DEFAULT_BAN_THRESHOLD,
    ) -> None:
        self._matchmaker = matchmaker
        self._write_report = write_report
        self._on_threshold = on_threshold
        self._threshold = threshold
        self._counts: dict[int, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    @property
    def threshold(self) -> int:
        return self._threshold

    async def file_report(self, reporter_id: int, reported_id: int, reason: str) -> ReportOutcome:
        """File a report from one side of a pair against the other.

        Args:
            reporter_id: User filing the report
            reported_id: Their current partner
            reason: Report reason label

        Returns:
            The new count and whether this report triggered the ban

        Raises:
            InvalidReportTarget: If the reporter is not paired with reported_id
            PersistenceError: If the report could not be stored
        """
        link = await self._matchmaker.partner_of(reporter_id)
        if link is None or link.partner_id != reported_id:
            raise InvalidReportTarget(reporter_id, reported_id)

        await self._write_report(reporter_id, reported_id, reason)

        async with self._lock:
            self._counts[reported_id] += 1
            count = self._counts[reported_id]

        REPORTS_FILED.labels(reason=reason).inc()
        triggered = count == self._threshold
        logger.info(
            f"Report against {mask_user_id(reported_id)}: {count}/{self._threshold} ({reason})"
        )

        if triggered:
            AUTO_BANS.inc()
            if self._on_threshold:
                await self._on_threshold(reported_id, reporter_id, reason)

        return ReportOutcome(count=count, ban_triggered=triggered)

    async def count_for(self, user_id: int) -> int:
        async with self._lock:
            return self._counts.get(user_id, 0)
