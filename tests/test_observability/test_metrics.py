"""Tests for Prometheus metrics."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

from mirrorbot.core.cleanup import CleanupScheduler
from mirrorbot.core.matchmaker import Matchmaker
from mirrorbot.core.session import SessionStore
from mirrorbot.observability.metrics import (
    ACTIVE_PAIRS,
    ACTIVE_SESSIONS,
    VOICE_JOBS,
    WAITING_USERS,
    get_content_type,
    get_metrics,
    record_state_gauges,
    record_voice_job,
)


class TestMetricsModule:
    """Tests for metrics module functions."""

    def test_get_metrics_returns_bytes(self) -> None:
        """Test get_metrics returns bytes."""
        result = get_metrics()
        assert isinstance(result, bytes)

    def test_get_content_type(self) -> None:
        """Test get_content_type returns valid content type."""
        content_type = get_content_type()
        assert "text/plain" in content_type or "text/openmetrics" in content_type

    def test_record_voice_job(self) -> None:
        """Test recording a voice job by outcome and strategy."""
        before = VOICE_JOBS.labels(outcome="success", strategy="rubberband")._value.get()

        record_voice_job("success", "rubberband", 2.5)

        after = VOICE_JOBS.labels(outcome="success", strategy="rubberband")._value.get()
        assert after == before + 1
        output = get_metrics().decode("utf-8")
        assert "mirrorbot_voice_jobs_total" in output
        assert "mirrorbot_voice_job_seconds" in output

    def test_failed_job_without_strategy(self) -> None:
        """A job that failed before pitch shifting is recorded with strategy none."""
        before = VOICE_JOBS.labels(outcome="fetch", strategy="none")._value.get()

        record_voice_job("fetch", None, 0.1)

        assert VOICE_JOBS.labels(outcome="fetch", strategy="none")._value.get() == before + 1


class TestStateGauges:
    """Tests for the in-memory state gauges."""

    def test_record_state_gauges(self) -> None:
        record_state_gauges(sessions=12, pairs=3, waiting=True)

        assert ACTIVE_SESSIONS._value.get() == 12
        assert ACTIVE_PAIRS._value.get() == 3
        assert WAITING_USERS._value.get() == 1

        record_state_gauges(sessions=0, pairs=0, waiting=False)
        assert WAITING_USERS._value.get() == 0


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    def test_metrics_endpoint_returns_200(self, test_client) -> None:
        """Test /metrics endpoint returns 200."""
        response = test_client.get("/metrics")

        assert response.status_code == 200

    def test_metrics_endpoint_content_type(self, test_client) -> None:
        """Test /metrics endpoint returns correct content type."""
        response = test_client.get("/metrics")

        content_type = response.headers["content-type"]
        # Prometheus content type
        assert "text/plain" in content_type or "text/openmetrics" in content_type

    def test_metrics_endpoint_contains_metrics(self, test_client) -> None:
        """Test /metrics endpoint contains the bot's metrics."""
        response = test_client.get("/metrics")

        assert "mirrorbot_events_total" in response.text

    def test_scrape_refreshes_state_gauges(self, test_client) -> None:
        """Gauges reflect the running bot at scrape time, not the last sweep."""
        sessions = SessionStore()
        matchmaker = Matchmaker()
        test_client.app.state.bot = SimpleNamespace(
            cleanup=CleanupScheduler(
                sessions=sessions,
                matchmaker=matchmaker,
                messenger=AsyncMock(),
                session_factory=AsyncMock(),
            )
        )
        record_state_gauges(sessions=12, pairs=3, waiting=True)

        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert "mirrorbot_active_pairs 0.0" in response.text
        assert ACTIVE_SESSIONS._value.get() == 0
        assert WAITING_USERS._value.get() == 0
