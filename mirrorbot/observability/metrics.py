"""Prometheus metrics for the Frosted Mirror bot.

Provides metrics for monitoring event handling, pairing, moderation and
the voice anonymization pipeline.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

# =============================================================================
# Counters
# =============================================================================

EVENTS_TOTAL = Counter(
    "mirrorbot_events_total",
    "Inbound events handled by the bot",
    ["kind", "outcome"],
)

PAIRS_FORMED = Counter(
    "mirrorbot_pairs_formed_total",
    "Blind chat pairs connected",
)

CHATS_ENDED = Counter(
    "mirrorbot_chats_ended_total",
    "Blind chats ended",
    ["reason"],
)

REPORTS_FILED = Counter(
    "mirrorbot_reports_total",
    "Abuse reports filed from blind chats",
    ["reason"],
)

AUTO_BANS = Counter(
    "mirrorbot_auto_bans_total",
    "Users banned automatically after repeated reports",
)

CONFESSIONS_SUBMITTED = Counter(
    "mirrorbot_confessions_submitted_total",
    "Confessions submitted for review",
    ["type"],
)

MODERATION_DECISIONS = Counter(
    "mirrorbot_moderation_decisions_total",
    "Moderator actions on confessions",
    ["decision"],
)

VOICE_JOBS = Counter(
    "mirrorbot_voice_jobs_total",
    "Voice anonymization jobs by outcome and pitch strategy",
    ["outcome", "strategy"],
)

SWEEP_REMOVALS = Counter(
    "mirrorbot_sweep_removals_total",
    "Stale state removed by the cleanup sweep",
    ["kind"],
)

# =============================================================================
# Gauges
# =============================================================================

ACTIVE_SESSIONS = Gauge(
    "mirrorbot_active_sessions",
    "Sessions currently held in memory",
)

ACTIVE_PAIRS = Gauge(
    "mirrorbot_active_pairs",
    "Blind chat pairs currently connected",
)

WAITING_USERS = Gauge(
    "mirrorbot_waiting_users",
    "Users in the waiting slot (0 or 1)",
)

# =============================================================================
# Histograms
# =============================================================================

VOICE_JOB_DURATION = Histogram(
    "mirrorbot_voice_job_seconds",
    "End-to-end voice anonymization time",
    buckets=[0.5, 1, 2, 3, 5, 8, 13, 21, 34, 60, 120],
)

EVENT_LATENCY = Histogram(
    "mirrorbot_event_seconds",
    "Time to handle one inbound event",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# =============================================================================
# Helper Functions
# =============================================================================


def record_state_gauges(*, sessions: int, pairs: int, waiting: bool) -> None:
    """Publish current in-memory state sizes.

    Args:
        sessions: Number of live sessions
        pairs: Number of connected pairs
        waiting: Whether the waiting slot is occupied
    """
    ACTIVE_SESSIONS.set(sessions)
    ACTIVE_PAIRS.set(pairs)
    WAITING_USERS.set(1 if waiting else 0)


def record_voice_job(outcome: str, strategy: str | None, duration_seconds: float) -> None:
    """Record metrics for a finished voice job.

    Args:
        outcome: success or the failing stage name
        strategy: Pitch-shift strategy that produced the output, if any
        duration_seconds: Wall time of the job
    """
    VOICE_JOBS.labels(outcome=outcome, strategy=strategy or "none").inc()
    VOICE_JOB_DURATION.observe(duration_seconds)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format.
    """
    return generate_latest()


def get_content_type() -> str:
    """Get the content type for Prometheus metrics.

    Returns:
        Content-Type header value for Prometheus metrics.
    """
    return CONTENT_TYPE_LATEST
