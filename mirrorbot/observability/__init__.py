"""Observability module for metrics."""

from mirrorbot.observability.metrics import (
    ACTIVE_PAIRS,
    ACTIVE_SESSIONS,
    EVENTS_TOTAL,
    VOICE_JOB_DURATION,
    VOICE_JOBS,
    WAITING_USERS,
    record_state_gauges,
    record_voice_job,
)

__all__ = [
    "EVENTS_TOTAL",
    "VOICE_JOBS",
    "VOICE_JOB_DURATION",
    "ACTIVE_SESSIONS",
    "ACTIVE_PAIRS",
    "WAITING_USERS",
    "record_state_gauges",
    "record_voice_job",
]
