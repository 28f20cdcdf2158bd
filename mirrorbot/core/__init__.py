"""Core bot engine.

This module provides the in-memory state and flow logic:
- SessionStore: Per-user conversation step and draft
- Matchmaker: Waiting slot and blind chat pairs
- ReportLedger: Abuse reports and the automatic ban threshold
- transition: Pure step machine for the guided flows
"""

from mirrorbot.core.actions import ActionTag
from mirrorbot.core.flows import (
    Effect,
    FlowError,
    FlowInput,
    FlowKind,
    Step,
    Transition,
    transition,
)
from mirrorbot.core.matchmaker import (
    BlindProfile,
    EndChatStatus,
    Matchmaker,
    MatchStatus,
    PairLink,
    is_compatible,
)
from mirrorbot.core.reports import ReportLedger
from mirrorbot.core.session import SessionStore, UserSession
from mirrorbot.core.tasks import BackgroundTasks

__all__ = [
    # Sessions
    "SessionStore",
    "UserSession",
    # Flows
    "Step",
    "FlowKind",
    "FlowInput",
    "FlowError",
    "Effect",
    "Transition",
    "transition",
    "ActionTag",
    # Pairing
    "Matchmaker",
    "BlindProfile",
    "PairLink",
    "MatchStatus",
    "EndChatStatus",
    "is_compatible",
    # Reports
    "ReportLedger",
    # Tasks
    "BackgroundTasks",
]
