"""Conversation flows and their step transitions.

Each multi-step interaction (profile creation, confession submission,
comment authoring, admin contact) is a fixed sequence of steps. The
session carries one typed draft for the active flow; `transition` is a
pure function that validates one input against the current step and
returns the next step, the updated draft and the effect to perform.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum, auto
from typing import Union

from mirrorbot.core.actions import YEAR_OF_STUDY_ACTIONS, ActionTag
from mirrorbot.core.matchmaker import BlindProfile
from mirrorbot.db.models import ConfessionType, Gender, PreferredGender

# Validation bounds
MIN_AGE = 18
MAX_AGE = 50
MAX_YEARS_ON_CAMPUS = 10
MIN_CONFESSION_CHARS = 10
MAX_CONFESSION_CHARS = 2000
MAX_CONFESSION_VOICE_SECONDS = 120
MAX_COMMENT_CHARS = 500

PREF_GENDER_ACTIONS = {
    ActionTag.PREF_MALE: PreferredGender.male,
    ActionTag.PREF_FEMALE: PreferredGender.female,
    ActionTag.PREF_BOTH: PreferredGender.both,
}


class Step(Enum):
    """Where a user is within a flow."""

    IDLE = auto()

    # Profile creation
    PROFILE_AGE = auto()
    PROFILE_YEARS_ON_CAMPUS = auto()
    PROFILE_YEAR_OF_STUDY = auto()
    PROFILE_PREF_GENDER = auto()
    PROFILE_PREF_AGE_MIN = auto()
    PROFILE_PREF_AGE_MAX = auto()

    # Confession submission
    CONFESSION_AWAITING_CONTENT = auto()
    CONFESSION_PROCESSING = auto()  # Voice job running in the background

    # Comment authoring
    COMMENT_TEXT = auto()

    # Admin contact
    ADMIN_CONTACT_MESSAGE = auto()


class FlowKind(Enum):
    """The four flows a session can be in."""

    PROFILE = auto()
    CONFESSION = auto()
    COMMENT = auto()
    ADMIN_CONTACT = auto()


STEP_FLOWS = {
    Step.PROFILE_AGE: FlowKind.PROFILE,
    Step.PROFILE_YEARS_ON_CAMPUS: FlowKind.PROFILE,
    Step.PROFILE_YEAR_OF_STUDY: FlowKind.PROFILE,
    Step.PROFILE_PREF_GENDER: FlowKind.PROFILE,
    Step.PROFILE_PREF_AGE_MIN: FlowKind.PROFILE,
    Step.PROFILE_PREF_AGE_MAX: FlowKind.PROFILE,
    Step.CONFESSION_AWAITING_CONTENT: FlowKind.CONFESSION,
    Step.CONFESSION_PROCESSING: FlowKind.CONFESSION,
    Step.COMMENT_TEXT: FlowKind.COMMENT,
    Step.ADMIN_CONTACT_MESSAGE: FlowKind.ADMIN_CONTACT,
}


# =============================================================================
# Drafts
# =============================================================================


@dataclass(frozen=True)
class ProfileDraft:
    """Profile fields collected so far. Gender comes from the user record."""

    gender: Gender
    age: int | None = None
    years_on_campus: int | None = None
    year_of_study: str | None = None
    pref_gender: PreferredGender | None = None
    pref_age_min: int | None = None
    pref_age_max: int | None = None

    @property
    def is_complete(self) -> bool:
        return None not in (
            self.age,
            self.years_on_campus,
            self.year_of_study,
            self.pref_gender,
            self.pref_age_min,
            self.pref_age_max,
        )

    def to_profile(self, user_id: int) -> BlindProfile:
        """Build the immutable profile from a complete draft.

        Raises:
            ValueError: If any field is still missing
        """
        if not self.is_complete:
            raise ValueError("Profile draft is incomplete")
        return BlindProfile(
            user_id=user_id,
            gender=self.gender,
            age=self.age,  # type: ignore[arg-type]
            years_on_campus=self.years_on_campus,  # type: ignore[arg-type]
            year_of_study=self.year_of_study,  # type: ignore[arg-type]
            pref_gender=self.pref_gender,  # type: ignore[arg-type]
            pref_age_min=self.pref_age_min,  # type: ignore[arg-type]
            pref_age_max=self.pref_age_max,  # type: ignore[arg-type]
            created_at=datetime.now(UTC),
        )


@dataclass(frozen=True)
class ConfessionDraft:
    confession_type: ConfessionType
    job_id: str | None = None


@dataclass(frozen=True)
class CommentDraft:
    confession_id: int
    channel_message_id: int | None = None
    confession_text: str = ""


@dataclass(frozen=True)
class AdminContactDraft:
    pass


Draft = Union[ProfileDraft, ConfessionDraft, CommentDraft, AdminContactDraft]


# =============================================================================
# Transitions
# =============================================================================


@dataclass(frozen=True)
class FlowInput:
    """One inbound message reduced to what flows care about."""

    text: str = ""
    action: ActionTag | None = None
    voice_ref: str | None = None
    voice_duration: int | None = None

    @property
    def has_voice(self) -> bool:
        return self.voice_ref is not None


class Effect(Enum):
    """What the caller must do after a transition."""

    NONE = auto()
    CANCELLED = auto()
    ADVANCED = auto()  # Prompt for the next step
    PROFILE_COMPLETE = auto()
    TEXT_CONFESSION_READY = auto()
    VOICE_CONFESSION_READY = auto()
    STILL_PROCESSING = auto()
    COMMENT_READY = auto()
    ADMIN_MESSAGE_READY = auto()


class FlowError(str, Enum):
    """Why an input was rejected. The step does not change."""

    invalid_age = "invalid_age"
    invalid_years = "invalid_years"
    invalid_year_of_study = "invalid_year_of_study"
    invalid_pref_gender = "invalid_pref_gender"
    invalid_pref_age_min = "invalid_pref_age_min"
    invalid_pref_age_max = "invalid_pref_age_max"
    confession_too_short = "confession_too_short"
    confession_too_long = "confession_too_long"
    voice_too_long = "voice_too_long"
    expected_text = "expected_text"
    expected_voice = "expected_voice"
    comment_empty = "comment_empty"
    comment_too_long = "comment_too_long"


@dataclass(frozen=True)
class Transition:
    """Result of applying one input to a session."""

    step: Step
    draft: Draft | None
    effect: Effect = Effect.NONE
    error: FlowError | None = None

    @property
    def rejected(self) -> bool:
        return self.error is not None


def flow_of(step: Step) -> FlowKind | None:
    """Get the flow a step belongs to (None for IDLE)."""
    return STEP_FLOWS.get(step)


def is_cancel(step: Step, flow_input: FlowInput) -> bool:
    """Check whether the input abandons the current flow.

    The cancel button works in every step. Comment authoring also
    treats the main menu button as cancel.
    """
    if flow_input.action is ActionTag.CANCEL:
        return True
    return step is Step.COMMENT_TEXT and flow_input.action is ActionTag.MAIN_MENU


def _parse_int(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


def _reject(step: Step, draft: Draft | None, error: FlowError) -> Transition:
    return Transition(step=step, draft=draft, error=error)


def _advance(step: Step, draft: Draft) -> Transition:
    return Transition(step=step, draft=draft, effect=Effect.ADVANCED)


def _finish(draft: Draft, effect: Effect) -> Transition:
    return Transition(step=Step.IDLE, draft=draft, effect=effect)


def _profile_transition(step: Step, draft: ProfileDraft, flow_input: FlowInput) -> Transition:
    text = flow_input.text
    number = _parse_int(text)

    if step is Step.PROFILE_AGE:
        if number is None or not MIN_AGE <= number <= MAX_AGE:
            return _reject(step, draft, FlowError.invalid_age)
        return _advance(Step.PROFILE_YEARS_ON_CAMPUS, replace(draft, age=number))

    if step is Step.PROFILE_YEARS_ON_CAMPUS:
        if number is None or not 0 <= number <= MAX_YEARS_ON_CAMPUS:
            return _reject(step, draft, FlowError.invalid_years)
        return _advance(Step.PROFILE_YEAR_OF_STUDY, replace(draft, years_on_campus=number))

    if step is Step.PROFILE_YEAR_OF_STUDY:
        year = YEAR_OF_STUDY_ACTIONS.get(flow_input.action) if flow_input.action else None
        if year is None:
            return _reject(step, draft, FlowError.invalid_year_of_study)
        return _advance(Step.PROFILE_PREF_GENDER, replace(draft, year_of_study=year))

    if step is Step.PROFILE_PREF_GENDER:
        pref = PREF_GENDER_ACTIONS.get(flow_input.action) if flow_input.action else None
        if pref is None:
            return _reject(step, draft, FlowError.invalid_pref_gender)
        return _advance(Step.PROFILE_PREF_AGE_MIN, replace(draft, pref_gender=pref))

    if step is Step.PROFILE_PREF_AGE_MIN:
        if number is None or not MIN_AGE <= number <= MAX_AGE:
            return _reject(step, draft, FlowError.invalid_pref_age_min)
        return _advance(Step.PROFILE_PREF_AGE_MAX, replace(draft, pref_age_min=number))

    if step is Step.PROFILE_PREF_AGE_MAX:
        minimum = draft.pref_age_min if draft.pref_age_min is not None else MIN_AGE
        if number is None or not minimum <= number <= MAX_AGE:
            return _reject(step, draft, FlowError.invalid_pref_age_max)
        return _finish(replace(draft, pref_age_max=number), Effect.PROFILE_COMPLETE)

    return _reject(step, draft, FlowError.invalid_age)


def _confession_transition(
    step: Step, draft: ConfessionDraft, flow_input: FlowInput
) -> Transition:
    if step is Step.CONFESSION_PROCESSING:
        return Transition(step=step, draft=draft, effect=Effect.STILL_PROCESSING)

    if draft.confession_type is ConfessionType.voice:
        if not flow_input.has_voice:
            return _reject(step, draft, FlowError.expected_voice)
        if (flow_input.voice_duration or 0) > MAX_CONFESSION_VOICE_SECONDS:
            return _reject(step, draft, FlowError.voice_too_long)
        return Transition(
            step=Step.CONFESSION_PROCESSING,
            draft=draft,
            effect=Effect.VOICE_CONFESSION_READY,
        )

    text = flow_input.text
    if not text or flow_input.has_voice:
        return _reject(step, draft, FlowError.expected_text)
    if len(text) < MIN_CONFESSION_CHARS:
        return _reject(step, draft, FlowError.confession_too_short)
    if len(text) > MAX_CONFESSION_CHARS:
        return _reject(step, draft, FlowError.confession_too_long)
    return _finish(draft, Effect.TEXT_CONFESSION_READY)


def _comment_transition(step: Step, draft: CommentDraft, flow_input: FlowInput) -> Transition:
    text = flow_input.text
    if not text.strip():
        return _reject(step, draft, FlowError.comment_empty)
    if len(text) > MAX_COMMENT_CHARS:
        return _reject(step, draft, FlowError.comment_too_long)
    return _finish(draft, Effect.COMMENT_READY)


def _admin_contact_transition(
    step: Step, draft: AdminContactDraft, flow_input: FlowInput
) -> Transition:
    if not flow_input.text.strip():
        return _reject(step, draft, FlowError.expected_text)
    return _finish(draft, Effect.ADMIN_MESSAGE_READY)


def transition(step: Step, draft: Draft | None, flow_input: FlowInput) -> Transition:
    """Apply one input to a session's current step.

    State machine logic:
    - IDLE -> IDLE (flows are entered explicitly, never by free input)
    - Any non-idle step + cancel -> IDLE, draft discarded
    - Valid input -> next step of the same flow, or IDLE with a completion effect
    - Invalid input -> same step, same draft, error set (caller re-prompts)

    Args:
        step: Current step
        draft: Current draft (must match the step's flow)
        flow_input: The user's message

    Returns:
        The transition to apply
    """
    if step is Step.IDLE:
        return Transition(step=Step.IDLE, draft=None)

    if is_cancel(step, flow_input):
        return Transition(step=Step.IDLE, draft=None, effect=Effect.CANCELLED)

    flow = flow_of(step)
    if flow is FlowKind.PROFILE and isinstance(draft, ProfileDraft):
        return _profile_transition(step, draft, flow_input)
    if flow is FlowKind.CONFESSION and isinstance(draft, ConfessionDraft):
        return _confession_transition(step, draft, flow_input)
    if flow is FlowKind.COMMENT and isinstance(draft, CommentDraft):
        return _comment_transition(step, draft, flow_input)
    if flow is FlowKind.ADMIN_CONTACT and isinstance(draft, AdminContactDraft):
        return _admin_contact_transition(step, draft, flow_input)

    # Draft does not belong to the step: treat as a lost session
    return Transition(step=Step.IDLE, draft=None, effect=Effect.CANCELLED)
