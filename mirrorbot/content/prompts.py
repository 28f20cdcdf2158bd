"""Per-step prompts, validation errors and keyboards for conversation flows."""

from __future__ import annotations

from mirrorbot.content.messages import RULE, WIDE_RULE
from mirrorbot.core.flows import (
    MAX_AGE,
    FlowError,
    FlowKind,
    ProfileDraft,
    Step,
    flow_of,
)
from mirrorbot.db.models import Gender
from mirrorbot.services.transport import keyboards
from mirrorbot.services.transport.protocol import ReplyKeyboard

STEP_KEYBOARDS: dict[Step, ReplyKeyboard] = {
    Step.PROFILE_YEAR_OF_STUDY: keyboards.YEAR_OF_STUDY,
    Step.PROFILE_PREF_GENDER: keyboards.PREF_GENDER,
}

CANCELLED = {
    FlowKind.PROFILE: "❌ *Cancelled*\n\nProfile creation cancelled.",
    FlowKind.CONFESSION: "❌ *Cancelled*\n\nConfession cancelled.",
    FlowKind.COMMENT: "❌ *Comment cancelled*\n\nReturned to main menu.",
    FlowKind.ADMIN_CONTACT: "❌ *Cancelled*\n\nAdmin contact cancelled.",
}

ERRORS = {
    FlowError.invalid_age: "❌ *Invalid age*\n\nPlease enter a valid age between 18 and 50.",
    FlowError.invalid_years: "❌ *Invalid years*\n\nPlease enter valid years (0-10).",
    FlowError.invalid_year_of_study: "❌ *Please select a valid year*",
    FlowError.invalid_pref_gender: "❌ *Please select a valid preference*",
    FlowError.invalid_pref_age_min: "❌ *Invalid age*\n\nPlease enter valid age (18-50).",
    FlowError.confession_too_short: (
        "📏 *Too Short*\n\nConfession must be at least 10 characters."
    ),
    FlowError.confession_too_long: "📏 *Too Long*\n\nConfession must be under 2000 characters.",
    FlowError.voice_too_long: "⏱️ *Too Long*\n\nVoice confession must be under 2 minutes.",
    FlowError.expected_text: "❓ *Invalid Content*\n\nPlease send text.",
    FlowError.expected_voice: "❓ *Invalid Content*\n\nPlease send a voice message.",
    FlowError.comment_empty: "📝 *Please write a valid comment (1-500 characters)*",
    FlowError.comment_too_long: "📏 *Too long*\n\nComments must be under 500 characters.",
}


def cancelled_text(step: Step) -> str:
    """Confirmation for a cancelled flow, worded for the flow being left."""
    flow = flow_of(step)
    if flow is None:
        return "❌ *Cancelled*\n\nOperation cancelled."
    return CANCELLED[flow]


def keyboard_for(step: Step) -> ReplyKeyboard:
    """Keyboard to show while the user is at this step."""
    if step is Step.IDLE:
        return keyboards.MAIN_MENU
    return STEP_KEYBOARDS.get(step, keyboards.CANCEL)


def error_text(error: FlowError, draft: object | None = None) -> str:
    if error is FlowError.invalid_pref_age_max:
        minimum = draft.pref_age_min if isinstance(draft, ProfileDraft) else None
        return f"❌ *Invalid range*\n\nMax age must be between {minimum or 18} and {MAX_AGE}."
    return ERRORS[error]


def profile_intro(gender: Gender) -> str:
    """First profile prompt, shown when the flow begins."""
    label = "👩 Female" if gender is Gender.female else "👨 Male"
    return f"""💝 *Blind Connection Profile*
{WIDE_RULE}

✨ *Create your connection profile*
✅ *Gender:* {label} (permanent)

{WIDE_RULE}
*Step 1 of 6:* What is your age?
✨ *Please enter your age (18-50):*"""


def step_prompt(step: Step, draft: object | None = None) -> str:
    """Prompt for the step the user just advanced into."""
    if step is Step.PROFILE_AGE and isinstance(draft, ProfileDraft):
        return profile_intro(draft.gender)
    if step is Step.PROFILE_YEARS_ON_CAMPUS:
        return (
            f"✅ *Age saved*\n{RULE}\n\n"
            "*Step 2 of 6:* How many years on campus?\n\n"
            "✨ *Enter number of years (0-10):*"
        )
    if step is Step.PROFILE_YEAR_OF_STUDY:
        return (
            f"✅ *Years saved*\n{RULE}\n\n"
            "*Step 3 of 6:* Current year of study?\n\n"
            "✨ *Select your current year:*"
        )
    if step is Step.PROFILE_PREF_GENDER:
        return (
            f"✅ *Year saved*\n{RULE}\n\n"
            "*Step 4 of 6:* Preferred gender to meet?\n\n"
            "✨ *Who would you like to connect with?*"
        )
    if step is Step.PROFILE_PREF_AGE_MIN:
        return (
            f"✅ *Preference saved*\n{RULE}\n\n"
            "*Step 5 of 6:* Preferred age range?\n\n"
            "✨ *Enter minimum age (18-50):*"
        )
    if step is Step.PROFILE_PREF_AGE_MAX and isinstance(draft, ProfileDraft):
        minimum = draft.pref_age_min
        return (
            f"✅ *Min age: {minimum}*\n\n"
            f"*Step 6 of 6:* ✨ *Now enter maximum age (18-50, >= {minimum}):*"
        )
    return "✨ *Please continue:*"
