"""Button labels, keyboard layouts and label-to-action resolution."""

from __future__ import annotations

from mirrorbot.core.actions import ActionTag
from mirrorbot.db.models import REACTION_EMOJIS, ConfessionType
from mirrorbot.services.transport.protocol import (
    InlineButton,
    InlineKeyboard,
    ReplyKeyboard,
)

BUTTON_LABELS: dict[ActionTag, str] = {
    ActionTag.TEXT_CONFESSION: "📝 Text Confession",
    ActionTag.VOICE_CONFESSION: "🎤 Voice Confession",
    ActionTag.BLIND_CONNECTIONS: "💝 Blind Connections",
    ActionTag.CONTACT_ADMIN: "📞 Contact Admin",
    ActionTag.MY_STATS: "📊 My Stats",
    ActionTag.GUIDELINES: "📜 Guidelines",
    ActionTag.RATE_US: "⭐ Rate Us",
    ActionTag.CANCEL_SEARCH: "❌ Cancel Search",
    ActionTag.MAIN_MENU: "🏠 Main Menu",
    ActionTag.END_CHAT: "💔 End Chat",
    ActionTag.REPORT_USER: "🚨 Report User",
    ActionTag.SEND_HEART: "❤️ Send Heart",
    ActionTag.SEND_SMILE: "😊 Send Smile",
    ActionTag.SEND_VOICE: "💬 Send Voice",
    ActionTag.SEND_PHOTO: "📸 Send Photo",
    ActionTag.CANCEL: "❌ Cancel",
    ActionTag.GENDER_MALE: "👨 Male",
    ActionTag.GENDER_FEMALE: "👩 Female",
    ActionTag.YEAR_1: "1st Year",
    ActionTag.YEAR_2: "2nd Year",
    ActionTag.YEAR_3: "3rd Year",
    ActionTag.YEAR_4: "4th Year",
    ActionTag.YEAR_5_PLUS: "5th+ Year",
    ActionTag.PREF_MALE: "👨 Male Only",
    ActionTag.PREF_FEMALE: "👩 Female Only",
    ActionTag.PREF_BOTH: "👫 Both Genders",
}

_ACTIONS_BY_LABEL = {label: tag for tag, label in BUTTON_LABELS.items()}

REPORT_REASONS = (
    ("🚫 Harassment", "Harassment"),
    ("🎭 Fake Profile", "Fake Profile"),
    ("🔞 Inappropriate", "Inappropriate"),
    ("🔒 Personal Info", "Personal Info"),
    ("📢 Spamming", "Spamming"),
    ("⚠️ Other", "Other"),
)
REPORT_REASON_VALUES = frozenset(value for _, value in REPORT_REASONS)


def resolve_action(text: str | None) -> ActionTag | None:
    """Map a button label to its action tag (None for free text)."""
    if not text:
        return None
    return _ACTIONS_BY_LABEL.get(text.strip())


def _reply(*rows: tuple[ActionTag, ...]) -> ReplyKeyboard:
    return ReplyKeyboard(rows=tuple(tuple(BUTTON_LABELS[tag] for tag in row) for row in rows))


MAIN_MENU = _reply(
    (ActionTag.TEXT_CONFESSION, ActionTag.VOICE_CONFESSION),
    (ActionTag.BLIND_CONNECTIONS, ActionTag.CONTACT_ADMIN),
    (ActionTag.MY_STATS, ActionTag.GUIDELINES),
)

CONFESSION_TYPE = _reply(
    (ActionTag.TEXT_CONFESSION, ActionTag.VOICE_CONFESSION),
    (ActionTag.CANCEL,),
)

CANCEL = _reply((ActionTag.CANCEL,))

GENDER = _reply((ActionTag.GENDER_MALE, ActionTag.GENDER_FEMALE))

YEAR_OF_STUDY = _reply(
    (ActionTag.YEAR_1, ActionTag.YEAR_2),
    (ActionTag.YEAR_3, ActionTag.YEAR_4),
    (ActionTag.YEAR_5_PLUS, ActionTag.CANCEL),
)

PREF_GENDER = _reply(
    (ActionTag.PREF_MALE, ActionTag.PREF_FEMALE),
    (ActionTag.PREF_BOTH, ActionTag.CANCEL),
)

BLIND_CHAT = _reply(
    (ActionTag.SEND_HEART, ActionTag.SEND_SMILE),
    (ActionTag.SEND_VOICE, ActionTag.SEND_PHOTO),
    (ActionTag.END_CHAT, ActionTag.REPORT_USER),
    (ActionTag.MAIN_MENU,),
)

CANCEL_SEARCH = _reply((ActionTag.CANCEL_SEARCH,))

NO_BUTTONS = InlineKeyboard()


def review_keyboard(confession_id: int, confession_type: ConfessionType) -> InlineKeyboard:
    """Moderator controls attached to a review card."""
    rows = [
        (
            InlineButton("✅ Approve", callback_data=f"approve:{confession_id}:{confession_type.value}"),
            InlineButton("❌ Reject", callback_data=f"reject:{confession_id}"),
        )
    ]
    if confession_type is ConfessionType.voice:
        rows.append((InlineButton("🎤 Listen", callback_data=f"listen:{confession_id}"),))
    rows.append((InlineButton("🚫 Ban User", callback_data=f"ban:{confession_id}"),))
    return InlineKeyboard(rows=tuple(rows))


def report_reasons_keyboard(reported_id: int) -> InlineKeyboard:
    buttons = [
        InlineButton(label, callback_data=f"report_reason:{value}:{reported_id}")
        for label, value in REPORT_REASONS
    ]
    return InlineKeyboard(rows=tuple(tuple(buttons[i : i + 2]) for i in range(0, len(buttons), 2)))


def deep_link(bot_username: str, payload: str) -> str:
    return f"https://t.me/{bot_username}?start={payload}"


def channel_controls(
    confession_id: int,
    *,
    bot_username: str,
    reaction_counts: dict[str, int] | None = None,
    comment_count: int = 0,
) -> InlineKeyboard:
    """Reaction buttons (rows of 3) plus comment deep links with live counts."""
    counts = reaction_counts or {}
    reactions = [
        InlineButton(
            f"{emoji} {counts.get(emoji, 0)}",
            callback_data=f"react:{confession_id}:{emoji}",
        )
        for emoji in REACTION_EMOJIS
    ]
    rows: list[tuple[InlineButton, ...]] = [
        tuple(reactions[i : i + 3]) for i in range(0, len(reactions), 3)
    ]
    rows.append(
        (
            InlineButton(
                f"💬 Comment ({comment_count})",
                url=deep_link(bot_username, f"comment{confession_id}"),
            ),
        )
    )
    rows.append(
        (
            InlineButton(
                f"📊 View Comments ({comment_count})",
                url=deep_link(bot_username, f"view{confession_id}"),
            ),
        )
    )
    return InlineKeyboard(rows=tuple(rows))
