"""User-facing message texts and formatters.

All texts use Telegram's legacy Markdown. Anything a user typed is passed
through `escape_markdown` before it is embedded.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from mirrorbot.core.matchmaker import BlindProfile
from mirrorbot.db.models import ConfessionComment, ConfessionType, Gender, PreferredGender
from mirrorbot.db.repositories import ConfessionStats

RULE = "──────────────"
WIDE_RULE = "─────────────────────────────"

COMMENTS_SHOWN = 10

_MARKDOWN_SPECIALS = ("\\", "_", "*", "`", "[")


def escape_markdown(text: str) -> str:
    """Escape legacy Markdown control characters in user content."""
    for char in _MARKDOWN_SPECIALS:
        text = text.replace(char, f"\\{char}")
    return text


def _clock(moment: datetime | None = None) -> str:
    """Format as '3:04 PM'."""
    moment = moment or datetime.now(UTC)
    return moment.strftime("%I:%M %p").lstrip("0")


def _stamp(moment: datetime | None = None) -> str:
    """Format as 'Jan 2, 3:04 PM'."""
    moment = moment or datetime.now(UTC)
    return f"{moment.strftime('%b')} {moment.day}, {_clock(moment)}"


# =============================================================================
# Onboarding and general
# =============================================================================

GENDER_SELECTION = f"""🎭 *WELCOME TO FROSTED MIRROR*
{WIDE_RULE}

✨ *Before we begin, please select your gender:*

🔒 *Important Notes:*
• Gender selection is *PERMANENT*
• Cannot be changed later
• Used for voice anonymization
• Required for blind connections
• Affects voice processing

⚠️ *Choose carefully!*"""

GENDER_SAVE_FAILED = "❌ *Error saving gender. Please try again.*"

WELCOME = f"""🤫 *FROSTED MIRROR CONFESSION BOT*
{WIDE_RULE}

✨ *A minimal, professional space for anonymous expression*

{WIDE_RULE}
*FEATURES:*
📝 *Text Confessions* - Write anonymously
🎤 *Voice Confessions* - Speak softly with Rubber Band anonymization
💝 *Blind Connections* - Verified matches
🎨 *Frosted Mirror Style* - Clean, professional presentation

{WIDE_RULE}
*THE EXPERIENCE:*
✅ 100% Anonymous • 🎨 Minimal design
🔊 Rubber Band Voice Protection • 🔒 Safe space
📊 Comment system • ✨ Premium aesthetic

{WIDE_RULE}
*Express yourself. Anonymously.* 👇"""

RESTRICTED = "🤫 *Your account has been restricted.*\n\nContact admin for appeal."

UNKNOWN_COMMAND = "❓ *Command not recognized*\n\nUse /help for available commands."

PRIVATE_ONLY = {
    "confess": "🔒 *Privacy First*\n\nPlease use private chat for confessions.",
    "blind": "🔒 *Private Only*\n\nBlind connections work only in private messages.",
    "contact_admin": "🔒 *Private Only*\n\nPlease contact admin in private.",
    "profile": "🔒 *Private Only*\n\nProfile viewing in private only.",
}

RETURNED_TO_MENU = "🏠 *Returned to main menu*"

GENERIC_FAILURE = "❌ *Something went wrong*\n\nPlease try again in a moment."

SAVE_FAILED = "❌ *Error*\n\nWe couldn't save that. Please try again."

HELP = f"""📚 *FROSTED MIRROR HELP GUIDE*
{WIDE_RULE}

✨ *CONFESSION SYSTEM*
📝 *Text Confessions*
• Click "Text Confession" button
• Write anonymously (10-2000 chars)
• Reviewed by admins
• Posted with frosted mirror style

🎤 *Voice Confessions*
• Click "Voice Confession" button
• Rubber Band voice anonymization
• Gender-specific voice conversion
• Speed unchanged (100% natural)

{WIDE_RULE}
💝 *BLIND CONNECTION SYSTEM*
• Permanent gender selection required
• Opposite gender matching only
• Voice messages anonymized with Rubber Band
• Safe, respectful environment
• Report fake profiles

{WIDE_RULE}
💬 *COMMENT SYSTEM*
• Click "💬 Comment" button in channel
• Opens bot in private chat
• Anonymous commenting
• Only comment count updates in channel
• Comments stored privately

{WIDE_RULE}
📊 *REACTION SYSTEM*
• ❤️ Like
• 😔 Sad
• 🤍 Support
• 🌫️ Confused
• 🌙 Relate
• Click to react, click again to remove

{WIDE_RULE}
📞 *ADMIN CONTACT*
• One message per week
• Direct to admin team
• No back-and-forth
• For feedback/questions

{WIDE_RULE}
*Need more help?*
Use /contact\\_admin to message us directly.

*Enjoy the minimal, professional experience!* 🤫✨"""

RULES = f"""📜 *COMMUNITY GUIDELINES*
{WIDE_RULE}

*1. RESPECT & KINDNESS* 🙏
• No hate speech of any kind
• Respect all genders & identities
• Be kind in all interactions

*2. AUTHENTICITY & SAFETY* 🔒
• Gender selection is PERMANENT
• No fake profiles in blind connections
• Voice messages are anonymized with Rubber Band
• Never share personal information

*3. APPROPRIATE CONTENT* ✅
• Confessions should be respectful
• No explicit or harmful content
• Voice confessions max 2 minutes

*4. COMMENT SYSTEM* 💬
• Comments are anonymous
• Keep comments respectful
• No harassment in comments
• Use reactions to show support

*5. BLIND CONNECTION ETIQUETTE* 💝
• Complete profile honestly
• Opposite gender matching only
• Respect gender preferences
• Report fake profiles immediately
• End chats respectfully

{WIDE_RULE}
*CONSEQUENCES OF VIOLATIONS:*
1️⃣ First offense: Warning
2️⃣ Second offense: Temporary ban
3️⃣ Third offense: Permanent ban
🔴 Fake profiles: Immediate ban

{WIDE_RULE}
*OUR MISSION:*
Create a safe, anonymous space for
expression, connection, and community
building with minimal, professional design.

*THANK YOU FOR BEING AMAZING!* ✨🤫"""

FEEDBACK = f"""⭐ *FEEDBACK & RATING*
{WIDE_RULE}

✨ *We value your experience!*

*How are we doing?*
• Frosted mirror design
• Features & functionality
• Response time
• Community safety
• Overall experience

*📊 Rate this bot:*
1️⃣ ⭐ - Needs improvement
2️⃣ ⭐⭐ - Okay
3️⃣ ⭐⭐⭐ - Good
4️⃣ ⭐⭐⭐⭐ - Very good
5️⃣ ⭐⭐⭐⭐⭐ - Excellent!

*💭 Suggestions welcome:*
Use /contact\\_admin to share detailed feedback.

*🤝 Share with friends:*
Help grow our community!

{WIDE_RULE}
*THANK YOU FOR USING OUR BOT!* 🤫✨"""


def stats_text(
    *,
    gender: Gender | None,
    banned: bool,
    confessions: ConfessionStats,
    comments: int,
    reactions: int,
    in_chat: bool,
    has_profile: bool,
    reports: int,
    report_threshold: int,
    can_contact_admin: bool,
) -> str:
    """The /status screen."""
    gender_display = {
        Gender.male: "👨 Male (permanent)",
        Gender.female: "👩 Female (permanent)",
    }.get(gender, "Not set")

    return f"""📊 *USER STATISTICS*
{WIDE_RULE}

*👤 PROFILE*
• Gender: {gender_display}
• Status: {"🚫 Banned" if banned else "✅ Active"}

*📝 CONFESSIONS*
• Total: {confessions.total} confessions
• Voice: {confessions.voice} voice notes
• Approved: {confessions.approved} published

*💬 ENGAGEMENT*
• Comments: {comments} comments
• Reactions: {reactions} reactions
• Blind Chats: {"✅ Yes" if in_chat else "❌ No"}

*💝 BLIND CONNECTIONS*
• Profile: {"✅ Set" if has_profile else "❌ Not set"}
• Reports: {reports}/{report_threshold}

*📞 ADMIN CONTACT*
• Status: {"✅ Allowed" if can_contact_admin else "⏳ Weekly limit"}

{WIDE_RULE}
*TIPS FOR SUCCESS:*
• Be authentic in confessions
• Complete your connection profile
• Respect community guidelines
• Engage with reactions & comments

*KEEP SHARING RESPECTFULLY!* ✨"""


# =============================================================================
# Confessions
# =============================================================================

CONFESSION_TYPE_PROMPT = (
    f"🤫 *Choose Confession Type*\n{RULE}\n\n"
    "✨ *Express yourself anonymously*\n\n"
    "📝 *Text Confession* - Write your thoughts\n"
    "🎤 *Voice Confession* - Speak from the heart\n\n"
    f"{RULE}\n"
    "*Both are presented in the frosted mirror style*"
)

TEXT_CONFESSION_PROMPT = (
    f"📝 *Text Confession*\n{RULE}\n\n"
    "✨ *Write your heart out anonymously!*\n\n"
    "📋 *Guidelines:*\n"
    "• Min 10 characters\n"
    "• Max 2000 characters\n"
    "• Be respectful\n"
    "• No personal info\n\n"
    "💫 *Your confession will use frosted mirror style*\n"
    "✅ *Approved confessions go to channel*\n\n"
    f"{RULE}\n"
    "*Write your confession now...*"
)

VOICE_CONFESSION_PROMPT = (
    f"🎤 *Voice Confession*\n{RULE}\n\n"
    "✨ *Speak your heart out anonymously!*\n\n"
    "🔊 *Voice Anonymization:*\n"
    "• Your voice will be processed with Rubber Band\n"
    "• Converted to gender-specific anonymous voice\n"
    "• Speed unchanged (100% natural)\n\n"
    "📝 *Instructions:*\n"
    "1. Press and hold microphone button\n"
    "2. Record your confession (max 2 minutes)\n"
    "3. Release to send\n\n"
    "💫 *Your voice will use frosted mirror style*\n"
    "✅ *Approved voice confessions go to channel*\n\n"
    f"{RULE}\n"
    "*Record your voice confession now...*"
)

VOICE_PROCESSING = "🔊 *Processing your voice...*\n\nApplying Rubber Band voice anonymization..."

STILL_PROCESSING = "🔊 *Still processing your voice...*\n\nPlease wait a moment."

VOICE_FAILED = "❌ *Voice Processing Failed*\n\nPlease try again or use text confession."


def confession_received(confession_type: ConfessionType) -> str:
    if confession_type is ConfessionType.voice:
        captured = "🎤 *Voice confession captured & anonymized*"
    else:
        captured = "📝 *Text confession written*"
    return (
        f"🤫 *Confession Received*\n{RULE}\n\n"
        f"{captured}\n\n"
        "✨ *Your words are safe with us*\n\n"
        "📋 *Status:* Awaiting approval\n"
        "🎨 *Style:* Frosted mirror presentation\n"
        "💫 *Reactions:* Emotional responses enabled\n"
        "👁️ *Note:* 100% anonymous\n\n"
        f"{RULE}\n"
        "*Your confession will appear in the channel when approved.*"
    )


def format_confession_text(text: str) -> str:
    """Trim every line, drop blank ones and join with blank lines between."""
    lines = [line.strip() for line in text.split("\n")]
    return "\n\n".join(line for line in lines if line)


def frosted_style(text: str | None = None) -> str:
    """Public channel presentation of a confession."""
    if not text:
        return f"{RULE}\n🤫 Anonymous Confession\n{RULE}"
    body = escape_markdown(format_confession_text(text))
    return f"{RULE}\n🤫 Anonymous Confession\n{RULE}\n\n{body}\n\n{RULE}"


# =============================================================================
# Moderation desk
# =============================================================================


def text_review_card(confession_id: int, user_id: int, text: str, at: datetime | None = None) -> str:
    return (
        f"📝 *NEW TEXT CONFESSION* #{confession_id}\n{RULE}\n\n"
        f"💭 *Content:*\n{escape_markdown(text)}\n\n"
        f"{RULE}\n"
        f"👤 *Sender ID:* `{user_id}`\n"
        f"🕐 *Time:* {_stamp(at)}\n"
        "📊 *Type:* Text Confession\n"
        f"{RULE}"
    )


def voice_review_card(
    confession_id: int, user_id: int, duration: int, at: datetime | None = None
) -> str:
    return (
        f"🎤 *NEW VOICE CONFESSION* #{confession_id}\n{RULE}\n\n"
        f"⏱️ *Duration:* {duration} seconds\n"
        "🔊 *Status:* Rubber Band-anonymized\n"
        "⚡ *Speed:* 100% (unchanged)\n\n"
        f"{RULE}\n"
        f"👤 *Sender ID:* `{user_id}`\n"
        f"🕐 *Time:* {_stamp(at)}\n"
        "📊 *Type:* Voice Confession\n"
        f"{RULE}"
    )


def approved_card(confession_id: int, confession_type: ConfessionType, user_id: int) -> str:
    status = "✅ *VOICE APPROVED*" if confession_type is ConfessionType.voice else "✅ *TEXT APPROVED*"
    return (
        f"{status} #{confession_id}\n{RULE}\n\n"
        "✨ *Published with frosted mirror style*\n\n"
        f"👤 *Sender ID:* `{user_id}`\n"
        "✅ *Status:* Posted to channel\n"
        "🎨 *Style:* Minimal, professional\n"
        "💬 *System:* Reaction & comment enabled\n"
        f"🕐 *Time:* {_clock()}"
    )


def rejected_card(confession_id: int, confession_type: ConfessionType, user_id: int) -> str:
    return (
        f"❌ *REJECTED* #{confession_id}\n{RULE}\n\n"
        f"👤 *Sender ID:* `{user_id}`\n"
        "❌ *Status:* Not approved\n"
        f"📊 *Type:* {confession_type.value.title()}\n"
        f"🕐 *Time:* {_clock()}"
    )


def banned_card(confession_id: int, confession_type: ConfessionType, user_id: int) -> str:
    return (
        f"🚫 *USER BANNED* #{confession_id}\n{RULE}\n\n"
        f"👤 *User ID:* `{user_id}`\n"
        "🚫 *Status:* Banned & Rejected\n"
        f"📊 *Type:* {confession_type.value.title()}\n"
        f"🕐 *Time:* {_clock()}\n\n"
        f"{RULE}\n"
        "User can no longer use the bot."
    )


def confession_published(confession_id: int, confession_type: ConfessionType) -> str:
    return (
        f"✅ *CONFESSION PUBLISHED*\n{RULE}\n\n"
        f"✨ *Your {confession_type.value} confession is now live*\n\n"
        f"📜 *Confession ID:* #{confession_id}\n"
        "✅ *Status:* Published anonymously\n"
        "🎨 *Style:* Frosted mirror presentation\n"
        "💫 *People can react with emotional responses*\n"
        "💬 *Comments:* Viewable via comment button\n\n"
        f"{RULE}\n"
        "*Thank you for sharing.*"
    )


CONFESSION_REJECTED = (
    f"❌ *CONFESSION REVIEWED*\n{RULE}\n\n"
    "📋 *Status:* Not Approved\n\n"
    "⚠️ *Reason:* Content didn't meet guidelines\n\n"
    "💡 *Tips:*\n"
    "• Keep it respectful\n"
    "• Be positive\n"
    "• Avoid personal info\n\n"
    f"{RULE}\n"
    "✨ *You can try again now!*"
)

ACCOUNT_BANNED = (
    f"🚫 *ACCOUNT BANNED*\n{RULE}\n\n"
    "⛔ *Your account has been banned.*\n\n"
    "📋 *Reason:* Violation of community guidelines\n"
    "⏳ *Duration:* Permanent\n\n"
    "📞 *Contact admin for appeal*\n\n"
    f"{RULE}\n"
    "⚠️ *You can no longer use this bot.*"
)


def listen_caption(confession_id: int) -> str:
    return f"🎤 *Voice Confession #{confession_id}*\n\nClick ▶️ to listen"


# Short callback answers (shown as a toast, no Markdown)
ANSWER_ERROR = "❌ Error"
ANSWER_UNKNOWN = "❌ Unknown action"
ANSWER_NOT_ALLOWED = "❌ Not allowed here"
ANSWER_PUBLISHED = "✅ Published"
ANSWER_REJECTED = "✅ Rejected"
ANSWER_BANNED = "✅ User banned"
ANSWER_VOICE_SENT = "✅ Voice sent"
ANSWER_VOICE_MISSING = "❌ Voice not available"
ANSWER_ALREADY_REVIEWED = "ℹ️ Already reviewed"
ANSWER_REACTION = "✅ Reaction updated"
ANSWER_REPORTED = "✅ Report submitted"
ANSWER_NOT_IN_CHAT = "❌ You're not in a chat"
ANSWER_INVALID_TARGET = "❌ Invalid user to report"
ANSWER_REPORT_FAILED = "❌ Error saving report"


# =============================================================================
# Comments
# =============================================================================

CONFESSION_NOT_FOUND = (
    "❌ *Confession not found*\n\n"
    "The confession you're trying to comment on doesn't exist."
)

COMMENT_PRIVATE_ONLY = "🔒 *Please send comments in private chat only*"

COMMENT_SESSION_EXPIRED = (
    "⏰ *Comment session expired*\n\n"
    "Your comment session has timed out. Please click the comment button "
    "again if you still want to comment."
)


def comment_prompt(confession_id: int, confession_text: str) -> str:
    return f"""💬 *ADD ANONYMOUS COMMENT*
{RULE}

📜 *Confession #{confession_id}:*
{escape_markdown(format_confession_text(confession_text))}

{RULE}
✨ *Write your comment below:*

📋 *Guidelines:*
• Keep it respectful & constructive
• Stay anonymous (no one sees your identity)
• Max 500 characters
• No personal information
• No harassment

🎯 *Comment Flow:*
1. Write comment below
2. Submit anonymously
3. Only count updates in channel

{RULE}
*Your voice matters. Comment respectfully.*"""


def comment_added(confession_id: int) -> str:
    return f"""✅ *COMMENT ADDED ANONYMOUSLY*
{RULE}

💭 *Your anonymous comment has been added to Confession #{confession_id}*

📊 *Only the comment count will update in the channel*
🔒 *No one can see your identity*
💬 *Comment is stored privately in our database*

{RULE}
*Thank you for contributing respectfully!* ✨"""


def no_comments(confession_id: int) -> str:
    return f"💭 *No comments yet for Confession #{confession_id}*\n\nBe the first to comment! 🤫"


def comment_listing(confession_id: int, comments: Sequence[ConfessionComment]) -> str:
    """Latest comments, newest first. Shows at most COMMENTS_SHOWN entries."""
    parts = [f"📊 *Comments on Confession #{confession_id}*\n{RULE}\n\n"]
    for index, comment in enumerate(comments):
        parts.append(
            f"💬 *Anonymous* ({_clock(comment.created_at)}):\n"
            f"{escape_markdown(comment.text)}\n{RULE}\n"
        )
        if index == COMMENTS_SHOWN - 1 and len(comments) > COMMENTS_SHOWN:
            parts.append("... and more comments available\n\n")
            break
    parts.append(f"📊 *Total: {len(comments)} comments*\n")
    parts.append(f"{RULE}\n")
    parts.append("💬 *Want to add a comment?*\n")
    parts.append("Click the '💬 Comment' button in the channel!")
    return "".join(parts)


# =============================================================================
# Blind connections
# =============================================================================

GENDER_REQUIRED = "🎭 *Gender Required*\n\nPlease set your gender first to use blind connections."

ALREADY_CONNECTED = "💬 *Already Connected*\n\nYou're in a chat. Use '💔 End Chat' button to leave."

IN_BLIND_CHAT = (
    "⚠️ *You are in a blind chat!*\n\n"
    "Use '💔 End Chat' button to leave the chat first before returning to main menu."
)

SEARCH_CANCELLED = "✅ *Search cancelled*\n\nYou left the waiting queue."
SEARCH_LEFT = "❌ *Search Cancelled*\n\nYou left the waiting queue."
NOT_SEARCHING = "⚠️ *Not searching*\n\nYou're not currently searching."

NO_PROFILE = "📋 *No Profile Found*\n\nCreate your blind connection profile first!"

GOODBYES = (
    "✨ Hope you had a meaningful connection!",
    "💖 Every conversation teaches us something new!",
    "🌟 Stay positive, stay hopeful!",
    "💫 Better connections await you!",
    "🌸 Thank you for being respectful!",
)

HEART_SENT = "❤️ *Heart sent to your partner!*"
SMILE_SENT = "😊 *Smile sent to your partner!*"

VOICE_HINT = (
    "🎤 *Hold the microphone button to record and send a voice message*\n\n"
    "Your voice will be anonymized automatically with Rubber Band!"
)
PHOTO_HINT = (
    "📸 *Tap the attachment icon to send a photo*\n\n"
    "Photos are not anonymized - share carefully!"
)

VOICE_TIP = "💡 *Tip:* Voice messages are anonymized for privacy using Rubber Band!"
RELAY_VOICE_TOO_LONG = "⏱️ *Voice too long*\n\nKeep voice messages under 1 minute."
RELAY_VOICE_FAILED = (
    "❌ *Voice not delivered*\n\n"
    "We couldn't anonymize your voice message, so it was not sent."
)

REPORT_RECEIVED = "✅ *Report Received*\n\nThank you for your report! The user has been reported."

_NOT_IN_CHAT_ACTIONS = {
    "end": "You're not currently in a chat.",
    "report": "You need to be in a chat to report someone.",
    "heart": "You need to be in a chat to send hearts.",
    "smile": "You need to be in a chat to send smiles.",
    "voice": "You need to be in a chat to send voice messages.",
    "photo": "You need to be in a chat to send photos.",
}


def not_in_chat(action: str) -> str:
    return f"⚠️ *Not in Chat*\n\n{_NOT_IN_CHAT_ACTIONS.get(action, _NOT_IN_CHAT_ACTIONS['end'])}"


def _pref_gender_label(pref: PreferredGender) -> str:
    return {
        PreferredGender.male: "👨 Male Only",
        PreferredGender.female: "👩 Female Only",
        PreferredGender.both: "👫 Both Genders",
    }[pref]


def _gender_label(gender: Gender) -> str:
    return "👩 Female" if gender is Gender.female else "👨 Male"


def searching(profile: BlindProfile) -> str:
    return (
        f"🔍 *Finding Your Match...*\n{RULE}\n\n"
        "✨ *Based on your preferences:*\n"
        f"• 👫 Gender: {_pref_gender_label(profile.pref_gender)}\n"
        f"• 🎂 Age: {profile.pref_age_min}-{profile.pref_age_max} years\n"
        f"• 🎓 Year: {profile.year_of_study}\n\n"
        "💝 *Looking for compatible heart...*\n\n"
        f"{RULE}\n"
        "*This may take a few moments*"
    )


def connection_made(partner_display: str) -> str:
    return f"""💖 *Connection Made!*
{RULE}

✨ *You're now connected with {escape_markdown(partner_display)}*

🌹 *This is a safe, anonymous space*
💬 *Chat freely and respectfully*
🎤 *Voice messages allowed for verification*
📸 *Photos allowed for authenticity*

{RULE}
*Use the buttons below to interact:*
❤️ Send Heart - Express affection
😊 Send Smile - Send a smile
💬 Send Voice - Record voice message
📸 Send Photo - Share a photo
💔 End Chat - Leave the chat
🚨 Report User - Report inappropriate behavior

{RULE}
*Ground Rules:*
1. Be respectful always
2. No personal information
3. Report any discomfort
4. Enjoy the connection!"""


def chat_ended(partner_display: str, goodbye: str) -> str:
    """Shown to the user who ended the chat."""
    return (
        f"👋 *Chat Ended*\n{RULE}\n\n"
        f"✨ *Thank you for chatting with {escape_markdown(partner_display)}!*\n\n"
        f"{goodbye}\n\n"
        f"{RULE}\n"
        "Want to chat again? Use /blind"
    )


def partner_left(display: str, goodbye: str) -> str:
    """Shown to the user whose partner ended the chat."""
    return (
        f"⚠️ *Chat Ended*\n{RULE}\n\n"
        f"💬 *{escape_markdown(display)} has left the chat*\n\n"
        f"{goodbye}\n\n"
        f"{RULE}\n"
        "Use /blind to find someone new"
    )


def partner_removed(display: str) -> str:
    """Shown to the partner of an auto-banned user."""
    return (
        f"⚠️ *Chat Ended*\n{RULE}\n\n"
        f"💬 *{escape_markdown(display)} has been removed*\n\n"
        "🔒 *Reason:* Multiple user reports\n"
        "✨ *You can find a new partner with /blind*"
    )


def heart_received(sender_display: str) -> str:
    return f"❤️ *{escape_markdown(sender_display)} sent you a heart!*"


def smile_received(sender_display: str) -> str:
    return f"😊 *{escape_markdown(sender_display)} sent you a smile!*"


def relay_text(sender_display: str, text: str) -> str:
    return f"💬 *From {escape_markdown(sender_display)}:*\n{escape_markdown(text)}"


def relay_voice_caption(sender_display: str) -> str:
    return f"🎤 *Voice from {escape_markdown(sender_display)}*"


def relay_photo_caption(sender_display: str, caption: str | None = None) -> str:
    if caption:
        return f"📸 *Photo from {escape_markdown(sender_display)}:*\n{escape_markdown(caption)}"
    return f"📸 *Photo from {escape_markdown(sender_display)}*"


def relay_document_caption(sender_display: str) -> str:
    return f"📎 *File from {escape_markdown(sender_display)}*"


def report_prompt(partner_display: str) -> str:
    return (
        f"🚨 *Report {escape_markdown(partner_display)}*\n{RULE}\n\n"
        "⚠️ *Please select the reason:*\n\n"
        "• Harassment or bullying\n"
        "• Inappropriate content\n"
        "• Fake profile/gender\n"
        "• Personal info sharing\n"
        "• Spamming\n"
        "• Other violation"
    )


def report_submitted(reported_display: str, reason: str, count: int, threshold: int) -> str:
    return (
        f"✅ *Report Submitted*\n{RULE}\n\n"
        f"📋 *Reported:* {escape_markdown(reported_display)}\n"
        f"📝 *Reason:* {reason}\n"
        f"📊 *Reports against user:* {count}/{threshold}\n\n"
        f"⚠️ *User will be banned after {threshold} reports*\n\n"
        f"{RULE}\n"
        "Thank you for keeping our community safe! 💖"
    )


def auto_banned(user_id: int, display: str, reason: str, threshold: int) -> str:
    """Moderation chat notice for an automatic ban."""
    return (
        f"🚫 *USER AUTO-BANNED*\n{RULE}\n\n"
        f"👤 *User ID:* `{user_id}`\n"
        f"👤 *Username:* {escape_markdown(display)}\n"
        f"📋 *Reason:* {threshold}+ blind chat reports\n"
        f"🚨 *Last Report:* {reason}\n"
        f"🕐 *Time:* {_clock()}\n\n"
        f"{RULE}\n"
        "User has been automatically banned."
    )


def profile_summary(profile: BlindProfile) -> str:
    gender_emoji = "👩" if profile.gender is Gender.female else "👨"
    return f"""📋 *YOUR CONNECTION PROFILE*
{WIDE_RULE}

{gender_emoji} *Gender:* {profile.gender.value.title()} (permanent)
🎂 *Age:* {profile.age} years
🎓 *Years on Campus:* {profile.years_on_campus}
📚 *Year of Study:* {profile.year_of_study}

{WIDE_RULE}
*PREFERENCES:*
👫 *Looking for:* {_pref_gender_label(profile.pref_gender)}
🎂 *Age Range:* {profile.pref_age_min} - {profile.pref_age_max} years

{WIDE_RULE}
*PROFILE INFO:*
✅ *Status:* Verified
📅 *Created:* {profile.created_at.strftime("%b %d, %Y")}
🔒 *Note:* Profile cannot be changed

{WIDE_RULE}
*Ready to find your match?*
Use /blind to start searching!"""


# =============================================================================
# Admin contact
# =============================================================================

RATE_LIMITED = (
    "⏳ *Rate Limited*\n\n"
    "You can contact admin once per week.\n"
    "Please wait before sending another message."
)

ADMIN_CONTACT_PROMPT = (
    f"📞 *Contact Admin*\n{RULE}\n\n"
    "✨ *Send one message to admin team*\n\n"
    "📝 *Please write your message below:*\n"
    "• Questions\n"
    "• Suggestions\n"
    "• Reports\n"
    "• Feedback\n\n"
    f"{RULE}\n"
    "*Note:* One-way message only\n"
    "Admin will contact you if needed."
)

MESSAGE_SENT = (
    f"✅ *Message Sent*\n{RULE}\n\n"
    "✨ *Your message has been delivered to admin team*\n\n"
    "📋 *Status:* Received\n"
    "⏳ *Response:* If needed\n\n"
    f"{RULE}\n"
    "Thank you for your feedback! 💖"
)


def admin_message(user_id: int, username: str | None, text: str) -> str:
    return (
        f"📬 *ADMIN MESSAGE*\n{RULE}\n\n"
        f"👤 *From:* `{user_id}`\n"
        f"📱 *Username:* @{escape_markdown(username or 'none')}\n"
        f"🕐 *Time:* {_stamp()}\n\n"
        f"💭 *Message:*\n{escape_markdown(text)}\n\n"
        f"{RULE}"
    )
