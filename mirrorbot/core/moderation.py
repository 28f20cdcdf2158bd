"""Moderation desk: confession review, channel publishing, comments and reactions.

Confessions are written through to the database, then posted to the
moderation chat as review cards. Approval publishes to the public channel
with reaction buttons and comment deep links whose counts are refreshed
whenever a reaction or comment changes them.
"""

from __future__ import annotations

from typing import Any

from mirrorbot.content import messages
from mirrorbot.content.prompts import keyboard_for
from mirrorbot.core.exceptions import (
    NotFoundError,
    PersistenceError,
    RateLimitError,
    ValidationError,
)
from mirrorbot.core.flows import AdminContactDraft, CommentDraft, Step
from mirrorbot.core.matchmaker import EndChatStatus, Matchmaker
from mirrorbot.core.messenger import Messenger
from mirrorbot.core.session import SessionStore
from mirrorbot.core.storage import SessionFactory, unit_of_work
from mirrorbot.db.models import REACTION_EMOJIS, Confession, ConfessionType, ReviewStatus
from mirrorbot.logging_config import get_logger, mask_user_id
from mirrorbot.observability.metrics import (
    CHATS_ENDED,
    CONFESSIONS_SUBMITTED,
    MODERATION_DECISIONS,
)
from mirrorbot.services.transport import keyboards
from mirrorbot.services.transport.protocol import (
    CallbackAction,
    ChatUser,
    InlineKeyboard,
    TransportError,
)

logger: Any = get_logger(__name__)


def _confession_id(callback: CallbackAction) -> int:
    if not callback.args:
        raise ValidationError(f"{callback.kind} callback without a confession id")
    try:
        return int(callback.args[0])
    except ValueError:
        raise ValidationError(f"bad confession id {callback.args[0]!r}") from None


class ModerationDesk:
    """Review workflow for confessions plus their public engagement."""

    def __init__(
        self,
        *,
        messenger: Messenger,
        sessions: SessionStore,
        matchmaker: Matchmaker,
        session_factory: SessionFactory,
        admin_chat_id: int,
        channel_id: int,
        bot_username: str | None = None,
    ) -> None:
        self.messenger = messenger
        self.sessions = sessions
        self.matchmaker = matchmaker
        self.session_factory = session_factory
        self.admin_chat_id = admin_chat_id
        self.channel_id = channel_id
        self.bot_username = bot_username or ""

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def submit_text(self, user: ChatUser, chat_id: int, text: str) -> int:
        """Store a text confession and post its review card.

        Raises:
            PersistenceError: If the confession could not be saved
        """
        async with unit_of_work(self.session_factory) as repos:
            confession = await repos.confessions.create_text(user.id, text)
            confession_id = confession.id
        assert confession_id is not None

        CONFESSIONS_SUBMITTED.labels(type="text").inc()
        logger.info(f"Text confession #{confession_id} from {mask_user_id(user.id)}")
        await self.messenger.send_text(
            self.admin_chat_id,
            messages.text_review_card(confession_id, user.id, text),
            keyboards.review_keyboard(confession_id, ConfessionType.text),
        )
        await self.messenger.send_text(
            chat_id, messages.confession_received(ConfessionType.text), keyboards.MAIN_MENU
        )
        return confession_id

    async def submit_voice(self, user_id: int, chat_id: int, voice_ref: str, duration: int) -> int:
        """Store an anonymized voice confession and post it for review.

        Args:
            voice_ref: File reference of the anonymized clip, never the original

        Raises:
            PersistenceError: If the confession could not be saved
        """
        async with unit_of_work(self.session_factory) as repos:
            confession = await repos.confessions.create_voice(user_id, voice_ref, duration)
            confession_id = confession.id
        assert confession_id is not None

        CONFESSIONS_SUBMITTED.labels(type="voice").inc()
        logger.info(f"Voice confession #{confession_id} from {mask_user_id(user_id)}")
        await self.messenger.send_voice(
            self.admin_chat_id,
            voice_ref,
            caption=messages.voice_review_card(confession_id, user_id, duration),
            keyboard=keyboards.review_keyboard(confession_id, ConfessionType.voice),
        )
        await self.messenger.send_text(
            chat_id, messages.confession_received(ConfessionType.voice), keyboards.MAIN_MENU
        )
        return confession_id

    # -------------------------------------------------------------------------
    # Review callbacks (moderation chat only)
    # -------------------------------------------------------------------------

    async def _require_confession(self, confession_id: int) -> Confession:
        async with unit_of_work(self.session_factory) as repos:
            confession = await repos.confessions.get(confession_id)
        if confession is None:
            raise NotFoundError(f"Confession #{confession_id} does not exist")
        return confession

    async def _load_for_review(self, callback: CallbackAction) -> Confession | None:
        """Common checks for review callbacks.

        Returns None (after answering) when the press came from outside the
        moderation chat or the lookup failed.

        Raises:
            ValidationError: Malformed confession id
            NotFoundError: No such confession
        """
        if callback.chat_id != self.admin_chat_id:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_NOT_ALLOWED)
            return None
        confession_id = _confession_id(callback)
        try:
            return await self._require_confession(confession_id)
        except PersistenceError:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ERROR)
            return None

    async def _close_card(
        self, callback: CallbackAction, confession: Confession, text: str
    ) -> None:
        """Replace a review card's text and drop its buttons."""
        if confession.type == ConfessionType.voice:
            await self.messenger.edit_caption(
                callback.chat_id, callback.message_id, text, keyboards.NO_BUTTONS
            )
        else:
            await self.messenger.edit_text(
                callback.chat_id, callback.message_id, text, keyboards.NO_BUTTONS
            )

    def controls(
        self,
        confession_id: int,
        reaction_counts: dict[str, int] | None = None,
        comment_count: int = 0,
    ) -> InlineKeyboard:
        return keyboards.channel_controls(
            confession_id,
            bot_username=self.bot_username,
            reaction_counts=reaction_counts,
            comment_count=comment_count,
        )

    async def _publish(self, confession: Confession) -> int:
        """Post to the channel. Raises TransportError when the post fails."""
        assert confession.id is not None
        controls = self.controls(confession.id)
        transport = self.messenger.transport
        if confession.type == ConfessionType.voice and confession.voice_ref:
            return await transport.send_voice(
                self.channel_id,
                confession.voice_ref,
                caption=messages.frosted_style(),
                keyboard=controls,
            )
        return await transport.send_text(
            self.channel_id, messages.frosted_style(confession.text), keyboard=controls
        )

    async def approve(self, callback: CallbackAction) -> None:
        """Publish a pending confession to the channel.

        The confession stays pending if the channel post fails, so the
        moderator can retry.
        """
        confession = await self._load_for_review(callback)
        if confession is None:
            return
        if confession.status != ReviewStatus.pending:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ALREADY_REVIEWED)
            return

        try:
            channel_message_id = await self._publish(confession)
        except TransportError as e:
            logger.error(f"Publishing confession #{confession.id} failed: {e}")
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ERROR)
            return

        try:
            async with unit_of_work(self.session_factory) as repos:
                stored = await repos.confessions.get(confession.id)  # type: ignore[arg-type]
                if stored:
                    await repos.confessions.mark_approved(stored)
                    await repos.confessions.set_channel_message(stored, channel_message_id)
        except PersistenceError:
            logger.error(f"Confession #{confession.id} published but not marked approved")

        MODERATION_DECISIONS.labels(decision="approve").inc()
        await self._close_card(
            callback,
            confession,
            messages.approved_card(confession.id, confession.type, confession.user_id),  # type: ignore[arg-type]
        )
        await self.messenger.send_text(
            confession.user_id,
            messages.confession_published(confession.id, confession.type),  # type: ignore[arg-type]
            keyboards.MAIN_MENU,
        )
        await self.messenger.answer(callback.callback_id, messages.ANSWER_PUBLISHED)

    async def reject(self, callback: CallbackAction) -> None:
        confession = await self._load_for_review(callback)
        if confession is None:
            return
        if confession.status != ReviewStatus.pending:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ALREADY_REVIEWED)
            return

        try:
            async with unit_of_work(self.session_factory) as repos:
                stored = await repos.confessions.get(confession.id)  # type: ignore[arg-type]
                if stored:
                    await repos.confessions.mark_rejected(stored)
        except PersistenceError:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ERROR)
            return

        MODERATION_DECISIONS.labels(decision="reject").inc()
        await self._close_card(
            callback,
            confession,
            messages.rejected_card(confession.id, confession.type, confession.user_id),  # type: ignore[arg-type]
        )
        await self.messenger.send_text(
            confession.user_id, messages.CONFESSION_REJECTED, keyboards.MAIN_MENU
        )
        await self.messenger.answer(callback.callback_id, messages.ANSWER_REJECTED)

    async def ban(self, callback: CallbackAction) -> None:
        """Ban the author and reject the confession if it is still pending."""
        confession = await self._load_for_review(callback)
        if confession is None:
            return

        try:
            async with unit_of_work(self.session_factory) as repos:
                await repos.users.ban(confession.user_id)
                stored = await repos.confessions.get(confession.id)  # type: ignore[arg-type]
                if stored and stored.status == ReviewStatus.pending:
                    await repos.confessions.mark_rejected(stored)
        except PersistenceError:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ERROR)
            return

        MODERATION_DECISIONS.labels(decision="ban").inc()
        logger.warning(f"User {mask_user_id(confession.user_id)} banned by moderator")
        await self.sessions.reset(confession.user_id)
        await self._remove_from_blind_chat(confession.user_id)
        await self._close_card(
            callback,
            confession,
            messages.banned_card(confession.id, confession.type, confession.user_id),  # type: ignore[arg-type]
        )
        await self.messenger.send_text(confession.user_id, messages.ACCOUNT_BANNED)
        await self.messenger.answer(callback.callback_id, messages.ANSWER_BANNED)

    async def _remove_from_blind_chat(self, user_id: int) -> None:
        """Drop a banned user from the waiting slot and end any active chat."""
        await self.matchmaker.cancel_search(user_id)
        result = await self.matchmaker.end_chat(user_id)
        if result.status is EndChatStatus.ENDED and result.link:
            CHATS_ENDED.labels(reason="moderator_ban").inc()
            await self.messenger.send_text(
                result.link.partner_id,
                messages.partner_removed(result.link.own_display),
                keyboards.MAIN_MENU,
            )

    async def listen(self, callback: CallbackAction) -> None:
        """Send the anonymized clip of a voice confession to the moderation chat."""
        confession = await self._load_for_review(callback)
        if confession is None:
            return
        if not confession.voice_ref:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_VOICE_MISSING)
            return
        await self.messenger.send_voice(
            callback.chat_id,
            confession.voice_ref,
            caption=messages.listen_caption(confession.id),  # type: ignore[arg-type]
        )
        await self.messenger.answer(callback.callback_id, messages.ANSWER_VOICE_SENT)

    # -------------------------------------------------------------------------
    # Reactions
    # -------------------------------------------------------------------------

    async def react(self, callback: CallbackAction) -> None:
        """Toggle the user's reaction and refresh the channel post's counts.

        Raises:
            ValidationError: Malformed id or an emoji outside the reaction set
            NotFoundError: No such confession
        """
        confession_id = _confession_id(callback)
        if len(callback.args) < 2 or callback.args[1] not in REACTION_EMOJIS:
            raise ValidationError(f"Unsupported reaction on #{confession_id}")
        emoji = callback.args[1]

        try:
            async with unit_of_work(self.session_factory) as repos:
                if await repos.confessions.get(confession_id) is None:
                    raise NotFoundError(f"Confession #{confession_id} does not exist")
                await repos.confessions.toggle_reaction(confession_id, callback.user.id, emoji)
                counts = await repos.confessions.reaction_counts(confession_id)
                comment_count = await repos.confessions.count_comments(confession_id)
        except PersistenceError:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ERROR)
            return

        await self.messenger.edit_keyboard(
            callback.chat_id,
            callback.message_id,
            self.controls(confession_id, counts, comment_count),
        )
        await self.messenger.answer(callback.callback_id, messages.ANSWER_REACTION)

    async def refresh_controls(self, confession_id: int, channel_message_id: int) -> None:
        async with unit_of_work(self.session_factory) as repos:
            counts = await repos.confessions.reaction_counts(confession_id)
            comment_count = await repos.confessions.count_comments(confession_id)
        await self.messenger.edit_keyboard(
            self.channel_id,
            channel_message_id,
            self.controls(confession_id, counts, comment_count),
        )

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    async def open_comment(self, user: ChatUser, chat_id: int, confession_id: int) -> None:
        """Start comment authoring for a confession (from a channel deep link).

        Raises:
            NotFoundError: No such confession
        """
        confession = await self._require_confession(confession_id)
        draft = CommentDraft(
            confession_id=confession_id,
            channel_message_id=confession.channel_message_id,
            confession_text=confession.text or "",
        )
        await self.sessions.begin(user.id, Step.COMMENT_TEXT, draft)
        await self.messenger.send_text(
            chat_id,
            messages.comment_prompt(confession_id, draft.confession_text),
            keyboard_for(Step.COMMENT_TEXT),
        )

    async def add_comment(
        self, user: ChatUser, chat_id: int, draft: CommentDraft, text: str
    ) -> None:
        """Store a comment and bump the counts on the channel post.

        Raises:
            PersistenceError: If the comment could not be saved
        """
        async with unit_of_work(self.session_factory) as repos:
            await repos.confessions.add_comment(
                draft.confession_id, user.id, text, username=user.username
            )

        if draft.channel_message_id:
            try:
                await self.refresh_controls(draft.confession_id, draft.channel_message_id)
            except PersistenceError:
                logger.warning(f"Comment counts for #{draft.confession_id} not refreshed")

        await self.messenger.send_text(
            chat_id, messages.comment_added(draft.confession_id), keyboards.MAIN_MENU
        )

    async def view_comments(self, chat_id: int, confession_id: int) -> None:
        async with unit_of_work(self.session_factory) as repos:
            comments = await repos.confessions.latest_comments(confession_id)
        if not comments:
            await self.messenger.send_text(chat_id, messages.no_comments(confession_id))
            return
        await self.messenger.send_text(chat_id, messages.comment_listing(confession_id, comments))

    # -------------------------------------------------------------------------
    # Admin contact
    # -------------------------------------------------------------------------

    async def start_admin_contact(self, user: ChatUser, chat_id: int) -> None:
        """Open the admin contact flow.

        Raises:
            RateLimitError: The user already used this week's message
        """
        async with unit_of_work(self.session_factory) as repos:
            allowed = await repos.users.can_contact_admin(user.id)
        if not allowed:
            raise RateLimitError(f"{mask_user_id(user.id)} already contacted the admins")
        await self.sessions.begin(user.id, Step.ADMIN_CONTACT_MESSAGE, AdminContactDraft())
        await self.messenger.send_text(chat_id, messages.ADMIN_CONTACT_PROMPT, keyboards.CANCEL)

    async def deliver_admin_message(self, user: ChatUser, chat_id: int, text: str) -> None:
        """Store a one-way admin message and close the user's weekly allowance.

        Raises:
            PersistenceError: If the message could not be saved
        """
        async with unit_of_work(self.session_factory) as repos:
            await repos.admin_contacts.add(user.id, text)
            await repos.users.close_admin_contact(user.id)

        await self.messenger.send_text(
            self.admin_chat_id, messages.admin_message(user.id, user.username, text)
        )
        await self.messenger.send_text(chat_id, messages.MESSAGE_SENT, keyboards.MAIN_MENU)
