"""Routes inbound events to flow, command, action and callback handlers.

Message order:
1. Upsert the user and touch their session
2. Gender gate (private chats): nothing else works until gender is chosen
3. Ban gate
4. /start, including comment and view deep links
5. Active flow step
6. Commands
7. Button actions (never relayed to a partner)
8. Blind chat relay
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any
from uuid import uuid4

from mirrorbot.content import messages
from mirrorbot.content.prompts import cancelled_text, error_text, keyboard_for, step_prompt
from mirrorbot.core.actions import ActionTag
from mirrorbot.core.blind_chat import BlindChatService
from mirrorbot.core.exceptions import (
    NotFoundError,
    PersistenceError,
    RateLimitError,
    ValidationError,
)
from mirrorbot.core.flows import (
    CommentDraft,
    ConfessionDraft,
    Effect,
    FlowInput,
    ProfileDraft,
    Step,
    transition,
)
from mirrorbot.core.matchmaker import Matchmaker
from mirrorbot.core.messenger import Messenger
from mirrorbot.core.moderation import ModerationDesk
from mirrorbot.core.session import SessionStore, UserSession
from mirrorbot.core.storage import SessionFactory, unit_of_work
from mirrorbot.core.tasks import BackgroundTasks
from mirrorbot.db.models import ConfessionType, Gender
from mirrorbot.logging_config import get_logger, mask_user_id
from mirrorbot.services.transport import keyboards
from mirrorbot.services.transport.protocol import (
    CallbackAction,
    InboundEvent,
    InboundMessage,
    VoiceAttachment,
)
from mirrorbot.services.voice import VoiceAnonymizationError, VoiceAnonymizer

logger: Any = get_logger(__name__)

MessageHandler = Callable[[InboundMessage], Awaitable[None]]
CallbackHandler = Callable[[CallbackAction], Awaitable[None]]

GENDER_ACTIONS = {
    ActionTag.GENDER_MALE: Gender.male,
    ActionTag.GENDER_FEMALE: Gender.female,
}


def _flow_input(message: InboundMessage) -> FlowInput:
    return FlowInput(
        text=message.text,
        action=message.action,
        voice_ref=message.voice.file_ref if message.voice else None,
        voice_duration=message.voice.duration if message.voice else None,
    )


def _deep_link_id(args: str, prefix: str) -> int | None:
    if not args.startswith(prefix):
        return None
    try:
        return int(args[len(prefix) :])
    except ValueError:
        return None


class Dispatcher:
    """Single entry point for every normalized inbound event."""

    def __init__(
        self,
        *,
        sessions: SessionStore,
        matchmaker: Matchmaker,
        messenger: Messenger,
        voice: VoiceAnonymizer,
        blind_chat: BlindChatService,
        moderation: ModerationDesk,
        session_factory: SessionFactory,
        tasks: BackgroundTasks,
    ) -> None:
        self.sessions = sessions
        self.matchmaker = matchmaker
        self.messenger = messenger
        self.voice = voice
        self.blind_chat = blind_chat
        self.moderation = moderation
        self.session_factory = session_factory
        self.tasks = tasks

        self._commands: dict[str, MessageHandler] = {
            "confess": self._confession_menu,
            "blind": self._blind,
            "end": self._end_chat,
            "report": self._report,
            "contact_admin": self._contact_admin,
            "profile": self._profile,
            "help": self._help,
            "status": self._stats,
            "rules": self._rules,
        }
        self._actions: dict[ActionTag, MessageHandler] = {
            ActionTag.TEXT_CONFESSION: self._text_confession,
            ActionTag.VOICE_CONFESSION: self._voice_confession,
            ActionTag.BLIND_CONNECTIONS: self._blind,
            ActionTag.CONTACT_ADMIN: self._contact_admin,
            ActionTag.MY_STATS: self._stats,
            ActionTag.GUIDELINES: self._rules,
            ActionTag.RATE_US: self._feedback,
            ActionTag.CANCEL_SEARCH: self._cancel_search,
            ActionTag.MAIN_MENU: self._main_menu,
            ActionTag.END_CHAT: self._end_chat,
            ActionTag.REPORT_USER: self._report,
            ActionTag.SEND_HEART: self._heart,
            ActionTag.SEND_SMILE: self._smile,
            ActionTag.SEND_VOICE: self._voice_hint,
            ActionTag.SEND_PHOTO: self._photo_hint,
            ActionTag.CANCEL: self._cancel_idle,
        }
        self._callbacks: dict[str, CallbackHandler] = {
            "approve": moderation.approve,
            "reject": moderation.reject,
            "ban": moderation.ban,
            "listen": moderation.listen,
            "react": moderation.react,
            "report_reason": blind_chat.handle_report_reason,
        }

    async def dispatch(self, event: InboundEvent) -> None:
        if isinstance(event, CallbackAction):
            await self.handle_callback(event)
        else:
            await self.handle_message(event)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def handle_message(self, message: InboundMessage) -> None:
        user = message.user
        async with unit_of_work(self.session_factory) as repos:
            record = await repos.users.upsert(
                user.id,
                username=user.username,
                first_name=user.first_name,
                last_name=user.last_name,
            )
            gender, banned = record.gender, record.banned

        session = await self.sessions.touch(user.id)

        if message.is_private and gender is None:
            await self._gender_gate(message)
            return

        if banned:
            await self.messenger.send_text(message.chat_id, messages.RESTRICTED)
            return

        try:
            await self._route(message, session)
        except NotFoundError:
            await self.messenger.send_text(
                message.chat_id, messages.CONFESSION_NOT_FOUND, keyboards.MAIN_MENU
            )
        except RateLimitError:
            await self.messenger.send_text(
                message.chat_id, messages.RATE_LIMITED, keyboards.MAIN_MENU
            )

    async def _route(self, message: InboundMessage, session: UserSession) -> None:
        user = message.user
        if message.command == "start":
            await self._start(message)
            return

        if not message.is_private:
            await self._group_message(message, session)
            return

        if not session.is_idle:
            await self._advance_flow(message, session)
            return

        if message.command:
            handler = self._commands.get(message.command)
            if handler is None:
                await self.messenger.send_text(message.chat_id, messages.UNKNOWN_COMMAND)
                return
            await handler(message)
            return

        if message.action is not None:
            action_handler = self._actions.get(message.action)
            if action_handler is not None:
                await action_handler(message)
            return

        link = await self.matchmaker.partner_of(user.id)
        if link is not None:
            await self.blind_chat.relay(message, link)

    async def _gender_gate(self, message: InboundMessage) -> None:
        gender = GENDER_ACTIONS.get(message.action) if message.action else None
        if gender is None:
            await self.messenger.send_text(
                message.chat_id, messages.GENDER_SELECTION, keyboards.GENDER
            )
            return
        try:
            async with unit_of_work(self.session_factory) as repos:
                await repos.users.set_gender(message.user.id, gender)
        except PersistenceError:
            await self.messenger.send_text(
                message.chat_id, messages.GENDER_SAVE_FAILED, keyboards.GENDER
            )
            return
        logger.info(f"Gender set for {mask_user_id(message.user.id)}")
        await self.messenger.send_text(message.chat_id, messages.WELCOME, keyboards.MAIN_MENU)

    async def _group_message(self, message: InboundMessage, session: UserSession) -> None:
        """Outside private chats only commands are answered."""
        if message.command:
            if message.command in messages.PRIVATE_ONLY:
                await self.messenger.send_text(
                    message.chat_id, messages.PRIVATE_ONLY[message.command]
                )
                return
            handler = self._commands.get(message.command)
            if handler is not None:
                await handler(message)
            return
        if session.step is Step.COMMENT_TEXT:
            await self.messenger.send_text(message.chat_id, messages.COMMENT_PRIVATE_ONLY)

    async def _start(self, message: InboundMessage) -> None:
        args = message.command_args
        comment_id = _deep_link_id(args, "comment")
        if comment_id is not None:
            await self.moderation.open_comment(message.user, message.chat_id, comment_id)
            return
        view_id = _deep_link_id(args, "view")
        if view_id is not None:
            await self.moderation.view_comments(message.chat_id, view_id)
            return
        await self.messenger.send_text(message.chat_id, messages.WELCOME, keyboards.MAIN_MENU)

    # -------------------------------------------------------------------------
    # Flows
    # -------------------------------------------------------------------------

    async def _advance_flow(self, message: InboundMessage, session: UserSession) -> None:
        user = message.user
        chat_id = message.chat_id
        result = transition(session.step, session.draft, _flow_input(message))

        if result.rejected:
            assert result.error is not None
            await self.messenger.send_text(
                chat_id, error_text(result.error, result.draft), keyboard_for(result.step)
            )
            return

        if result.effect is Effect.STILL_PROCESSING:
            await self.messenger.send_text(chat_id, messages.STILL_PROCESSING, keyboards.CANCEL)
            return

        job_id = None
        if result.effect is Effect.VOICE_CONFESSION_READY and isinstance(
            result.draft, ConfessionDraft
        ):
            job_id = uuid4().hex
            result = replace(result, draft=replace(result.draft, job_id=job_id))

        await self.sessions.apply(user.id, result)

        try:
            if result.effect is Effect.CANCELLED:
                await self.messenger.send_text(
                    chat_id, cancelled_text(session.step), keyboards.MAIN_MENU
                )
            elif result.effect is Effect.ADVANCED:
                await self.messenger.send_text(
                    chat_id, step_prompt(result.step, result.draft), keyboard_for(result.step)
                )
            elif result.effect is Effect.PROFILE_COMPLETE and isinstance(
                result.draft, ProfileDraft
            ):
                await self.blind_chat.complete_profile(user, chat_id, result.draft)
            elif result.effect is Effect.TEXT_CONFESSION_READY:
                await self.moderation.submit_text(user, chat_id, message.text)
            elif result.effect is Effect.VOICE_CONFESSION_READY and message.voice and job_id:
                await self.messenger.send_text(
                    chat_id, messages.VOICE_PROCESSING, keyboards.CANCEL
                )
                self.tasks.spawn(
                    self._voice_confession_job(user.id, chat_id, job_id, message.voice),
                    name=f"voice-confession-{job_id[:8]}",
                )
            elif result.effect is Effect.COMMENT_READY and isinstance(
                result.draft, CommentDraft
            ):
                await self.moderation.add_comment(user, chat_id, result.draft, message.text)
            elif result.effect is Effect.ADMIN_MESSAGE_READY:
                await self.moderation.deliver_admin_message(user, chat_id, message.text)
        except PersistenceError:
            await self.messenger.send_text(chat_id, messages.SAVE_FAILED, keyboards.MAIN_MENU)

    async def _voice_confession_job(
        self, user_id: int, chat_id: int, job_id: str, voice: VoiceAttachment
    ) -> None:
        """Anonymize a voice confession and submit it if the user still waits for it.

        Any failure ends the flow with a notice, so the session never stays
        stuck in the processing step.
        """
        try:
            async with unit_of_work(self.session_factory) as repos:
                record = await repos.users.get(user_id)
            gender = record.gender if record and record.gender else Gender.male
            result = await self.voice.anonymize(voice.file_ref, gender)
        except (VoiceAnonymizationError, PersistenceError) as e:
            logger.warning(f"Voice confession of {mask_user_id(user_id)} failed: {e}")
            await self._fail_voice_job(user_id, chat_id, job_id)
            return
        except Exception as e:
            logger.exception(f"Voice confession of {mask_user_id(user_id)} crashed: {e}")
            await self._fail_voice_job(user_id, chat_id, job_id)
            return

        if not await self.sessions.complete_job(user_id, job_id):
            logger.info(f"Voice confession of {mask_user_id(user_id)} discarded, flow left")
            return

        try:
            await self.moderation.submit_voice(user_id, chat_id, result.file_ref, voice.duration)
        except PersistenceError:
            await self.messenger.send_text(chat_id, messages.SAVE_FAILED, keyboards.MAIN_MENU)

    async def _fail_voice_job(self, user_id: int, chat_id: int, job_id: str) -> None:
        if await self.sessions.complete_job(user_id, job_id):
            await self.messenger.send_text(chat_id, messages.VOICE_FAILED, keyboards.MAIN_MENU)

    # -------------------------------------------------------------------------
    # Commands and actions
    # -------------------------------------------------------------------------

    async def _confession_menu(self, message: InboundMessage) -> None:
        await self.messenger.send_text(
            message.chat_id, messages.CONFESSION_TYPE_PROMPT, keyboards.CONFESSION_TYPE
        )

    async def _begin_confession(self, message: InboundMessage, kind: ConfessionType) -> None:
        await self.sessions.begin(
            message.user.id,
            Step.CONFESSION_AWAITING_CONTENT,
            ConfessionDraft(confession_type=kind),
        )
        prompt = (
            messages.VOICE_CONFESSION_PROMPT
            if kind is ConfessionType.voice
            else messages.TEXT_CONFESSION_PROMPT
        )
        await self.messenger.send_text(message.chat_id, prompt, keyboards.CANCEL)

    async def _text_confession(self, message: InboundMessage) -> None:
        await self._begin_confession(message, ConfessionType.text)

    async def _voice_confession(self, message: InboundMessage) -> None:
        await self._begin_confession(message, ConfessionType.voice)

    async def _blind(self, message: InboundMessage) -> None:
        await self.blind_chat.start_search(message.user, message.chat_id)

    async def _end_chat(self, message: InboundMessage) -> None:
        await self.blind_chat.end_chat(message.user, message.chat_id)

    async def _report(self, message: InboundMessage) -> None:
        await self.blind_chat.report_button(message.user, message.chat_id)

    async def _contact_admin(self, message: InboundMessage) -> None:
        await self.moderation.start_admin_contact(message.user, message.chat_id)

    async def _profile(self, message: InboundMessage) -> None:
        await self.blind_chat.show_profile(message.user, message.chat_id)

    async def _help(self, message: InboundMessage) -> None:
        await self.messenger.send_text(message.chat_id, messages.HELP)

    async def _rules(self, message: InboundMessage) -> None:
        await self.messenger.send_text(message.chat_id, messages.RULES)

    async def _feedback(self, message: InboundMessage) -> None:
        await self.messenger.send_text(message.chat_id, messages.FEEDBACK)

    async def _cancel_search(self, message: InboundMessage) -> None:
        await self.blind_chat.cancel_search(message.user, message.chat_id)

    async def _main_menu(self, message: InboundMessage) -> None:
        await self.blind_chat.main_menu(message.user, message.chat_id)

    async def _heart(self, message: InboundMessage) -> None:
        await self.blind_chat.send_heart(message.user, message.chat_id)

    async def _smile(self, message: InboundMessage) -> None:
        await self.blind_chat.send_smile(message.user, message.chat_id)

    async def _voice_hint(self, message: InboundMessage) -> None:
        await self.blind_chat.voice_hint(message.user, message.chat_id)

    async def _photo_hint(self, message: InboundMessage) -> None:
        await self.blind_chat.photo_hint(message.user, message.chat_id)

    async def _cancel_idle(self, message: InboundMessage) -> None:
        """Cancel pressed with no flow in progress."""
        if await self.matchmaker.cancel_search(message.user.id):
            await self.messenger.send_text(
                message.chat_id, messages.SEARCH_CANCELLED, keyboards.MAIN_MENU
            )
            return
        if await self.matchmaker.partner_of(message.user.id):
            await self.messenger.send_text(
                message.chat_id, messages.IN_BLIND_CHAT, keyboards.BLIND_CHAT
            )
            return
        await self.messenger.send_text(
            message.chat_id, messages.RETURNED_TO_MENU, keyboards.MAIN_MENU
        )

    async def _stats(self, message: InboundMessage) -> None:
        user_id = message.user.id
        async with unit_of_work(self.session_factory) as repos:
            record = await repos.users.get(user_id)
            confession_stats = await repos.confessions.stats_for_user(user_id)
            comments = await repos.confessions.count_comments_by_user(user_id)
            reactions = await repos.confessions.count_reactions_by_user(user_id)
            has_profile = await repos.profiles.get(user_id) is not None
            reports = await repos.reports.count_against(user_id)
            can_contact = await repos.users.can_contact_admin(user_id)

        in_chat = await self.matchmaker.partner_of(user_id) is not None
        await self.messenger.send_text(
            message.chat_id,
            messages.stats_text(
                gender=record.gender if record else None,
                banned=bool(record and record.banned),
                confessions=confession_stats,
                comments=comments,
                reactions=reactions,
                in_chat=in_chat,
                has_profile=has_profile,
                reports=reports,
                report_threshold=self.blind_chat.ledger.threshold,
                can_contact_admin=can_contact,
            ),
        )

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    async def handle_callback(self, callback: CallbackAction) -> None:
        handler = self._callbacks.get(callback.kind)
        if handler is None:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_UNKNOWN)
            return
        try:
            await handler(callback)
        except (ValidationError, NotFoundError) as e:
            logger.debug(f"Callback {callback.kind} refused: {e}")
            await self.messenger.answer(callback.callback_id, messages.ANSWER_ERROR)
