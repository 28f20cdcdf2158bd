"""Blind connections: search, in-chat controls, relay and reports.

Sits between the dispatcher and the in-memory matchmaker. Every send to
a user happens after the matchmaker lock has been released; voice relay
runs as a background task so the event consumer never waits on ffmpeg.
"""

from __future__ import annotations

import random
from typing import Any

from mirrorbot.content import messages
from mirrorbot.content.prompts import profile_intro
from mirrorbot.core.exceptions import InvalidReportTarget, PersistenceError, ValidationError
from mirrorbot.core.flows import ProfileDraft, Step
from mirrorbot.core.matchmaker import (
    BlindProfile,
    EndChatStatus,
    Matchmaker,
    MatchStatus,
    PairLink,
)
from mirrorbot.core.messenger import Messenger
from mirrorbot.core.reports import DEFAULT_BAN_THRESHOLD, ReportLedger
from mirrorbot.core.session import SessionStore
from mirrorbot.core.storage import SessionFactory, unit_of_work
from mirrorbot.core.tasks import BackgroundTasks
from mirrorbot.db.models import BlindProfileRecord, Gender
from mirrorbot.logging_config import get_logger, mask_user_id
from mirrorbot.observability.metrics import CHATS_ENDED, PAIRS_FORMED
from mirrorbot.services.transport import keyboards
from mirrorbot.services.transport.protocol import CallbackAction, ChatUser, InboundMessage
from mirrorbot.services.voice import VoiceAnonymizationError, VoiceAnonymizer

logger: Any = get_logger(__name__)

MAX_RELAY_VOICE_SECONDS = 60


def profile_from_record(record: BlindProfileRecord) -> BlindProfile:
    return BlindProfile(
        user_id=record.user_id,
        gender=record.gender,
        age=record.age,
        years_on_campus=record.years_on_campus,
        year_of_study=record.year_of_study,
        pref_gender=record.pref_gender,
        pref_age_min=record.pref_age_min,
        pref_age_max=record.pref_age_max,
        profile_complete=record.profile_complete,
        created_at=record.created_at,
    )


def record_from_profile(profile: BlindProfile) -> BlindProfileRecord:
    return BlindProfileRecord(
        user_id=profile.user_id,
        gender=profile.gender,
        age=profile.age,
        years_on_campus=profile.years_on_campus,
        year_of_study=profile.year_of_study,
        pref_gender=profile.pref_gender,
        pref_age_min=profile.pref_age_min,
        pref_age_max=profile.pref_age_max,
        profile_complete=profile.profile_complete,
        created_at=profile.created_at,
    )


class BlindChatService:
    """Handlers for everything a user does around blind connections."""

    def __init__(
        self,
        *,
        matchmaker: Matchmaker,
        sessions: SessionStore,
        messenger: Messenger,
        voice: VoiceAnonymizer,
        session_factory: SessionFactory,
        tasks: BackgroundTasks,
        admin_chat_id: int,
        report_threshold: int = DEFAULT_BAN_THRESHOLD,
        rng: random.Random | None = None,
    ) -> None:
        self.matchmaker = matchmaker
        self.sessions = sessions
        self.messenger = messenger
        self.voice = voice
        self.session_factory = session_factory
        self.tasks = tasks
        self.admin_chat_id = admin_chat_id
        self.rng = rng or random.Random()
        self.ledger = ReportLedger(
            matchmaker,
            self._write_report,
            self._on_report_threshold,
            threshold=report_threshold,
        )

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def complete_profile(self, user: ChatUser, chat_id: int, draft: ProfileDraft) -> None:
        """Persist a finished profile draft and show the stored profile.

        Raises:
            PersistenceError: If the profile could not be saved
        """
        profile = draft.to_profile(user.id)
        async with unit_of_work(self.session_factory) as repos:
            record = await repos.profiles.create(record_from_profile(profile))
            stored = profile_from_record(record)
        logger.info(f"Blind profile created for {mask_user_id(user.id)}")
        await self.messenger.send_text(
            chat_id, messages.profile_summary(stored), keyboards.MAIN_MENU
        )

    async def show_profile(self, user: ChatUser, chat_id: int) -> None:
        async with unit_of_work(self.session_factory) as repos:
            record = await repos.profiles.get(user.id)
        if record is None:
            await self.messenger.send_text(chat_id, messages.NO_PROFILE, keyboards.MAIN_MENU)
            return
        await self.messenger.send_text(
            chat_id, messages.profile_summary(profile_from_record(record)), keyboards.MAIN_MENU
        )

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def start_search(self, user: ChatUser, chat_id: int) -> None:
        """Enter the waiting slot or connect with the waiter.

        Users without a complete profile are sent into profile creation first.
        """
        async with unit_of_work(self.session_factory) as repos:
            record = await repos.users.get(user.id)
            profile_record = await repos.profiles.get(user.id)
            gender = record.gender if record else None
            display = record.display_name if record else user.display_name

        if gender is None:
            await self.messenger.send_text(chat_id, messages.GENDER_REQUIRED, keyboards.GENDER)
            return

        if profile_record is None or not profile_record.profile_complete:
            await self.sessions.begin(user.id, Step.PROFILE_AGE, ProfileDraft(gender=gender))
            await self.messenger.send_text(chat_id, profile_intro(gender), keyboards.CANCEL)
            return

        profile = profile_from_record(profile_record)
        result = await self.matchmaker.request_match(user.id, profile, display)

        if result.status is MatchStatus.ALREADY_PAIRED:
            await self.messenger.send_text(
                chat_id, messages.ALREADY_CONNECTED, keyboards.BLIND_CHAT
            )
            return

        if result.status is MatchStatus.WAITING:
            await self.messenger.send_text(
                chat_id, messages.searching(profile), keyboards.CANCEL_SEARCH
            )
            return

        link = result.link
        assert link is not None
        PAIRS_FORMED.inc()
        await self.messenger.send_text(
            chat_id, messages.connection_made(link.partner_display), keyboards.BLIND_CHAT
        )
        await self.messenger.send_text(
            link.partner_id, messages.connection_made(link.own_display), keyboards.BLIND_CHAT
        )

    async def cancel_search(self, user: ChatUser, chat_id: int) -> None:
        if await self.matchmaker.cancel_search(user.id):
            await self.messenger.send_text(
                chat_id, messages.SEARCH_CANCELLED, keyboards.MAIN_MENU
            )
        else:
            await self.messenger.send_text(chat_id, messages.NOT_SEARCHING, keyboards.MAIN_MENU)

    # -------------------------------------------------------------------------
    # In-chat controls
    # -------------------------------------------------------------------------

    async def end_chat(self, user: ChatUser, chat_id: int) -> None:
        """End the user's chat, or leave the waiting slot if still searching."""
        result = await self.matchmaker.end_chat(user.id)
        if result.status is EndChatStatus.NOT_IN_CHAT:
            if await self.matchmaker.cancel_search(user.id):
                await self.messenger.send_text(chat_id, messages.SEARCH_LEFT, keyboards.MAIN_MENU)
            else:
                await self.messenger.send_text(
                    chat_id, messages.not_in_chat("end"), keyboards.MAIN_MENU
                )
            return

        link = result.link
        assert link is not None
        CHATS_ENDED.labels(reason="user").inc()
        goodbye = self.rng.choice(messages.GOODBYES)
        await self.messenger.send_text(
            chat_id, messages.chat_ended(link.partner_display, goodbye), keyboards.MAIN_MENU
        )
        await self.messenger.send_text(
            link.partner_id,
            messages.partner_left(link.own_display, goodbye),
            keyboards.MAIN_MENU,
        )

    async def main_menu(self, user: ChatUser, chat_id: int) -> None:
        """Return to the menu unless a chat is still open."""
        if await self.matchmaker.partner_of(user.id):
            await self.messenger.send_text(chat_id, messages.IN_BLIND_CHAT, keyboards.BLIND_CHAT)
            return
        await self.messenger.send_text(chat_id, messages.WELCOME, keyboards.MAIN_MENU)

    async def report_button(self, user: ChatUser, chat_id: int) -> None:
        link = await self.matchmaker.partner_of(user.id)
        if link is None:
            await self.messenger.send_text(
                chat_id, messages.not_in_chat("report"), keyboards.MAIN_MENU
            )
            return
        await self.messenger.send_text(
            chat_id,
            messages.report_prompt(link.partner_display),
            keyboards.report_reasons_keyboard(link.partner_id),
        )

    async def send_heart(self, user: ChatUser, chat_id: int) -> None:
        link = await self.matchmaker.partner_of(user.id)
        if link is None:
            await self.messenger.send_text(
                chat_id, messages.not_in_chat("heart"), keyboards.MAIN_MENU
            )
            return
        await self.messenger.send_text(
            link.partner_id, messages.heart_received(link.own_display), keyboards.BLIND_CHAT
        )
        await self.messenger.send_text(chat_id, messages.HEART_SENT, keyboards.BLIND_CHAT)

    async def send_smile(self, user: ChatUser, chat_id: int) -> None:
        link = await self.matchmaker.partner_of(user.id)
        if link is None:
            await self.messenger.send_text(
                chat_id, messages.not_in_chat("smile"), keyboards.MAIN_MENU
            )
            return
        await self.messenger.send_text(
            link.partner_id, messages.smile_received(link.own_display), keyboards.BLIND_CHAT
        )
        await self.messenger.send_text(chat_id, messages.SMILE_SENT, keyboards.BLIND_CHAT)

    async def voice_hint(self, user: ChatUser, chat_id: int) -> None:
        if await self.matchmaker.partner_of(user.id) is None:
            await self.messenger.send_text(
                chat_id, messages.not_in_chat("voice"), keyboards.MAIN_MENU
            )
            return
        await self.messenger.send_text(chat_id, messages.VOICE_HINT, keyboards.BLIND_CHAT)

    async def photo_hint(self, user: ChatUser, chat_id: int) -> None:
        if await self.matchmaker.partner_of(user.id) is None:
            await self.messenger.send_text(
                chat_id, messages.not_in_chat("photo"), keyboards.MAIN_MENU
            )
            return
        await self.messenger.send_text(chat_id, messages.PHOTO_HINT, keyboards.BLIND_CHAT)

    # -------------------------------------------------------------------------
    # Relay
    # -------------------------------------------------------------------------

    async def relay(self, message: InboundMessage, link: PairLink) -> None:
        """Forward a free message to the partner under the sender's display name."""
        partner_id = link.partner_id
        sender = link.own_display

        if message.voice is not None:
            if message.voice.duration > MAX_RELAY_VOICE_SECONDS:
                await self.messenger.send_text(
                    message.chat_id, messages.RELAY_VOICE_TOO_LONG, keyboards.BLIND_CHAT
                )
                return
            self.tasks.spawn(
                self._relay_voice(message.user.id, message.chat_id, link, message.voice.file_ref),
                name=f"relay-voice-{message.user.id}-{message.message_id}",
            )
            return

        if message.photo_ref:
            await self.messenger.send_photo(
                partner_id,
                message.photo_ref,
                caption=messages.relay_photo_caption(sender, message.caption),
                keyboard=keyboards.BLIND_CHAT,
            )
            return

        if message.document_ref:
            await self.messenger.send_document(
                partner_id,
                message.document_ref,
                caption=messages.relay_document_caption(sender),
                keyboard=keyboards.BLIND_CHAT,
            )
            return

        if message.sticker_ref:
            await self.messenger.send_sticker(
                partner_id, message.sticker_ref, keyboard=keyboards.BLIND_CHAT
            )
            return

        if message.text:
            await self.messenger.send_text(
                partner_id, messages.relay_text(sender, message.text), keyboards.BLIND_CHAT
            )

    async def _relay_voice(
        self, sender_id: int, chat_id: int, link: PairLink, voice_ref: str
    ) -> None:
        try:
            async with unit_of_work(self.session_factory) as repos:
                record = await repos.users.get(sender_id)
                gender: Gender | None = record.gender if record else None
            if gender is None:
                await self.messenger.send_text(
                    chat_id, messages.RELAY_VOICE_FAILED, keyboards.BLIND_CHAT
                )
                return
            result = await self.voice.anonymize(voice_ref, gender)
        except (VoiceAnonymizationError, PersistenceError) as e:
            logger.warning(f"Relay voice from {mask_user_id(sender_id)} dropped: {e}")
            await self.messenger.send_text(
                chat_id, messages.RELAY_VOICE_FAILED, keyboards.BLIND_CHAT
            )
            return
        except Exception as e:
            logger.exception(f"Relay voice from {mask_user_id(sender_id)} crashed: {e}")
            await self.messenger.send_text(
                chat_id, messages.RELAY_VOICE_FAILED, keyboards.BLIND_CHAT
            )
            return

        current = await self.matchmaker.partner_of(sender_id)
        if current is None or current.partner_id != link.partner_id:
            logger.info(f"Relay voice from {mask_user_id(sender_id)} discarded, chat ended")
            return

        await self.messenger.send_voice(
            link.partner_id,
            result.file_ref,
            caption=messages.relay_voice_caption(link.own_display),
            keyboard=keyboards.BLIND_CHAT,
        )
        await self.messenger.send_text(link.partner_id, messages.VOICE_TIP, keyboards.BLIND_CHAT)

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def handle_report_reason(self, callback: CallbackAction) -> None:
        """Handle `report_reason:<reason>:<reported_id>`.

        Raises:
            ValidationError: Unknown reason or a malformed user id
        """
        if len(callback.args) < 2 or callback.args[0] not in keyboards.REPORT_REASON_VALUES:
            raise ValidationError(f"Unknown report reason in {callback.args!r}")
        reason = callback.args[0]
        try:
            reported_id = int(callback.args[1])
        except ValueError:
            raise ValidationError(f"Bad reported user id {callback.args[1]!r}") from None

        reporter_id = callback.user.id
        link = await self.matchmaker.partner_of(reporter_id)
        try:
            outcome = await self.ledger.file_report(reporter_id, reported_id, reason)
        except InvalidReportTarget:
            answer = messages.ANSWER_NOT_IN_CHAT if link is None else messages.ANSWER_INVALID_TARGET
            await self.messenger.answer(callback.callback_id, answer)
            return
        except PersistenceError:
            await self.messenger.answer(callback.callback_id, messages.ANSWER_REPORT_FAILED)
            return

        reported_display = link.partner_display if link else "Unknown"
        await self.messenger.answer(callback.callback_id, messages.ANSWER_REPORTED)
        await self.messenger.edit_text(
            callback.chat_id, callback.message_id, messages.REPORT_RECEIVED
        )
        await self.messenger.send_text(
            callback.chat_id,
            messages.report_submitted(
                reported_display, reason, outcome.count, self.ledger.threshold
            ),
        )

    async def _write_report(self, reporter_id: int, reported_id: int, reason: str) -> None:
        async with unit_of_work(self.session_factory) as repos:
            await repos.reports.add(reporter_id, reported_id, reason)

    async def _on_report_threshold(self, reported_id: int, reporter_id: int, reason: str) -> None:
        display = "Unknown"
        try:
            async with unit_of_work(self.session_factory) as repos:
                await repos.users.ban(reported_id)
                user = await repos.users.get(reported_id)
                if user:
                    display = user.display_name
        except PersistenceError:
            logger.error(f"Auto-ban of {mask_user_id(reported_id)} could not be saved")

        await self.sessions.reset(reported_id)
        result = await self.matchmaker.end_chat(reported_id)
        if result.status is EndChatStatus.ENDED and result.link:
            CHATS_ENDED.labels(reason="auto_ban").inc()
            display = result.link.own_display
            await self.messenger.send_text(
                result.link.partner_id,
                messages.partner_removed(result.link.own_display),
                keyboards.MAIN_MENU,
            )

        logger.warning(f"User {mask_user_id(reported_id)} auto-banned after reports")
        await self.messenger.send_text(
            self.admin_chat_id,
            messages.auto_banned(reported_id, display, reason, self.ledger.threshold),
        )
