"""Tests for routing inbound events through the dispatcher."""

import asyncio

import pytest
from conftest import (
    ADMIN_CHAT_ID,
    answers,
    last_text,
    make_callback,
    make_message,
    make_profile,
    sent_texts,
)

from mirrorbot.content import messages
from mirrorbot.content.prompts import cancelled_text
from mirrorbot.core.actions import ActionTag
from mirrorbot.core.dispatcher import Dispatcher
from mirrorbot.core.flows import Step
from mirrorbot.db.models import Confession, ConfessionType, Gender, User
from mirrorbot.services.transport.protocol import VoiceAttachment
from mirrorbot.services.voice import AnonymizedVoice, VoiceAnonymizationError


async def register(session_factory, user_id: int, gender: Gender = Gender.male, **fields) -> None:
    async with session_factory() as session:
        session.add(User(user_id=user_id, username=f"user{user_id}", gender=gender, **fields))


class TestGates:
    """Tests for the gender and ban gates."""

    @pytest.mark.asyncio
    async def test_new_user_must_choose_gender(self, dispatcher: Dispatcher, transport) -> None:
        await dispatcher.handle_message(make_message(1, "hello"))

        assert last_text(transport, 1) == messages.GENDER_SELECTION

    @pytest.mark.asyncio
    async def test_commands_blocked_until_gender_set(self, dispatcher, transport) -> None:
        await dispatcher.handle_message(make_message(1, "/confess", command="confess"))

        assert last_text(transport, 1) == messages.GENDER_SELECTION

    @pytest.mark.asyncio
    async def test_gender_choice_is_saved(self, dispatcher, transport, session_factory) -> None:
        await dispatcher.handle_message(make_message(1, action=ActionTag.GENDER_FEMALE))

        assert last_text(transport, 1) == messages.WELCOME
        async with session_factory() as session:
            user = await session.get(User, 1)
        assert user.gender == Gender.female

    @pytest.mark.asyncio
    async def test_banned_user_restricted(self, dispatcher, transport, session_factory) -> None:
        await register(session_factory, 1, banned=True)

        await dispatcher.handle_message(make_message(1, "/confess", command="confess"))

        assert sent_texts(transport, 1) == [messages.RESTRICTED]


class TestCommands:
    """Tests for /start deep links and command routing."""

    @pytest.mark.asyncio
    async def test_start_shows_welcome(self, dispatcher, transport, session_factory) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, "/start", command="start"))

        assert last_text(transport, 1) == messages.WELCOME

    @pytest.mark.asyncio
    async def test_start_comment_link_opens_comment_flow(
        self, dispatcher, sessions, session_factory
    ) -> None:
        await register(session_factory, 1)
        async with session_factory() as session:
            session.add(Confession(id=7, user_id=2, text="a confession to comment on"))

        await dispatcher.handle_message(
            make_message(1, "/start comment7", command="start", command_args="comment7")
        )

        session = await sessions.get(1)
        assert session.step == Step.COMMENT_TEXT
        assert session.draft.confession_id == 7

    @pytest.mark.asyncio
    async def test_start_view_link_lists_comments(
        self, dispatcher, transport, session_factory
    ) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(
            make_message(1, "/start view3", command="start", command_args="view3")
        )

        assert last_text(transport, 1) == messages.no_comments(3)

    @pytest.mark.asyncio
    async def test_start_comment_link_to_missing_confession(
        self, dispatcher, transport, sessions, session_factory
    ) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(
            make_message(1, "/start comment99", command="start", command_args="comment99")
        )

        assert last_text(transport, 1) == messages.CONFESSION_NOT_FOUND
        assert (await sessions.get(1)).is_idle

    @pytest.mark.asyncio
    async def test_second_admin_contact_is_rate_limited(
        self, dispatcher, transport, sessions, session_factory
    ) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, "/contact_admin", command="contact_admin"))
        await dispatcher.handle_message(make_message(1, "please unban my friend"))
        await dispatcher.handle_message(make_message(1, "/contact_admin", command="contact_admin"))

        assert last_text(transport, 1) == messages.RATE_LIMITED
        assert (await sessions.get(1)).is_idle

    @pytest.mark.asyncio
    async def test_unknown_command(self, dispatcher, transport, session_factory) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, "/dance", command="dance"))

        assert last_text(transport, 1) == messages.UNKNOWN_COMMAND

    @pytest.mark.asyncio
    async def test_private_only_command_in_group(
        self, dispatcher, transport, session_factory
    ) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(
            make_message(1, "/blind", chat_id=-500, chat_type="group", command="blind")
        )

        assert sent_texts(transport, -500) == [messages.PRIVATE_ONLY["blind"]]

    @pytest.mark.asyncio
    async def test_group_free_text_ignored(self, dispatcher, transport, session_factory) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(
            make_message(1, "hello group", chat_id=-500, chat_type="group")
        )

        transport.send_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_stats(self, dispatcher, transport, session_factory) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, "/status", command="status"))

        assert "USER STATISTICS" in last_text(transport, 1)


class TestConfessions:
    """Tests for confession submission through the dispatcher."""

    @pytest.mark.asyncio
    async def test_text_confession_reaches_moderators(
        self, dispatcher, transport, session_factory
    ) -> None:
        await register(session_factory, 1)
        body = "I secretly love the campus cafeteria food"

        await dispatcher.handle_message(make_message(1, action=ActionTag.TEXT_CONFESSION))
        await dispatcher.handle_message(make_message(1, body))

        review = last_text(transport, ADMIN_CHAT_ID)
        assert "NEW TEXT CONFESSION" in review
        assert body in review
        assert last_text(transport, 1) == messages.confession_received(ConfessionType.text)

    @pytest.mark.asyncio
    async def test_short_confession_rejected_and_flow_kept(
        self, dispatcher, transport, sessions, session_factory
    ) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, action=ActionTag.TEXT_CONFESSION))
        await dispatcher.handle_message(make_message(1, "too short"))

        assert "Too Short" in last_text(transport, 1)
        assert (await sessions.get(1)).step == Step.CONFESSION_AWAITING_CONTENT
        assert sent_texts(transport, ADMIN_CHAT_ID) == []

    @pytest.mark.asyncio
    async def test_cancel_leaves_flow(self, dispatcher, transport, sessions, session_factory) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, action=ActionTag.TEXT_CONFESSION))
        await dispatcher.handle_message(make_message(1, action=ActionTag.CANCEL))

        assert last_text(transport, 1) == cancelled_text(Step.CONFESSION_AWAITING_CONTENT)
        assert (await sessions.get(1)).is_idle

    @pytest.mark.asyncio
    async def test_voice_confession_posts_anonymized_clip(
        self, dispatcher, transport, voice, tasks, session_factory
    ) -> None:
        await register(session_factory, 1, Gender.female)
        voice.anonymize.return_value = AnonymizedVoice("anon-1", 1.07, "rubberband")

        await dispatcher.handle_message(make_message(1, action=ActionTag.VOICE_CONFESSION))
        await dispatcher.handle_message(
            make_message(1, voice=VoiceAttachment(file_ref="original", duration=12))
        )
        await tasks.drain()

        voice.anonymize.assert_awaited_once_with("original", Gender.female)
        sent_refs = [c.args[1] for c in transport.send_voice.call_args_list]
        assert sent_refs == ["anon-1"]
        assert transport.send_voice.call_args.args[0] == ADMIN_CHAT_ID
        assert last_text(transport, 1) == messages.confession_received(ConfessionType.voice)

    @pytest.mark.asyncio
    async def test_voice_failure_never_posts_original(
        self, dispatcher, transport, voice, tasks, session_factory
    ) -> None:
        await register(session_factory, 1)
        voice.anonymize.side_effect = VoiceAnonymizationError("pitch_shift", "boom")

        await dispatcher.handle_message(make_message(1, action=ActionTag.VOICE_CONFESSION))
        await dispatcher.handle_message(
            make_message(1, voice=VoiceAttachment(file_ref="original", duration=12))
        )
        await tasks.drain()

        transport.send_voice.assert_not_called()
        assert last_text(transport, 1) == messages.VOICE_FAILED

    @pytest.mark.asyncio
    async def test_unexpected_voice_error_releases_session(
        self, dispatcher, transport, sessions, voice, tasks, session_factory
    ) -> None:
        """A crash outside the voice taxonomy must not leave the user stuck processing."""
        await register(session_factory, 1)
        voice.anonymize.side_effect = FileNotFoundError("/tmp/mirror-voice-x/source.oga")

        await dispatcher.handle_message(make_message(1, action=ActionTag.VOICE_CONFESSION))
        await dispatcher.handle_message(
            make_message(1, voice=VoiceAttachment(file_ref="original", duration=12))
        )
        await tasks.drain()

        assert (await sessions.get(1)).is_idle
        assert last_text(transport, 1) == messages.VOICE_FAILED

        await dispatcher.handle_message(make_message(1, "hello?"))
        assert messages.STILL_PROCESSING not in sent_texts(transport, 1)

    @pytest.mark.asyncio
    async def test_cancelled_voice_job_is_discarded(
        self, dispatcher, transport, voice, tasks, session_factory
    ) -> None:
        await register(session_factory, 1)
        release = asyncio.Event()

        async def slow_anonymize(*args):
            await release.wait()
            return AnonymizedVoice("anon-1", 0.97, "rubberband")

        voice.anonymize.side_effect = slow_anonymize

        await dispatcher.handle_message(make_message(1, action=ActionTag.VOICE_CONFESSION))
        await dispatcher.handle_message(
            make_message(1, voice=VoiceAttachment(file_ref="original", duration=12))
        )
        await dispatcher.handle_message(make_message(1, action=ActionTag.CANCEL))
        release.set()
        await tasks.drain()

        transport.send_voice.assert_not_called()
        assert last_text(transport, 1) == cancelled_text(Step.CONFESSION_PROCESSING)


class TestRelay:
    """Tests for free messages between paired users."""

    async def _pair(self, matchmaker, session_factory) -> None:
        await register(session_factory, 1, Gender.male)
        await register(session_factory, 2, Gender.female)
        await matchmaker.request_match(1, make_profile(1, Gender.male), "user1")
        await matchmaker.request_match(2, make_profile(2, Gender.female), "user2")

    @pytest.mark.asyncio
    async def test_text_relayed_to_partner(
        self, dispatcher, transport, matchmaker, session_factory
    ) -> None:
        await self._pair(matchmaker, session_factory)

        await dispatcher.handle_message(make_message(1, "hey there"))

        assert sent_texts(transport, 2) == [messages.relay_text("user1", "hey there")]

    @pytest.mark.asyncio
    async def test_button_text_not_relayed(
        self, dispatcher, transport, matchmaker, session_factory
    ) -> None:
        await self._pair(matchmaker, session_factory)

        await dispatcher.handle_message(make_message(1, action=ActionTag.SEND_HEART))

        assert sent_texts(transport, 2) == [messages.heart_received("user1")]
        assert last_text(transport, 1) == messages.HEART_SENT

    @pytest.mark.asyncio
    async def test_unpaired_text_dropped(self, dispatcher, transport, session_factory) -> None:
        await register(session_factory, 1)

        await dispatcher.handle_message(make_message(1, "anyone there?"))

        transport.send_text.assert_not_called()


class TestCallbacks:
    """Tests for inline button routing."""

    @pytest.mark.asyncio
    async def test_unknown_callback(self, dispatcher, transport) -> None:
        await dispatcher.handle_callback(make_callback("dance:1"))

        assert answers(transport) == [messages.ANSWER_UNKNOWN]

    @pytest.mark.asyncio
    async def test_dispatch_routes_by_event_type(self, dispatcher, transport) -> None:
        await dispatcher.dispatch(make_callback("approve:1", chat_id=12345))

        assert answers(transport) == [messages.ANSWER_NOT_ALLOWED]

    @pytest.mark.asyncio
    async def test_review_of_missing_confession_answers_error(
        self, dispatcher, transport
    ) -> None:
        await dispatcher.handle_callback(make_callback("approve:99:text"))

        assert answers(transport) == [messages.ANSWER_ERROR]

    @pytest.mark.asyncio
    async def test_unsupported_reaction_answers_error(self, dispatcher, transport) -> None:
        await dispatcher.handle_callback(make_callback("react:1:👍", user_id=5))

        assert answers(transport) == [messages.ANSWER_ERROR]
        transport.edit_keyboard.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_report_reason_answers_error(self, dispatcher, transport) -> None:
        await dispatcher.handle_callback(make_callback("report_reason:Rude:2", user_id=5))

        assert answers(transport) == [messages.ANSWER_ERROR]
