"""Tests for update parsing, button resolution and keyboard serialization."""

import pytest

from mirrorbot.core.actions import ActionTag
from mirrorbot.db.models import ConfessionType
from mirrorbot.services.transport import keyboards
from mirrorbot.services.transport.protocol import CallbackAction, InboundMessage, TransportError
from mirrorbot.services.transport.telegram import TelegramTransport, keyboard_markup, parse_update


def message_update(**fields) -> dict:
    message = {
        "message_id": 11,
        "chat": {"id": 5, "type": "private"},
        "from": {"id": 5, "username": "five", "first_name": "Five"},
    }
    message.update(fields)
    return {"update_id": 100, "message": message}


class TestParseUpdate:
    """Tests for parse_update."""

    def test_plain_text(self) -> None:
        event = parse_update(message_update(text="hello"))

        assert isinstance(event, InboundMessage)
        assert event.text == "hello"
        assert event.action is None
        assert event.command is None
        assert event.user.username == "five"
        assert event.is_private

    def test_button_label_resolved_to_action(self) -> None:
        event = parse_update(message_update(text="💔 End Chat"))

        assert event.action is ActionTag.END_CHAT

    def test_command_with_bot_suffix_and_args(self) -> None:
        event = parse_update(message_update(text="/start@MirrorBot comment12"))

        assert event.command == "start"
        assert event.command_args == "comment12"
        assert event.action is None

    def test_voice_and_photo(self) -> None:
        voice = parse_update(message_update(voice={"file_id": "v1", "duration": 14}))
        photo = parse_update(
            message_update(
                photo=[{"file_id": "small"}, {"file_id": "large"}], caption="look"
            )
        )

        assert voice.voice.file_ref == "v1"
        assert voice.voice.duration == 14
        assert photo.photo_ref == "large"
        assert photo.caption == "look"

    def test_group_chat(self) -> None:
        event = parse_update(message_update(chat={"id": -300, "type": "supergroup"}, text="/help"))

        assert event.chat_id == -300
        assert not event.is_private

    def test_callback_query(self) -> None:
        event = parse_update(
            {
                "update_id": 101,
                "callback_query": {
                    "id": "cb-1",
                    "from": {"id": 9},
                    "data": "report_reason:Harassment:42",
                    "message": {"message_id": 77, "chat": {"id": 9}},
                },
            }
        )

        assert isinstance(event, CallbackAction)
        assert event.kind == "report_reason"
        assert event.args == ("Harassment", "42")
        assert (event.chat_id, event.message_id) == (9, 77)

    @pytest.mark.parametrize(
        "update",
        [
            {"update_id": 1},
            {"update_id": 2, "edited_message": {"text": "x"}},
            {"update_id": 3, "message": {"message_id": 1, "chat": {"id": -1}}},
        ],
    )
    def test_ignored_updates(self, update: dict) -> None:
        assert parse_update(update) is None


class TestKeyboards:
    """Tests for keyboard layouts and serialization."""

    def test_every_label_resolves_back(self) -> None:
        for tag, label in keyboards.BUTTON_LABELS.items():
            assert keyboards.resolve_action(label) is tag

    def test_free_text_is_not_an_action(self) -> None:
        assert keyboards.resolve_action("End Chat") is None
        assert keyboards.resolve_action(None) is None

    def test_reply_keyboard_markup(self) -> None:
        markup = keyboard_markup(keyboards.CANCEL)

        assert markup["keyboard"] == [[{"text": "❌ Cancel"}]]
        assert markup["resize_keyboard"] is True

    def test_voice_review_keyboard_has_listen(self) -> None:
        markup = keyboard_markup(keyboards.review_keyboard(8, ConfessionType.voice))

        data = [b.get("callback_data") for row in markup["inline_keyboard"] for b in row]
        assert data == ["approve:8:voice", "reject:8", "listen:8", "ban:8"]

    def test_channel_controls_deep_links(self) -> None:
        controls = keyboards.channel_controls(
            3, bot_username="MirrorBot", reaction_counts={"🌙": 2}, comment_count=4
        )
        markup = keyboard_markup(controls)

        rows = markup["inline_keyboard"]
        assert [len(row) for row in rows] == [3, 2, 1, 1]
        assert rows[1][1]["text"] == "🌙 2"
        assert rows[2][0] == {
            "text": "💬 Comment (4)",
            "url": "https://t.me/MirrorBot?start=comment3",
        }
        assert rows[3][0]["url"] == "https://t.me/MirrorBot?start=view3"

    def test_report_reasons_two_per_row(self) -> None:
        markup = keyboard_markup(keyboards.report_reasons_keyboard(42))

        rows = markup["inline_keyboard"]
        assert len(rows) == 3
        assert rows[0][0]["callback_data"] == "report_reason:Harassment:42"


class TestTelegramTransport:
    """Tests for TelegramTransport without network access."""

    @pytest.mark.asyncio
    async def test_call_before_open_fails(self) -> None:
        transport = TelegramTransport(token="123:abc")

        with pytest.raises(TransportError) as exc_info:
            await transport.send_text(1, "hi")

        assert exc_info.value.method == "sendMessage"
        assert "123:abc" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_open_and_close(self) -> None:
        async with TelegramTransport(token="123:abc") as transport:
            assert transport._session is not None

        assert transport._session is None
