"""Tests for BotApplication wiring, update intake and lifecycle."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from conftest import build_settings, sent_texts

from mirrorbot.content import messages
from mirrorbot.core.application import BotApplication

UPDATE = {
    "update_id": 41,
    "message": {
        "message_id": 1,
        "chat": {"id": 5, "type": "private"},
        "from": {"id": 5, "username": "five"},
        "text": "hello",
    },
}


def polling_transport(updates: list[dict]) -> AsyncMock:
    """Transport whose first getUpdates returns updates, later calls block."""
    transport = AsyncMock()
    transport.offsets = []

    async def get_updates(offset=None, timeout=30):
        transport.offsets.append(offset)
        if len(transport.offsets) == 1:
            return updates
        await asyncio.Event().wait()

    transport.get_updates.side_effect = get_updates
    return transport


async def wait_for(condition, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        assert asyncio.get_running_loop().time() < deadline, "condition not met in time"
        await asyncio.sleep(0.01)


class TestFeedUpdate:
    """Tests for BotApplication.feed_update."""

    @pytest.mark.asyncio
    async def test_message_is_queued(self, session_factory) -> None:
        app = BotApplication(
            build_settings(), transport=AsyncMock(), session_factory=session_factory
        )

        assert await app.feed_update(UPDATE) is True
        assert app.engine.pending == 1

    @pytest.mark.asyncio
    async def test_ignored_update_not_queued(self, session_factory) -> None:
        app = BotApplication(
            build_settings(), transport=AsyncMock(), session_factory=session_factory
        )

        assert await app.feed_update({"update_id": 42, "edited_message": {}}) is False
        assert app.engine.pending == 0

    @pytest.mark.asyncio
    async def test_malformed_update_dropped(self, session_factory) -> None:
        app = BotApplication(
            build_settings(), transport=AsyncMock(), session_factory=session_factory
        )

        queued = await app.feed_update({"update_id": 43, "message": {"from": {"id": 5}}})

        assert queued is False
        assert app.engine.pending == 0


class TestLifecycle:
    """Tests for start/stop in both update modes."""

    @pytest.mark.asyncio
    async def test_polling_handles_updates_and_advances_offset(self, session_factory) -> None:
        transport = polling_transport([UPDATE])
        app = BotApplication(build_settings(), transport=transport, session_factory=session_factory)

        await app.start()
        try:
            assert app.running
            transport.delete_webhook.assert_awaited_once()
            await wait_for(lambda: len(transport.offsets) >= 2)
            await app.engine.join()

            assert transport.offsets[:2] == [None, 42]
            assert sent_texts(transport, 5) == [messages.GENDER_SELECTION]
        finally:
            await app.stop()

        assert not app.running
        transport.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_webhook_mode_registers_secret(self, session_factory) -> None:
        transport = AsyncMock()
        settings = build_settings(
            update_mode="webhook",
            webhook_url="https://bot.example.com/telegram/webhook",
            webhook_secret="s3cret",
        )
        app = BotApplication(settings, transport=transport, session_factory=session_factory)

        await app.start()
        try:
            transport.set_webhook.assert_awaited_once_with(
                "https://bot.example.com/telegram/webhook", "s3cret"
            )
            transport.get_updates.assert_not_awaited()
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_bot_username_resolved_when_unset(self, session_factory) -> None:
        transport = polling_transport([])
        transport.get_me.return_value = {"username": "ResolvedBot"}
        app = BotApplication(
            build_settings(telegram_bot_username=None),
            transport=transport,
            session_factory=session_factory,
        )

        await app.start()
        try:
            assert app.bot_username == "ResolvedBot"
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_polling_survives_malformed_update(self, session_factory) -> None:
        """A broken update is skipped and the next one is still handled."""
        broken = {"update_id": 40, "message": {"from": {"id": 5}, "text": "hi"}}
        transport = polling_transport([broken, UPDATE])
        app = BotApplication(build_settings(), transport=transport, session_factory=session_factory)

        await app.start()
        try:
            await wait_for(lambda: len(transport.offsets) >= 2)
            await app.engine.join()

            assert transport.offsets[:2] == [None, 42]
            assert sent_texts(transport, 5) == [messages.GENDER_SELECTION]
        finally:
            await app.stop()
