"""Tests for the Telegram webhook endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

UPDATE = {
    "update_id": 10,
    "message": {
        "message_id": 1,
        "chat": {"id": 5, "type": "private"},
        "from": {"id": 5, "username": "five"},
        "text": "hello",
    },
}

SECRET_HEADER = {"X-Telegram-Bot-Api-Secret-Token": "hook-secret"}


class FakeBot:
    def __init__(self, running: bool = True) -> None:
        self.running = running
        self.feed_update = AsyncMock(return_value=True)


@pytest.fixture
def bot(test_client) -> FakeBot:
    fake = FakeBot()
    test_client.app.state.bot = fake
    return fake


class TestTelegramWebhook:
    """Tests for POST /telegram/webhook."""

    def test_update_is_queued(self, test_client, bot) -> None:
        response = test_client.post("/telegram/webhook", json=UPDATE, headers=SECRET_HEADER)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        bot.feed_update.assert_awaited_once_with(UPDATE)

    def test_ignored_update_still_acknowledged(self, test_client, bot) -> None:
        bot.feed_update.return_value = False

        response = test_client.post(
            "/telegram/webhook", json={"update_id": 11}, headers=SECRET_HEADER
        )

        assert response.status_code == 200

    def test_wrong_secret_rejected(self, test_client, bot) -> None:
        response = test_client.post(
            "/telegram/webhook",
            json=UPDATE,
            headers={"X-Telegram-Bot-Api-Secret-Token": "guess"},
        )

        assert response.status_code == 403
        bot.feed_update.assert_not_awaited()

    def test_missing_secret_rejected(self, test_client, bot) -> None:
        response = test_client.post("/telegram/webhook", json=UPDATE)

        assert response.status_code == 403

    def test_bot_disabled(self, test_client) -> None:
        response = test_client.post("/telegram/webhook", json=UPDATE, headers=SECRET_HEADER)

        assert response.status_code == 503

    def test_bot_stopped(self, test_client) -> None:
        test_client.app.state.bot = FakeBot(running=False)

        response = test_client.post("/telegram/webhook", json=UPDATE, headers=SECRET_HEADER)

        assert response.status_code == 503

    def test_non_object_body(self, test_client, bot) -> None:
        response = test_client.post("/telegram/webhook", json=[1, 2], headers=SECRET_HEADER)

        assert response.status_code == 400

    def test_body_that_is_not_json(self, test_client, bot) -> None:
        response = test_client.post(
            "/telegram/webhook",
            content=b'{"update_id": 12, "message": ',
            headers={**SECRET_HEADER, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        bot.feed_update.assert_not_awaited()
