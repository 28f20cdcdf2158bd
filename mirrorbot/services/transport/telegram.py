"""Telegram Bot API client and update parsing using aiohttp."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import aiohttp

from mirrorbot.services.transport.keyboards import resolve_action
from mirrorbot.services.transport.protocol import (
    CallbackAction,
    ChatUser,
    InboundEvent,
    InboundMessage,
    InlineKeyboard,
    Keyboard,
    ReplyKeyboard,
    TransportError,
    VoiceAttachment,
)

ALLOWED_UPDATES = ["message", "callback_query"]


def keyboard_markup(keyboard: Keyboard) -> dict[str, Any]:
    """Serialize a keyboard into Bot API reply_markup."""
    if isinstance(keyboard, ReplyKeyboard):
        return {
            "keyboard": [[{"text": label} for label in row] for row in keyboard.rows],
            "resize_keyboard": True,
            "one_time_keyboard": False,
        }

    rows = []
    for row in keyboard.rows:
        buttons = []
        for button in row:
            item: dict[str, Any] = {"text": button.text}
            if button.url:
                item["url"] = button.url
            else:
                item["callback_data"] = button.callback_data or ""
            buttons.append(item)
        rows.append(buttons)
    return {"inline_keyboard": rows}


def _parse_user(raw: dict[str, Any]) -> ChatUser:
    return ChatUser(
        id=int(raw["id"]),
        username=raw.get("username") or None,
        first_name=raw.get("first_name") or None,
        last_name=raw.get("last_name") or None,
    )


def _split_command(text: str) -> tuple[str | None, str]:
    """Split '/start@MirrorBot view12' into ('start', 'view12')."""
    if not text.startswith("/"):
        return None, ""
    head, _, rest = text.partition(" ")
    command = head[1:].split("@", 1)[0].lower()
    if not command:
        return None, ""
    return command, rest.strip()


def parse_update(update: dict[str, Any]) -> InboundEvent | None:
    """Normalize a raw Bot API update.

    Returns:
        InboundMessage or CallbackAction, or None for updates the bot ignores
    """
    if "callback_query" in update:
        query = update["callback_query"]
        user = _parse_user(query["from"])
        data = query.get("data") or ""
        kind, *args = data.split(":")
        message = query.get("message") or {}
        return CallbackAction(
            callback_id=str(query["id"]),
            user=user,
            chat_id=int(message.get("chat", {}).get("id", user.id)),
            message_id=int(message.get("message_id", 0)),
            data=data,
            kind=kind,
            args=tuple(args),
        )

    message = update.get("message")
    if not message or "from" not in message:
        return None

    text = message.get("text") or ""
    command, command_args = _split_command(text)
    voice = message.get("voice")
    photos = message.get("photo") or []

    return InboundMessage(
        message_id=int(message["message_id"]),
        chat_id=int(message["chat"]["id"]),
        chat_type=message["chat"].get("type", "private"),
        user=_parse_user(message["from"]),
        text=text,
        action=None if command else resolve_action(text),
        command=command,
        command_args=command_args,
        voice=(
            VoiceAttachment(file_ref=voice["file_id"], duration=int(voice.get("duration", 0)))
            if voice
            else None
        ),
        photo_ref=photos[-1]["file_id"] if photos else None,
        document_ref=(message.get("document") or {}).get("file_id"),
        sticker_ref=(message.get("sticker") or {}).get("file_id"),
        caption=message.get("caption"),
    )


@dataclass(slots=True)
class TelegramTransport:
    """Send and receive through the Telegram Bot API."""

    token: str
    base_url: str = "https://api.telegram.org"
    timeout_seconds: int = 40  # Must exceed the long-poll timeout
    parse_mode: str | None = "Markdown"

    _session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> TelegramTransport:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def _call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        *,
        form: aiohttp.FormData | None = None,
    ) -> Any:
        if not self._session:
            raise TransportError(method, "Client session not initialized")

        url = f"{self.base_url}/bot{self.token}/{method}"
        try:
            if form is not None:
                request = self._session.post(url, data=form)
            else:
                request = self._session.post(url, json=payload or {})
            async with request as resp:
                status = resp.status
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            # Never include the URL: it carries the bot token
            raise TransportError(method, type(e).__name__) from e

        if status >= 400 or not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description", "unknown error") if isinstance(body, dict) else ""
            raise TransportError(method, description, status=status)
        return body["result"]

    async def _send(
        self,
        method: str,
        payload: dict[str, Any],
        keyboard: Keyboard | None,
    ) -> int:
        if self.parse_mode:
            payload.setdefault("parse_mode", self.parse_mode)
        if keyboard is not None:
            payload["reply_markup"] = keyboard_markup(keyboard)
        result = await self._call(method, payload)
        return int(result.get("message_id", 0)) if isinstance(result, dict) else 0

    async def send_text(
        self, chat_id: int, text: str, *, keyboard: Keyboard | None = None
    ) -> int:
        return await self._send(
            "sendMessage",
            {"chat_id": chat_id, "text": text, "disable_web_page_preview": True},
            keyboard,
        )

    async def send_voice(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "voice": file_ref}
        if caption:
            payload["caption"] = caption
        return await self._send("sendVoice", payload, keyboard)

    async def send_photo(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "photo": file_ref}
        if caption:
            payload["caption"] = caption
        return await self._send("sendPhoto", payload, keyboard)

    async def send_document(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "document": file_ref}
        if caption:
            payload["caption"] = caption
        return await self._send("sendDocument", payload, keyboard)

    async def send_sticker(
        self, chat_id: int, file_ref: str, *, keyboard: Keyboard | None = None
    ) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "sticker": file_ref}
        if keyboard is not None:
            payload["reply_markup"] = keyboard_markup(keyboard)
        result = await self._call("sendSticker", payload)
        return int(result.get("message_id", 0)) if isinstance(result, dict) else 0

    async def upload_voice(self, chat_id: int, data: bytes, *, filename: str) -> str:
        form = aiohttp.FormData()
        form.add_field("chat_id", str(chat_id))
        form.add_field("voice", data, filename=filename, content_type="audio/ogg")
        result = await self._call("sendVoice", form=form)
        voice = result.get("voice") if isinstance(result, dict) else None
        if not voice or "file_id" not in voice:
            raise TransportError("sendVoice", "no voice in response")
        return voice["file_id"]

    async def edit_text(
        self, chat_id: int, message_id: int, text: str, *, keyboard: InlineKeyboard | None = None
    ) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
        await self._send("editMessageText", payload, keyboard)

    async def edit_caption(
        self,
        chat_id: int,
        message_id: int,
        caption: str,
        *,
        keyboard: InlineKeyboard | None = None,
    ) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "caption": caption}
        await self._send("editMessageCaption", payload, keyboard)

    async def edit_keyboard(
        self, chat_id: int, message_id: int, keyboard: InlineKeyboard
    ) -> None:
        await self._call(
            "editMessageReplyMarkup",
            {
                "chat_id": chat_id,
                "message_id": message_id,
                "reply_markup": keyboard_markup(keyboard),
            },
        )

    async def answer_callback(self, callback_id: str, text: str = "") -> None:
        await self._call("answerCallbackQuery", {"callback_query_id": callback_id, "text": text})

    async def download_file(self, file_ref: str) -> bytes:
        info = await self._call("getFile", {"file_id": file_ref})
        file_path = info.get("file_path") if isinstance(info, dict) else None
        if not file_path:
            raise TransportError("getFile", "no file_path in response")
        if not self._session:
            raise TransportError("downloadFile", "Client session not initialized")

        url = f"{self.base_url}/file/bot{self.token}/{file_path}"
        try:
            async with self._session.get(url) as resp:
                if resp.status >= 400:
                    raise TransportError("downloadFile", f"HTTP {resp.status}", status=resp.status)
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError("downloadFile", type(e).__name__) from e

    # -------------------------------------------------------------------------
    # Update delivery
    # -------------------------------------------------------------------------

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ALLOWED_UPDATES}
        if offset is not None:
            payload["offset"] = offset
        result = await self._call("getUpdates", payload)
        return list(result or [])

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        payload: dict[str, Any] = {"url": url, "allowed_updates": ALLOWED_UPDATES}
        if secret_token:
            payload["secret_token"] = secret_token
        await self._call("setWebhook", payload)

    async def delete_webhook(self) -> None:
        await self._call("deleteWebhook", {})

    async def get_me(self) -> dict[str, Any]:
        return await self._call("getMe")
