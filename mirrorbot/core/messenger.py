"""Fire-and-forget outbound messaging.

Sends never raise: a failed delivery is logged and dropped. Callers that
need the outcome (publishing to the channel) use the transport directly.
"""

from __future__ import annotations

from typing import Any

from mirrorbot.logging_config import get_logger, mask_user_id
from mirrorbot.services.transport.protocol import (
    InlineKeyboard,
    Keyboard,
    Transport,
    TransportError,
)

logger: Any = get_logger(__name__)


class Messenger:
    """Wraps a Transport so delivery failures never reach handlers."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def _failed(self, error: TransportError, chat_id: int | None = None) -> None:
        target = f" to {mask_user_id(chat_id)}" if chat_id is not None else ""
        logger.warning(f"Delivery failed{target}: {error}")

    async def send_text(
        self, chat_id: int, text: str, keyboard: Keyboard | None = None
    ) -> int | None:
        try:
            return await self.transport.send_text(chat_id, text, keyboard=keyboard)
        except TransportError as e:
            self._failed(e, chat_id)
            return None

    async def send_voice(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int | None:
        try:
            return await self.transport.send_voice(
                chat_id, file_ref, caption=caption, keyboard=keyboard
            )
        except TransportError as e:
            self._failed(e, chat_id)
            return None

    async def send_photo(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int | None:
        try:
            return await self.transport.send_photo(
                chat_id, file_ref, caption=caption, keyboard=keyboard
            )
        except TransportError as e:
            self._failed(e, chat_id)
            return None

    async def send_document(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int | None:
        try:
            return await self.transport.send_document(
                chat_id, file_ref, caption=caption, keyboard=keyboard
            )
        except TransportError as e:
            self._failed(e, chat_id)
            return None

    async def send_sticker(
        self, chat_id: int, file_ref: str, keyboard: Keyboard | None = None
    ) -> int | None:
        try:
            return await self.transport.send_sticker(chat_id, file_ref, keyboard=keyboard)
        except TransportError as e:
            self._failed(e, chat_id)
            return None

    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        keyboard: InlineKeyboard | None = None,
    ) -> None:
        try:
            await self.transport.edit_text(chat_id, message_id, text, keyboard=keyboard)
        except TransportError as e:
            self._failed(e, chat_id)

    async def edit_caption(
        self,
        chat_id: int,
        message_id: int,
        caption: str,
        keyboard: InlineKeyboard | None = None,
    ) -> None:
        try:
            await self.transport.edit_caption(chat_id, message_id, caption, keyboard=keyboard)
        except TransportError as e:
            self._failed(e, chat_id)

    async def edit_keyboard(self, chat_id: int, message_id: int, keyboard: InlineKeyboard) -> None:
        try:
            await self.transport.edit_keyboard(chat_id, message_id, keyboard)
        except TransportError as e:
            # "message is not modified" lands here when counts did not change
            logger.debug(f"Keyboard edit skipped: {e}")

    async def answer(self, callback_id: str, text: str = "") -> None:
        try:
            await self.transport.answer_callback(callback_id, text)
        except TransportError as e:
            self._failed(e)
