"""Chat transport protocol and data types.

Inbound updates are normalized into InboundMessage / CallbackAction with
the button action tag already resolved. Outbound calls go through the
Transport protocol so handlers never see the wire format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Union

from mirrorbot.core.actions import ActionTag


class TransportError(RuntimeError):
    """Raised when a chat platform call fails."""

    def __init__(self, method: str, reason: str, *, status: int | None = None) -> None:
        super().__init__(f"{method} failed: {reason}")
        self.method = method
        self.reason = reason
        self.status = status


# =============================================================================
# Keyboards
# =============================================================================


@dataclass(frozen=True, slots=True)
class ReplyKeyboard:
    """Persistent keyboard of text buttons under the input field."""

    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True, slots=True)
class InlineButton:
    text: str
    callback_data: str | None = None
    url: str | None = None


@dataclass(frozen=True, slots=True)
class InlineKeyboard:
    """Buttons attached to a single message."""

    rows: tuple[tuple[InlineButton, ...], ...] = ()


Keyboard = Union[ReplyKeyboard, InlineKeyboard]


# =============================================================================
# Inbound events
# =============================================================================


@dataclass(frozen=True, slots=True)
class ChatUser:
    id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.username or self.first_name or "Anonymous"


@dataclass(frozen=True, slots=True)
class VoiceAttachment:
    file_ref: str
    duration: int = 0


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """A user message with its button action and command already parsed."""

    message_id: int
    chat_id: int
    user: ChatUser
    chat_type: str = "private"
    text: str = ""
    action: ActionTag | None = None
    command: str | None = None
    command_args: str = ""
    voice: VoiceAttachment | None = None
    photo_ref: str | None = None
    document_ref: str | None = None
    sticker_ref: str | None = None
    caption: str | None = None

    @property
    def is_private(self) -> bool:
        return self.chat_type == "private"

    @property
    def is_command(self) -> bool:
        return self.command is not None


@dataclass(frozen=True, slots=True)
class CallbackAction:
    """An inline button press. Data is split into kind and arguments."""

    callback_id: str
    user: ChatUser
    chat_id: int
    message_id: int
    data: str
    kind: str = ""
    args: tuple[str, ...] = field(default_factory=tuple)


InboundEvent = Union[InboundMessage, CallbackAction]


class Transport(Protocol):
    """Protocol for chat platform implementations."""

    async def send_text(
        self, chat_id: int, text: str, *, keyboard: Keyboard | None = None
    ) -> int:
        """Send a message. Returns the new message ID."""
        ...

    async def send_voice(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int:
        ...

    async def send_photo(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int:
        ...

    async def send_document(
        self,
        chat_id: int,
        file_ref: str,
        *,
        caption: str | None = None,
        keyboard: Keyboard | None = None,
    ) -> int:
        ...

    async def send_sticker(
        self, chat_id: int, file_ref: str, *, keyboard: Keyboard | None = None
    ) -> int:
        ...

    async def upload_voice(self, chat_id: int, data: bytes, *, filename: str) -> str:
        """Upload OGG/Opus bytes as a voice message. Returns its stable file reference."""
        ...

    async def edit_text(
        self, chat_id: int, message_id: int, text: str, *, keyboard: InlineKeyboard | None = None
    ) -> None:
        ...

    async def edit_caption(
        self,
        chat_id: int,
        message_id: int,
        caption: str,
        *,
        keyboard: InlineKeyboard | None = None,
    ) -> None:
        ...

    async def edit_keyboard(
        self, chat_id: int, message_id: int, keyboard: InlineKeyboard
    ) -> None:
        ...

    async def answer_callback(self, callback_id: str, text: str = "") -> None:
        ...

    async def download_file(self, file_ref: str) -> bytes:
        ...
