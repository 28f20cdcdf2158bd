"""Chat transport (Telegram Bot API).

Provides:
- Transport: Protocol every chat platform client implements
- TelegramTransport: aiohttp Bot API client
- parse_update: Raw update -> InboundMessage / CallbackAction
"""

from mirrorbot.services.transport.protocol import (
    CallbackAction,
    ChatUser,
    InboundEvent,
    InboundMessage,
    InlineButton,
    InlineKeyboard,
    Keyboard,
    ReplyKeyboard,
    Transport,
    TransportError,
    VoiceAttachment,
)
from mirrorbot.services.transport.telegram import TelegramTransport, parse_update

__all__ = [
    # Clients
    "TelegramTransport",
    "parse_update",
    # Protocol
    "Transport",
    "TransportError",
    # Data types
    "ChatUser",
    "InboundMessage",
    "CallbackAction",
    "InboundEvent",
    "VoiceAttachment",
    "ReplyKeyboard",
    "InlineKeyboard",
    "InlineButton",
    "Keyboard",
]
