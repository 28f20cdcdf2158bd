"""Bot application: wires the components and owns their lifecycle.

Startup:
- Open the Telegram client and resolve the bot username
- Start the event consumer and the cleanup sweep
- Begin long polling, or register the webhook

Shutdown runs the same steps in reverse and drains in-flight voice jobs.
"""

from __future__ import annotations

import asyncio
from typing import Any

from mirrorbot.config import Settings, get_settings
from mirrorbot.core.blind_chat import BlindChatService
from mirrorbot.core.cleanup import CleanupScheduler
from mirrorbot.core.dispatcher import Dispatcher
from mirrorbot.core.engine import EventEngine
from mirrorbot.core.matchmaker import Matchmaker
from mirrorbot.core.messenger import Messenger
from mirrorbot.core.moderation import ModerationDesk
from mirrorbot.core.session import SessionStore
from mirrorbot.core.storage import SessionFactory
from mirrorbot.core.tasks import BackgroundTasks
from mirrorbot.db.session import session_scope
from mirrorbot.logging_config import get_logger
from mirrorbot.services.transport import TelegramTransport, TransportError, parse_update
from mirrorbot.services.voice import VoiceAnonymizer

logger: Any = get_logger(__name__)

POLL_TIMEOUT_SECONDS = 30
POLL_RETRY_SECONDS = 5.0


class BotApplication:
    """The running bot: one instance per process."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: TelegramTransport | None = None,
        session_factory: SessionFactory = session_scope,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport or TelegramTransport(
            token=self.settings.telegram_bot_token.get_secret_value(),
            base_url=self.settings.telegram_api_url,
        )
        self.messenger = Messenger(self.transport)
        self.sessions = SessionStore()
        self.matchmaker = Matchmaker()
        self.tasks = BackgroundTasks()
        self.voice = VoiceAnonymizer.from_settings(self.transport, self.settings)

        self.blind_chat = BlindChatService(
            matchmaker=self.matchmaker,
            sessions=self.sessions,
            messenger=self.messenger,
            voice=self.voice,
            session_factory=session_factory,
            tasks=self.tasks,
            admin_chat_id=self.settings.admin_chat_id,
            report_threshold=self.settings.report_ban_threshold,
        )
        self.moderation = ModerationDesk(
            messenger=self.messenger,
            sessions=self.sessions,
            matchmaker=self.matchmaker,
            session_factory=session_factory,
            admin_chat_id=self.settings.admin_chat_id,
            channel_id=self.settings.channel_id,
            bot_username=self.settings.telegram_bot_username,
        )
        self.dispatcher = Dispatcher(
            sessions=self.sessions,
            matchmaker=self.matchmaker,
            messenger=self.messenger,
            voice=self.voice,
            blind_chat=self.blind_chat,
            moderation=self.moderation,
            session_factory=session_factory,
            tasks=self.tasks,
        )
        self.engine = EventEngine(
            self.dispatcher,
            self.messenger,
            queue_size=self.settings.event_queue_size,
        )
        self.cleanup = CleanupScheduler.from_settings(
            self.settings,
            sessions=self.sessions,
            matchmaker=self.matchmaker,
            messenger=self.messenger,
            session_factory=session_factory,
        )
        self._poller: asyncio.Task[None] | None = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._started and self.engine.running

    @property
    def bot_username(self) -> str:
        return self.moderation.bot_username

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        if self._started:
            return
        await self.transport.open()

        if not self.moderation.bot_username:
            try:
                me = await self.transport.get_me()
                self.moderation.bot_username = me.get("username") or ""
            except TransportError as e:
                logger.warning(f"Could not resolve bot username: {e}")

        self.engine.start()
        self.cleanup.start()

        if self.settings.update_mode == "webhook":
            if not self.settings.webhook_url:
                raise ValueError("webhook_url is required in webhook mode")
            secret = self.settings.webhook_secret
            await self.transport.set_webhook(
                self.settings.webhook_url,
                secret.get_secret_value() if secret else None,
            )
            logger.info("Webhook registered")
        else:
            await self.transport.delete_webhook()
            self._poller = asyncio.create_task(self._poll(), name="telegram-poller")
            logger.info("Long polling started")

        self._started = True
        logger.info(f"Bot started as @{self.bot_username or '?'}")

    async def stop(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            try:
                await self._poller
            except asyncio.CancelledError:
                pass
            self._poller = None

        await self.cleanup.stop()
        await self.engine.stop()
        await self.tasks.drain(timeout=10.0)
        await self.voice.close()
        await self.transport.close()
        self._started = False
        logger.info("Bot stopped")

    # -------------------------------------------------------------------------
    # Update intake
    # -------------------------------------------------------------------------

    async def feed_update(self, update: dict[str, Any]) -> bool:
        """Normalize a raw update and queue it.

        Returns:
            False if the update is of a kind the bot ignores or is malformed
        """
        try:
            event = parse_update(update)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                f"Dropped malformed update {update.get('update_id')}: {type(e).__name__} {e}"
            )
            return False
        if event is None:
            return False
        await self.engine.submit(event)
        return True

    async def _poll(self) -> None:
        offset: int | None = None
        while True:
            try:
                updates = await self.transport.get_updates(offset, timeout=POLL_TIMEOUT_SECONDS)
            except TransportError as e:
                logger.warning(f"getUpdates failed: {e}; retrying in {POLL_RETRY_SECONDS:.0f}s")
                await asyncio.sleep(POLL_RETRY_SECONDS)
                continue

            for update in updates:
                update_id = update.get("update_id")
                if isinstance(update_id, int):
                    offset = update_id + 1
                await self.feed_update(update)
