"""Event engine: a bounded queue drained by a single consumer.

Events are handled strictly one at a time in arrival order. A handler
failure is contained to its event: it is logged, the user gets a generic
notice and the consumer moves on.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from mirrorbot.content import messages
from mirrorbot.core.dispatcher import Dispatcher
from mirrorbot.core.messenger import Messenger
from mirrorbot.logging_config import get_logger, sanitize_for_log
from mirrorbot.observability.metrics import EVENT_LATENCY, EVENTS_TOTAL
from mirrorbot.services.transport.protocol import CallbackAction, InboundEvent

logger: Any = get_logger(__name__)


def _describe(event: InboundEvent) -> dict[str, Any]:
    if isinstance(event, CallbackAction):
        return {"kind": "callback", "callback": event.kind, "user_id": event.user.id}
    return {
        "kind": "message",
        "user_id": event.user.id,
        "chat_id": event.chat_id,
        "command": event.command,
        "action": event.action.name if event.action else None,
        "text": event.text,
    }


class EventEngine:
    """Serializes inbound events through the dispatcher."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        messenger: Messenger,
        *,
        queue_size: int = 1000,
    ) -> None:
        self._dispatcher = dispatcher
        self._messenger = messenger
        self._queue: asyncio.Queue[InboundEvent] = asyncio.Queue(maxsize=queue_size)
        self._consumer: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def submit(self, event: InboundEvent) -> None:
        """Queue an event. Waits when the queue is full."""
        await self._queue.put(event)

    def start(self) -> None:
        if self.running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="event-consumer")
        logger.info("Event consumer started")

    async def stop(self) -> None:
        """Stop the consumer. Events still queued are dropped."""
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None
        if self._queue.qsize():
            logger.warning(f"Event consumer stopped with {self._queue.qsize()} events queued")
        else:
            logger.info("Event consumer stopped")

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            finally:
                self._queue.task_done()

    async def handle(self, event: InboundEvent) -> None:
        """Handle one event with failure isolation."""
        kind = "callback" if isinstance(event, CallbackAction) else "message"
        start = time.perf_counter()
        try:
            await self._dispatcher.dispatch(event)
        except Exception as e:
            EVENTS_TOTAL.labels(kind=kind, outcome="error").inc()
            logger.exception(
                f"Event handling failed: {type(e).__name__} "
                f"{sanitize_for_log(_describe(event))}"
            )
            await self._notify_failure(event)
        else:
            EVENTS_TOTAL.labels(kind=kind, outcome="ok").inc()
        finally:
            EVENT_LATENCY.observe(time.perf_counter() - start)

    async def _notify_failure(self, event: InboundEvent) -> None:
        if isinstance(event, CallbackAction):
            await self._messenger.answer(event.callback_id, messages.ANSWER_ERROR)
        else:
            await self._messenger.send_text(event.chat_id, messages.GENERIC_FAILURE)
