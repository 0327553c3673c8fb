"""NotificationQueue — bounded in-process outbound queue + drain task.

enqueue() is called from request handlers after a commit; it never blocks
and never raises. A full queue drops the event with a warning. The drain
task forwards events one by one to the publisher; a publisher failure is
logged and the loop moves on (no retries).
"""

import asyncio
import contextlib
import logging

from config.settings import settings
from src.fm_notify.domain.events import NotificationEvent
from src.fm_notify.domain.publisher import NotificationPublisherProtocol

logger = logging.getLogger(__name__)


class NotificationQueue:
    def __init__(
        self,
        publisher: NotificationPublisherProtocol | None = None,
        maxsize: int | None = None,
    ) -> None:
        self._publisher = publisher
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(
            maxsize=maxsize if maxsize is not None else settings.NOTIFICATION_QUEUE_MAXSIZE
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, event: NotificationEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Notification queue full, dropping %s for %s (load %s)",
                event.type.value, event.recipient_id, event.load_id,
            )
            return False
        return True

    def enqueue_many(self, events: list[NotificationEvent]) -> None:
        for event in events:
            self.enqueue(event)

    async def publish_one(self, event: NotificationEvent) -> None:
        if self._publisher is None:
            logger.debug("No publisher configured, discarding %s", event.type.value)
            return
        try:
            await self._publisher.publish(event)
        except Exception:
            logger.exception(
                "Failed to publish %s to %s (load %s)",
                event.type.value, event.recipient_id, event.load_id,
            )

    async def drain(self) -> None:
        """Forward events until cancelled."""
        while True:
            event = await self._queue.get()
            try:
                await self.publish_one(event)
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Publish everything currently queued (used on shutdown and in tests)."""
        while not self._queue.empty():
            event = self._queue.get_nowait()
            try:
                await self.publish_one(event)
            finally:
                self._queue.task_done()

    def start(self, publisher: NotificationPublisherProtocol | None = None) -> None:
        if publisher is not None:
            self._publisher = publisher
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.drain(), name="notification-drain")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.flush()


_queue: NotificationQueue | None = None


def get_notification_queue() -> NotificationQueue:
    global _queue  # noqa: PLW0603
    if _queue is None:
        _queue = NotificationQueue()
    return _queue
