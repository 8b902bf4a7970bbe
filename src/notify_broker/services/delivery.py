"""Per-connection bounded outbound queue."""
from __future__ import annotations

import asyncio
import logging

from notify_broker.application.exceptions import DeliveryDropped
from notify_broker.domain.entities.notification import NotificationMessage

logger = logging.getLogger(__name__)


class DeliveryChannel:
    """Bounded FIFO between publishers and one connection's writer task.

    Producers never wait: a full or closed channel drops the message for
    this recipient only. The single consumer is the connection's writer,
    which calls :meth:`get` and then :meth:`task_done` once the message
    has been written (or abandoned).
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("DeliveryChannel capacity must be at least 1")
        self._capacity = capacity
        self._queue: asyncio.Queue[NotificationMessage] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self.enqueued = 0
        self.dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._queue.qsize()

    def put(self, message: NotificationMessage) -> None:
        if self._closed:
            raise DeliveryDropped("channel closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            raise DeliveryDropped(f"channel full ({self._capacity})") from None
        self.enqueued += 1

    def enqueue(self, message: NotificationMessage) -> bool:
        try:
            self.put(message)
        except DeliveryDropped as exc:
            self.dropped += 1
            logger.debug("Dropped notification %s: %s", message.id, exc.detail)
            return False
        return True

    async def get(self) -> NotificationMessage:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    def close(self) -> None:
        self._closed = True

    def discard(self) -> int:
        """Throw away everything still queued. Returns the number discarded."""
        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            discarded += 1
        return discarded

    async def flush(self, timeout: float | None = None) -> bool:
        """Wait until the writer has finished every queued message."""
        try:
            await asyncio.wait_for(self._queue.join(), timeout)
        except asyncio.TimeoutError:
            return False
        return True
