"""
SSE-based EventBus implementation.

Broadcasts approval events to every connected ``/events`` subscriber, giving a
supervising process (tray app, dashboard) a read-only feed of requests and
decisions.
"""

import asyncio
import logging
from typing import Any

from core import Event

logger = logging.getLogger(__name__)

# Events buffered per subscriber before the oldest are dropped
SUBSCRIBER_QUEUE_SIZE = 256


class SSEEventBus:
    """
    EventBus implementation that broadcasts events to SSE subscribers.

    Each subscriber gets a bounded queue. A subscriber that stops reading
    loses its oldest events instead of stalling the broker.
    """

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        self.queue_size = queue_size
        self.subscribers: list[asyncio.Queue[dict[str, Any]]] = []

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers."""
        data = event.model_dump(mode="json")
        for queue in list(self.subscribers):
            if queue.full():
                queue.get_nowait()
                logger.debug("Subscriber queue full, dropped oldest event")
            queue.put_nowait(data)

    def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        """
        Create a new subscription queue.

        Returns:
            A queue that will receive all published events
        """
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self.queue_size)
        self.subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        """
        Remove a subscription queue.

        Args:
            queue: The queue to unsubscribe
        """
        if queue in self.subscribers:
            self.subscribers.remove(queue)
