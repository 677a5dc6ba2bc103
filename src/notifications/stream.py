"""Live notification streams — one bounded queue per open connection.

A subscription is opened when a client connects to the event stream and
closed when it disconnects. Each subscription only receives notifications
whose buyer or restaurant owner is the connected user. Queues are bounded:
when a slow client falls behind, its oldest undelivered message is dropped.
"""

import asyncio
import json
import threading
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_QUEUE_SIZE = 100


class StreamSubscription:
    def __init__(self, user_id, loop, maxsize=DEFAULT_QUEUE_SIZE):
        self.id = str(uuid4())
        self.user_id = str(user_id)
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def _put(self, message):
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(message)

    def deliver(self, message):
        """Hand ``message`` to the subscription's loop from any thread."""
        self.loop.call_soon_threadsafe(self._put, message)

    async def next_message(self, timeout=None):
        return await asyncio.wait_for(self.queue.get(), timeout)


class LiveStreamRegistry:
    def __init__(self, queue_size=DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscriptions: dict[str, StreamSubscription] = {}
        self._lock = threading.Lock()

    def open(self, user_id, loop=None) -> StreamSubscription:
        subscription = StreamSubscription(user_id, loop or asyncio.get_running_loop(), self.queue_size)
        with self._lock:
            self._subscriptions[subscription.id] = subscription
        logger.info("Live stream opened", user_id=subscription.user_id, subscription_id=subscription.id)
        return subscription

    def close(self, subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(subscription.id, None)
        if removed is not None:
            logger.info(
                "Live stream closed",
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                dropped=subscription.dropped,
            )

    def __len__(self):
        with self._lock:
            return len(self._subscriptions)

    def subscriptions_for(self, user_id):
        with self._lock:
            return [s for s in self._subscriptions.values() if s.user_id == str(user_id)]

    def publish(self, notification) -> int:
        """Deliver to every subscription of the notification's recipients."""
        recipients = notification.recipients
        with self._lock:
            targets = [s for s in self._subscriptions.values() if s.user_id in recipients]

        message = notification.to_dict()
        for subscription in targets:
            try:
                subscription.deliver(message)
            except RuntimeError:
                # Event loop already closed: the connection is gone
                self.close(subscription)
        return len(targets)


def format_sse(message: dict) -> str:
    return f"event: {message['event']}\ndata: {json.dumps(message, default=str)}\n\n"


_registry: LiveStreamRegistry | None = None


def get_stream_registry() -> LiveStreamRegistry:
    global _registry
    if _registry is None:
        _registry = LiveStreamRegistry()
    return _registry


def reset_stream_registry() -> None:
    global _registry
    _registry = None


def forward_to_streams(notification) -> None:
    """Bus subscriber: forward a notification to the live streams."""
    get_stream_registry().publish(notification)
