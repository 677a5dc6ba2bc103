"""In-process event bus — fans domain notifications out to subscribers.

``emit`` calls every subscriber of a name in registration order and returns
once they have all run. It never raises: a failing subscriber is logged and
skipped, so a push outage cannot undo or block the order or payment change
that produced the notification.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

logger = structlog.get_logger(__name__)

ORDER_CREATED = "order.created"
ORDER_STATUS_UPDATED = "order.status.updated"
ORDER_CANCELLED = "order.cancelled"
PAYMENT_CONFIRMED = "order.payment.confirmed"
PAYMENT_FAILED = "order.payment.failed"
PAYMENT_TIMEOUT = "order.payment.timeout"

EVENT_NAMES = (
    ORDER_CREATED,
    ORDER_STATUS_UPDATED,
    ORDER_CANCELLED,
    PAYMENT_CONFIRMED,
    PAYMENT_FAILED,
    PAYMENT_TIMEOUT,
)


@dataclass(frozen=True)
class DomainNotification:
    """A named, immutable record of a state change, as seen by subscribers."""

    name: str
    payload: dict
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def recipients(self) -> set[str]:
        """Users this notification concerns: the buyer and the restaurant owner."""
        return {str(self.payload[key]) for key in ("user_id", "restaurant_owner_id") if self.payload.get(key)}

    def to_dict(self) -> dict:
        return {"event": self.name, "data": self.payload, "occurred_at": self.occurred_at.isoformat()}


Subscriber = Callable[[DomainNotification], None]


class EventBus:
    def __init__(self):
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, name: str, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.setdefault(name, []).append(subscriber)

    def subscribe_all(self, subscriber: Subscriber) -> None:
        for name in EVENT_NAMES:
            self.subscribe(name, subscriber)

    def unsubscribe(self, name: str, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers.get(name, []):
                self._subscribers[name].remove(subscriber)

    def subscribers(self, name: str) -> list[Subscriber]:
        with self._lock:
            return list(self._subscribers.get(name, []))

    def emit(self, name: str, payload: dict) -> DomainNotification:
        notification = DomainNotification(name=name, payload=dict(payload))
        for subscriber in self.subscribers(name):
            try:
                subscriber(notification)
            except Exception:
                logger.exception(
                    "Notification subscriber failed",
                    event_name=name,
                    subscriber=getattr(subscriber, "__qualname__", repr(subscriber)),
                )
        return notification


_bus: EventBus | None = None


def _register_default_subscribers(bus: EventBus) -> None:
    from notifications.push import PushNotifier
    from notifications.stream import forward_to_streams

    bus.subscribe_all(PushNotifier())
    bus.subscribe_all(forward_to_streams)


def get_bus() -> EventBus:
    """Return the process-wide bus, with the push and stream subscribers."""
    global _bus
    if _bus is None:
        _bus = EventBus()
        _register_default_subscribers(_bus)
    return _bus


def set_bus(bus: EventBus) -> None:
    global _bus
    _bus = bus


def reset_bus() -> None:
    global _bus
    _bus = None
