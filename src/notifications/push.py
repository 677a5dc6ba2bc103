"""Push notification sender — the bus subscriber that notifies devices.

Who hears about what:

    order.created            buyer and restaurant owner
    order.status.updated     buyer; owner too for DELIVERED and CANCELLED
    order.cancelled          buyer; owner unless the owner cancelled
    order.payment.confirmed  buyer and restaurant owner
    order.payment.failed     buyer
    order.payment.timeout    buyer
"""

import structlog

from notifications import bus
from notifications.channel import PUSH, get_channel
from notifications.channel.push_port import INVALID_TOKEN, SENT
from notifications.devices import get_device_store
from notifications.templates import get_template

logger = structlog.get_logger(__name__)

_OWNER_STATUS_UPDATES = {"DELIVERED", "CANCELLED"}


class PushNotifier:
    def __call__(self, notification):
        payload = notification.payload
        buyer = payload.get("user_id")
        owner = payload.get("restaurant_owner_id")

        for user_id, notification_type in self.deliveries(notification.name, payload, buyer, owner):
            self.send_to_user(user_id, notification_type, notification)

    @staticmethod
    def deliveries(name, payload, buyer, owner):
        """(recipient, notification type) pairs for one notification."""
        pairs = []
        if name == bus.ORDER_CREATED:
            pairs = [(buyer, "order_placed"), (owner, "new_order")]
        elif name == bus.ORDER_STATUS_UPDATED:
            pairs = [(buyer, "status_update")]
            if payload.get("new_status") in _OWNER_STATUS_UPDATES:
                pairs.append((owner, "status_update"))
        elif name == bus.ORDER_CANCELLED:
            pairs = [(buyer, "order_cancellation")]
            if payload.get("cancelled_by") != "operator":
                pairs.append((owner, "order_cancellation"))
        elif name == bus.PAYMENT_CONFIRMED:
            pairs = [(buyer, "payment_receipt"), (owner, "payment_receipt")]
        elif name == bus.PAYMENT_FAILED:
            pairs = [(buyer, "payment_failed")]
        elif name == bus.PAYMENT_TIMEOUT:
            pairs = [(buyer, "payment_timeout")]
        return [(str(user_id), kind) for user_id, kind in pairs if user_id]

    def send_to_user(self, user_id, notification_type, notification):
        """Push to every device of ``user_id``; return how many accepted it."""
        channel = get_channel(PUSH)
        if not channel.ready():
            logger.warning(
                "Push channel not ready, notification skipped", user_id=user_id, event_name=notification.name
            )
            return 0

        store = get_device_store()
        tokens = store.tokens_for(user_id)
        if not tokens:
            return 0

        content = get_template(notification_type).render(notification.payload)
        data = {"event": notification.name, **{k: str(v) for k, v in notification.payload.items() if v is not None}}

        delivered = 0
        for token in tokens:
            result = channel.send(device_token=token, title=content["subject"], body=content["body"], data=data)
            if result["status"] == SENT:
                delivered += 1
            elif result["status"] == INVALID_TOKEN:
                store.remove(user_id, token)
                logger.info("Invalid device token removed", user_id=user_id)
            else:
                logger.warning("Push delivery failed", user_id=user_id, error=result.get("error"))

        logger.debug(
            "Push notification sent",
            user_id=user_id,
            notification_type=notification_type,
            delivered=delivered,
            devices=len(tokens),
        )
        return delivered
