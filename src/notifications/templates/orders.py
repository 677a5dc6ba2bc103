"""Order lifecycle templates — placed, status changes and cancellation."""

from notifications.templates.formatting import money, short_id

STATUS_LABELS = {
    "PENDING": "awaiting payment",
    "PAID": "paid",
    "PREPARING": "being prepared",
    "READY": "ready",
    "DELIVERING": "on its way",
    "DELIVERED": "delivered",
    "CANCELLED": "cancelled",
}


class OrderPlacedTemplate:
    notification_type = "order_placed"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": "Order placed",
            "body": (
                f"Your order #{short_id(context.get('order_id'))} at "
                f"{context.get('restaurant_name') or 'the restaurant'} is confirmed. "
                f"Total: {money(context.get('total_amount'))}."
            ),
        }


class NewOrderTemplate:
    notification_type = "new_order"

    @staticmethod
    def render(context: dict) -> dict:
        item_count = context.get("item_count", 0)
        return {
            "subject": "New order",
            "body": (
                f"Order #{short_id(context.get('order_id'))}: {item_count} item"
                f"{'' if item_count == 1 else 's'} for {money(context.get('total_amount'))}."
            ),
        }


class StatusUpdateTemplate:
    notification_type = "status_update"

    @staticmethod
    def render(context: dict) -> dict:
        status = context.get("new_status", "")
        return {
            "subject": f"Order {STATUS_LABELS.get(status, status.lower())}",
            "body": (
                f"Your order #{short_id(context.get('order_id'))} at "
                f"{context.get('restaurant_name') or 'the restaurant'} is now "
                f"{STATUS_LABELS.get(status, status.lower())}."
            ),
        }


class OrderCancellationTemplate:
    notification_type = "order_cancellation"

    @staticmethod
    def render(context: dict) -> dict:
        body = f"Order #{short_id(context.get('order_id'))} was cancelled"
        if context.get("reason"):
            body += f": {context['reason']}"
        body += "."
        if context.get("refund_amount"):
            body += f" A refund of {money(context['refund_amount'])} will be issued."
        return {"subject": "Order cancelled", "body": body}
