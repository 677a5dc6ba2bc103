"""Payment outcome templates."""

from notifications.templates.formatting import money, short_id


class PaymentReceiptTemplate:
    notification_type = "payment_receipt"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": "Payment received",
            "body": (
                f"We received {money(context.get('amount'), context.get('currency'))} "
                f"for order #{short_id(context.get('order_id'))}."
            ),
        }


class PaymentFailedTemplate:
    notification_type = "payment_failed"

    @staticmethod
    def render(context: dict) -> dict:
        reason = context.get("reason") or "The payment was declined"
        return {
            "subject": "Payment failed",
            "body": f"Payment for order #{short_id(context.get('order_id'))} failed: {reason}. Please try again.",
        }


class PaymentTimeoutTemplate:
    notification_type = "payment_timeout"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": "Payment not completed",
            "body": (
                f"We did not receive a confirmation for order #{short_id(context.get('order_id'))} in time. "
                "If you approved the payment, it will be checked again."
            ),
        }
