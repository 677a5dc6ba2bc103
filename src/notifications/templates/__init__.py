"""Template registry — maps notification types to template classes.

Each template knows how to render a push title (``subject``) and body from
the payload of a domain notification.
"""

from notifications.templates.orders import (
    NewOrderTemplate,
    OrderCancellationTemplate,
    OrderPlacedTemplate,
    StatusUpdateTemplate,
)
from notifications.templates.payments import (
    PaymentFailedTemplate,
    PaymentReceiptTemplate,
    PaymentTimeoutTemplate,
)

TEMPLATE_REGISTRY: dict[str, type] = {
    template.notification_type: template
    for template in (
        OrderPlacedTemplate,
        NewOrderTemplate,
        StatusUpdateTemplate,
        OrderCancellationTemplate,
        PaymentReceiptTemplate,
        PaymentFailedTemplate,
        PaymentTimeoutTemplate,
    )
}


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls
