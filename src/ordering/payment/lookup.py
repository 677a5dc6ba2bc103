"""Payment lookups shared by initiation, polling, the webhook and the API."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.errors import ForbiddenError
from ordering.order.status import restaurant_owner_of
from ordering.payment.payment import Payment, PaymentStatus


def find_by_reference(reference_id):
    """The payment the gateway knows as ``reference_id``."""
    results = (
        current_domain.repository_for(Payment)
        ._dao.query.filter(provider_transaction_id=str(reference_id))
        .limit(1)
        .all()
    )
    if not results.items:
        raise ObjectNotFoundError(f"No payment with reference {reference_id}")
    return results.items[0]


def payments_for_order(order_id):
    """Every attempt for an order, latest first."""
    return (
        current_domain.repository_for(Payment)
        ._dao.query.filter(order_id=str(order_id))
        .order_by("-created_at")
        .all()
        .items
    )


def pending_payments():
    return current_domain.repository_for(Payment)._dao.query.filter(status=PaymentStatus.PENDING.value).all().items


def get_payment_for(actor_id, payment_id):
    """Return the payment if ``actor_id`` paid it or owns the restaurant."""
    payment = current_domain.repository_for(Payment).get(payment_id)
    if str(payment.user_id) != str(actor_id) and restaurant_owner_of(payment.restaurant_id) != str(actor_id):
        raise ForbiddenError()
    return payment
