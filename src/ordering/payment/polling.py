"""Active status polling against the gateway."""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from ordering import settings
from ordering.domain import logger
from ordering.payment.payment import Payment, PaymentStatus
from ordering.payment.reconciliation import reconcile_payment
from ordering.payment.timeout import TimeOutPayment
from payments.gateway import get_gateway


def poll_payment(payment_id, now=None):
    """Refresh a payment from the gateway and return it.

    A PENDING payment past its deadline is timed out instead of queried. A
    timed-out payment is still queried, so a late success is picked up.
    """
    repo = current_domain.repository_for(Payment)
    payment = repo.get(payment_id)

    if payment.status == PaymentStatus.SUCCESS.value:
        return payment
    if payment.status == PaymentStatus.FAILED.value and not payment.timed_out:
        return payment

    now = now or datetime.now(UTC)
    if payment.is_overdue(settings.payment_timeout_seconds(), now):
        current_domain.process(TimeOutPayment(payment_id=payment.id), asynchronous=False)
        return repo.get(payment_id)

    if not payment.provider_transaction_id:
        # Initiation has not reached the gateway yet
        return payment

    result = get_gateway().query_status(payment.provider_transaction_id)
    logger.debug("Payment status polled", payment_id=str(payment.id), reported_status=result.status)
    return reconcile_payment(
        payment.id,
        result.status,
        reason=result.reason,
        financial_transaction_id=result.financial_transaction_id,
        source="poll",
    )
