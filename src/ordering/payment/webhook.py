"""Inbound gateway callbacks.

The callback's reference id is the one returned by ``initiate``; it locates
the local payment, and the reported status goes through reconciliation like
any poll result. Re-delivered callbacks are safe for the same reason.
"""

from ordering.domain import logger
from ordering.payment.lookup import find_by_reference
from ordering.payment.reconciliation import reconcile_payment


def process_gateway_callback(provider, reference_id, status, reason=None, financial_transaction_id=None):
    payment = find_by_reference(reference_id)
    logger.info(
        "Gateway callback received",
        provider=provider,
        payment_id=str(payment.id),
        reference_id=str(reference_id),
        reported_status=status,
    )
    return reconcile_payment(
        payment.id,
        status,
        reason=reason,
        financial_transaction_id=financial_transaction_id,
        source="webhook",
    )
