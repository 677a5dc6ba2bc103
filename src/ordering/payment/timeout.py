"""Payment timeouts — settle attempts nobody settled before the deadline.

The deadline is evaluated on demand, by the status poll or the periodic sweep
(``python src/manage.py sweep-payments``); there is no timer per payment.
"""

from datetime import UTC, datetime

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering import settings
from ordering.domain import logger, ordering
from ordering.payment.lookup import pending_payments
from ordering.payment.payment import Payment


@ordering.command(part_of="Payment")
class TimeOutPayment:
    payment_id = Identifier(required=True)


@ordering.command_handler(part_of=Payment)
class PaymentTimeoutHandler:
    @handle(TimeOutPayment)
    def time_out(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)

        if payment.time_out():
            repo.add(payment)
            logger.info("Payment timed out", payment_id=str(payment.id), order_id=str(payment.order_id))
        return payment.status


def expire_stale_payments(now=None):
    """Time out every PENDING payment past its deadline; return their ids."""
    now = now or datetime.now(UTC)
    timeout_seconds = settings.payment_timeout_seconds()

    expired = []
    for payment in pending_payments():
        if payment.is_overdue(timeout_seconds, now):
            current_domain.process(TimeOutPayment(payment_id=payment.id), asynchronous=False)
            expired.append(str(payment.id))

    if expired:
        logger.info("Stale payments expired", count=len(expired))
    return expired
