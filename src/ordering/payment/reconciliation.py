"""Payment reconciliation — the single path from a reported status to state.

The webhook and the status poll both end up here. Reconciliation is idempotent
by payment id: once a payment is SUCCESS, every later report is a no-op that
returns the existing state, whichever channel it came from.

When two reports race, both load the same payment version; the first commit
wins and the second fails the repository's version check. Protean re-runs the
losing handler in a fresh unit of work, where it sees SUCCESS and stops, so
PaymentConfirmed is raised once.
"""

from protean import handle
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order, OrderStatus
from ordering.payment.payment import Payment, PaymentStatus
from payments.gateway.port import GatewayStatus


@ordering.command(part_of="Payment")
class ApplyPaymentStatus:
    payment_id = Identifier(required=True)
    reported_status = String(required=True, max_length=20)  # PENDING, SUCCESSFUL, FAILED
    reason = String(max_length=500)
    financial_transaction_id = String(max_length=255)
    source = String(max_length=20, default="poll")  # webhook, poll, initiation


def _parse_reported_status(value):
    try:
        return GatewayStatus(str(value).upper())
    except ValueError:
        raise ValidationError({"status": [f"Unknown payment status: {value}"]})


@ordering.command_handler(part_of=Payment)
class ReconcilePaymentHandler:
    @handle(ApplyPaymentStatus)
    def apply_status(self, command):
        reported = _parse_reported_status(command.reported_status)

        payments = current_domain.repository_for(Payment)
        payment = payments.get(command.payment_id)

        if payment.status == PaymentStatus.SUCCESS.value:
            logger.debug(
                "Payment already confirmed, report ignored",
                payment_id=str(payment.id),
                reported_status=reported.value,
                source=command.source,
            )
            return payment.status

        if reported == GatewayStatus.SUCCESSFUL:
            self._confirm(payment, command)
        elif reported == GatewayStatus.FAILED:
            if payment.fail(command.reason or "Payment declined", source=command.source):
                logger.info(
                    "Payment failed",
                    payment_id=str(payment.id),
                    order_id=str(payment.order_id),
                    reason=payment.failure_reason,
                    source=command.source,
                )

        payment.record_status_check(reported.value, command.source)
        payments.add(payment)
        return payment.status

    def _confirm(self, payment, command):
        if payment.status == PaymentStatus.FAILED.value and not payment.timed_out:
            logger.warning(
                "Gateway success for a declined payment ignored",
                payment_id=str(payment.id),
                order_id=str(payment.order_id),
                source=command.source,
            )
            payment.flag_for_review("Success reported after the gateway declined", GatewayStatus.SUCCESSFUL.value)
            return

        orders = current_domain.repository_for(Order)
        order = orders.get(payment.order_id)

        if not order.can_transition(OrderStatus.PAID):
            # Settle the payment; the order keeps its status
            logger.warning(
                "Gateway success for an order that can no longer be paid",
                payment_id=str(payment.id),
                order_id=str(order.id),
                order_status=order.status,
                timed_out=payment.timed_out,
            )
            payment.confirm(command.financial_transaction_id, source=command.source, announce=False)
            payment.flag_for_review(
                f"Success reported while order was {order.status}", GatewayStatus.SUCCESSFUL.value
            )
            return

        late = payment.timed_out
        payment.confirm(command.financial_transaction_id, source=command.source)
        order.mark_paid(paid_at=payment.completed_at)
        orders.add(order)

        log = logger.warning if late else logger.info
        log(
            "Payment confirmed after local timeout" if late else "Payment confirmed",
            payment_id=str(payment.id),
            order_id=str(order.id),
            amount=payment.amount,
            source=command.source,
        )


def reconcile_payment(payment_id, reported_status, reason=None, financial_transaction_id=None, source="poll"):
    """Apply a reported status and return the payment as it now stands.

    A version conflict that outlives Protean's retries means another report
    settled the payment concurrently; the stored state is returned as is.
    """
    command = ApplyPaymentStatus(
        payment_id=payment_id,
        reported_status=reported_status,
        reason=reason,
        financial_transaction_id=financial_transaction_id,
        source=source,
    )
    try:
        current_domain.process(command, asynchronous=False)
    except ExpectedVersionError:
        logger.info("Concurrent payment update, returning stored state", payment_id=str(payment_id))
    return current_domain.repository_for(Payment).get(payment_id)
