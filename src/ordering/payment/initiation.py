"""Payment initiation — asks the buyer's mobile wallet to pay for an order.

The flow spans the gateway, so it is split around the external call:

1. ``CreatePayment`` validates the order and stores a PENDING payment.
2. The gateway receives the collection request (outside any unit of work).
3. ``RecordPaymentReference`` stores the gateway reference, which is how the
   webhook later finds the payment.

If step 2 fails the payment is settled FAILED through reconciliation, so no
attempt is left dangling in PENDING.
"""

from protean import handle
from protean.exceptions import InvalidStateError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering import settings
from ordering.domain import logger, ordering
from ordering.errors import ForbiddenError
from ordering.order.order import Order, OrderStatus
from ordering.payment.lookup import payments_for_order
from ordering.payment.payment import Payment, PaymentStatus
from ordering.payment.reconciliation import reconcile_payment
from payments.gateway import get_gateway
from payments.gateway.phone import InvalidPhoneNumber, default_country_code, normalize_phone
from payments.gateway.port import GatewayError, GatewayStatus


@ordering.command(part_of="Payment")
class CreatePayment:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    phone = String(required=True, max_length=20)
    provider = String(max_length=50, default="MTN_MOMO")


@ordering.command(part_of="Payment")
class RecordPaymentReference:
    payment_id = Identifier(required=True)
    reference_id = String(required=True, max_length=255)


@ordering.command_handler(part_of=Payment)
class PaymentInitiationHandler:
    @handle(CreatePayment)
    def create_payment(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        if str(order.user_id) != str(command.user_id):
            raise ForbiddenError()
        if order.status != OrderStatus.PENDING.value:
            raise InvalidStateError(f"Order is {order.status} and cannot be paid")
        if any(p.status == PaymentStatus.PENDING.value for p in payments_for_order(order.id)):
            raise InvalidStateError("A payment for this order is already in progress")

        payment = Payment.create(
            order=order,
            phone=command.phone,
            currency=settings.default_currency(),
            provider=command.provider or "MTN_MOMO",
        )
        current_domain.repository_for(Payment).add(payment)
        return str(payment.id)

    @handle(RecordPaymentReference)
    def record_reference(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        payment.record_reference(command.reference_id)
        repo.add(payment)


def validate_payer_phone(phone):
    try:
        return normalize_phone(phone, default_country_code())
    except InvalidPhoneNumber as exc:
        raise ValidationError({"phone": [str(exc)]})


def request_payment(user_id, order_id, phone):
    """Start a payment for ``order_id`` and return the stored Payment.

    Raises ValidationError for a malformed phone number before anything is
    stored or sent, and GatewayError when the gateway refuses the request.
    """
    msisdn = validate_payer_phone(phone)
    gateway = get_gateway()

    payment_id = current_domain.process(
        CreatePayment(order_id=order_id, user_id=user_id, phone=msisdn, provider=gateway.name),
        asynchronous=False,
    )
    payment = current_domain.repository_for(Payment).get(payment_id)

    try:
        reference_id = gateway.initiate(
            external_id=payment_id,
            amount=payment.amount,
            currency=payment.currency,
            payer_phone=msisdn,
            payer_message=f"Payment for order {order_id}",
            payee_note=f"Payment at {payment.restaurant_name or 'the restaurant'}",
        )
    except GatewayError as exc:
        logger.warning(
            "Payment request refused by gateway",
            payment_id=payment_id,
            order_id=str(order_id),
            kind=exc.kind,
            error=str(exc),
        )
        reconcile_payment(payment_id, GatewayStatus.FAILED.value, reason=str(exc), source="initiation")
        raise

    current_domain.process(
        RecordPaymentReference(payment_id=payment_id, reference_id=reference_id),
        asynchronous=False,
    )
    logger.info("Payment initiated", payment_id=payment_id, order_id=str(order_id), reference_id=reference_id)
    return current_domain.repository_for(Payment).get(payment_id)
