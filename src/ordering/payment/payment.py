"""Payment aggregate — one mobile-money collection attempt for an order.

A payment starts PENDING when the attempt is initiated and settles exactly
once, to SUCCESS or FAILED. Only reconciliation mutates its status, and every
write goes through the repository's version check, so two channels racing to
settle the same payment cannot both win.

State Machine:
    PENDING → SUCCESS (gateway reported SUCCESSFUL)
    PENDING → FAILED  (gateway reported FAILED, or local timeout)
    FAILED(timed out) → SUCCESS (late gateway success, order still payable)
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import InvalidStateError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering
from ordering.payment.events import PaymentConfirmed, PaymentFailed, PaymentInitiated, PaymentTimedOut

TIMEOUT_REASON = "Payment timed out"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@ordering.aggregate
class Payment:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    restaurant_id = Identifier(required=True)
    restaurant_owner_id = Identifier()
    restaurant_name = String(max_length=255)
    amount = Float(required=True, min_value=0.0)
    currency = String(required=True, max_length=3)
    phone = String(required=True, max_length=20)
    provider = String(max_length=50, default="MTN_MOMO")
    provider_transaction_id = String(max_length=255)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    failure_reason = String(max_length=500)
    timed_out = Boolean(default=False)
    metadata = Text(default="{}")  # JSON: lastStatusCheck, timeout markers, review flags
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, order, phone, currency, provider="MTN_MOMO"):
        """Open a PENDING payment for the full amount of ``order``."""
        now = datetime.now(UTC)
        return cls(
            order_id=order.id,
            user_id=order.user_id,
            restaurant_id=order.restaurant_id,
            restaurant_owner_id=order.restaurant_owner_id,
            restaurant_name=order.restaurant_name,
            amount=order.total,
            currency=currency,
            phone=phone,
            provider=provider,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------
    @property
    def details(self):
        return json.loads(self.metadata or "{}")

    def _update_details(self, **values):
        details = self.details
        details.update(values)
        self.metadata = json.dumps(details, default=str)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_settled(self):
        return self.status != PaymentStatus.PENDING.value

    def deadline(self, timeout_seconds):
        return self.created_at + timedelta(seconds=timeout_seconds)

    def is_overdue(self, timeout_seconds, now=None):
        now = now or datetime.now(UTC)
        return self.status == PaymentStatus.PENDING.value and now >= self.deadline(timeout_seconds)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def record_reference(self, reference_id):
        """Store the gateway's reference once the request has been accepted."""
        now = datetime.now(UTC)
        self.provider_transaction_id = reference_id
        self.updated_at = now
        self._update_details(initiatedAt=now.isoformat())

        self.raise_(
            PaymentInitiated(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                user_id=str(self.user_id),
                amount=self.amount,
                currency=self.currency,
                provider=self.provider,
                provider_transaction_id=reference_id,
                initiated_at=now,
            )
        )

    def record_status_check(self, reported_status, source):
        now = datetime.now(UTC)
        self.updated_at = now
        self._update_details(lastStatusCheck=now.isoformat(), lastReportedStatus=reported_status, lastSource=source)

    def confirm(self, financial_transaction_id=None, source=None, announce=True):
        """Mark the payment successful. Returns False if it already was.

        With ``announce=False`` no PaymentConfirmed is raised; used when the
        money arrived for an order that can no longer be paid.
        """
        if self.status == PaymentStatus.SUCCESS.value:
            return False
        if self.status == PaymentStatus.FAILED.value and not self.timed_out:
            raise InvalidStateError("A declined payment cannot be confirmed")

        now = datetime.now(UTC)
        late = self.timed_out
        self.status = PaymentStatus.SUCCESS.value
        self.failure_reason = None
        self.completed_at = now
        self.updated_at = now
        self._update_details(
            confirmedAt=now.isoformat(),
            confirmedBy=source,
            financialTransactionId=financial_transaction_id,
            lateConfirmation=late,
        )
        if not announce:
            return True

        self.raise_(
            PaymentConfirmed(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                user_id=str(self.user_id),
                restaurant_id=str(self.restaurant_id),
                restaurant_owner_id=str(self.restaurant_owner_id) if self.restaurant_owner_id else None,
                restaurant_name=self.restaurant_name,
                amount=self.amount,
                currency=self.currency,
                financial_transaction_id=financial_transaction_id,
                confirmed_at=now,
            )
        )
        return True

    def fail(self, reason, source=None):
        """Mark a pending payment failed. Returns False if it was already settled."""
        if self.is_settled:
            return False

        now = datetime.now(UTC)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason
        self.completed_at = now
        self.updated_at = now
        self._update_details(failedAt=now.isoformat(), failedBy=source)

        self.raise_(
            PaymentFailed(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                user_id=str(self.user_id),
                restaurant_id=str(self.restaurant_id),
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def time_out(self, now=None):
        """Fail a payment nobody settled before its deadline.

        Unlike ``fail``, the timeout is not final: the gateway may still
        complete the charge, and a late success can confirm the payment.
        """
        if self.is_settled:
            return False

        now = now or datetime.now(UTC)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = TIMEOUT_REASON
        self.timed_out = True
        self.completed_at = now
        self.updated_at = now
        self._update_details(timedOutAt=now.isoformat())

        self.raise_(
            PaymentTimedOut(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                user_id=str(self.user_id),
                restaurant_id=str(self.restaurant_id),
                timed_out_at=now,
            )
        )
        return True

    def flag_for_review(self, note, reported_status=None):
        """Record a gateway outcome that could not be applied automatically."""
        self.updated_at = datetime.now(UTC)
        self._update_details(
            manualReview=True,
            reviewNote=note,
            reviewReportedStatus=reported_status,
            reviewFlaggedAt=self.updated_at.isoformat(),
        )
