"""Processed provider notifications.

Each M-Pesa callback or Stripe webhook event that reaches reconciliation is
recorded under ``{provider}:{reference}``. The record exists once the
notification has been handled, so a replayed delivery finds it and stops.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from sales.domain import sales
from sales.payment.events import PaymentCallbackRecorded


class PaymentProvider(Enum):
    MPESA = "mpesa"
    STRIPE = "stripe"


class CallbackOutcome(Enum):
    SETTLED = "settled"
    FAILED = "failed"
    UNMATCHED = "unmatched"
    AMOUNT_MISMATCH = "amount_mismatch"
    IGNORED = "ignored"


def callback_key(provider: PaymentProvider, reference: str) -> str:
    return f"{provider.value}:{reference}"


@sales.aggregate
class PaymentCallback:
    key = String(identifier=True, max_length=150)
    provider = String(required=True, choices=PaymentProvider)
    reference = String(required=True, max_length=120)
    order_id = Identifier()
    outcome = String(required=True, choices=CallbackOutcome)
    result_code = Integer()
    result_desc = Text()
    event_type = String(max_length=100)
    amount = Float()
    transaction_id = String(max_length=100)
    received_at = DateTime(required=True)

    @classmethod
    def record(
        cls,
        provider: PaymentProvider,
        reference: str,
        outcome: CallbackOutcome,
        order_id: str | None = None,
        result_code: int | None = None,
        result_desc: str | None = None,
        event_type: str | None = None,
        amount: float | None = None,
        transaction_id: str | None = None,
    ):
        now = datetime.now(UTC)
        key = callback_key(provider, reference)
        callback = cls(
            key=key,
            provider=provider.value,
            reference=reference,
            order_id=order_id,
            outcome=outcome.value,
            result_code=result_code,
            result_desc=result_desc,
            event_type=event_type,
            amount=amount,
            transaction_id=transaction_id,
            received_at=now,
        )
        callback.raise_(
            PaymentCallbackRecorded(
                key=key,
                provider=provider.value,
                reference=reference,
                outcome=outcome.value,
                order_id=order_id,
                amount=amount,
                transaction_id=transaction_id,
                received_at=now,
            )
        )
        return callback


@sales.repository(part_of=PaymentCallback)
class PaymentCallbackRepository:
    def find_by_key(self, key: str) -> PaymentCallback | None:
        try:
            return self.get(key)
        except ObjectNotFoundError:
            return None

    def already_processed(self, provider: PaymentProvider, reference: str) -> bool:
        return self.find_by_key(callback_key(provider, reference)) is not None
