"""Payment requests handed to a provider on behalf of an order.

Every accepted STK push is kept under ``{provider}:{reference}``. An order
only remembers its latest ``payment_reference``, so a customer who retries a
push and then approves the earlier prompt is matched through this record.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String

from sales.domain import sales
from sales.payment.callback import PaymentProvider, callback_key
from sales.payment.events import PaymentInitiated


@sales.aggregate
class PaymentInitiation:
    key = String(identifier=True, max_length=150)
    provider = String(required=True, choices=PaymentProvider)
    reference = String(required=True, max_length=120)
    order_id = Identifier(required=True)
    amount = Float()
    initiated_at = DateTime(required=True)

    @classmethod
    def open(cls, provider: PaymentProvider, reference: str, order_id: str, amount: float | None = None):
        now = datetime.now(UTC)
        key = callback_key(provider, reference)
        initiation = cls(
            key=key,
            provider=provider.value,
            reference=reference,
            order_id=order_id,
            amount=amount,
            initiated_at=now,
        )
        initiation.raise_(
            PaymentInitiated(
                key=key,
                provider=provider.value,
                reference=reference,
                order_id=order_id,
                amount=amount,
                initiated_at=now,
            )
        )
        return initiation


@sales.repository(part_of=PaymentInitiation)
class PaymentInitiationRepository:
    def find_by_reference(self, provider: PaymentProvider, reference: str) -> PaymentInitiation | None:
        try:
            return self.get(callback_key(provider, reference))
        except ObjectNotFoundError:
            return None

    def for_order(self, order_id: str) -> list[PaymentInitiation]:
        found = self._dao.query.filter(order_id=order_id).all().items
        return sorted(found, key=lambda initiation: initiation.initiated_at)
