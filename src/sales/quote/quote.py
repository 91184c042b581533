"""Quote aggregate — a priced offer that may become an order.

State Machine:
    DRAFT → SENT → ACCEPTED → CONVERTED
    DRAFT/SENT → REJECTED
    DRAFT/SENT/ACCEPTED → EXPIRED (once valid_until has passed)

REJECTED, EXPIRED and CONVERTED are terminal. A converted quote keeps a
one-way link to the order created from it.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from sales.domain import sales
from sales.order.validation import validate_items
from sales.quote.events import (
    QuoteAccepted,
    QuoteConverted,
    QuoteCreated,
    QuoteExpired,
    QuoteRejected,
    QuoteSent,
)
from sales.shared.address import Address
from sales.shared.payloads import as_utc

DEFAULT_VALIDITY_DAYS = 30


class QuoteStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED = "converted"


_VALID_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.SENT: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.ACCEPTED: {QuoteStatus.CONVERTED, QuoteStatus.EXPIRED},
    QuoteStatus.REJECTED: set(),  # Terminal
    QuoteStatus.EXPIRED: set(),  # Terminal
    QuoteStatus.CONVERTED: set(),  # Terminal
}

TERMINAL_STATUSES = {QuoteStatus.REJECTED, QuoteStatus.EXPIRED, QuoteStatus.CONVERTED}


def validate_quote(data: dict) -> list[str]:
    """Return the problems with a quote payload; empty means valid."""
    errors = []
    email = data.get("customer_email")
    if not isinstance(email, str) or "@" not in email:
        errors.append("Valid customer email is required")
    name = data.get("customer_name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Customer name is required")
    errors.extend(validate_items(data.get("items")))
    return errors


@sales.entity(part_of="Quote")
class QuoteItem:
    line_number = Integer(required=True, min_value=1)
    product_id = String(max_length=100)
    product_name = String(required=True, max_length=255)
    variant_id = String(max_length=100)
    variant_name = String(max_length=255)
    description = Text()
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    total_price = Float(required=True)

    @invariant.post
    def total_price_matches_quantity_and_unit_price(self):
        if abs(self.total_price - self.quantity * self.unit_price) > 0.005:
            raise ValidationError({"total_price": ["Item total must equal quantity times unit price"]})


@sales.aggregate
class Quote:
    quote_number = String(required=True, max_length=20)
    customer_id = Identifier()
    customer_name = String(required=True, max_length=200)
    customer_email = String(required=True, max_length=254)
    customer_phone = String(max_length=30)
    customer_address = ValueObject(Address)
    items = HasMany(QuoteItem)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    status = String(choices=QuoteStatus, default=QuoteStatus.DRAFT.value)
    quote_date = DateTime(required=True)
    valid_until = DateTime(required=True)
    notes = Text()
    rejection_reason = String(max_length=500)
    converted_to_order_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_includes_tax_and_shipping(self):
        expected = (self.subtotal or 0.0) + (self.tax or 0.0) + (self.shipping or 0.0)
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": ["Quote total must equal subtotal plus tax plus shipping"]})

    @classmethod
    def draft(
        cls,
        quote_number: str,
        customer_name: str,
        customer_email: str,
        items_data: list[dict],
        customer_id: str | None = None,
        customer_phone: str | None = None,
        customer_address: Address | None = None,
        tax: float = 0.0,
        shipping: float = 0.0,
        valid_until: datetime | None = None,
        notes: str | None = None,
        currency: str = "KES",
    ):
        now = datetime.now(UTC)
        valid_until = valid_until or now + timedelta(days=DEFAULT_VALIDITY_DAYS)

        items = []
        for line_number, data in enumerate(items_data, start=1):
            quantity = int(data["quantity"])
            unit_price = float(data["unit_price"])
            items.append(
                QuoteItem(
                    line_number=line_number,
                    product_id=data.get("product_id"),
                    product_name=data["product_name"],
                    variant_id=data.get("variant_id"),
                    variant_name=data.get("variant_name"),
                    description=data.get("description"),
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=round(quantity * unit_price, 2),
                )
            )
        subtotal = round(sum(item.total_price for item in items), 2)

        quote = cls(
            quote_number=quote_number,
            customer_id=customer_id,
            customer_name=customer_name.strip(),
            customer_email=customer_email.strip(),
            customer_phone=customer_phone,
            customer_address=customer_address,
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            total=round(subtotal + tax + shipping, 2),
            currency=currency,
            quote_date=now,
            valid_until=valid_until,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            quote.add_items(item)

        quote.raise_(
            QuoteCreated(
                quote_id=str(quote.id),
                quote_number=quote_number,
                customer_email=quote.customer_email,
                total=quote.total,
                valid_until=valid_until,
                created_at=now,
            )
        )
        return quote

    def ordered_items(self) -> list[QuoteItem]:
        return sorted(self.items, key=lambda item: item.line_number)

    def is_past_validity(self, as_of: datetime | None = None) -> bool:
        as_of = as_utc(as_of or datetime.now(UTC))
        return as_utc(self.valid_until) < as_of

    def _assert_can_transition(self, target_status: QuoteStatus) -> None:
        current = QuoteStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def send(self) -> None:
        self._assert_can_transition(QuoteStatus.SENT)
        now = datetime.now(UTC)
        self.status = QuoteStatus.SENT.value
        self.updated_at = now
        self.raise_(
            QuoteSent(
                quote_id=str(self.id),
                quote_number=self.quote_number,
                customer_email=self.customer_email,
                sent_at=now,
            )
        )

    def accept(self) -> None:
        self._assert_can_transition(QuoteStatus.ACCEPTED)
        if self.is_past_validity():
            raise ValidationError({"valid_until": ["Quote has expired and can no longer be accepted"]})
        now = datetime.now(UTC)
        self.status = QuoteStatus.ACCEPTED.value
        self.updated_at = now
        self.raise_(QuoteAccepted(quote_id=str(self.id), quote_number=self.quote_number, accepted_at=now))

    def reject(self, reason: str | None = None) -> None:
        self._assert_can_transition(QuoteStatus.REJECTED)
        now = datetime.now(UTC)
        self.status = QuoteStatus.REJECTED.value
        self.rejection_reason = reason
        self.updated_at = now
        self.raise_(
            QuoteRejected(
                quote_id=str(self.id),
                quote_number=self.quote_number,
                reason=reason,
                rejected_at=now,
            )
        )

    def expire(self, as_of: datetime | None = None) -> bool:
        """Flip to EXPIRED if validity has lapsed. Returns whether anything changed."""
        current = QuoteStatus(self.status)
        if current in TERMINAL_STATUSES or not self.is_past_validity(as_of):
            return False

        now = datetime.now(UTC)
        self.status = QuoteStatus.EXPIRED.value
        self.updated_at = now
        self.raise_(
            QuoteExpired(
                quote_id=str(self.id),
                quote_number=self.quote_number,
                previous_status=current.value,
                valid_until=self.valid_until,
                expired_at=now,
            )
        )
        return True

    def mark_converted(self, order_id: str) -> None:
        self._assert_can_transition(QuoteStatus.CONVERTED)
        now = datetime.now(UTC)
        self.status = QuoteStatus.CONVERTED.value
        self.converted_to_order_id = order_id
        self.updated_at = now
        self.raise_(
            QuoteConverted(
                quote_id=str(self.id),
                quote_number=self.quote_number,
                order_id=order_id,
                converted_at=now,
            )
        )
