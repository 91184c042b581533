"""Order aggregate — the core of the sales domain.

An order is a priced set of print jobs placed by a customer. It carries two
independent lifecycles, each guarded by its own transition table:

Production (OrderStatus):
    PENDING → CONFIRMED → PROCESSING → PRINTING → QUALITY_CHECK →
    READY_FOR_DELIVERY → OUT_FOR_DELIVERY → DELIVERED
    CANCELLED from any state before DELIVERED
    REFUNDED from any state except REFUNDED itself

Payment (PaymentStatus):
    PENDING → PROCESSING → PAID → REFUNDED / PARTIALLY_REFUNDED
    PENDING/PROCESSING → FAILED → PENDING/PROCESSING (retry)

Orders are never deleted; "deleting" an order cancels it.
"""

import math
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    List,
    String,
    Text,
    ValueObject,
)

from sales.domain import sales
from sales.order.events import (
    OrderCancelled,
    OrderDetailsUpdated,
    OrderPaymentStatusChanged,
    OrderPlaced,
    OrderStatusChanged,
)
from sales.shared.address import Address

BASE_PRODUCTION_DAYS = 3
UNITS_PER_PRINTING_DAY = 100


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    PRINTING = "printing"
    QUALITY_CHECK = "quality_check"
    READY_FOR_DELIVERY = "ready_for_delivery"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(Enum):
    MPESA = "mpesa"
    STRIPE = "stripe"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


class PrintSides(Enum):
    SINGLE = "single"
    DOUBLE = "double"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.PRINTING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PRINTING: {OrderStatus.QUALITY_CHECK, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.QUALITY_CHECK: {
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.PRINTING,  # Failed QC goes back to the press
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
    },
    OrderStatus.READY_FOR_DELIVERY: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSING, PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PROCESSING: {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.PENDING},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),  # Terminal
}

# Status buckets used by order statistics
IN_PRODUCTION_STATUSES = {OrderStatus.PROCESSING, OrderStatus.PRINTING, OrderStatus.QUALITY_CHECK}

_DETAIL_FIELDS = (
    "shipping_address",
    "billing_address",
    "delivery_instructions",
    "notes",
    "due_date",
    "completed_at",
)


def calculate_tax(subtotal: float) -> float:  # noqa: ARG001
    """Tax on an order subtotal.

    Kenyan VAT rules are not modelled yet, so every order carries zero tax.
    """
    return 0.0


def estimate_completion_date(quantities: list[int], start: datetime | None = None) -> datetime:
    """Three days of prepress plus a printing day per started hundred units."""
    start = start or datetime.now(UTC)
    printing_days = max(1, math.ceil(sum(quantities) / UNITS_PER_PRINTING_DAY))
    return start + timedelta(days=BASE_PRODUCTION_DAYS + printing_days)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS.get(current, set())


def can_change_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in _VALID_PAYMENT_TRANSITIONS.get(current, set())


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@sales.value_object(part_of="Order")
class PrintSpecification:
    """How a line item should be produced.

    Every attribute is optional; the shop fills in defaults at prepress time.
    ``uploaded_files`` holds references to artwork stored elsewhere.
    """

    paper_type = String(max_length=100)
    finish = String(max_length=100)
    size = String(max_length=50)
    colors = String(max_length=50)
    sides = String(max_length=10, choices=PrintSides)
    binding = String(max_length=100)
    finishing = List(content_type=String)
    custom_requirements = Text()
    uploaded_files = List(content_type=String)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@sales.entity(part_of="Order")
class OrderItem:
    """A single priced print job on an order."""

    line_number = Integer(required=True, min_value=1)
    product_id = String(max_length=100)
    product_name = String(required=True, max_length=255)
    product_description = Text()
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    total_price = Float(required=True)
    specification = ValueObject(PrintSpecification)

    @invariant.post
    def total_price_matches_quantity_and_unit_price(self):
        if abs(self.total_price - self.quantity * self.unit_price) > 0.005:
            raise ValidationError({"total_price": ["Item total must equal quantity times unit price"]})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@sales.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    customer_id = Identifier()
    customer_email = String(required=True, max_length=254)
    customer_name = String(required=True, max_length=200)
    customer_phone = String(required=True, max_length=30)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.OTHER.value)
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    delivery_instructions = Text()
    notes = Text()

    # Typed extension fields
    payment_reference = String(max_length=100)  # provider correlation id (CheckoutRequestID / session id)
    transaction_id = String(max_length=100)  # settled provider transaction (M-Pesa receipt, payment intent)
    quote_id = Identifier()
    source = String(max_length=50, default="website")

    created_at = DateTime()
    updated_at = DateTime()
    due_date = DateTime()
    completed_at = DateTime()

    @invariant.post
    def total_is_subtotal_plus_tax(self):
        if abs((self.total or 0.0) - ((self.subtotal or 0.0) + (self.tax or 0.0))) > 0.005:
            raise ValidationError({"total": ["Order total must equal subtotal plus tax"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number: str,
        customer_email: str,
        customer_name: str,
        customer_phone: str,
        items_data: list[dict],
        customer_id: str | None = None,
        shipping_address: Address | None = None,
        billing_address: Address | None = None,
        delivery_instructions: str | None = None,
        notes: str | None = None,
        due_date: datetime | None = None,
        quote_id: str | None = None,
        source: str = "website",
        currency: str = "KES",
        placed_at: datetime | None = None,
        tax: float | None = None,
    ):
        """Price the items and open a new order in pending/pending.

        ``tax`` overrides the computed tax, for orders priced elsewhere
        (a converted quote keeps the tax it was accepted with).
        """
        now = placed_at or datetime.now(UTC)

        items = []
        for line_number, item_data in enumerate(items_data, start=1):
            quantity = int(item_data["quantity"])
            unit_price = float(item_data["unit_price"])
            spec_data = item_data.get("specification")
            items.append(
                OrderItem(
                    line_number=line_number,
                    product_id=item_data.get("product_id"),
                    product_name=item_data["product_name"],
                    product_description=item_data.get("product_description"),
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=round(quantity * unit_price, 2),
                    specification=PrintSpecification(**spec_data) if spec_data else None,
                )
            )

        subtotal = round(sum(item.total_price for item in items), 2)
        tax = calculate_tax(subtotal) if tax is None else round(float(tax), 2)

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            customer_email=customer_email.strip(),
            customer_name=customer_name.strip(),
            customer_phone=customer_phone.strip(),
            subtotal=subtotal,
            tax=tax,
            total=round(subtotal + tax, 2),
            currency=currency,
            shipping_address=shipping_address,
            billing_address=billing_address,
            delivery_instructions=delivery_instructions,
            notes=notes,
            quote_id=quote_id,
            source=source,
            created_at=now,
            updated_at=now,
            due_date=due_date or estimate_completion_date([item.quantity for item in items], now),
        )
        for item in items:
            order.add_items(item)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_email=order.customer_email,
                customer_name=order.customer_name,
                item_count=len(items),
                subtotal=order.subtotal,
                tax=order.tax,
                total=order.total,
                currency=currency,
                quote_id=quote_id,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def ordered_items(self) -> list[OrderItem]:
        return sorted(self.items, key=lambda item: item.line_number)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def estimated_completion_date(self) -> datetime:
        return estimate_completion_date([item.quantity for item in self.items], self.created_at)

    # -------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------
    def update_details(self, **changes) -> None:
        """Merge delivery details, notes and dates. Always bumps ``updated_at``."""
        unknown = set(changes) - set(_DETAIL_FIELDS)
        if unknown:
            raise ValidationError({"order": [f"Cannot update field(s): {', '.join(sorted(unknown))}"]})

        now = datetime.now(UTC)
        for name, value in changes.items():
            setattr(self, name, value)
        self.updated_at = now

        self.raise_(
            OrderDetailsUpdated(
                order_id=str(self.id),
                changed_fields=",".join(sorted(changes)) or "updated_at",
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Production lifecycle
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if not can_transition(current, target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def transition_to(self, target_status: OrderStatus) -> None:
        """Move the order to ``target_status``. Moving to the current status is a no-op."""
        current = OrderStatus(self.status)
        if target_status == current:
            return
        if target_status == OrderStatus.CANCELLED:
            self.cancel()
            return

        self._assert_can_transition(target_status)
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        if target_status == OrderStatus.DELIVERED:
            self.completed_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target_status.value,
                changed_at=now,
            )
        )

    def cancel(self, reason: str | None = None) -> None:
        """Soft-delete the order."""
        current = OrderStatus(self.status)
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment lifecycle
    # -------------------------------------------------------------------
    def _assert_can_change_payment(self, target_status: PaymentStatus) -> None:
        current = PaymentStatus(self.payment_status)
        if target_status != current and not can_change_payment(current, target_status):
            raise ValidationError(
                {"payment_status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    def record_payment_status(
        self,
        target_status: PaymentStatus,
        payment_method: PaymentMethod | None = None,
        payment_reference: str | None = None,
        transaction_id: str | None = None,
    ) -> None:
        """Move the payment lifecycle, optionally recording provider identifiers.

        Re-recording the current status is allowed so a new STK push or
        checkout session can replace the correlation reference.
        """
        self._assert_can_change_payment(target_status)
        current = PaymentStatus(self.payment_status)
        now = datetime.now(UTC)

        self.payment_status = target_status.value
        if payment_method is not None:
            self.payment_method = payment_method.value
        if payment_reference:
            self.payment_reference = payment_reference
        if transaction_id:
            self.transaction_id = transaction_id
        self.updated_at = now

        self.raise_(
            OrderPaymentStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target_status.value,
                payment_method=self.payment_method,
                payment_reference=self.payment_reference,
                transaction_id=self.transaction_id,
                changed_at=now,
            )
        )
