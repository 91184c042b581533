"""Receipt aggregate — proof of a confirmed payment.

State Machine:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from sales.domain import sales
from sales.receipt.events import ReceiptIssued, ReceiptRefunded, ReceiptStatusChanged


class ReceiptStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ReceiptPaymentMethod(Enum):
    MPESA = "mpesa"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"


_VALID_TRANSITIONS = {
    ReceiptStatus.PENDING: {ReceiptStatus.COMPLETED, ReceiptStatus.FAILED},
    ReceiptStatus.COMPLETED: {ReceiptStatus.REFUNDED},
    ReceiptStatus.FAILED: set(),  # Terminal
    ReceiptStatus.REFUNDED: set(),  # Terminal
}


@sales.entity(part_of="Receipt")
class ReceiptItem:
    line_number = Integer(required=True, min_value=1)
    product_id = String(max_length=100)
    product_name = String(required=True, max_length=255)
    description = Text()
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    total_price = Float(required=True)


@sales.aggregate
class Receipt:
    receipt_number = String(required=True, max_length=20)
    order_id = Identifier(required=True)
    order_number = String(max_length=20)
    customer_id = Identifier()
    customer_name = String(required=True, max_length=200)
    customer_email = String(required=True, max_length=254)
    customer_phone = String(max_length=30)
    items = HasMany(ReceiptItem)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    payment_method = String(required=True, choices=ReceiptPaymentMethod)
    transaction_id = String(max_length=100)
    payment_date = DateTime(required=True)
    status = String(choices=ReceiptStatus, default=ReceiptStatus.COMPLETED.value)
    refund_amount = Float()
    refund_reason = String(max_length=500)
    refund_date = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def refund_cannot_exceed_total(self):
        if self.refund_amount is not None and self.refund_amount > (self.total or 0.0) + 0.005:
            raise ValidationError({"refund_amount": ["Refund cannot exceed the receipt total"]})

    @classmethod
    def for_order(
        cls,
        order,
        receipt_number: str,
        payment_method: ReceiptPaymentMethod,
        transaction_id: str | None = None,
        payment_date: datetime | None = None,
        status: ReceiptStatus = ReceiptStatus.COMPLETED,
    ):
        """Issue a receipt that mirrors the order's items and totals."""
        now = datetime.now(UTC)
        receipt = cls(
            receipt_number=receipt_number,
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            subtotal=order.subtotal,
            tax=order.tax,
            total=order.total,
            currency=order.currency,
            payment_method=payment_method.value,
            transaction_id=transaction_id,
            payment_date=payment_date or now,
            status=status.value,
            created_at=now,
            updated_at=now,
        )
        for item in order.ordered_items():
            receipt.add_items(
                ReceiptItem(
                    line_number=item.line_number,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    description=item.product_description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
            )

        receipt.raise_(
            ReceiptIssued(
                receipt_id=str(receipt.id),
                receipt_number=receipt_number,
                order_id=str(order.id),
                payment_method=payment_method.value,
                transaction_id=transaction_id,
                total=receipt.total,
                status=status.value,
                issued_at=now,
            )
        )
        return receipt

    def ordered_items(self) -> list[ReceiptItem]:
        return sorted(self.items, key=lambda item: item.line_number)

    def _assert_can_transition(self, target_status: ReceiptStatus) -> None:
        current = ReceiptStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def change_status(self, target_status: ReceiptStatus) -> None:
        if target_status == ReceiptStatus.REFUNDED:
            raise ValidationError({"status": ["Use a refund to move a receipt to refunded"]})
        current = ReceiptStatus(self.status)
        self._assert_can_transition(target_status)
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self.raise_(
            ReceiptStatusChanged(
                receipt_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                new_status=target_status.value,
                changed_at=now,
            )
        )

    def refund(self, amount: float, reason: str) -> None:
        """Refund some or all of a completed receipt."""
        self._assert_can_transition(ReceiptStatus.REFUNDED)
        if amount is None or amount <= 0:
            raise ValidationError({"refund_amount": ["Refund amount must be greater than 0"]})
        if amount > self.total + 0.005:
            raise ValidationError({"refund_amount": ["Refund cannot exceed the receipt total"]})

        now = datetime.now(UTC)
        self.status = ReceiptStatus.REFUNDED.value
        self.refund_amount = round(amount, 2)
        self.refund_reason = reason
        self.refund_date = now
        self.updated_at = now
        self.raise_(
            ReceiptRefunded(
                receipt_id=str(self.id),
                receipt_number=self.receipt_number,
                order_id=str(self.order_id),
                refund_amount=self.refund_amount,
                reason=reason,
                refunded_at=now,
            )
        )
