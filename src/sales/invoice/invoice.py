"""Invoice aggregate — a billing document derived from an order.

Invoices are read-mostly: everything on them is copied from the order at
generation time and only the status moves afterwards.

State Machine:
    DRAFT → SENT → PAID → REFUNDED
    SENT → OVERDUE → PAID
    DRAFT/SENT/OVERDUE → CANCELLED
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from sales.config import DEFAULT_INVOICE_TERMS, CompanySettings
from sales.domain import sales
from sales.invoice.events import InvoiceGenerated, InvoicePaid, InvoiceStatusChanged
from sales.order.order import PaymentStatus
from sales.shared.address import Address
from sales.shared.payloads import as_utc

PAYMENT_TERM_DAYS = 30


class InvoiceStatus(Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.CANCELLED},
    InvoiceStatus.SENT: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: {InvoiceStatus.REFUNDED},
    InvoiceStatus.CANCELLED: set(),  # Terminal
    InvoiceStatus.REFUNDED: set(),  # Terminal
}


@sales.value_object(part_of="Invoice")
class CompanyInfo:
    """The seller block printed at the top of the invoice."""

    name = String(required=True, max_length=200)
    address = String(max_length=500)
    phone = String(max_length=30)
    email = String(max_length=254)
    website = String(max_length=255)
    tax_id = String(max_length=50)


@sales.entity(part_of="Invoice")
class InvoiceItem:
    line_number = Integer(required=True, min_value=1)
    description = String(required=True, max_length=500)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    total_price = Float(required=True)


@sales.aggregate
class Invoice:
    invoice_number = String(required=True, max_length=20)
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=20)
    customer_name = String(required=True, max_length=200)
    customer_email = String(required=True, max_length=254)
    customer_phone = String(max_length=30)
    customer_address = ValueObject(Address)
    items = HasMany(InvoiceItem)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    issue_date = DateTime(required=True)
    due_date = DateTime(required=True)
    status = String(choices=InvoiceStatus, default=InvoiceStatus.SENT.value)
    payment_method = String(max_length=20)
    payment_reference = String(max_length=100)
    notes = Text()
    terms = Text()
    company = ValueObject(CompanyInfo)
    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def from_order(
        cls,
        order,
        invoice_number: str,
        company: CompanySettings | None = None,
        terms: str = DEFAULT_INVOICE_TERMS,
        due_days: int = PAYMENT_TERM_DAYS,
        issued_at: datetime | None = None,
    ):
        """Derive an invoice from an order.

        Items are copied one to one in line order with the product name as
        description; totals are carried over unchanged. The invoice is born
        paid when the order is already paid, otherwise it is sent.
        """
        issue_date = issued_at or datetime.now(UTC)
        company = company or CompanySettings()
        status = InvoiceStatus.PAID if order.payment_status == PaymentStatus.PAID.value else InvoiceStatus.SENT

        invoice = cls(
            invoice_number=invoice_number,
            order_id=str(order.id),
            order_number=order.order_number,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            customer_address=order.shipping_address or order.billing_address,
            subtotal=order.subtotal,
            tax=order.tax,
            total=order.total,
            currency=order.currency,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=due_days),
            status=status.value,
            payment_method=order.payment_method,
            payment_reference=order.transaction_id or order.payment_reference,
            notes=order.notes,
            terms=terms,
            company=CompanyInfo(
                name=company.name,
                address=company.address,
                phone=company.phone,
                email=company.email,
                website=company.website,
                tax_id=company.tax_id,
            ),
            paid_at=issue_date if status == InvoiceStatus.PAID else None,
            created_at=issue_date,
            updated_at=issue_date,
        )
        for item in order.ordered_items():
            invoice.add_items(
                InvoiceItem(
                    line_number=item.line_number,
                    description=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
            )

        invoice.raise_(
            InvoiceGenerated(
                invoice_id=str(invoice.id),
                invoice_number=invoice_number,
                order_id=str(order.id),
                order_number=order.order_number,
                total=invoice.total,
                status=status.value,
                issue_date=issue_date,
                due_date=invoice.due_date,
            )
        )
        return invoice

    def ordered_items(self) -> list[InvoiceItem]:
        return sorted(self.items, key=lambda item: item.line_number)

    @property
    def amount_due(self) -> float:
        if self.status in (InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value):
            return self.total
        return 0.0

    def _assert_can_transition(self, target_status: InvoiceStatus) -> None:
        current = InvoiceStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def change_status(self, target_status: InvoiceStatus) -> None:
        if target_status == InvoiceStatus.PAID:
            self.mark_paid()
            return

        current = InvoiceStatus(self.status)
        self._assert_can_transition(target_status)
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self.raise_(
            InvoiceStatusChanged(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                new_status=target_status.value,
                changed_at=now,
            )
        )

    def mark_paid(self, payment_method: str | None = None, payment_reference: str | None = None) -> None:
        self._assert_can_transition(InvoiceStatus.PAID)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.PAID.value
        if payment_method:
            self.payment_method = payment_method
        if payment_reference:
            self.payment_reference = payment_reference
        self.paid_at = now
        self.updated_at = now
        self.raise_(
            InvoicePaid(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                payment_method=self.payment_method,
                payment_reference=self.payment_reference,
                paid_at=now,
            )
        )

    def is_past_due(self, as_of: datetime | None = None) -> bool:
        return as_utc(self.due_date) < as_utc(as_of or datetime.now(UTC))

    def mark_overdue(self, as_of: datetime | None = None) -> bool:
        """Flag a sent invoice whose due date has passed. Returns whether it changed."""
        if self.status != InvoiceStatus.SENT.value or not self.is_past_due(as_of):
            return False
        self.change_status(InvoiceStatus.OVERDUE)
        return True
