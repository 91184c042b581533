"""Invoice lookups, filtering and statistics."""

from dataclasses import dataclass, field
from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from sales.domain import sales
from sales.invoice.invoice import Invoice, InvoiceStatus
from sales.order.repository import SCAN_LIMIT
from sales.shared.payloads import as_utc


@dataclass
class InvoiceFilter:
    statuses: list[str] = field(default_factory=list)
    customer_email: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None

    def matches(self, invoice: Invoice) -> bool:
        if self.statuses and invoice.status not in self.statuses:
            return False
        if self.customer_email and invoice.customer_email != self.customer_email:
            return False
        issued = as_utc(invoice.issue_date)
        if self.date_from and issued < as_utc(self.date_from):
            return False
        if self.date_to and issued > as_utc(self.date_to):
            return False
        if self.search:
            needle = self.search.lower()
            fields = (invoice.invoice_number, invoice.customer_name, invoice.customer_email, invoice.order_number)
            if not any(needle in (value or "").lower() for value in fields):
                return False
        return True


@dataclass(frozen=True)
class InvoiceStats:
    total: int = 0
    paid: int = 0
    sent: int = 0
    overdue: int = 0
    total_amount: float = 0.0
    paid_amount: float = 0.0
    outstanding_amount: float = 0.0


def invoice_stats(invoices: list[Invoice]) -> InvoiceStats:
    def count(status):
        return sum(1 for i in invoices if i.status == status.value)

    return InvoiceStats(
        total=len(invoices),
        paid=count(InvoiceStatus.PAID),
        sent=count(InvoiceStatus.SENT),
        overdue=count(InvoiceStatus.OVERDUE),
        total_amount=round(sum(i.total for i in invoices), 2),
        paid_amount=round(sum(i.total for i in invoices if i.status == InvoiceStatus.PAID.value), 2),
        outstanding_amount=round(sum(i.amount_due for i in invoices), 2),
    )


@sales.repository(part_of=Invoice)
class InvoiceRepository:
    def _scan(self, **criteria) -> list[Invoice]:
        query = self._dao.query
        if criteria:
            query = query.filter(**criteria)
        return query.limit(SCAN_LIMIT).all().items

    def find_by_id(self, invoice_id: str) -> Invoice | None:
        try:
            return self.get(invoice_id)
        except ObjectNotFoundError:
            return None

    def find_by_number(self, invoice_number: str) -> Invoice | None:
        found = self._scan(invoice_number=invoice_number)
        return found[0] if found else None

    def find_by_order_id(self, order_id: str) -> Invoice | None:
        found = self._scan(order_id=str(order_id))
        return found[0] if found else None

    def find_invoices(self, invoice_filter: InvoiceFilter | None = None) -> list[Invoice]:
        """Invoices matching the filter, newest issue date first."""
        invoice_filter = invoice_filter or InvoiceFilter()
        invoices = [i for i in self._scan() if invoice_filter.matches(i)]
        return sorted(invoices, key=lambda i: (as_utc(i.issue_date), i.invoice_number), reverse=True)

    def past_due(self, as_of: datetime) -> list[Invoice]:
        return [i for i in self._scan(status=InvoiceStatus.SENT.value) if i.is_past_due(as_of)]

    def stats(self, invoice_filter: InvoiceFilter | None = None) -> InvoiceStats:
        return invoice_stats(self.find_invoices(invoice_filter))
