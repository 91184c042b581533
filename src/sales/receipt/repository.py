"""Receipt lookups, filtering and statistics."""

from dataclasses import dataclass, field
from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from sales.domain import sales
from sales.order.repository import SCAN_LIMIT
from sales.receipt.receipt import Receipt, ReceiptStatus
from sales.shared.payloads import as_utc


@dataclass
class ReceiptFilter:
    statuses: list[str] = field(default_factory=list)
    payment_methods: list[str] = field(default_factory=list)
    order_id: str | None = None
    customer_id: str | None = None
    customer_email: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None

    def matches(self, receipt: Receipt) -> bool:
        if self.statuses and receipt.status not in self.statuses:
            return False
        if self.payment_methods and receipt.payment_method not in self.payment_methods:
            return False
        if self.order_id and str(receipt.order_id) != str(self.order_id):
            return False
        if self.customer_id and str(receipt.customer_id) != str(self.customer_id):
            return False
        if self.customer_email and receipt.customer_email != self.customer_email:
            return False
        paid_at = as_utc(receipt.payment_date)
        if self.date_from and paid_at < as_utc(self.date_from):
            return False
        if self.date_to and paid_at > as_utc(self.date_to):
            return False
        if self.search:
            needle = self.search.lower()
            fields = (receipt.receipt_number, receipt.customer_name, receipt.customer_email, receipt.transaction_id)
            if not any(needle in (value or "").lower() for value in fields):
                return False
        return True


@dataclass(frozen=True)
class ReceiptStats:
    total_receipts: int = 0
    completed: int = 0
    refunded: int = 0
    total_revenue: float = 0.0
    total_refunded: float = 0.0
    net_revenue: float = 0.0


def receipt_stats(receipts: list[Receipt]) -> ReceiptStats:
    """Money received (completed and later-refunded receipts) less refunds paid out."""
    settled = [r for r in receipts if r.status in (ReceiptStatus.COMPLETED.value, ReceiptStatus.REFUNDED.value)]
    refunded = [r for r in receipts if r.status == ReceiptStatus.REFUNDED.value]
    revenue = round(sum(r.total for r in settled), 2)
    refunded_total = round(sum(r.refund_amount or 0.0 for r in refunded), 2)
    return ReceiptStats(
        total_receipts=len(receipts),
        completed=sum(1 for r in receipts if r.status == ReceiptStatus.COMPLETED.value),
        refunded=len(refunded),
        total_revenue=revenue,
        total_refunded=refunded_total,
        net_revenue=round(revenue - refunded_total, 2),
    )


@sales.repository(part_of=Receipt)
class ReceiptRepository:
    def _scan(self, **criteria) -> list[Receipt]:
        query = self._dao.query
        if criteria:
            query = query.filter(**criteria)
        return query.limit(SCAN_LIMIT).all().items

    def find_by_id(self, receipt_id: str) -> Receipt | None:
        try:
            return self.get(receipt_id)
        except ObjectNotFoundError:
            return None

    def find_by_number(self, receipt_number: str) -> Receipt | None:
        found = self._scan(receipt_number=receipt_number)
        return found[0] if found else None

    def for_order(self, order_id: str) -> list[Receipt]:
        return self.find_receipts(ReceiptFilter(order_id=str(order_id)))

    def find_by_transaction(self, transaction_id: str) -> Receipt | None:
        found = self._scan(transaction_id=transaction_id)
        return found[0] if found else None

    def find_receipts(self, receipt_filter: ReceiptFilter | None = None) -> list[Receipt]:
        """Receipts matching the filter, most recent payment first."""
        receipt_filter = receipt_filter or ReceiptFilter()
        receipts = [r for r in self._scan() if receipt_filter.matches(r)]
        return sorted(receipts, key=lambda r: (as_utc(r.payment_date), r.receipt_number), reverse=True)

    def stats(self, receipt_filter: ReceiptFilter | None = None) -> ReceiptStats:
        return receipt_stats(self.find_receipts(receipt_filter))
