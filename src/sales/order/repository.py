"""Order lookups, filtering and statistics."""

from dataclasses import dataclass, field
from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from sales.domain import sales
from sales.order.order import IN_PRODUCTION_STATUSES, Order, OrderStatus, PaymentStatus
from sales.shared.payloads import as_utc

# Upper bound for full scans; the memory provider caps unbounded queries at 100
SCAN_LIMIT = 10_000


@dataclass
class OrderFilter:
    """Criteria for listing orders. Empty collections and None mean "any"."""

    statuses: list[str] = field(default_factory=list)
    payment_statuses: list[str] = field(default_factory=list)
    payment_methods: list[str] = field(default_factory=list)
    customer_id: str | None = None
    customer_email: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None

    def matches(self, order: Order) -> bool:
        if self.statuses and order.status not in self.statuses:
            return False
        if self.payment_statuses and order.payment_status not in self.payment_statuses:
            return False
        if self.payment_methods and order.payment_method not in self.payment_methods:
            return False
        if self.customer_id and str(order.customer_id) != str(self.customer_id):
            return False
        if self.customer_email and order.customer_email != self.customer_email:
            return False

        created_at = as_utc(order.created_at)
        if self.date_from and created_at < as_utc(self.date_from):
            return False
        if self.date_to and created_at > as_utc(self.date_to):
            return False

        if self.search:
            needle = self.search.lower()
            haystack = (order.order_number, order.customer_name, order.customer_email)
            if not any(needle in (value or "").lower() for value in haystack) and self.search not in (
                order.customer_phone or ""
            ):
                return False
        return True


@dataclass(frozen=True)
class OrderStats:
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    processing: int = 0
    completed: int = 0
    cancelled: int = 0
    total_revenue: float = 0.0
    average_order_value: float = 0.0


def order_stats(orders: list[Order]) -> OrderStats:
    """Bucket orders by status. Revenue only counts paid orders."""
    statuses = [OrderStatus(order.status) for order in orders]
    revenue = round(sum(o.total for o in orders if o.payment_status == PaymentStatus.PAID.value), 2)
    total = len(orders)
    return OrderStats(
        total=total,
        pending=statuses.count(OrderStatus.PENDING),
        confirmed=statuses.count(OrderStatus.CONFIRMED),
        processing=sum(1 for status in statuses if status in IN_PRODUCTION_STATUSES),
        completed=statuses.count(OrderStatus.DELIVERED),
        cancelled=statuses.count(OrderStatus.CANCELLED),
        total_revenue=revenue,
        average_order_value=round(revenue / total, 2) if total else 0.0,
    )


def newest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda o: (as_utc(o.created_at), o.order_number), reverse=True)


@sales.repository(part_of=Order)
class OrderRepository:
    def _scan(self, **criteria) -> list[Order]:
        query = self._dao.query
        if criteria:
            query = query.filter(**criteria)
        return query.limit(SCAN_LIMIT).all().items

    def find_by_id(self, order_id: str) -> Order | None:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            return None

    def find_by_number(self, order_number: str) -> Order | None:
        found = self._scan(order_number=order_number)
        return found[0] if found else None

    def find_by_payment_reference(self, reference: str) -> Order | None:
        found = self._scan(payment_reference=reference)
        return found[0] if found else None

    def find_orders(self, order_filter: OrderFilter | None = None) -> list[Order]:
        """Orders matching the filter, newest created first."""
        order_filter = order_filter or OrderFilter()
        criteria = {}
        if order_filter.customer_email:
            criteria["customer_email"] = order_filter.customer_email
        candidates = self._scan(**criteria)
        return newest_first([order for order in candidates if order_filter.matches(order)])

    def customer_orders(self, customer_email: str) -> list[Order]:
        return self.find_orders(OrderFilter(customer_email=customer_email))

    def stats(self, order_filter: OrderFilter | None = None) -> OrderStats:
        return order_stats(self.find_orders(order_filter))
