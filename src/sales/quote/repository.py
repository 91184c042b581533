"""Quote lookups and filtering."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError

from sales.domain import sales
from sales.order.repository import SCAN_LIMIT
from sales.quote.quote import TERMINAL_STATUSES, Quote, QuoteStatus
from sales.shared.payloads import as_utc

_OPEN_STATUSES = [status.value for status in QuoteStatus if status not in TERMINAL_STATUSES]


@dataclass
class QuoteFilter:
    statuses: list[str] = field(default_factory=list)
    customer_id: str | None = None
    customer_email: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None

    def matches(self, quote: Quote) -> bool:
        if self.statuses and quote.status not in self.statuses:
            return False
        if self.customer_id and str(quote.customer_id) != str(self.customer_id):
            return False
        if self.customer_email and quote.customer_email != self.customer_email:
            return False
        quote_date = as_utc(quote.quote_date)
        if self.date_from and quote_date < as_utc(self.date_from):
            return False
        if self.date_to and quote_date > as_utc(self.date_to):
            return False
        if self.search:
            needle = self.search.lower()
            fields = (quote.quote_number, quote.customer_name, quote.customer_email)
            if not any(needle in (value or "").lower() for value in fields):
                return False
        return True


@sales.repository(part_of=Quote)
class QuoteRepository:
    def _scan(self, **criteria) -> list[Quote]:
        query = self._dao.query
        if criteria:
            query = query.filter(**criteria)
        return query.limit(SCAN_LIMIT).all().items

    def find_by_id(self, quote_id: str) -> Quote | None:
        try:
            return self.get(quote_id)
        except ObjectNotFoundError:
            return None

    def find_by_number(self, quote_number: str) -> Quote | None:
        found = self._scan(quote_number=quote_number)
        return found[0] if found else None

    def find_quotes(self, quote_filter: QuoteFilter | None = None) -> list[Quote]:
        """Quotes matching the filter, newest first."""
        quote_filter = quote_filter or QuoteFilter()
        quotes = [quote for quote in self._scan() if quote_filter.matches(quote)]
        return sorted(quotes, key=lambda q: (as_utc(q.quote_date), q.quote_number), reverse=True)

    def customer_quotes(self, customer_id: str) -> list[Quote]:
        return self.find_quotes(QuoteFilter(customer_id=customer_id))

    def active_quotes(self, as_of: datetime | None = None) -> list[Quote]:
        """Sent or accepted quotes that are still within their validity period."""
        as_of = as_of or datetime.now(UTC)
        live = self.find_quotes(QuoteFilter(statuses=[QuoteStatus.SENT.value, QuoteStatus.ACCEPTED.value]))
        return [quote for quote in live if not quote.is_past_validity(as_of)]

    def expirable(self, as_of: datetime | None = None) -> list[Quote]:
        """Open quotes whose validity date has already passed."""
        as_of = as_of or datetime.now(UTC)
        open_quotes = self.find_quotes(QuoteFilter(statuses=_OPEN_STATUSES))
        return [quote for quote in open_quotes if quote.is_past_validity(as_of)]
