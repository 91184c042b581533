"""Tests for the Quote aggregate lifecycle."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from sales.quote.events import QuoteConverted, QuoteCreated, QuoteExpired, QuoteRejected
from sales.quote.quote import Quote, QuoteStatus, validate_quote


def _draft(**overrides):
    defaults = {
        "quote_number": "Q-2026-001",
        "customer_name": "Otieno Ochieng",
        "customer_email": "otieno@example.com",
        "items_data": [
            {"product_name": "Branded Mugs", "variant_name": "White", "quantity": 50, "unit_price": 450.0},
            {"product_name": "Stickers", "quantity": 200, "unit_price": 15.0},
        ],
        "tax": 0.0,
        "shipping": 500.0,
    }
    defaults.update(overrides)
    return Quote.draft(**defaults)


class TestQuoteDraft:
    def test_starts_as_draft(self):
        assert _draft().status == QuoteStatus.DRAFT.value

    def test_total_includes_shipping_and_tax(self):
        quote = _draft(tax=120.0)
        assert quote.subtotal == 25500.0
        assert quote.total == 25500.0 + 120.0 + 500.0

    def test_default_validity_is_thirty_days(self):
        quote = _draft()
        assert quote.valid_until - quote.quote_date == timedelta(days=30)

    def test_raises_quote_created(self):
        quote = _draft()
        assert isinstance(quote._events[0], QuoteCreated)
        assert quote._events[0].quote_number == "Q-2026-001"


class TestQuoteTransitions:
    def test_send_accept(self):
        quote = _draft()
        quote.send()
        quote.accept()
        assert quote.status == QuoteStatus.ACCEPTED.value

    def test_cannot_accept_a_draft(self):
        quote = _draft()
        with pytest.raises(ValidationError):
            quote.accept()

    def test_cannot_accept_after_validity(self):
        quote = _draft(valid_until=datetime.now(UTC) - timedelta(days=1))
        quote.send()
        with pytest.raises(ValidationError) as exc:
            quote.accept()
        assert "valid_until" in exc.value.messages

    def test_reject_records_reason(self):
        quote = _draft()
        quote.send()
        quote.reject("Too expensive")
        assert quote.status == QuoteStatus.REJECTED.value
        assert quote.rejection_reason == "Too expensive"
        assert isinstance(quote._events[-1], QuoteRejected)

    def test_draft_can_be_rejected(self):
        quote = _draft()
        quote.reject()
        assert quote.status == QuoteStatus.REJECTED.value

    def test_accepted_quote_cannot_be_rejected(self):
        quote = _draft()
        quote.send()
        quote.accept()
        with pytest.raises(ValidationError):
            quote.reject()

    def test_mark_converted_links_order(self):
        quote = _draft()
        quote.send()
        quote.accept()
        quote.mark_converted("order-123")
        assert quote.status == QuoteStatus.CONVERTED.value
        assert quote.converted_to_order_id == "order-123"
        assert isinstance(quote._events[-1], QuoteConverted)

    def test_only_accepted_quotes_convert(self):
        quote = _draft()
        with pytest.raises(ValidationError):
            quote.mark_converted("order-123")


class TestQuoteExpiry:
    def test_expires_after_valid_until(self):
        quote = _draft(valid_until=datetime(2026, 1, 31, tzinfo=UTC))
        assert quote.expire(as_of=datetime(2026, 2, 1, tzinfo=UTC)) is True
        assert quote.status == QuoteStatus.EXPIRED.value
        assert isinstance(quote._events[-1], QuoteExpired)

    def test_not_expired_while_valid(self):
        quote = _draft(valid_until=datetime(2026, 1, 31, tzinfo=UTC))
        assert quote.expire(as_of=datetime(2026, 1, 30, tzinfo=UTC)) is False
        assert quote.status == QuoteStatus.DRAFT.value

    def test_expiry_is_idempotent(self):
        quote = _draft(valid_until=datetime(2026, 1, 31, tzinfo=UTC))
        as_of = datetime(2026, 2, 1, tzinfo=UTC)
        quote.expire(as_of=as_of)
        assert quote.expire(as_of=as_of) is False

    def test_terminal_quotes_never_expire(self):
        quote = _draft(valid_until=datetime(2026, 1, 31, tzinfo=UTC))
        quote.reject()
        assert quote.expire(as_of=datetime(2026, 2, 1, tzinfo=UTC)) is False
        assert quote.status == QuoteStatus.REJECTED.value


class TestValidateQuote:
    def test_valid(self):
        data = {
            "customer_name": "Otieno",
            "customer_email": "otieno@example.com",
            "items": [{"product_name": "Mugs", "quantity": 1, "unit_price": 450}],
        }
        assert validate_quote(data) == []

    def test_phone_is_optional_but_name_is_not(self):
        errors = validate_quote({"customer_name": "", "customer_email": "otieno@example.com", "items": []})
        assert errors == ["Customer name is required", "At least one item is required"]
