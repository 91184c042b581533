"""BDD tests for quote conversion."""

import json
from datetime import timedelta

from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

from sales.order.order import Order
from sales.quote.conversion import ConvertQuoteToOrder
from sales.quote.expiry import ExpireQuotes
from sales.quote.lifecycle import AcceptQuote, CreateQuote, RejectQuote, SendQuote
from sales.quote.quote import Quote

scenarios("features/quote_conversion.feature")


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _quote(quote_id):
    return current_domain.repository_for(Quote).get(quote_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('staff prepared a quote for {quantity:d} "{product}" at {price:f} each with {shipping:f} delivery'),
    target_fixture="quote_id",
)
def _(quantity, product, price, shipping):
    return _process(
        CreateQuote(
            customer_name="Kamau Njoroge",
            customer_email="kamau@example.com",
            customer_phone="0733444555",
            items=json.dumps([{"product_name": product, "quantity": quantity, "unit_price": price}]),
            shipping=shipping,
        )
    )


@given("the quote was sent")
def _(quote_id):
    _process(SendQuote(quote_id=quote_id))


@given("the customer accepted the quote")
def _(quote_id):
    _process(AcceptQuote(quote_id=quote_id))


@given("the customer rejected the quote")
def _(quote_id):
    _process(RejectQuote(quote_id=quote_id, reason="Over budget"))


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("staff convert the quote", target_fixture="order")
def _(quote_id, error):
    try:
        order_id = _process(ConvertQuoteToOrder(quote_id=quote_id))
    except ValidationError as exc:
        error["exc"] = exc
        return None
    return current_domain.repository_for(Order).get(order_id)


@when("the expiry sweep runs after the quote's validity")
def _(quote_id):
    _process(ExpireQuotes(as_of=_quote(quote_id).valid_until + timedelta(minutes=1)))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the quote status is "{status}"'))
def _(quote_id, status):
    assert _quote(quote_id).status == status


@then(parsers.cfparse("the new order totals {total:f}"))
def _(order, quote_id, total):
    assert order.total == total
    assert order.quote_id == quote_id
    assert _quote(quote_id).converted_to_order_id == order.id
