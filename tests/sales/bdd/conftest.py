"""Shared BDD fixtures and step definitions for the sales domain."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from sales.invoice.invoice import Invoice
from sales.order.order import Order
from sales.receipt.receipt import Receipt


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture(autouse=True)
def gateways(fake_mpesa, fake_stripe):
    return {"mpesa": fake_mpesa, "stripe": fake_stripe}


def _reload(order):
    return current_domain.repository_for(Order).get(order.id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a customer has placed an order for {quantity:d} "{product}" at {price:f} each'),
    target_fixture="order",
)
def _(place_order, quantity, product, price):
    return place_order(items=[{"product_name": product, "quantity": quantity, "unit_price": price}])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order payment status is "{status}"'))
def _(order, status):
    assert _reload(order).payment_status == status


@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert _reload(order).status == status


@then(parsers.cfparse("the order has {count:d} receipt"))
def _(order, count):
    assert len(current_domain.repository_for(Receipt).for_order(order.id)) == count


@then(parsers.cfparse("the order has {count:d} receipts"))
def _(order, count):
    assert len(current_domain.repository_for(Receipt).for_order(order.id)) == count


@then(parsers.cfparse('the order invoice is "{status}"'))
def _(order, status):
    invoice = current_domain.repository_for(Invoice).find_by_order_id(order.id)
    assert invoice is not None
    assert invoice.status == status


@then("the order has no invoice")
def _(order):
    assert current_domain.repository_for(Invoice).find_by_order_id(order.id) is None


@then("the action fails with a validation error")
def _(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)
