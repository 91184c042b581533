"""BDD tests for M-Pesa order payment."""

import json

from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

from sales.payment.mpesa import InitiateMpesaPayment, ReconcileMpesaCallback
from sales.payment.offline import RecordOfflinePayment

scenarios("features/mpesa_payment.feature")


def _push(order, phone):
    return current_domain.process(
        InitiateMpesaPayment(phone_number=phone, amount=order.total, reference=order.order_number, order_id=order.id),
        asynchronous=False,
    )


def _deliver(body):
    return current_domain.process(ReconcileMpesaCallback(raw_callback=json.dumps(body)), asynchronous=False)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the order was paid in cash")
def _(order):
    current_domain.process(RecordOfflinePayment(order_id=order.id, payment_method="cash"), asynchronous=False)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('an STK push is sent to "{phone}" for the order'), target_fixture="checkout_request_id")
def _(order, phone):
    result = _push(order, phone)
    assert result.success
    return result.checkout_request_id


@when(parsers.cfparse('an STK push is attempted to "{phone}" for the order'))
def _(order, phone, error):
    try:
        _push(order, phone)
    except ValidationError as exc:
        error["exc"] = exc


@when(
    parsers.cfparse('M-Pesa confirms payment of {amount:d} with receipt "{receipt}"'),
    target_fixture="callback_outcome",
)
def _(checkout_request_id, amount, receipt, mpesa_callback_body):
    return _deliver(mpesa_callback_body(checkout_request_id, amount=amount, receipt=receipt))


@when(
    parsers.cfparse("M-Pesa reports the payment failed with code {code:d}"),
    target_fixture="callback_outcome",
)
def _(checkout_request_id, code, mpesa_callback_body):
    return _deliver(mpesa_callback_body(checkout_request_id, result_code=code))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the callback outcome is "{expected}"'))
def _(callback_outcome, expected):
    assert callback_outcome == expected
