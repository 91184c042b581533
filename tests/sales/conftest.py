"""Shared fixtures for the sales tests."""

import json

import pytest
from protean import current_domain

from sales.api.auth import StaticTokenResolver, set_resolver
from sales.gateway import set_mpesa_gateway, set_stripe_gateway
from sales.gateway.fake_adapter import FakeMpesaGateway, FakeStripeGateway
from sales.order.order import Order
from sales.order.placement import PlaceOrder

STAFF_TOKEN = "staff-token"
CUSTOMER_TOKEN = "customer-token"
OTHER_CUSTOMER_TOKEN = "other-customer-token"

CUSTOMER_EMAIL = "wanjiku@example.com"

DEFAULT_ITEMS = [
    {"product_name": "Business Cards", "quantity": 500, "unit_price": 10.0},
    {"product_name": "A5 Flyers", "quantity": 100, "unit_price": 10.0},
]


@pytest.fixture()
def place_order():
    """Place an order through the command path; returns the persisted Order."""

    def _place(**overrides):
        fields = {
            "customer_email": CUSTOMER_EMAIL,
            "customer_name": "Wanjiku Kamau",
            "customer_phone": "0712345678",
            "items": DEFAULT_ITEMS,
        }
        fields.update(overrides)
        fields["items"] = json.dumps(fields["items"])
        for name in ("shipping_address", "billing_address"):
            if isinstance(fields.get(name), dict):
                fields[name] = json.dumps(fields[name])

        order_id = current_domain.process(PlaceOrder(**fields), asynchronous=False)
        return current_domain.repository_for(Order).get(order_id)

    return _place


@pytest.fixture()
def fake_mpesa():
    gateway = FakeMpesaGateway()
    set_mpesa_gateway(gateway)
    return gateway


@pytest.fixture()
def fake_stripe():
    gateway = FakeStripeGateway()
    set_stripe_gateway(gateway)
    return gateway


@pytest.fixture()
def api_users():
    set_resolver(
        StaticTokenResolver(
            {
                STAFF_TOKEN: {"id": "staff-1", "email": "staff@brandsonmedia.co.ke", "role": "staff"},
                CUSTOMER_TOKEN: {"id": "cust-1", "email": CUSTOMER_EMAIL, "role": "customer"},
                OTHER_CUSTOMER_TOKEN: {"id": "cust-2", "email": "otieno@example.com", "role": "customer"},
            }
        )
    )


@pytest.fixture()
def staff_headers(api_users):
    return {"Authorization": f"Bearer {STAFF_TOKEN}"}


@pytest.fixture()
def customer_headers(api_users):
    return {"Authorization": f"Bearer {CUSTOMER_TOKEN}"}


@pytest.fixture()
def other_customer_headers(api_users):
    return {"Authorization": f"Bearer {OTHER_CUSTOMER_TOKEN}"}


def stk_callback(checkout_request_id, result_code=0, amount=6000, receipt="QGH7XK2LMN", **extra):
    """Build a Daraja STK callback body."""
    callback = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Request cancelled by user",
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "TransactionDate", "Value": 20261017101530},
                {"Name": "PhoneNumber", "Value": 254712345678},
            ]
        }
    callback.update(extra)
    return {"Body": {"stkCallback": callback}}


def stripe_event(event_id, session_id, event_type="checkout.session.completed", order_id=None, **session):
    """Build a Stripe webhook event wrapping a checkout session."""
    data = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid",
        "amount_total": 600000,
        "payment_intent": "pi_3Q0abc",
        "customer_email": CUSTOMER_EMAIL,
        "metadata": {"source": "brandson-website", **({"order_id": order_id} if order_id else {})},
    }
    data.update(session)
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": data}}


@pytest.fixture()
def mpesa_callback_body():
    return stk_callback


@pytest.fixture()
def stripe_event_body():
    return stripe_event
