import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers

from sales.api.errors import register_api_error_handler
from sales.api.routes import invoice_router, order_router, payment_router, quote_router, receipt_router


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (order_router, quote_router, receipt_router, invoice_router, payment_router):
        app.include_router(router)
    register_exception_handlers(app)
    register_api_error_handler(app)
    return TestClient(app)


ORDER_PAYLOAD = {
    "customerEmail": "wanjiku@example.com",
    "customerName": "Wanjiku Kamau",
    "customerPhone": "0712345678",
    "items": [
        {"productName": "Business Cards", "quantity": 500, "unitPrice": 10.0},
        {"productName": "A5 Flyers", "quantity": 100, "unitPrice": 10.0},
    ],
}


@pytest.fixture()
def order_payload():
    return {**ORDER_PAYLOAD, "items": [dict(item) for item in ORDER_PAYLOAD["items"]]}


@pytest.fixture()
def created_order(client, order_payload):
    """An order placed through the public endpoint; returns its JSON."""
    response = client.post("/orders", json=order_payload)
    assert response.status_code == 201
    return response.json()["data"]
