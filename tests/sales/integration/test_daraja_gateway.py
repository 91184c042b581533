"""Tests for the Daraja adapter against a mocked Safaricom API."""

import base64
import json

import httpx

from sales.config import MpesaSettings
from sales.gateway.mpesa_adapter import (
    INVALID_PHONE_MESSAGE,
    OAUTH_PATH,
    STK_PUSH_PATH,
    TRANSACTION_STATUS_PATH,
    DarajaGateway,
)

SETTINGS = MpesaSettings(
    consumer_key="key",
    consumer_secret="secret",
    pass_key="passkey",
    shortcode="174379",
    callback_url="https://brandsonmedia.co.ke/payments/mpesa/callback",
)


class DarajaStub:
    """Records requests and answers like the sandbox."""

    def __init__(self, stk_status=200, stk_body=None, status_body=None):
        self.requests: list[httpx.Request] = []
        self.stk_status = stk_status
        self.stk_body = stk_body or {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": "ws_CO_191220191020363925",
            "ResponseCode": "0",
            "ResponseDescription": "Success. Request accepted for processing",
            "CustomerMessage": "Success. Request accepted for processing",
        }
        self.status_body = status_body or {"ResponseCode": "0", "ResultCode": "0", "ResultDesc": "Processed"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == OAUTH_PATH:
            return httpx.Response(200, json={"access_token": "token-abc", "expires_in": "3599"})
        if request.url.path == STK_PUSH_PATH:
            return httpx.Response(self.stk_status, json=self.stk_body)
        if request.url.path == TRANSACTION_STATUS_PATH:
            return httpx.Response(200, json=self.status_body)
        return httpx.Response(404)

    def body_of(self, path):
        request = next(r for r in self.requests if r.url.path == path)
        return json.loads(request.content)


def _gateway(stub):
    return DarajaGateway(SETTINGS, transport=httpx.MockTransport(stub))


class TestStkPush:
    def test_success(self):
        stub = DarajaStub()
        result = _gateway(stub).initiate_stk_push("0712345678", 6000, "BRD202610171000", "Order BRD202610171000")
        assert result.success is True
        assert result.checkout_request_id == "ws_CO_191220191020363925"
        assert result.merchant_request_id == "29115-34620561-1"
        assert result.response_code == "0"

    def test_fetches_token_with_basic_auth(self):
        stub = DarajaStub()
        _gateway(stub).initiate_stk_push("0712345678", 6000, "REF", "Desc")
        oauth = stub.requests[0]
        assert oauth.url.path == OAUTH_PATH
        assert oauth.url.params["grant_type"] == "client_credentials"
        expected = base64.b64encode(b"key:secret").decode()
        assert oauth.headers["Authorization"] == f"Basic {expected}"

    def test_request_body(self):
        stub = DarajaStub()
        _gateway(stub).initiate_stk_push("+254 712 345 678", 99.5, "BRD202610171000XYZ", "Order BRD202610171000")
        body = stub.body_of(STK_PUSH_PATH)
        assert body["BusinessShortCode"] == "174379"
        assert body["TransactionType"] == "CustomerPayBillOnline"
        assert body["Amount"] == 100
        assert body["PartyA"] == "254712345678"
        assert body["PartyB"] == "174379"
        assert body["PhoneNumber"] == "254712345678"
        assert body["CallBackURL"] == SETTINGS.callback_url
        assert body["AccountReference"] == "BRD202610171"
        assert body["TransactionDesc"] == "Order BRD2026"
        decoded = base64.b64decode(body["Password"]).decode()
        assert decoded == f"174379passkey{body['Timestamp']}"

    def test_bearer_token_on_stk_request(self):
        stub = DarajaStub()
        _gateway(stub).initiate_stk_push("0712345678", 10, "REF", "Desc")
        stk = next(r for r in stub.requests if r.url.path == STK_PUSH_PATH)
        assert stk.headers["Authorization"] == "Bearer token-abc"

    def test_invalid_phone_never_calls_provider(self):
        stub = DarajaStub()
        result = _gateway(stub).initiate_stk_push("12345", 10, "REF", "Desc")
        assert result.success is False
        assert result.error == "InvalidPhoneNumber"
        assert result.message == INVALID_PHONE_MESSAGE
        assert stub.requests == []

    def test_non_zero_response_code_is_a_failure(self):
        stub = DarajaStub(stk_body={"ResponseCode": "1", "ResponseDescription": "Rejected"})
        result = _gateway(stub).initiate_stk_push("0712345678", 10, "REF", "Desc")
        assert result.success is False
        assert result.message == "Rejected"
        assert result.error == "1"

    def test_http_error_is_normalized(self):
        stub = DarajaStub(stk_status=400, stk_body={"errorMessage": "Bad Request - Invalid Amount"})
        result = _gateway(stub).initiate_stk_push("0712345678", 10, "REF", "Desc")
        assert result.success is False
        assert result.message == "Failed to initiate M-Pesa payment"
        assert result.error == "Bad Request - Invalid Amount"

    def test_network_error_is_normalized(self):
        def offline(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = DarajaGateway(SETTINGS, transport=httpx.MockTransport(offline))
        result = gateway.initiate_stk_push("0712345678", 10, "REF", "Desc")
        assert result.success is False
        assert result.message == "Failed to initiate M-Pesa payment"
        assert "connection refused" in result.error


class TestTransactionStatus:
    def test_returns_provider_data(self):
        stub = DarajaStub()
        result = _gateway(stub).query_transaction_status("ws_CO_191220191020363925")
        assert result.success is True
        assert result.data["ResultCode"] == "0"
        body = stub.body_of(TRANSACTION_STATUS_PATH)
        assert body["CheckoutRequestID"] == "ws_CO_191220191020363925"

    def test_failure_is_normalized(self):
        def failing(request):
            return httpx.Response(500, json={"errorMessage": "Internal error"})

        gateway = DarajaGateway(SETTINGS, transport=httpx.MockTransport(failing))
        result = gateway.query_transaction_status("ws_CO_1")
        assert result.success is False
        assert result.message == "Failed to query transaction status"


class TestConfiguration:
    def test_configured_with_credentials(self):
        assert DarajaGateway(SETTINGS).configured is True

    def test_not_configured_without_credentials(self):
        gateway = DarajaGateway(MpesaSettings())
        assert gateway.configured is False
        assert "MPESA_CONSUMER_KEY" in gateway.settings.missing()

    def test_base_url_follows_environment(self):
        assert MpesaSettings(environment="production").base_url == "https://api.safaricom.co.ke"
        assert MpesaSettings().base_url == "https://sandbox.safaricom.co.ke"
