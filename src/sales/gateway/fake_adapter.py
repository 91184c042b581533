"""Configurable fake payment gateways for development and testing.

Neither fake talks to the network. Both can be told to succeed or fail at
runtime, and both record every call they receive so tests can assert on
what would have been sent to the provider.
"""

import json
from uuid import uuid4

from sales.gateway.mpesa_adapter import INVALID_PHONE_MESSAGE, normalize_phone_number, whole_shillings
from sales.gateway.port import (
    CheckoutGateway,
    CheckoutSessionResult,
    MobileMoneyGateway,
    StkPushResult,
    TransactionStatusResult,
    WebhookSignatureError,
)
from sales.gateway.stripe_adapter import CHECKOUT_SOURCE

TEST_SIGNATURE = "test-signature"


class FakeMpesaGateway(MobileMoneyGateway):
    """Simulates Daraja STK pushes."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Request cancelled by user"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Request cancelled by user") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def initiate_stk_push(
        self,
        phone_number: str,
        amount: float,
        account_reference: str,
        transaction_desc: str,
        callback_url: str | None = None,
    ) -> StkPushResult:
        self.calls.append(
            {
                "method": "initiate_stk_push",
                "phone_number": phone_number,
                "amount": amount,
                "account_reference": account_reference,
                "transaction_desc": transaction_desc,
                "callback_url": callback_url,
            }
        )

        formatted_phone = normalize_phone_number(phone_number)
        if not formatted_phone:
            return StkPushResult(success=False, message=INVALID_PHONE_MESSAGE, error="InvalidPhoneNumber")

        if not self.should_succeed:
            return StkPushResult(
                success=False,
                message=self.failure_reason,
                response_code="1",
                error="1",
            )

        return StkPushResult(
            success=True,
            message="M-Pesa STK Push initiated successfully",
            checkout_request_id=f"ws_CO_{uuid4().hex[:20]}",
            merchant_request_id=f"{uuid4().hex[:5]}-{uuid4().hex[:8]}-1",
            response_code="0",
            response_description="Success. Request accepted for processing",
            customer_message=f"Success. Request of KES {whole_shillings(amount)} accepted for processing",
        )

    def query_transaction_status(self, checkout_request_id: str) -> TransactionStatusResult:
        self.calls.append({"method": "query_transaction_status", "checkout_request_id": checkout_request_id})
        if not self.should_succeed:
            return TransactionStatusResult(
                success=False,
                message="Failed to query transaction status",
                error=self.failure_reason,
            )
        return TransactionStatusResult(
            success=True,
            message="Transaction status retrieved successfully",
            data={
                "ResponseCode": "0",
                "ResultCode": "0",
                "ResultDesc": "The service request is processed successfully.",
                "CheckoutRequestID": checkout_request_id,
            },
        )


class FakeStripeGateway(CheckoutGateway):
    """Simulates Stripe hosted checkout. Webhooks verify against ``test-signature``."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Failed to create checkout session"
        self.calls: list[dict] = []
        self.sessions: dict[str, CheckoutSessionResult] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Failed to create checkout session") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CheckoutSessionResult:
        self.calls.append(
            {
                "method": "create_checkout_session",
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
                "metadata": metadata,
            }
        )
        if not self.should_succeed:
            return CheckoutSessionResult(success=False, error=self.failure_reason)

        session_id = f"cs_test_{uuid4().hex[:24]}"
        result = CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=f"https://checkout.stripe.com/c/pay/{session_id}",
            payment_status="unpaid",
            amount_total=sum(
                item.get("price_data", {}).get("unit_amount", 0) * item.get("quantity", 1) for item in line_items
            ),
            metadata={"source": CHECKOUT_SOURCE, **(metadata or {})},
        )
        self.sessions[session_id] = result
        return result

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        self.calls.append({"method": "retrieve_checkout_session", "session_id": session_id})
        if session_id in self.sessions:
            return self.sessions[session_id]
        return CheckoutSessionResult(success=False, session_id=session_id, error="Failed to retrieve checkout session")

    def construct_event(self, payload: bytes | str, signature: str) -> dict:
        if signature != TEST_SIGNATURE:
            raise WebhookSignatureError("Invalid webhook signature")
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise WebhookSignatureError("Invalid webhook payload") from exc
