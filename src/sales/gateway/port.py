"""Payment provider ports (abstract interfaces).

Two bridges leave the service: mobile money through Safaricom's Daraja API
and card checkout through Stripe. Both are expressed as ports so the
reconciliation handlers never see provider SDKs, and tests swap in the fake
adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class WebhookSignatureError(Exception):
    """A webhook payload failed signature verification."""


@dataclass(frozen=True)
class StkPushResult:
    """Outcome of an STK push initiation."""

    success: bool
    message: str = ""
    checkout_request_id: str | None = None
    merchant_request_id: str | None = None
    response_code: str | None = None
    response_description: str | None = None
    customer_message: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TransactionStatusResult:
    """Raw answer of a transaction status query."""

    success: bool
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class CheckoutSessionResult:
    """A hosted checkout session, or why one could not be created."""

    success: bool
    session_id: str | None = None
    url: str | None = None
    payment_status: str | None = None
    amount_total: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class MpesaCallbackResult:
    """Normalized STK callback.

    ``is_well_formed`` is False when the payload did not carry
    ``Body.stkCallback``; such callbacks are discarded.
    """

    success: bool
    result_code: int | None = None
    result_desc: str | None = None
    checkout_request_id: str | None = None
    merchant_request_id: str | None = None
    mpesa_receipt: str | None = None
    phone_number: str | None = None
    amount: float | None = None
    transaction_date: str | None = None
    is_well_formed: bool = True


class MobileMoneyGateway(ABC):
    """M-Pesa STK push interface."""

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    def initiate_stk_push(
        self,
        phone_number: str,
        amount: float,
        account_reference: str,
        transaction_desc: str,
        callback_url: str | None = None,
    ) -> StkPushResult:
        """Prompt the customer's handset to authorize a payment."""
        ...

    @abstractmethod
    def query_transaction_status(self, checkout_request_id: str) -> TransactionStatusResult:
        """Ask the provider what became of an earlier initiation."""
        ...


class CheckoutGateway(ABC):
    """Hosted card checkout interface."""

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CheckoutSessionResult:
        """Create a hosted payment page for ``line_items``."""
        ...

    @abstractmethod
    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        ...

    @abstractmethod
    def construct_event(self, payload: bytes | str, signature: str) -> dict:
        """Verify a webhook payload and return the event it carries.

        Raises ``WebhookSignatureError`` when the signature does not match.
        """
        ...
