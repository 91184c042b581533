"""Safaricom Daraja (M-Pesa Express) adapter.

Every call fetches a fresh OAuth token with the consumer key/secret pair,
then talks JSON to the STK push or transaction status endpoint. Provider and
network failures come back as unsuccessful results; nothing raised by httpx
escapes this module.
"""

import base64
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from sales.config import MpesaSettings
from sales.gateway.port import (
    MobileMoneyGateway,
    MpesaCallbackResult,
    StkPushResult,
    TransactionStatusResult,
)

logger = structlog.get_logger(__name__)

OAUTH_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
TRANSACTION_STATUS_PATH = "/mpesa/transactionstatus/v1/query"

TRANSACTION_TYPE = "CustomerPayBillOnline"
ACCOUNT_REFERENCE_MAX = 12
TRANSACTION_DESC_MAX = 13

INVALID_PHONE_MESSAGE = "Invalid phone number format. Use Kenyan number format (e.g., 07XXXXXXXX or 2547XXXXXXXX)"

# Daraja validates timestamps against Nairobi time
EAT = timezone(timedelta(hours=3), "EAT")


def normalize_phone_number(phone: str | None) -> str:
    """Return ``2547XXXXXXXX`` for a Kenyan mobile number, ``""`` otherwise."""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("254") and len(digits) == 12:
        return digits
    if digits.startswith("0") and len(digits) == 10:
        return f"254{digits[1:]}"
    if digits.startswith("7") and len(digits) == 9:
        return f"254{digits}"
    return ""


def generate_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(EAT)
    return now.astimezone(EAT).strftime("%Y%m%d%H%M%S")


def generate_password(shortcode: str, pass_key: str, timestamp: str) -> str:
    return base64.b64encode(f"{shortcode}{pass_key}{timestamp}".encode()).decode()


def whole_shillings(amount: float) -> int:
    """STK push only takes whole shillings; fractions are rounded up."""
    return int(math.ceil(round(float(amount), 2)))


def _metadata_value(items: list[dict], name: str) -> Any:
    for item in items:
        if isinstance(item, dict) and item.get("Name") == name:
            return item.get("Value")
    return None


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _as_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_stk_callback(payload: Any) -> MpesaCallbackResult:
    """Normalize an STK callback body. Never raises."""
    body = payload.get("Body") if isinstance(payload, dict) else None
    callback = body.get("stkCallback") if isinstance(body, dict) else None
    if not isinstance(callback, dict):
        return MpesaCallbackResult(success=False, is_well_formed=False)

    result_code = _as_int(callback.get("ResultCode"))
    metadata = callback.get("CallbackMetadata") or {}
    items = metadata.get("Item") if isinstance(metadata, dict) else None
    items = items if isinstance(items, list) else []

    receipt = _metadata_value(items, "MpesaReceiptNumber")
    phone = _metadata_value(items, "PhoneNumber")
    transaction_date = _metadata_value(items, "TransactionDate")

    return MpesaCallbackResult(
        success=result_code == 0,
        result_code=result_code,
        result_desc=callback.get("ResultDesc"),
        checkout_request_id=callback.get("CheckoutRequestID"),
        merchant_request_id=callback.get("MerchantRequestID"),
        mpesa_receipt=str(receipt) if receipt is not None else None,
        phone_number=str(phone) if phone is not None else None,
        amount=_as_float(_metadata_value(items, "Amount")),
        transaction_date=str(transaction_date) if transaction_date is not None else None,
        is_well_formed=True,
    )


class DarajaGateway(MobileMoneyGateway):
    """Production M-Pesa adapter over the Daraja REST API."""

    def __init__(
        self,
        settings: MpesaSettings,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return self.settings.configured

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.settings.base_url,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )

    def _access_token(self, client: httpx.Client) -> str:
        response = client.get(
            OAUTH_PATH,
            params={"grant_type": "client_credentials"},
            auth=httpx.BasicAuth(self.settings.consumer_key, self.settings.consumer_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    def _credentials(self) -> tuple[str, str]:
        timestamp = generate_timestamp()
        return timestamp, generate_password(self.settings.shortcode, self.settings.pass_key, timestamp)

    def initiate_stk_push(
        self,
        phone_number: str,
        amount: float,
        account_reference: str,
        transaction_desc: str,
        callback_url: str | None = None,
    ) -> StkPushResult:
        formatted_phone = normalize_phone_number(phone_number)
        if not formatted_phone:
            return StkPushResult(success=False, message=INVALID_PHONE_MESSAGE, error="InvalidPhoneNumber")

        timestamp, password = self._credentials()
        request_body = {
            "BusinessShortCode": self.settings.shortcode,
            "Password": password,
            "Timestamp": timestamp,
            "TransactionType": TRANSACTION_TYPE,
            "Amount": whole_shillings(amount),
            "PartyA": formatted_phone,
            "PartyB": self.settings.shortcode,
            "PhoneNumber": formatted_phone,
            "CallBackURL": callback_url or self.settings.callback_url,
            "AccountReference": account_reference[:ACCOUNT_REFERENCE_MAX],
            "TransactionDesc": transaction_desc[:TRANSACTION_DESC_MAX],
        }

        try:
            with self._client() as client:
                token = self._access_token(client)
                response = client.post(
                    STK_PUSH_PATH,
                    json=request_body,
                    headers={"Authorization": f"Bearer {token}"},
                )
                if response.is_error:
                    error = _error_message(response)
                    logger.warning("mpesa_stk_push_rejected", status_code=response.status_code, error=error)
                    return StkPushResult(
                        success=False,
                        message="Failed to initiate M-Pesa payment",
                        error=error,
                    )
                data = response.json()
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("mpesa_stk_push_error", error=str(exc))
            return StkPushResult(success=False, message="Failed to initiate M-Pesa payment", error=str(exc))

        response_code = str(data.get("ResponseCode", ""))
        if response_code != "0":
            return StkPushResult(
                success=False,
                message=data.get("ResponseDescription") or "Failed to initiate M-Pesa payment",
                response_code=response_code,
                response_description=data.get("ResponseDescription"),
                error=response_code,
            )

        logger.info(
            "mpesa_stk_push_initiated",
            checkout_request_id=data.get("CheckoutRequestID"),
            account_reference=request_body["AccountReference"],
            amount=request_body["Amount"],
        )
        return StkPushResult(
            success=True,
            message="M-Pesa STK Push initiated successfully",
            checkout_request_id=data.get("CheckoutRequestID"),
            merchant_request_id=data.get("MerchantRequestID"),
            response_code=response_code,
            response_description=data.get("ResponseDescription"),
            customer_message=data.get("CustomerMessage"),
        )

    def query_transaction_status(self, checkout_request_id: str) -> TransactionStatusResult:
        timestamp, password = self._credentials()
        request_body = {
            "BusinessShortCode": self.settings.shortcode,
            "Password": password,
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
            "OriginatorConversationID": "",
            "TransactionType": TRANSACTION_TYPE,
        }

        try:
            with self._client() as client:
                token = self._access_token(client)
                response = client.post(
                    TRANSACTION_STATUS_PATH,
                    json=request_body,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("mpesa_status_query_error", checkout_request_id=checkout_request_id, error=str(exc))
            return TransactionStatusResult(
                success=False,
                message="Failed to query transaction status",
                error=str(exc),
            )

        return TransactionStatusResult(
            success=True,
            message="Transaction status retrieved successfully",
            data=data,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(data, dict) and data.get("errorMessage"):
        return data["errorMessage"]
    return response.reason_phrase


def parse_transaction_date(value: str | None) -> datetime | None:
    """Callback ``TransactionDate`` (``yyyyMMddHHmmss`` Nairobi time) as an aware datetime."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value), "%Y%m%d%H%M%S").replace(tzinfo=EAT)
    except ValueError:
        return None
