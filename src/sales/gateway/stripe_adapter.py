"""Stripe hosted checkout adapter.

Uses the stripe-python SDK with a per-request API key, so the module-level
``stripe.api_key`` is never touched and several configurations can coexist in
one process (tests included).
"""

import json
import math

import stripe
import structlog

from sales.config import StripeSettings
from sales.gateway.port import CheckoutGateway, CheckoutSessionResult, WebhookSignatureError

logger = structlog.get_logger(__name__)

CHECKOUT_SOURCE = "brandson-website"
ALLOWED_SHIPPING_COUNTRIES = ["KE"]


def to_minor_units(amount: float) -> int:
    return int(math.ceil(round(float(amount) * 100, 2)))


def order_line_items(order) -> list[dict]:
    """Stripe ``line_items`` for every item of an order."""
    currency = (order.currency or "KES").lower()
    line_items = []
    for item in order.ordered_items():
        product_data = {"name": item.product_name}
        if item.product_description:
            product_data["description"] = item.product_description
        line_items.append(
            {
                "price_data": {
                    "currency": currency,
                    "product_data": product_data,
                    "unit_amount": to_minor_units(item.unit_price),
                },
                "quantity": item.quantity,
            }
        )
    return line_items


def _session_result(session) -> CheckoutSessionResult:
    metadata = getattr(session, "metadata", None) or {}
    return CheckoutSessionResult(
        success=True,
        session_id=session.id,
        url=getattr(session, "url", None),
        payment_status=getattr(session, "payment_status", None),
        amount_total=getattr(session, "amount_total", None),
        metadata=dict(metadata),
    )


class StripeGateway(CheckoutGateway):
    """Production Stripe adapter."""

    def __init__(self, settings: StripeSettings) -> None:
        self.settings = settings

    @property
    def configured(self) -> bool:
        return self.settings.configured

    def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CheckoutSessionResult:
        params = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {"source": CHECKOUT_SOURCE, **(metadata or {})},
            "billing_address_collection": "required",
            "shipping_address_collection": {"allowed_countries": ALLOWED_SHIPPING_COUNTRIES},
            "phone_number_collection": {"enabled": True},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self.settings.secret_key, **params)
        except stripe.StripeError as exc:
            logger.error("stripe_checkout_failed", error=str(exc), error_type=type(exc).__name__)
            return CheckoutSessionResult(success=False, error="Failed to create checkout session")

        logger.info("stripe_checkout_created", session_id=session.id)
        return _session_result(session)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.settings.secret_key)
        except stripe.StripeError as exc:
            logger.error("stripe_session_retrieval_failed", session_id=session_id, error=str(exc))
            return CheckoutSessionResult(success=False, session_id=session_id, error="Failed to retrieve checkout session")
        return _session_result(session)

    def construct_event(self, payload: bytes | str, signature: str) -> dict:
        try:
            stripe.Webhook.construct_event(payload, signature, self.settings.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("stripe_webhook_signature_invalid", error=str(exc))
            raise WebhookSignatureError("Invalid webhook signature") from exc
        except ValueError as exc:
            # Raised by the SDK when the body is not JSON
            logger.warning("stripe_webhook_payload_invalid", error=str(exc))
            raise WebhookSignatureError("Invalid webhook payload") from exc

        # Handlers consume the verified body as plain JSON
        return json.loads(payload)
