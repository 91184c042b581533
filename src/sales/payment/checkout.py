"""Stripe payments: hosted checkout sessions and webhook reconciliation."""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.gateway import get_stripe_gateway
from sales.gateway.stripe_adapter import order_line_items
from sales.order.order import Order, PaymentMethod, PaymentStatus
from sales.payment.callback import CallbackOutcome, PaymentCallback, PaymentProvider
from sales.payment.settlement import fail_order_payment, settle_order_payment
from sales.shared.payloads import load_json

SESSION_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
SESSION_EXPIRED = "checkout.session.expired"

_FAILING_EVENTS = {ASYNC_PAYMENT_FAILED, SESSION_EXPIRED}
_HANDLED_EVENTS = {SESSION_COMPLETED, ASYNC_PAYMENT_SUCCEEDED, *_FAILING_EVENTS}


@sales.command(part_of="PaymentCallback")
class StartStripeCheckout:
    line_items = Text()  # JSON list of Stripe line items; defaults to the order's
    success_url = String(required=True, max_length=500)
    cancel_url = String(required=True, max_length=500)
    order_id = Identifier()
    customer_email = String(max_length=254)


@sales.command(part_of="PaymentCallback")
class ReconcileStripeEvent:
    event_id = String(required=True, max_length=120)
    event_type = String(required=True, max_length=100)
    session_id = String(max_length=120)
    payment_status = String(max_length=30)
    order_id = Identifier()
    amount_total = Integer()  # minor units
    payment_intent = String(max_length=120)
    customer_email = String(max_length=254)


def event_fields(event: dict) -> dict:
    """Flatten a verified Stripe event into ReconcileStripeEvent fields."""
    session = (event.get("data") or {}).get("object") or {}
    metadata = session.get("metadata") or {}
    customer_details = session.get("customer_details") or {}
    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")

    return {
        "event_id": event.get("id"),
        "event_type": event.get("type"),
        "session_id": session.get("id"),
        "payment_status": session.get("payment_status"),
        "order_id": metadata.get("order_id") or None,
        "amount_total": session.get("amount_total"),
        "payment_intent": payment_intent,
        "customer_email": session.get("customer_email") or customer_details.get("email"),
    }


def _find_order(order_id: str | None, session_id: str | None) -> Order | None:
    repo = current_domain.repository_for(Order)
    order = repo.find_by_id(order_id) if order_id else None
    if order is None and session_id:
        order = repo.find_by_payment_reference(session_id)
    return order


def _settles(event_type: str, payment_status: str | None) -> bool:
    if event_type == SESSION_COMPLETED:
        return payment_status == "paid"
    return event_type == ASYNC_PAYMENT_SUCCEEDED


@sales.command_handler(part_of=PaymentCallback)
class StripeCheckoutHandler:
    @handle(StartStripeCheckout)
    def start_checkout(self, command):
        order = None
        if command.order_id:
            order = current_domain.repository_for(Order).find_by_id(command.order_id)
            if order is None:
                return None
            if order.is_paid:
                raise ValidationError({"order": [f"Order {order.order_number} is already paid"]})

        line_items = load_json(command.line_items) or (order_line_items(order) if order else [])
        if not line_items:
            raise ValidationError({"line_items": ["At least one line item is required"]})

        result = get_stripe_gateway().create_checkout_session(
            line_items=line_items,
            success_url=command.success_url,
            cancel_url=command.cancel_url,
            customer_email=command.customer_email or (order.customer_email if order else None),
            metadata={"order_id": str(order.id)} if order else None,
        )
        if result.success and order is not None:
            order.record_payment_status(
                PaymentStatus.PROCESSING,
                payment_method=PaymentMethod.STRIPE,
                payment_reference=result.session_id,
            )
            current_domain.repository_for(Order).add(order)
            logger.info("stripe_checkout_linked", order_id=str(order.id), session_id=result.session_id)

        return result

    @handle(ReconcileStripeEvent)
    def reconcile(self, command):
        callbacks = current_domain.repository_for(PaymentCallback)
        if callbacks.already_processed(PaymentProvider.STRIPE, command.event_id):
            logger.info("stripe_event_duplicate", event_id=command.event_id)
            return None

        amount = command.amount_total / 100 if command.amount_total is not None else None
        transaction_id = command.payment_intent or command.session_id
        order = _find_order(command.order_id, command.session_id)

        if command.event_type not in _HANDLED_EVENTS:
            outcome = CallbackOutcome.IGNORED
        elif order is None:
            outcome = CallbackOutcome.UNMATCHED
            logger.warning("stripe_event_unmatched", event_id=command.event_id, session_id=command.session_id)
        elif command.event_type in _FAILING_EVENTS:
            outcome = CallbackOutcome.FAILED
            fail_order_payment(order, reason=command.event_type)
        elif not _settles(command.event_type, command.payment_status):
            # Completed but still unpaid: an async payment event follows
            outcome = CallbackOutcome.IGNORED
        elif amount is not None and amount < order.total - 0.005:
            outcome = CallbackOutcome.AMOUNT_MISMATCH
            logger.warning(
                "stripe_amount_mismatch",
                order_id=str(order.id),
                expected=order.total,
                received=amount,
                session_id=command.session_id,
            )
        else:
            outcome = CallbackOutcome.SETTLED
            settle_order_payment(
                order,
                PaymentMethod.STRIPE,
                transaction_id=transaction_id,
                paid_at=datetime.now(UTC),
            )

        callbacks.add(
            PaymentCallback.record(
                PaymentProvider.STRIPE,
                command.event_id,
                outcome,
                order_id=str(order.id) if order else None,
                event_type=command.event_type,
                amount=amount,
                transaction_id=transaction_id,
            )
        )
        logger.info(
            "stripe_event_processed",
            event_id=command.event_id,
            event_type=command.event_type,
            outcome=outcome.value,
        )
        return outcome.value
