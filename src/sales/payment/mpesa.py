"""M-Pesa payments: STK push initiation and callback reconciliation.

Initiation links the order to the ``CheckoutRequestID`` Daraja hands back.
The callback later arrives with that id, which is how reconciliation finds
the order again. Each push is also kept as a ``PaymentInitiation`` so a
callback for an earlier push still reaches its order after a retry.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.gateway import get_mpesa_gateway
from sales.gateway.mpesa_adapter import parse_stk_callback, parse_transaction_date
from sales.order.order import Order, PaymentMethod, PaymentStatus
from sales.payment.callback import CallbackOutcome, PaymentCallback, PaymentProvider
from sales.payment.initiation import PaymentInitiation
from sales.payment.settlement import fail_order_payment, settle_order_payment
from sales.shared.payloads import load_json

AMOUNT_TOLERANCE = 0.005


@sales.command(part_of="PaymentCallback")
class InitiateMpesaPayment:
    phone_number = String(required=True, max_length=30)
    amount = Float(required=True, min_value=1)
    reference = String(required=True, max_length=50)
    order_id = Identifier()
    description = String(max_length=50)


@sales.command(part_of="PaymentCallback")
class ReconcileMpesaCallback:
    """Apply an STK callback body (raw JSON) to its order."""

    raw_callback = Text(required=True)


def _linked_order(order_id: str | None, reference: str) -> Order | None:
    repo = current_domain.repository_for(Order)
    if order_id:
        return repo.find_by_id(order_id)
    return repo.find_by_number(reference)


def _initiating_order(checkout_request_id: str) -> Order | None:
    """The order an STK push was sent for, including superseded pushes."""
    repo = current_domain.repository_for(Order)
    initiation = current_domain.repository_for(PaymentInitiation).find_by_reference(
        PaymentProvider.MPESA, checkout_request_id
    )
    if initiation is not None:
        return repo.find_by_id(initiation.order_id)
    return repo.find_by_payment_reference(checkout_request_id)


@sales.command_handler(part_of=PaymentCallback)
class MpesaPaymentHandler:
    @handle(InitiateMpesaPayment)
    def initiate(self, command):
        order = _linked_order(command.order_id, command.reference)
        if order is not None and order.is_paid:
            raise ValidationError({"order": [f"Order {order.order_number} is already paid"]})

        result = get_mpesa_gateway().initiate_stk_push(
            phone_number=command.phone_number,
            amount=command.amount,
            account_reference=command.reference,
            transaction_desc=command.description or f"Order {command.reference}",
        )
        if not result.success:
            logger.warning(
                "mpesa_payment_not_initiated",
                reference=command.reference,
                message=result.message,
                error=result.error,
            )
            return result

        if order is not None:
            order.record_payment_status(
                PaymentStatus.PROCESSING,
                payment_method=PaymentMethod.MPESA,
                payment_reference=result.checkout_request_id,
            )
            current_domain.repository_for(Order).add(order)
            current_domain.repository_for(PaymentInitiation).add(
                PaymentInitiation.open(
                    PaymentProvider.MPESA,
                    result.checkout_request_id,
                    str(order.id),
                    amount=command.amount,
                )
            )

        logger.info(
            "mpesa_payment_initiated",
            reference=command.reference,
            order_id=str(order.id) if order else None,
            checkout_request_id=result.checkout_request_id,
        )
        return result

    @handle(ReconcileMpesaCallback)
    def reconcile(self, command):
        try:
            payload = load_json(command.raw_callback)
        except ValueError:
            payload = None
        result = parse_stk_callback(payload)

        if not result.is_well_formed or not result.checkout_request_id:
            logger.warning("mpesa_callback_discarded", reason="malformed payload")
            return None

        reference = result.checkout_request_id
        callbacks = current_domain.repository_for(PaymentCallback)
        if callbacks.already_processed(PaymentProvider.MPESA, reference):
            logger.info("mpesa_callback_duplicate", checkout_request_id=reference)
            return None

        order = _initiating_order(reference)
        if order is None:
            outcome = CallbackOutcome.UNMATCHED
            logger.warning("mpesa_callback_unmatched", checkout_request_id=reference)
        elif not result.success:
            outcome = CallbackOutcome.FAILED
            if order.payment_reference in (None, reference):
                fail_order_payment(order, reason=result.result_desc)
            else:
                # A newer push is still in flight for this order
                logger.info(
                    "mpesa_superseded_push_failed",
                    order_id=str(order.id),
                    checkout_request_id=reference,
                    current_reference=order.payment_reference,
                )
        elif result.amount is None or result.amount < order.total - AMOUNT_TOLERANCE:
            outcome = CallbackOutcome.AMOUNT_MISMATCH
            logger.warning(
                "mpesa_amount_mismatch",
                order_id=str(order.id),
                expected=order.total,
                received=result.amount,
                mpesa_receipt=result.mpesa_receipt,
            )
        else:
            outcome = CallbackOutcome.SETTLED
            settle_order_payment(
                order,
                PaymentMethod.MPESA,
                transaction_id=result.mpesa_receipt,
                paid_at=parse_transaction_date(result.transaction_date) or datetime.now(UTC),
            )

        callbacks.add(
            PaymentCallback.record(
                PaymentProvider.MPESA,
                reference,
                outcome,
                order_id=str(order.id) if order else None,
                result_code=result.result_code,
                result_desc=result.result_desc,
                amount=result.amount,
                transaction_id=result.mpesa_receipt,
            )
        )
        logger.info(
            "mpesa_callback_processed",
            checkout_request_id=reference,
            outcome=outcome.value,
            result_code=result.result_code,
        )
        return outcome.value
