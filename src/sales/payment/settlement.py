"""Settling an order once its payment is confirmed.

Settlement touches three aggregates: the order turns paid, its invoice is
generated (or the existing one marked paid) and a completed receipt is
issued. Callers run it inside their command handler so all three commit
together with the callback record.
"""

from datetime import datetime

from protean.utils.globals import current_domain

from sales.domain import logger
from sales.invoice.generation import ensure_invoice
from sales.invoice.invoice import Invoice, InvoiceStatus
from sales.order.order import Order, PaymentMethod, PaymentStatus
from sales.receipt.issuance import issue_receipt
from sales.receipt.receipt import Receipt, ReceiptPaymentMethod

_FAILABLE = {PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value, PaymentStatus.FAILED.value}


def settle_order_payment(
    order: Order,
    payment_method: PaymentMethod,
    transaction_id: str | None = None,
    paid_at: datetime | None = None,
) -> Receipt | None:
    """Mark ``order`` paid and issue its invoice and receipt.

    Returns the new receipt, or None when the order was already paid.
    """
    if order.is_paid:
        logger.info("order_already_paid", order_id=str(order.id), transaction_id=transaction_id)
        return None

    order.record_payment_status(
        PaymentStatus.PAID,
        payment_method=payment_method,
        transaction_id=transaction_id,
    )
    current_domain.repository_for(Order).add(order)

    invoice, created = ensure_invoice(order)
    if not created:
        _mark_invoice_paid(invoice, payment_method, transaction_id)

    receipt = issue_receipt(
        order,
        ReceiptPaymentMethod(payment_method.value),
        transaction_id=transaction_id,
        payment_date=paid_at,
    )

    logger.info(
        "order_payment_settled",
        order_id=str(order.id),
        order_number=order.order_number,
        payment_method=payment_method.value,
        transaction_id=transaction_id,
        invoice_id=str(invoice.id),
        receipt_id=str(receipt.id),
    )
    return receipt


def _mark_invoice_paid(invoice: Invoice, payment_method: PaymentMethod, transaction_id: str | None) -> None:
    status = InvoiceStatus(invoice.status)
    if status == InvoiceStatus.DRAFT:
        invoice.change_status(InvoiceStatus.SENT)
        status = InvoiceStatus.SENT
    if status not in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE):
        logger.warning("invoice_not_payable", invoice_id=str(invoice.id), status=invoice.status)
        return

    invoice.mark_paid(payment_method.value, transaction_id)
    current_domain.repository_for(Invoice).add(invoice)


def fail_order_payment(order: Order, reason: str | None = None) -> bool:
    """Record a failed attempt. Returns False when the order is past failing."""
    if order.payment_status not in _FAILABLE:
        logger.warning(
            "payment_failure_ignored",
            order_id=str(order.id),
            payment_status=order.payment_status,
            reason=reason,
        )
        return False

    order.record_payment_status(PaymentStatus.FAILED)
    current_domain.repository_for(Order).add(order)
    logger.info("order_payment_failed", order_id=str(order.id), reason=reason)
    return True
