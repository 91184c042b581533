"""RefundReceipt — refund a completed receipt and propagate to the order.

The receipt, the order's payment status and (on a full refund) the paid
invoice are updated in one unit of work.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.invoice.invoice import Invoice, InvoiceStatus
from sales.order.order import Order, PaymentStatus
from sales.receipt.receipt import Receipt, ReceiptStatus


@sales.command(part_of="Receipt")
class RefundReceipt:
    receipt_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True, max_length=500)


@sales.command_handler(part_of=Receipt)
class RefundReceiptHandler:
    @handle(RefundReceipt)
    def refund(self, command):
        receipt_repo = current_domain.repository_for(Receipt)
        receipt = receipt_repo.find_by_id(command.receipt_id)
        if receipt is None:
            return None

        receipt.refund(command.amount, command.reason)
        receipt_repo.add(receipt)

        order_repo = current_domain.repository_for(Order)
        order = order_repo.find_by_id(str(receipt.order_id))
        if order is not None and order.payment_status in (
            PaymentStatus.PAID.value,
            PaymentStatus.PARTIALLY_REFUNDED.value,
        ):
            refunded = sum(
                r.refund_amount or 0.0
                for r in receipt_repo.for_order(str(order.id))
                if r.status == ReceiptStatus.REFUNDED.value and r.id != receipt.id
            )
            refunded += receipt.refund_amount
            fully_refunded = refunded >= order.total - 0.005
            target = PaymentStatus.REFUNDED if fully_refunded else PaymentStatus.PARTIALLY_REFUNDED
            order.record_payment_status(target)
            order_repo.add(order)

            if fully_refunded:
                invoice_repo = current_domain.repository_for(Invoice)
                invoice = invoice_repo.find_by_order_id(str(order.id))
                if invoice is not None and invoice.status == InvoiceStatus.PAID.value:
                    invoice.change_status(InvoiceStatus.REFUNDED)
                    invoice_repo.add(invoice)

        logger.info(
            "receipt_refunded",
            receipt_id=str(receipt.id),
            order_id=str(receipt.order_id),
            amount=receipt.refund_amount,
        )
        return str(receipt.id)
