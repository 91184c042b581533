"""Manual receipt issuance and status changes.

Receipts for M-Pesa and Stripe payments are issued by reconciliation; these
commands cover receipts staff record by hand and corrections afterwards.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.order.order import Order
from sales.receipt.receipt import Receipt, ReceiptPaymentMethod, ReceiptStatus
from sales.shared.numbering import DocumentKind, next_document_number


@sales.command(part_of="Receipt")
class IssueReceipt:
    order_id = Identifier(required=True)
    payment_method = String(required=True, choices=ReceiptPaymentMethod)
    transaction_id = String(max_length=100)
    payment_date = DateTime()
    status = String(choices=ReceiptStatus, default=ReceiptStatus.COMPLETED.value)


@sales.command(part_of="Receipt")
class UpdateReceiptStatus:
    receipt_id = Identifier(required=True)
    status = String(required=True, choices=ReceiptStatus)


def issue_receipt(
    order: Order,
    payment_method: ReceiptPaymentMethod,
    transaction_id: str | None = None,
    payment_date=None,
    status: ReceiptStatus = ReceiptStatus.COMPLETED,
) -> Receipt:
    """Create and stage a receipt for ``order`` in the current unit of work."""
    receipt = Receipt.for_order(
        order,
        receipt_number=next_document_number(DocumentKind.RECEIPT),
        payment_method=payment_method,
        transaction_id=transaction_id,
        payment_date=payment_date,
        status=status,
    )
    current_domain.repository_for(Receipt).add(receipt)
    logger.info(
        "receipt_issued",
        receipt_id=str(receipt.id),
        receipt_number=receipt.receipt_number,
        order_id=str(order.id),
        transaction_id=transaction_id,
    )
    return receipt


@sales.command_handler(part_of=Receipt)
class ReceiptIssuanceHandler:
    @handle(IssueReceipt)
    def issue(self, command):
        order = current_domain.repository_for(Order).find_by_id(command.order_id)
        if order is None:
            return None

        receipt = issue_receipt(
            order,
            ReceiptPaymentMethod(command.payment_method),
            transaction_id=command.transaction_id,
            payment_date=command.payment_date,
            status=ReceiptStatus(command.status or ReceiptStatus.COMPLETED.value),
        )
        return str(receipt.id)

    @handle(UpdateReceiptStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Receipt)
        receipt = repo.find_by_id(command.receipt_id)
        if receipt is None:
            return None

        receipt.change_status(ReceiptStatus(command.status))
        repo.add(receipt)
        return str(receipt.id)
