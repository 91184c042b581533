"""Offline settlement recorded by staff (cash and bank transfer)."""

from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.order.order import Order, PaymentMethod
from sales.payment.callback import PaymentCallback
from sales.payment.settlement import settle_order_payment


class OfflinePaymentMethod(Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"


@sales.command(part_of="PaymentCallback")
class RecordOfflinePayment:
    order_id = Identifier(required=True)
    payment_method = String(required=True, choices=OfflinePaymentMethod)
    transaction_id = String(max_length=100)
    paid_at = DateTime()


@sales.command_handler(part_of=PaymentCallback)
class OfflinePaymentHandler:
    @handle(RecordOfflinePayment)
    def record(self, command):
        order = current_domain.repository_for(Order).find_by_id(command.order_id)
        if order is None:
            return None
        if order.is_paid:
            raise ValidationError({"order": [f"Order {order.order_number} is already paid"]})

        receipt = settle_order_payment(
            order,
            PaymentMethod(command.payment_method),
            transaction_id=command.transaction_id,
            paid_at=command.paid_at,
        )
        return str(receipt.id)
