"""Order maintenance — update, status changes and cancellation.

Every handler here looks the order up first and returns None (or False for
CancelOrder) when it does not exist, leaving storage untouched.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from sales.shared.payloads import address_from


@sales.command(part_of="Order")
class UpdateOrder:
    """Merge the provided fields into an order. Omitted fields are left alone."""

    order_id = Identifier(required=True)
    status = String(choices=OrderStatus)
    payment_status = String(choices=PaymentStatus)
    shipping_address = Text()  # JSON address
    billing_address = Text()
    delivery_instructions = Text()
    notes = Text()
    due_date = DateTime()
    completed_at = DateTime()


@sales.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)


@sales.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    payment_status = String(required=True, choices=PaymentStatus)
    payment_method = String(choices=PaymentMethod)
    payment_reference = String(max_length=100)
    transaction_id = String(max_length=100)


@sales.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@sales.command_handler(part_of=Order)
class OrderManagementHandler:
    @handle(UpdateOrder)
    def update_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_id(command.order_id)
        if order is None:
            return None

        changes = {}
        if command.shipping_address:
            changes["shipping_address"] = address_from(command.shipping_address)
        if command.billing_address:
            changes["billing_address"] = address_from(command.billing_address)
        for name in ("delivery_instructions", "notes", "due_date", "completed_at"):
            value = getattr(command, name)
            if value is not None:
                changes[name] = value

        order.update_details(**changes)
        if command.status:
            order.transition_to(OrderStatus(command.status))
        if command.payment_status:
            order.record_payment_status(PaymentStatus(command.payment_status))

        repo.add(order)
        return str(order.id)

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_id(command.order_id)
        if order is None:
            return None

        order.transition_to(OrderStatus(command.status))
        repo.add(order)
        logger.info("order_status_changed", order_id=str(order.id), status=order.status)
        return str(order.id)

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_id(command.order_id)
        if order is None:
            return None

        order.record_payment_status(
            PaymentStatus(command.payment_status),
            payment_method=PaymentMethod(command.payment_method) if command.payment_method else None,
            payment_reference=command.payment_reference,
            transaction_id=command.transaction_id,
        )
        repo.add(order)
        return str(order.id)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_id(command.order_id)
        if order is None:
            return False
        if order.status == OrderStatus.CANCELLED.value:
            return True

        order.cancel(reason=command.reason)
        repo.add(order)
        logger.info("order_cancelled", order_id=str(order.id), reason=command.reason)
        return True
