"""PlaceOrder — command and handler.

Validates the payload, assigns the next order number and persists a new
pending order. Returns the new order's id.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from sales.config import get_settings
from sales.domain import logger, sales
from sales.order.order import Order
from sales.order.validation import validate_order
from sales.shared.numbering import DocumentKind, next_document_number
from sales.shared.payloads import address_from, load_json


@sales.command(part_of="Order")
class PlaceOrder:
    """Place a new order for printed products."""

    customer_email = String(required=True, max_length=254)
    customer_name = String(required=True, max_length=200)
    customer_phone = String(required=True, max_length=30)
    items = Text(required=True)  # JSON: list of {product_id, product_name, quantity, unit_price, specification}
    customer_id = Identifier()
    shipping_address = Text()  # JSON: {street, city, state, postal_code, country}
    billing_address = Text()
    delivery_instructions = Text()
    notes = Text()
    due_date = DateTime()
    source = String(max_length=50, default="website")


@sales.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = load_json(command.items, default=[])

        errors = validate_order(
            {
                "customer_email": command.customer_email,
                "customer_name": command.customer_name,
                "customer_phone": command.customer_phone,
                "items": items_data,
            }
        )
        if errors:
            raise ValidationError({"order": errors})

        order = Order.place(
            order_number=next_document_number(DocumentKind.ORDER),
            customer_email=command.customer_email,
            customer_name=command.customer_name,
            customer_phone=command.customer_phone,
            items_data=items_data,
            customer_id=command.customer_id,
            shipping_address=address_from(command.shipping_address),
            billing_address=address_from(command.billing_address),
            delivery_instructions=command.delivery_instructions,
            notes=command.notes,
            due_date=command.due_date,
            source=command.source or "website",
            currency=get_settings().currency,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total=order.total,
        )
        return str(order.id)
