"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing order state changes.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_email = String(required=True)
    customer_name = String(required=True)
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    tax = Float(required=True)
    total = Float(required=True)
    currency = String(required=True)
    quote_id = Identifier()
    placed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderDetailsUpdated:
    """Delivery details, notes or dates on an order were changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    changed_fields = String(required=True)  # comma separated field names
    updated_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderStatusChanged:
    """The production/delivery status of an order moved forward."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderPaymentStatusChanged:
    """The payment side of an order changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    payment_method = String()
    payment_reference = String()
    transaction_id = String()
    changed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderCancelled:
    """An order was cancelled (orders are never physically deleted)."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)
