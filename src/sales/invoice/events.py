"""Domain events for the Invoice aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from sales.domain import sales


@sales.event(part_of="Invoice")
class InvoiceGenerated:
    """An invoice was derived from an order."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    invoice_number = String(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    total = Float(required=True)
    status = String(required=True)
    issue_date = DateTime(required=True)
    due_date = DateTime(required=True)


@sales.event(part_of="Invoice")
class InvoiceStatusChanged:
    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@sales.event(part_of="Invoice")
class InvoicePaid:
    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    payment_method = String()
    payment_reference = String()
    paid_at = DateTime(required=True)
