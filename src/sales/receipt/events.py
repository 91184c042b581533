"""Domain events for the Receipt aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from sales.domain import sales


@sales.event(part_of="Receipt")
class ReceiptIssued:
    """A receipt was issued for a confirmed payment."""

    __version__ = 1

    receipt_id = Identifier(required=True)
    receipt_number = String(required=True)
    order_id = Identifier(required=True)
    payment_method = String(required=True)
    transaction_id = String()
    total = Float(required=True)
    status = String(required=True)
    issued_at = DateTime(required=True)


@sales.event(part_of="Receipt")
class ReceiptStatusChanged:
    __version__ = 1

    receipt_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@sales.event(part_of="Receipt")
class ReceiptRefunded:
    __version__ = 1

    receipt_id = Identifier(required=True)
    receipt_number = String(required=True)
    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    reason = String(required=True)
    refunded_at = DateTime(required=True)
