"""Domain events for payment reconciliation."""

from protean.fields import DateTime, Float, Identifier, String

from sales.domain import sales


@sales.event(part_of="PaymentCallback")
class PaymentCallbackRecorded:
    """A provider notification was processed and its outcome recorded."""

    __version__ = 1

    key = String(required=True)
    provider = String(required=True)
    reference = String(required=True)
    outcome = String(required=True)
    order_id = Identifier()
    amount = Float()
    transaction_id = String()
    received_at = DateTime(required=True)


@sales.event(part_of="PaymentInitiation")
class PaymentInitiated:
    """A provider accepted a payment request for an order."""

    __version__ = 1

    key = String(required=True)
    provider = String(required=True)
    reference = String(required=True)
    order_id = Identifier(required=True)
    amount = Float()
    initiated_at = DateTime(required=True)
