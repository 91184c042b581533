"""Domain events for the Quote aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from sales.domain import sales


@sales.event(part_of="Quote")
class QuoteCreated:
    __version__ = 1

    quote_id = Identifier(required=True)
    quote_number = String(required=True)
    customer_email = String(required=True)
    total = Float(required=True)
    valid_until = DateTime(required=True)
    created_at = DateTime(required=True)


@sales.event(part_of="Quote")
class QuoteSent:
    __version__ = 1

    quote_id = Identifier(required=True)
    quote_number = String(required=True)
    customer_email = String(required=True)
    sent_at = DateTime(required=True)


@sales.event(part_of="Quote")
class QuoteAccepted:
    __version__ = 1

    quote_id = Identifier(required=True)
    quote_number = String(required=True)
    accepted_at = DateTime(required=True)


@sales.event(part_of="Quote")
class QuoteRejected:
    __version__ = 1

    quote_id = Identifier(required=True)
    quote_number = String(required=True)
    reason = String()
    rejected_at = DateTime(required=True)


@sales.event(part_of="Quote")
class QuoteExpired:
    """A quote passed its validity date before being accepted or converted."""

    __version__ = 1

    quote_id = Identifier(required=True)
    quote_number = String(required=True)
    previous_status = String(required=True)
    valid_until = DateTime(required=True)
    expired_at = DateTime(required=True)


@sales.event(part_of="Quote")
class QuoteConverted:
    """An accepted quote became an order."""

    __version__ = 1

    quote_id = Identifier(required=True)
    quote_number = String(required=True)
    order_id = Identifier(required=True)
    converted_at = DateTime(required=True)
