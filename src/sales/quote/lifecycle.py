"""Quote lifecycle — create, send, accept and reject."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from sales.config import get_settings
from sales.domain import logger, sales
from sales.quote.quote import Quote, validate_quote
from sales.shared.numbering import DocumentKind, next_document_number
from sales.shared.payloads import address_from, load_json


@sales.command(part_of="Quote")
class CreateQuote:
    customer_name = String(required=True, max_length=200)
    customer_email = String(required=True, max_length=254)
    customer_phone = String(max_length=30)
    customer_id = Identifier()
    customer_address = Text()  # JSON address
    items = Text(required=True)  # JSON: list of {product_id, product_name, variant_id, variant_name, quantity, unit_price}
    tax = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    valid_until = DateTime()
    notes = Text()


@sales.command(part_of="Quote")
class SendQuote:
    quote_id = Identifier(required=True)


@sales.command(part_of="Quote")
class AcceptQuote:
    quote_id = Identifier(required=True)


@sales.command(part_of="Quote")
class RejectQuote:
    quote_id = Identifier(required=True)
    reason = String(max_length=500)


@sales.command_handler(part_of=Quote)
class QuoteLifecycleHandler:
    @handle(CreateQuote)
    def create_quote(self, command):
        items_data = load_json(command.items, default=[])
        errors = validate_quote(
            {
                "customer_name": command.customer_name,
                "customer_email": command.customer_email,
                "items": items_data,
            }
        )
        if errors:
            raise ValidationError({"quote": errors})

        quote = Quote.draft(
            quote_number=next_document_number(DocumentKind.QUOTE),
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            items_data=items_data,
            customer_id=command.customer_id,
            customer_phone=command.customer_phone,
            customer_address=address_from(command.customer_address),
            tax=command.tax or 0.0,
            shipping=command.shipping or 0.0,
            valid_until=command.valid_until,
            notes=command.notes,
            currency=get_settings().currency,
        )
        current_domain.repository_for(Quote).add(quote)
        logger.info("quote_created", quote_id=str(quote.id), quote_number=quote.quote_number)
        return str(quote.id)

    @handle(SendQuote)
    def send_quote(self, command):
        return self._apply(command.quote_id, lambda quote: quote.send())

    @handle(AcceptQuote)
    def accept_quote(self, command):
        return self._apply(command.quote_id, lambda quote: quote.accept())

    @handle(RejectQuote)
    def reject_quote(self, command):
        return self._apply(command.quote_id, lambda quote: quote.reject(command.reason))

    @staticmethod
    def _apply(quote_id, change):
        repo = current_domain.repository_for(Quote)
        quote = repo.find_by_id(quote_id)
        if quote is None:
            return None
        change(quote)
        repo.add(quote)
        return str(quote.id)
