"""ConvertQuoteToOrder — turn an accepted quote into a pending order.

The new order and the converted quote are written in the same unit of work,
so a quote is never marked converted without its order existing. The order
keeps the quoted tax, so both carry the same total.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.order.order import Order
from sales.quote.quote import Quote, QuoteStatus
from sales.shared.numbering import DocumentKind, next_document_number
from sales.shared.payloads import address_from

SHIPPING_LINE_NAME = "Delivery"


@sales.command(part_of="Quote")
class ConvertQuoteToOrder:
    quote_id = Identifier(required=True)
    customer_phone = String(max_length=30)  # required when the quote has none
    shipping_address = Text()  # JSON address; defaults to the quote's customer address
    delivery_instructions = Text()
    notes = Text()


def order_items_from_quote(quote: Quote) -> list[dict]:
    """Order line items for a quote. Quoted shipping becomes its own line."""
    items = []
    for item in quote.ordered_items():
        name = f"{item.product_name} ({item.variant_name})" if item.variant_name else item.product_name
        items.append(
            {
                "product_id": item.product_id,
                "product_name": name,
                "product_description": item.description,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            }
        )
    if quote.shipping:
        items.append({"product_name": SHIPPING_LINE_NAME, "quantity": 1, "unit_price": quote.shipping})
    return items


@sales.command_handler(part_of=Quote)
class ConvertQuoteToOrderHandler:
    @handle(ConvertQuoteToOrder)
    def convert(self, command):
        quote_repo = current_domain.repository_for(Quote)
        quote = quote_repo.find_by_id(command.quote_id)
        if quote is None:
            return None

        if quote.status != QuoteStatus.ACCEPTED.value:
            raise ValidationError({"status": [f"Only accepted quotes can be converted, quote is {quote.status}"]})

        phone = command.customer_phone or quote.customer_phone
        if not phone or not phone.strip():
            raise ValidationError({"customer_phone": ["Customer phone number is required"]})

        order = Order.place(
            order_number=next_document_number(DocumentKind.ORDER),
            customer_email=quote.customer_email,
            customer_name=quote.customer_name,
            customer_phone=phone,
            items_data=order_items_from_quote(quote),
            customer_id=quote.customer_id,
            shipping_address=address_from(command.shipping_address) or quote.customer_address,
            delivery_instructions=command.delivery_instructions,
            notes=command.notes or quote.notes,
            quote_id=str(quote.id),
            source="quote",
            currency=quote.currency,
            tax=quote.tax or 0.0,
        )
        quote.mark_converted(str(order.id))

        current_domain.repository_for(Order).add(order)
        quote_repo.add(quote)

        logger.info(
            "quote_converted",
            quote_id=str(quote.id),
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return str(order.id)
