"""Invoice generation — command and handler.

An order has at most one invoice. Generation looks the order's invoice up
first and hands back the existing one instead of issuing a second number.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from sales.config import get_settings
from sales.domain import logger, sales
from sales.invoice.invoice import Invoice
from sales.order.order import Order
from sales.shared.numbering import DocumentKind, next_document_number


@sales.command(part_of="Invoice")
class GenerateInvoice:
    """Generate (or fetch) the invoice for an order."""

    order_id = Identifier(required=True)


def ensure_invoice(order: Order) -> tuple[Invoice, bool]:
    """Return the order's invoice, creating it in the current unit of work.

    The second element tells whether a new invoice was created.
    """
    repo = current_domain.repository_for(Invoice)
    existing = repo.find_by_order_id(str(order.id))
    if existing is not None:
        return existing, False

    settings = get_settings()
    invoice = Invoice.from_order(
        order,
        invoice_number=next_document_number(DocumentKind.INVOICE),
        company=settings.company,
        terms=settings.invoice_terms,
        due_days=settings.invoice_due_days,
    )
    repo.add(invoice)
    logger.info(
        "invoice_generated",
        invoice_id=str(invoice.id),
        invoice_number=invoice.invoice_number,
        order_id=str(order.id),
        status=invoice.status,
    )
    return invoice, True


@sales.command_handler(part_of=Invoice)
class GenerateInvoiceHandler:
    @handle(GenerateInvoice)
    def generate_invoice(self, command):
        order = current_domain.repository_for(Order).find_by_id(command.order_id)
        if order is None:
            return None

        invoice, _ = ensure_invoice(order)
        return str(invoice.id)
