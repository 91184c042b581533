"""Invoice status maintenance — manual status changes and the overdue sweep."""

from datetime import UTC, datetime

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from sales.domain import logger, sales
from sales.invoice.invoice import Invoice, InvoiceStatus


@sales.command(part_of="Invoice")
class UpdateInvoiceStatus:
    invoice_id = Identifier(required=True)
    status = String(required=True, choices=InvoiceStatus)


@sales.command(part_of="Invoice")
class MarkOverdueInvoices:
    """Flag sent invoices whose due date has passed. Safe to re-run."""

    as_of = DateTime()


@sales.command_handler(part_of=Invoice)
class InvoiceStatusHandler:
    @handle(UpdateInvoiceStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.find_by_id(command.invoice_id)
        if invoice is None:
            return None

        invoice.change_status(InvoiceStatus(command.status))
        repo.add(invoice)
        return str(invoice.id)

    @handle(MarkOverdueInvoices)
    def mark_overdue(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(Invoice)

        flagged = []
        for invoice in repo.past_due(as_of):
            if invoice.mark_overdue(as_of):
                repo.add(invoice)
                flagged.append(str(invoice.id))

        if flagged:
            logger.info("invoices_marked_overdue", count=len(flagged))
        return flagged
