"""Sales bounded context — Orders, Quotes, Invoices, Receipts and Payments.

Owns the order lifecycle of the print & branding shop and the money trail
around it: payment initiation through M-Pesa and Stripe, reconciliation of
provider callbacks, invoice derivation and receipt issuance.
"""

import structlog
from protean.domain import Domain

sales = Domain(name="sales")

logger = structlog.get_logger(__name__)
