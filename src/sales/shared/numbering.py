"""Human-readable document numbers backed by persistent counters.

Each document kind owns a named DocumentSequence. Counters are read and
advanced through the repository inside the calling command handler, so the
new number commits in the same unit of work as the document that uses it.

Formats:
    orders    BRD{yyyyMMdd}{seq:04d}   single counter starting at 1000
    invoices  INV{yyyyMMdd}{seq:04d}   single counter starting at 1000
    quotes    Q-{yyyy}-{seq:03d}       yearly counter starting at 1
    receipts  R-{yyyy}-{seq:03d}       yearly counter starting at 1
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from sales.domain import sales


class DocumentKind(Enum):
    ORDER = "order"
    INVOICE = "invoice"
    QUOTE = "quote"
    RECEIPT = "receipt"


_FIRST_VALUE = {
    DocumentKind.ORDER: 1000,
    DocumentKind.INVOICE: 1000,
    DocumentKind.QUOTE: 1,
    DocumentKind.RECEIPT: 1,
}

_YEARLY = {DocumentKind.QUOTE, DocumentKind.RECEIPT}


@sales.aggregate
class DocumentSequence:
    name = String(identifier=True, max_length=50)
    last_value = Integer(default=0)

    def advance(self) -> int:
        self.last_value = (self.last_value or 0) + 1
        return self.last_value


def sequence_name(kind: DocumentKind, when: datetime) -> str:
    if kind in _YEARLY:
        return f"{kind.value}-{when.year}"
    return kind.value


def format_document_number(kind: DocumentKind, value: int, when: datetime) -> str:
    if kind == DocumentKind.ORDER:
        return f"BRD{when:%Y%m%d}{value:04d}"
    if kind == DocumentKind.INVOICE:
        return f"INV{when:%Y%m%d}{value:04d}"
    if kind == DocumentKind.QUOTE:
        return f"Q-{when.year}-{value:03d}"
    return f"R-{when.year}-{value:03d}"


def next_document_number(kind: DocumentKind, when: datetime | None = None) -> str:
    """Advance the counter for ``kind`` and return the formatted number."""
    when = when or datetime.now(UTC)
    name = sequence_name(kind, when)
    repo = current_domain.repository_for(DocumentSequence)

    try:
        sequence = repo.get(name)
    except ObjectNotFoundError:
        sequence = DocumentSequence(name=name, last_value=_FIRST_VALUE[kind] - 1)

    value = sequence.advance()
    repo.add(sequence)
    return format_document_number(kind, value, when)
