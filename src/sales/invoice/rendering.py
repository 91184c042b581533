"""Printable rendering of invoices.

Rendering is a pure function of the Invoice value: no repository access and
no state changes, so an abandoned render leaves nothing behind.
"""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sales.invoice.invoice import Invoice

TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(enabled_extensions=["html"], default_for_string=True),
    trim_blocks=True,
    lstrip_blocks=True,
)


def format_money(value: float | None) -> str:
    """Thousands-separated amount; cents only when present."""
    value = value or 0.0
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def format_date(value) -> str:
    return value.strftime("%d %b %Y") if value else ""


_env.filters["money"] = format_money
_env.filters["date"] = format_date


def render_invoice_html(invoice: Invoice) -> str:
    template = _env.get_template("invoice.html")
    return template.render(
        invoice=invoice,
        items=invoice.ordered_items(),
        company=invoice.company,
        address_lines=invoice.customer_address.lines() if invoice.customer_address else [],
        currency=(invoice.currency or "KES").upper(),
    )


def render_invoice_document(invoice: Invoice) -> bytes:
    """The downloadable invoice document (UTF-8 encoded HTML)."""
    return render_invoice_html(invoice).encode("utf-8")
