"""Input validation for new orders.

Validation reports problems instead of raising, so an API caller can show
every message at once. Handlers that need a hard stop wrap the result in a
ValidationError themselves.
"""

from collections.abc import Mapping, Sequence
from typing import Any


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _positive(value: Any) -> bool:
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def validate_items(items: Sequence[Mapping[str, Any]] | None) -> list[str]:
    """Check line items; messages are numbered from 1."""
    if not items:
        return ["At least one item is required"]

    errors = []
    for index, item in enumerate(items, start=1):
        if _blank(item.get("product_name")):
            errors.append(f"Item {index}: Product name is required")
        if not _positive(item.get("quantity")):
            errors.append(f"Item {index}: Quantity must be greater than 0")
        if not _positive(item.get("unit_price")):
            errors.append(f"Item {index}: Unit price must be greater than 0")
    return errors


def validate_order(data: Mapping[str, Any]) -> list[str]:
    """Return the list of problems with an order payload; empty means valid."""
    errors = []

    email = data.get("customer_email")
    if not isinstance(email, str) or "@" not in email:
        errors.append("Valid customer email is required")

    if _blank(data.get("customer_name")):
        errors.append("Customer name is required")

    if _blank(data.get("customer_phone")):
        errors.append("Customer phone number is required")

    errors.extend(validate_items(data.get("items")))
    return errors
