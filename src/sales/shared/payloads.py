"""Helpers for the JSON-encoded fields carried by commands.

Commands keep nested data (line items, addresses, provider payloads) in Text
fields as JSON so they stay flat and serializable.
"""

import json
from datetime import UTC, datetime
from typing import Any

from sales.shared.address import Address


def load_json(value: Any, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def address_from(value: Any) -> Address | None:
    data = load_json(value)
    if not data:
        return None
    return Address(
        street=data.get("street"),
        city=data.get("city"),
        state=data.get("state"),
        postal_code=data.get("postal_code"),
        country=data.get("country") or "Kenya",
    )


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so stored and supplied values compare."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
