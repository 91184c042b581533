"""Address value object shared by orders, quotes and invoices."""

from protean.fields import String

from sales.domain import sales


@sales.value_object
class Address:
    """A postal address captured at the time of the transaction.

    Addresses are copied into each record rather than referenced, so a later
    change to the customer's details never rewrites an issued invoice.
    """

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=100, default="Kenya")

    def lines(self) -> list[str]:
        """The address as printable lines, skipping blank parts."""
        locality = ", ".join(part for part in (self.city, self.state, self.postal_code) if part)
        return [line for line in (self.street, locality, self.country) if line]
