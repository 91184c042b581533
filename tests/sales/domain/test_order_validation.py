"""Tests for order payload validation."""

from sales.order.validation import validate_items, validate_order


def _payload(**overrides):
    payload = {
        "customer_email": "wanjiku@example.com",
        "customer_name": "Wanjiku Kamau",
        "customer_phone": "0712345678",
        "items": [{"product_name": "Business Cards", "quantity": 500, "unit_price": 12.0}],
    }
    payload.update(overrides)
    return payload


class TestValidateOrder:
    def test_valid_payload_has_no_errors(self):
        assert validate_order(_payload()) == []

    def test_email_needs_an_at_sign(self):
        assert validate_order(_payload(customer_email="wanjiku.example.com")) == ["Valid customer email is required"]

    def test_missing_email(self):
        payload = _payload()
        del payload["customer_email"]
        assert "Valid customer email is required" in validate_order(payload)

    def test_blank_name_and_phone(self):
        errors = validate_order(_payload(customer_name="  ", customer_phone=""))
        assert errors == ["Customer name is required", "Customer phone number is required"]

    def test_no_items(self):
        assert validate_order(_payload(items=[])) == ["At least one item is required"]

    def test_reports_every_problem_at_once(self):
        errors = validate_order({"customer_email": "", "items": []})
        assert len(errors) == 4


class TestValidateItems:
    def test_messages_are_numbered_from_one(self):
        errors = validate_items(
            [
                {"product_name": "Flyers", "quantity": 100, "unit_price": 5.0},
                {"product_name": "", "quantity": 0, "unit_price": -1},
            ]
        )
        assert errors == [
            "Item 2: Product name is required",
            "Item 2: Quantity must be greater than 0",
            "Item 2: Unit price must be greater than 0",
        ]

    def test_non_numeric_values_are_reported(self):
        errors = validate_items([{"product_name": "Mugs", "quantity": "lots", "unit_price": None}])
        assert errors == [
            "Item 1: Quantity must be greater than 0",
            "Item 1: Unit price must be greater than 0",
        ]
