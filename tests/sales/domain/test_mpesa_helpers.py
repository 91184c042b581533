"""Tests for the pure M-Pesa helpers: phone numbers, passwords and callbacks."""

import base64
import json
from datetime import UTC, datetime

import pytest

from sales.gateway.mpesa_adapter import (
    EAT,
    generate_password,
    generate_timestamp,
    normalize_phone_number,
    parse_stk_callback,
    parse_transaction_date,
    whole_shillings,
)


class TestNormalizePhoneNumber:
    @pytest.mark.parametrize(
        "phone",
        ["0712345678", "712345678", "254712345678", "+254 712 345 678", "0712-345-678"],
    )
    def test_accepted_formats(self, phone):
        assert normalize_phone_number(phone) == "254712345678"

    @pytest.mark.parametrize(
        "phone",
        ["", None, "12345", "07123456789", "25471234567", "812345678", "+1 415 555 0100"],
    )
    def test_rejected_formats(self, phone):
        assert normalize_phone_number(phone) == ""


class TestCredentials:
    def test_timestamp_is_nairobi_time(self):
        now = datetime(2026, 10, 17, 7, 15, 30, tzinfo=UTC)
        assert generate_timestamp(now) == "20261017101530"

    def test_password_is_base64_of_shortcode_passkey_timestamp(self):
        password = generate_password("174379", "passkey", "20261017101530")
        assert base64.b64decode(password).decode() == "174379passkey20261017101530"

    @pytest.mark.parametrize(("amount", "expected"), [(6000, 6000), (6000.0, 6000), (99.01, 100), (1.5, 2)])
    def test_amount_rounded_up_to_whole_shillings(self, amount, expected):
        assert whole_shillings(amount) == expected


class TestParseStkCallback:
    def test_successful_callback(self, mpesa_callback_body):
        result = parse_stk_callback(mpesa_callback_body("ws_CO_123", amount=6000, receipt="QGH7XK2LMN"))
        assert result.success is True
        assert result.is_well_formed is True
        assert result.result_code == 0
        assert result.checkout_request_id == "ws_CO_123"
        assert result.merchant_request_id == "29115-34620561-1"
        assert result.mpesa_receipt == "QGH7XK2LMN"
        assert result.amount == 6000.0
        assert result.phone_number == "254712345678"
        assert result.transaction_date == "20261017101530"

    def test_failed_callback_has_no_metadata(self, mpesa_callback_body):
        result = parse_stk_callback(mpesa_callback_body("ws_CO_123", result_code=1032))
        assert result.success is False
        assert result.is_well_formed is True
        assert result.result_code == 1032
        assert result.result_desc == "Request cancelled by user"
        assert result.mpesa_receipt is None
        assert result.amount is None

    def test_numeric_string_result_code(self, mpesa_callback_body):
        body = mpesa_callback_body("ws_CO_123")
        body["Body"]["stkCallback"]["ResultCode"] = "0"
        assert parse_stk_callback(body).success is True

    def test_missing_fields_are_omitted(self, mpesa_callback_body):
        body = mpesa_callback_body("ws_CO_123")
        body["Body"]["stkCallback"]["CallbackMetadata"]["Item"] = [{"Name": "Amount", "Value": 10}]
        result = parse_stk_callback(body)
        assert result.amount == 10.0
        assert result.mpesa_receipt is None
        assert result.phone_number is None
        assert result.transaction_date is None

    def test_success_without_callback_metadata(self):
        body = {"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_123", "ResultCode": 0, "ResultDesc": "OK"}}}
        result = parse_stk_callback(body)
        assert result.success is True
        assert result.amount is None

    @pytest.mark.parametrize("payload", [None, {}, {"Body": {}}, {"Body": "nope"}, [], "text"])
    def test_malformed_payloads_never_raise(self, payload):
        result = parse_stk_callback(payload)
        assert result.success is False
        assert result.is_well_formed is False

    @pytest.mark.parametrize("result_code", ["Infinity", "-Infinity", "NaN", "[1]", '"zero"'])
    def test_unusable_result_codes_never_raise(self, result_code):
        raw = '{"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_123", "ResultCode": %s}}}' % result_code
        result = parse_stk_callback(json.loads(raw))
        assert result.is_well_formed is True
        assert result.success is False
        assert result.result_code is None

    @pytest.mark.parametrize("amount", ["Infinity", "NaN"])
    def test_non_finite_amounts_are_dropped(self, mpesa_callback_body, amount):
        body = mpesa_callback_body("ws_CO_123")
        body["Body"]["stkCallback"]["CallbackMetadata"]["Item"] = [{"Name": "Amount", "Value": json.loads(amount)}]
        assert parse_stk_callback(body).amount is None


class TestParseTransactionDate:
    def test_parses_nairobi_time(self):
        parsed = parse_transaction_date("20261017101530")
        assert parsed == datetime(2026, 10, 17, 10, 15, 30, tzinfo=EAT)
        assert parsed.astimezone(UTC).hour == 7

    @pytest.mark.parametrize("value", [None, "", "not-a-date", "2026"])
    def test_invalid_values(self, value):
        assert parse_transaction_date(value) is None
