"""Application tests for receipts: manual issuance, status changes and refunds."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from sales.invoice.invoice import Invoice, InvoiceStatus
from sales.order.order import Order, PaymentStatus
from sales.payment.offline import RecordOfflinePayment
from sales.receipt.issuance import IssueReceipt, UpdateReceiptStatus
from sales.receipt.receipt import Receipt, ReceiptStatus
from sales.receipt.refund import RefundReceipt
from sales.receipt.repository import ReceiptFilter


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _paid_order(place_order):
    order = place_order()
    receipt_id = _process(RecordOfflinePayment(order_id=order.id, payment_method="cash", transaction_id="CASH-001"))
    return order, receipt_id


class TestIssueReceipt:
    def test_manual_receipt(self, place_order):
        order = place_order()
        receipt_id = _process(IssueReceipt(order_id=order.id, payment_method="bank_transfer", transaction_id="FT2610"))
        receipt = current_domain.repository_for(Receipt).get(receipt_id)
        assert receipt.receipt_number == f"R-{datetime.now(UTC).year}-001"
        assert receipt.order_id == order.id
        assert receipt.total == order.total
        assert receipt.status == ReceiptStatus.COMPLETED.value

    def test_unknown_order(self):
        assert _process(IssueReceipt(order_id="missing", payment_method="cash")) is None

    def test_pending_receipt_can_be_completed(self, place_order):
        order = place_order()
        receipt_id = _process(IssueReceipt(order_id=order.id, payment_method="cash", status="pending"))
        _process(UpdateReceiptStatus(receipt_id=receipt_id, status="completed"))
        assert current_domain.repository_for(Receipt).get(receipt_id).status == "completed"

    def test_update_unknown_receipt(self):
        assert _process(UpdateReceiptStatus(receipt_id="missing", status="completed")) is None


class TestRefundReceipt:
    def test_full_refund_propagates_to_order_and_invoice(self, place_order):
        order, receipt_id = _paid_order(place_order)

        _process(RefundReceipt(receipt_id=receipt_id, amount=6000.0, reason="Print defect"))

        receipt = current_domain.repository_for(Receipt).get(receipt_id)
        assert receipt.status == ReceiptStatus.REFUNDED.value
        assert current_domain.repository_for(Order).get(order.id).payment_status == PaymentStatus.REFUNDED.value
        invoice = current_domain.repository_for(Invoice).find_by_order_id(order.id)
        assert invoice.status == InvoiceStatus.REFUNDED.value

    def test_partial_refund(self, place_order):
        order, receipt_id = _paid_order(place_order)

        _process(RefundReceipt(receipt_id=receipt_id, amount=1000.0, reason="Late delivery"))

        refreshed = current_domain.repository_for(Order).get(order.id)
        assert refreshed.payment_status == PaymentStatus.PARTIALLY_REFUNDED.value
        invoice = current_domain.repository_for(Invoice).find_by_order_id(order.id)
        assert invoice.status == InvoiceStatus.PAID.value

    def test_refund_above_total_changes_nothing(self, place_order):
        order, receipt_id = _paid_order(place_order)

        with pytest.raises(ValidationError):
            _process(RefundReceipt(receipt_id=receipt_id, amount=6000.5, reason="Too much"))

        assert current_domain.repository_for(Receipt).get(receipt_id).status == ReceiptStatus.COMPLETED.value
        assert current_domain.repository_for(Order).get(order.id).payment_status == PaymentStatus.PAID.value

    def test_refund_unknown_receipt(self):
        assert _process(RefundReceipt(receipt_id="missing", amount=10.0, reason="x")) is None


class TestReceiptQueries:
    def test_for_order_and_by_transaction(self, place_order):
        order, receipt_id = _paid_order(place_order)
        repo = current_domain.repository_for(Receipt)
        assert [r.id for r in repo.for_order(order.id)] == [receipt_id]
        assert repo.find_by_transaction("CASH-001").id == receipt_id

    def test_payment_date_range(self, place_order):
        inside = place_order()
        outside = place_order()
        start = datetime(2026, 10, 1, tzinfo=UTC)
        inside_id = _process(RecordOfflinePayment(order_id=inside.id, payment_method="cash", paid_at=start))
        _process(RecordOfflinePayment(order_id=outside.id, payment_method="cash", paid_at=start - timedelta(days=1)))

        found = current_domain.repository_for(Receipt).find_receipts(
            ReceiptFilter(date_from=start, date_to=start + timedelta(days=30))
        )
        assert [r.id for r in found] == [inside_id]

    def test_stats(self, place_order):
        _, refunded_id = _paid_order(place_order)
        _paid_order(place_order)
        _process(RefundReceipt(receipt_id=refunded_id, amount=1500.0, reason="Partial"))

        stats = current_domain.repository_for(Receipt).stats()
        assert stats.total_receipts == 2
        assert stats.completed == 1
        assert stats.refunded == 1
        assert stats.total_revenue == 12000.0
        assert stats.total_refunded == 1500.0
        assert stats.net_revenue == 10500.0
