"""Application tests for invoice generation, status changes and the overdue sweep."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from sales.config import Settings, set_settings
from sales.invoice.generation import GenerateInvoice
from sales.invoice.invoice import Invoice, InvoiceStatus
from sales.invoice.repository import InvoiceFilter
from sales.invoice.status import MarkOverdueInvoices, UpdateInvoiceStatus
from sales.order.management import UpdatePaymentStatus


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _invoice(invoice_id):
    return current_domain.repository_for(Invoice).get(invoice_id)


class TestGenerateInvoice:
    def test_unpaid_order_gets_a_sent_invoice(self, place_order):
        order = place_order()
        invoice = _invoice(_process(GenerateInvoice(order_id=order.id)))

        assert invoice.invoice_number == f"INV{datetime.now(UTC):%Y%m%d}1000"
        assert invoice.status == InvoiceStatus.SENT.value
        assert invoice.order_number == order.order_number
        assert invoice.total == order.total
        assert invoice.amount_due == order.total
        assert (invoice.due_date - invoice.issue_date) == timedelta(days=30)

    def test_paid_order_gets_a_paid_invoice(self, place_order):
        order = place_order()
        _process(UpdatePaymentStatus(order_id=order.id, payment_status="paid"))
        invoice = _invoice(_process(GenerateInvoice(order_id=order.id)))
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.amount_due == 0.0

    def test_generating_twice_returns_the_same_invoice(self, place_order):
        order = place_order()
        first = _process(GenerateInvoice(order_id=order.id))
        second = _process(GenerateInvoice(order_id=order.id))
        assert first == second
        assert len(current_domain.repository_for(Invoice).find_invoices()) == 1

    def test_unknown_order_returns_none(self):
        assert _process(GenerateInvoice(order_id="missing")) is None

    def test_due_days_follow_settings(self, place_order):
        set_settings(Settings(invoice_due_days=14))
        invoice = _invoice(_process(GenerateInvoice(order_id=place_order().id)))
        assert (invoice.due_date - invoice.issue_date) == timedelta(days=14)


class TestUpdateInvoiceStatus:
    def test_cancel_sent_invoice(self, place_order):
        invoice_id = _process(GenerateInvoice(order_id=place_order().id))
        _process(UpdateInvoiceStatus(invoice_id=invoice_id, status="cancelled"))
        assert _invoice(invoice_id).status == InvoiceStatus.CANCELLED.value

    def test_marking_paid_stamps_payment_time(self, place_order):
        invoice_id = _process(GenerateInvoice(order_id=place_order().id))
        _process(UpdateInvoiceStatus(invoice_id=invoice_id, status="paid"))
        invoice = _invoice(invoice_id)
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.paid_at is not None

    def test_cancelled_invoice_is_terminal(self, place_order):
        invoice_id = _process(GenerateInvoice(order_id=place_order().id))
        _process(UpdateInvoiceStatus(invoice_id=invoice_id, status="cancelled"))
        with pytest.raises(ValidationError):
            _process(UpdateInvoiceStatus(invoice_id=invoice_id, status="sent"))

    def test_unknown_invoice_returns_none(self):
        assert _process(UpdateInvoiceStatus(invoice_id="missing", status="paid")) is None


class TestMarkOverdueInvoices:
    def test_flags_sent_invoices_past_due(self, place_order):
        invoice_id = _process(GenerateInvoice(order_id=place_order().id))
        as_of = datetime.now(UTC) + timedelta(days=31)

        assert _process(MarkOverdueInvoices(as_of=as_of)) == [invoice_id]
        invoice = _invoice(invoice_id)
        assert invoice.status == InvoiceStatus.OVERDUE.value
        assert invoice.amount_due == invoice.total

    def test_invoices_within_terms_are_left_alone(self, place_order):
        invoice_id = _process(GenerateInvoice(order_id=place_order().id))
        assert _process(MarkOverdueInvoices(as_of=datetime.now(UTC) + timedelta(days=29))) == []
        assert _invoice(invoice_id).status == InvoiceStatus.SENT.value

    def test_sweep_is_idempotent(self, place_order):
        _process(GenerateInvoice(order_id=place_order().id))
        as_of = datetime.now(UTC) + timedelta(days=31)
        _process(MarkOverdueInvoices(as_of=as_of))
        assert _process(MarkOverdueInvoices(as_of=as_of)) == []

    def test_paid_invoices_never_go_overdue(self, place_order):
        order = place_order()
        _process(UpdatePaymentStatus(order_id=order.id, payment_status="paid"))
        _process(GenerateInvoice(order_id=order.id))
        assert _process(MarkOverdueInvoices(as_of=datetime.now(UTC) + timedelta(days=60))) == []


class TestInvoiceQueries:
    def test_lookups(self, place_order):
        order = place_order()
        invoice_id = _process(GenerateInvoice(order_id=order.id))
        repo = current_domain.repository_for(Invoice)

        assert repo.find_by_order_id(order.id).id == invoice_id
        assert repo.find_by_number(_invoice(invoice_id).invoice_number).id == invoice_id
        assert repo.find_by_id("missing") is None

    def test_filter_by_status_and_search(self, place_order):
        sent_id = _process(GenerateInvoice(order_id=place_order(customer_name="Achieng Atieno").id))
        cancelled_id = _process(GenerateInvoice(order_id=place_order().id))
        _process(UpdateInvoiceStatus(invoice_id=cancelled_id, status="cancelled"))
        repo = current_domain.repository_for(Invoice)

        assert [i.id for i in repo.find_invoices(InvoiceFilter(statuses=["sent"]))] == [sent_id]
        assert [i.id for i in repo.find_invoices(InvoiceFilter(search="achieng"))] == [sent_id]

    def test_stats(self, place_order):
        paid = place_order()
        _process(UpdatePaymentStatus(order_id=paid.id, payment_status="paid"))
        _process(GenerateInvoice(order_id=paid.id))
        _process(GenerateInvoice(order_id=place_order().id))
        overdue_id = _process(GenerateInvoice(order_id=place_order().id))
        _process(UpdateInvoiceStatus(invoice_id=overdue_id, status="overdue"))

        stats = current_domain.repository_for(Invoice).stats()
        assert stats.total == 3
        assert stats.paid == 1
        assert stats.sent == 1
        assert stats.overdue == 1
        assert stats.total_amount == 18000.0
        assert stats.paid_amount == 6000.0
        assert stats.outstanding_amount == 12000.0
