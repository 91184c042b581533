"""FastAPI routes for the sales service — orders, quotes, receipts, invoices
and payments.

Order, quote, receipt and invoice endpoints answer with the
``{success, data?, error?, message?}`` envelope. The payment endpoints keep
the shapes the storefront and the providers already speak: ``{id, url}`` for
Stripe checkout and the Daraja acknowledgement for M-Pesa callbacks.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, Response
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from sales.api.auth import User, current_user, staff_user
from sales.api.errors import ApiError, envelope, error_body
from sales.api.schemas import (
    CancelOrderRequest,
    ConvertQuoteRequest,
    CreateOrderRequest,
    CreateQuoteRequest,
    GenerateInvoiceRequest,
    InvoiceOut,
    InvoiceStatsOut,
    IssueReceiptRequest,
    MpesaPaymentRequest,
    OfflinePaymentRequest,
    OrderOut,
    OrderStatsOut,
    OrderStatusRequest,
    PaymentStatusRequest,
    QuoteOut,
    ReceiptOut,
    ReceiptStatsOut,
    RefundReceiptRequest,
    RejectQuoteRequest,
    StatusChangeRequest,
    StripeCheckoutRequest,
    SweepRequest,
    UpdateOrderRequest,
)
from sales.domain import logger
from sales.gateway import get_mpesa_gateway, get_stripe_gateway
from sales.gateway.fake_adapter import FakeMpesaGateway, FakeStripeGateway
from sales.gateway.port import WebhookSignatureError
from sales.invoice.generation import GenerateInvoice
from sales.invoice.invoice import Invoice
from sales.invoice.rendering import render_invoice_document
from sales.invoice.repository import InvoiceFilter
from sales.invoice.status import MarkOverdueInvoices, UpdateInvoiceStatus
from sales.order.management import CancelOrder, UpdateOrder, UpdateOrderStatus, UpdatePaymentStatus
from sales.order.order import Order
from sales.order.placement import PlaceOrder
from sales.order.repository import OrderFilter
from sales.order.validation import validate_order
from sales.payment.checkout import ReconcileStripeEvent, StartStripeCheckout, event_fields
from sales.payment.mpesa import InitiateMpesaPayment, ReconcileMpesaCallback
from sales.payment.offline import RecordOfflinePayment
from sales.quote.conversion import ConvertQuoteToOrder
from sales.quote.expiry import ExpireQuotes
from sales.quote.lifecycle import AcceptQuote, CreateQuote, RejectQuote, SendQuote
from sales.quote.quote import Quote
from sales.quote.repository import QuoteFilter
from sales.receipt.issuance import IssueReceipt, UpdateReceiptStatus
from sales.receipt.receipt import Receipt
from sales.receipt.refund import RefundReceipt
from sales.receipt.repository import ReceiptFilter
from sales.utils.logging import current_environment


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _process(command_cls, **fields):
    """Build and process a command, turning domain validation into a 400."""
    try:
        command = command_cls(**fields)
        return current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        raise ApiError.from_validation(exc) from exc


def _json(value) -> str | None:
    return json.dumps(value) if value is not None else None


def _address(value) -> str | None:
    return _json(value.model_dump()) if value is not None else None


def _dump(schema, record) -> dict:
    return schema.model_validate(record).model_dump(mode="json", by_alias=True)


def _not_found(kind: str) -> ApiError:
    return ApiError(404, f"{kind} not found")


def _visible(user: User, record, kind: str):
    """Return ``record`` if ``user`` may see it; unknown and foreign records both 404."""
    if record is None or not user.can_see(record.customer_email, getattr(record, "customer_id", None)):
        raise _not_found(kind)
    return record


def _scoped_email(user: User, requested: str | None) -> str | None:
    return requested if user.is_staff else user.email


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
async def create_order(body: CreateOrderRequest):
    """Place an order. Open to guests; validation problems come back as a list."""
    items = [item.model_dump() for item in body.items]
    errors = validate_order(
        {
            "customer_email": body.customer_email,
            "customer_name": body.customer_name,
            "customer_phone": body.customer_phone,
            "items": items,
        }
    )
    if errors:
        return JSONResponse(status_code=400, content=error_body("Validation failed", errors))

    order_id = _process(
        PlaceOrder,
        customer_email=body.customer_email,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        items=_json(items),
        customer_id=body.customer_id,
        shipping_address=_address(body.shipping_address),
        billing_address=_address(body.billing_address),
        delivery_instructions=body.delivery_instructions,
        notes=body.notes,
        due_date=body.due_date,
    )
    order = current_domain.repository_for(Order).find_by_id(order_id)
    return envelope(_dump(OrderOut, order), message="Order created successfully")


@order_router.get("")
async def list_orders(
    user: User = Depends(current_user),
    status: list[str] | None = Query(default=None),
    payment_status: list[str] | None = Query(default=None, alias="paymentStatus"),
    payment_method: list[str] | None = Query(default=None, alias="paymentMethod"),
    customer_id: str | None = Query(default=None, alias="customerId"),
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
    search: str | None = None,
):
    order_filter = OrderFilter(
        statuses=status or [],
        payment_statuses=payment_status or [],
        payment_methods=payment_method or [],
        customer_id=customer_id if user.is_staff else None,
        customer_email=_scoped_email(user, customer_email),
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    orders = current_domain.repository_for(Order).find_orders(order_filter)
    return envelope([_dump(OrderOut, order) for order in orders])


@order_router.get("/stats")
async def order_statistics(
    _: User = Depends(staff_user),
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
):
    stats = current_domain.repository_for(Order).stats(OrderFilter(date_from=date_from, date_to=date_to))
    return envelope(_dump(OrderStatsOut, stats))


@order_router.get("/number/{order_number}")
async def get_order_by_number(order_number: str, user: User = Depends(current_user)):
    order = current_domain.repository_for(Order).find_by_number(order_number)
    return envelope(_dump(OrderOut, _visible(user, order, "Order")))


@order_router.get("/{order_id}")
async def get_order(order_id: str, user: User = Depends(current_user)):
    order = current_domain.repository_for(Order).find_by_id(order_id)
    return envelope(_dump(OrderOut, _visible(user, order, "Order")))


def _order_response(order_id: str | None, message: str) -> dict:
    if order_id is None:
        raise _not_found("Order")
    order = current_domain.repository_for(Order).find_by_id(order_id)
    return envelope(_dump(OrderOut, order), message=message)


@order_router.patch("/{order_id}")
async def update_order(order_id: str, body: UpdateOrderRequest, _: User = Depends(staff_user)):
    result = _process(
        UpdateOrder,
        order_id=order_id,
        status=body.status,
        payment_status=body.payment_status,
        shipping_address=_address(body.shipping_address),
        billing_address=_address(body.billing_address),
        delivery_instructions=body.delivery_instructions,
        notes=body.notes,
        due_date=body.due_date,
        completed_at=body.completed_at,
    )
    return _order_response(result, "Order updated successfully")


@order_router.patch("/{order_id}/status")
async def update_order_status(order_id: str, body: OrderStatusRequest, _: User = Depends(staff_user)):
    result = _process(UpdateOrderStatus, order_id=order_id, status=body.status)
    return _order_response(result, "Order status updated")


@order_router.patch("/{order_id}/payment-status")
async def update_payment_status(order_id: str, body: PaymentStatusRequest, _: User = Depends(staff_user)):
    result = _process(
        UpdatePaymentStatus,
        order_id=order_id,
        payment_status=body.payment_status,
        payment_method=body.payment_method,
        payment_reference=body.payment_reference,
        transaction_id=body.transaction_id,
    )
    return _order_response(result, "Payment status updated")


@order_router.delete("/{order_id}")
async def cancel_order(order_id: str, body: CancelOrderRequest | None = None, _: User = Depends(staff_user)):
    cancelled = _process(CancelOrder, order_id=order_id, reason=body.reason if body else None)
    if not cancelled:
        raise _not_found("Order")
    return envelope(message="Order cancelled successfully")


# ---------------------------------------------------------------------------
# Quote Router
# ---------------------------------------------------------------------------
quote_router = APIRouter(prefix="/quotes", tags=["quotes"])


@quote_router.post("", status_code=201)
async def create_quote(body: CreateQuoteRequest, user: User = Depends(current_user)):
    if not user.is_staff and body.customer_email.lower() != user.email.lower():
        raise ApiError(403, "Customers can only request quotes for themselves")

    quote_id = _process(
        CreateQuote,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        customer_id=body.customer_id,
        customer_address=_address(body.customer_address),
        items=_json([item.model_dump() for item in body.items]),
        tax=body.tax,
        shipping=body.shipping,
        valid_until=body.valid_until,
        notes=body.notes,
    )
    quote = current_domain.repository_for(Quote).find_by_id(quote_id)
    return envelope(_dump(QuoteOut, quote), message="Quote created successfully")


@quote_router.get("")
async def list_quotes(
    user: User = Depends(current_user),
    status: list[str] | None = Query(default=None),
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
    search: str | None = None,
):
    quote_filter = QuoteFilter(
        statuses=status or [],
        customer_email=_scoped_email(user, customer_email),
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    quotes = current_domain.repository_for(Quote).find_quotes(quote_filter)
    return envelope([_dump(QuoteOut, quote) for quote in quotes])


@quote_router.post("/expire")
async def expire_quotes(body: SweepRequest | None = None, _: User = Depends(staff_user)):
    expired = _process(ExpireQuotes, as_of=body.as_of if body else None)
    return envelope({"expired": expired}, message=f"{len(expired)} quote(s) expired")


@quote_router.get("/number/{quote_number}")
async def get_quote_by_number(quote_number: str, user: User = Depends(current_user)):
    quote = current_domain.repository_for(Quote).find_by_number(quote_number)
    return envelope(_dump(QuoteOut, _visible(user, quote, "Quote")))


@quote_router.get("/{quote_id}")
async def get_quote(quote_id: str, user: User = Depends(current_user)):
    quote = current_domain.repository_for(Quote).find_by_id(quote_id)
    return envelope(_dump(QuoteOut, _visible(user, quote, "Quote")))


def _quote_action(user: User, quote_id: str, command_cls, message: str, **fields) -> dict:
    _visible(user, current_domain.repository_for(Quote).find_by_id(quote_id), "Quote")
    _process(command_cls, quote_id=quote_id, **fields)
    quote = current_domain.repository_for(Quote).find_by_id(quote_id)
    return envelope(_dump(QuoteOut, quote), message=message)


@quote_router.post("/{quote_id}/send")
async def send_quote(quote_id: str, user: User = Depends(staff_user)):
    return _quote_action(user, quote_id, SendQuote, "Quote sent")


@quote_router.post("/{quote_id}/accept")
async def accept_quote(quote_id: str, user: User = Depends(current_user)):
    return _quote_action(user, quote_id, AcceptQuote, "Quote accepted")


@quote_router.post("/{quote_id}/reject")
async def reject_quote(quote_id: str, body: RejectQuoteRequest | None = None, user: User = Depends(current_user)):
    return _quote_action(user, quote_id, RejectQuote, "Quote rejected", reason=body.reason if body else None)


@quote_router.post("/{quote_id}/convert", status_code=201)
async def convert_quote(quote_id: str, body: ConvertQuoteRequest | None = None, user: User = Depends(current_user)):
    _visible(user, current_domain.repository_for(Quote).find_by_id(quote_id), "Quote")
    body = body or ConvertQuoteRequest()
    order_id = _process(
        ConvertQuoteToOrder,
        quote_id=quote_id,
        customer_phone=body.customer_phone,
        shipping_address=_address(body.shipping_address),
        delivery_instructions=body.delivery_instructions,
        notes=body.notes,
    )
    order = current_domain.repository_for(Order).find_by_id(order_id)
    return envelope(_dump(OrderOut, order), message="Quote converted to order")


# ---------------------------------------------------------------------------
# Receipt Router
# ---------------------------------------------------------------------------
receipt_router = APIRouter(prefix="/receipts", tags=["receipts"])


@receipt_router.post("", status_code=201)
async def issue_receipt(body: IssueReceiptRequest, _: User = Depends(staff_user)):
    receipt_id = _process(
        IssueReceipt,
        order_id=body.order_id,
        payment_method=body.payment_method,
        transaction_id=body.transaction_id,
        payment_date=body.payment_date,
        **({"status": body.status} if body.status else {}),
    )
    if receipt_id is None:
        raise _not_found("Order")
    receipt = current_domain.repository_for(Receipt).find_by_id(receipt_id)
    return envelope(_dump(ReceiptOut, receipt), message="Receipt issued")


@receipt_router.get("")
async def list_receipts(
    user: User = Depends(current_user),
    status: list[str] | None = Query(default=None),
    payment_method: list[str] | None = Query(default=None, alias="paymentMethod"),
    order_id: str | None = Query(default=None, alias="orderId"),
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
    search: str | None = None,
):
    receipt_filter = ReceiptFilter(
        statuses=status or [],
        payment_methods=payment_method or [],
        order_id=order_id,
        customer_email=_scoped_email(user, customer_email),
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    receipts = current_domain.repository_for(Receipt).find_receipts(receipt_filter)
    return envelope([_dump(ReceiptOut, receipt) for receipt in receipts])


@receipt_router.get("/stats")
async def receipt_statistics(
    _: User = Depends(staff_user),
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
):
    stats = current_domain.repository_for(Receipt).stats(ReceiptFilter(date_from=date_from, date_to=date_to))
    return envelope(_dump(ReceiptStatsOut, stats))


@receipt_router.get("/number/{receipt_number}")
async def get_receipt_by_number(receipt_number: str, user: User = Depends(current_user)):
    receipt = current_domain.repository_for(Receipt).find_by_number(receipt_number)
    return envelope(_dump(ReceiptOut, _visible(user, receipt, "Receipt")))


@receipt_router.get("/{receipt_id}")
async def get_receipt(receipt_id: str, user: User = Depends(current_user)):
    receipt = current_domain.repository_for(Receipt).find_by_id(receipt_id)
    return envelope(_dump(ReceiptOut, _visible(user, receipt, "Receipt")))


@receipt_router.patch("/{receipt_id}/status")
async def update_receipt_status(receipt_id: str, body: StatusChangeRequest, _: User = Depends(staff_user)):
    if _process(UpdateReceiptStatus, receipt_id=receipt_id, status=body.status) is None:
        raise _not_found("Receipt")
    receipt = current_domain.repository_for(Receipt).find_by_id(receipt_id)
    return envelope(_dump(ReceiptOut, receipt), message="Receipt status updated")


@receipt_router.post("/{receipt_id}/refund")
async def refund_receipt(receipt_id: str, body: RefundReceiptRequest, _: User = Depends(staff_user)):
    if _process(RefundReceipt, receipt_id=receipt_id, amount=body.amount, reason=body.reason) is None:
        raise _not_found("Receipt")
    receipt = current_domain.repository_for(Receipt).find_by_id(receipt_id)
    return envelope(_dump(ReceiptOut, receipt), message="Refund recorded")


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


@invoice_router.post("", status_code=201)
async def generate_invoice(body: GenerateInvoiceRequest, _: User = Depends(staff_user)):
    invoice_id = _process(GenerateInvoice, order_id=body.order_id)
    if invoice_id is None:
        raise _not_found("Order")
    invoice = current_domain.repository_for(Invoice).find_by_id(invoice_id)
    return envelope(_dump(InvoiceOut, invoice), message="Invoice generated")


@invoice_router.get("")
async def list_invoices(
    user: User = Depends(current_user),
    status: list[str] | None = Query(default=None),
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
    search: str | None = None,
):
    invoice_filter = InvoiceFilter(
        statuses=status or [],
        customer_email=_scoped_email(user, customer_email),
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    invoices = current_domain.repository_for(Invoice).find_invoices(invoice_filter)
    return envelope([_dump(InvoiceOut, invoice) for invoice in invoices])


@invoice_router.get("/stats")
async def invoice_statistics(_: User = Depends(staff_user)):
    return envelope(_dump(InvoiceStatsOut, current_domain.repository_for(Invoice).stats()))


@invoice_router.post("/mark-overdue")
async def mark_overdue_invoices(body: SweepRequest | None = None, _: User = Depends(staff_user)):
    flagged = _process(MarkOverdueInvoices, as_of=body.as_of if body else None)
    return envelope({"overdue": flagged}, message=f"{len(flagged)} invoice(s) marked overdue")


@invoice_router.get("/number/{invoice_number}")
async def get_invoice_by_number(invoice_number: str, user: User = Depends(current_user)):
    invoice = current_domain.repository_for(Invoice).find_by_number(invoice_number)
    return envelope(_dump(InvoiceOut, _visible(user, invoice, "Invoice")))


@invoice_router.get("/order/{order_id}")
async def get_invoice_for_order(order_id: str, user: User = Depends(current_user)):
    invoice = current_domain.repository_for(Invoice).find_by_order_id(order_id)
    return envelope(_dump(InvoiceOut, _visible(user, invoice, "Invoice")))


@invoice_router.get("/{invoice_id}")
async def get_invoice(invoice_id: str, user: User = Depends(current_user)):
    invoice = current_domain.repository_for(Invoice).find_by_id(invoice_id)
    return envelope(_dump(InvoiceOut, _visible(user, invoice, "Invoice")))


@invoice_router.get("/{invoice_id}/document")
async def download_invoice(invoice_id: str, user: User = Depends(current_user)):
    invoice = _visible(user, current_domain.repository_for(Invoice).find_by_id(invoice_id), "Invoice")
    return Response(
        content=render_invoice_document(invoice),
        media_type="text/html; charset=utf-8",
        headers={"Content-Disposition": f'inline; filename="{invoice.invoice_number}.html"'},
    )


@invoice_router.patch("/{invoice_id}/status")
async def update_invoice_status(invoice_id: str, body: StatusChangeRequest, _: User = Depends(staff_user)):
    if _process(UpdateInvoiceStatus, invoice_id=invoice_id, status=body.status) is None:
        raise _not_found("Invoice")
    invoice = current_domain.repository_for(Invoice).find_by_id(invoice_id)
    return envelope(_dump(InvoiceOut, invoice), message="Invoice status updated")


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])

MPESA_ACK = {"ResultCode": 0, "ResultDesc": "Success"}
MPESA_ACK_ON_ERROR = {"ResultCode": 0, "ResultDesc": "Callback received"}


@payment_router.post("/mpesa")
async def initiate_mpesa_payment(body: MpesaPaymentRequest):
    """Send an STK push to the customer's phone."""
    gateway = get_mpesa_gateway()
    if not gateway.configured:
        missing = gateway.settings.missing()
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "M-Pesa not configured", "missing": missing},
        )

    try:
        command = InitiateMpesaPayment(
            phone_number=body.phone_number,
            amount=body.amount,
            reference=body.reference,
            order_id=body.order_id,
            description=body.description,
        )
        result = current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content=error_body("Validation failed", exc.messages))

    if not result.success:
        status_code = 400 if result.error == "InvalidPhoneNumber" else 502
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "message": result.message, "error": result.error},
        )

    return {
        "success": True,
        "message": result.message,
        "data": {
            "CheckoutRequestID": result.checkout_request_id,
            "MerchantRequestID": result.merchant_request_id,
            "ResponseCode": result.response_code,
            "ResponseDescription": result.response_description,
            "CustomerMessage": result.customer_message,
        },
    }


@payment_router.post("/mpesa/callback")
async def mpesa_callback(request: Request):
    """Daraja result callback. Always acknowledged so the provider stops retrying."""
    raw = (await request.body()).decode("utf-8", errors="replace")
    try:
        command = ReconcileMpesaCallback(raw_callback=raw)
        current_domain.process(command, asynchronous=False)
    except Exception:  # noqa: BLE001
        logger.exception("mpesa_callback_processing_failed")
        return MPESA_ACK_ON_ERROR
    return MPESA_ACK


@payment_router.get("/mpesa/status/{checkout_request_id}")
async def mpesa_transaction_status(checkout_request_id: str, _: User = Depends(staff_user)):
    result = get_mpesa_gateway().query_transaction_status(checkout_request_id)
    if not result.success:
        return JSONResponse(status_code=502, content={"success": False, "message": result.message, "error": result.error})
    return envelope(result.data, message=result.message)


@payment_router.post("/stripe")
async def create_stripe_checkout(body: StripeCheckoutRequest):
    """Create a hosted checkout session and return where to redirect."""
    gateway = get_stripe_gateway()
    if not gateway.configured:
        return JSONResponse(
            status_code=500,
            content={"error": "Stripe not configured. Set STRIPE_SECRET_KEY in environment."},
        )

    try:
        command = StartStripeCheckout(
            line_items=_json(body.line_items),
            success_url=body.success_url,
            cancel_url=body.cancel_url,
            order_id=body.order_id,
            customer_email=body.customer_email,
        )
        result = current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"error": "Validation failed", "details": exc.messages})

    if result is None:
        return JSONResponse(status_code=404, content={"error": "Order not found"})
    if not result.success:
        return JSONResponse(status_code=500, content={"error": "StripeError"})
    return {"id": result.session_id, "url": result.url}


@payment_router.post("/stripe/webhook")
async def stripe_webhook(request: Request, stripe_signature: str = Header(default="")):
    payload = await request.body()
    try:
        event = get_stripe_gateway().construct_event(payload, stripe_signature)
    except WebhookSignatureError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    if not isinstance(event, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid webhook payload"})

    try:
        command = ReconcileStripeEvent(**event_fields(event))
        outcome = current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"error": "Invalid event", "details": exc.messages})
    return {"received": True, "outcome": outcome}


@payment_router.post("/offline", status_code=201)
async def record_offline_payment(body: OfflinePaymentRequest, _: User = Depends(staff_user)):
    receipt_id = _process(
        RecordOfflinePayment,
        order_id=body.order_id,
        payment_method=body.payment_method,
        transaction_id=body.transaction_id,
        paid_at=body.paid_at,
    )
    if receipt_id is None:
        raise _not_found("Order")
    receipt = current_domain.repository_for(Receipt).find_by_id(receipt_id)
    return envelope(_dump(ReceiptOut, receipt), message="Payment recorded")


@payment_router.post("/gateway/configure")
async def configure_gateway(provider: str, should_succeed: bool = True, failure_reason: str | None = None):
    """Configure a fake gateway's behavior (non-production only)."""
    if current_environment() == "production":
        raise ApiError(403, "Gateway configuration not available in production")

    gateway = {"mpesa": get_mpesa_gateway, "stripe": get_stripe_gateway}.get(provider, lambda: None)()
    if not isinstance(gateway, FakeMpesaGateway | FakeStripeGateway):
        raise ApiError(400, "Gateway configuration only available for fake gateways")

    if failure_reason:
        gateway.configure(should_succeed=should_succeed, failure_reason=failure_reason)
    else:
        gateway.configure(should_succeed=should_succeed)
    return envelope(
        {"gateway": type(gateway).__name__, "shouldSucceed": gateway.should_succeed, "failureReason": gateway.failure_reason}
    )
