"""Pydantic request/response schemas for the sales API.

These are external contracts, separate from the internal Protean commands.
JSON keys are camelCase on the wire (``customerEmail``, ``unitPrice``) while
the Python attributes stay snake_case, so ``model_dump()`` feeds commands and
``model_dump(by_alias=True)`` feeds responses.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(CamelModel):
    street: str
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str = "Kenya"


class PrintSpecificationSchema(CamelModel):
    paper_type: str | None = None
    finish: str | None = None
    size: str | None = None
    colors: str | None = None
    sides: str | None = None
    binding: str | None = None
    finishing: list[str] | None = None
    custom_requirements: str | None = None
    uploaded_files: list[str] | None = None


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class OrderItemRequest(CamelModel):
    # Lenient types: business validation reports bad values as messages
    product_id: str | None = None
    product_name: str | None = None
    product_description: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    specification: PrintSpecificationSchema | None = None


class CreateOrderRequest(CamelModel):
    customer_email: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    items: list[OrderItemRequest] = Field(default_factory=list)
    customer_id: str | None = None
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    delivery_instructions: str | None = None
    notes: str | None = None
    due_date: datetime | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customerEmail": "wanjiku@example.com",
                    "customerName": "Wanjiku Kamau",
                    "customerPhone": "0712345678",
                    "items": [{"productName": "Business Cards", "quantity": 500, "unitPrice": 12.0}],
                }
            ]
        }
    }


class UpdateOrderRequest(CamelModel):
    status: str | None = None
    payment_status: str | None = None
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    delivery_instructions: str | None = None
    notes: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None


class OrderStatusRequest(CamelModel):
    status: str


class PaymentStatusRequest(CamelModel):
    payment_status: str
    payment_method: str | None = None
    payment_reference: str | None = None
    transaction_id: str | None = None


class CancelOrderRequest(CamelModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Quote requests
# ---------------------------------------------------------------------------
class QuoteItemRequest(CamelModel):
    product_id: str | None = None
    product_name: str | None = None
    variant_id: str | None = None
    variant_name: str | None = None
    description: str | None = None
    quantity: float | None = None
    unit_price: float | None = None


class CreateQuoteRequest(CamelModel):
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str | None = None
    customer_id: str | None = None
    customer_address: AddressSchema | None = None
    items: list[QuoteItemRequest] = Field(default_factory=list)
    tax: float = Field(default=0.0, ge=0)
    shipping: float = Field(default=0.0, ge=0)
    valid_until: datetime | None = None
    notes: str | None = None


class RejectQuoteRequest(CamelModel):
    reason: str | None = None


class ConvertQuoteRequest(CamelModel):
    customer_phone: str | None = None
    shipping_address: AddressSchema | None = None
    delivery_instructions: str | None = None
    notes: str | None = None


class SweepRequest(CamelModel):
    as_of: datetime | None = None


# ---------------------------------------------------------------------------
# Receipt / invoice requests
# ---------------------------------------------------------------------------
class IssueReceiptRequest(CamelModel):
    order_id: str
    payment_method: str
    transaction_id: str | None = None
    payment_date: datetime | None = None
    status: str | None = None


class StatusChangeRequest(CamelModel):
    status: str


class RefundReceiptRequest(CamelModel):
    amount: float = Field(gt=0)
    reason: str


class GenerateInvoiceRequest(CamelModel):
    order_id: str


# ---------------------------------------------------------------------------
# Payment requests
# ---------------------------------------------------------------------------
class MpesaPaymentRequest(CamelModel):
    phone_number: str
    amount: float = Field(gt=0)
    reference: str
    order_id: str | None = None
    description: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [{"phoneNumber": "0712345678", "amount": 6000, "reference": "BRD202610171000"}]
        }
    }


class StripeCheckoutRequest(CamelModel):
    line_items: list[dict[str, Any]] | None = None
    success_url: str
    cancel_url: str
    order_id: str | None = None
    customer_email: str | None = None


class OfflinePaymentRequest(CamelModel):
    order_id: str
    payment_method: str
    transaction_id: str | None = None
    paid_at: datetime | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class DocumentOut(CamelModel):
    """A document with numbered line items, listed in line order."""

    @field_validator("items", mode="before", check_fields=False)
    @classmethod
    def items_in_line_order(cls, items):
        return sorted(items, key=lambda item: item.line_number)


class OrderItemOut(CamelModel):
    line_number: int
    product_id: str | None = None
    product_name: str
    product_description: str | None = None
    quantity: int
    unit_price: float
    total_price: float
    specification: PrintSpecificationSchema | None = None


class OrderOut(DocumentOut):
    id: str
    order_number: str
    customer_id: str | None = None
    customer_email: str
    customer_name: str
    customer_phone: str
    status: str
    payment_status: str
    payment_method: str
    items: list[OrderItemOut]
    subtotal: float
    tax: float
    total: float
    currency: str
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    delivery_instructions: str | None = None
    notes: str | None = None
    payment_reference: str | None = None
    transaction_id: str | None = None
    quote_id: str | None = None
    source: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None


class QuoteItemOut(CamelModel):
    line_number: int
    product_id: str | None = None
    product_name: str
    variant_id: str | None = None
    variant_name: str | None = None
    description: str | None = None
    quantity: int
    unit_price: float
    total_price: float


class QuoteOut(DocumentOut):
    id: str
    quote_number: str
    customer_id: str | None = None
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    customer_address: AddressSchema | None = None
    items: list[QuoteItemOut]
    subtotal: float
    tax: float
    shipping: float
    total: float
    currency: str
    status: str
    quote_date: datetime
    valid_until: datetime
    notes: str | None = None
    rejection_reason: str | None = None
    converted_to_order_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReceiptItemOut(CamelModel):
    line_number: int
    product_id: str | None = None
    product_name: str
    description: str | None = None
    quantity: int
    unit_price: float
    total_price: float


class ReceiptOut(DocumentOut):
    id: str
    receipt_number: str
    order_id: str
    order_number: str | None = None
    customer_id: str | None = None
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    items: list[ReceiptItemOut]
    subtotal: float
    tax: float
    total: float
    currency: str
    payment_method: str
    transaction_id: str | None = None
    payment_date: datetime
    status: str
    refund_amount: float | None = None
    refund_reason: str | None = None
    refund_date: datetime | None = None
    created_at: datetime | None = None


class CompanyOut(CamelModel):
    name: str
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    tax_id: str | None = None


class InvoiceItemOut(CamelModel):
    line_number: int
    description: str
    quantity: int
    unit_price: float
    total_price: float


class InvoiceOut(DocumentOut):
    id: str
    invoice_number: str
    order_id: str
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    customer_address: AddressSchema | None = None
    items: list[InvoiceItemOut]
    subtotal: float
    tax: float
    total: float
    currency: str
    issue_date: datetime
    due_date: datetime
    status: str
    payment_method: str | None = None
    payment_reference: str | None = None
    notes: str | None = None
    terms: str | None = None
    company: CompanyOut | None = None
    paid_at: datetime | None = None


class OrderStatsOut(CamelModel):
    total: int
    pending: int
    confirmed: int
    processing: int
    completed: int
    cancelled: int
    total_revenue: float
    average_order_value: float


class ReceiptStatsOut(CamelModel):
    total_receipts: int
    completed: int
    refunded: int
    total_revenue: float
    total_refunded: float
    net_revenue: float


class InvoiceStatsOut(CamelModel):
    total: int
    paid: int
    sent: int
    overdue: int
    total_amount: float
    paid_amount: float
    outstanding_amount: float
