"""Invoice schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_email

INVOICE_STATUSES = ("draft", "sent", "partially_paid", "paid", "overdue", "void")
RECURRING_FREQUENCIES = ("weekly", "monthly", "quarterly", "yearly")
PAYMENT_METHODS = ("bank_transfer", "card", "cash", "cheque", "stripe", "other")


def _percentage(v, label: str):
    if v is None:
        return v
    if v < 0 or v > 100:
        raise ValueError(f"{label} must be between 0 and 100")
    return v


# ============================================================================
# Vendors and catalog
# ============================================================================


class VendorBase(BaseModel):
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    vat_number: Optional[str] = None
    payment_terms: int = 30
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Vendor name is required")
        return v

    @field_validator("email")
    @classmethod
    def validate_vendor_email(cls, v):
        return validate_email(v)

    @field_validator("payment_terms")
    @classmethod
    def validate_terms(cls, v):
        if v < 0 or v > 365:
            raise ValueError("Payment terms must be between 0 and 365 days")
        return v


class VendorResponse(VendorBase):
    id: int
    is_active: bool

    class Config:
        from_attributes = True


class CatalogItemBase(BaseModel):
    name: str
    description: Optional[str] = None
    default_price: float = 0
    default_vat_rate: float = 20

    @field_validator("default_vat_rate")
    @classmethod
    def validate_vat(cls, v):
        return _percentage(v, "VAT rate")


class CatalogItemResponse(CatalogItemBase):
    id: int

    class Config:
        from_attributes = True


# ============================================================================
# Invoices
# ============================================================================


class LineItemInput(BaseModel):
    catalog_item_id: Optional[int] = None
    description: str
    quantity: float
    unit_price: float
    discount_percentage: float = 0
    vat_rate: float = 20

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Line item description is required")
        return v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError("Quantity must be greater than 0")
        return v

    @field_validator("unit_price")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Unit price cannot be negative")
        return v

    @field_validator("discount_percentage")
    @classmethod
    def validate_discount(cls, v):
        return _percentage(v, "Discount")

    @field_validator("vat_rate")
    @classmethod
    def validate_vat(cls, v):
        return _percentage(v, "VAT rate")


class LineItemResponse(BaseModel):
    id: int
    position: int
    description: str
    quantity: float
    unit_price: float
    discount_percentage: float
    vat_rate: float
    subtotal_amount: float
    discount_amount: float
    vat_amount: float
    total_amount: float

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    vendor_id: int
    invoice_date: date
    due_date: Optional[date] = None  # defaults from vendor payment terms
    reference: Optional[str] = None
    invoice_discount_percentage: float = 0
    line_items: list[LineItemInput]
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("invoice_discount_percentage")
    @classmethod
    def validate_discount(cls, v):
        return _percentage(v, "Invoice discount")

    @field_validator("line_items")
    @classmethod
    def validate_line_items(cls, v):
        if not v:
            raise ValueError("At least one line item is required")
        return v

    @model_validator(mode="after")
    def validate_dates(self):
        if self.due_date and self.due_date < self.invoice_date:
            raise ValueError("Due date cannot be before invoice date")
        return self


class InvoiceUpdate(InvoiceCreate):
    pass


class PaymentCreate(BaseModel):
    amount: float
    payment_date: date
    payment_method: str = "bank_transfer"
    reference: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError("Payment amount must be greater than 0")
        return v

    @field_validator("payment_method")
    @classmethod
    def validate_method(cls, v):
        if v not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return v


class PaymentResponse(BaseModel):
    id: int
    amount: float
    payment_date: date
    payment_method: Optional[str] = None
    reference: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    public_id: str
    invoice_number: str
    vendor_id: int
    vendor_name: Optional[str] = None
    invoice_date: date
    due_date: date
    reference: Optional[str] = None
    invoice_discount_percentage: float
    subtotal_amount: float
    discount_amount: float
    vat_amount: float
    total_amount: float
    paid_amount: float
    outstanding_amount: float
    status: str
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    payment_link: Optional[str] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    line_items: list[LineItemResponse] = []
    payments: list[PaymentResponse] = []


class InvoiceSummary(BaseModel):
    total_outstanding: float
    total_overdue: float
    overdue_count: int
    paid_this_month: float
    draft_count: int


class SendInvoiceRequest(BaseModel):
    recipients: Optional[list[str]] = None  # defaults to the vendor email
    cc: Optional[list[str]] = None
    subject: Optional[str] = None
    message: Optional[str] = None

    @field_validator("recipients", "cc")
    @classmethod
    def validate_addresses(cls, v):
        if v is None:
            return v
        return [validate_email(address) for address in v if address and address.strip()]


class SendInvoiceResult(BaseModel):
    success: bool
    sent_to: list[str]
    error: Optional[str] = None


class EmailLogResponse(BaseModel):
    id: int
    sent_to: str
    subject: str
    email_type: str
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# Recurring invoices
# ============================================================================


class RecurringInvoiceBase(BaseModel):
    vendor_id: int
    frequency: str
    next_invoice_date: date
    end_date: Optional[date] = None
    days_before_due: int = 30
    reference: Optional[str] = None
    invoice_discount_percentage: float = 0
    line_items: list[LineItemInput]
    notes: Optional[str] = None
    is_active: bool = True

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        if v not in RECURRING_FREQUENCIES:
            raise ValueError(f"Frequency must be one of: {', '.join(RECURRING_FREQUENCIES)}")
        return v

    @field_validator("days_before_due")
    @classmethod
    def validate_days(cls, v):
        if v < 0 or v > 365:
            raise ValueError("Days before due must be between 0 and 365")
        return v

    @field_validator("invoice_discount_percentage")
    @classmethod
    def validate_discount(cls, v):
        return _percentage(v, "Invoice discount")

    @field_validator("line_items")
    @classmethod
    def validate_line_items(cls, v):
        if not v:
            raise ValueError("At least one line item is required")
        return v

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date and self.end_date < self.next_invoice_date:
            raise ValueError("End date cannot be before the next invoice date")
        return self


class RecurringInvoiceResponse(RecurringInvoiceBase):
    id: int
    last_invoice_id: Optional[int] = None

    class Config:
        from_attributes = True
