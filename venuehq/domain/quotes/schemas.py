"""Quote schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ..invoices.schemas import LineItemInput, LineItemResponse, _percentage

QUOTE_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")


class QuoteCreate(BaseModel):
    vendor_id: int
    quote_date: date
    valid_until: date
    reference: Optional[str] = None
    quote_discount_percentage: float = 0
    line_items: list[LineItemInput]
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("quote_discount_percentage")
    @classmethod
    def validate_discount(cls, v):
        return _percentage(v, "Quote discount")

    @field_validator("line_items")
    @classmethod
    def validate_line_items(cls, v):
        if not v:
            raise ValueError("At least one line item is required")
        return v

    @model_validator(mode="after")
    def validate_dates(self):
        if self.valid_until < self.quote_date:
            raise ValueError("Valid until date cannot be before the quote date")
        return self


class QuoteUpdate(QuoteCreate):
    pass


class QuoteStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in QUOTE_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(QUOTE_STATUSES)}")
        return v


class QuoteResponse(BaseModel):
    id: int
    quote_number: str
    vendor_id: int
    vendor_name: Optional[str] = None
    quote_date: date
    valid_until: date
    reference: Optional[str] = None
    quote_discount_percentage: float
    subtotal_amount: float
    discount_amount: float
    vat_amount: float
    total_amount: float
    status: str
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    converted_invoice_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuoteDetailResponse(QuoteResponse):
    line_items: list[LineItemResponse] = []


class QuoteSummary(BaseModel):
    total_pending: float
    total_expired: float
    total_accepted: float
    draft_count: int
