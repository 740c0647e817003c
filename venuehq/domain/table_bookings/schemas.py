"""Table booking schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_time_string
from .policies import BOOKING_TYPES

BOOKING_SOURCES = ("website", "phone", "walk_in", "staff")
PAYMENT_METHODS = ("card", "cash")


def _validate_booking_type(v: str) -> str:
    if v not in BOOKING_TYPES:
        raise ValueError(f"Booking type must be one of: {', '.join(BOOKING_TYPES)}")
    return v


class TimeSlot(BaseModel):
    time: str
    available_capacity: int
    booking_type: str
    requires_prepayment: bool


class KitchenHours(BaseModel):
    opens: str
    closes: str
    source: str


class AvailabilityResponse(BaseModel):
    available: bool
    time_slots: list[TimeSlot]
    kitchen_hours: Optional[KitchenHours] = None
    message: Optional[str] = None


class NextSlotResponse(BaseModel):
    booking_date: Optional[date] = None
    time: Optional[str] = None
    available_capacity: Optional[int] = None


class GuestBookingCreate(BaseModel):
    """Website booking form; source and overrides are fixed server-side"""

    booking_date: date
    booking_time: str
    party_size: int
    booking_type: str = "regular"

    first_name: str
    last_name: Optional[str] = None
    mobile_number: str
    email: Optional[str] = None
    sms_opt_in: bool = True

    special_requirements: Optional[str] = None
    dietary_requirements: Optional[str] = None
    allergies: Optional[str] = None

    @field_validator("booking_time")
    @classmethod
    def validate_time(cls, v):
        v = validate_time_string(v)
        if not v:
            raise ValueError("Booking time is required")
        return v

    @field_validator("party_size")
    @classmethod
    def validate_party_size(cls, v):
        if v < 1:
            raise ValueError("Party size must be at least 1")
        return v

    @field_validator("booking_type")
    @classmethod
    def validate_type(cls, v):
        return _validate_booking_type(v)

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("First name is required")
        return v


class BookingCreate(GuestBookingCreate):
    """Staff booking; may take cash and override advance-notice rules"""

    source: str = "phone"
    payment_method: Optional[str] = None
    override_policy: bool = False

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        if v not in BOOKING_SOURCES:
            raise ValueError(f"Source must be one of: {', '.join(BOOKING_SOURCES)}")
        return v

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v):
        if v is not None and v not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return v


class BookingUpdate(BaseModel):
    booking_date: Optional[date] = None
    booking_time: Optional[str] = None
    party_size: Optional[int] = None
    special_requirements: Optional[str] = None
    dietary_requirements: Optional[str] = None
    allergies: Optional[str] = None

    @field_validator("booking_time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_string(v)

    @field_validator("party_size")
    @classmethod
    def validate_party_size(cls, v):
        if v is not None and v < 1:
            raise ValueError("Party size must be at least 1")
        return v


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None


class RecordPaymentRequest(BaseModel):
    payment_method: str = "card"
    amount: Optional[float] = None

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v):
        if v not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return v


class BookingResponse(BaseModel):
    id: int
    public_id: str
    booking_reference: str
    customer_id: int
    customer_name: Optional[str] = None
    booking_date: date
    booking_time: str
    party_size: int
    booking_type: str
    duration_minutes: int
    status: str
    source: str
    special_requirements: Optional[str] = None
    dietary_requirements: Optional[str] = None
    allergies: Optional[str] = None
    deposit_amount: float
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    payment_link: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    refund_amount: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingCreatedResponse(BookingResponse):
    warnings: list[str] = []
    manage_url: Optional[str] = None


class ModificationCheck(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class RefundResponse(BaseModel):
    booking: BookingResponse
    refund_amount: float
    refund_percentage: int
    refund_reason: str


class BookingPolicyBase(BaseModel):
    full_refund_hours: int
    partial_refund_hours: int
    partial_refund_percentage: int
    modification_allowed: bool
    cancellation_fee: float = 0
    max_party_size: int
    min_advance_hours: int
    max_advance_days: int

    @field_validator("partial_refund_percentage")
    @classmethod
    def validate_percentage(cls, v):
        if v < 0 or v > 100:
            raise ValueError("Refund percentage must be between 0 and 100")
        return v


class BookingPolicyResponse(BookingPolicyBase):
    booking_type: str

    class Config:
        from_attributes = True


class TimeSlotConfigCreate(BaseModel):
    day_of_week: int
    slot_time: str
    booking_type: Optional[str] = None
    max_covers: int
    is_active: bool = True

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v):
        if v < 0 or v > 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @field_validator("slot_time")
    @classmethod
    def validate_slot_time(cls, v):
        v = validate_time_string(v)
        if not v:
            raise ValueError("Slot time is required")
        return v

    @field_validator("booking_type")
    @classmethod
    def validate_type(cls, v):
        if v is None:
            return v
        return _validate_booking_type(v)

    @field_validator("max_covers")
    @classmethod
    def validate_covers(cls, v):
        if v < 0:
            raise ValueError("Max covers cannot be negative")
        return v


class TimeSlotConfigResponse(TimeSlotConfigCreate):
    id: int

    class Config:
        from_attributes = True


class DashboardStats(BaseModel):
    today_bookings: int
    today_covers: int
    upcoming_bookings: int
    pending_payments: int
    this_month_bookings: int
    last_month_bookings: int
    growth_percentage: float
