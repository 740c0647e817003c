"""Rota domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_email, validate_time_string, validate_uk_phone

DEPARTMENTS = ("bar", "kitchen", "floor", "management")
SHIFT_STATUSES = ("scheduled", "sick", "cancelled")


class EmployeeBase(BaseModel):
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    is_salaried: bool = False

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_uk_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("department")
    @classmethod
    def validate_department(cls, v):
        if v and v not in DEPARTMENTS:
            raise ValueError(f"Department must be one of: {', '.join(DEPARTMENTS)}")
        return v


class EmployeeUpdate(EmployeeBase):
    status: str = "active"

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ("active", "former"):
            raise ValueError("Status must be active or former")
        return v


class EmployeeResponse(EmployeeBase):
    id: int
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PayAgeBandBase(BaseModel):
    label: str
    min_age: int
    max_age: Optional[int] = None
    is_active: bool = True

    @model_validator(mode="after")
    def validate_ages(self):
        if self.min_age < 0:
            raise ValueError("Minimum age cannot be negative")
        if self.max_age is not None and self.max_age < self.min_age:
            raise ValueError("Maximum age cannot be below minimum age")
        return self


class PayAgeBandResponse(PayAgeBandBase):
    id: int

    class Config:
        from_attributes = True


class RateCreate(BaseModel):
    hourly_rate: float
    effective_from: date
    note: Optional[str] = None

    @field_validator("hourly_rate")
    @classmethod
    def validate_rate(cls, v):
        if v <= 0:
            raise ValueError("Hourly rate must be greater than zero")
        return v


class BandRateResponse(BaseModel):
    id: int
    band_id: int
    hourly_rate: float
    effective_from: date

    class Config:
        from_attributes = True


class RateOverrideResponse(BaseModel):
    id: int
    employee_id: int
    hourly_rate: float
    effective_from: date
    note: Optional[str] = None

    class Config:
        from_attributes = True


class ShiftBase(BaseModel):
    employee_id: Optional[int] = None
    shift_date: date
    start_time: str
    end_time: str
    unpaid_break_minutes: int = 0
    department: Optional[str] = None
    is_overnight: bool = False
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v):
        v = validate_time_string(v)
        if not v:
            raise ValueError("Time must be in HH:MM format")
        return v

    @field_validator("unpaid_break_minutes")
    @classmethod
    def validate_break(cls, v):
        if v < 0:
            raise ValueError("Break cannot be negative")
        return v


class ShiftUpdate(ShiftBase):
    status: str = "scheduled"

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in SHIFT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(SHIFT_STATUSES)}")
        return v


class ShiftResponse(ShiftBase):
    id: int
    week_id: int
    status: str
    employee_name: Optional[str] = None

    class Config:
        from_attributes = True


class RotaWeekResponse(BaseModel):
    id: int
    week_start: date
    status: str
    published_at: Optional[datetime] = None
    shifts: list[ShiftResponse] = []

    class Config:
        from_attributes = True


class PublishResult(BaseModel):
    week: RotaWeekResponse
    sms_sent: int


class ClockRequest(BaseModel):
    employee_id: int
    notes: Optional[str] = None


class TimeclockSessionResponse(BaseModel):
    id: int
    employee_id: int
    work_date: date
    clock_in_at: datetime
    clock_out_at: Optional[datetime] = None
    is_auto_closed: bool
    linked_shift_id: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class PayrollPeriodUpdate(BaseModel):
    period_start: date
    period_end: date

    @model_validator(mode="after")
    def validate_range(self):
        if self.period_end < self.period_start:
            raise ValueError("Period end cannot be before period start")
        return self


class PayrollRow(BaseModel):
    employee_id: int
    employee_name: str
    date: date
    department: Optional[str] = None
    planned_start: Optional[str] = None
    planned_end: Optional[str] = None
    actual_start: Optional[str] = None
    actual_end: Optional[str] = None
    planned_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    hourly_rate: Optional[float] = None
    total_pay: Optional[float] = None
    flags: list[str]
    shift_id: Optional[int] = None
    session_id: Optional[int] = None


class EmployeePayrollTotal(BaseModel):
    employee_id: int
    employee_name: str
    planned_hours: float
    actual_hours: float
    total_pay: float


class PayrollMonthResponse(BaseModel):
    year: int
    month: int
    period_start: date
    period_end: date
    rows: list[PayrollRow]
    planned_hours: float
    actual_hours: float
    total_pay: float
    employees: list[EmployeePayrollTotal]
    approved_at: Optional[datetime] = None


class PayrollApprovalResponse(BaseModel):
    id: int
    year: int
    month: int
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None

    class Config:
        from_attributes = True
