"""Customer domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_uk_phone


class CustomerCreate(BaseModel):
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    notes: Optional[str] = None
    sms_opt_in: bool = True

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("First name is required")
        return v

    @field_validator("mobile_number")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_uk_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)


class CustomerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("mobile_number")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_uk_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)


class SmsOptInUpdate(BaseModel):
    sms_opt_in: bool


class CustomerResponse(BaseModel):
    id: int
    public_id: str
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    notes: Optional[str] = None
    sms_opt_in: bool
    sms_opt_out_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    customers: list[CustomerResponse]
    total: int
    page: int
    page_size: int
