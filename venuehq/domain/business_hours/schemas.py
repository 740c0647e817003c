"""Business hours schemas - Pydantic models for hours and service status"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_time_string


class DayHoursFields(BaseModel):
    opens: Optional[str] = None
    closes: Optional[str] = None
    kitchen_opens: Optional[str] = None
    kitchen_closes: Optional[str] = None
    is_closed: bool = False
    is_kitchen_closed: bool = False

    @field_validator("opens", "closes", "kitchen_opens", "kitchen_closes")
    @classmethod
    def validate_times(cls, v):
        return validate_time_string(v)


class WeeklyHoursDay(DayHoursFields):
    day_of_week: int

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v):
        if v < 0 or v > 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        return v


class WeeklyHoursUpdate(BaseModel):
    days: list[WeeklyHoursDay]

    @model_validator(mode="after")
    def unique_days(self):
        days = [d.day_of_week for d in self.days]
        if len(days) != len(set(days)):
            raise ValueError("Each day of the week can only appear once")
        return self


class BusinessHoursResponse(DayHoursFields):
    day_of_week: int

    class Config:
        from_attributes = True


class SpecialHoursCreate(DayHoursFields):
    start_date: date
    end_date: Optional[date] = None
    note: Optional[str] = None

    @field_validator("note")
    @classmethod
    def validate_note(cls, v):
        if v and len(v) > 500:
            raise ValueError("Note must be 500 characters or fewer")
        return v


class SpecialHoursUpdate(DayHoursFields):
    note: Optional[str] = None

    @field_validator("note")
    @classmethod
    def validate_note(cls, v):
        if v and len(v) > 500:
            raise ValueError("Note must be 500 characters or fewer")
        return v


class SpecialHoursResponse(DayHoursFields):
    id: int
    date: date
    note: Optional[str] = None

    class Config:
        from_attributes = True


class ResolvedHoursResponse(DayHoursFields):
    date: date
    source: str  # special_hours, business_hours, none
    note: Optional[str] = None


class ServiceStatusUpdate(BaseModel):
    is_enabled: bool
    message: Optional[str] = None


class ServiceStatusResponse(BaseModel):
    service_code: str
    display_name: str
    is_enabled: bool
    message: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceStatusOverrideCreate(BaseModel):
    start_date: date
    end_date: Optional[date] = None
    is_enabled: bool = False
    message: Optional[str] = None


class ServiceStatusOverrideResponse(BaseModel):
    id: int
    service_code: str
    start_date: date
    end_date: date
    is_enabled: bool
    message: Optional[str] = None

    class Config:
        from_attributes = True


class EffectiveServiceStatus(BaseModel):
    service_code: str
    date: date
    is_enabled: bool
    message: Optional[str] = None
    source: str  # override, global, default
