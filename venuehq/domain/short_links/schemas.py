"""Short link domain schemas - Pydantic models for validation"""

import re
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

LINK_TYPES = ("loyalty_portal", "promotion", "reward_redemption", "custom", "booking_confirmation")
CODE_PATTERN = re.compile(r"^[a-z0-9-]{3,20}$")


def normalise_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    if not value:
        return None
    if not CODE_PATTERN.match(value):
        raise ValueError("Code must be 3-20 characters using letters, numbers and hyphens")
    return value


def validate_url(value: str) -> str:
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL")
    return value


class ShortLinkBase(BaseModel):
    name: Optional[str] = Field(None, max_length=120)
    destination_url: str
    link_type: str = "custom"
    expires_at: Optional[datetime] = None

    @field_validator("destination_url")
    @classmethod
    def validate_destination(cls, v):
        return validate_url(v)

    @field_validator("link_type")
    @classmethod
    def validate_link_type(cls, v):
        if v not in LINK_TYPES:
            raise ValueError(f"Link type must be one of: {', '.join(LINK_TYPES)}")
        return v


class ShortLinkCreate(ShortLinkBase):
    metadata: Optional[dict[str, Any]] = None
    custom_code: Optional[str] = None

    @field_validator("custom_code")
    @classmethod
    def validate_custom_code(cls, v):
        return normalise_code(v)


class ShortLinkUpdate(ShortLinkBase):
    pass


class AliasCreate(BaseModel):
    alias_code: str

    @field_validator("alias_code")
    @classmethod
    def validate_alias(cls, v):
        v = normalise_code(v)
        if not v:
            raise ValueError("Alias code is required")
        return v


class AliasResponse(BaseModel):
    id: int
    alias_code: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShortLinkResponse(BaseModel):
    id: int
    short_code: str
    full_url: str
    name: Optional[str] = None
    destination_url: str
    link_type: str
    expires_at: Optional[datetime] = None
    click_count: int
    last_clicked_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    aliases: list[AliasResponse] = []

    class Config:
        from_attributes = True


class ShortLinkCreated(ShortLinkResponse):
    already_exists: bool = False


class DailyClicks(BaseModel):
    date: date
    clicks: int


class LinkAnalytics(BaseModel):
    short_code: str
    days: int
    total_clicks: int
    unique_visitors: int
    daily: list[DailyClicks]
    devices: dict[str, int]
    browsers: dict[str, int]


class VolumeBucket(BaseModel):
    period_start: datetime
    clicks: int


class VolumeResponse(BaseModel):
    period: str
    days: int
    total_clicks: int
    buckets: list[VolumeBucket]
