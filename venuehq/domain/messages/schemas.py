"""Message domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class SendSmsRequest(BaseModel):
    body: Optional[str] = None
    template_key: Optional[str] = None
    context: dict[str, Any] = {}

    @field_validator("body")
    @classmethod
    def validate_body(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Message body cannot be empty")
        if v and len(v) > 1600:
            raise ValueError("Message body must be 1600 characters or fewer")
        return v


class BulkSmsRequest(BaseModel):
    body: str
    customer_ids: Optional[list[int]] = None  # None = every opted-in customer
    search: Optional[str] = None

    @field_validator("body")
    @classmethod
    def validate_body(cls, v):
        if not v.strip():
            raise ValueError("Message body cannot be empty")
        if len(v) > 1600:
            raise ValueError("Message body must be 1600 characters or fewer")
        return v


class BulkSmsResult(BaseModel):
    total: int
    sent: int
    failed: int
    skipped: int


class SendSmsResult(BaseModel):
    success: bool
    error: Optional[str] = None


class MessageResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    direction: str
    to_number: str
    from_number: Optional[str] = None
    body: str
    segments: int
    status: str
    message_type: Optional[str] = None
    template_key: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageTemplateBase(BaseModel):
    name: str
    body: str
    is_active: bool = True


class MessageTemplateCreate(MessageTemplateBase):
    key: str

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        v = v.strip().lower()
        if not v or not all(ch.isalnum() or ch == "_" for ch in v):
            raise ValueError("Template key can only contain letters, numbers and underscores")
        return v


class MessageTemplateResponse(MessageTemplateBase):
    id: int
    key: str

    class Config:
        from_attributes = True
