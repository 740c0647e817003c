"""Loyalty domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .config import EVENT_TYPES, REWARD_CATEGORIES, TIERS


class EnrolMemberRequest(BaseModel):
    customer_id: int


class MemberResponse(BaseModel):
    id: int
    customer_id: int
    tier: str
    available_points: int
    lifetime_points: int
    lifetime_events: int
    status: str
    joined_at: Optional[datetime] = None
    last_visit_date: Optional[date] = None

    class Config:
        from_attributes = True


class AchievementResponse(BaseModel):
    key: str
    name: str
    description: Optional[str] = None
    points_value: int
    earned_at: Optional[datetime] = None


class MemberSummary(BaseModel):
    member: MemberResponse
    customer_name: str
    tier_name: str
    next_tier: Optional[str] = None
    next_tier_name: Optional[str] = None
    events_to_next_tier: Optional[int] = None
    achievements: list[AchievementResponse]


class LoyaltyEventBase(BaseModel):
    name: str
    event_type: str
    event_date: date

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Event name is required")
        return v

    @field_validator("event_type")
    @classmethod
    def validate_event_type(cls, v):
        if v not in EVENT_TYPES:
            raise ValueError(f"Event type must be one of: {', '.join(EVENT_TYPES)}")
        return v


class LoyaltyEventResponse(LoyaltyEventBase):
    id: int

    class Config:
        from_attributes = True


class CheckInRequest(BaseModel):
    event_id: int


class CheckInResult(BaseModel):
    points_earned: int
    bonus_points: int
    new_balance: int
    tier: str
    tier_upgraded: bool
    achievements_unlocked: list[str]


class RewardBase(BaseModel):
    name: str
    description: Optional[str] = None
    category: str
    points_cost: int
    tier_required: Optional[str] = None
    daily_limit: Optional[int] = None
    is_active: bool = True

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        if v not in REWARD_CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(REWARD_CATEGORIES)}")
        return v

    @field_validator("tier_required")
    @classmethod
    def validate_tier(cls, v):
        if v and v not in TIERS:
            raise ValueError(f"Tier must be one of: {', '.join(TIERS)}")
        return v or None

    @field_validator("points_cost")
    @classmethod
    def validate_cost(cls, v):
        if v <= 0:
            raise ValueError("Points cost must be greater than zero")
        return v


class RewardResponse(RewardBase):
    id: int

    class Config:
        from_attributes = True


class AvailableReward(RewardResponse):
    available: bool
    reason: Optional[str] = None


class RedemptionResponse(BaseModel):
    id: int
    code: str
    points_spent: int
    status: str
    expires_at: datetime
    redeemed_at: Optional[datetime] = None
    reward_name: Optional[str] = None

    class Config:
        from_attributes = True


class RedeemCodeRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v):
        return v.strip().upper()


class PointsAdjustment(BaseModel):
    points: int
    reason: str

    @field_validator("points")
    @classmethod
    def validate_points(cls, v):
        if v == 0:
            raise ValueError("Adjustment cannot be zero")
        return v

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("A reason is required")
        return v


class PointTransactionResponse(BaseModel):
    id: int
    points: int
    balance_after: int
    transaction_type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
