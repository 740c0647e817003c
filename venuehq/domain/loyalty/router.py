"""Loyalty router - Members, check-ins, events, rewards and redemption codes"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AvailableReward,
    CheckInRequest,
    CheckInResult,
    EnrolMemberRequest,
    LoyaltyEventBase,
    LoyaltyEventResponse,
    MemberResponse,
    MemberSummary,
    PointsAdjustment,
    PointTransactionResponse,
    RedeemCodeRequest,
    RedemptionResponse,
    RewardBase,
    RewardResponse,
)
from .service import LoyaltyService

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])

redeem_code_limiter = create_rate_limiter(limit=30, window_seconds=60, key_prefix="redeem_code")


def get_loyalty_service(db: Session = Depends(get_db)) -> LoyaltyService:
    """Dependency injection for LoyaltyService"""
    return LoyaltyService(db)


# ============================================================================
# MEMBERS
# ============================================================================


@router.get("/members", response_model=list[MemberResponse])
async def list_members(
    tier: Optional[str] = None,
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.list_members(tier)


@router.post("/members", response_model=MemberResponse, status_code=201)
async def enrol_member(
    data: EnrolMemberRequest,
    current_user: User = Depends(require_permission("loyalty", "create")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return await service.enrol_member(data.customer_id, current_user)


@router.get("/members/{member_id}", response_model=MemberSummary)
async def get_member_summary(
    member_id: int,
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.get_member_summary(member_id)


@router.get("/members/{member_id}/transactions", response_model=list[PointTransactionResponse])
async def list_transactions(
    member_id: int,
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.list_transactions(member_id)


@router.post("/members/{member_id}/adjust", response_model=MemberResponse)
async def adjust_points(
    member_id: int,
    data: PointsAdjustment,
    current_user: User = Depends(require_permission("loyalty", "manage")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.adjust_points(member_id, data, current_user)


@router.post("/members/{member_id}/check-in", response_model=CheckInResult)
async def check_in(
    member_id: int,
    data: CheckInRequest,
    current_user: User = Depends(require_permission("loyalty", "edit")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return await service.check_in(member_id, data.event_id, current_user)


@router.get("/members/{member_id}/rewards", response_model=list[AvailableReward])
async def get_available_rewards(
    member_id: int,
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.get_available_rewards(member_id)


@router.post("/members/{member_id}/rewards/{reward_id}/redeem", response_model=RedemptionResponse, status_code=201)
async def redeem_reward(
    member_id: int,
    reward_id: int,
    current_user: User = Depends(require_permission("loyalty", "edit")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return await service.redeem_reward(member_id, reward_id, current_user)


@router.get("/members/{member_id}/redemptions", response_model=list[RedemptionResponse])
async def list_redemptions(
    member_id: int,
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.list_redemptions(member_id)


@router.post("/redemptions/redeem", response_model=RedemptionResponse)
async def redeem_code(
    data: RedeemCodeRequest,
    _: None = Depends(redeem_code_limiter),
    current_user: User = Depends(require_permission("loyalty", "edit")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.redeem_code(data.code, current_user)


# ============================================================================
# EVENTS
# ============================================================================


@router.get("/events", response_model=list[LoyaltyEventResponse])
async def list_events(
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.list_events()


@router.post("/events", response_model=LoyaltyEventResponse, status_code=201)
async def create_event(
    data: LoyaltyEventBase,
    current_user: User = Depends(require_permission("loyalty", "create")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.create_event(data, current_user)


@router.put("/events/{event_id}", response_model=LoyaltyEventResponse)
async def update_event(
    event_id: int,
    data: LoyaltyEventBase,
    current_user: User = Depends(require_permission("loyalty", "edit")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.update_event(event_id, data, current_user)


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: int,
    current_user: User = Depends(require_permission("loyalty", "delete")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    service.delete_event(event_id, current_user)
    return {"success": True}


# ============================================================================
# REWARDS
# ============================================================================


@router.get("/rewards", response_model=list[RewardResponse])
async def list_rewards(
    include_inactive: bool = False,
    _user: User = Depends(require_permission("loyalty", "view")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.list_rewards(include_inactive)


@router.post("/rewards", response_model=RewardResponse, status_code=201)
async def create_reward(
    data: RewardBase,
    current_user: User = Depends(require_permission("loyalty", "manage")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.create_reward(data, current_user)


@router.put("/rewards/{reward_id}", response_model=RewardResponse)
async def update_reward(
    reward_id: int,
    data: RewardBase,
    current_user: User = Depends(require_permission("loyalty", "manage")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    return service.update_reward(reward_id, data, current_user)


@router.delete("/rewards/{reward_id}")
async def delete_reward(
    reward_id: int,
    current_user: User = Depends(require_permission("loyalty", "manage")),
    service: LoyaltyService = Depends(get_loyalty_service),
):
    service.delete_reward(reward_id, current_user)
    return {"success": True}
