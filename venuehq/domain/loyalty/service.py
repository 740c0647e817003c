"""Loyalty service - Enrolment, event check-ins, achievements and reward redemption"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import User
from ...models_loyalty import (
    EventCheckIn,
    LoyaltyAchievement,
    LoyaltyEvent,
    LoyaltyMember,
    LoyaltyReward,
    MemberAchievement,
    RewardRedemption,
)
from ...shared.dates import now_local
from ..customers.service import CustomerService
from ..messages.service import send_customer_sms
from .config import (
    ACHIEVEMENTS,
    CODE_EXPIRY_MINUTES,
    DAILY_LIMIT_PER_MEMBER,
    DAILY_LIMIT_PER_REWARD,
    DEFAULT_REWARDS,
    MINIMUM_REDEMPTION_BALANCE,
    TIERS,
    WELCOME_BONUS,
    achievement_met,
    build_attendance_stats,
    calculate_event_points,
    generate_redemption_code,
    milestone_bonus,
    next_tier,
    tier_for_events,
    tier_meets,
    tier_rank,
)
from .repository import LoyaltyRepository
from .schemas import LoyaltyEventBase, PointsAdjustment, RewardBase

logger = logging.getLogger(__name__)

CODE_GENERATION_ATTEMPTS = 20


def seed_loyalty(db: Session) -> None:
    """Create the achievement catalogue and, on a fresh install, the starter rewards"""
    for definition in ACHIEVEMENTS:
        achievement = LoyaltyRepository.get_achievement_by_key(db, definition["key"])
        if achievement:
            achievement.name = definition["name"]
            achievement.description = definition["description"]
            achievement.points_value = definition["points_value"]
            achievement.criteria = definition["criteria"]
        else:
            db.add(LoyaltyAchievement(**definition))

    if LoyaltyRepository.count_rewards(db) == 0:
        for reward in DEFAULT_REWARDS:
            db.add(LoyaltyReward(**reward))
    db.commit()


def expire_redemption_codes(db: Session, now: Optional[datetime] = None) -> int:
    """Expire pending codes past their window and refund the points"""
    now = now or now_local()
    expired = LoyaltyRepository.expired_pending_redemptions(db, now)
    for redemption in expired:
        _expire_and_refund(db, redemption)
    if expired:
        db.commit()
        logger.info(f"⌛ Expired {len(expired)} redemption code(s)")
    return len(expired)


def _expire_and_refund(db: Session, redemption: RewardRedemption) -> None:
    redemption.status = "expired"
    LoyaltyRepository.add_transaction(
        db,
        redemption.member,
        redemption.points_spent,
        "refunded",
        f"Refund for expired code {redemption.code}",
        reference_type="redemption",
        reference_id=redemption.id,
    )


class LoyaltyService:
    """Service layer for the loyalty programme"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LoyaltyRepository()

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def get_member(self, member_id: int) -> LoyaltyMember:
        member = self.repo.get_member(self.db, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")
        return member

    def list_members(self, tier: Optional[str] = None) -> list[LoyaltyMember]:
        return self.repo.list_members(self.db, tier)

    async def enrol_member(self, customer_id: int, user: Optional[User] = None) -> LoyaltyMember:
        customer = CustomerService(self.db).get_customer(customer_id)
        if self.repo.get_member_by_customer(self.db, customer.id):
            raise HTTPException(status_code=409, detail="Customer is already a loyalty member")

        member = self.repo.save(self.db, LoyaltyMember(customer_id=customer.id, tier="member"))
        self.repo.add_transaction(self.db, member, WELCOME_BONUS, "bonus", "Welcome bonus")
        self.db.commit()
        self.db.refresh(member)

        await send_customer_sms(
            self.db,
            customer,
            "loyalty",
            template_key="loyalty_welcome",
            context={"points": WELCOME_BONUS},
        )
        log_audit_event(self.db, user, "create", "loyalty_member", member.id, {"customer_id": customer.id})
        logger.info(f"🎉 Customer {customer.id} joined the loyalty programme")
        return member

    def get_member_summary(self, member_id: int) -> dict:
        member = self.get_member(member_id)
        upcoming = next_tier(member.tier)
        earned = self.repo.member_achievements(self.db, member.id)
        return {
            "member": member,
            "customer_name": member.customer.full_name,
            "tier_name": TIERS[member.tier]["name"],
            "next_tier": upcoming,
            "next_tier_name": TIERS[upcoming]["name"] if upcoming else None,
            "events_to_next_tier": (
                max(TIERS[upcoming]["min_events"] - member.lifetime_events, 0) if upcoming else None
            ),
            "achievements": [
                {
                    "key": row.achievement.key,
                    "name": row.achievement.name,
                    "description": row.achievement.description,
                    "points_value": row.points_awarded,
                    "earned_at": row.earned_at,
                }
                for row in earned
            ],
        }

    def list_transactions(self, member_id: int):
        self.get_member(member_id)
        return self.repo.list_transactions(self.db, member_id)

    def adjust_points(self, member_id: int, data: PointsAdjustment, user: User) -> LoyaltyMember:
        member = self.get_member(member_id)
        if member.available_points + data.points < 0:
            raise HTTPException(status_code=400, detail="Points balance cannot go negative")
        self.repo.add_transaction(self.db, member, data.points, "adjusted", data.reason)
        self.db.commit()
        self.db.refresh(member)
        log_audit_event(
            self.db, user, "update", "loyalty_member", member.id, {"points": data.points, "reason": data.reason}
        )
        logger.info(f"🔧 Adjusted member {member.id} by {data.points} points")
        return member

    # ------------------------------------------------------------------
    # Check-ins
    # ------------------------------------------------------------------

    async def check_in(self, member_id: int, event_id: int, user: Optional[User] = None) -> dict:
        member = self.get_member(member_id)
        event = self.get_event(event_id)
        if self.repo.get_check_in(self.db, member.id, event.id):
            raise HTTPException(status_code=409, detail="Already checked in to this event")

        points = calculate_event_points(member.tier, event.event_type)
        check_in = EventCheckIn(
            member_id=member.id,
            event_id=event.id,
            points_earned=points,
            checked_in_by=user.id if user else None,
        )
        self.db.add(check_in)
        self.db.flush()
        self.repo.add_transaction(
            self.db,
            member,
            points,
            "earned",
            f"Attended {event.name}",
            reference_type="check_in",
            reference_id=check_in.id,
        )

        member.lifetime_events += 1
        if not member.last_visit_date or event.event_date > member.last_visit_date:
            member.last_visit_date = event.event_date

        bonus = milestone_bonus(member.lifetime_events)
        if bonus:
            self.repo.add_transaction(
                self.db, member, bonus, "bonus", f"{member.lifetime_events} event milestone"
            )

        previous_tier = member.tier
        member.tier = tier_for_events(member.lifetime_events)
        upgraded = tier_rank(member.tier) > tier_rank(previous_tier)
        self.db.commit()

        unlocked = self._award_achievements(member)
        self.db.refresh(member)
        logger.info(f"✅ Member {member.id} checked in to event {event.id} (+{points})")

        customer = member.customer
        await send_customer_sms(
            self.db,
            customer,
            "loyalty",
            template_key="loyalty_check_in",
            context={"event_name": event.name, "points": points, "balance": member.available_points},
        )
        if upgraded:
            logger.info(f"⬆️ Member {member.id} upgraded to {member.tier}")
            await send_customer_sms(
                self.db,
                customer,
                "loyalty",
                template_key="loyalty_tier_upgrade",
                context={"tier_name": TIERS[member.tier]["name"]},
            )
        for achievement in unlocked:
            await send_customer_sms(
                self.db,
                customer,
                "loyalty",
                template_key="loyalty_achievement",
                context={"achievement_name": achievement.name, "points": achievement.points_value},
            )

        return {
            "points_earned": points,
            "bonus_points": bonus + sum(a.points_value for a in unlocked),
            "new_balance": member.available_points,
            "tier": member.tier,
            "tier_upgraded": upgraded,
            "achievements_unlocked": [a.name for a in unlocked],
        }

    def _award_achievements(self, member: LoyaltyMember) -> list[LoyaltyAchievement]:
        earned_ids = self.repo.earned_achievement_ids(self.db, member.id)
        candidates = [a for a in self.repo.list_achievements(self.db) if a.id not in earned_ids]
        if not candidates:
            return []

        stats = build_attendance_stats(
            [(row[0], row[1]) for row in self.repo.attendance_history(self.db, member.id)],
            member.customer.date_of_birth if member.customer else None,
        )
        unlocked = [a for a in candidates if achievement_met(a.criteria or {}, stats)]
        for achievement in unlocked:
            self.db.add(
                MemberAchievement(
                    member_id=member.id,
                    achievement_id=achievement.id,
                    points_awarded=achievement.points_value,
                )
            )
            if achievement.points_value:
                self.repo.add_transaction(
                    self.db,
                    member,
                    achievement.points_value,
                    "bonus",
                    f"Achievement: {achievement.name}",
                    reference_type="achievement",
                    reference_id=achievement.id,
                )
        if unlocked:
            self.db.commit()
            logger.info(f"🏆 Member {member.id} unlocked {len(unlocked)} achievement(s)")
        return unlocked

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def list_events(self) -> list[LoyaltyEvent]:
        return self.repo.list_events(self.db)

    def get_event(self, event_id: int) -> LoyaltyEvent:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def create_event(self, data: LoyaltyEventBase, user: User) -> LoyaltyEvent:
        event = self.repo.save(self.db, LoyaltyEvent(**data.model_dump()))
        log_audit_event(self.db, user, "create", "loyalty_event", event.id)
        return event

    def update_event(self, event_id: int, data: LoyaltyEventBase, user: User) -> LoyaltyEvent:
        event = self.get_event(event_id)
        for field, value in data.model_dump().items():
            setattr(event, field, value)
        self.repo.save(self.db, event)
        log_audit_event(self.db, user, "update", "loyalty_event", event.id)
        return event

    def delete_event(self, event_id: int, user: User) -> None:
        event = self.get_event(event_id)
        if self.repo.count_event_check_ins(self.db, event.id):
            raise HTTPException(status_code=400, detail="Events with check-ins cannot be deleted")
        self.repo.delete(self.db, event)
        log_audit_event(self.db, user, "delete", "loyalty_event", event_id)

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    def list_rewards(self, include_inactive: bool = False) -> list[LoyaltyReward]:
        return self.repo.list_rewards(self.db, include_inactive)

    def get_reward(self, reward_id: int) -> LoyaltyReward:
        reward = self.repo.get_reward(self.db, reward_id)
        if not reward:
            raise HTTPException(status_code=404, detail="Reward not found")
        return reward

    def create_reward(self, data: RewardBase, user: User) -> LoyaltyReward:
        reward = self.repo.save(self.db, LoyaltyReward(**data.model_dump()))
        log_audit_event(self.db, user, "create", "loyalty_reward", reward.id)
        return reward

    def update_reward(self, reward_id: int, data: RewardBase, user: User) -> LoyaltyReward:
        reward = self.get_reward(reward_id)
        for field, value in data.model_dump().items():
            setattr(reward, field, value)
        self.repo.save(self.db, reward)
        log_audit_event(self.db, user, "update", "loyalty_reward", reward.id)
        return reward

    def delete_reward(self, reward_id: int, user: User) -> None:
        """Rewards are deactivated so past redemptions keep their reward"""
        reward = self.get_reward(reward_id)
        reward.is_active = False
        self.db.commit()
        log_audit_event(self.db, user, "delete", "loyalty_reward", reward.id)

    def _redemption_block_reason(
        self, member: LoyaltyMember, reward: LoyaltyReward, now: datetime
    ) -> Optional[str]:
        if not tier_meets(member.tier, reward.tier_required):
            return f"This reward requires {TIERS[reward.tier_required]['name']} tier or above"
        if member.available_points < max(reward.points_cost, MINIMUM_REDEMPTION_BALANCE):
            return "Insufficient points"

        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if self.repo.count_redemptions_since(self.db, start_of_day, member_id=member.id) >= DAILY_LIMIT_PER_MEMBER:
            return "Daily redemption limit reached"
        reward_limit = reward.daily_limit or DAILY_LIMIT_PER_REWARD
        if self.repo.count_redemptions_since(self.db, start_of_day, reward_id=reward.id) >= reward_limit:
            return "Daily redemption limit reached"
        return None

    def get_available_rewards(self, member_id: int, now: Optional[datetime] = None) -> list[dict]:
        member = self.get_member(member_id)
        now = now or now_local()
        results = []
        for reward in self.repo.list_rewards(self.db):
            reason = self._redemption_block_reason(member, reward, now)
            results.append(
                {
                    "id": reward.id,
                    "name": reward.name,
                    "description": reward.description,
                    "category": reward.category,
                    "points_cost": reward.points_cost,
                    "tier_required": reward.tier_required,
                    "daily_limit": reward.daily_limit,
                    "is_active": reward.is_active,
                    "available": reason is None,
                    "reason": reason,
                }
            )
        return results

    def _unique_code(self, category: str) -> str:
        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = generate_redemption_code(category)
            if not self.repo.code_exists(self.db, code):
                return code
        raise HTTPException(status_code=503, detail="Could not generate a redemption code, please try again")

    async def redeem_reward(
        self, member_id: int, reward_id: int, user: Optional[User] = None, now: Optional[datetime] = None
    ) -> RewardRedemption:
        member = self.get_member(member_id)
        reward = self.get_reward(reward_id)
        if not reward.is_active:
            raise HTTPException(status_code=400, detail="This reward is no longer available")

        now = now or now_local()
        reason = self._redemption_block_reason(member, reward, now)
        if reason:
            raise HTTPException(status_code=400, detail=reason)

        redemption = RewardRedemption(
            member_id=member.id,
            reward_id=reward.id,
            code=self._unique_code(reward.category),
            points_spent=reward.points_cost,
            status="pending",
            expires_at=now + timedelta(minutes=CODE_EXPIRY_MINUTES),
            created_at=now,
        )
        self.db.add(redemption)
        self.db.flush()
        self.repo.add_transaction(
            self.db,
            member,
            -reward.points_cost,
            "redeemed",
            f"Redeemed {reward.name}",
            reference_type="redemption",
            reference_id=redemption.id,
        )
        self.db.commit()
        self.db.refresh(redemption)
        logger.info(f"🎁 Member {member.id} redeemed {reward.name} ({redemption.code})")

        await send_customer_sms(
            self.db,
            member.customer,
            "loyalty",
            template_key="loyalty_redemption_code",
            context={"reward_name": reward.name, "code": redemption.code},
        )
        log_audit_event(self.db, user, "create", "reward_redemption", redemption.id, {"reward_id": reward.id})
        return redemption

    def redeem_code(self, code: str, user: User, now: Optional[datetime] = None) -> RewardRedemption:
        now = now or now_local()
        redemption = self.repo.get_redemption_by_code(self.db, code.strip().upper())
        if not redemption:
            raise HTTPException(status_code=404, detail="Invalid code")
        if redemption.status == "redeemed":
            raise HTTPException(status_code=400, detail="Code already used")
        if redemption.status == "expired":
            raise HTTPException(status_code=400, detail="Code expired")
        if redemption.expires_at < now:
            _expire_and_refund(self.db, redemption)
            self.db.commit()
            raise HTTPException(status_code=400, detail="Code expired")

        redemption.status = "redeemed"
        redemption.redeemed_at = now
        redemption.redeemed_by = user.id
        self.db.commit()
        self.db.refresh(redemption)
        log_audit_event(self.db, user, "update", "reward_redemption", redemption.id, {"status": "redeemed"})
        logger.info(f"✅ Redemption code {redemption.code} used")
        return redemption

    def list_redemptions(self, member_id: int) -> list[RewardRedemption]:
        self.get_member(member_id)
        return self.repo.list_redemptions(self.db, member_id)
