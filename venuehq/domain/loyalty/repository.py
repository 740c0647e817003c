"""Loyalty repository - Database operations for members, events, rewards and the points ledger"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models_loyalty import (
    EventCheckIn,
    LoyaltyAchievement,
    LoyaltyEvent,
    LoyaltyMember,
    LoyaltyPointTransaction,
    LoyaltyReward,
    MemberAchievement,
    RewardRedemption,
)


class LoyaltyRepository:
    """Repository for loyalty database operations"""

    @staticmethod
    def save(db: Session, row):
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def delete(db: Session, row) -> None:
        db.delete(row)
        db.commit()

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    @staticmethod
    def get_member(db: Session, member_id: int) -> Optional[LoyaltyMember]:
        return (
            db.query(LoyaltyMember)
            .options(joinedload(LoyaltyMember.customer))
            .filter(LoyaltyMember.id == member_id)
            .first()
        )

    @staticmethod
    def get_member_by_customer(db: Session, customer_id: int) -> Optional[LoyaltyMember]:
        return db.query(LoyaltyMember).filter(LoyaltyMember.customer_id == customer_id).first()

    @staticmethod
    def list_members(db: Session, tier: Optional[str] = None) -> list[LoyaltyMember]:
        query = db.query(LoyaltyMember).options(joinedload(LoyaltyMember.customer))
        if tier:
            query = query.filter(LoyaltyMember.tier == tier)
        return query.order_by(LoyaltyMember.lifetime_points.desc()).all()

    @staticmethod
    def add_transaction(
        db: Session,
        member: LoyaltyMember,
        points: int,
        transaction_type: str,
        description: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> LoyaltyPointTransaction:
        """Apply points to the member and append a ledger row. Caller commits."""
        member.available_points += points
        if points > 0 and transaction_type in ("earned", "bonus"):
            member.lifetime_points += points
        row = LoyaltyPointTransaction(
            member_id=member.id,
            points=points,
            balance_after=member.available_points,
            transaction_type=transaction_type,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        db.add(row)
        return row

    @staticmethod
    def list_transactions(db: Session, member_id: int, limit: int = 100) -> list[LoyaltyPointTransaction]:
        return (
            db.query(LoyaltyPointTransaction)
            .filter(LoyaltyPointTransaction.member_id == member_id)
            .order_by(LoyaltyPointTransaction.id.desc())
            .limit(limit)
            .all()
        )

    # ------------------------------------------------------------------
    # Events and check-ins
    # ------------------------------------------------------------------

    @staticmethod
    def get_event(db: Session, event_id: int) -> Optional[LoyaltyEvent]:
        return db.query(LoyaltyEvent).filter(LoyaltyEvent.id == event_id).first()

    @staticmethod
    def list_events(db: Session) -> list[LoyaltyEvent]:
        return db.query(LoyaltyEvent).order_by(LoyaltyEvent.event_date.desc()).all()

    @staticmethod
    def get_check_in(db: Session, member_id: int, event_id: int) -> Optional[EventCheckIn]:
        return (
            db.query(EventCheckIn)
            .filter(EventCheckIn.member_id == member_id, EventCheckIn.event_id == event_id)
            .first()
        )

    @staticmethod
    def count_event_check_ins(db: Session, event_id: int) -> int:
        return db.query(func.count(EventCheckIn.id)).filter(EventCheckIn.event_id == event_id).scalar()

    @staticmethod
    def attendance_history(db: Session, member_id: int) -> list[tuple]:
        """(event_date, event_type) for each of the member's check-ins"""
        return (
            db.query(LoyaltyEvent.event_date, LoyaltyEvent.event_type)
            .join(EventCheckIn, EventCheckIn.event_id == LoyaltyEvent.id)
            .filter(EventCheckIn.member_id == member_id)
            .all()
        )

    # ------------------------------------------------------------------
    # Rewards and redemptions
    # ------------------------------------------------------------------

    @staticmethod
    def list_rewards(db: Session, include_inactive: bool = False) -> list[LoyaltyReward]:
        query = db.query(LoyaltyReward)
        if not include_inactive:
            query = query.filter(LoyaltyReward.is_active.is_(True))
        return query.order_by(LoyaltyReward.points_cost).all()

    @staticmethod
    def get_reward(db: Session, reward_id: int) -> Optional[LoyaltyReward]:
        return db.query(LoyaltyReward).filter(LoyaltyReward.id == reward_id).first()

    @staticmethod
    def count_rewards(db: Session) -> int:
        return db.query(func.count(LoyaltyReward.id)).scalar()

    @staticmethod
    def get_redemption_by_code(db: Session, code: str) -> Optional[RewardRedemption]:
        return (
            db.query(RewardRedemption)
            .options(joinedload(RewardRedemption.reward))
            .filter(RewardRedemption.code == code)
            .first()
        )

    @staticmethod
    def code_exists(db: Session, code: str) -> bool:
        return db.query(RewardRedemption.id).filter(RewardRedemption.code == code).first() is not None

    @staticmethod
    def count_redemptions_since(
        db: Session, since: datetime, member_id: Optional[int] = None, reward_id: Optional[int] = None
    ) -> int:
        query = db.query(func.count(RewardRedemption.id)).filter(
            RewardRedemption.created_at >= since,
            RewardRedemption.status != "expired",
        )
        if member_id:
            query = query.filter(RewardRedemption.member_id == member_id)
        if reward_id:
            query = query.filter(RewardRedemption.reward_id == reward_id)
        return query.scalar()

    @staticmethod
    def list_redemptions(db: Session, member_id: int) -> list[RewardRedemption]:
        return (
            db.query(RewardRedemption)
            .options(joinedload(RewardRedemption.reward))
            .filter(RewardRedemption.member_id == member_id)
            .order_by(RewardRedemption.id.desc())
            .all()
        )

    @staticmethod
    def expired_pending_redemptions(db: Session, now: datetime) -> list[RewardRedemption]:
        return (
            db.query(RewardRedemption)
            .options(joinedload(RewardRedemption.member))
            .filter(RewardRedemption.status == "pending", RewardRedemption.expires_at < now)
            .all()
        )

    # ------------------------------------------------------------------
    # Achievements
    # ------------------------------------------------------------------

    @staticmethod
    def list_achievements(db: Session) -> list[LoyaltyAchievement]:
        return db.query(LoyaltyAchievement).order_by(LoyaltyAchievement.id).all()

    @staticmethod
    def get_achievement_by_key(db: Session, key: str) -> Optional[LoyaltyAchievement]:
        return db.query(LoyaltyAchievement).filter(LoyaltyAchievement.key == key).first()

    @staticmethod
    def earned_achievement_ids(db: Session, member_id: int) -> set[int]:
        rows = db.query(MemberAchievement.achievement_id).filter(MemberAchievement.member_id == member_id).all()
        return {row[0] for row in rows}

    @staticmethod
    def member_achievements(db: Session, member_id: int) -> list[MemberAchievement]:
        return (
            db.query(MemberAchievement)
            .options(joinedload(MemberAchievement.achievement))
            .filter(MemberAchievement.member_id == member_id)
            .order_by(MemberAchievement.earned_at)
            .all()
        )
