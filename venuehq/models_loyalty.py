"""
Loyalty Programme Models
Members, event check-ins, rewards, redemptions, achievements and the points ledger
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class LoyaltyMember(Base):
    __tablename__ = "loyalty_members"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), unique=True, nullable=False)
    tier = Column(String(20), default="member", nullable=False)
    available_points = Column(Integer, default=0, nullable=False)
    lifetime_points = Column(Integer, default=0, nullable=False)
    lifetime_events = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    joined_at = Column(DateTime, server_default=func.now())
    last_visit_date = Column(Date, nullable=True)

    customer = relationship("Customer")
    check_ins = relationship("EventCheckIn", back_populates="member", cascade="all, delete-orphan")
    achievements = relationship("MemberAchievement", back_populates="member", cascade="all, delete-orphan")


class LoyaltyEvent(Base):
    __tablename__ = "loyalty_events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    event_type = Column(String(20), nullable=False)  # quiz, bingo, karaoke, gameshow, drag, tasting, special
    event_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())


class EventCheckIn(Base):
    __tablename__ = "event_check_ins"
    __table_args__ = (UniqueConstraint("member_id", "event_id", name="uq_event_check_in"),)

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("loyalty_members.id", ondelete="CASCADE"), nullable=False)
    event_id = Column(Integer, ForeignKey("loyalty_events.id", ondelete="CASCADE"), nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    checked_in_at = Column(DateTime, server_default=func.now())
    checked_in_by = Column(Integer, nullable=True)

    member = relationship("LoyaltyMember", back_populates="check_ins")
    event = relationship("LoyaltyEvent")


class LoyaltyReward(Base):
    __tablename__ = "loyalty_rewards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False)  # food, drink, dessert, experience, credit, special
    points_cost = Column(Integer, nullable=False)
    tier_required = Column(String(20), nullable=True)
    daily_limit = Column(Integer, nullable=True)  # Falls back to the programme-wide per-reward limit
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class RewardRedemption(Base):
    __tablename__ = "reward_redemptions"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("loyalty_members.id", ondelete="CASCADE"), nullable=False)
    reward_id = Column(Integer, ForeignKey("loyalty_rewards.id"), nullable=False)
    code = Column(String(10), unique=True, nullable=False, index=True)
    points_spent = Column(Integer, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, redeemed, expired
    expires_at = Column(DateTime, nullable=False)
    redeemed_at = Column(DateTime, nullable=True)
    redeemed_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    member = relationship("LoyaltyMember")
    reward = relationship("LoyaltyReward")

    @property
    def reward_name(self):
        return self.reward.name if self.reward else None


class LoyaltyAchievement(Base):
    __tablename__ = "loyalty_achievements"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    points_value = Column(Integer, default=0, nullable=False)
    criteria = Column(JSON, nullable=False)


class MemberAchievement(Base):
    __tablename__ = "member_achievements"
    __table_args__ = (UniqueConstraint("member_id", "achievement_id", name="uq_member_achievement"),)

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("loyalty_members.id", ondelete="CASCADE"), nullable=False)
    achievement_id = Column(Integer, ForeignKey("loyalty_achievements.id"), nullable=False)
    points_awarded = Column(Integer, default=0, nullable=False)
    earned_at = Column(DateTime, server_default=func.now())

    member = relationship("LoyaltyMember", back_populates="achievements")
    achievement = relationship("LoyaltyAchievement")


class LoyaltyPointTransaction(Base):
    """Append-only points ledger"""

    __tablename__ = "loyalty_point_transactions"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("loyalty_members.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)  # Negative for spends
    balance_after = Column(Integer, nullable=False)
    transaction_type = Column(String(20), nullable=False)  # earned, bonus, redeemed, refunded, adjusted
    description = Column(Text, nullable=True)
    reference_type = Column(String(30), nullable=True)
    reference_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
