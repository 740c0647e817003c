"""
Table Booking Models
Policies, slot capacity configuration and the bookings themselves
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_public_id


class BookingPolicy(Base):
    __tablename__ = "booking_policies"

    id = Column(Integer, primary_key=True, index=True)
    booking_type = Column(String(20), unique=True, nullable=False)  # regular, sunday_lunch
    full_refund_hours = Column(Integer, default=48, nullable=False)
    partial_refund_hours = Column(Integer, default=24, nullable=False)
    partial_refund_percentage = Column(Integer, default=50, nullable=False)
    modification_allowed = Column(Boolean, default=True, nullable=False)
    cancellation_fee = Column(Float, default=0, nullable=False)
    max_party_size = Column(Integer, default=20, nullable=False)
    min_advance_hours = Column(Integer, default=0, nullable=False)
    max_advance_days = Column(Integer, default=56, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class BookingTimeSlot(Base):
    """Capacity override for a slot on a given weekday"""

    __tablename__ = "booking_time_slots"
    __table_args__ = (
        UniqueConstraint("day_of_week", "slot_time", "booking_type", name="uq_booking_time_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    slot_time = Column(String(5), nullable=False)  # HH:MM
    booking_type = Column(String(20), nullable=True)  # null applies to every type
    max_covers = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class TableBooking(Base):
    __tablename__ = "table_bookings"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)  # TB-YYYY-NNNN
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)

    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(5), nullable=False)  # HH:MM
    party_size = Column(Integer, nullable=False)
    booking_type = Column(String(20), default="regular", nullable=False)
    duration_minutes = Column(Integer, default=120, nullable=False)

    # pending_payment, confirmed, cancelled, no_show, completed
    status = Column(String(20), default="confirmed", nullable=False, index=True)
    source = Column(String(20), default="website", nullable=False)  # website, phone, walk_in, staff

    special_requirements = Column(Text, nullable=True)
    dietary_requirements = Column(Text, nullable=True)
    allergies = Column(Text, nullable=True)

    # Deposit / payment
    deposit_amount = Column(Float, default=0, nullable=False)
    payment_method = Column(String(20), nullable=True)  # card, cash
    payment_status = Column(String(20), nullable=True)  # pending, paid, refunded
    payment_link = Column(Text, nullable=True)
    stripe_session_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    # Lifecycle
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    refund_amount = Column(Float, nullable=True)
    no_show_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    confirmation_sent_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="bookings")

    @property
    def customer_name(self):
        return self.customer.full_name if self.customer else None
