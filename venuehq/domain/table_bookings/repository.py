"""Table booking repository - Database operations for bookings, policies and slot config"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models_table_booking import BookingPolicy, BookingTimeSlot, TableBooking
from .availability import ACTIVE_STATUSES


class TableBookingRepository:
    """Repository for table booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[TableBooking]:
        return (
            db.query(TableBooking)
            .options(joinedload(TableBooking.customer))
            .filter(TableBooking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_by_reference(db: Session, reference: str) -> Optional[TableBooking]:
        return db.query(TableBooking).filter(TableBooking.booking_reference == reference).first()

    @staticmethod
    def get_by_stripe_session(db: Session, session_id: str) -> Optional[TableBooking]:
        return db.query(TableBooking).filter(TableBooking.stripe_session_id == session_id).first()

    @staticmethod
    def list_bookings(
        db: Session,
        start: Optional[date],
        end: Optional[date],
        status: Optional[str],
        booking_type: Optional[str],
    ) -> list[TableBooking]:
        query = db.query(TableBooking).options(joinedload(TableBooking.customer))
        if start:
            query = query.filter(TableBooking.booking_date >= start)
        if end:
            query = query.filter(TableBooking.booking_date <= end)
        if status:
            query = query.filter(TableBooking.status == status)
        if booking_type:
            query = query.filter(TableBooking.booking_type == booking_type)
        return query.order_by(TableBooking.booking_date, TableBooking.booking_time).all()

    @staticmethod
    def active_bookings_on(
        db: Session, booking_date: date, exclude_booking_id: Optional[int] = None
    ) -> list[TableBooking]:
        query = db.query(TableBooking).filter(
            TableBooking.booking_date == booking_date,
            TableBooking.status.in_(ACTIVE_STATUSES),
        )
        if exclude_booking_id:
            query = query.filter(TableBooking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def count_references_for_year(db: Session, year: int) -> int:
        return db.query(func.count(TableBooking.id)).filter(
            TableBooking.booking_reference.like(f"TB-{year}-%")
        ).scalar()

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

    @staticmethod
    def count_between(db: Session, start: date, end: date, statuses: Optional[tuple] = None) -> int:
        query = db.query(func.count(TableBooking.id)).filter(
            TableBooking.booking_date >= start, TableBooking.booking_date <= end
        )
        if statuses:
            query = query.filter(TableBooking.status.in_(statuses))
        return query.scalar() or 0

    @staticmethod
    def covers_on(db: Session, day: date) -> int:
        return (
            db.query(func.coalesce(func.sum(TableBooking.party_size), 0))
            .filter(TableBooking.booking_date == day, TableBooking.status.in_(ACTIVE_STATUSES))
            .scalar()
        )

    @staticmethod
    def count_pending_payments(db: Session) -> int:
        return db.query(func.count(TableBooking.id)).filter(TableBooking.status == "pending_payment").scalar()

    # ------------------------------------------------------------------
    # Policies and slot configuration
    # ------------------------------------------------------------------

    @staticmethod
    def get_policy(db: Session, booking_type: str) -> Optional[BookingPolicy]:
        return db.query(BookingPolicy).filter(BookingPolicy.booking_type == booking_type).first()

    @staticmethod
    def list_policies(db: Session) -> list[BookingPolicy]:
        return db.query(BookingPolicy).order_by(BookingPolicy.booking_type).all()

    @staticmethod
    def list_slot_configs(db: Session, day_of_week: Optional[int] = None) -> list[BookingTimeSlot]:
        query = db.query(BookingTimeSlot)
        if day_of_week is not None:
            query = query.filter(BookingTimeSlot.day_of_week == day_of_week)
        return query.order_by(BookingTimeSlot.day_of_week, BookingTimeSlot.slot_time).all()

    @staticmethod
    def get_slot_config(db: Session, slot_id: int) -> Optional[BookingTimeSlot]:
        return db.query(BookingTimeSlot).filter(BookingTimeSlot.id == slot_id).first()
