"""Business hours repository - Database operations for hours and service status"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models_hours import BusinessHours, ServiceStatus, ServiceStatusOverride, SpecialHours


class BusinessHoursRepository:
    """Repository for opening hours and service status"""

    @staticmethod
    def get_weekly_hours(db: Session) -> list[BusinessHours]:
        return db.query(BusinessHours).order_by(BusinessHours.day_of_week).all()

    @staticmethod
    def get_day(db: Session, day_of_week: int) -> Optional[BusinessHours]:
        return db.query(BusinessHours).filter(BusinessHours.day_of_week == day_of_week).first()

    @staticmethod
    def upsert_days(db: Session, days: list[dict]) -> None:
        """Write all days in one transaction"""
        for values in days:
            row = db.query(BusinessHours).filter(BusinessHours.day_of_week == values["day_of_week"]).first()
            if not row:
                row = BusinessHours(day_of_week=values["day_of_week"])
                db.add(row)
            for key, value in values.items():
                setattr(row, key, value)
        db.commit()

    @staticmethod
    def get_special_hours(db: Session, special_id: int) -> Optional[SpecialHours]:
        return db.query(SpecialHours).filter(SpecialHours.id == special_id).first()

    @staticmethod
    def get_special_hours_for_date(db: Session, day: date) -> Optional[SpecialHours]:
        return db.query(SpecialHours).filter(SpecialHours.date == day).first()

    @staticmethod
    def list_special_hours(db: Session, start: Optional[date], end: Optional[date]) -> list[SpecialHours]:
        query = db.query(SpecialHours)
        if start:
            query = query.filter(SpecialHours.date >= start)
        if end:
            query = query.filter(SpecialHours.date <= end)
        return query.order_by(SpecialHours.date).all()

    @staticmethod
    def existing_special_dates(db: Session, dates: list[date]) -> list[date]:
        rows = db.query(SpecialHours.date).filter(SpecialHours.date.in_(dates)).all()
        return sorted(row[0] for row in rows)

    @staticmethod
    def create_special_hours(db: Session, rows: list[dict]) -> list[SpecialHours]:
        created = [SpecialHours(**values) for values in rows]
        db.add_all(created)
        db.commit()
        for row in created:
            db.refresh(row)
        return created

    @staticmethod
    def update_special_hours(db: Session, row: SpecialHours, **updates) -> SpecialHours:
        for key, value in updates.items():
            setattr(row, key, value)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def delete_special_hours(db: Session, row: SpecialHours) -> None:
        db.delete(row)
        db.commit()

    # ------------------------------------------------------------------
    # Service status
    # ------------------------------------------------------------------

    @staticmethod
    def list_service_statuses(db: Session) -> list[ServiceStatus]:
        return db.query(ServiceStatus).order_by(ServiceStatus.service_code).all()

    @staticmethod
    def get_service_status(db: Session, service_code: str) -> Optional[ServiceStatus]:
        return db.query(ServiceStatus).filter(ServiceStatus.service_code == service_code).first()

    @staticmethod
    def save(db: Session, row):
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def list_overrides(db: Session, service_code: str) -> list[ServiceStatusOverride]:
        return (
            db.query(ServiceStatusOverride)
            .filter(ServiceStatusOverride.service_code == service_code)
            .order_by(ServiceStatusOverride.start_date)
            .all()
        )

    @staticmethod
    def get_override(db: Session, override_id: int) -> Optional[ServiceStatusOverride]:
        return db.query(ServiceStatusOverride).filter(ServiceStatusOverride.id == override_id).first()

    @staticmethod
    def get_override_for_date(db: Session, service_code: str, day: date) -> Optional[ServiceStatusOverride]:
        """Latest-created override covering the date"""
        return (
            db.query(ServiceStatusOverride)
            .filter(
                ServiceStatusOverride.service_code == service_code,
                ServiceStatusOverride.start_date <= day,
                ServiceStatusOverride.end_date >= day,
            )
            .order_by(ServiceStatusOverride.id.desc())
            .first()
        )

    @staticmethod
    def delete(db: Session, row) -> None:
        db.delete(row)
        db.commit()
