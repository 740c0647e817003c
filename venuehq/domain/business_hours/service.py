"""Business hours service - Weekly hours, special hours and service status overrides"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...cache import cached, invalidate_hours_cache
from ...models import User
from ...models_hours import ServiceStatus, ServiceStatusOverride, SpecialHours
from .hours import DayHours, validate_day_hours
from .repository import BusinessHoursRepository
from .schemas import (
    DayHoursFields,
    ServiceStatusOverrideCreate,
    ServiceStatusUpdate,
    SpecialHoursCreate,
    SpecialHoursUpdate,
    WeeklyHoursDay,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICES = {
    "table_bookings": "Table bookings",
    "sunday_lunch": "Sunday lunch",
}

HOURS_FIELDS = ("opens", "closes", "kitchen_opens", "kitchen_closes", "is_closed", "is_kitchen_closed")


def _validated(fields: DayHoursFields) -> dict:
    try:
        hours = validate_day_hours(DayHours(**{f: getattr(fields, f) for f in HOURS_FIELDS}))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {f: getattr(hours, f) for f in HOURS_FIELDS}


def _hours_payload(row, day: date, source: str, note: Optional[str] = None) -> dict:
    return {
        "date": day.isoformat(),
        "source": source,
        "note": note,
        **{f: getattr(row, f) for f in HOURS_FIELDS},
    }


@cached(key_prefix="hours", ttl=300, key_builder=lambda db, day: f"hours:{day.isoformat()}")
def resolve_hours_for_date(db: Session, day: date) -> dict:
    """
    Hours in force on a date: a special-hours row replaces the weekly row.
    A day with neither is treated as closed.
    """
    special = BusinessHoursRepository.get_special_hours_for_date(db, day)
    if special:
        return _hours_payload(special, day, "special_hours", special.note)

    weekly = BusinessHoursRepository.get_day(db, (day.weekday() + 1) % 7)
    if weekly:
        return _hours_payload(weekly, day, "business_hours")

    return {
        "date": day.isoformat(),
        "source": "none",
        "note": None,
        "opens": None,
        "closes": None,
        "kitchen_opens": None,
        "kitchen_closes": None,
        "is_closed": True,
        "is_kitchen_closed": True,
    }


def get_effective_service_status(db: Session, service_code: str, day: date) -> dict:
    """An override covering the date wins over the global switch; unknown services are enabled"""
    override = BusinessHoursRepository.get_override_for_date(db, service_code, day)
    if override:
        return {
            "service_code": service_code,
            "date": day,
            "is_enabled": override.is_enabled,
            "message": override.message,
            "source": "override",
        }

    status = BusinessHoursRepository.get_service_status(db, service_code)
    if status:
        return {
            "service_code": service_code,
            "date": day,
            "is_enabled": status.is_enabled,
            "message": status.message,
            "source": "global",
        }

    return {"service_code": service_code, "date": day, "is_enabled": True, "message": None, "source": "default"}


def seed_service_statuses(db: Session) -> None:
    for service_code, display_name in DEFAULT_SERVICES.items():
        if not BusinessHoursRepository.get_service_status(db, service_code):
            db.add(ServiceStatus(service_code=service_code, display_name=display_name, is_enabled=True))
    db.commit()


class BusinessHoursService:
    """Service layer for opening hours and service availability"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BusinessHoursRepository()

    # ------------------------------------------------------------------
    # Weekly hours
    # ------------------------------------------------------------------

    def get_weekly_hours(self):
        return self.repo.get_weekly_hours(self.db)

    def replace_weekly_hours(self, days: list[WeeklyHoursDay], user: User):
        """Validate every day before writing any of them"""
        rows = []
        for day in days:
            try:
                values = _validated(day)
            except HTTPException as e:
                raise HTTPException(status_code=400, detail=f"Day {day.day_of_week}: {e.detail}") from e
            rows.append({"day_of_week": day.day_of_week, **values})

        self.repo.upsert_days(self.db, rows)
        invalidate_hours_cache()
        log_audit_event(self.db, user, "update", "business_hours", None, {"days": [r["day_of_week"] for r in rows]})
        logger.info(f"✅ Weekly hours updated for {len(rows)} days")
        return self.repo.get_weekly_hours(self.db)

    # ------------------------------------------------------------------
    # Special hours
    # ------------------------------------------------------------------

    def list_special_hours(self, start: Optional[date], end: Optional[date]) -> list[SpecialHours]:
        return self.repo.list_special_hours(self.db, start, end)

    def create_special_hours(self, data: SpecialHoursCreate, user: User) -> list[SpecialHours]:
        end_date = data.end_date or data.start_date
        if end_date < data.start_date:
            raise HTTPException(status_code=400, detail="End date cannot be before start date")
        if (end_date - data.start_date).days > 366:
            raise HTTPException(status_code=400, detail="Special hours can cover at most one year at a time")

        values = _validated(data)
        dates = [data.start_date + timedelta(days=i) for i in range((end_date - data.start_date).days + 1)]

        existing = self.repo.existing_special_dates(self.db, dates)
        if existing:
            listed = ", ".join(d.isoformat() for d in existing)
            raise HTTPException(status_code=409, detail=f"Special hours already exist for {listed}")

        created = self.repo.create_special_hours(
            self.db, [{"date": d, "note": data.note, **values} for d in dates]
        )
        invalidate_hours_cache()
        log_audit_event(
            self.db,
            user,
            "create",
            "special_hours",
            None,
            {"start_date": data.start_date.isoformat(), "end_date": end_date.isoformat()},
        )
        return created

    def update_special_hours(self, special_id: int, data: SpecialHoursUpdate, user: User) -> SpecialHours:
        row = self.repo.get_special_hours(self.db, special_id)
        if not row:
            raise HTTPException(status_code=404, detail="Special hours not found")
        row = self.repo.update_special_hours(self.db, row, note=data.note, **_validated(data))
        invalidate_hours_cache()
        log_audit_event(self.db, user, "update", "special_hours", row.id)
        return row

    def delete_special_hours(self, special_id: int, user: User) -> None:
        row = self.repo.get_special_hours(self.db, special_id)
        if not row:
            raise HTTPException(status_code=404, detail="Special hours not found")
        self.repo.delete_special_hours(self.db, row)
        invalidate_hours_cache()
        log_audit_event(self.db, user, "delete", "special_hours", special_id)

    def get_hours_for_date(self, day: date) -> dict:
        return resolve_hours_for_date(self.db, day)

    # ------------------------------------------------------------------
    # Service status
    # ------------------------------------------------------------------

    def list_service_statuses(self) -> list[ServiceStatus]:
        return self.repo.list_service_statuses(self.db)

    def update_service_status(self, service_code: str, data: ServiceStatusUpdate, user: User) -> ServiceStatus:
        status = self.repo.get_service_status(self.db, service_code)
        if not status:
            raise HTTPException(status_code=404, detail="Service not found")
        status.is_enabled = data.is_enabled
        status.message = data.message
        status.updated_by = user.id
        status = self.repo.save(self.db, status)
        invalidate_hours_cache()
        log_audit_event(
            self.db, user, "update", "service_status", service_code, {"is_enabled": data.is_enabled}
        )
        logger.info(f"{'✅' if data.is_enabled else '⚠️'} Service {service_code} enabled={data.is_enabled}")
        return status

    def list_overrides(self, service_code: str) -> list[ServiceStatusOverride]:
        return self.repo.list_overrides(self.db, service_code)

    def create_override(
        self, service_code: str, data: ServiceStatusOverrideCreate, user: User
    ) -> ServiceStatusOverride:
        if not self.repo.get_service_status(self.db, service_code):
            raise HTTPException(status_code=404, detail="Service not found")
        end_date = data.end_date or data.start_date
        if end_date < data.start_date:
            raise HTTPException(status_code=400, detail="End date cannot be before start date")

        override = self.repo.save(
            self.db,
            ServiceStatusOverride(
                service_code=service_code,
                start_date=data.start_date,
                end_date=end_date,
                is_enabled=data.is_enabled,
                message=data.message,
                created_by=user.id,
            ),
        )
        invalidate_hours_cache()
        log_audit_event(self.db, user, "create", "service_status_override", override.id)
        return override

    def delete_override(self, override_id: int, user: User) -> None:
        override = self.repo.get_override(self.db, override_id)
        if not override:
            raise HTTPException(status_code=404, detail="Override not found")
        self.repo.delete(self.db, override)
        invalidate_hours_cache()
        log_audit_event(self.db, user, "delete", "service_status_override", override_id)

    def get_effective_status(self, service_code: str, day: date) -> dict:
        return get_effective_service_status(self.db, service_code, day)
