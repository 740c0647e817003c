"""Rota service - Employees, pay rates, weekly rotas, the timeclock and payroll review"""

import csv
import logging
from datetime import date, datetime, timedelta
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import User
from ...models_rota import (
    Employee,
    EmployeeRateOverride,
    PayAgeBand,
    PayBandRate,
    PayrollMonthApproval,
    PayrollPeriod,
    RotaShift,
    RotaWeek,
    TimeclockSession,
)
from ...shared.dates import combine, now_local, today_local, week_start
from ..messages.service import send_guarded_sms
from .payroll import RateTable, build_payroll_rows, default_period, summarise_rows
from .repository import RotaRepository
from .schemas import EmployeeBase, EmployeeUpdate, PayAgeBandBase, PayrollPeriodUpdate, RateCreate, ShiftBase, ShiftUpdate

logger = logging.getLogger(__name__)

AUTO_CLOSE_HOURS = 8


def shift_bounds(shift_date: date, start_time: str, end_time: str, is_overnight: bool = False) -> tuple[datetime, datetime]:
    start = combine(shift_date, start_time)
    end = combine(shift_date, end_time)
    if is_overnight or end <= start:
        end += timedelta(days=1)
    return start, end


def auto_close_sessions(db: Session, before: Optional[date] = None) -> int:
    """Close sessions left open from earlier days at the shift end, else after 8 hours"""
    before = before or today_local()
    sessions = RotaRepository.open_sessions_before(db, before)
    for session in sessions:
        clock_out = session.clock_in_at + timedelta(hours=AUTO_CLOSE_HOURS)
        if session.linked_shift_id:
            shift = RotaRepository.get_shift(db, session.linked_shift_id)
            if shift:
                _, shift_end = shift_bounds(shift.shift_date, shift.start_time, shift.end_time, shift.is_overnight)
                if shift_end > session.clock_in_at:
                    clock_out = shift_end
        session.clock_out_at = clock_out
        session.is_auto_closed = True
    if sessions:
        db.commit()
        logger.info(f"🕛 Auto-closed {len(sessions)} timeclock session(s)")
    return len(sessions)


class RotaService:
    """Service layer for rotas and payroll"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RotaRepository()

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def list_employees(self, status: Optional[str] = "active") -> list[Employee]:
        return self.repo.list_employees(self.db, status)

    def get_employee(self, employee_id: int) -> Employee:
        employee = self.repo.get_employee(self.db, employee_id)
        if not employee:
            raise HTTPException(status_code=404, detail="Employee not found")
        return employee

    def create_employee(self, data: EmployeeBase, user: User) -> Employee:
        employee = self.repo.save(self.db, Employee(**data.model_dump()))
        log_audit_event(self.db, user, "create", "employee", employee.id)
        logger.info(f"✅ Employee created: {employee.id}")
        return employee

    def update_employee(self, employee_id: int, data: EmployeeUpdate, user: User) -> Employee:
        employee = self.get_employee(employee_id)
        for field, value in data.model_dump().items():
            setattr(employee, field, value)
        self.repo.save(self.db, employee)
        log_audit_event(self.db, user, "update", "employee", employee.id)
        return employee

    def delete_employee(self, employee_id: int, user: User) -> Employee:
        """Employees are marked as former so their history stays intact"""
        employee = self.get_employee(employee_id)
        employee.status = "former"
        self.repo.save(self.db, employee)
        log_audit_event(self.db, user, "delete", "employee", employee.id)
        return employee

    # ------------------------------------------------------------------
    # Pay bands, band rates and overrides
    # ------------------------------------------------------------------

    def list_bands(self) -> list[PayAgeBand]:
        return self.repo.list_bands(self.db)

    def _get_band(self, band_id: int) -> PayAgeBand:
        band = self.repo.get_band(self.db, band_id)
        if not band:
            raise HTTPException(status_code=404, detail="Pay band not found")
        return band

    def create_band(self, data: PayAgeBandBase, user: User) -> PayAgeBand:
        band = self.repo.save(self.db, PayAgeBand(**data.model_dump()))
        log_audit_event(self.db, user, "create", "pay_age_band", band.id)
        return band

    def update_band(self, band_id: int, data: PayAgeBandBase, user: User) -> PayAgeBand:
        band = self._get_band(band_id)
        for field, value in data.model_dump().items():
            setattr(band, field, value)
        self.repo.save(self.db, band)
        log_audit_event(self.db, user, "update", "pay_age_band", band.id)
        return band

    def list_band_rates(self, band_id: int) -> list[PayBandRate]:
        self._get_band(band_id)
        return self.repo.list_band_rates(self.db, band_id)

    def add_band_rate(self, band_id: int, data: RateCreate, user: User) -> PayBandRate:
        band = self._get_band(band_id)
        rate = self.repo.save(
            self.db, PayBandRate(band_id=band.id, hourly_rate=data.hourly_rate, effective_from=data.effective_from)
        )
        log_audit_event(
            self.db, user, "create", "pay_band_rate", rate.id, {"band": band.label, "rate": data.hourly_rate}
        )
        return rate

    def list_overrides(self, employee_id: int) -> list[EmployeeRateOverride]:
        self.get_employee(employee_id)
        return self.repo.list_overrides(self.db, employee_id)

    def add_override(self, employee_id: int, data: RateCreate, user: User) -> EmployeeRateOverride:
        employee = self.get_employee(employee_id)
        override = self.repo.save(
            self.db,
            EmployeeRateOverride(
                employee_id=employee.id,
                hourly_rate=data.hourly_rate,
                effective_from=data.effective_from,
                note=data.note,
            ),
        )
        log_audit_event(self.db, user, "create", "rate_override", override.id, {"employee_id": employee.id})
        return override

    def delete_override(self, override_id: int, user: User) -> None:
        override = self.repo.get_override(self.db, override_id)
        if not override:
            raise HTTPException(status_code=404, detail="Rate override not found")
        self.repo.delete(self.db, override)
        log_audit_event(self.db, user, "delete", "rate_override", override_id)

    def build_rate_table(self) -> RateTable:
        overrides: dict[int, list] = {}
        for row in self.repo.list_overrides(self.db):
            overrides.setdefault(row.employee_id, []).append((row.effective_from, row.hourly_rate))
        band_rates: dict[int, list] = {}
        for row in self.repo.list_band_rates(self.db):
            band_rates.setdefault(row.band_id, []).append((row.effective_from, row.hourly_rate))
        bands = [(b.id, b.min_age, b.max_age) for b in self.repo.list_bands(self.db, active_only=True)]
        dobs = {e.id: e.date_of_birth for e in self.repo.list_employees(self.db, status=None) if e.date_of_birth}
        return RateTable(overrides, bands, band_rates, dobs)

    def get_hourly_rate(self, employee_id: int, on: date) -> Optional[float]:
        self.get_employee(employee_id)
        return self.build_rate_table().rate_for(employee_id, on)

    # ------------------------------------------------------------------
    # Rota weeks
    # ------------------------------------------------------------------

    def get_or_create_week(self, day: date) -> RotaWeek:
        monday = week_start(day)
        week = self.repo.get_week_by_start(self.db, monday)
        if not week:
            week = self.repo.save(self.db, RotaWeek(week_start=monday, status="draft"))
            logger.info(f"📅 Rota week created for {monday.isoformat()}")
        return self.repo.get_week(self.db, week.id)

    def get_week(self, week_id: int) -> RotaWeek:
        week = self.repo.get_week(self.db, week_id)
        if not week:
            raise HTTPException(status_code=404, detail="Rota week not found")
        return week

    async def publish_week(self, week_id: int, user: User) -> dict:
        week = self.get_week(week_id)
        week.status = "published"
        week.published_at = now_local()
        week.published_by = user.id
        self.db.commit()

        shift_counts: dict[int, int] = {}
        for shift in week.shifts:
            if shift.employee_id and shift.status == "scheduled":
                shift_counts[shift.employee_id] = shift_counts.get(shift.employee_id, 0) + 1

        sent = 0
        for employee_id, count in shift_counts.items():
            employee = self.repo.get_employee(self.db, employee_id)
            if not employee or not employee.phone or employee.status != "active":
                continue
            success, _ = await send_guarded_sms(
                self.db,
                employee.phone,
                "rota",
                template_key="rota_published",
                context={
                    "first_name": employee.first_name,
                    "week_start": week.week_start.strftime("%d %b"),
                    "shift_count": count,
                },
            )
            if success:
                sent += 1

        log_audit_event(self.db, user, "update", "rota_week", week.id, {"status": "published", "sms_sent": sent})
        logger.info(f"📣 Rota for {week.week_start.isoformat()} published, {sent} SMS sent")
        self.db.refresh(week)
        return {"week": week, "sms_sent": sent}

    # ------------------------------------------------------------------
    # Shifts
    # ------------------------------------------------------------------

    def get_shift(self, shift_id: int) -> RotaShift:
        shift = self.repo.get_shift(self.db, shift_id)
        if not shift:
            raise HTTPException(status_code=404, detail="Shift not found")
        return shift

    def _validate_shift(self, week: RotaWeek, data: ShiftBase, exclude_shift_id: Optional[int] = None) -> None:
        week_end = week.week_start + timedelta(days=6)
        if not week.week_start <= data.shift_date <= week_end:
            raise HTTPException(
                status_code=400,
                detail=f"Shift date must be within this rota week ({week.week_start.isoformat()} to {week_end.isoformat()})",
            )
        if not data.employee_id:
            return

        employee = self.get_employee(data.employee_id)
        start, end = shift_bounds(data.shift_date, data.start_time, data.end_time, data.is_overnight)
        nearby = self.repo.employee_shifts_around(
            self.db,
            employee.id,
            data.shift_date - timedelta(days=1),
            data.shift_date + timedelta(days=1),
            exclude_shift_id,
        )
        for other in nearby:
            other_start, other_end = shift_bounds(other.shift_date, other.start_time, other.end_time, other.is_overnight)
            if start < other_end and other_start < end:
                raise HTTPException(
                    status_code=400,
                    detail=f"{employee.full_name} already has an overlapping shift on {other.shift_date.isoformat()}",
                )

    def create_shift(self, week_id: int, data: ShiftBase, user: User) -> RotaShift:
        week = self.get_week(week_id)
        self._validate_shift(week, data)
        shift = self.repo.save(self.db, RotaShift(week_id=week.id, status="scheduled", **data.model_dump()))
        log_audit_event(self.db, user, "create", "rota_shift", shift.id)
        return shift

    def update_shift(self, shift_id: int, data: ShiftUpdate, user: User) -> RotaShift:
        shift = self.get_shift(shift_id)
        self._validate_shift(shift.week, data, exclude_shift_id=shift.id)
        for field, value in data.model_dump().items():
            setattr(shift, field, value)
        self.repo.save(self.db, shift)
        log_audit_event(self.db, user, "update", "rota_shift", shift.id)
        return shift

    def mark_sick(self, shift_id: int, user: User) -> RotaShift:
        shift = self.get_shift(shift_id)
        if not shift.employee_id:
            raise HTTPException(status_code=400, detail="Open shifts cannot be marked as sick")
        shift.status = "sick"
        self.repo.save(self.db, shift)
        log_audit_event(self.db, user, "update", "rota_shift", shift.id, {"status": "sick"})
        return shift

    def delete_shift(self, shift_id: int, user: User) -> None:
        shift = self.get_shift(shift_id)
        self.repo.delete(self.db, shift)
        log_audit_event(self.db, user, "delete", "rota_shift", shift_id)

    # ------------------------------------------------------------------
    # Timeclock
    # ------------------------------------------------------------------

    def clock_in(self, employee_id: int, notes: Optional[str] = None, now: Optional[datetime] = None) -> TimeclockSession:
        employee = self.get_employee(employee_id)
        if employee.status != "active":
            raise HTTPException(status_code=400, detail="Only active employees can clock in")
        if self.repo.open_session(self.db, employee.id):
            raise HTTPException(status_code=409, detail="Employee is already clocked in")

        now = now or now_local()
        linked_shift_id = None
        shifts = self.repo.shifts_for_employee_on(self.db, employee.id, now.date())
        if shifts:
            closest = min(shifts, key=lambda s: abs((combine(s.shift_date, s.start_time) - now).total_seconds()))
            linked_shift_id = closest.id

        session = self.repo.save(
            self.db,
            TimeclockSession(
                employee_id=employee.id,
                work_date=now.date(),
                clock_in_at=now,
                linked_shift_id=linked_shift_id,
                notes=notes,
            ),
        )
        logger.info(f"⏱️ {employee.full_name} clocked in")
        return session

    def clock_out(self, employee_id: int, now: Optional[datetime] = None) -> TimeclockSession:
        employee = self.get_employee(employee_id)
        session = self.repo.open_session(self.db, employee.id)
        if not session:
            raise HTTPException(status_code=400, detail="Employee is not clocked in")
        session.clock_out_at = now or now_local()
        self.repo.save(self.db, session)
        logger.info(f"⏱️ {employee.full_name} clocked out")
        return session

    # ------------------------------------------------------------------
    # Payroll
    # ------------------------------------------------------------------

    def get_period(self, year: int, month: int) -> tuple[date, date]:
        if not 1 <= month <= 12:
            raise HTTPException(status_code=400, detail="Month must be between 1 and 12")
        period = self.repo.get_period(self.db, year, month)
        if period:
            return period.period_start, period.period_end
        return default_period(year, month)

    def set_period(self, year: int, month: int, data: PayrollPeriodUpdate, user: User) -> tuple[date, date]:
        self.get_period(year, month)
        period = self.repo.get_period(self.db, year, month) or PayrollPeriod(year=year, month=month)
        period.period_start = data.period_start
        period.period_end = data.period_end
        self.db.add(period)

        approval = self.repo.get_approval(self.db, year, month)
        if approval:
            self.db.delete(approval)
            logger.info(f"↩️ Payroll approval for {year}-{month:02d} cleared by period change")
        self.db.commit()
        log_audit_event(
            self.db,
            user,
            "update",
            "payroll_period",
            details={"year": year, "month": month, "start": data.period_start.isoformat(), "end": data.period_end.isoformat()},
        )
        return data.period_start, data.period_end

    def get_payroll_month(self, year: int, month: int) -> dict:
        period_start, period_end = self.get_period(year, month)
        employees = {e.id: e for e in self.repo.list_employees(self.db, status=None)}
        rows = build_payroll_rows(
            self.repo.shifts_between(self.db, period_start, period_end),
            self.repo.sessions_between(self.db, period_start, period_end),
            employees,
            self.build_rate_table(),
        )
        totals = summarise_rows(rows)
        approval = self.repo.get_approval(self.db, year, month)
        return {
            "year": year,
            "month": month,
            "period_start": period_start,
            "period_end": period_end,
            "rows": rows,
            "approved_at": approval.approved_at if approval else None,
            **totals,
        }

    def approve_month(self, year: int, month: int, user: User) -> PayrollMonthApproval:
        data = self.get_payroll_month(year, month)
        snapshot = {
            "period_start": data["period_start"].isoformat(),
            "period_end": data["period_end"].isoformat(),
            "total_pay": data["total_pay"],
            "rows": [{**row, "date": row["date"].isoformat()} for row in data["rows"]],
        }

        approval = self.repo.get_approval(self.db, year, month) or PayrollMonthApproval(year=year, month=month)
        approval.snapshot = snapshot
        approval.approved_by = user.id
        approval.approved_at = now_local()
        self.repo.save(self.db, approval)
        log_audit_event(
            self.db, user, "approve", "payroll_month", approval.id, {"year": year, "month": month, "total": data["total_pay"]}
        )
        logger.info(f"✅ Payroll {year}-{month:02d} approved ({len(data['rows'])} rows)")
        return approval

    def export_payroll_csv(self, year: int, month: int, user: User) -> StreamingResponse:
        data = self.get_payroll_month(year, month)
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "Employee",
                "Date",
                "Department",
                "Planned Start",
                "Planned End",
                "Actual Start",
                "Actual End",
                "Planned Hours",
                "Actual Hours",
                "Hourly Rate",
                "Total Pay",
                "Flags",
            ]
        )
        for row in data["rows"]:
            writer.writerow(
                [
                    row["employee_name"],
                    row["date"].isoformat(),
                    row["department"] or "",
                    row["planned_start"] or "",
                    row["planned_end"] or "",
                    row["actual_start"] or "",
                    row["actual_end"] or "",
                    "" if row["planned_hours"] is None else f"{row['planned_hours']:.2f}",
                    "" if row["actual_hours"] is None else f"{row['actual_hours']:.2f}",
                    "" if row["hourly_rate"] is None else f"{row['hourly_rate']:.2f}",
                    "" if row["total_pay"] is None else f"{row['total_pay']:.2f}",
                    ", ".join(row["flags"]),
                ]
            )

        output.seek(0)
        filename = f"payroll_{year}_{month:02d}.csv"
        log_audit_event(self.db, user, "export", "payroll_month", details={"year": year, "month": month})
        logger.info(f"✅ Payroll CSV export: {filename} ({len(data['rows'])} rows)")
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}", "Cache-Control": "no-cache"},
        )
