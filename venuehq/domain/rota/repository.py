"""Rota repository - Database operations for employees, pay rates, rotas, clock sessions and payroll"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

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


class RotaRepository:
    """Repository for rota and payroll database operations"""

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
    # Employees and rates
    # ------------------------------------------------------------------

    @staticmethod
    def list_employees(db: Session, status: Optional[str] = "active") -> list[Employee]:
        query = db.query(Employee)
        if status:
            query = query.filter(Employee.status == status)
        return query.order_by(Employee.first_name, Employee.last_name).all()

    @staticmethod
    def get_employee(db: Session, employee_id: int) -> Optional[Employee]:
        return db.query(Employee).filter(Employee.id == employee_id).first()

    @staticmethod
    def list_bands(db: Session, active_only: bool = False) -> list[PayAgeBand]:
        query = db.query(PayAgeBand)
        if active_only:
            query = query.filter(PayAgeBand.is_active.is_(True))
        return query.order_by(PayAgeBand.min_age).all()

    @staticmethod
    def get_band(db: Session, band_id: int) -> Optional[PayAgeBand]:
        return db.query(PayAgeBand).filter(PayAgeBand.id == band_id).first()

    @staticmethod
    def list_band_rates(db: Session, band_id: Optional[int] = None) -> list[PayBandRate]:
        query = db.query(PayBandRate)
        if band_id:
            query = query.filter(PayBandRate.band_id == band_id)
        return query.order_by(PayBandRate.band_id, PayBandRate.effective_from.desc()).all()

    @staticmethod
    def list_overrides(db: Session, employee_id: Optional[int] = None) -> list[EmployeeRateOverride]:
        query = db.query(EmployeeRateOverride)
        if employee_id:
            query = query.filter(EmployeeRateOverride.employee_id == employee_id)
        return query.order_by(EmployeeRateOverride.effective_from.desc()).all()

    @staticmethod
    def get_override(db: Session, override_id: int) -> Optional[EmployeeRateOverride]:
        return db.query(EmployeeRateOverride).filter(EmployeeRateOverride.id == override_id).first()

    # ------------------------------------------------------------------
    # Rota weeks and shifts
    # ------------------------------------------------------------------

    @staticmethod
    def get_week_by_start(db: Session, week_start: date) -> Optional[RotaWeek]:
        return db.query(RotaWeek).filter(RotaWeek.week_start == week_start).first()

    @staticmethod
    def get_week(db: Session, week_id: int) -> Optional[RotaWeek]:
        return (
            db.query(RotaWeek)
            .options(joinedload(RotaWeek.shifts).joinedload(RotaShift.employee))
            .filter(RotaWeek.id == week_id)
            .first()
        )

    @staticmethod
    def get_shift(db: Session, shift_id: int) -> Optional[RotaShift]:
        return (
            db.query(RotaShift)
            .options(joinedload(RotaShift.week), joinedload(RotaShift.employee))
            .filter(RotaShift.id == shift_id)
            .first()
        )

    @staticmethod
    def employee_shifts_around(
        db: Session, employee_id: int, start: date, end: date, exclude_shift_id: Optional[int] = None
    ) -> list[RotaShift]:
        query = db.query(RotaShift).filter(
            RotaShift.employee_id == employee_id,
            RotaShift.shift_date >= start,
            RotaShift.shift_date <= end,
            RotaShift.status != "cancelled",
        )
        if exclude_shift_id:
            query = query.filter(RotaShift.id != exclude_shift_id)
        return query.all()

    @staticmethod
    def shifts_between(db: Session, start: date, end: date) -> list[RotaShift]:
        return (
            db.query(RotaShift)
            .filter(RotaShift.shift_date >= start, RotaShift.shift_date <= end, RotaShift.status != "cancelled")
            .all()
        )

    @staticmethod
    def shifts_for_employee_on(db: Session, employee_id: int, day: date) -> list[RotaShift]:
        return (
            db.query(RotaShift)
            .filter(
                RotaShift.employee_id == employee_id,
                RotaShift.shift_date == day,
                RotaShift.status == "scheduled",
            )
            .order_by(RotaShift.start_time)
            .all()
        )

    # ------------------------------------------------------------------
    # Timeclock
    # ------------------------------------------------------------------

    @staticmethod
    def open_session(db: Session, employee_id: int) -> Optional[TimeclockSession]:
        return (
            db.query(TimeclockSession)
            .filter(TimeclockSession.employee_id == employee_id, TimeclockSession.clock_out_at.is_(None))
            .order_by(TimeclockSession.clock_in_at.desc())
            .first()
        )

    @staticmethod
    def open_sessions_before(db: Session, day: date) -> list[TimeclockSession]:
        return (
            db.query(TimeclockSession)
            .filter(TimeclockSession.clock_out_at.is_(None), TimeclockSession.work_date < day)
            .all()
        )

    @staticmethod
    def sessions_between(db: Session, start: date, end: date) -> list[TimeclockSession]:
        return (
            db.query(TimeclockSession)
            .filter(TimeclockSession.work_date >= start, TimeclockSession.work_date <= end)
            .order_by(TimeclockSession.clock_in_at)
            .all()
        )

    # ------------------------------------------------------------------
    # Payroll
    # ------------------------------------------------------------------

    @staticmethod
    def get_period(db: Session, year: int, month: int) -> Optional[PayrollPeriod]:
        return db.query(PayrollPeriod).filter(PayrollPeriod.year == year, PayrollPeriod.month == month).first()

    @staticmethod
    def get_approval(db: Session, year: int, month: int) -> Optional[PayrollMonthApproval]:
        return (
            db.query(PayrollMonthApproval)
            .filter(PayrollMonthApproval.year == year, PayrollMonthApproval.month == month)
            .first()
        )
