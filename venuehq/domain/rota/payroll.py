"""
Payroll calculations

Pure functions for payroll periods, pay rates, planned and actual hours,
and the reconciliation of rota shifts against timeclock sessions.
"""

from datetime import date, datetime
from typing import Optional

from ...shared.dates import combine, time_to_minutes
from ...shared.money import round2

VARIANCE_THRESHOLD_HOURS = 0.5


def default_period(year: int, month: int) -> tuple[date, date]:
    """25th of the previous month to the 24th of the month"""
    if month == 1:
        start = date(year - 1, 12, 25)
    else:
        start = date(year, month - 1, 25)
    return start, date(year, month, 24)


def age_on(date_of_birth: date, on: date) -> int:
    years = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def planned_hours(start_time: str, end_time: str, unpaid_break_minutes: int = 0, is_overnight: bool = False) -> float:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if is_overnight or end <= start:
        end += 24 * 60
    minutes = max(end - start - (unpaid_break_minutes or 0), 0)
    return round2(minutes / 60)


def actual_hours(clock_in_at: datetime, clock_out_at: Optional[datetime]) -> Optional[float]:
    if not clock_out_at:
        return None
    seconds = max((clock_out_at - clock_in_at).total_seconds(), 0)
    return round2(seconds / 3600)


class RateTable:
    """
    Hourly rate lookup built from pre-loaded rate data.

    Args:
        overrides: {employee_id: [(effective_from, hourly_rate), ...]}
        bands: [(band_id, min_age, max_age), ...] for active bands
        band_rates: {band_id: [(effective_from, hourly_rate), ...]}
        dates_of_birth: {employee_id: date_of_birth}
    """

    def __init__(self, overrides: dict, bands: list, band_rates: dict, dates_of_birth: dict):
        self.overrides = {k: sorted(v, reverse=True) for k, v in overrides.items()}
        self.bands = bands
        self.band_rates = {k: sorted(v, reverse=True) for k, v in band_rates.items()}
        self.dates_of_birth = dates_of_birth

    @staticmethod
    def _latest_on(entries: list, on: date) -> Optional[float]:
        for effective_from, rate in entries:
            if effective_from <= on:
                return float(rate)
        return None

    def rate_for(self, employee_id: int, on: date) -> Optional[float]:
        rate = self._latest_on(self.overrides.get(employee_id, []), on)
        if rate is not None:
            return rate

        dob = self.dates_of_birth.get(employee_id)
        if not dob:
            return None
        age = age_on(dob, on)
        for band_id, min_age, max_age in self.bands:
            if age >= min_age and (max_age is None or age <= max_age):
                return self._latest_on(self.band_rates.get(band_id, []), on)
        return None


def _closest_session(candidates: list, target: datetime, consumed: set):
    best = None
    best_diff = None
    for session in candidates:
        if session.id in consumed:
            continue
        diff = abs((session.clock_in_at - target).total_seconds())
        if best_diff is None or diff < best_diff:
            best, best_diff = session, diff
    return best


def _pay(hours: Optional[float], rate: Optional[float]) -> Optional[float]:
    if hours is None or rate is None:
        return None
    return round2(hours * rate)


def _hhmm(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


def build_payroll_rows(shifts: list, sessions: list, employees: dict, rates: RateTable) -> list[dict]:
    """
    Reconcile shifts with timeclock sessions.

    A session linked to a shift always matches it. Otherwise the unlinked
    session for the same employee and day with the clock-in closest to the
    planned start is used. Sessions left over become their own rows.
    Salaried employees are excluded.

    Args:
        shifts: non-cancelled rota shifts in the period
        sessions: timeclock sessions in the period
        employees: {employee_id: Employee}
        rates: RateTable for the period
    """
    hourly = {eid for eid, emp in employees.items() if not emp.is_salaried}
    linked: dict[int, list] = {}
    unlinked: dict[tuple, list] = {}
    for session in sorted(sessions, key=lambda s: s.clock_in_at):
        if session.employee_id not in hourly:
            continue
        if session.linked_shift_id:
            linked.setdefault(session.linked_shift_id, []).append(session)
        else:
            unlinked.setdefault((session.employee_id, session.work_date), []).append(session)

    consumed: set[int] = set()
    rows = []

    ordered_shifts = sorted(shifts, key=lambda s: (s.employee_id or 0, s.shift_date, s.start_time))
    for shift in ordered_shifts:
        if shift.employee_id not in hourly:
            continue
        employee = employees[shift.employee_id]

        session = next((s for s in linked.get(shift.id, []) if s.id not in consumed), None)
        if session is None:
            start = combine(shift.shift_date, shift.start_time)
            session = _closest_session(unlinked.get((shift.employee_id, shift.shift_date), []), start, consumed)
        if session is not None:
            consumed.add(session.id)

        planned = planned_hours(shift.start_time, shift.end_time, shift.unpaid_break_minutes, shift.is_overnight)
        actual = actual_hours(session.clock_in_at, session.clock_out_at) if session else None
        rate = rates.rate_for(shift.employee_id, shift.shift_date)

        flags = []
        if session is not None and session.is_auto_closed:
            flags.append("auto_close")
        if shift.status == "sick":
            flags.append("sick")
        if actual is not None and abs(planned - actual) > VARIANCE_THRESHOLD_HOURS:
            flags.append("variance")

        rows.append(
            {
                "employee_id": shift.employee_id,
                "employee_name": employee.full_name,
                "date": shift.shift_date,
                "department": shift.department,
                "planned_start": shift.start_time,
                "planned_end": shift.end_time,
                "actual_start": _hhmm(session.clock_in_at) if session else None,
                "actual_end": _hhmm(session.clock_out_at) if session else None,
                "planned_hours": planned,
                "actual_hours": actual,
                "hourly_rate": rate,
                "total_pay": _pay(actual, rate),
                "flags": flags,
                "shift_id": shift.id,
                "session_id": session.id if session else None,
            }
        )

    for session in sorted(sessions, key=lambda s: s.clock_in_at):
        if session.id in consumed or session.employee_id not in hourly:
            continue
        employee = employees[session.employee_id]
        actual = actual_hours(session.clock_in_at, session.clock_out_at)
        rate = rates.rate_for(session.employee_id, session.work_date)
        flags = ["unmatched_session" if session.linked_shift_id else "unscheduled"]
        if session.is_auto_closed:
            flags.append("auto_close")

        rows.append(
            {
                "employee_id": session.employee_id,
                "employee_name": employee.full_name,
                "date": session.work_date,
                "department": None,
                "planned_start": None,
                "planned_end": None,
                "actual_start": _hhmm(session.clock_in_at),
                "actual_end": _hhmm(session.clock_out_at),
                "planned_hours": None,
                "actual_hours": actual,
                "hourly_rate": rate,
                "total_pay": _pay(actual, rate),
                "flags": flags,
                "shift_id": None,
                "session_id": session.id,
            }
        )

    rows.sort(key=lambda r: (r["employee_name"], r["date"], r["actual_start"] or r["planned_start"] or ""))
    return rows


def summarise_rows(rows: list[dict]) -> dict:
    """Totals overall and per employee"""
    per_employee: dict[int, dict] = {}
    for row in rows:
        summary = per_employee.setdefault(
            row["employee_id"],
            {
                "employee_id": row["employee_id"],
                "employee_name": row["employee_name"],
                "planned_hours": 0.0,
                "actual_hours": 0.0,
                "total_pay": 0.0,
            },
        )
        summary["planned_hours"] = round2(summary["planned_hours"] + (row["planned_hours"] or 0))
        summary["actual_hours"] = round2(summary["actual_hours"] + (row["actual_hours"] or 0))
        summary["total_pay"] = round2(summary["total_pay"] + (row["total_pay"] or 0))

    employees = sorted(per_employee.values(), key=lambda s: s["employee_name"])
    return {
        "planned_hours": round2(sum(s["planned_hours"] for s in employees)),
        "actual_hours": round2(sum(s["actual_hours"] for s in employees)),
        "total_pay": round2(sum(s["total_pay"] for s in employees)),
        "employees": employees,
    }
