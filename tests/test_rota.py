import asyncio
from datetime import date, datetime
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from venuehq.domain.rota.payroll import (
    RateTable,
    age_on,
    build_payroll_rows,
    default_period,
    planned_hours,
    summarise_rows,
)
from venuehq.domain.rota.schemas import EmployeeBase, PayrollPeriodUpdate, RateCreate, ShiftBase
from venuehq.domain.rota.service import RotaService, auto_close_sessions

from .conftest import auth_headers


def test_planned_hours_handle_breaks_and_midnight():
    assert planned_hours("09:00", "17:00", 30) == 7.5
    assert planned_hours("22:00", "02:00") == 4.0
    assert planned_hours("18:00", "00:00") == 6.0
    assert planned_hours("10:00", "10:20", 60) == 0.0


def test_default_period_spans_the_25th():
    assert default_period(2026, 10) == (date(2026, 9, 25), date(2026, 10, 24))
    assert default_period(2027, 1) == (date(2026, 12, 25), date(2027, 1, 24))


def test_age_counts_completed_birthdays():
    assert age_on(date(2006, 10, 20), date(2026, 10, 19)) == 19
    assert age_on(date(2006, 10, 20), date(2026, 10, 20)) == 20


def test_override_beats_age_band():
    rates = RateTable(
        overrides={1: [(date(2026, 1, 1), 12.0), (date(2026, 10, 6), 13.0)]},
        bands=[(1, 21, None), (2, 18, 20)],
        band_rates={1: [(date(2026, 4, 1), 12.21)], 2: [(date(2026, 4, 1), 10.0)]},
        dates_of_birth={1: date(1990, 1, 1), 5: date(2006, 10, 20)},
    )
    assert rates.rate_for(1, date(2026, 10, 5)) == 12.0
    assert rates.rate_for(1, date(2026, 10, 6)) == 13.0
    assert rates.rate_for(5, date(2026, 10, 19)) == 10.0
    assert rates.rate_for(5, date(2027, 10, 20)) == 12.21
    # Band matched but no rate in force yet
    assert rates.rate_for(5, date(2026, 3, 1)) is None
    assert rates.rate_for(6, date(2026, 10, 1)) is None


def _shift(id, employee_id, shift_date, start, end, status="scheduled", unpaid_break_minutes=0):
    return SimpleNamespace(
        id=id,
        employee_id=employee_id,
        shift_date=shift_date,
        start_time=start,
        end_time=end,
        unpaid_break_minutes=unpaid_break_minutes,
        is_overnight=False,
        status=status,
        department="bar",
    )


def _session(id, employee_id, clock_in, clock_out, linked_shift_id=None, is_auto_closed=False):
    return SimpleNamespace(
        id=id,
        employee_id=employee_id,
        work_date=clock_in.date(),
        clock_in_at=clock_in,
        clock_out_at=clock_out,
        linked_shift_id=linked_shift_id,
        is_auto_closed=is_auto_closed,
    )


def test_payroll_rows_reconcile_shifts_and_sessions():
    employees = {
        1: SimpleNamespace(full_name="Ava Barista", is_salaried=False),
        2: SimpleNamespace(full_name="Sal Manager", is_salaried=True),
    }
    shifts = [
        _shift(10, 1, date(2026, 10, 5), "17:00", "23:00", unpaid_break_minutes=30),
        _shift(11, 1, date(2026, 10, 6), "12:00", "16:00", status="sick"),
        _shift(12, 2, date(2026, 10, 5), "09:00", "17:00"),
    ]
    sessions = [
        _session(100, 1, datetime(2026, 10, 5, 16, 55), datetime(2026, 10, 5, 23, 5)),
        _session(101, 1, datetime(2026, 10, 7, 18, 0), datetime(2026, 10, 7, 20, 0)),
        _session(102, 2, datetime(2026, 10, 5, 9, 0), datetime(2026, 10, 5, 17, 0)),
    ]
    rates = RateTable({1: [(date(2026, 1, 1), 12.0), (date(2026, 10, 6), 13.0)]}, [], {}, {})

    rows = build_payroll_rows(shifts, sessions, employees, rates)

    assert [(r["date"], r["flags"]) for r in rows] == [
        (date(2026, 10, 5), ["variance"]),
        (date(2026, 10, 6), ["sick"]),
        (date(2026, 10, 7), ["unscheduled"]),
    ]
    worked, sick, extra = rows
    assert worked["actual_start"] == "16:55"
    assert worked["planned_hours"] == 5.5
    assert worked["actual_hours"] == 6.17
    assert worked["total_pay"] == 74.04
    # Nobody clocked in, so nothing is paid
    assert sick["actual_hours"] is None
    assert sick["hourly_rate"] == 13.0
    assert sick["total_pay"] is None
    assert extra["planned_hours"] is None
    assert extra["total_pay"] == 26.0

    totals = summarise_rows(rows)
    assert totals["planned_hours"] == 9.5
    assert totals["actual_hours"] == 8.17
    assert totals["total_pay"] == 100.04
    assert [e["employee_name"] for e in totals["employees"]] == ["Ava Barista"]


def test_linked_session_wins_over_closer_clock_in():
    employees = {1: SimpleNamespace(full_name="Ava Barista", is_salaried=False)}
    shifts = [
        _shift(10, 1, date(2026, 10, 5), "12:00", "15:00"),
        _shift(11, 1, date(2026, 10, 5), "18:00", "22:00"),
    ]
    sessions = [_session(100, 1, datetime(2026, 10, 5, 12, 0), datetime(2026, 10, 5, 15, 0), linked_shift_id=11)]
    rows = build_payroll_rows(shifts, sessions, employees, RateTable({}, [], {}, {}))

    by_shift = {r["shift_id"]: r for r in rows}
    assert by_shift[11]["session_id"] == 100
    assert by_shift[10]["session_id"] is None
    assert by_shift[10]["total_pay"] is None


@pytest.fixture()
def rota(db):
    return RotaService(db)


@pytest.fixture()
def employee(rota, admin):
    return rota.create_employee(
        EmployeeBase(first_name="Ava", last_name="Barista", phone="07700 900111", department="bar"), admin
    )


@pytest.fixture()
def week(rota):
    # Monday 12 October 2026
    return rota.get_or_create_week(date(2026, 10, 14))


def test_week_starts_on_monday_and_is_reused(rota, week):
    assert week.week_start == date(2026, 10, 12)
    assert week.status == "draft"
    assert rota.get_or_create_week(date(2026, 10, 18)).id == week.id


def test_shifts_must_fall_inside_the_week(rota, week, employee, admin):
    with pytest.raises(HTTPException) as exc:
        rota.create_shift(
            week.id,
            ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 19), start_time="12:00", end_time="16:00"),
            admin,
        )
    assert exc.value.detail == "Shift date must be within this rota week (2026-10-12 to 2026-10-18)"


def test_overnight_shift_blocks_early_next_day_shift(rota, week, employee, admin):
    rota.create_shift(
        week.id,
        ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 13), start_time="18:00", end_time="02:00"),
        admin,
    )
    with pytest.raises(HTTPException) as exc:
        rota.create_shift(
            week.id,
            ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 14), start_time="01:00", end_time="05:00"),
            admin,
        )
    assert exc.value.detail == "Ava Barista already has an overlapping shift on 2026-10-13"

    later = rota.create_shift(
        week.id,
        ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 14), start_time="12:00", end_time="16:00"),
        admin,
    )
    assert later.status == "scheduled"


def test_publishing_texts_each_scheduled_employee(rota, week, employee, admin, sent_sms):
    for day in (13, 14):
        rota.create_shift(
            week.id,
            ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, day), start_time="12:00", end_time="16:00"),
            admin,
        )
    rota.create_shift(
        week.id, ShiftBase(shift_date=date(2026, 10, 15), start_time="12:00", end_time="16:00"), admin
    )

    result = asyncio.run(rota.publish_week(week.id, admin))
    assert result["sms_sent"] == 1
    assert result["week"].status == "published"
    assert sent_sms[0]["to"] == "+447700900111"
    assert "You have 2 shift(s)" in sent_sms[0]["body"]


def test_open_shift_cannot_be_marked_sick(rota, week, admin):
    shift = rota.create_shift(
        week.id, ShiftBase(shift_date=date(2026, 10, 15), start_time="12:00", end_time="16:00"), admin
    )
    with pytest.raises(HTTPException) as exc:
        rota.mark_sick(shift.id, admin)
    assert exc.value.detail == "Open shifts cannot be marked as sick"


def test_clock_in_links_the_nearest_shift(rota, week, employee, admin):
    lunch = rota.create_shift(
        week.id,
        ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 13), start_time="11:00", end_time="14:00"),
        admin,
    )
    evening = rota.create_shift(
        week.id,
        ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 13), start_time="18:00", end_time="22:00"),
        admin,
    )

    session = rota.clock_in(employee.id, now=datetime(2026, 10, 13, 17, 50))
    assert session.linked_shift_id == evening.id
    assert session.linked_shift_id != lunch.id

    with pytest.raises(HTTPException) as exc:
        rota.clock_in(employee.id, now=datetime(2026, 10, 13, 17, 55))
    assert exc.value.status_code == 409

    closed = rota.clock_out(employee.id, now=datetime(2026, 10, 13, 22, 5))
    assert closed.clock_out_at == datetime(2026, 10, 13, 22, 5)

    with pytest.raises(HTTPException) as exc:
        rota.clock_out(employee.id)
    assert exc.value.detail == "Employee is not clocked in"


def test_former_employee_cannot_clock_in(rota, employee, admin):
    assert rota.delete_employee(employee.id, admin).status == "former"
    with pytest.raises(HTTPException) as exc:
        rota.clock_in(employee.id)
    assert exc.value.detail == "Only active employees can clock in"


def test_auto_close_uses_shift_end_or_eight_hours(rota, week, employee, admin, db):
    other = rota.create_employee(EmployeeBase(first_name="Ben", last_name="Porter"), admin)
    rota.create_shift(
        week.id,
        ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 13), start_time="18:00", end_time="02:00"),
        admin,
    )
    linked = rota.clock_in(employee.id, now=datetime(2026, 10, 13, 17, 50))
    unlinked = rota.clock_in(other.id, now=datetime(2026, 10, 13, 9, 0))

    assert auto_close_sessions(db, before=date(2026, 10, 13)) == 0
    assert auto_close_sessions(db, before=date(2026, 10, 14)) == 2

    db.refresh(linked)
    db.refresh(unlinked)
    assert linked.clock_out_at == datetime(2026, 10, 14, 2, 0)
    assert unlinked.clock_out_at == datetime(2026, 10, 13, 17, 0)
    assert linked.is_auto_closed and unlinked.is_auto_closed


def test_payroll_month_approval_is_cleared_by_period_change(rota, week, employee, admin, db):
    rota.add_override(employee.id, RateCreate(hourly_rate=12.5, effective_from=date(2026, 1, 1)), admin)
    rota.create_shift(
        week.id,
        ShiftBase(employee_id=employee.id, shift_date=date(2026, 10, 13), start_time="18:00", end_time="02:00"),
        admin,
    )
    rota.clock_in(employee.id, now=datetime(2026, 10, 13, 17, 50))
    auto_close_sessions(db, before=date(2026, 10, 14))

    month = rota.get_payroll_month(2026, 10)
    assert month["period_start"] == date(2026, 9, 25)
    [row] = month["rows"]
    assert row["flags"] == ["auto_close"]
    assert row["actual_hours"] == 8.17
    assert row["total_pay"] == 102.13
    assert month["approved_at"] is None

    approval = rota.approve_month(2026, 10, admin)
    assert approval.snapshot["total_pay"] == 102.13
    assert rota.get_payroll_month(2026, 10)["approved_at"] is not None

    rota.set_period(
        2026, 10, PayrollPeriodUpdate(period_start=date(2026, 10, 1), period_end=date(2026, 10, 31)), admin
    )
    month = rota.get_payroll_month(2026, 10)
    assert month["approved_at"] is None
    assert month["period_end"] == date(2026, 10, 31)


def test_payroll_api_month_bounds_and_export(client, admin_headers, employee):
    assert client.get("/rota/payroll/2026/13", headers=admin_headers).status_code == 400

    response = client.get("/rota/payroll/2026/10/export", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0].startswith("Employee,Date,Department")


def test_payroll_export_needs_export_permission(client, make_user):
    viewer = make_user(permissions=[("payroll", "view")])
    assert client.get("/rota/payroll/2026/10", headers=auth_headers(viewer)).status_code == 200
    assert client.get("/rota/payroll/2026/10/export", headers=auth_headers(viewer)).status_code == 403
