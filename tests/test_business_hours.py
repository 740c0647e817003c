from datetime import date

import pytest

from venuehq.domain.business_hours.hours import DayHours, closing_minutes, validate_day_hours
from venuehq.domain.business_hours.service import (
    get_effective_service_status,
    resolve_hours_for_date,
    seed_service_statuses,
)
from venuehq.models_hours import BusinessHours, ServiceStatusOverride, SpecialHours

from .conftest import auth_headers


def test_midnight_closing_counts_as_end_of_day():
    assert closing_minutes("00:00") == 24 * 60
    assert closing_minutes("23:00") == 23 * 60


def test_validate_day_hours_accepts_kitchen_inside_opening_hours():
    hours = validate_day_hours(
        DayHours(opens="12:00:00", closes="00:00", kitchen_opens="12:00", kitchen_closes="21:00")
    )
    assert hours.opens == "12:00"
    assert hours.closes == "00:00"
    assert hours.is_kitchen_closed is False


def test_blank_kitchen_times_mean_kitchen_closed():
    hours = validate_day_hours(DayHours(opens="16:00", closes="23:00"))
    assert hours.is_kitchen_closed is True


@pytest.mark.parametrize(
    "hours, message",
    [
        (DayHours(is_closed=True, opens="12:00"), "Opening hours must be blank when the venue is marked closed"),
        (DayHours(opens="12:00"), "Closing time is required when the venue is open"),
        (DayHours(opens="18:00", closes="12:00"), "Closing time must be after opening time"),
        (
            DayHours(opens="12:00", closes="22:00", kitchen_opens="12:00"),
            "Kitchen opening and closing times are both required",
        ),
        (
            DayHours(opens="12:00", closes="22:00", kitchen_opens="11:00", kitchen_closes="21:00"),
            "Kitchen hours must sit inside the main business hours",
        ),
    ],
)
def test_validate_day_hours_rejects_bad_hours(hours, message):
    with pytest.raises(ValueError, match=message):
        validate_day_hours(hours)


def test_special_hours_replace_weekly_hours(db):
    # 2026-12-25 is a Friday (day_of_week 5)
    db.add(BusinessHours(day_of_week=5, opens="12:00", closes="23:00", kitchen_opens="12:00", kitchen_closes="21:00"))
    db.add(SpecialHours(date=date(2026, 12, 25), is_closed=True, is_kitchen_closed=True, note="Christmas"))
    db.commit()

    christmas = resolve_hours_for_date(db, date(2026, 12, 25))
    assert christmas["source"] == "special_hours"
    assert christmas["is_closed"] is True
    assert christmas["note"] == "Christmas"

    next_friday = resolve_hours_for_date(db, date(2027, 1, 1))
    assert next_friday["source"] == "business_hours"
    assert next_friday["kitchen_closes"] == "21:00"


def test_day_without_any_hours_is_closed(db):
    resolved = resolve_hours_for_date(db, date(2026, 11, 2))
    assert resolved["source"] == "none"
    assert resolved["is_closed"] is True


def test_override_beats_global_service_status(db):
    seed_service_statuses(db)
    db.add(
        ServiceStatusOverride(
            service_code="sunday_lunch",
            start_date=date(2026, 12, 20),
            end_date=date(2026, 12, 27),
            is_enabled=False,
            message="No Sunday lunch over Christmas",
        )
    )
    db.commit()

    inside = get_effective_service_status(db, "sunday_lunch", date(2026, 12, 27))
    assert inside["is_enabled"] is False
    assert inside["source"] == "override"

    outside = get_effective_service_status(db, "sunday_lunch", date(2027, 1, 3))
    assert outside["is_enabled"] is True
    assert outside["source"] == "global"

    unknown = get_effective_service_status(db, "brunch", date(2027, 1, 3))
    assert unknown == {
        "service_code": "brunch",
        "date": date(2027, 1, 3),
        "is_enabled": True,
        "message": None,
        "source": "default",
    }


def test_replace_weekly_hours_reports_the_failing_day(client, admin_headers):
    response = client.put(
        "/business-hours/weekly",
        json={
            "days": [
                {"day_of_week": 1, "opens": "12:00", "closes": "23:00"},
                {"day_of_week": 2, "opens": "18:00", "closes": "12:00"},
            ]
        },
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Day 2: Closing time must be after opening time"


def test_create_special_hours_range_and_conflict(client, admin_headers):
    payload = {"start_date": "2026-12-24", "end_date": "2026-12-26", "is_closed": True, "note": "Christmas"}
    response = client.post("/business-hours/special", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert [row["date"] for row in response.json()] == ["2026-12-24", "2026-12-25", "2026-12-26"]

    again = client.post("/business-hours/special", json=payload, headers=admin_headers)
    assert again.status_code == 409


def test_public_hours_need_no_token(client, db):
    db.add(BusinessHours(day_of_week=0, opens="12:00", closes="22:30", kitchen_opens="12:00", kitchen_closes="17:00"))
    db.commit()
    response = client.get("/business-hours/public/date/2026-11-01")
    assert response.status_code == 200
    assert response.json()["kitchen_closes"] == "17:00"


def test_weekly_hours_require_settings_permission(client, make_user):
    user = make_user(permissions=[("customers", "view")])
    response = client.get("/business-hours/weekly", headers=auth_headers(user))
    assert response.status_code == 403
