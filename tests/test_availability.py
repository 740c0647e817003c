from datetime import date, datetime

from venuehq.domain.table_bookings.availability import (
    ExistingBooking,
    SlotCapacity,
    available_covers_at,
    closest_slot,
    compute_availability,
    slot_capacity,
)
from venuehq.domain.table_bookings.policies import (
    DEFAULT_POLICIES,
    REGULAR,
    SUNDAY_LUNCH,
    calculate_refund,
    policy_or_default,
    sunday_lunch_cutoff_passed,
    validate_booking_against_policy,
)

WEDNESDAY = date(2026, 11, 4)
SATURDAY = date(2026, 11, 7)
SUNDAY = date(2026, 11, 8)
NOW = datetime(2026, 11, 1, 10, 0)

LUNCH_HOURS = {
    "is_closed": False,
    "is_kitchen_closed": False,
    "kitchen_opens": "12:00",
    "kitchen_closes": "14:00",
    "source": "business_hours",
}


def test_slots_follow_the_kitchen_window():
    result = compute_availability(WEDNESDAY, 2, REGULAR, LUNCH_HOURS, [], [], NOW)
    assert result["available"] is True
    assert [s["time"] for s in result["time_slots"]] == ["12:00", "12:30", "13:00", "13:30"]
    assert all(s["available_capacity"] == 50 for s in result["time_slots"])
    assert result["kitchen_hours"] == {"opens": "12:00", "closes": "14:00", "source": "business_hours"}


def test_existing_bookings_hold_covers_for_their_whole_sitting():
    bookings = [ExistingBooking("12:00", 48, 120)]
    result = compute_availability(WEDNESDAY, 4, REGULAR, LUNCH_HOURS, [], bookings, NOW)
    assert result["available"] is False
    assert result["time_slots"] == []
    assert result["message"] == "No availability for 4 people on this date"

    result = compute_availability(WEDNESDAY, 2, REGULAR, LUNCH_HOURS, [], bookings, NOW)
    assert [s["available_capacity"] for s in result["time_slots"]] == [2, 2, 2, 2]


def test_booking_that_ends_at_slot_start_does_not_overlap():
    bookings = [ExistingBooking("10:00", 50, 120)]
    assert available_covers_at("12:00", 3, REGULAR, [], bookings) == 50


def test_type_specific_capacity_beats_catch_all():
    configs = [
        SlotCapacity(day_of_week=0, slot_time="12:00", max_covers=30),
        SlotCapacity(day_of_week=0, slot_time="12:00", max_covers=20, booking_type=SUNDAY_LUNCH),
        SlotCapacity(day_of_week=0, slot_time="12:30", max_covers=5, is_active=False),
    ]
    assert slot_capacity("12:00", 0, SUNDAY_LUNCH, configs) == 20
    assert slot_capacity("12:00", 0, REGULAR, configs) == 30
    assert slot_capacity("12:30", 0, REGULAR, configs) == 50


def test_closed_days_and_closed_kitchens():
    closed = compute_availability(WEDNESDAY, 2, REGULAR, {"is_closed": True}, [], [], NOW)
    assert closed["message"] == "Restaurant closed on this date"

    no_kitchen = compute_availability(
        WEDNESDAY, 2, REGULAR, {"is_closed": False, "is_kitchen_closed": True}, [], [], NOW
    )
    assert no_kitchen["message"] == "Kitchen closed on this date"


def test_midnight_kitchen_close_runs_to_end_of_day():
    hours = {**LUNCH_HOURS, "kitchen_opens": "22:00", "kitchen_closes": "00:00"}
    result = compute_availability(WEDNESDAY, 2, REGULAR, hours, [], [], NOW)
    assert [s["time"] for s in result["time_slots"]] == ["22:00", "22:30", "23:00", "23:30"]


def test_sunday_lunch_only_on_sundays_and_before_cutoff():
    saturday = compute_availability(SATURDAY, 2, SUNDAY_LUNCH, LUNCH_HOURS, [], [], NOW)
    assert saturday["message"] == "Sunday lunch is only available on Sundays"

    late = compute_availability(SUNDAY, 2, SUNDAY_LUNCH, LUNCH_HOURS, [], [], datetime(2026, 11, 7, 13, 0))
    assert late["available"] is False
    assert late["message"] == "Sunday lunch bookings must be made before 1pm on Saturday"

    early = compute_availability(SUNDAY, 2, SUNDAY_LUNCH, LUNCH_HOURS, [], [], datetime(2026, 11, 7, 12, 59))
    assert early["available"] is True
    assert all(s["requires_prepayment"] for s in early["time_slots"])


def test_cutoff_only_applies_to_sundays():
    assert sunday_lunch_cutoff_passed(SATURDAY, datetime(2026, 11, 8, 9, 0)) is False
    assert sunday_lunch_cutoff_passed(SUNDAY, datetime(2026, 11, 7, 13, 0)) is True


def test_closest_slot_prefers_earlier_on_a_tie():
    slots = [{"time": "12:00"}, {"time": "13:00"}, {"time": "14:00"}]
    assert closest_slot(slots, "12:30") == {"time": "12:00"}
    assert closest_slot(slots, "13:50") == {"time": "14:00"}
    assert closest_slot(slots, None) == {"time": "12:00"}
    assert closest_slot([], "12:00") is None


def test_policy_violations_are_reported_in_order():
    policy = policy_or_default(None, REGULAR)
    violations = validate_booking_against_policy(policy, date(2026, 11, 1), "11:00", 25, REGULAR, NOW)
    assert [v.code for v in violations] == ["min_advance", "party_size"]
    assert violations[0].message == "Bookings must be made at least 2 hours in advance"

    too_far = validate_booking_against_policy(policy, date(2027, 1, 30), "19:00", 2, REGULAR, NOW)
    assert [v.code for v in too_far] == ["max_advance"]


def test_sunday_lunch_refund_bands():
    policy = policy_or_default(None, SUNDAY_LUNCH)
    assert policy.partial_refund_percentage == DEFAULT_POLICIES[SUNDAY_LUNCH]["partial_refund_percentage"]

    # Lunch at 13:00 on Sunday 8 November
    full = calculate_refund(policy, SUNDAY, "13:00", 20.0, datetime(2026, 11, 6, 12, 0))
    assert full == (20.0, 100, "Full refund - cancelled with sufficient notice")

    partial = calculate_refund(policy, SUNDAY, "13:00", 20.0, datetime(2026, 11, 7, 7, 0))
    assert partial == (10.0, 50, "50% refund - cancelled with 30 hours notice")

    none = calculate_refund(policy, SUNDAY, "13:00", 20.0, datetime(2026, 11, 8, 9, 0))
    assert none == (0.0, 0, "No refund - insufficient cancellation notice")
