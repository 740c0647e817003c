"""
Table availability

Turns the hours in force on a date, the slot capacity configuration and
the bookings already taken into the list of bookable times for a party.
All inputs are plain data so the maths can be exercised without a database.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ...config import DEFAULT_BOOKING_DURATION_MINUTES, RESTAURANT_CAPACITY, SLOT_INTERVAL_MINUTES
from ...shared.dates import day_of_week, minutes_to_time, time_to_minutes
from ..business_hours.hours import closing_minutes
from .policies import SUNDAY_LUNCH, SUNDAY_LUNCH_CUTOFF_MESSAGE, sunday_lunch_cutoff_passed

# Bookings in these states hold covers
ACTIVE_STATUSES = ("confirmed", "pending_payment")


@dataclass
class ExistingBooking:
    booking_time: str
    party_size: int
    duration_minutes: int = DEFAULT_BOOKING_DURATION_MINUTES


@dataclass
class SlotCapacity:
    day_of_week: int
    slot_time: str
    max_covers: int
    booking_type: Optional[str] = None
    is_active: bool = True


def _unavailable(message: str, kitchen_hours: Optional[dict] = None) -> dict:
    return {"available": False, "time_slots": [], "kitchen_hours": kitchen_hours, "message": message}


def slot_capacity(
    slot_time: str,
    weekday: int,
    booking_type: str,
    slot_configs: list[SlotCapacity],
    default_capacity: int = RESTAURANT_CAPACITY,
) -> int:
    """Configured covers for a slot; a type-specific row beats a catch-all row"""
    matches = [
        c
        for c in slot_configs
        if c.is_active
        and c.day_of_week == weekday
        and c.slot_time == slot_time
        and c.booking_type in (booking_type, None)
    ]
    if not matches:
        return default_capacity
    matches.sort(key=lambda c: c.booking_type is None)
    return matches[0].max_covers


def booked_covers(slot_start: int, bookings: list[ExistingBooking]) -> int:
    """Covers held by bookings whose sitting overlaps [slot_start, slot_start + interval)"""
    slot_end = slot_start + SLOT_INTERVAL_MINUTES
    total = 0
    for booking in bookings:
        start = time_to_minutes(booking.booking_time)
        end = start + (booking.duration_minutes or DEFAULT_BOOKING_DURATION_MINUTES)
        if start < slot_end and end > slot_start:
            total += booking.party_size
    return total


def available_covers_at(
    booking_time: str,
    weekday: int,
    booking_type: str,
    slot_configs: list[SlotCapacity],
    bookings: list[ExistingBooking],
    default_capacity: int = RESTAURANT_CAPACITY,
) -> int:
    """Free covers at an exact time, which need not sit on the slot grid"""
    capacity = slot_capacity(booking_time, weekday, booking_type, slot_configs, default_capacity)
    return max(0, capacity - booked_covers(time_to_minutes(booking_time), bookings))


def compute_availability(
    booking_date: date,
    party_size: int,
    booking_type: str,
    hours: dict,
    slot_configs: list[SlotCapacity],
    bookings: list[ExistingBooking],
    now: datetime,
    default_capacity: int = RESTAURANT_CAPACITY,
) -> dict:
    """
    Bookable slots for a party on a date.

    Args:
        hours: resolved hours for the date (see resolve_hours_for_date)
        slot_configs: capacity overrides, any weekday
        bookings: active bookings already on the date
        now: venue-local current time, for the Sunday lunch cutoff

    Returns:
        Dict with available, time_slots, kitchen_hours and an optional message
    """
    if hours.get("is_closed"):
        return _unavailable("Restaurant closed on this date")

    if hours.get("is_kitchen_closed") or not hours.get("kitchen_opens") or not hours.get("kitchen_closes"):
        return _unavailable("Kitchen closed on this date")

    kitchen_hours = {
        "opens": hours["kitchen_opens"],
        "closes": hours["kitchen_closes"],
        "source": hours.get("source", "business_hours"),
    }

    if booking_type == SUNDAY_LUNCH:
        if booking_date.weekday() != 6:
            return _unavailable("Sunday lunch is only available on Sundays", kitchen_hours)
        if sunday_lunch_cutoff_passed(booking_date, now):
            return _unavailable(SUNDAY_LUNCH_CUTOFF_MESSAGE, kitchen_hours)

    weekday = day_of_week(booking_date)
    opens = time_to_minutes(hours["kitchen_opens"])
    closes = closing_minutes(hours["kitchen_closes"])

    time_slots = []
    for slot_start in range(opens, closes, SLOT_INTERVAL_MINUTES):
        slot_time = minutes_to_time(slot_start)
        capacity = slot_capacity(slot_time, weekday, booking_type, slot_configs, default_capacity)
        available_capacity = max(0, capacity - booked_covers(slot_start, bookings))
        if available_capacity >= party_size:
            time_slots.append(
                {
                    "time": slot_time,
                    "available_capacity": available_capacity,
                    "booking_type": booking_type,
                    "requires_prepayment": booking_type == SUNDAY_LUNCH,
                }
            )

    result = {
        "available": bool(time_slots),
        "time_slots": time_slots,
        "kitchen_hours": kitchen_hours,
        "message": None,
    }
    if not time_slots:
        result["message"] = f"No availability for {party_size} people on this date"
    return result


def closest_slot(time_slots: list[dict], preferred_time: Optional[str]) -> Optional[dict]:
    """First slot, or the one nearest the preferred time (earlier wins a tie)"""
    if not time_slots:
        return None
    if not preferred_time:
        return time_slots[0]
    target = time_to_minutes(preferred_time)
    return min(time_slots, key=lambda s: (abs(time_to_minutes(s["time"]) - target), time_to_minutes(s["time"])))
