"""
Opening-hours rules

Validation and normalisation for a day's hours, shared by the weekly
schedule and date-specific special hours. Errors are raised as ValueError
carrying the message shown to staff.
"""

from dataclasses import dataclass
from typing import Optional

from ...shared.dates import time_to_minutes
from ...shared.validators import validate_time_string

MIDNIGHT_MINUTES = 24 * 60


@dataclass
class DayHours:
    opens: Optional[str] = None
    closes: Optional[str] = None
    kitchen_opens: Optional[str] = None
    kitchen_closes: Optional[str] = None
    is_closed: bool = False
    is_kitchen_closed: bool = False


def closing_minutes(value: Optional[str]) -> Optional[int]:
    """Closing times of 00:00 mean midnight at the end of the day"""
    minutes = time_to_minutes(value)
    if minutes == 0:
        return MIDNIGHT_MINUTES
    return minutes


def clean_day_hours(hours: DayHours) -> DayHours:
    """Trim seconds and blank strings before validation"""
    return DayHours(
        opens=validate_time_string(hours.opens),
        closes=validate_time_string(hours.closes),
        kitchen_opens=validate_time_string(hours.kitchen_opens),
        kitchen_closes=validate_time_string(hours.kitchen_closes),
        is_closed=bool(hours.is_closed),
        is_kitchen_closed=bool(hours.is_kitchen_closed),
    )


def validate_day_hours(hours: DayHours) -> DayHours:
    """
    Validate one day's hours and return the normalised form.

    Raises:
        ValueError: with the first rule the hours break
    """
    hours = clean_day_hours(hours)

    if hours.is_closed:
        if hours.opens or hours.closes:
            raise ValueError("Opening hours must be blank when the venue is marked closed")
        if hours.kitchen_opens or hours.kitchen_closes:
            raise ValueError("Kitchen hours must be blank when the venue is marked closed")
        return DayHours(is_closed=True, is_kitchen_closed=True)

    if not hours.opens:
        raise ValueError("Opening time is required when the venue is open")
    if not hours.closes:
        raise ValueError("Closing time is required when the venue is open")

    opens = time_to_minutes(hours.opens)
    closes = closing_minutes(hours.closes)
    if closes <= opens:
        raise ValueError("Closing time must be after opening time")

    if hours.is_kitchen_closed:
        if hours.kitchen_opens or hours.kitchen_closes:
            raise ValueError("Kitchen times must be blank when the kitchen is closed")
        hours.kitchen_opens = None
        hours.kitchen_closes = None
        return hours

    if not hours.kitchen_opens and not hours.kitchen_closes:
        # No kitchen service that day
        hours.is_kitchen_closed = True
        return hours

    if not hours.kitchen_opens or not hours.kitchen_closes:
        raise ValueError("Kitchen opening and closing times are both required")

    kitchen_opens = time_to_minutes(hours.kitchen_opens)
    kitchen_closes = closing_minutes(hours.kitchen_closes)
    if kitchen_closes <= kitchen_opens:
        raise ValueError("Kitchen closing time must be after kitchen opening time")
    if kitchen_opens < opens or kitchen_closes > closes:
        raise ValueError("Kitchen hours must sit inside the main business hours")

    return hours
