"""Venue-local date and time helpers"""

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import VENUE_TIMEZONE

VENUE_TZ = ZoneInfo(VENUE_TIMEZONE)


def now_local() -> datetime:
    """Current wall-clock time at the venue, as a naive datetime"""
    return datetime.now(VENUE_TZ).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()


def time_to_minutes(value: Optional[str]) -> Optional[int]:
    """Convert "HH:MM" to minutes past midnight"""
    if not value:
        return None
    hours, minutes = value[:5].split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    total = total % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def combine(day: date, value: str) -> datetime:
    hours, minutes = value[:5].split(":")
    return datetime.combine(day, time(int(hours), int(minutes)))


def format_time_12h(value: str) -> str:
    """Format "18:30" as "6:30pm" and "12:00" as "12pm"."""
    hours, minutes = (int(part) for part in value[:5].split(":"))
    suffix = "am" if hours < 12 else "pm"
    display_hour = hours % 12 or 12
    if minutes:
        return f"{display_hour}:{minutes:02d}{suffix}"
    return f"{display_hour}{suffix}"


def day_of_week(day: date) -> int:
    """Day of week with Sunday as 0"""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Monday of the week containing day"""
    return day - timedelta(days=day.weekday())
