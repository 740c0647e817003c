"""Click tracking helpers - user agent classification and time bucketing"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

BOT_PATTERN = re.compile(r"bot|crawl|spider|slurp|facebookexternalhit|whatsapp|preview|curl|wget|python-requests", re.I)
TABLET_PATTERN = re.compile(r"ipad|tablet|kindle|silk|playbook|(android(?!.*mobile))", re.I)
MOBILE_PATTERN = re.compile(r"mobi|iphone|ipod|android|blackberry|opera mini|iemobile", re.I)

# Checked in order: Edge and Opera also carry "Chrome", Chrome also carries "Safari"
BROWSERS = [
    ("Edge", re.compile(r"edg(e|a|ios)?/", re.I)),
    ("Opera", re.compile(r"opr/|opera", re.I)),
    ("Samsung Internet", re.compile(r"samsungbrowser", re.I)),
    ("Firefox", re.compile(r"firefox|fxios", re.I)),
    ("Chrome", re.compile(r"chrome|crios|chromium", re.I)),
    ("Safari", re.compile(r"safari", re.I)),
]

PERIODS = ("hour", "day", "week", "month")


def parse_device_type(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "unknown"
    if BOT_PATTERN.search(user_agent):
        return "bot"
    if TABLET_PATTERN.search(user_agent):
        return "tablet"
    if MOBILE_PATTERN.search(user_agent):
        return "mobile"
    return "desktop"


def parse_browser(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "Unknown"
    for name, pattern in BROWSERS:
        if pattern.search(user_agent):
            return name
    return "Other"


def bucket_start(value: datetime, period: str) -> datetime:
    if period == "hour":
        return value.replace(minute=0, second=0, microsecond=0)
    day = value.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        return day
    if period == "week":
        return day - timedelta(days=day.weekday())
    if period == "month":
        return day.replace(day=1)
    raise ValueError(f"Period must be one of: {', '.join(PERIODS)}")


def daily_series(clicks: list[datetime], start: date, end: date) -> list[dict]:
    """Click counts per day from start to end inclusive, zero-filled"""
    counts: dict[date, int] = {}
    for clicked_at in clicks:
        counts[clicked_at.date()] = counts.get(clicked_at.date(), 0) + 1

    series = []
    day = start
    while day <= end:
        series.append({"date": day, "clicks": counts.get(day, 0)})
        day += timedelta(days=1)
    return series


def breakdown(values: list[Optional[str]]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for value in values:
        key = value or "unknown"
        counts[key] = counts.get(key, 0) + 1
    return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))
