"""
Loyalty programme configuration

Tiers, point rules, milestones, achievements and redemption-code rules,
plus the pure functions that apply them.
"""

import secrets
from collections import Counter
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

PROGRAM_NAME = "VIP Club"
WELCOME_BONUS = 50
BASE_ATTENDANCE_POINTS = 50

EVENT_MULTIPLIERS = {
    "quiz": 1,
    "bingo": 1,
    "karaoke": 1.2,
    "gameshow": 1,
    "drag": 1.5,
    "tasting": 2,
    "special": 2,
}
EVENT_TYPES = tuple(EVENT_MULTIPLIERS)

# Ordered lowest to highest
TIERS = {
    "member": {"name": "VIP Member", "min_events": 0, "multiplier": 1},
    "bronze": {"name": "Bronze VIP", "min_events": 5, "multiplier": 2},
    "silver": {"name": "Silver VIP", "min_events": 10, "multiplier": 3},
    "gold": {"name": "Gold VIP", "min_events": 20, "multiplier": 4},
    "platinum": {"name": "Platinum VIP", "min_events": 40, "multiplier": 6},
}
TIER_ORDER = list(TIERS)

MILESTONE_BONUSES = {10: 100, 25: 250, 50: 500, 100: 1000}

ACHIEVEMENTS = [
    {
        "key": "first_timer",
        "name": "First Timer",
        "description": "Attend your first event",
        "points_value": 25,
        "criteria": {"type": "attendance_count", "value": 1},
    },
    {
        "key": "the_regular",
        "name": "The Regular",
        "description": "Attend 10 events",
        "points_value": 100,
        "criteria": {"type": "attendance_count", "value": 10},
    },
    {
        "key": "fifty_club",
        "name": "50 Club",
        "description": "Attend 50 events",
        "points_value": 500,
        "criteria": {"type": "attendance_count", "value": 50},
    },
    {
        "key": "centurion",
        "name": "Centurion",
        "description": "Attend 100 events",
        "points_value": 1000,
        "criteria": {"type": "attendance_count", "value": 100},
    },
    {
        "key": "week_warrior",
        "name": "Week Warrior",
        "description": "Attend 4 events in one month",
        "points_value": 100,
        "criteria": {"type": "monthly_attendance", "value": 4},
    },
    {
        "key": "hot_streak",
        "name": "Hot Streak",
        "description": "Attend in 3 consecutive months",
        "points_value": 150,
        "criteria": {"type": "consecutive_months", "value": 3},
    },
    {
        "key": "year_of_loyalty",
        "name": "Year of Loyalty",
        "description": "Attend at least once a month for a year",
        "points_value": 500,
        "criteria": {"type": "consecutive_months", "value": 12},
    },
    {
        "key": "quiz_master",
        "name": "Quiz Master",
        "description": "Attend 5 quiz nights",
        "points_value": 100,
        "criteria": {"type": "event_type_count", "event_type": "quiz", "value": 5},
    },
    {
        "key": "bingo_regular",
        "name": "Bingo Regular",
        "description": "Attend 5 bingo nights",
        "points_value": 100,
        "criteria": {"type": "event_type_count", "event_type": "bingo", "value": 5},
    },
    {
        "key": "karaoke_star",
        "name": "Karaoke Star",
        "description": "Attend karaoke 3 times",
        "points_value": 75,
        "criteria": {"type": "event_type_count", "event_type": "karaoke", "value": 3},
    },
    {
        "key": "drag_enthusiast",
        "name": "Drag Enthusiast",
        "description": "Attend 3 drag shows",
        "points_value": 100,
        "criteria": {"type": "event_type_count", "event_type": "drag", "value": 3},
    },
    {
        "key": "event_explorer",
        "name": "Event Explorer",
        "description": "Try 5 different event types",
        "points_value": 150,
        "criteria": {"type": "unique_event_types", "value": 5},
    },
    {
        "key": "festive_spirit",
        "name": "Festive Spirit",
        "description": "Attend 3 December events",
        "points_value": 100,
        "criteria": {"type": "monthly_attendance", "month": 12, "value": 3},
    },
    {
        "key": "summer_sensation",
        "name": "Summer Sensation",
        "description": "Attend 5 events between June and August",
        "points_value": 100,
        "criteria": {"type": "seasonal_attendance", "months": [6, 7, 8], "value": 5},
    },
    {
        "key": "birthday_celebrant",
        "name": "Birthday Celebrant",
        "description": "Attend an event on your birthday",
        "points_value": 100,
        "criteria": {"type": "birthday_attendance"},
    },
]

DEFAULT_REWARDS = [
    {"name": "House Snack", "description": "Any starter or bar snack", "category": "food", "points_cost": 300},
    {"name": "House Drink", "description": "Any house beer, wine or soft drink", "category": "drink", "points_cost": 400},
    {
        "name": "Premium Drink",
        "description": "Any premium spirit or cocktail",
        "category": "drink",
        "points_cost": 600,
        "tier_required": "bronze",
    },
    {"name": "Any Dessert", "description": "Choose from our dessert menu", "category": "dessert", "points_cost": 400},
    {
        "name": "Reserved Table",
        "description": "Guaranteed table for your party",
        "category": "experience",
        "points_cost": 500,
        "tier_required": "bronze",
    },
    {"name": "£5 Credit", "description": "Applied to your bill", "category": "credit", "points_cost": 500},
    {
        "name": "Host Your Own Theme Night",
        "description": "Work with us to create your event",
        "category": "special",
        "points_cost": 5000,
        "tier_required": "platinum",
    },
]

CODE_PREFIXES = {
    "food": "FUD",
    "drink": "DRK",
    "dessert": "DES",
    "experience": "EXP",
    "credit": "CRD",
    "special": "SPL",
}
REWARD_CATEGORIES = tuple(CODE_PREFIXES)
CODE_EXPIRY_MINUTES = 5
DAILY_LIMIT_PER_MEMBER = 3
DAILY_LIMIT_PER_REWARD = 10
MINIMUM_REDEMPTION_BALANCE = 100


def tier_for_events(lifetime_events: int) -> str:
    tier = TIER_ORDER[0]
    for key in TIER_ORDER:
        if lifetime_events >= TIERS[key]["min_events"]:
            tier = key
    return tier


def tier_rank(tier: Optional[str]) -> int:
    return TIER_ORDER.index(tier) if tier in TIERS else 0


def tier_meets(tier: str, required: Optional[str]) -> bool:
    return not required or tier_rank(tier) >= tier_rank(required)


def next_tier(tier: str) -> Optional[str]:
    rank = tier_rank(tier)
    return TIER_ORDER[rank + 1] if rank + 1 < len(TIER_ORDER) else None


def calculate_event_points(tier: str, event_type: str) -> int:
    """round(base x tier multiplier x event multiplier), halves rounding up"""
    raw = (
        Decimal(BASE_ATTENDANCE_POINTS)
        * Decimal(str(TIERS.get(tier, TIERS["member"])["multiplier"]))
        * Decimal(str(EVENT_MULTIPLIERS.get(event_type, 1)))
    )
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def milestone_bonus(lifetime_events: int) -> int:
    return MILESTONE_BONUSES.get(lifetime_events, 0)


def generate_redemption_code(category: str) -> str:
    """Category prefix plus four random digits, e.g. DRK0427"""
    prefix = CODE_PREFIXES.get(category, CODE_PREFIXES["special"])
    return f"{prefix}{secrets.randbelow(10000):04d}"


def build_attendance_stats(attendance: list[tuple[date, str]], date_of_birth: Optional[date] = None) -> dict:
    """
    Summarise a member's check-ins for achievement checks.

    Args:
        attendance: (event_date, event_type) for every check-in
        date_of_birth: the member's birthday, if known
    """
    by_month = Counter((d.year, d.month) for d, _ in attendance)
    by_type = Counter(event_type for _, event_type in attendance)

    longest_run = 0
    run = 0
    previous = None
    for year, month in sorted(by_month):
        index = year * 12 + month
        run = run + 1 if previous is not None and index == previous + 1 else 1
        longest_run = max(longest_run, run)
        previous = index

    birthday_attended = bool(date_of_birth) and any(
        d.month == date_of_birth.month and d.day == date_of_birth.day for d, _ in attendance
    )

    return {
        "total": len(attendance),
        "by_month": by_month,
        "by_type": by_type,
        "consecutive_months": longest_run,
        "birthday_attended": birthday_attended,
    }


def achievement_met(criteria: dict, stats: dict) -> bool:
    kind = criteria.get("type")
    value = criteria.get("value", 0)

    if kind == "attendance_count":
        return stats["total"] >= value
    if kind == "monthly_attendance":
        month = criteria.get("month")
        return any(
            count >= value for (_, m), count in stats["by_month"].items() if month is None or m == month
        )
    if kind == "consecutive_months":
        return stats["consecutive_months"] >= value
    if kind == "event_type_count":
        return stats["by_type"].get(criteria.get("event_type"), 0) >= value
    if kind == "unique_event_types":
        return len(stats["by_type"]) >= value
    if kind == "seasonal_attendance":
        months = set(criteria.get("months", []))
        per_year = Counter()
        for (year, m), count in stats["by_month"].items():
            if m in months:
                per_year[year] += count
        return any(count >= value for count in per_year.values())
    if kind == "birthday_attendance":
        return stats["birthday_attended"]
    return False
