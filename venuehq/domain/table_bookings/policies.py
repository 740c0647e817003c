"""
Booking policy rules

Advance-notice windows, party size limits, the Sunday lunch ordering
cutoff and refund entitlement on cancellation.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from ...shared.money import round2

SUNDAY_LUNCH = "sunday_lunch"
REGULAR = "regular"
BOOKING_TYPES = (REGULAR, SUNDAY_LUNCH)

SUNDAY_LUNCH_CUTOFF_MESSAGE = "Sunday lunch bookings must be made before 1pm on Saturday"

DEFAULT_POLICIES = {
    REGULAR: {
        "full_refund_hours": 2,
        "partial_refund_hours": 0,
        "partial_refund_percentage": 0,
        "modification_allowed": True,
        "cancellation_fee": 0,
        "max_party_size": 20,
        "min_advance_hours": 2,
        "max_advance_days": 56,
    },
    SUNDAY_LUNCH: {
        "full_refund_hours": 48,
        "partial_refund_hours": 24,
        "partial_refund_percentage": 50,
        "modification_allowed": True,
        "cancellation_fee": 0,
        "max_party_size": 20,
        "min_advance_hours": 20,
        "max_advance_days": 56,
    },
}


@dataclass
class PolicyViolation:
    code: str  # min_advance, max_advance, party_size, sunday_cutoff
    message: str


# Violations staff may override when taking a booking by phone or in person
STAFF_OVERRIDABLE = {"min_advance", "sunday_cutoff"}


def sunday_lunch_cutoff(booking_date: date) -> datetime:
    """1pm on the Saturday before the Sunday"""
    return datetime.combine(booking_date - timedelta(days=1), time(13, 0))


def sunday_lunch_cutoff_passed(booking_date: date, now: datetime) -> bool:
    if booking_date.weekday() != 6:
        return False
    return now >= sunday_lunch_cutoff(booking_date)


def validate_booking_against_policy(
    policy,
    booking_date: date,
    booking_time: str,
    party_size: int,
    booking_type: str,
    now: datetime,
) -> list[PolicyViolation]:
    """Every rule the booking breaks, in a stable order"""
    violations = []
    booking_at = datetime.combine(booking_date, time(int(booking_time[:2]), int(booking_time[3:5])))
    hours_until = (booking_at - now).total_seconds() / 3600

    if hours_until < policy.min_advance_hours:
        violations.append(
            PolicyViolation(
                "min_advance", f"Bookings must be made at least {policy.min_advance_hours} hours in advance"
            )
        )

    if (booking_date - now.date()).days > policy.max_advance_days:
        violations.append(
            PolicyViolation(
                "max_advance", f"Bookings cannot be made more than {policy.max_advance_days} days in advance"
            )
        )

    if party_size > policy.max_party_size:
        violations.append(PolicyViolation("party_size", f"Maximum party size is {policy.max_party_size}"))

    if booking_type == SUNDAY_LUNCH and sunday_lunch_cutoff_passed(booking_date, now):
        violations.append(PolicyViolation("sunday_cutoff", SUNDAY_LUNCH_CUTOFF_MESSAGE))

    return violations


def calculate_refund(
    policy,
    booking_date: date,
    booking_time: str,
    paid_amount: float,
    now: datetime,
) -> tuple[float, int, str]:
    """
    Refund owed on cancellation.

    Returns:
        Tuple of (refund_amount, refund_percentage, reason)
    """
    booking_at = datetime.combine(booking_date, time(int(booking_time[:2]), int(booking_time[3:5])))
    hours_until = (booking_at - now).total_seconds() / 3600

    if hours_until >= policy.full_refund_hours:
        percentage = 100
        reason = "Full refund - cancelled with sufficient notice"
    elif policy.partial_refund_percentage and hours_until >= policy.partial_refund_hours:
        percentage = policy.partial_refund_percentage
        reason = f"{percentage}% refund - cancelled with {int(hours_until)} hours notice"
    else:
        return 0.0, 0, "No refund - insufficient cancellation notice"

    amount = max(0.0, paid_amount * percentage / 100 - (policy.cancellation_fee or 0))
    return round2(amount), percentage, reason


def policy_or_default(policy, booking_type: str):
    """Stored policy, else an object with the built-in defaults"""
    if policy is not None:
        return policy
    defaults = DEFAULT_POLICIES.get(booking_type, DEFAULT_POLICIES[REGULAR])
    return _DefaultPolicy(booking_type=booking_type, **defaults)


@dataclass
class _DefaultPolicy:
    booking_type: str
    full_refund_hours: int
    partial_refund_hours: int
    partial_refund_percentage: int
    modification_allowed: bool
    cancellation_fee: float
    max_party_size: int
    min_advance_hours: int
    max_advance_days: int
    id: Optional[int] = None
