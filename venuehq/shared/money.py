"""Money rounding and formatting helpers"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

EMPTY_VALUE = "—"


def round2(value: float) -> float:
    """Round half-up to 2 decimal places"""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return EMPTY_VALUE
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return EMPTY_VALUE
    return f"{value:.1f}%"


def to_pence(value: float) -> int:
    return int((Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_growth(current: float, previous: float) -> float:
    """Percentage change; growth from zero is 100 when anything happened"""
    if not previous:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)
