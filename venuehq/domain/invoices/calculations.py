"""
Invoice arithmetic

Line discounts apply first. The invoice-level discount is then spread over
the lines in proportion to their discounted amounts, and VAT is charged on
what remains of each line.
"""

from calendar import monthrange
from datetime import date, timedelta
from typing import Any

from ...shared.money import round2

INVOICE_NUMBER_OFFSET = 5000
BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def format_invoice_number(sequence: int, prefix: str = "INV") -> str:
    """Prefix (INV by default) followed by base36(sequence + 5000), zero-padded to 5 characters"""
    return f"{prefix}-{to_base36(sequence + INVOICE_NUMBER_OFFSET).zfill(5)}"


def format_quote_number(sequence: int) -> str:
    return format_invoice_number(sequence, prefix="QTE")


def calculate_invoice_totals(line_items: list[dict[str, Any]], invoice_discount_percentage: float = 0) -> dict:
    """
    Totals for a set of line items.

    Args:
        line_items: dicts with quantity, unit_price, discount_percentage and vat_rate
        invoice_discount_percentage: discount applied across the whole invoice

    Returns:
        Dict with per-line amounts under "lines" plus subtotal_amount (after
        line discounts), discount_amount (invoice-level), vat_amount and total_amount
    """
    prepared = []
    for item in line_items:
        gross = float(item["quantity"]) * float(item["unit_price"])
        line_discount = gross * float(item.get("discount_percentage") or 0) / 100
        prepared.append((item, gross, line_discount, gross - line_discount))

    subtotal = sum(after for _, _, _, after in prepared)
    invoice_discount = subtotal * float(invoice_discount_percentage or 0) / 100

    lines = []
    vat_total = 0.0
    for item, gross, line_discount, after in prepared:
        share = after / subtotal if subtotal > 0 else 0
        net = after - invoice_discount * share
        vat = net * float(item.get("vat_rate") or 0) / 100
        vat_total += vat
        lines.append(
            {
                "subtotal_amount": round2(gross),
                "discount_amount": round2(line_discount),
                "vat_amount": round2(vat),
                "total_amount": round2(net + vat),
            }
        )

    return {
        "lines": lines,
        "subtotal_amount": round2(subtotal),
        "discount_amount": round2(invoice_discount),
        "vat_amount": round2(vat_total),
        "total_amount": round2(subtotal - invoice_discount + vat_total),
    }


def add_months(day: date, months: int) -> date:
    """Same day-of-month, clamped to the end of shorter months"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def next_invoice_date(current: date, frequency: str) -> date:
    if frequency == "weekly":
        return current + timedelta(days=7)
    if frequency == "monthly":
        return add_months(current, 1)
    if frequency == "quarterly":
        return add_months(current, 3)
    if frequency == "yearly":
        return add_months(current, 12)
    raise ValueError(f"Unknown frequency: {frequency}")
