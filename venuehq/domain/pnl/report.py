"""
P&L report view model

Builds the grouped P&L report from annual targets, per-timeframe actuals and
the itemised expense total. Pure functions only.
"""

from datetime import datetime
from typing import Optional

from ...shared.money import format_currency, format_percent, round2

TARGET_TIMEFRAME = "12m"

TIMEFRAMES = {
    "1m": {"label": "Last 30 days", "days": 30},
    "3m": {"label": "Last 90 days", "days": 90},
    "12m": {"label": "Last 12 months", "days": 365},
}

GROUP_LABELS = {
    "sales": "Sales",
    "sales_mix": "Sales mix",
    "sales_totals": "Gross profit % targets",
    "expenses": "Expenses",
    "occupancy": "Occupancy costs",
}
GROUP_ORDER = list(GROUP_LABELS)

# type: "manual" values are entered per timeframe, "expense" rows are itemised spend categories
METRICS = [
    {"key": "drinks_sales", "label": "Drinks sales", "group": "sales", "format": "currency", "type": "manual"},
    {"key": "food_sales", "label": "Food sales", "group": "sales", "format": "currency", "type": "manual"},
    {"key": "events_sales", "label": "Events and hire", "group": "sales", "format": "currency", "type": "manual"},
    {"key": "other_income", "label": "Other income", "group": "sales", "format": "currency", "type": "manual"},
    {
        "key": "draught_mix",
        "label": "Draught beer and cider",
        "group": "sales_mix",
        "format": "percent",
        "type": "manual",
        "base": "drinks_sales",
    },
    {
        "key": "spirits_mix",
        "label": "Spirits",
        "group": "sales_mix",
        "format": "percent",
        "type": "manual",
        "base": "drinks_sales",
    },
    {
        "key": "wine_mix",
        "label": "Wine",
        "group": "sales_mix",
        "format": "percent",
        "type": "manual",
        "base": "drinks_sales",
    },
    {
        "key": "sunday_lunch_mix",
        "label": "Sunday lunch",
        "group": "sales_mix",
        "format": "percent",
        "type": "manual",
        "base": "food_sales",
    },
    {
        "key": "drinks_gp",
        "label": "Drinks GP %",
        "group": "sales_totals",
        "format": "percent",
        "type": "manual",
        "base": "drinks_sales",
    },
    {
        "key": "food_gp",
        "label": "Food GP %",
        "group": "sales_totals",
        "format": "percent",
        "type": "manual",
        "base": "food_sales",
    },
    {"key": "staff_costs", "label": "Staff costs", "group": "expenses", "format": "currency", "type": "expense"},
    {"key": "utilities", "label": "Utilities", "group": "expenses", "format": "currency", "type": "expense"},
    {"key": "entertainment", "label": "Entertainment", "group": "expenses", "format": "currency", "type": "expense"},
    {"key": "marketing", "label": "Marketing", "group": "expenses", "format": "currency", "type": "expense"},
    {
        "key": "repairs",
        "label": "Repairs and maintenance",
        "group": "expenses",
        "format": "currency",
        "type": "expense",
    },
    {"key": "rent", "label": "Rent", "group": "occupancy", "format": "currency", "type": "manual"},
    {"key": "business_rates", "label": "Business rates", "group": "occupancy", "format": "currency", "type": "manual"},
    {"key": "insurance", "label": "Insurance", "group": "occupancy", "format": "currency", "type": "manual"},
]
METRIC_KEYS = {metric["key"] for metric in METRICS}


def metric_format(metric: dict) -> str:
    return "currency" if metric["type"] == "expense" else metric.get("format", "currency")


def should_include_metric(metric: dict, annual_target: Optional[float]) -> bool:
    """Percent metrics only appear once they have a target"""
    return metric_format(metric) != "percent" or annual_target is not None


def timeframe_target(fmt: str, timeframe: str, annual_target: Optional[float]) -> Optional[float]:
    if annual_target is None:
        return None
    if fmt == "percent":
        return annual_target
    ratio = TIMEFRAMES[timeframe]["days"] / TIMEFRAMES[TARGET_TIMEFRAME]["days"]
    return round2(annual_target * ratio)


def variance(actual: Optional[float], target: Optional[float]) -> Optional[float]:
    if actual is None or target is None:
        return None
    return round2(actual - target)


def format_metric_value(value: Optional[float], fmt: str = "currency") -> str:
    if fmt == "percent":
        return format_percent(value)
    return format_currency(value)


def _detail_lines(metric: dict, actual: float, target: Optional[float], actuals: dict, targets: dict) -> list[str]:
    base_key = metric.get("base")
    if not base_key:
        return []
    base_actual = actuals.get(base_key, 0.0)
    base_target = targets.get(base_key)

    lines = []
    if metric["group"] == "sales_mix":
        lines.append(f"Actual {format_currency(round2(base_actual * actual / 100))}")
        if base_target is not None and target is not None:
            lines.append(f"P&L Target {format_currency(round2(base_target * target / 100))}")
    elif metric["group"] == "sales_totals":
        gp_actual = round2(base_actual * actual / 100)
        lines.append(
            f"Actual GP {format_currency(gp_actual)} · Cost {format_currency(round2(base_actual - gp_actual))}"
        )
        if base_target is not None and target is not None:
            gp_target = round2(base_target * target / 100)
            lines.append(
                f"P&L Target GP {format_currency(gp_target)} · Cost {format_currency(round2(base_target - gp_target))}"
            )
    return lines


def build_report(
    annual_targets: dict[str, Optional[float]],
    actual_values: dict[str, Optional[float]],
    expense_total: float,
    timeframe: str,
    generated_at: datetime,
    metrics: Optional[list[dict]] = None,
) -> dict:
    """
    Assemble the report sections, subtotals and summary.

    Args:
        annual_targets: {metric_key: annual target or None}
        actual_values: {metric_key: actual for the timeframe or None}
        expense_total: itemised expense total for the timeframe
        timeframe: one of TIMEFRAMES
        generated_at: timestamp shown on the report
    """
    metrics = metrics if metrics is not None else METRICS
    annual = {m["key"]: annual_targets.get(m["key"]) for m in metrics}
    actuals = {m["key"]: actual_values.get(m["key"]) or 0.0 for m in metrics}
    # Itemised spend is only known as a timeframe total
    row_actuals = {m["key"]: None if m["type"] == "expense" else actuals[m["key"]] for m in metrics}
    targets = {m["key"]: timeframe_target(metric_format(m), timeframe, annual[m["key"]]) for m in metrics}

    def total(values: dict, field: str, match: str) -> float:
        return round2(sum(values[m["key"]] or 0 for m in metrics if m[field] == match))

    sections = []
    for group in GROUP_ORDER:
        rows = []
        for metric in metrics:
            if metric["group"] != group or not should_include_metric(metric, annual[metric["key"]]):
                continue
            key = metric["key"]
            fmt = metric_format(metric)
            rows.append(
                {
                    "key": key,
                    "label": metric["label"],
                    "format": fmt,
                    "actual": row_actuals[key],
                    "annual_target": annual[key],
                    "timeframe_target": targets[key],
                    "variance": variance(row_actuals[key], targets[key]),
                    "actual_display": format_metric_value(row_actuals[key], fmt),
                    "target_display": format_metric_value(targets[key], fmt),
                    "detail_lines": _detail_lines(metric, actuals[key], targets[key], actuals, targets),
                }
            )
        sections.append({"key": group, "label": GROUP_LABELS[group], "rows": rows, "subtotal": None})

    sales_actual = total(actuals, "group", "sales")
    sales_target = total(targets, "group", "sales")
    sales_annual = total(annual, "group", "sales")

    expense_actual = round2((expense_total or 0) + total(actuals, "group", "occupancy"))
    expense_target = round2(total(targets, "type", "expense") + total(targets, "group", "occupancy"))
    expense_annual = round2(total(annual, "type", "expense") + total(annual, "group", "occupancy"))

    for section in sections:
        if section["key"] == "sales":
            section["subtotal"] = {
                "label": "Total sales",
                "actual": sales_actual,
                "annual_target": sales_annual,
                "timeframe_target": sales_target,
                "variance": round2(sales_actual - sales_target),
                "invert_variance": False,
            }
        elif section["key"] == "expenses":
            section["subtotal"] = {
                "label": "Total expenses (incl occupancy)",
                "actual": expense_actual,
                "annual_target": expense_annual,
                "timeframe_target": expense_target,
                "variance": round2(expense_actual - expense_target),
                "invert_variance": True,
            }

    profit_actual = round2(sales_actual - expense_actual)
    profit_target = round2(sales_target - expense_target)

    return {
        "timeframe": timeframe,
        "timeframe_label": TIMEFRAMES[timeframe]["label"],
        "generated_at": generated_at,
        "generated_at_label": generated_at.strftime("%d %b %Y %H:%M"),
        "sections": sections,
        "summary": {
            "revenue": {
                "actual": sales_actual,
                "target": sales_target,
                "variance": round2(sales_actual - sales_target),
            },
            "expenses": {
                "actual": expense_actual,
                "target": expense_target,
                "variance": round2(expense_actual - expense_target),
            },
            "operating_profit": {
                "actual": profit_actual,
                "target": profit_target,
                "variance": round2(profit_actual - profit_target),
            },
        },
    }
