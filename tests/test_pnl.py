from datetime import datetime

import pytest
from fastapi import HTTPException

from venuehq.domain.pnl.report import build_report, should_include_metric, timeframe_target
from venuehq.domain.pnl.schemas import MetricValue
from venuehq.domain.pnl.service import PnlService, validate_timeframe

from .conftest import auth_headers

GENERATED_AT = datetime(2026, 10, 17, 9, 30)

TARGETS = {
    "drinks_sales": 365000,
    "food_sales": 182500,
    "rent": 36500,
    "staff_costs": 73000,
    "food_gp": 65,
}
ACTUALS = {"drinks_sales": 32000, "food_sales": 14000, "rent": 3000, "food_gp": 60}


def section(report, key):
    return next(s for s in report["sections"] if s["key"] == key)


def test_currency_targets_are_prorated_and_percentages_are_not():
    assert timeframe_target("currency", "1m", 365000) == 30000.0
    assert timeframe_target("currency", "3m", 36500) == 9000.0
    assert timeframe_target("percent", "1m", 65) == 65
    assert timeframe_target("currency", "1m", None) is None


def test_percent_metrics_need_a_target():
    metric = {"key": "wine_mix", "group": "sales_mix", "format": "percent", "type": "manual"}
    assert should_include_metric(metric, None) is False
    assert should_include_metric(metric, 12.5) is True
    assert should_include_metric({"key": "rent", "group": "occupancy", "type": "manual"}, None) is True


def test_report_subtotals_and_summary():
    report = build_report(TARGETS, ACTUALS, 7000, "1m", GENERATED_AT)

    assert report["timeframe_label"] == "Last 30 days"
    assert report["generated_at_label"] == "17 Oct 2026 09:30"
    assert [s["key"] for s in report["sections"]] == [
        "sales",
        "sales_mix",
        "sales_totals",
        "expenses",
        "occupancy",
    ]

    sales = section(report, "sales")
    assert sales["subtotal"]["actual"] == 46000
    assert sales["subtotal"]["timeframe_target"] == 45000
    assert sales["subtotal"]["variance"] == 1000
    assert sales["rows"][0]["actual_display"] == "£32,000.00"

    # Occupancy actuals count towards expenses, and under-spend is the good direction
    expenses = section(report, "expenses")["subtotal"]
    assert expenses["label"] == "Total expenses (incl occupancy)"
    assert expenses["actual"] == 10000
    assert expenses["timeframe_target"] == 9000
    assert expenses["annual_target"] == 109500
    assert expenses["variance"] == 1000
    assert expenses["invert_variance"] is True

    assert report["summary"] == {
        "revenue": {"actual": 46000, "target": 45000, "variance": 1000},
        "expenses": {"actual": 10000, "target": 9000, "variance": 1000},
        "operating_profit": {"actual": 36000, "target": 36000, "variance": 0},
    }


def test_gp_rows_show_profit_and_cost_lines():
    report = build_report(TARGETS, ACTUALS, 7000, "1m", GENERATED_AT)

    assert section(report, "sales_mix")["rows"] == []
    [food_gp] = section(report, "sales_totals")["rows"]
    assert food_gp["key"] == "food_gp"
    assert food_gp["actual_display"] == "60.0%"
    assert food_gp["variance"] == -5
    assert food_gp["detail_lines"] == [
        "Actual GP £8,400.00 · Cost £5,600.00",
        "P&L Target GP £9,750.00 · Cost £5,250.00",
    ]


def test_empty_report_has_blank_targets():
    report = build_report({}, {}, 0, "12m", GENERATED_AT)
    rent = next(r for r in section(report, "occupancy")["rows"] if r["key"] == "rent")
    assert rent["actual"] == 0.0
    assert rent["variance"] is None
    assert rent["target_display"] == "—"
    assert report["summary"]["operating_profit"]["actual"] == 0


def test_unknown_timeframe_is_rejected():
    with pytest.raises(HTTPException) as exc:
        validate_timeframe("2w")
    assert exc.value.detail == "Timeframe must be one of: 1m, 3m, 12m"


def test_pnl_api_round_trip(client, admin_headers):
    targets = client.put(
        "/pnl/targets",
        json={"values": [{"metric_key": k, "value": v} for k, v in TARGETS.items()]},
        headers=admin_headers,
    )
    assert targets.status_code == 200
    assert targets.json()["food_gp"] == 65

    actuals = client.put(
        "/pnl/actuals/1m",
        json={"values": [{"metric_key": k, "value": v} for k, v in ACTUALS.items()]},
        headers=admin_headers,
    )
    assert actuals.json()["drinks_sales"] == 32000

    expense = client.put("/pnl/expense-totals/1m", json={"value": 7000}, headers=admin_headers)
    assert expense.json() == {"timeframe": "1m", "value": 7000}

    report = client.get("/pnl/report", params={"timeframe": "1m"}, headers=admin_headers).json()
    assert report["expense_total"] == 7000
    assert report["summary"]["operating_profit"]["actual"] == 36000

    assert client.get("/pnl/report", params={"timeframe": "2w"}, headers=admin_headers).status_code == 400


def test_unknown_metric_is_a_validation_error(client, admin_headers):
    response = client.put(
        "/pnl/targets", json={"values": [{"metric_key": "beer_garden", "value": 1}]}, headers=admin_headers
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["message"] == "Unknown metric: beer_garden"


def test_viewer_cannot_change_targets(client, make_user):
    viewer = make_user(permissions=[("pnl", "view")])
    headers = auth_headers(viewer)
    assert client.get("/pnl/metrics", headers=headers).status_code == 200
    assert client.put("/pnl/targets", json={"values": []}, headers=headers).status_code == 403


def test_expense_variance_has_one_sign_across_the_report():
    report = build_report({"staff_costs": 109500}, {}, 10000, "12m", GENERATED_AT)
    subtotal = section(report, "expenses")["subtotal"]
    assert subtotal["variance"] == -99500
    assert subtotal["variance"] == report["summary"]["expenses"]["variance"]


def test_expense_rows_show_targets_only():
    report = build_report(TARGETS, {**ACTUALS, "staff_costs": 4000}, 7000, "1m", GENERATED_AT)
    [staff] = [r for r in section(report, "expenses")["rows"] if r["key"] == "staff_costs"]
    assert staff["actual"] is None
    assert staff["actual_display"] == "—"
    assert staff["variance"] is None
    assert staff["timeframe_target"] == 6000
    assert section(report, "expenses")["subtotal"]["actual"] == 10000


def test_itemised_expense_actuals_are_rejected(db, admin):
    service = PnlService(db)
    with pytest.raises(HTTPException) as exc:
        service.upsert_actuals(
            "1m", [MetricValue(metric_key="rent", value=3000), MetricValue(metric_key="utilities", value=900)], admin
        )
    assert exc.value.status_code == 400
    assert exc.value.detail == "Expense actuals are recorded as an expense total, not per metric: utilities"
    assert service.get_actuals("1m") == {}

    assert service.upsert_actuals("1m", [MetricValue(metric_key="rent", value=3000)], admin) == {"rent": 3000}
    assert service.set_expense_total("1m", 900, admin) == 900
    assert service.get_report("1m")["sections"][3]["subtotal"]["actual"] == 3900
