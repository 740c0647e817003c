"""P&L service - Targets, manual actuals, expense totals and the report"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import User
from ...shared.dates import now_local
from .report import METRICS, TIMEFRAMES, build_report
from .repository import PnlRepository
from .schemas import MetricValue

logger = logging.getLogger(__name__)

EXPENSE_METRIC_KEYS = {metric["key"] for metric in METRICS if metric["type"] == "expense"}


def validate_timeframe(timeframe: str) -> str:
    if timeframe not in TIMEFRAMES:
        raise HTTPException(status_code=400, detail=f"Timeframe must be one of: {', '.join(TIMEFRAMES)}")
    return timeframe


class PnlService:
    """Service layer for the P&L dashboard"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PnlRepository()

    def get_catalog(self) -> list[dict]:
        return METRICS

    def get_targets(self) -> dict:
        return {row.metric_key: row.annual_target for row in self.repo.get_targets(self.db)}

    def get_actuals(self, timeframe: str) -> dict:
        validate_timeframe(timeframe)
        return {row.metric_key: row.value for row in self.repo.get_actuals(self.db, timeframe)}

    def get_expense_total(self, timeframe: str) -> float:
        validate_timeframe(timeframe)
        row = self.repo.get_expense_total(self.db, timeframe)
        return row.value if row else 0.0

    def get_report(self, timeframe: str) -> dict:
        validate_timeframe(timeframe)
        expense_total = self.get_expense_total(timeframe)
        report = build_report(
            self.get_targets(),
            self.get_actuals(timeframe),
            expense_total,
            timeframe,
            now_local(),
        )
        report["expense_total"] = expense_total
        return report

    def upsert_targets(self, values: list[MetricValue], user: User) -> dict:
        self.repo.upsert_targets(self.db, {item.metric_key: item.value for item in values})
        log_audit_event(self.db, user, "update", "pnl_targets", details={"metrics": [v.metric_key for v in values]})
        logger.info(f"🎯 Updated {len(values)} P&L target(s)")
        return self.get_targets()

    def upsert_actuals(self, timeframe: str, values: list[MetricValue], user: User) -> dict:
        validate_timeframe(timeframe)
        itemised = sorted({item.metric_key for item in values} & EXPENSE_METRIC_KEYS)
        if itemised:
            raise HTTPException(
                status_code=400,
                detail=f"Expense actuals are recorded as an expense total, not per metric: {', '.join(itemised)}",
            )

        self.repo.upsert_actuals(self.db, timeframe, {item.metric_key: item.value for item in values})
        log_audit_event(
            self.db,
            user,
            "update",
            "pnl_actuals",
            details={"timeframe": timeframe, "metrics": [v.metric_key for v in values]},
        )
        logger.info(f"📊 Updated {len(values)} P&L actual(s) for {timeframe}")
        return self.get_actuals(timeframe)

    def set_expense_total(self, timeframe: str, value: float, user: User) -> float:
        validate_timeframe(timeframe)
        row = self.repo.set_expense_total(self.db, timeframe, value)
        log_audit_event(
            self.db, user, "update", "pnl_expense_total", details={"timeframe": timeframe, "value": value}
        )
        return row.value
