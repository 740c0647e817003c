"""P&L repository - Database operations for targets, actuals and expense totals"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models_pnl import PnlExpenseTotal, PnlManualActual, PnlTarget


class PnlRepository:
    """Repository for P&L database operations"""

    @staticmethod
    def get_targets(db: Session) -> list[PnlTarget]:
        return db.query(PnlTarget).all()

    @staticmethod
    def get_actuals(db: Session, timeframe: str) -> list[PnlManualActual]:
        return db.query(PnlManualActual).filter(PnlManualActual.timeframe == timeframe).all()

    @staticmethod
    def get_expense_total(db: Session, timeframe: str) -> Optional[PnlExpenseTotal]:
        return db.query(PnlExpenseTotal).filter(PnlExpenseTotal.timeframe == timeframe).first()

    @staticmethod
    def upsert_targets(db: Session, values: dict[str, Optional[float]]) -> None:
        existing = {row.metric_key: row for row in PnlRepository.get_targets(db)}
        for metric_key, value in values.items():
            row = existing.get(metric_key) or PnlTarget(metric_key=metric_key)
            row.annual_target = value
            db.add(row)
        db.commit()

    @staticmethod
    def upsert_actuals(db: Session, timeframe: str, values: dict[str, Optional[float]]) -> None:
        existing = {row.metric_key: row for row in PnlRepository.get_actuals(db, timeframe)}
        for metric_key, value in values.items():
            row = existing.get(metric_key) or PnlManualActual(metric_key=metric_key, timeframe=timeframe)
            row.value = value
            db.add(row)
        db.commit()

    @staticmethod
    def set_expense_total(db: Session, timeframe: str, value: float) -> PnlExpenseTotal:
        row = PnlRepository.get_expense_total(db, timeframe) or PnlExpenseTotal(timeframe=timeframe)
        row.value = value
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
