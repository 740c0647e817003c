"""
P&L Models
Annual targets, manual actuals per timeframe and expense totals
"""

from sqlalchemy import Column, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base


class PnlTarget(Base):
    __tablename__ = "pnl_targets"

    id = Column(Integer, primary_key=True, index=True)
    metric_key = Column(String(50), unique=True, nullable=False)
    annual_target = Column(Float, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class PnlManualActual(Base):
    __tablename__ = "pnl_manual_actuals"
    __table_args__ = (UniqueConstraint("metric_key", "timeframe", name="uq_pnl_manual_actual"),)

    id = Column(Integer, primary_key=True, index=True)
    metric_key = Column(String(50), nullable=False)
    timeframe = Column(String(5), nullable=False)  # 1m, 3m, 12m
    value = Column(Float, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class PnlExpenseTotal(Base):
    """Total of itemised expenses for a timeframe"""

    __tablename__ = "pnl_expense_totals"

    id = Column(Integer, primary_key=True, index=True)
    timeframe = Column(String(5), unique=True, nullable=False)
    value = Column(Float, default=0, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
