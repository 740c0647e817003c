"""P&L domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .report import METRIC_KEYS


class MetricDefinition(BaseModel):
    key: str
    label: str
    group: str
    format: str
    type: str
    base: Optional[str] = None


class MetricValue(BaseModel):
    metric_key: str
    value: Optional[float] = None

    @field_validator("metric_key")
    @classmethod
    def validate_metric(cls, v):
        if v not in METRIC_KEYS:
            raise ValueError(f"Unknown metric: {v}")
        return v


class MetricValuesUpdate(BaseModel):
    values: list[MetricValue]


class ExpenseTotalUpdate(BaseModel):
    value: float

    @field_validator("value")
    @classmethod
    def validate_value(cls, v):
        if v < 0:
            raise ValueError("Expense total cannot be negative")
        return v


class ReportRow(BaseModel):
    key: str
    label: str
    format: str
    actual: Optional[float] = None
    annual_target: Optional[float] = None
    timeframe_target: Optional[float] = None
    variance: Optional[float] = None
    actual_display: str
    target_display: str
    detail_lines: list[str]


class ReportSubtotal(BaseModel):
    label: str
    actual: float
    annual_target: Optional[float] = None
    timeframe_target: Optional[float] = None
    variance: Optional[float] = None
    invert_variance: bool


class ReportSection(BaseModel):
    key: str
    label: str
    rows: list[ReportRow]
    subtotal: Optional[ReportSubtotal] = None


class SummaryFigure(BaseModel):
    actual: float
    target: float
    variance: float


class ReportSummary(BaseModel):
    revenue: SummaryFigure
    expenses: SummaryFigure
    operating_profit: SummaryFigure


class PnlReport(BaseModel):
    timeframe: str
    timeframe_label: str
    generated_at: datetime
    generated_at_label: str
    sections: list[ReportSection]
    summary: ReportSummary
    expense_total: float
