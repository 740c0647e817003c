"""P&L router - Metric catalog, report and target/actual entry"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import ExpenseTotalUpdate, MetricDefinition, MetricValuesUpdate, PnlReport
from .service import PnlService

router = APIRouter(prefix="/pnl", tags=["P&L"])


def get_pnl_service(db: Session = Depends(get_db)) -> PnlService:
    """Dependency injection for PnlService"""
    return PnlService(db)


@router.get("/metrics", response_model=list[MetricDefinition])
async def get_metric_catalog(
    _user: User = Depends(require_permission("pnl", "view")),
    service: PnlService = Depends(get_pnl_service),
):
    return service.get_catalog()


@router.get("/report", response_model=PnlReport)
async def get_report(
    timeframe: str = Query("1m"),
    _user: User = Depends(require_permission("pnl", "view")),
    service: PnlService = Depends(get_pnl_service),
):
    return service.get_report(timeframe)


@router.get("/targets")
async def get_targets(
    _user: User = Depends(require_permission("pnl", "view")),
    service: PnlService = Depends(get_pnl_service),
):
    return service.get_targets()


@router.put("/targets")
async def update_targets(
    data: MetricValuesUpdate,
    current_user: User = Depends(require_permission("pnl", "manage")),
    service: PnlService = Depends(get_pnl_service),
):
    return service.upsert_targets(data.values, current_user)


@router.get("/actuals/{timeframe}")
async def get_actuals(
    timeframe: str,
    _user: User = Depends(require_permission("pnl", "view")),
    service: PnlService = Depends(get_pnl_service),
):
    return service.get_actuals(timeframe)


@router.put("/actuals/{timeframe}")
async def update_actuals(
    timeframe: str,
    data: MetricValuesUpdate,
    current_user: User = Depends(require_permission("pnl", "edit")),
    service: PnlService = Depends(get_pnl_service),
):
    return service.upsert_actuals(timeframe, data.values, current_user)


@router.put("/expense-totals/{timeframe}")
async def update_expense_total(
    timeframe: str,
    data: ExpenseTotalUpdate,
    current_user: User = Depends(require_permission("pnl", "edit")),
    service: PnlService = Depends(get_pnl_service),
):
    return {"timeframe": timeframe, "value": service.set_expense_total(timeframe, data.value, current_user)}
