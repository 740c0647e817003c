"""Rota router - Employees, pay rates, rota weeks, shifts, timeclock and payroll"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import (
    BandRateResponse,
    ClockRequest,
    EmployeeBase,
    EmployeeResponse,
    EmployeeUpdate,
    PayAgeBandBase,
    PayAgeBandResponse,
    PayrollApprovalResponse,
    PayrollMonthResponse,
    PayrollPeriodUpdate,
    PublishResult,
    RateCreate,
    RateOverrideResponse,
    RotaWeekResponse,
    ShiftBase,
    ShiftResponse,
    ShiftUpdate,
    TimeclockSessionResponse,
)
from .service import RotaService

router = APIRouter(prefix="/rota", tags=["Rota"])


def get_rota_service(db: Session = Depends(get_db)) -> RotaService:
    """Dependency injection for RotaService"""
    return RotaService(db)


# ============================================================================
# EMPLOYEES
# ============================================================================


@router.get("/employees", response_model=list[EmployeeResponse])
async def list_employees(
    status: Optional[str] = Query("active"),
    _user: User = Depends(require_permission("rota", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.list_employees(status or None)


@router.post("/employees", response_model=EmployeeResponse, status_code=201)
async def create_employee(
    data: EmployeeBase,
    current_user: User = Depends(require_permission("rota", "create")),
    service: RotaService = Depends(get_rota_service),
):
    return service.create_employee(data, current_user)


@router.get("/employees/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: int,
    _user: User = Depends(require_permission("rota", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.get_employee(employee_id)


@router.put("/employees/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: int,
    data: EmployeeUpdate,
    current_user: User = Depends(require_permission("rota", "edit")),
    service: RotaService = Depends(get_rota_service),
):
    return service.update_employee(employee_id, data, current_user)


@router.delete("/employees/{employee_id}", response_model=EmployeeResponse)
async def delete_employee(
    employee_id: int,
    current_user: User = Depends(require_permission("rota", "delete")),
    service: RotaService = Depends(get_rota_service),
):
    return service.delete_employee(employee_id, current_user)


@router.get("/employees/{employee_id}/rate-overrides", response_model=list[RateOverrideResponse])
async def list_rate_overrides(
    employee_id: int,
    _user: User = Depends(require_permission("payroll", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.list_overrides(employee_id)


@router.post("/employees/{employee_id}/rate-overrides", response_model=RateOverrideResponse, status_code=201)
async def add_rate_override(
    employee_id: int,
    data: RateCreate,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    return service.add_override(employee_id, data, current_user)


@router.delete("/rate-overrides/{override_id}")
async def delete_rate_override(
    override_id: int,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    service.delete_override(override_id, current_user)
    return {"success": True}


@router.get("/employees/{employee_id}/hourly-rate")
async def get_hourly_rate(
    employee_id: int,
    on: date,
    _user: User = Depends(require_permission("payroll", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return {"employee_id": employee_id, "date": on, "hourly_rate": service.get_hourly_rate(employee_id, on)}


# ============================================================================
# PAY BANDS
# ============================================================================


@router.get("/pay-bands", response_model=list[PayAgeBandResponse])
async def list_pay_bands(
    _user: User = Depends(require_permission("payroll", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.list_bands()


@router.post("/pay-bands", response_model=PayAgeBandResponse, status_code=201)
async def create_pay_band(
    data: PayAgeBandBase,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    return service.create_band(data, current_user)


@router.put("/pay-bands/{band_id}", response_model=PayAgeBandResponse)
async def update_pay_band(
    band_id: int,
    data: PayAgeBandBase,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    return service.update_band(band_id, data, current_user)


@router.get("/pay-bands/{band_id}/rates", response_model=list[BandRateResponse])
async def list_band_rates(
    band_id: int,
    _user: User = Depends(require_permission("payroll", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.list_band_rates(band_id)


@router.post("/pay-bands/{band_id}/rates", response_model=BandRateResponse, status_code=201)
async def add_band_rate(
    band_id: int,
    data: RateCreate,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    return service.add_band_rate(band_id, data, current_user)


# ============================================================================
# ROTA WEEKS AND SHIFTS
# ============================================================================


@router.get("/weeks", response_model=RotaWeekResponse)
async def get_or_create_week(
    week_start: date,
    _user: User = Depends(require_permission("rota", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.get_or_create_week(week_start)


@router.get("/weeks/{week_id}", response_model=RotaWeekResponse)
async def get_week(
    week_id: int,
    _user: User = Depends(require_permission("rota", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.get_week(week_id)


@router.post("/weeks/{week_id}/publish", response_model=PublishResult)
async def publish_week(
    week_id: int,
    current_user: User = Depends(require_permission("rota", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    return await service.publish_week(week_id, current_user)


@router.post("/weeks/{week_id}/shifts", response_model=ShiftResponse, status_code=201)
async def create_shift(
    week_id: int,
    data: ShiftBase,
    current_user: User = Depends(require_permission("rota", "create")),
    service: RotaService = Depends(get_rota_service),
):
    return service.create_shift(week_id, data, current_user)


@router.put("/shifts/{shift_id}", response_model=ShiftResponse)
async def update_shift(
    shift_id: int,
    data: ShiftUpdate,
    current_user: User = Depends(require_permission("rota", "edit")),
    service: RotaService = Depends(get_rota_service),
):
    return service.update_shift(shift_id, data, current_user)


@router.post("/shifts/{shift_id}/sick", response_model=ShiftResponse)
async def mark_shift_sick(
    shift_id: int,
    current_user: User = Depends(require_permission("rota", "edit")),
    service: RotaService = Depends(get_rota_service),
):
    return service.mark_sick(shift_id, current_user)


@router.delete("/shifts/{shift_id}")
async def delete_shift(
    shift_id: int,
    current_user: User = Depends(require_permission("rota", "delete")),
    service: RotaService = Depends(get_rota_service),
):
    service.delete_shift(shift_id, current_user)
    return {"success": True}


# ============================================================================
# TIMECLOCK
# ============================================================================


@router.post("/timeclock/clock-in", response_model=TimeclockSessionResponse, status_code=201)
async def clock_in(
    data: ClockRequest,
    _user: User = Depends(require_permission("rota", "edit")),
    service: RotaService = Depends(get_rota_service),
):
    return service.clock_in(data.employee_id, data.notes)


@router.post("/timeclock/clock-out", response_model=TimeclockSessionResponse)
async def clock_out(
    data: ClockRequest,
    _user: User = Depends(require_permission("rota", "edit")),
    service: RotaService = Depends(get_rota_service),
):
    return service.clock_out(data.employee_id)


# ============================================================================
# PAYROLL
# ============================================================================


@router.get("/payroll/{year}/{month}", response_model=PayrollMonthResponse)
async def get_payroll_month(
    year: int,
    month: int,
    _user: User = Depends(require_permission("payroll", "view")),
    service: RotaService = Depends(get_rota_service),
):
    return service.get_payroll_month(year, month)


@router.put("/payroll/{year}/{month}/period")
async def set_payroll_period(
    year: int,
    month: int,
    data: PayrollPeriodUpdate,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    period_start, period_end = service.set_period(year, month, data, current_user)
    return {"year": year, "month": month, "period_start": period_start, "period_end": period_end}


@router.post("/payroll/{year}/{month}/approve", response_model=PayrollApprovalResponse)
async def approve_payroll_month(
    year: int,
    month: int,
    current_user: User = Depends(require_permission("payroll", "manage")),
    service: RotaService = Depends(get_rota_service),
):
    return service.approve_month(year, month, current_user)


@router.get("/payroll/{year}/{month}/export")
async def export_payroll(
    year: int,
    month: int,
    current_user: User = Depends(require_permission("payroll", "export")),
    service: RotaService = Depends(get_rota_service),
):
    return service.export_payroll_csv(year, month, current_user)
