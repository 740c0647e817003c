"""Business hours router - Opening hours, special hours and service status"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import (
    BusinessHoursResponse,
    EffectiveServiceStatus,
    ResolvedHoursResponse,
    ServiceStatusOverrideCreate,
    ServiceStatusOverrideResponse,
    ServiceStatusResponse,
    ServiceStatusUpdate,
    SpecialHoursCreate,
    SpecialHoursResponse,
    SpecialHoursUpdate,
    WeeklyHoursUpdate,
)
from .service import BusinessHoursService

router = APIRouter(prefix="/business-hours", tags=["Business Hours"])


def get_business_hours_service(db: Session = Depends(get_db)) -> BusinessHoursService:
    """Dependency injection for BusinessHoursService"""
    return BusinessHoursService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/public/date/{day}", response_model=ResolvedHoursResponse)
async def get_hours_for_date(day: date, service: BusinessHoursService = Depends(get_business_hours_service)):
    """Hours in force on a date, with the source they came from"""
    return service.get_hours_for_date(day)


@router.get("/public/service-status/{service_code}", response_model=EffectiveServiceStatus)
async def get_effective_service_status(
    service_code: str,
    day: date = Query(..., alias="date"),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.get_effective_status(service_code, day)


# ============================================================================
# WEEKLY HOURS
# ============================================================================


@router.get("/weekly", response_model=list[BusinessHoursResponse])
async def get_weekly_hours(
    _user: User = Depends(require_permission("settings", "view")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.get_weekly_hours()


@router.put("/weekly", response_model=list[BusinessHoursResponse])
async def replace_weekly_hours(
    data: WeeklyHoursUpdate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.replace_weekly_hours(data.days, current_user)


# ============================================================================
# SPECIAL HOURS
# ============================================================================


@router.get("/special", response_model=list[SpecialHoursResponse])
async def list_special_hours(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _user: User = Depends(require_permission("settings", "view")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.list_special_hours(start_date, end_date)


@router.post("/special", response_model=list[SpecialHoursResponse], status_code=201)
async def create_special_hours(
    data: SpecialHoursCreate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.create_special_hours(data, current_user)


@router.put("/special/{special_id}", response_model=SpecialHoursResponse)
async def update_special_hours(
    special_id: int,
    data: SpecialHoursUpdate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.update_special_hours(special_id, data, current_user)


@router.delete("/special/{special_id}")
async def delete_special_hours(
    special_id: int,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    service.delete_special_hours(special_id, current_user)
    return {"success": True}


# ============================================================================
# SERVICE STATUS
# ============================================================================


@router.get("/service-status", response_model=list[ServiceStatusResponse])
async def list_service_statuses(
    _user: User = Depends(require_permission("settings", "view")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.list_service_statuses()


@router.put("/service-status/{service_code}", response_model=ServiceStatusResponse)
async def update_service_status(
    service_code: str,
    data: ServiceStatusUpdate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.update_service_status(service_code, data, current_user)


@router.get("/service-status/{service_code}/overrides", response_model=list[ServiceStatusOverrideResponse])
async def list_overrides(
    service_code: str,
    _user: User = Depends(require_permission("settings", "view")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.list_overrides(service_code)


@router.post(
    "/service-status/{service_code}/overrides",
    response_model=ServiceStatusOverrideResponse,
    status_code=201,
)
async def create_override(
    service_code: str,
    data: ServiceStatusOverrideCreate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    return service.create_override(service_code, data, current_user)


@router.delete("/service-status/overrides/{override_id}")
async def delete_override(
    override_id: int,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: BusinessHoursService = Depends(get_business_hours_service),
):
    service.delete_override(override_id, current_user)
    return {"success": True}
