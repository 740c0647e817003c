"""Table booking router - Public availability and guest booking, staff booking management"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AvailabilityResponse,
    BookingCreate,
    BookingCreatedResponse,
    BookingPolicyBase,
    BookingPolicyResponse,
    BookingResponse,
    BookingUpdate,
    CancelBookingRequest,
    DashboardStats,
    GuestBookingCreate,
    ModificationCheck,
    NextSlotResponse,
    RecordPaymentRequest,
    RefundResponse,
    TimeSlotConfigCreate,
    TimeSlotConfigResponse,
)
from .service import TableBookingService

router = APIRouter(prefix="/table-bookings", tags=["Table Bookings"])

availability_limiter = create_rate_limiter(limit=60, window_seconds=60, key_prefix="availability")
guest_booking_limiter = create_rate_limiter(limit=10, window_seconds=600, key_prefix="guest_booking")
manage_booking_limiter = create_rate_limiter(limit=30, window_seconds=600, key_prefix="manage_booking")


def get_table_booking_service(db: Session = Depends(get_db)) -> TableBookingService:
    """Dependency injection for TableBookingService"""
    return TableBookingService(db)


def _created_response(result: dict) -> BookingCreatedResponse:
    response = BookingCreatedResponse.model_validate(result["booking"])
    response.warnings = result["warnings"]
    response.manage_url = result["manage_url"]
    return response


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    booking_date: date,
    party_size: int = Query(..., ge=1),
    booking_type: str = Query("regular"),
    _: None = Depends(availability_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.check_availability(booking_date, party_size, booking_type)


@router.get("/availability/range")
async def get_availability_range(
    start: date,
    end: date,
    party_size: int = Query(..., ge=1),
    booking_type: str = Query("regular"),
    _: None = Depends(availability_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.get_availability_range(start, end, party_size, booking_type)


@router.get("/availability/next", response_model=NextSlotResponse)
async def get_next_available_slot(
    party_size: int = Query(..., ge=1),
    booking_type: str = Query("regular"),
    preferred_time: Optional[str] = Query(None, pattern=r"^\d{2}:\d{2}$"),
    _: None = Depends(availability_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.get_next_available_slot(party_size, booking_type, preferred_time)


@router.post("/public", response_model=BookingCreatedResponse, status_code=201)
async def create_guest_booking(
    data: GuestBookingCreate,
    _: None = Depends(guest_booking_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    """Website booking. Sunday lunch bookings come back pending payment with a checkout link."""
    return _created_response(await service.create_booking(data))


@router.get("/payment-return", response_model=BookingResponse)
async def payment_return(
    session_id: str,
    _: None = Depends(manage_booking_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return await service.confirm_checkout_session(session_id)


@router.get("/manage/{token}", response_model=BookingResponse)
async def get_managed_booking(
    token: str,
    _: None = Depends(manage_booking_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.get_booking_by_token(token)


@router.post("/manage/{token}/cancel", response_model=RefundResponse)
async def cancel_managed_booking(
    token: str,
    data: CancelBookingRequest,
    _: None = Depends(manage_booking_limiter),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return await service.cancel_booking_by_token(token, data.reason)


# ============================================================================
# POLICIES AND SLOT CONFIGURATION
# ============================================================================


@router.get("/policies", response_model=list[BookingPolicyResponse])
async def list_policies(
    _user: User = Depends(require_permission("table_bookings", "view")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.list_policies()


@router.put("/policies/{booking_type}", response_model=BookingPolicyResponse)
async def update_policy(
    booking_type: str,
    data: BookingPolicyBase,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.update_policy(booking_type, data, current_user)


@router.get("/slots", response_model=list[TimeSlotConfigResponse])
async def list_slot_configs(
    day_of_week: Optional[int] = Query(None, ge=0, le=6),
    _user: User = Depends(require_permission("table_bookings", "view")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.list_slot_configs(day_of_week)


@router.post("/slots", response_model=TimeSlotConfigResponse, status_code=201)
async def create_slot_config(
    data: TimeSlotConfigCreate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.create_slot_config(data, current_user)


@router.put("/slots/{slot_id}", response_model=TimeSlotConfigResponse)
async def update_slot_config(
    slot_id: int,
    data: TimeSlotConfigCreate,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.update_slot_config(slot_id, data, current_user)


@router.delete("/slots/{slot_id}")
async def delete_slot_config(
    slot_id: int,
    current_user: User = Depends(require_permission("settings", "manage")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    service.delete_slot_config(slot_id, current_user)
    return {"success": True}


# ============================================================================
# STAFF BOOKING MANAGEMENT
# ============================================================================


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard_stats(
    _user: User = Depends(require_permission("table_bookings", "view")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.get_dashboard_stats()


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    start: Optional[date] = None,
    end: Optional[date] = None,
    status: Optional[str] = None,
    booking_type: Optional[str] = None,
    _user: User = Depends(require_permission("table_bookings", "view")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.list_bookings(start, end, status, booking_type)


@router.post("", response_model=BookingCreatedResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(require_permission("table_bookings", "create")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return _created_response(await service.create_booking(data, current_user))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    _user: User = Depends(require_permission("table_bookings", "view")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.get_booking(booking_id)


@router.post("/{booking_id}/modification-check", response_model=ModificationCheck)
async def check_modification(
    booking_id: int,
    data: BookingUpdate,
    _user: User = Depends(require_permission("table_bookings", "view")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.check_modification_allowed(service.get_booking(booking_id), data)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    current_user: User = Depends(require_permission("table_bookings", "edit")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.update_booking(booking_id, data, current_user)


@router.post("/{booking_id}/cancel", response_model=RefundResponse)
async def cancel_booking(
    booking_id: int,
    data: CancelBookingRequest,
    current_user: User = Depends(require_permission("table_bookings", "edit")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return await service.cancel_booking(booking_id, data.reason, current_user)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_no_show(
    booking_id: int,
    current_user: User = Depends(require_permission("table_bookings", "edit")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.mark_no_show(booking_id, current_user)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def mark_completed(
    booking_id: int,
    current_user: User = Depends(require_permission("table_bookings", "edit")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return service.mark_completed(booking_id, current_user)


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def record_payment(
    booking_id: int,
    data: RecordPaymentRequest,
    current_user: User = Depends(require_permission("table_bookings", "edit")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    return await service.record_payment(booking_id, data, current_user)


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: int,
    current_user: User = Depends(require_permission("table_bookings", "delete")),
    service: TableBookingService = Depends(get_table_booking_service),
):
    service.delete_booking(booking_id, current_user)
    return {"success": True}
