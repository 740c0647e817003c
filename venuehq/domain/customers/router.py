"""Customer router - FastAPI endpoints for customer records"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    SmsOptInUpdate,
)
from .service import CustomerService

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _user: User = Depends(require_permission("customers", "view")),
    service: CustomerService = Depends(get_customer_service),
):
    customers, total = service.list_customers(search, page, page_size)
    return CustomerListResponse(customers=customers, total=total, page=page, page_size=page_size)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    _user: User = Depends(require_permission("customers", "view")),
    service: CustomerService = Depends(get_customer_service),
):
    return service.get_customer(customer_id)


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    data: CustomerCreate,
    current_user: User = Depends(require_permission("customers", "create")),
    service: CustomerService = Depends(get_customer_service),
):
    return service.create_customer(data, current_user)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    data: CustomerUpdate,
    current_user: User = Depends(require_permission("customers", "edit")),
    service: CustomerService = Depends(get_customer_service),
):
    return service.update_customer(customer_id, data, current_user)


@router.put("/{customer_id}/sms-opt-in", response_model=CustomerResponse)
async def set_sms_opt_in(
    customer_id: int,
    data: SmsOptInUpdate,
    current_user: User = Depends(require_permission("customers", "edit")),
    service: CustomerService = Depends(get_customer_service),
):
    return service.set_sms_opt_in(customer_id, data.sms_opt_in, current_user)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: int,
    current_user: User = Depends(require_permission("customers", "delete")),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete_customer(customer_id, current_user)
    return {"success": True}
