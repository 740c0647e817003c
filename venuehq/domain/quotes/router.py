"""Quote router - FastAPI endpoints for quotes and their conversion to invoices"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from ..invoices.schemas import InvoiceDetailResponse
from .schemas import QuoteCreate, QuoteDetailResponse, QuoteResponse, QuoteStatusUpdate, QuoteSummary, QuoteUpdate
from .service import QuoteService

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def get_quote_service(db: Session = Depends(get_db)) -> QuoteService:
    """Dependency injection for QuoteService"""
    return QuoteService(db)


@router.get("/summary", response_model=QuoteSummary)
async def get_summary(
    _user: User = Depends(require_permission("invoices", "view")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.get_summary()


@router.get("", response_model=list[QuoteResponse])
async def list_quotes(
    status: Optional[str] = Query(None),
    _user: User = Depends(require_permission("invoices", "view")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.list_quotes(status)


@router.post("", response_model=QuoteDetailResponse, status_code=201)
async def create_quote(
    data: QuoteCreate,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.create_quote(data, current_user)


@router.get("/{quote_id}", response_model=QuoteDetailResponse)
async def get_quote(
    quote_id: int,
    _user: User = Depends(require_permission("invoices", "view")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.get_quote(quote_id)


@router.put("/{quote_id}", response_model=QuoteDetailResponse)
async def update_quote(
    quote_id: int,
    data: QuoteUpdate,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.update_quote(quote_id, data, current_user)


@router.delete("/{quote_id}")
async def delete_quote(
    quote_id: int,
    current_user: User = Depends(require_permission("invoices", "delete")),
    service: QuoteService = Depends(get_quote_service),
):
    service.delete_quote(quote_id, current_user)
    return {"success": True}


@router.post("/{quote_id}/status", response_model=QuoteResponse)
async def update_quote_status(
    quote_id: int,
    data: QuoteStatusUpdate,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.update_status(quote_id, data.status, current_user)


@router.post("/{quote_id}/convert", response_model=InvoiceDetailResponse, status_code=201)
async def convert_quote_to_invoice(
    quote_id: int,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: QuoteService = Depends(get_quote_service),
):
    return service.convert_to_invoice(quote_id, current_user)
