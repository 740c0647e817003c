"""Invoice router - FastAPI endpoints for invoices, vendors, catalog and recurring invoices"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import (
    CatalogItemBase,
    CatalogItemResponse,
    EmailLogResponse,
    InvoiceCreate,
    InvoiceDetailResponse,
    InvoiceResponse,
    InvoiceSummary,
    InvoiceUpdate,
    PaymentCreate,
    RecurringInvoiceBase,
    RecurringInvoiceResponse,
    SendInvoiceRequest,
    SendInvoiceResult,
    VendorBase,
    VendorResponse,
)
from .service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    total: int
    page: int
    page_size: int


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


# ============================================================================
# VENDORS
# ============================================================================


@router.get("/vendors", response_model=list[VendorResponse])
async def list_vendors(
    include_inactive: bool = False,
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.list_vendors(include_inactive)


@router.post("/vendors", response_model=VendorResponse, status_code=201)
async def create_vendor(
    data: VendorBase,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.create_vendor(data, current_user)


@router.put("/vendors/{vendor_id}", response_model=VendorResponse)
async def update_vendor(
    vendor_id: int,
    data: VendorBase,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.update_vendor(vendor_id, data, current_user)


@router.delete("/vendors/{vendor_id}")
async def delete_vendor(
    vendor_id: int,
    current_user: User = Depends(require_permission("invoices", "delete")),
    service: InvoiceService = Depends(get_invoice_service),
):
    service.delete_vendor(vendor_id, current_user)
    return {"success": True}


# ============================================================================
# LINE ITEM CATALOG
# ============================================================================


@router.get("/catalog", response_model=list[CatalogItemResponse])
async def list_catalog(
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.list_catalog()


@router.post("/catalog", response_model=CatalogItemResponse, status_code=201)
async def create_catalog_item(
    data: CatalogItemBase,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.create_catalog_item(data, current_user)


@router.put("/catalog/{item_id}", response_model=CatalogItemResponse)
async def update_catalog_item(
    item_id: int,
    data: CatalogItemBase,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.update_catalog_item(item_id, data, current_user)


@router.delete("/catalog/{item_id}")
async def delete_catalog_item(
    item_id: int,
    current_user: User = Depends(require_permission("invoices", "delete")),
    service: InvoiceService = Depends(get_invoice_service),
):
    service.delete_catalog_item(item_id, current_user)
    return {"success": True}


# ============================================================================
# RECURRING INVOICES
# ============================================================================


@router.get("/recurring", response_model=list[RecurringInvoiceResponse])
async def list_recurring(
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.list_recurring()


@router.post("/recurring", response_model=RecurringInvoiceResponse, status_code=201)
async def create_recurring(
    data: RecurringInvoiceBase,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.create_recurring(data, current_user)


@router.put("/recurring/{recurring_id}", response_model=RecurringInvoiceResponse)
async def update_recurring(
    recurring_id: int,
    data: RecurringInvoiceBase,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.update_recurring(recurring_id, data, current_user)


@router.delete("/recurring/{recurring_id}")
async def delete_recurring(
    recurring_id: int,
    current_user: User = Depends(require_permission("invoices", "delete")),
    service: InvoiceService = Depends(get_invoice_service),
):
    service.delete_recurring(recurring_id, current_user)
    return {"success": True}


@router.post("/recurring/{recurring_id}/generate", response_model=InvoiceResponse, status_code=201)
async def generate_recurring_now(
    recurring_id: int,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.generate_now(recurring_id, current_user)


# ============================================================================
# INVOICES
# ============================================================================


@router.get("/summary", response_model=InvoiceSummary)
async def get_summary(
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.get_summary()


@router.get("/payment-return", response_model=InvoiceResponse)
async def payment_return(
    session_id: str,
    service: InvoiceService = Depends(get_invoice_service),
):
    return await service.confirm_checkout_session(session_id)


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    status: Optional[str] = Query(None),
    vendor_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoices, total = service.list_invoices(status, vendor_id, search, page, page_size)
    return InvoiceListResponse(invoices=invoices, total=total, page=page, page_size=page_size)


@router.post("", response_model=InvoiceDetailResponse, status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(require_permission("invoices", "create")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.create_invoice(data, current_user)


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: int,
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.get_invoice(invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceDetailResponse)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.update_invoice(invoice_id, data, current_user)


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: int,
    current_user: User = Depends(require_permission("invoices", "delete")),
    service: InvoiceService = Depends(get_invoice_service),
):
    service.delete_invoice(invoice_id, current_user)
    return {"success": True}


@router.post("/{invoice_id}/void", response_model=InvoiceResponse)
async def void_invoice(
    invoice_id: int,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.void_invoice(invoice_id, current_user)


@router.post("/{invoice_id}/payments", response_model=InvoiceDetailResponse)
async def record_payment(
    invoice_id: int,
    data: PaymentCreate,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.record_payment(invoice_id, data, current_user)


@router.post("/{invoice_id}/mark-paid", response_model=InvoiceDetailResponse)
async def mark_paid(
    invoice_id: int,
    payment_method: str = Query("bank_transfer"),
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.mark_paid(invoice_id, current_user, payment_method)


@router.post("/{invoice_id}/payment-link", response_model=InvoiceResponse)
async def create_payment_link(
    invoice_id: int,
    current_user: User = Depends(require_permission("invoices", "edit")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return await service.create_payment_link(invoice_id, current_user)


@router.post("/{invoice_id}/send", response_model=SendInvoiceResult)
async def send_invoice(
    invoice_id: int,
    data: SendInvoiceRequest,
    current_user: User = Depends(require_permission("invoices", "send")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return await service.send_invoice(invoice_id, data, current_user)


@router.get("/{invoice_id}/emails", response_model=list[EmailLogResponse])
async def list_email_logs(
    invoice_id: int,
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    return service.list_email_logs(invoice_id)


@router.get("/{invoice_id}/pdf")
async def download_pdf(
    invoice_id: int,
    _user: User = Depends(require_permission("invoices", "view")),
    service: InvoiceService = Depends(get_invoice_service),
):
    filename, pdf_bytes = service.generate_pdf(invoice_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename={filename}"},
    )
