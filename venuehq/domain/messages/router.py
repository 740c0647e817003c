"""Message router - SMS conversations, bulk sends, inbound webhook and templates"""

from fastapi import APIRouter, Depends, Form
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import (
    BulkSmsRequest,
    BulkSmsResult,
    MessageResponse,
    MessageTemplateBase,
    MessageTemplateCreate,
    MessageTemplateResponse,
    SendSmsRequest,
    SendSmsResult,
)
from .service import MessageService

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    """Dependency injection for MessageService"""
    return MessageService(db)


# ============================================================================
# CONVERSATIONS
# ============================================================================


@router.get("/customers/{customer_id}", response_model=list[MessageResponse])
async def list_conversation(
    customer_id: int,
    _user: User = Depends(require_permission("messages", "view")),
    service: MessageService = Depends(get_message_service),
):
    return service.list_conversation(customer_id)


@router.post("/customers/{customer_id}", response_model=SendSmsResult)
async def send_to_customer(
    customer_id: int,
    data: SendSmsRequest,
    current_user: User = Depends(require_permission("messages", "send")),
    service: MessageService = Depends(get_message_service),
):
    success, error = await service.send_to_customer(customer_id, data, current_user)
    return SendSmsResult(success=success, error=error)


@router.post("/bulk", response_model=BulkSmsResult)
async def send_bulk(
    data: BulkSmsRequest,
    current_user: User = Depends(require_permission("messages", "send")),
    service: MessageService = Depends(get_message_service),
):
    return await service.send_bulk(data, current_user)


# ============================================================================
# INBOUND (Twilio webhook)
# ============================================================================


@router.post("/inbound", response_model=MessageResponse)
async def receive_inbound(
    From: str = Form(...),  # noqa: N803 - Twilio field names
    Body: str = Form(""),  # noqa: N803
    service: MessageService = Depends(get_message_service),
):
    return service.record_inbound(From, Body)


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/templates", response_model=list[MessageTemplateResponse])
async def list_templates(
    _user: User = Depends(require_permission("messages", "view")),
    service: MessageService = Depends(get_message_service),
):
    return service.list_templates()


@router.post("/templates", response_model=MessageTemplateResponse, status_code=201)
async def create_template(
    data: MessageTemplateCreate,
    current_user: User = Depends(require_permission("messages", "manage")),
    service: MessageService = Depends(get_message_service),
):
    return service.create_template(data, current_user)


@router.put("/templates/{template_id}", response_model=MessageTemplateResponse)
async def update_template(
    template_id: int,
    data: MessageTemplateBase,
    current_user: User = Depends(require_permission("messages", "manage")),
    service: MessageService = Depends(get_message_service),
):
    return service.update_template(template_id, data, current_user)


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(require_permission("messages", "manage")),
    service: MessageService = Depends(get_message_service),
):
    service.delete_template(template_id, current_user)
    return {"success": True}
