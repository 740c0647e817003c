"""Message service - Customer SMS with consent, limits and duplicate suppression"""

import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...config import TWILIO_FROM_NUMBER, VENUE_NAME
from ...models import Customer, User
from ...models_sms import Message, MessageTemplate
from ...services import sms_safety, twilio_service
from ...shared.validators import validate_uk_phone
from ...utils.sanitization import sanitize_search_term
from ..customers.service import CustomerService
from .repository import MessageRepository
from .schemas import BulkSmsRequest, MessageTemplateCreate, MessageTemplateBase, SendSmsRequest
from .templates import DEFAULT_TEMPLATES, render_template

logger = logging.getLogger(__name__)

OPT_OUT_KEYWORDS = {"STOP", "STOPALL", "UNSUBSCRIBE", "CANCEL", "END", "QUIT"}
OPT_IN_KEYWORDS = {"START", "YES", "UNSTOP"}


def get_template_body(db: Session, template_key: str) -> Optional[str]:
    """Active stored template, else the built-in wording"""
    stored = MessageRepository.get_template_by_key(db, template_key)
    if stored and stored.is_active:
        return stored.body
    default = DEFAULT_TEMPLATES.get(template_key)
    return default[1] if default else None


def _blocked(db: Session, to_number: str, body: str, message_type: str, reason: str, **fields) -> tuple[bool, str]:
    db.add(
        Message(
            direction="outbound",
            to_number=to_number,
            from_number=TWILIO_FROM_NUMBER,
            body=body,
            segments=twilio_service.count_sms_segments(body),
            status="blocked",
            message_type=message_type,
            error_message=reason,
            **fields,
        )
    )
    db.commit()
    logger.warning(f"🚫 SMS blocked ({message_type}): {reason}")
    return False, reason


async def send_guarded_sms(
    db: Session,
    to_number: str,
    message_type: str,
    body: Optional[str] = None,
    template_key: Optional[str] = None,
    context: Optional[dict[str, Any]] = None,
    customer_id: Optional[int] = None,
    dedupe_context: Optional[dict[str, Any]] = None,
) -> tuple[bool, Optional[str]]:
    """
    Render, dedupe and rate-check an SMS before handing it to Twilio

    dedupe_context replaces the rendering context in the duplicate check when
    the context carries values that change on every send, such as signed links.
    """
    context = {"venue_name": VENUE_NAME, **(context or {})}

    if body is None:
        if not template_key:
            return False, "Either a message body or a template is required"
        template_body = get_template_body(db, template_key)
        if template_body is None:
            return False, f"Unknown message template: {template_key}"
        body = render_template(template_body, context)

    dedupe_key = None
    if template_key:
        dedupe_key = sms_safety.build_dedupe_key(
            template_key, to_number, dedupe_context if dedupe_context is not None else context
        )
        if sms_safety.is_duplicate(db, dedupe_key):
            logger.info(f"♻️ Duplicate {template_key} SMS suppressed")
            return False, "Duplicate message suppressed"

    reason = sms_safety.check_sms_limits(db, to_number)
    if reason:
        return _blocked(
            db, to_number, body, message_type, reason, customer_id=customer_id, template_key=template_key
        )

    return await twilio_service.send_sms(
        db,
        to_number,
        body,
        message_type,
        customer_id=customer_id,
        template_key=template_key,
        dedupe_key=dedupe_key,
    )


async def send_customer_sms(
    db: Session,
    customer: Customer,
    message_type: str,
    body: Optional[str] = None,
    template_key: Optional[str] = None,
    context: Optional[dict[str, Any]] = None,
    dedupe_context: Optional[dict[str, Any]] = None,
) -> tuple[bool, Optional[str]]:
    """Send to a customer, honouring their SMS consent"""
    if not customer.mobile_number:
        return False, "Customer has no mobile number"
    if not customer.sms_opt_in:
        logger.info(f"📵 Customer {customer.id} has opted out, SMS not sent")
        return False, "Customer has opted out of SMS"

    context = {"first_name": customer.first_name, **(context or {})}
    return await send_guarded_sms(
        db,
        customer.mobile_number,
        message_type,
        body=body,
        template_key=template_key,
        context=context,
        customer_id=customer.id,
        dedupe_context=dedupe_context,
    )


class MessageService:
    """Service layer for SMS conversations, bulk sends and templates"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessageRepository()

    def list_conversation(self, customer_id: int, limit: int = 100) -> list[Message]:
        CustomerService(self.db).get_customer(customer_id)
        return self.repo.list_for_customer(self.db, customer_id, limit)

    async def send_to_customer(self, customer_id: int, data: SendSmsRequest, user: User) -> tuple[bool, Optional[str]]:
        customer = CustomerService(self.db).get_customer(customer_id)
        if not data.body and not data.template_key:
            raise HTTPException(status_code=400, detail="Either a message body or a template is required")

        success, error = await send_customer_sms(
            self.db,
            customer,
            "manual",
            body=data.body,
            template_key=data.template_key,
            context=data.context,
        )
        log_audit_event(
            self.db,
            user,
            "send",
            "sms",
            customer_id,
            {"template_key": data.template_key},
            operation_status="success" if success else "failed",
        )
        return success, error

    async def send_bulk(self, data: BulkSmsRequest, user: User) -> dict[str, int]:
        customers = self.repo.list_bulk_recipients(self.db, data.customer_ids, sanitize_search_term(data.search))
        sent = failed = skipped = 0
        for customer in customers:
            if not customer.sms_opt_in or not customer.mobile_number:
                skipped += 1
                continue
            context = {"first_name": customer.first_name, "last_name": customer.last_name or ""}
            body = render_template(data.body, {"venue_name": VENUE_NAME, **context})
            success, _ = await send_customer_sms(self.db, customer, "bulk", body=body)
            if success:
                sent += 1
            else:
                failed += 1

        log_audit_event(
            self.db, user, "send", "bulk_sms", None, {"total": len(customers), "sent": sent, "failed": failed}
        )
        logger.info(f"📱 Bulk SMS complete: {sent} sent, {failed} failed, {skipped} skipped")
        return {"total": len(customers), "sent": sent, "failed": failed, "skipped": skipped}

    def record_inbound(self, from_number: str, body: str) -> Message:
        """Log an inbound SMS and apply STOP/START keywords to the sender's consent"""
        try:
            normalized = validate_uk_phone(from_number)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid phone number") from e

        customer = self.db.query(Customer).filter(Customer.mobile_number == normalized).first()
        message = Message(
            customer_id=customer.id if customer else None,
            direction="inbound",
            to_number=TWILIO_FROM_NUMBER or "",
            from_number=normalized,
            body=body,
            segments=twilio_service.count_sms_segments(body),
            status="received",
            message_type="inbound",
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)

        keyword = body.strip().upper()
        if customer and keyword in OPT_OUT_KEYWORDS and customer.sms_opt_in:
            CustomerService(self.db).apply_sms_preference(customer, False)
        elif customer and keyword in OPT_IN_KEYWORDS and not customer.sms_opt_in:
            CustomerService(self.db).apply_sms_preference(customer, True)

        return message

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def list_templates(self) -> list[MessageTemplate]:
        return self.repo.list_templates(self.db)

    def create_template(self, data: MessageTemplateCreate, user: User) -> MessageTemplate:
        if self.repo.get_template_by_key(self.db, data.key):
            raise HTTPException(status_code=409, detail="A template with this key already exists")
        template = self.repo.save(self.db, MessageTemplate(**data.model_dump()))
        log_audit_event(self.db, user, "create", "message_template", template.id)
        return template

    def update_template(self, template_id: int, data: MessageTemplateBase, user: User) -> MessageTemplate:
        template = self.repo.get_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        for key, value in data.model_dump().items():
            setattr(template, key, value)
        template = self.repo.save(self.db, template)
        log_audit_event(self.db, user, "update", "message_template", template.id)
        return template

    def delete_template(self, template_id: int, user: User) -> None:
        template = self.repo.get_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        self.repo.delete(self.db, template)
        log_audit_event(self.db, user, "delete", "message_template", template_id)
