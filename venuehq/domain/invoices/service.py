"""Invoice service - Totals, status rules, payments, email delivery and recurring generation"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...config import FRONTEND_URL
from ...email_service import EmailSendError, send_invoice_email, send_invoice_reminder_email
from ...models import User
from ...models_invoice import (
    Invoice,
    InvoiceEmailLog,
    InvoiceLineItem,
    InvoicePayment,
    InvoiceVendor,
    LineItemCatalogItem,
    RecurringInvoice,
)
from ...services import stripe_service
from ...services.invoice_pdf_generator import InvoicePDFGenerator
from ...shared.dates import today_local
from ...shared.money import round2
from ...utils.sanitization import sanitize_search_term, validate_and_sanitize_input
from .calculations import calculate_invoice_totals, format_invoice_number, next_invoice_date
from .repository import InvoiceRepository
from .schemas import (
    CatalogItemBase,
    InvoiceCreate,
    InvoiceUpdate,
    PaymentCreate,
    RecurringInvoiceBase,
    SendInvoiceRequest,
    VendorBase,
)

logger = logging.getLogger(__name__)

# Days past due on which a reminder goes out
REMINDER_SCHEDULE = {7: "First Reminder", 14: "Second Reminder", 30: "Final Reminder"}
BALANCE_TOLERANCE = 0.005


def _sanitized_notes(value: Optional[str]) -> Optional[str]:
    try:
        return validate_and_sanitize_input(value, max_length=2000)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def mark_overdue_invoices(db: Session, today: Optional[date] = None) -> int:
    """Persist overdue status on sent and part-paid invoices past their due date"""
    today = today or today_local()
    invoices = InvoiceRepository.overdue_candidates(db, today)
    for invoice in invoices:
        invoice.status = "overdue"
    if invoices:
        db.commit()
        logger.info(f"⚠️ Marked {len(invoices)} invoices as overdue")
    return len(invoices)


async def send_overdue_reminders(db: Session, today: Optional[date] = None) -> dict:
    """Email vendors whose invoices hit 7, 14 or 30 days overdue today"""
    today = today or today_local()
    mark_overdue_invoices(db, today)

    results = {"processed": 0, "reminders_sent": 0, "errors": 0}
    for invoice in InvoiceRepository.overdue_invoices(db, today):
        results["processed"] += 1
        days_overdue = (today - invoice.due_date).days
        label = REMINDER_SCHEDULE.get(days_overdue)
        if not label or not invoice.vendor.email:
            continue
        if invoice.last_reminder_sent_at and invoice.last_reminder_sent_at.date() == today:
            continue

        subject = f"{label}: Invoice {invoice.invoice_number} is overdue"
        try:
            await send_invoice_reminder_email(
                to=invoice.vendor.email,
                contact_name=invoice.vendor.contact_name or invoice.vendor.name,
                invoice_number=invoice.invoice_number,
                outstanding_amount=invoice.outstanding_amount,
                due_date=invoice.due_date.strftime("%d %B %Y"),
                days_overdue=days_overdue,
                reminder_label=label,
                payment_url=invoice.payment_link,
            )
        except EmailSendError as e:
            results["errors"] += 1
            db.add(
                InvoiceEmailLog(
                    invoice_id=invoice.id,
                    sent_to=invoice.vendor.email,
                    subject=subject,
                    email_type="reminder",
                    status="failed",
                    error_message=str(e),
                )
            )
            db.commit()
            continue

        invoice.last_reminder_sent_at = datetime.utcnow()
        db.add(
            InvoiceEmailLog(
                invoice_id=invoice.id,
                sent_to=invoice.vendor.email,
                subject=subject,
                email_type="reminder",
                status="sent",
            )
        )
        db.commit()
        results["reminders_sent"] += 1

    logger.info(
        f"📧 Invoice reminders: {results['reminders_sent']} sent of {results['processed']} overdue "
        f"({results['errors']} errors)"
    )
    return results


class InvoiceService:
    """Service layer for invoicing"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    def list_vendors(self, include_inactive: bool = False) -> list[InvoiceVendor]:
        return self.repo.list_vendors(self.db, include_inactive)

    def get_vendor(self, vendor_id: int) -> InvoiceVendor:
        vendor = self.repo.get_vendor(self.db, vendor_id)
        if not vendor:
            raise HTTPException(status_code=404, detail="Vendor not found")
        return vendor

    def create_vendor(self, data: VendorBase, user: User) -> InvoiceVendor:
        values = data.model_dump()
        values["notes"] = _sanitized_notes(values["notes"])
        vendor = self.repo.save(self.db, InvoiceVendor(**values))
        log_audit_event(self.db, user, "create", "invoice_vendor", vendor.id)
        return vendor

    def update_vendor(self, vendor_id: int, data: VendorBase, user: User) -> InvoiceVendor:
        vendor = self.get_vendor(vendor_id)
        values = data.model_dump()
        values["notes"] = _sanitized_notes(values["notes"])
        for key, value in values.items():
            setattr(vendor, key, value)
        vendor = self.repo.save(self.db, vendor)
        log_audit_event(self.db, user, "update", "invoice_vendor", vendor.id)
        return vendor

    def delete_vendor(self, vendor_id: int, user: User) -> None:
        """Vendors with invoice history are deactivated instead of removed"""
        vendor = self.get_vendor(vendor_id)
        if self.repo.vendor_invoice_count(self.db, vendor_id):
            vendor.is_active = False
            self.db.commit()
            log_audit_event(self.db, user, "deactivate", "invoice_vendor", vendor_id)
            return
        self.repo.delete(self.db, vendor)
        log_audit_event(self.db, user, "delete", "invoice_vendor", vendor_id)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_catalog(self) -> list[LineItemCatalogItem]:
        return self.repo.list_catalog(self.db)

    def create_catalog_item(self, data: CatalogItemBase, user: User) -> LineItemCatalogItem:
        item = self.repo.save(self.db, LineItemCatalogItem(**data.model_dump()))
        log_audit_event(self.db, user, "create", "line_item_catalog", item.id)
        return item

    def update_catalog_item(self, item_id: int, data: CatalogItemBase, user: User) -> LineItemCatalogItem:
        item = self.repo.get_catalog_item(self.db, item_id)
        if not item or not item.is_active:
            raise HTTPException(status_code=404, detail="Catalog item not found")
        for key, value in data.model_dump().items():
            setattr(item, key, value)
        item = self.repo.save(self.db, item)
        log_audit_event(self.db, user, "update", "line_item_catalog", item.id)
        return item

    def delete_catalog_item(self, item_id: int, user: User) -> None:
        item = self.repo.get_catalog_item(self.db, item_id)
        if not item or not item.is_active:
            raise HTTPException(status_code=404, detail="Catalog item not found")
        item.is_active = False
        self.db.commit()
        log_audit_event(self.db, user, "delete", "line_item_catalog", item_id)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def list_invoices(
        self,
        status: Optional[str] = None,
        vendor_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Invoice], int]:
        mark_overdue_invoices(self.db)
        return self.repo.list_invoices(self.db, status, vendor_id, sanitize_search_term(search), page, page_size)

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.repo.get_invoice(self.db, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if invoice.status in ("sent", "partially_paid") and invoice.due_date < today_local():
            mark_overdue_invoices(self.db)
            self.db.refresh(invoice)
        return invoice

    def _next_invoice_number(self) -> str:
        sequence = self.repo.count_invoices(self.db) + 1
        number = format_invoice_number(sequence)
        while self.repo.get_by_number(self.db, number):
            sequence += 1
            number = format_invoice_number(sequence)
        return number

    def _apply_line_items(self, invoice: Invoice, line_items: list[dict], discount_percentage: float) -> None:
        totals = calculate_invoice_totals(line_items, discount_percentage)
        invoice.line_items = [
            InvoiceLineItem(
                position=position,
                catalog_item_id=item.get("catalog_item_id"),
                description=item["description"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                discount_percentage=item.get("discount_percentage") or 0,
                vat_rate=item.get("vat_rate") or 0,
                **line_totals,
            )
            for position, (item, line_totals) in enumerate(zip(line_items, totals["lines"]))
        ]
        invoice.invoice_discount_percentage = discount_percentage
        invoice.subtotal_amount = totals["subtotal_amount"]
        invoice.discount_amount = totals["discount_amount"]
        invoice.vat_amount = totals["vat_amount"]
        invoice.total_amount = totals["total_amount"]

    def _build_invoice(
        self,
        vendor: InvoiceVendor,
        invoice_date: date,
        due_date: Optional[date],
        line_items: list[dict],
        discount_percentage: float,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        internal_notes: Optional[str] = None,
        recurring_invoice_id: Optional[int] = None,
    ) -> Invoice:
        invoice = Invoice(
            invoice_number=self._next_invoice_number(),
            vendor_id=vendor.id,
            recurring_invoice_id=recurring_invoice_id,
            invoice_date=invoice_date,
            due_date=due_date or invoice_date + timedelta(days=vendor.payment_terms or 0),
            reference=reference,
            notes=_sanitized_notes(notes),
            internal_notes=_sanitized_notes(internal_notes),
            status="draft",
            paid_amount=0,
        )
        self._apply_line_items(invoice, line_items, discount_percentage)
        return self.repo.save(self.db, invoice)

    def create_invoice(self, data: InvoiceCreate, user: Optional[User] = None) -> Invoice:
        vendor = self.get_vendor(data.vendor_id)
        invoice = self._build_invoice(
            vendor,
            data.invoice_date,
            data.due_date,
            [item.model_dump() for item in data.line_items],
            data.invoice_discount_percentage,
            reference=data.reference,
            notes=data.notes,
            internal_notes=data.internal_notes,
        )
        log_audit_event(
            self.db, user, "create", "invoice", invoice.id, {"invoice_number": invoice.invoice_number}
        )
        logger.info(f"✅ Invoice {invoice.invoice_number} created for £{invoice.total_amount:.2f}")
        return invoice

    def update_invoice(self, invoice_id: int, data: InvoiceUpdate, user: User) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != "draft":
            raise HTTPException(status_code=400, detail="Only draft invoices can be edited")
        vendor = self.get_vendor(data.vendor_id)

        invoice.vendor_id = vendor.id
        invoice.invoice_date = data.invoice_date
        invoice.due_date = data.due_date or data.invoice_date + timedelta(days=vendor.payment_terms or 0)
        invoice.reference = data.reference
        invoice.notes = _sanitized_notes(data.notes)
        invoice.internal_notes = _sanitized_notes(data.internal_notes)
        self._apply_line_items(
            invoice, [item.model_dump() for item in data.line_items], data.invoice_discount_percentage
        )
        invoice = self.repo.save(self.db, invoice)
        log_audit_event(self.db, user, "update", "invoice", invoice.id)
        return invoice

    def delete_invoice(self, invoice_id: int, user: User) -> None:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != "draft":
            raise HTTPException(status_code=400, detail="Only draft invoices can be deleted")
        number = invoice.invoice_number
        self.repo.delete(self.db, invoice)
        log_audit_event(self.db, user, "delete", "invoice", invoice_id, {"invoice_number": number})

    def void_invoice(self, invoice_id: int, user: User) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == "void":
            raise HTTPException(status_code=400, detail="Invoice is already void")
        if invoice.status == "paid":
            raise HTTPException(status_code=400, detail="Paid invoices cannot be voided")
        invoice.status = "void"
        invoice = self.repo.save(self.db, invoice)
        log_audit_event(self.db, user, "void", "invoice", invoice.id)
        return invoice

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def record_payment(self, invoice_id: int, data: PaymentCreate, user: Optional[User] = None) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == "void":
            raise HTTPException(status_code=400, detail="Cannot record a payment against a void invoice")
        if invoice.status == "paid":
            raise HTTPException(status_code=400, detail="Invoice is already paid")

        outstanding = invoice.outstanding_amount
        if data.amount > outstanding + BALANCE_TOLERANCE:
            raise HTTPException(
                status_code=400,
                detail=f"Payment amount cannot exceed the outstanding balance of £{outstanding:.2f}",
            )

        invoice.payments.append(
            InvoicePayment(
                amount=round2(data.amount),
                payment_date=data.payment_date,
                payment_method=data.payment_method,
                reference=data.reference,
            )
        )
        invoice.paid_amount = round2((invoice.paid_amount or 0) + data.amount)
        if invoice.total_amount - invoice.paid_amount <= BALANCE_TOLERANCE:
            invoice.status = "paid"
            invoice.paid_at = datetime.utcnow()
        else:
            invoice.status = "partially_paid"
        invoice = self.repo.save(self.db, invoice)

        log_audit_event(
            self.db, user, "payment", "invoice", invoice.id, {"amount": data.amount, "method": data.payment_method}
        )
        logger.info(f"💳 Payment of £{data.amount:.2f} recorded on {invoice.invoice_number} ({invoice.status})")
        return invoice

    def mark_paid(self, invoice_id: int, user: User, payment_method: str = "bank_transfer") -> Invoice:
        """Record the remaining balance as a single payment"""
        invoice = self.get_invoice(invoice_id)
        if invoice.status == "paid":
            raise HTTPException(status_code=400, detail="Invoice is already paid")
        outstanding = invoice.outstanding_amount
        if outstanding <= 0:
            invoice.status = "paid"
            invoice.paid_at = datetime.utcnow()
            return self.repo.save(self.db, invoice)
        return self.record_payment(
            invoice_id,
            PaymentCreate(amount=outstanding, payment_date=today_local(), payment_method=payment_method),
            user,
        )

    async def create_payment_link(self, invoice_id: int, user: Optional[User] = None) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status in ("paid", "void"):
            raise HTTPException(status_code=400, detail="Payment links can only be created for unpaid invoices")
        if invoice.outstanding_amount <= 0:
            raise HTTPException(status_code=400, detail="Invoice has no outstanding balance")

        result = await stripe_service.create_checkout_session(
            amount=invoice.outstanding_amount,
            description=f"Invoice {invoice.invoice_number}",
            success_url=f"{FRONTEND_URL}/invoices/payment-return?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{FRONTEND_URL}/invoices/{invoice.public_id}",
            metadata={"invoice_number": invoice.invoice_number, "type": "invoice"},
            customer_email=invoice.vendor.email,
        )
        if not result["success"]:
            raise HTTPException(status_code=502, detail=f"Could not create payment link: {result['message']}")

        invoice.payment_link = result["url"]
        invoice.stripe_session_id = result["session_id"]
        invoice = self.repo.save(self.db, invoice)
        log_audit_event(self.db, user, "create", "invoice_payment_link", invoice.id)
        return invoice

    async def confirm_checkout_session(self, session_id: str) -> Invoice:
        invoice = self.repo.get_by_stripe_session(self.db, session_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if invoice.status == "paid":
            return invoice

        session = await stripe_service.retrieve_checkout_session(session_id)
        if not session or session.get("payment_status") != "paid":
            raise HTTPException(status_code=400, detail="Payment has not been completed")

        amount = min(round2(session.get("amount_total", 0) / 100), invoice.outstanding_amount)
        return self.record_payment(
            invoice.id,
            PaymentCreate(amount=amount, payment_date=today_local(), payment_method="stripe", reference=session_id),
        )

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def generate_pdf(self, invoice_id: int) -> tuple[str, bytes]:
        invoice = self.get_invoice(invoice_id)
        return f"{invoice.invoice_number}.pdf", InvoicePDFGenerator(invoice).generate()

    async def send_invoice(self, invoice_id: int, data: SendInvoiceRequest, user: User) -> dict:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == "void":
            raise HTTPException(status_code=400, detail="Void invoices cannot be sent")

        recipients = data.recipients or ([invoice.vendor.email] if invoice.vendor.email else [])
        if not recipients:
            raise HTTPException(status_code=400, detail="Vendor has no email address")

        if not invoice.payment_link and invoice.outstanding_amount > 0 and stripe_service.is_configured():
            try:
                invoice = await self.create_payment_link(invoice_id, user)
            except HTTPException as e:
                logger.warning(f"⚠️ Sending {invoice.invoice_number} without a payment link: {e.detail}")

        subject = data.subject or f"Invoice {invoice.invoice_number}"
        pdf_bytes = InvoicePDFGenerator(invoice).generate()

        try:
            await send_invoice_email(
                to=recipients[0] if len(recipients) == 1 else recipients,
                contact_name=invoice.vendor.contact_name or invoice.vendor.name,
                invoice_number=invoice.invoice_number,
                total_amount=invoice.total_amount,
                outstanding_amount=invoice.outstanding_amount,
                due_date=invoice.due_date.strftime("%d %B %Y"),
                pdf_bytes=pdf_bytes,
                payment_url=invoice.payment_link,
                message=data.message,
                subject=subject,
                cc=data.cc,
            )
        except EmailSendError as e:
            for address in recipients:
                self.db.add(
                    InvoiceEmailLog(
                        invoice_id=invoice.id,
                        sent_to=address,
                        subject=subject,
                        email_type="invoice",
                        status="failed",
                        error_message=str(e),
                    )
                )
            self.db.commit()
            log_audit_event(self.db, user, "send", "invoice", invoice.id, {"error": str(e)}, "failed")
            return {"success": False, "sent_to": [], "error": str(e)}

        for address in recipients:
            self.db.add(
                InvoiceEmailLog(
                    invoice_id=invoice.id, sent_to=address, subject=subject, email_type="invoice", status="sent"
                )
            )
        if invoice.status == "draft":
            invoice.status = "sent"
        invoice.sent_at = datetime.utcnow()
        self.db.commit()

        log_audit_event(self.db, user, "send", "invoice", invoice.id, {"recipients": recipients})
        logger.info(f"📧 Invoice {invoice.invoice_number} sent to {len(recipients)} recipient(s)")
        return {"success": True, "sent_to": recipients, "error": None}

    def list_email_logs(self, invoice_id: int) -> list[InvoiceEmailLog]:
        invoice = self.get_invoice(invoice_id)
        return sorted(invoice.email_logs, key=lambda log: log.id, reverse=True)

    def get_summary(self, today: Optional[date] = None) -> dict:
        today = today or today_local()
        mark_overdue_invoices(self.db, today)
        outstanding, overdue, overdue_count = self.repo.outstanding_totals(self.db)
        return {
            "total_outstanding": round2(outstanding),
            "total_overdue": round2(overdue),
            "overdue_count": overdue_count,
            "paid_this_month": round2(self.repo.payments_between(self.db, today.replace(day=1), today)),
            "draft_count": self.repo.count_by_status(self.db, "draft"),
        }

    # ------------------------------------------------------------------
    # Recurring invoices
    # ------------------------------------------------------------------

    def list_recurring(self) -> list[RecurringInvoice]:
        return self.repo.list_recurring(self.db)

    def get_recurring(self, recurring_id: int) -> RecurringInvoice:
        recurring = self.repo.get_recurring(self.db, recurring_id)
        if not recurring:
            raise HTTPException(status_code=404, detail="Recurring invoice not found")
        return recurring

    def _recurring_values(self, data: RecurringInvoiceBase) -> dict:
        self.get_vendor(data.vendor_id)
        values = data.model_dump()
        values["line_items"] = [item.model_dump() for item in data.line_items]
        values["notes"] = _sanitized_notes(values["notes"])
        return values

    def create_recurring(self, data: RecurringInvoiceBase, user: User) -> RecurringInvoice:
        recurring = self.repo.save(self.db, RecurringInvoice(**self._recurring_values(data)))
        log_audit_event(self.db, user, "create", "recurring_invoice", recurring.id)
        return recurring

    def update_recurring(self, recurring_id: int, data: RecurringInvoiceBase, user: User) -> RecurringInvoice:
        recurring = self.get_recurring(recurring_id)
        for key, value in self._recurring_values(data).items():
            setattr(recurring, key, value)
        recurring = self.repo.save(self.db, recurring)
        log_audit_event(self.db, user, "update", "recurring_invoice", recurring.id)
        return recurring

    def delete_recurring(self, recurring_id: int, user: User) -> None:
        recurring = self.get_recurring(recurring_id)
        self.repo.delete(self.db, recurring)
        log_audit_event(self.db, user, "delete", "recurring_invoice", recurring_id)

    def generate_from_recurring(
        self, recurring: RecurringInvoice, user: Optional[User] = None, invoice_date: Optional[date] = None
    ) -> Invoice:
        """Issue a draft from the template and move the schedule on"""
        invoice_date = invoice_date or recurring.next_invoice_date
        invoice = self._build_invoice(
            recurring.vendor,
            invoice_date,
            invoice_date + timedelta(days=recurring.days_before_due),
            recurring.line_items,
            recurring.invoice_discount_percentage,
            reference=recurring.reference,
            notes=recurring.notes,
            recurring_invoice_id=recurring.id,
        )

        recurring.last_invoice_id = invoice.id
        recurring.next_invoice_date = next_invoice_date(recurring.next_invoice_date, recurring.frequency)
        if recurring.end_date and recurring.next_invoice_date > recurring.end_date:
            recurring.is_active = False
        self.db.commit()

        log_audit_event(
            self.db, user, "generate", "recurring_invoice", recurring.id, {"invoice_number": invoice.invoice_number}
        )
        logger.info(f"🔁 Generated {invoice.invoice_number} from recurring invoice {recurring.id}")
        return invoice

    def generate_now(self, recurring_id: int, user: User) -> Invoice:
        recurring = self.get_recurring(recurring_id)
        if not recurring.is_active:
            raise HTTPException(status_code=400, detail="Recurring invoice is not active")
        return self.generate_from_recurring(recurring, user, invoice_date=today_local())

    def generate_due_recurring_invoices(self, today: Optional[date] = None) -> list[Invoice]:
        """Catch up every active template whose next date has arrived"""
        today = today or today_local()
        generated = []
        for recurring in self.repo.due_recurring(self.db, today):
            if recurring.end_date and recurring.next_invoice_date > recurring.end_date:
                recurring.is_active = False
                self.db.commit()
                continue
            while recurring.is_active and recurring.next_invoice_date <= today:
                generated.append(self.generate_from_recurring(recurring))
        return generated
