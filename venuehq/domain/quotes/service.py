"""Quote service - Quote lifecycle and conversion into invoices"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import User
from ...models_invoice import Invoice, Quote, QuoteLineItem
from ...shared.dates import today_local
from ...shared.money import round2
from ..invoices.calculations import calculate_invoice_totals, format_quote_number
from ..invoices.service import InvoiceService, _sanitized_notes
from .repository import QuoteRepository
from .schemas import QuoteCreate, QuoteUpdate

logger = logging.getLogger(__name__)

# Allowed moves between stored statuses
QUOTE_TRANSITIONS = {
    "draft": ("sent",),
    "sent": ("draft", "accepted", "rejected", "expired"),
    "accepted": (),
    "rejected": (),
    "expired": (),
}
CONVERTED_INVOICE_DUE_DAYS = 30


def is_transition_allowed(current: str, new: str) -> bool:
    return new in QUOTE_TRANSITIONS.get(current, ())


def mark_expired_quotes(db: Session, today: Optional[date] = None) -> int:
    """Sent quotes past their valid-until date become expired"""
    today = today or today_local()
    quotes = QuoteRepository.lapsed_quotes(db, today)
    for quote in quotes:
        quote.status = "expired"
    if quotes:
        db.commit()
        logger.info(f"⌛ Marked {len(quotes)} quotes as expired")
    return len(quotes)


class QuoteService:
    """Service layer for quotes"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = QuoteRepository()
        self.invoices = InvoiceService(db)

    def list_quotes(self, status: Optional[str] = None) -> list[Quote]:
        mark_expired_quotes(self.db)
        return self.repo.list_quotes(self.db, status)

    def get_quote(self, quote_id: int) -> Quote:
        quote = self.repo.get_quote(self.db, quote_id)
        if not quote:
            raise HTTPException(status_code=404, detail="Quote not found")
        if quote.status == "sent" and quote.valid_until < today_local():
            mark_expired_quotes(self.db)
            self.db.refresh(quote)
        return quote

    def get_summary(self, today: Optional[date] = None) -> dict:
        mark_expired_quotes(self.db, today)
        totals = self.repo.totals_by_status(self.db)
        return {
            "total_pending": round2(totals.get("sent", (0, 0))[0]),
            "total_expired": round2(totals.get("expired", (0, 0))[0]),
            "total_accepted": round2(totals.get("accepted", (0, 0))[0]),
            "draft_count": totals.get("draft", (0, 0))[1],
        }

    # ------------------------------------------------------------------
    # Drafting
    # ------------------------------------------------------------------

    def _next_quote_number(self) -> str:
        sequence = self.repo.count_quotes(self.db) + 1
        number = format_quote_number(sequence)
        while self.repo.get_by_number(self.db, number):
            sequence += 1
            number = format_quote_number(sequence)
        return number

    def _apply(self, quote: Quote, data: QuoteCreate) -> None:
        line_items = [item.model_dump() for item in data.line_items]
        totals = calculate_invoice_totals(line_items, data.quote_discount_percentage)

        quote.vendor_id = self.invoices.get_vendor(data.vendor_id).id
        quote.quote_date = data.quote_date
        quote.valid_until = data.valid_until
        quote.reference = data.reference
        quote.notes = _sanitized_notes(data.notes)
        quote.internal_notes = _sanitized_notes(data.internal_notes)
        quote.line_items = [
            QuoteLineItem(position=position, **item, **line_totals)
            for position, (item, line_totals) in enumerate(zip(line_items, totals["lines"]))
        ]
        quote.quote_discount_percentage = data.quote_discount_percentage
        quote.subtotal_amount = totals["subtotal_amount"]
        quote.discount_amount = totals["discount_amount"]
        quote.vat_amount = totals["vat_amount"]
        quote.total_amount = totals["total_amount"]

    def create_quote(self, data: QuoteCreate, user: Optional[User] = None) -> Quote:
        quote = Quote(quote_number=self._next_quote_number(), status="draft")
        self._apply(quote, data)
        quote = self.repo.save(self.db, quote)
        log_audit_event(
            self.db,
            user,
            "create",
            "quote",
            quote.id,
            {"quote_number": quote.quote_number, "total_amount": quote.total_amount},
        )
        logger.info(f"📝 Quote {quote.quote_number} created for £{quote.total_amount:.2f}")
        return quote

    def update_quote(self, quote_id: int, data: QuoteUpdate, user: User) -> Quote:
        quote = self.get_quote(quote_id)
        if quote.status != "draft":
            raise HTTPException(status_code=400, detail="Only draft quotes can be edited")
        self._apply(quote, data)
        quote = self.repo.save(self.db, quote)
        log_audit_event(self.db, user, "update", "quote", quote.id)
        return quote

    def delete_quote(self, quote_id: int, user: User) -> None:
        quote = self.get_quote(quote_id)
        if quote.status != "draft":
            raise HTTPException(status_code=400, detail="Only draft quotes can be deleted")
        number = quote.quote_number
        self.repo.delete(self.db, quote)
        log_audit_event(self.db, user, "delete", "quote", quote_id, {"quote_number": number})

    # ------------------------------------------------------------------
    # Status and conversion
    # ------------------------------------------------------------------

    def update_status(self, quote_id: int, status: str, user: User) -> Quote:
        quote = self.get_quote(quote_id)
        if quote.status == status:
            return quote
        if quote.converted_invoice_id:
            raise HTTPException(status_code=400, detail="Converted quotes cannot have their status changed")
        if not is_transition_allowed(quote.status, status):
            raise HTTPException(
                status_code=400, detail=f"Invalid quote status transition from {quote.status} to {status}"
            )
        if status == "sent" and quote.valid_until < today_local():
            raise HTTPException(status_code=400, detail="Quote validity has already passed")

        previous = quote.status
        quote.status = status
        quote = self.repo.save(self.db, quote)
        log_audit_event(
            self.db, user, "update_status", "quote", quote.id, {"old_status": previous, "new_status": status}
        )
        logger.info(f"📝 Quote {quote.quote_number}: {previous} → {status}")
        return quote

    def convert_to_invoice(self, quote_id: int, user: Optional[User] = None) -> Invoice:
        """Raise a draft invoice carrying the accepted quote's lines and terms"""
        quote = self.get_quote(quote_id)
        if quote.status != "accepted":
            raise HTTPException(status_code=400, detail="Only accepted quotes can be converted to invoices")
        if quote.converted_invoice_id:
            raise HTTPException(status_code=400, detail="This quote has already been converted to an invoice")
        if not quote.line_items:
            raise HTTPException(status_code=400, detail="Quote has no line items and cannot be converted")

        today = today_local()
        invoice = self.invoices._build_invoice(
            quote.vendor,
            today,
            today + timedelta(days=CONVERTED_INVOICE_DUE_DAYS),
            [
                {
                    "catalog_item_id": item.catalog_item_id,
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "discount_percentage": item.discount_percentage,
                    "vat_rate": item.vat_rate,
                }
                for item in quote.line_items
            ],
            quote.quote_discount_percentage,
            reference=quote.reference,
        )
        # Quote notes are stored escaped already
        invoice.notes = quote.notes
        invoice.internal_notes = quote.internal_notes
        quote.converted_invoice_id = invoice.id
        self.db.commit()
        self.db.refresh(invoice)

        log_audit_event(
            self.db,
            user,
            "create",
            "invoice",
            invoice.id,
            {"converted_from_quote": quote.quote_number, "invoice_number": invoice.invoice_number},
        )
        logger.info(f"🔄 Quote {quote.quote_number} converted to invoice {invoice.invoice_number}")
        return invoice
