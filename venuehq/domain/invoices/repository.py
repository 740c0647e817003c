"""Invoice repository - Database operations for invoices, vendors, catalog and recurring templates"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models_invoice import (
    Invoice,
    InvoicePayment,
    InvoiceVendor,
    LineItemCatalogItem,
    RecurringInvoice,
)

UNPAID_STATUSES = ("draft", "sent", "partially_paid", "overdue")
OVERDUE_CANDIDATES = ("sent", "partially_paid")


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def save(db: Session, row):
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def delete(db: Session, row) -> None:
        db.delete(row)
        db.commit()

    # ------------------------------------------------------------------
    # Vendors and catalog
    # ------------------------------------------------------------------

    @staticmethod
    def list_vendors(db: Session, include_inactive: bool = False) -> list[InvoiceVendor]:
        query = db.query(InvoiceVendor)
        if not include_inactive:
            query = query.filter(InvoiceVendor.is_active.is_(True))
        return query.order_by(InvoiceVendor.name).all()

    @staticmethod
    def get_vendor(db: Session, vendor_id: int) -> Optional[InvoiceVendor]:
        return db.query(InvoiceVendor).filter(InvoiceVendor.id == vendor_id).first()

    @staticmethod
    def vendor_invoice_count(db: Session, vendor_id: int) -> int:
        return db.query(func.count(Invoice.id)).filter(Invoice.vendor_id == vendor_id).scalar()

    @staticmethod
    def list_catalog(db: Session) -> list[LineItemCatalogItem]:
        return (
            db.query(LineItemCatalogItem)
            .filter(LineItemCatalogItem.is_active.is_(True))
            .order_by(LineItemCatalogItem.name)
            .all()
        )

    @staticmethod
    def get_catalog_item(db: Session, item_id: int) -> Optional[LineItemCatalogItem]:
        return db.query(LineItemCatalogItem).filter(LineItemCatalogItem.id == item_id).first()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    @staticmethod
    def get_invoice(db: Session, invoice_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .options(joinedload(Invoice.vendor))
            .filter(Invoice.id == invoice_id)
            .first()
        )

    @staticmethod
    def get_by_number(db: Session, invoice_number: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()

    @staticmethod
    def get_by_stripe_session(db: Session, session_id: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.stripe_session_id == session_id).first()

    @staticmethod
    def count_invoices(db: Session) -> int:
        return db.query(func.count(Invoice.id)).scalar()

    @staticmethod
    def list_invoices(
        db: Session,
        status: Optional[str],
        vendor_id: Optional[int],
        search: Optional[str],
        page: int,
        page_size: int,
    ) -> tuple[list[Invoice], int]:
        query = db.query(Invoice).options(joinedload(Invoice.vendor))
        if status == "unpaid":
            query = query.filter(Invoice.status.in_(UNPAID_STATUSES))
        elif status:
            query = query.filter(Invoice.status == status)
        if vendor_id:
            query = query.filter(Invoice.vendor_id == vendor_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Invoice.invoice_number.ilike(pattern), Invoice.reference.ilike(pattern)))

        total = query.count()
        invoices = (
            query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return invoices, total

    @staticmethod
    def overdue_candidates(db: Session, today: date) -> list[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.status.in_(OVERDUE_CANDIDATES), Invoice.due_date < today)
            .all()
        )

    @staticmethod
    def overdue_invoices(db: Session, today: date) -> list[Invoice]:
        return (
            db.query(Invoice)
            .options(joinedload(Invoice.vendor))
            .filter(Invoice.status.in_(OVERDUE_CANDIDATES + ("overdue",)), Invoice.due_date < today)
            .order_by(Invoice.due_date)
            .all()
        )

    @staticmethod
    def outstanding_totals(db: Session) -> tuple[float, float, int]:
        """(total outstanding, overdue outstanding, overdue count)"""
        balance = Invoice.total_amount - Invoice.paid_amount
        outstanding = (
            db.query(func.coalesce(func.sum(balance), 0))
            .filter(Invoice.status.in_(("sent", "partially_paid", "overdue")))
            .scalar()
        )
        overdue, overdue_count = (
            db.query(func.coalesce(func.sum(balance), 0), func.count(Invoice.id))
            .filter(Invoice.status == "overdue")
            .one()
        )
        return float(outstanding), float(overdue), overdue_count

    @staticmethod
    def payments_between(db: Session, start: date, end: date) -> float:
        return float(
            db.query(func.coalesce(func.sum(InvoicePayment.amount), 0))
            .filter(InvoicePayment.payment_date >= start, InvoicePayment.payment_date <= end)
            .scalar()
        )

    @staticmethod
    def count_by_status(db: Session, status: str) -> int:
        return db.query(func.count(Invoice.id)).filter(Invoice.status == status).scalar()

    # ------------------------------------------------------------------
    # Recurring
    # ------------------------------------------------------------------

    @staticmethod
    def list_recurring(db: Session) -> list[RecurringInvoice]:
        return db.query(RecurringInvoice).order_by(RecurringInvoice.next_invoice_date).all()

    @staticmethod
    def get_recurring(db: Session, recurring_id: int) -> Optional[RecurringInvoice]:
        return db.query(RecurringInvoice).filter(RecurringInvoice.id == recurring_id).first()

    @staticmethod
    def due_recurring(db: Session, today: date) -> list[RecurringInvoice]:
        return (
            db.query(RecurringInvoice)
            .filter(RecurringInvoice.is_active.is_(True), RecurringInvoice.next_invoice_date <= today)
            .all()
        )
