"""
Invoice and Payment Models for the Invoicing System
"""

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_public_id


class InvoiceVendor(Base):
    """Who an invoice is addressed to"""

    __tablename__ = "invoice_vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    vat_number = Column(String(50), nullable=True)
    payment_terms = Column(Integer, default=30, nullable=False)  # Days until due
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    invoices = relationship("Invoice", back_populates="vendor")


class LineItemCatalogItem(Base):
    """Saved line item that can be dropped into an invoice"""

    __tablename__ = "line_item_catalog"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    default_price = Column(Float, default=0, nullable=False)
    default_vat_rate = Column(Float, default=20, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    # Public UUID for payment links (prevents enumeration)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)
    invoice_number = Column(String(20), unique=True, nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("invoice_vendors.id"), nullable=False)
    recurring_invoice_id = Column(Integer, ForeignKey("recurring_invoices.id"), nullable=True)

    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    reference = Column(String(255), nullable=True)

    # Totals, recomputed from line items on every write
    invoice_discount_percentage = Column(Float, default=0, nullable=False)
    subtotal_amount = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    vat_amount = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)
    paid_amount = Column(Float, default=0, nullable=False)

    # draft, sent, partially_paid, paid, overdue, void
    status = Column(String(20), default="draft", nullable=False, index=True)
    notes = Column(Text, nullable=True)  # Printed on the invoice
    internal_notes = Column(Text, nullable=True)

    payment_link = Column(Text, nullable=True)
    stripe_session_id = Column(String(255), nullable=True)
    sent_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    last_reminder_sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vendor = relationship("InvoiceVendor", back_populates="invoices")
    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.position",
    )
    payments = relationship("InvoicePayment", back_populates="invoice", cascade="all, delete-orphan")
    email_logs = relationship("InvoiceEmailLog", back_populates="invoice", cascade="all, delete-orphan")

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None

    @property
    def outstanding_amount(self) -> float:
        return round((self.total_amount or 0) - (self.paid_amount or 0), 2)


class InvoiceLineItem(Base):
    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    catalog_item_id = Column(Integer, ForeignKey("line_item_catalog.id"), nullable=True)
    position = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    discount_percentage = Column(Float, default=0, nullable=False)
    vat_rate = Column(Float, default=20, nullable=False)

    # Derived
    subtotal_amount = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    vat_amount = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)

    invoice = relationship("Invoice", back_populates="line_items")


class InvoicePayment(Base):
    __tablename__ = "invoice_payments"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(30), nullable=True)  # bank_transfer, card, cash, stripe
    reference = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="payments")


class InvoiceEmailLog(Base):
    __tablename__ = "invoice_email_logs"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    sent_to = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    email_type = Column(String(20), default="invoice", nullable=False)  # invoice, reminder
    status = Column(String(20), nullable=False)  # sent, failed
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="email_logs")


class RecurringInvoice(Base):
    """Template that produces a draft invoice on a schedule"""

    __tablename__ = "recurring_invoices"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("invoice_vendors.id"), nullable=False)
    frequency = Column(String(20), nullable=False)  # weekly, monthly, quarterly, yearly
    next_invoice_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    days_before_due = Column(Integer, default=30, nullable=False)
    reference = Column(String(255), nullable=True)
    invoice_discount_percentage = Column(Float, default=0, nullable=False)
    line_items = Column(JSON, nullable=False)  # [{description, quantity, unit_price, discount_percentage, vat_rate}]
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_invoice_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vendor = relationship("InvoiceVendor")


class Quote(Base):
    """Priced offer to a vendor that can later become an invoice"""

    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    quote_number = Column(String(20), unique=True, nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("invoice_vendors.id"), nullable=False)

    quote_date = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False)
    reference = Column(String(255), nullable=True)

    quote_discount_percentage = Column(Float, default=0, nullable=False)
    subtotal_amount = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    vat_amount = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)

    # draft, sent, accepted, rejected, expired
    status = Column(String(20), default="draft", nullable=False, index=True)
    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    converted_invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vendor = relationship("InvoiceVendor")
    line_items = relationship(
        "QuoteLineItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteLineItem.position",
    )

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None


class QuoteLineItem(Base):
    __tablename__ = "quote_line_items"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    catalog_item_id = Column(Integer, ForeignKey("line_item_catalog.id"), nullable=True)
    position = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    discount_percentage = Column(Float, default=0, nullable=False)
    vat_rate = Column(Float, default=20, nullable=False)

    subtotal_amount = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    vat_amount = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)

    quote = relationship("Quote", back_populates="line_items")
