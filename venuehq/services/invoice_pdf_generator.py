"""
Invoice PDF Generator
Renders an invoice, its line items and payment history to an A4 PDF
"""

import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..config import VENUE_CONTACT_PHONE, VENUE_NAME
from ..models_invoice import Invoice
from ..shared.money import format_currency

logger = logging.getLogger(__name__)


class InvoicePDFGenerator:
    """Generate a branded invoice PDF"""

    def __init__(self, invoice: Invoice):
        self.invoice = invoice
        self.vendor = invoice.vendor

        self.page_width, self.page_height = A4
        self.margin = 0.75 * inch
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#15803d")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        logger.info(f"📄 Generating invoice PDF for {self.invoice.invoice_number}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Invoice {self.invoice.invoice_number}",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "InvoiceTitle",
            parent=styles["Heading1"],
            fontSize=24,
            textColor=self.brand_color,
            spaceAfter=12,
        )
        body_style = ParagraphStyle(
            "InvoiceBody",
            parent=styles["Normal"],
            fontSize=10,
            textColor=self.dark_gray,
            spaceAfter=6,
        )

        story = [
            Paragraph(escape(VENUE_NAME), title_style),
            Paragraph(f"INVOICE {self.invoice.invoice_number}", body_style),
            Spacer(1, 0.3 * inch),
            self._info_table(),
            Spacer(1, 0.4 * inch),
            self._line_items_table(),
            Spacer(1, 0.2 * inch),
            self._totals_table(),
        ]

        if self.invoice.payments:
            story.append(Spacer(1, 0.3 * inch))
            story.append(Paragraph("<b>Payments received</b>", body_style))
            for payment in self.invoice.payments:
                method = (payment.payment_method or "").replace("_", " ")
                story.append(
                    Paragraph(
                        f"{payment.payment_date.strftime('%d %b %Y')}: {format_currency(payment.amount)} {method}",
                        body_style,
                    )
                )

        if self.invoice.notes:
            story.append(Spacer(1, 0.3 * inch))
            story.append(Paragraph("<b>Notes</b>", body_style))
            # notes are stored HTML-escaped
            story.append(Paragraph(self.invoice.notes.replace("\n", "<br/>"), body_style))

        story.append(Spacer(1, 0.4 * inch))
        story.append(Paragraph(f"{escape(VENUE_NAME)} &bull; {escape(VENUE_CONTACT_PHONE)}", body_style))

        doc.build(story)
        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Invoice PDF generated ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _info_table(self) -> Table:
        vendor_lines = [self.vendor.name]
        if self.vendor.contact_name:
            vendor_lines.append(self.vendor.contact_name)
        if self.vendor.address:
            vendor_lines.append(self.vendor.address)
        if self.vendor.vat_number:
            vendor_lines.append(f"VAT: {self.vendor.vat_number}")

        info_data = [
            ["Bill to:", "\n".join(vendor_lines)],
            ["Invoice date:", self.invoice.invoice_date.strftime("%d %B %Y")],
            ["Due date:", self.invoice.due_date.strftime("%d %B %Y")],
            ["Status:", self.invoice.status.replace("_", " ").title()],
        ]
        if self.invoice.reference:
            info_data.append(["Reference:", self.invoice.reference])

        table = Table(info_data, colWidths=[1.5 * inch, 4.5 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 10),
                    ("FONT", (1, 0), (1, -1), "Helvetica", 10),
                    ("TEXTCOLOR", (0, 0), (-1, -1), self.dark_gray),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
                ]
            )
        )
        return table

    def _line_items_table(self) -> Table:
        rows = [["Description", "Qty", "Unit price", "Disc.", "VAT", "Total"]]
        for item in self.invoice.line_items:
            rows.append(
                [
                    item.description,
                    f"{item.quantity:g}",
                    format_currency(item.unit_price),
                    f"{item.discount_percentage:g}%" if item.discount_percentage else "",
                    f"{item.vat_rate:g}%",
                    format_currency(item.total_amount),
                ]
            )

        widths = [2.6 * inch, 0.6 * inch, 1.0 * inch, 0.6 * inch, 0.6 * inch, 1.0 * inch]
        table = Table(rows, colWidths=widths, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 10),
                    ("FONT", (0, 1), (-1, -1), "Helvetica", 9),
                    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#e2e8f0")),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        return table

    def _totals_table(self) -> Table:
        invoice = self.invoice
        rows = [["Subtotal", format_currency(invoice.subtotal_amount)]]
        if invoice.discount_amount:
            rows.append(
                [f"Discount ({invoice.invoice_discount_percentage:g}%)", f"-{format_currency(invoice.discount_amount)}"]
            )
        rows.append(["VAT", format_currency(invoice.vat_amount)])
        rows.append(["Total", format_currency(invoice.total_amount)])
        if invoice.paid_amount:
            rows.append(["Paid", f"-{format_currency(invoice.paid_amount)}"])
            rows.append(["Balance due", format_currency(invoice.total_amount - invoice.paid_amount)])

        table = Table(rows, colWidths=[self.content_width - 1.5 * inch, 1.5 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (-1, -1), "Helvetica", 10),
                    ("FONT", (0, -1), (-1, -1), "Helvetica-Bold", 11),
                    ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                    ("LINEABOVE", (0, -1), (-1, -1), 1, self.dark_gray),
                ]
            )
        )
        return table
