"""
Email Service using Resend
Bodies are written as MJML templates and compiled to responsive HTML
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml2html as mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import invoice_email_template, invoice_reminder_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailSendError(Exception):
    """Raised when an email cannot be compiled or delivered"""


def is_configured() -> bool:
    return bool(RESEND_API_KEY)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailSendError(f"Failed to compile MJML template: {e}") from e

    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    # mjml-python returns an object exposing .html and .errors
    errors = getattr(result, "errors", None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return getattr(result, "html", str(result))


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
    cc: Optional[list[str]] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        attachments: Optional list of {"filename", "content": bytes}

    Returns:
        Resend response dict
    """
    if not is_configured():
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailSendError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if cc:
        email_data["cc"] = cc
    if attachments:
        email_data["attachments"] = [
            {"filename": attachment["filename"], "content": list(attachment["content"])}
            for attachment in attachments
        ]

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailSendError(f"Failed to send email: {e}") from e

    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


# ============================================
# Invoice emails
# ============================================


async def send_invoice_email(
    to: str,
    contact_name: str,
    invoice_number: str,
    total_amount: float,
    outstanding_amount: float,
    due_date: str,
    pdf_bytes: bytes,
    payment_url: Optional[str] = None,
    message: Optional[str] = None,
    subject: Optional[str] = None,
    cc: Optional[list[str]] = None,
) -> dict:
    mjml_content = invoice_email_template(
        contact_name=contact_name,
        invoice_number=invoice_number,
        total_amount=total_amount,
        outstanding_amount=outstanding_amount,
        due_date=due_date,
        payment_url=payment_url,
        message=message,
    )
    return await send_email(
        to=to,
        subject=subject or f"Invoice {invoice_number}",
        mjml_content=mjml_content,
        attachments=[{"filename": f"{invoice_number}.pdf", "content": pdf_bytes}],
        cc=cc,
    )


async def send_invoice_reminder_email(
    to: str,
    contact_name: str,
    invoice_number: str,
    outstanding_amount: float,
    due_date: str,
    days_overdue: int,
    reminder_label: str,
    payment_url: Optional[str] = None,
) -> dict:
    mjml_content = invoice_reminder_template(
        contact_name=contact_name,
        invoice_number=invoice_number,
        outstanding_amount=outstanding_amount,
        due_date=due_date,
        days_overdue=days_overdue,
        reminder_label=reminder_label,
        payment_url=payment_url,
    )
    return await send_email(
        to=to,
        subject=f"{reminder_label}: Invoice {invoice_number} is overdue",
        mjml_content=mjml_content,
    )
