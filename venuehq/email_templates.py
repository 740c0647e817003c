"""
MJML Email Templates
Invoice and reminder emails, compiled to HTML by mjml before sending
"""

from html import escape
from typing import Optional

from .config import VENUE_CONTACT_PHONE, VENUE_NAME

# Venue theme colours - Green/Slate
THEME = {
    "primary": "#15803d",
    "primary_light": "#dcfce7",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML wrapper shared by every email"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{escape(cta_url)}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px 0 20px">
          <mj-column>
            <mj-text font-size="22px" font-weight="700" color="{THEME['primary']}" padding="0">
              {escape(VENUE_NAME)}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 32px 0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {escape(VENUE_NAME)} &bull; {escape(VENUE_CONTACT_PHONE)}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _amount_block(amount: float, caption: str) -> str:
    return f"""
    <mj-text align="center" font-size="32px" font-weight="700" color="{THEME['text_primary']}" padding="20px 0 0 0">
      &pound;{amount:,.2f}
    </mj-text>
    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" padding="0 0 20px 0">
      {caption}
    </mj-text>
    """


def invoice_email_template(
    contact_name: str,
    invoice_number: str,
    total_amount: float,
    outstanding_amount: float,
    due_date: str,
    payment_url: Optional[str] = None,
    message: Optional[str] = None,
) -> str:
    """Invoice ready for payment, PDF attached"""
    custom_message = ""
    if message:
        custom_message = f"<mj-text>{escape(message)}</mj-text>"

    content = f"""
    <mj-text>
      Hi {escape(contact_name)},
    </mj-text>

    <mj-text>
      Please find attached invoice <strong>{invoice_number}</strong> from {escape(VENUE_NAME)}.
    </mj-text>

    {custom_message}

    {_amount_block(outstanding_amount, f"Due {due_date}")}

    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Invoice total: &pound;{total_amount:,.2f}
    </mj-text>
    """

    return get_base_template(
        title=f"Invoice {invoice_number}",
        preview_text=f"Invoice {invoice_number} for £{outstanding_amount:,.2f}",
        content_sections=content,
        cta_url=payment_url,
        cta_label="Pay Now",
    )


def invoice_reminder_template(
    contact_name: str,
    invoice_number: str,
    outstanding_amount: float,
    due_date: str,
    days_overdue: int,
    reminder_label: str,
    payment_url: Optional[str] = None,
) -> str:
    """Overdue invoice reminder"""
    content = f"""
    <mj-text>
      Hi {escape(contact_name)},
    </mj-text>

    <mj-text>
      Our records show that invoice <strong>{invoice_number}</strong> was due on {due_date}
      and is now {days_overdue} days overdue.
    </mj-text>

    {_amount_block(outstanding_amount, "Outstanding balance")}

    <mj-text color="{THEME['text_muted']}">
      If you have already paid, please ignore this email. Otherwise we would be grateful
      if you could settle the balance at your earliest convenience.
    </mj-text>
    """

    return get_base_template(
        title=f"{reminder_label}: Invoice {invoice_number}",
        preview_text=f"£{outstanding_amount:,.2f} is {days_overdue} days overdue",
        content_sections=content,
        cta_url=payment_url,
        cta_label="Pay Now",
    )
