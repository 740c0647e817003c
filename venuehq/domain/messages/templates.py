"""Default SMS wording and {{placeholder}} rendering"""

import re
from typing import Any, Optional

PLACEHOLDER = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")

DEFAULT_TEMPLATES = {
    "booking_confirmation": (
        "Booking confirmation",
        "Hi {{first_name}}, your table for {{party_size}} at {{venue_name}} on {{booking_date}} "
        "at {{booking_time}} is confirmed. Ref {{reference}}. Manage it at {{manage_url}}",
    ),
    "booking_payment_request": (
        "Sunday lunch deposit request",
        "Hi {{first_name}}, please pay your £{{deposit}} deposit to secure Sunday lunch for "
        "{{party_size}} on {{booking_date}}: {{payment_url}}",
    ),
    "booking_cancellation": (
        "Booking cancellation",
        "Hi {{first_name}}, your booking {{reference}} at {{venue_name}} has been cancelled. {{refund_message}}",
    ),
    "loyalty_welcome": (
        "Loyalty welcome",
        "Welcome to {{venue_name}} VIP Club, {{first_name}}! You've earned {{points}} welcome points.",
    ),
    "loyalty_check_in": (
        "Loyalty check-in",
        "Thanks for coming to {{event_name}}, {{first_name}}! +{{points}} points. Balance: {{balance}}.",
    ),
    "loyalty_tier_upgrade": (
        "Loyalty tier upgrade",
        "Congratulations {{first_name}}! You're now a {{tier_name}} member at {{venue_name}}.",
    ),
    "loyalty_achievement": (
        "Loyalty achievement",
        "Achievement unlocked: {{achievement_name}}! +{{points}} points, {{first_name}}.",
    ),
    "loyalty_redemption_code": (
        "Loyalty redemption code",
        "Your code for {{reward_name}} is {{code}}. Show it at the bar within 5 minutes.",
    ),
    "rota_published": (
        "Rota published",
        "Hi {{first_name}}, the rota for w/c {{week_start}} is published. You have {{shift_count}} shift(s).",
    ),
}


def render_template(body: str, context: Optional[dict[str, Any]] = None) -> str:
    """Replace {{key}} placeholders; unknown keys render as empty strings"""
    context = context or {}

    def replace(match: re.Match) -> str:
        value = context.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(replace, body).strip()
