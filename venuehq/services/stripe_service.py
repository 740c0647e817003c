"""
Stripe Checkout Service
Creates hosted payment pages for booking deposits and invoice balances
over the Stripe REST API
"""

import logging
from typing import Any, Optional

import httpx

from ..config import STRIPE_CURRENCY, STRIPE_SECRET_KEY
from ..shared.money import to_pence

logger = logging.getLogger(__name__)

STRIPE_API_URL = "https://api.stripe.com/v1"


def is_configured() -> bool:
    return bool(STRIPE_SECRET_KEY)


async def create_checkout_session(
    amount: float,
    description: str,
    success_url: str,
    cancel_url: str,
    metadata: Optional[dict[str, str]] = None,
    customer_email: Optional[str] = None,
) -> dict[str, Any]:
    """
    Create a one-off Checkout Session

    Returns:
        Dict with success status and, on success, session_id and url
    """
    if not is_configured():
        logger.warning("⚠️ Stripe not configured, skipping checkout session")
        return {"success": False, "reason": "stripe_not_configured", "message": "Payments are not configured"}

    form: dict[str, Any] = {
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "line_items[0][quantity]": 1,
        "line_items[0][price_data][currency]": STRIPE_CURRENCY,
        "line_items[0][price_data][unit_amount]": to_pence(amount),
        "line_items[0][price_data][product_data][name]": description,
    }
    if customer_email:
        form["customer_email"] = customer_email
    for key, value in (metadata or {}).items():
        form[f"metadata[{key}]"] = value

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{STRIPE_API_URL}/checkout/sessions",
                data=form,
                auth=(STRIPE_SECRET_KEY, ""),
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Stripe request failed: {e}")
        return {"success": False, "reason": "request_failed", "message": str(e)}

    if response.status_code != 200:
        error = response.json().get("error", {}).get("message", response.text)
        logger.error(f"❌ Stripe checkout session failed ({response.status_code}): {error}")
        return {"success": False, "reason": "stripe_error", "message": error}

    session = response.json()
    logger.info(f"✅ Stripe checkout session created: {session['id']}")
    return {"success": True, "session_id": session["id"], "url": session["url"]}


async def retrieve_checkout_session(session_id: str) -> Optional[dict[str, Any]]:
    """Fetch a Checkout Session, or None when it cannot be read"""
    if not is_configured():
        return None
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(
                f"{STRIPE_API_URL}/checkout/sessions/{session_id}",
                auth=(STRIPE_SECRET_KEY, ""),
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Stripe request failed: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"❌ Could not retrieve Stripe session {session_id}: HTTP {response.status_code}")
        return None
    return response.json()
