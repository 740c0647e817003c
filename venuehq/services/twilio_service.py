"""
Twilio SMS Service
Sends SMS over the Twilio REST API and records every attempt in the message log
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER
from ..models_sms import Message
from ..security_utils import mask_phone

logger = logging.getLogger(__name__)

GSM7_CHARACTERS = set(
    "@£$¥èéùìòÇ\nØø\rÅåΔ_ΦΓΛΩΠΨΣΘΞÆæßÉ !\"#¤%&'()*+,-./0123456789:;<=>?"
    "¡ABCDEFGHIJKLMNOPQRSTUVWXYZÄÖÑÜ§¿abcdefghijklmnopqrstuvwxyzäöñüà"
)
GSM7_EXTENDED = set("^{}\\[~]|€\f")


def count_sms_segments(body: str) -> int:
    """Number of billable segments: GSM-7 is 160/153 chars, anything else is UCS-2 at 70/67"""
    if all(ch in GSM7_CHARACTERS or ch in GSM7_EXTENDED for ch in body):
        length = sum(2 if ch in GSM7_EXTENDED else 1 for ch in body)
        single, multi = 160, 153
    else:
        length = len(body)
        single, multi = 70, 67
    if length <= single:
        return 1
    return -(-length // multi)


def is_configured() -> bool:
    return bool(TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER)


def _log_message(db: Session, **fields) -> Message:
    message = Message(direction="outbound", from_number=TWILIO_FROM_NUMBER, **fields)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


async def send_sms(
    db: Session,
    to_phone: str,
    message_body: str,
    message_type: str,
    customer_id: Optional[int] = None,
    template_key: Optional[str] = None,
    dedupe_key: Optional[str] = None,
) -> tuple[bool, Optional[str]]:
    """
    Send SMS via Twilio

    Args:
        db: Database session
        to_phone: Recipient phone number in E.164 format
        message_body: SMS message content
        message_type: Type of message (booking_confirmation, loyalty_welcome, ...)
        customer_id: Optional customer the message belongs to
        template_key: Optional template the body was rendered from
        dedupe_key: Optional idempotency key stored with the log row

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not to_phone:
        return False, "No phone number provided"

    if not to_phone.startswith("+"):
        logger.warning(f"Phone number not in E.164 format: {mask_phone(to_phone)}")
        return False, "Phone number must be in E.164 format (e.g., +447700900123)"

    log_fields = {
        "customer_id": customer_id,
        "to_number": to_phone,
        "body": message_body,
        "segments": count_sms_segments(message_body),
        "message_type": message_type,
        "template_key": template_key,
        "dedupe_key": dedupe_key,
    }

    if not is_configured():
        logger.warning("⚠️ Twilio not configured, SMS not sent")
        _log_message(db, status="failed", error_message="SMS provider not configured", **log_fields)
        return False, "SMS provider not configured"

    logger.info(f"📱 Sending SMS: type={message_type}, to={mask_phone(to_phone)}")

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"https://api.twilio.com/2010-04-01/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
                data={"To": to_phone, "From": TWILIO_FROM_NUMBER, "Body": message_body},
                timeout=10.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Twilio API error: {e}")
        _log_message(db, status="failed", error_message=str(e), **log_fields)
        return False, str(e)

    if response.status_code in (200, 201):
        message_sid = response.json().get("sid")
        _log_message(db, status="sent", twilio_sid=message_sid, **log_fields)
        logger.info(f"✅ SMS sent: {message_type} (SID: {message_sid})")
        return True, None

    error_data = response.json()
    error_message = error_data.get("message", "Unknown error")
    error_code = error_data.get("code")
    _log_message(
        db,
        status="failed",
        error_message=f"[{error_code}] {error_message}" if error_code else error_message,
        **log_fields,
    )
    logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
    return False, error_message
