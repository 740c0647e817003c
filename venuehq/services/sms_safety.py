"""
SMS safety checks
Volume limits and duplicate suppression applied before any customer SMS leaves
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import (
    SMS_DEDUPE_WINDOW_HOURS,
    SMS_GLOBAL_HOURLY_LIMIT,
    SMS_RECIPIENT_DAILY_LIMIT,
    SMS_RECIPIENT_HOURLY_LIMIT,
)
from ..models_sms import Message

logger = logging.getLogger(__name__)

COUNTED_STATUSES = ("queued", "sent")


def _stable_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def build_dedupe_key(template_key: str, identity: str, context: Optional[dict] = None) -> str:
    """sha256 over template, recipient identity and the rendering context"""
    payload = {"template_key": template_key, "identity": identity, "context": context or {}}
    return hashlib.sha256(_stable_json(payload).encode()).hexdigest()


def _count_since(db: Session, since: datetime, to_number: Optional[str] = None) -> int:
    query = db.query(Message).filter(
        Message.direction == "outbound",
        Message.status.in_(COUNTED_STATUSES),
        Message.created_at >= since,
    )
    if to_number:
        query = query.filter(Message.to_number == to_number)
    return query.count()


def check_sms_limits(db: Session, to_number: str, now: Optional[datetime] = None) -> Optional[str]:
    """Returns a reason string when a send would break a limit, else None"""
    now = now or datetime.utcnow()
    hour_ago = now - timedelta(hours=1)

    if _count_since(db, hour_ago) >= SMS_GLOBAL_HOURLY_LIMIT:
        logger.warning(f"🚫 Global SMS hourly limit reached ({SMS_GLOBAL_HOURLY_LIMIT})")
        return f"SMS rate limit exceeded: more than {SMS_GLOBAL_HOURLY_LIMIT} messages sent in the last hour"

    if _count_since(db, hour_ago, to_number) >= SMS_RECIPIENT_HOURLY_LIMIT:
        return f"SMS rate limit exceeded: recipient already sent {SMS_RECIPIENT_HOURLY_LIMIT} messages this hour"

    if _count_since(db, now - timedelta(days=1), to_number) >= SMS_RECIPIENT_DAILY_LIMIT:
        return f"SMS rate limit exceeded: recipient already sent {SMS_RECIPIENT_DAILY_LIMIT} messages today"

    return None


def is_duplicate(db: Session, dedupe_key: str, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    since = now - timedelta(hours=SMS_DEDUPE_WINDOW_HOURS)
    return (
        db.query(Message.id)
        .filter(
            Message.dedupe_key == dedupe_key,
            Message.status.in_(COUNTED_STATUSES),
            Message.created_at >= since,
        )
        .first()
        is not None
    )
