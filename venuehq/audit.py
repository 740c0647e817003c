"""Audit trail for staff actions"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from .models import AuditLog, User

logger = logging.getLogger(__name__)


def log_audit_event(
    db: Session,
    user: Optional[User],
    operation_type: str,
    resource_type: str,
    resource_id: Optional[Any] = None,
    details: Optional[dict[str, Any]] = None,
    operation_status: str = "success",
) -> None:
    """
    Record an audit row after the caller has committed its own changes.
    A failed audit write is logged and rolled back, never raised.
    """
    try:
        db.add(
            AuditLog(
                user_id=user.id if user else None,
                user_email=user.email if user else None,
                operation_type=operation_type,
                resource_type=resource_type,
                resource_id=str(resource_id) if resource_id is not None else None,
                operation_status=operation_status,
                details=details,
            )
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write audit log for {operation_type} {resource_type}: {e}")
