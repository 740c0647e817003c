"""Route-level permission dependency"""

import logging

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from .auth import get_current_user
from .database import get_db
from .domain.rbac.service import user_has_permission
from .models import User

logger = logging.getLogger(__name__)


def require_permission(module_name: str, action: str):
    """
    Create a dependency that resolves the current user and checks a permission.

    Usage:
        @router.get("/", dependencies=[Depends(require_permission("invoices", "view"))])
        async def list_invoices(user: User = Depends(require_permission("invoices", "view"))): ...
    """

    async def permission_dependency(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not user_has_permission(db, current_user, module_name, action):
            logger.warning(f"⚠️ Permission denied: user {current_user.id} -> {module_name}.{action}")
            raise HTTPException(status_code=403, detail="You do not have permission to perform this action")
        return current_user

    return permission_dependency
