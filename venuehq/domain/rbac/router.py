"""RBAC router - Roles, permissions and user role assignment"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...permissions import require_permission
from .schemas import (
    PermissionCheck,
    PermissionResponse,
    RoleCreate,
    RolePermissionsUpdate,
    RoleResponse,
    RoleUpdate,
    UserRolesUpdate,
)
from .service import RbacService, user_has_permission

router = APIRouter(prefix="/rbac", tags=["Roles & Permissions"])


def get_rbac_service(db: Session = Depends(get_db)) -> RbacService:
    """Dependency injection for RbacService"""
    return RbacService(db)


# ============================================================================
# CURRENT USER
# ============================================================================


@router.get("/me/permissions", response_model=list[PermissionResponse])
async def get_my_permissions(
    current_user: User = Depends(get_current_user),
    service: RbacService = Depends(get_rbac_service),
):
    return service.get_user_permissions(current_user)


@router.get("/me/check", response_model=PermissionCheck)
async def check_my_permission(
    module_name: str,
    action: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PermissionCheck(
        module_name=module_name,
        action=action,
        allowed=user_has_permission(db, current_user, module_name, action),
    )


# ============================================================================
# ROLES
# ============================================================================


@router.get("/permissions", response_model=list[PermissionResponse])
async def list_permissions(
    _user: User = Depends(require_permission("roles", "view")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.list_permissions()


@router.get("/roles", response_model=list[RoleResponse])
async def list_roles(
    _user: User = Depends(require_permission("roles", "view")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.list_roles()


@router.post("/roles", response_model=RoleResponse, status_code=201)
async def create_role(
    data: RoleCreate,
    current_user: User = Depends(require_permission("roles", "manage")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.create_role(data, current_user)


@router.patch("/roles/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: int,
    data: RoleUpdate,
    current_user: User = Depends(require_permission("roles", "manage")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.update_role(role_id, data, current_user)


@router.delete("/roles/{role_id}")
async def delete_role(
    role_id: int,
    current_user: User = Depends(require_permission("roles", "manage")),
    service: RbacService = Depends(get_rbac_service),
):
    service.delete_role(role_id, current_user)
    return {"success": True}


@router.get("/roles/{role_id}/permissions", response_model=list[PermissionResponse])
async def get_role_permissions(
    role_id: int,
    _user: User = Depends(require_permission("roles", "view")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.get_role_permissions(role_id)


@router.put("/roles/{role_id}/permissions", response_model=list[PermissionResponse])
async def set_role_permissions(
    role_id: int,
    data: RolePermissionsUpdate,
    current_user: User = Depends(require_permission("roles", "manage")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.set_role_permissions(role_id, data.permission_ids, current_user)


@router.put("/users/{user_id}/roles", response_model=list[RoleResponse])
async def assign_user_roles(
    user_id: int,
    data: UserRolesUpdate,
    current_user: User = Depends(require_permission("roles", "manage")),
    service: RbacService = Depends(get_rbac_service),
):
    return service.assign_roles(user_id, data.role_ids, current_user)
