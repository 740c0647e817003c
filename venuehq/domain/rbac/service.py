"""RBAC service - Permission checks and role management"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import log_audit_event
from ...models import Permission, Role, User
from .repository import RbacRepository
from .schemas import RoleCreate, RoleUpdate

logger = logging.getLogger(__name__)


def user_has_permission(db: Session, user: User, module_name: str, action: str) -> bool:
    """A user passes if they are a super admin or any role grants the action or 'manage'"""
    if user.is_super_admin:
        return True
    pairs = RbacRepository.get_user_permission_pairs(db, user.id)
    return (module_name, action) in pairs or (module_name, "manage") in pairs


class RbacService:
    """Service layer for role and permission management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RbacRepository()

    def get_user_permissions(self, user: User) -> list[Permission]:
        if user.is_super_admin:
            return self.repo.get_permissions(self.db)
        pairs = self.repo.get_user_permission_pairs(self.db, user.id)
        return [p for p in self.repo.get_permissions(self.db) if (p.module_name, p.action) in pairs]

    def list_permissions(self) -> list[Permission]:
        return self.repo.get_permissions(self.db)

    def list_roles(self) -> list[Role]:
        return self.repo.get_roles(self.db)

    def get_role(self, role_id: int) -> Role:
        role = self.repo.get_role(self.db, role_id)
        if not role:
            raise HTTPException(status_code=404, detail="Role not found")
        return role

    def create_role(self, data: RoleCreate, user: User) -> Role:
        if self.repo.get_role_by_name(self.db, data.name):
            raise HTTPException(status_code=409, detail="A role with this name already exists")
        role = self.repo.create_role(self.db, name=data.name, description=data.description, is_system=False)
        log_audit_event(self.db, user, "create", "role", role.id, {"name": role.name})
        logger.info(f"✅ Role created: {role.name}")
        return role

    def update_role(self, role_id: int, data: RoleUpdate, user: User) -> Role:
        role = self.get_role(role_id)
        if role.is_system:
            raise HTTPException(status_code=400, detail="System roles cannot be modified")
        if data.name and data.name != role.name and self.repo.get_role_by_name(self.db, data.name):
            raise HTTPException(status_code=409, detail="A role with this name already exists")
        role = self.repo.update_role(self.db, role, name=data.name, description=data.description)
        log_audit_event(self.db, user, "update", "role", role.id, data.model_dump(exclude_none=True))
        return role

    def delete_role(self, role_id: int, user: User) -> None:
        role = self.get_role(role_id)
        if role.is_system:
            raise HTTPException(status_code=400, detail="System roles cannot be deleted")
        name = role.name
        self.repo.delete_role(self.db, role)
        log_audit_event(self.db, user, "delete", "role", role_id, {"name": name})
        logger.info(f"🗑️ Role deleted: {name}")

    def get_role_permissions(self, role_id: int) -> list[Permission]:
        self.get_role(role_id)
        return self.repo.get_role_permissions(self.db, role_id)

    def set_role_permissions(self, role_id: int, permission_ids: list[int], user: User) -> list[Permission]:
        role = self.get_role(role_id)
        if role.is_system:
            raise HTTPException(status_code=400, detail="System roles cannot be modified")
        if self.repo.count_permissions(self.db, permission_ids) != len(set(permission_ids)):
            raise HTTPException(status_code=400, detail="One or more permissions do not exist")
        self.repo.replace_role_permissions(self.db, role, permission_ids)
        log_audit_event(self.db, user, "update", "role_permissions", role.id, {"permission_ids": permission_ids})
        return self.repo.get_role_permissions(self.db, role_id)

    def assign_roles(self, user_id: int, role_ids: list[int], actor: User) -> list[Role]:
        target = self.repo.get_user(self.db, user_id)
        if not target:
            raise HTTPException(status_code=404, detail="User not found")
        for role_id in set(role_ids):
            self.get_role(role_id)
        self.repo.replace_user_roles(self.db, target, role_ids)
        log_audit_event(self.db, actor, "update", "user_roles", user_id, {"role_ids": role_ids})
        return self.repo.get_user_roles(self.db, user_id)
