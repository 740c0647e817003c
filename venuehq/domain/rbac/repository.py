"""RBAC repository - Database operations for roles and permissions"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Permission, Role, RolePermission, User, UserRole

MODULES = [
    "dashboard",
    "customers",
    "table_bookings",
    "invoices",
    "messages",
    "loyalty",
    "rota",
    "payroll",
    "pnl",
    "short_links",
    "settings",
    "roles",
]
ACTIONS = ["view", "create", "edit", "delete", "manage", "send", "export"]


class RbacRepository:
    """Repository for role and permission database operations"""

    @staticmethod
    def seed_permissions(db: Session) -> int:
        """Insert any missing module/action pairs. Returns the number created."""
        existing = {(p.module_name, p.action) for p in db.query(Permission).all()}
        created = 0
        for module_name in MODULES:
            for action in ACTIONS:
                if (module_name, action) not in existing:
                    db.add(Permission(module_name=module_name, action=action))
                    created += 1
        if created:
            db.commit()
        return created

    @staticmethod
    def get_user_permission_pairs(db: Session, user_id: int) -> set[tuple[str, str]]:
        rows = (
            db.query(Permission.module_name, Permission.action)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .filter(UserRole.user_id == user_id)
            .all()
        )
        return {(module_name, action) for module_name, action in rows}

    @staticmethod
    def get_permissions(db: Session) -> list[Permission]:
        return db.query(Permission).order_by(Permission.module_name, Permission.action).all()

    @staticmethod
    def get_roles(db: Session) -> list[Role]:
        return db.query(Role).order_by(Role.name).all()

    @staticmethod
    def get_role(db: Session, role_id: int) -> Optional[Role]:
        return db.query(Role).filter(Role.id == role_id).first()

    @staticmethod
    def get_role_by_name(db: Session, name: str) -> Optional[Role]:
        return db.query(Role).filter(Role.name == name).first()

    @staticmethod
    def create_role(db: Session, **role_data) -> Role:
        role = Role(**role_data)
        db.add(role)
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def update_role(db: Session, role: Role, **updates) -> Role:
        for key, value in updates.items():
            if value is not None and hasattr(role, key):
                setattr(role, key, value)
        db.commit()
        db.refresh(role)
        return role

    @staticmethod
    def delete_role(db: Session, role: Role) -> None:
        db.delete(role)
        db.commit()

    @staticmethod
    def get_role_permissions(db: Session, role_id: int) -> list[Permission]:
        return (
            db.query(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id)
            .all()
        )

    @staticmethod
    def replace_role_permissions(db: Session, role: Role, permission_ids: list[int]) -> None:
        db.query(RolePermission).filter(RolePermission.role_id == role.id).delete()
        for permission_id in set(permission_ids):
            db.add(RolePermission(role_id=role.id, permission_id=permission_id))
        db.commit()

    @staticmethod
    def count_permissions(db: Session, permission_ids: list[int]) -> int:
        if not permission_ids:
            return 0
        return db.query(Permission).filter(Permission.id.in_(set(permission_ids))).count()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_roles(db: Session, user_id: int) -> list[Role]:
        return db.query(Role).join(UserRole, UserRole.role_id == Role.id).filter(UserRole.user_id == user_id).all()

    @staticmethod
    def replace_user_roles(db: Session, user: User, role_ids: list[int]) -> None:
        db.query(UserRole).filter(UserRole.user_id == user.id).delete()
        for role_id in set(role_ids):
            db.add(UserRole(user_id=user.id, role_id=role_id))
        db.commit()
