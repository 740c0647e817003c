"""RBAC domain schemas - Pydantic models for roles and permissions"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

ROLE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\s-]+$")


def _validate_role_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Role name is required")
    if len(v) > 50:
        raise ValueError("Role name must be 50 characters or fewer")
    if not ROLE_NAME_PATTERN.match(v):
        raise ValueError("Role name can only contain letters, numbers, spaces, hyphens and underscores")
    return v


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _validate_role_name(v)


class RoleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _validate_role_name(v)


class PermissionResponse(BaseModel):
    id: int
    module_name: str
    action: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_system: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RolePermissionsUpdate(BaseModel):
    permission_ids: list[int]


class UserRolesUpdate(BaseModel):
    role_ids: list[int]


class PermissionCheck(BaseModel):
    module_name: str
    action: str
    allowed: bool
