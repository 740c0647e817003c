from datetime import timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from venuehq.domain.rbac.repository import ACTIONS, MODULES, RbacRepository
from venuehq.domain.rbac.schemas import RoleCreate, RoleUpdate
from venuehq.domain.rbac.service import RbacService, user_has_permission
from venuehq.models import Permission, Role
from venuehq.security_utils import create_jwt_token

from .conftest import auth_headers


@pytest.fixture()
def rbac(db):
    return RbacService(db)


@pytest.fixture()
def system_role(db):
    role = Role(name="Administrator", is_system=True)
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def permission_id(db, module_name, action):
    return (
        db.query(Permission.id)
        .filter(Permission.module_name == module_name, Permission.action == action)
        .scalar()
    )


def test_seeding_is_idempotent(db):
    assert db.query(Permission).count() == len(MODULES) * len(ACTIONS)
    assert RbacRepository.seed_permissions(db) == 0


def test_manage_grants_every_action_in_its_module(db, make_user):
    manager = make_user(permissions=[("invoices", "manage")])
    viewer = make_user(permissions=[("invoices", "view")])

    assert user_has_permission(db, manager, "invoices", "delete")
    assert not user_has_permission(db, manager, "customers", "view")
    assert user_has_permission(db, viewer, "invoices", "view")
    assert not user_has_permission(db, viewer, "invoices", "edit")

    admin = make_user(is_super_admin=True)
    assert user_has_permission(db, admin, "rota", "export")


def test_role_names_are_unique(rbac, admin):
    role = rbac.create_role(RoleCreate(name=" Bar Staff ", description="Front of house"), admin)
    assert role.name == "Bar Staff"
    assert role.is_system is False

    with pytest.raises(HTTPException) as exc:
        rbac.create_role(RoleCreate(name="Bar Staff"), admin)
    assert exc.value.status_code == 409

    with pytest.raises(ValidationError):
        RoleCreate(name="Bar; DROP")


def test_system_roles_are_protected(rbac, admin, system_role, db):
    with pytest.raises(HTTPException) as exc:
        rbac.update_role(system_role.id, RoleUpdate(description="Changed"), admin)
    assert exc.value.detail == "System roles cannot be modified"

    with pytest.raises(HTTPException) as exc:
        rbac.delete_role(system_role.id, admin)
    assert exc.value.detail == "System roles cannot be deleted"

    with pytest.raises(HTTPException) as exc:
        rbac.set_role_permissions(system_role.id, [permission_id(db, "invoices", "view")], admin)
    assert exc.value.detail == "System roles cannot be modified"


def test_role_permissions_and_assignment(rbac, admin, make_user, db):
    role = rbac.create_role(RoleCreate(name="Kitchen"), admin)
    view_id = permission_id(db, "table_bookings", "view")

    with pytest.raises(HTTPException) as exc:
        rbac.set_role_permissions(role.id, [view_id, 999999], admin)
    assert exc.value.detail == "One or more permissions do not exist"

    granted = rbac.set_role_permissions(role.id, [view_id], admin)
    assert [(p.module_name, p.action) for p in granted] == [("table_bookings", "view")]

    chef = make_user()
    assert not user_has_permission(db, chef, "table_bookings", "view")
    roles = rbac.assign_roles(chef.id, [role.id], admin)
    assert [r.name for r in roles] == ["Kitchen"]
    assert user_has_permission(db, chef, "table_bookings", "view")
    assert [(p.module_name, p.action) for p in rbac.get_user_permissions(chef)] == [("table_bookings", "view")]

    with pytest.raises(HTTPException) as exc:
        rbac.assign_roles(999999, [role.id], admin)
    assert exc.value.detail == "User not found"

    with pytest.raises(HTTPException) as exc:
        rbac.assign_roles(chef.id, [999999], admin)
    assert exc.value.detail == "Role not found"


def test_permission_check_endpoint(client, make_user):
    user = make_user(permissions=[("loyalty", "view")])
    response = client.get(
        "/rbac/me/check", params={"module_name": "loyalty", "action": "edit"}, headers=auth_headers(user)
    )
    assert response.json() == {"module_name": "loyalty", "action": "edit", "allowed": False}

    mine = client.get("/rbac/me/permissions", headers=auth_headers(user)).json()
    assert [(p["module_name"], p["action"]) for p in mine] == [("loyalty", "view")]

    assert client.get("/rbac/roles", headers=auth_headers(user)).status_code == 403


def test_role_api(client, admin_headers):
    created = client.post("/rbac/roles", json={"name": "Door Team"}, headers=admin_headers)
    assert created.status_code == 201
    role_id = created.json()["id"]

    renamed = client.patch(f"/rbac/roles/{role_id}", json={"name": "Door Supervisors"}, headers=admin_headers)
    assert renamed.json()["name"] == "Door Supervisors"

    assert client.delete(f"/rbac/roles/{role_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/rbac/roles/{role_id}/permissions", headers=admin_headers).status_code == 404


def test_authentication_failures(client, make_user):
    assert client.get("/rbac/me/permissions").status_code == 401

    malformed = client.get("/rbac/me/permissions", headers={"Authorization": "Bearer not-a-jwt"})
    assert malformed.status_code == 401
    assert malformed.json()["detail"] == "Invalid token format. Expected a valid JWT token."

    token = create_jwt_token({"sub": "someone"}, expires_delta=timedelta(hours=1))
    bad_claims = client.get("/rbac/me/permissions", headers={"Authorization": f"Bearer {token}"})
    assert bad_claims.json()["detail"] == "Invalid token claims"

    disabled = make_user(is_active=False)
    response = client.get("/rbac/me/permissions", headers=auth_headers(disabled))
    assert response.status_code == 403
    assert response.json()["detail"] == "User account is disabled"
