import os

# Configure the app for testing before anything imports venuehq.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("TWILIO_ACCOUNT_SID", None)
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("RESEND_API_KEY", None)

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from venuehq.database import Base, get_db  # noqa: E402
from venuehq.domain.rbac.repository import RbacRepository  # noqa: E402
from venuehq.main import app  # noqa: E402
from venuehq.models import Customer, Permission, Role, RolePermission, User, UserRole  # noqa: E402
from venuehq.security_utils import create_jwt_token  # noqa: E402

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    RbacRepository.seed_permissions(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make_user(is_super_admin=False, permissions=(), is_active=True, email=None):
        counter["n"] += 1
        user = User(
            email=email or f"staff{counter['n']}@venue.test",
            full_name=f"Staff {counter['n']}",
            is_super_admin=is_super_admin,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        if permissions:
            role = Role(name=f"role-{counter['n']}")
            db.add(role)
            db.flush()
            for module_name, action in permissions:
                permission = (
                    db.query(Permission)
                    .filter(Permission.module_name == module_name, Permission.action == action)
                    .one()
                )
                db.add(RolePermission(role_id=role.id, permission_id=permission.id))
            db.add(UserRole(user_id=user.id, role_id=role.id))
            db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def admin(make_user):
    return make_user(is_super_admin=True)


def auth_headers(user) -> dict:
    token = create_jwt_token({"sub": user.public_id}, expires_delta=timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture()
def make_customer(db):
    counter = {"n": 0}

    def _make_customer(first_name="Sam", mobile_number=None, sms_opt_in=True, **fields):
        counter["n"] += 1
        customer = Customer(
            first_name=first_name,
            last_name=fields.pop("last_name", "Guest"),
            mobile_number=mobile_number or f"+4477009001{counter['n']:02d}",
            sms_opt_in=sms_opt_in,
            **fields,
        )
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return _make_customer


@pytest.fixture()
def sent_sms(monkeypatch):
    """Capture outbound SMS instead of calling Twilio"""
    from venuehq.services import twilio_service

    sent = []

    async def fake_send_sms(db, to_number, body, message_type, **kwargs):
        sent.append({"to": to_number, "body": body, "message_type": message_type, **kwargs})
        return True, None

    monkeypatch.setattr(twilio_service, "send_sms", fake_send_sms)
    return sent
