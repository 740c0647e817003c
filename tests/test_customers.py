from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from venuehq.domain.customers.schemas import CustomerCreate, CustomerUpdate
from venuehq.domain.customers.service import CustomerService
from venuehq.models import AuditLog
from venuehq.models_table_booking import TableBooking
from venuehq.utils.sanitization import sanitize_search_term, validate_and_sanitize_input

from .conftest import auth_headers


@pytest.fixture()
def customers(db):
    return CustomerService(db)


def test_create_normalises_phone_and_rejects_duplicates(customers, admin):
    customer = customers.create_customer(
        CustomerCreate(first_name=" Sam ", last_name="Guest", mobile_number="07700 900123", email="Sam@Venue.TEST"),
        admin,
    )
    assert customer.first_name == "Sam"
    assert customer.mobile_number == "+447700900123"
    assert customer.email == "sam@venue.test"
    assert customer.sms_opt_in is True

    with pytest.raises(HTTPException) as exc:
        customers.create_customer(CustomerCreate(first_name="Alex", mobile_number="+44 7700 900123"), admin)
    assert exc.value.status_code == 409
    assert exc.value.detail == "A customer with this mobile number already exists"


def test_invalid_input_is_rejected_by_the_schema():
    with pytest.raises(ValidationError):
        CustomerCreate(first_name="   ")
    with pytest.raises(ValidationError):
        CustomerCreate(first_name="Sam", mobile_number="12345")
    with pytest.raises(ValidationError):
        CustomerCreate(first_name="Sam", email="not-an-email")


def test_update_only_touches_sent_fields(customers, make_customer, admin, db):
    customer = make_customer(last_name="Guest", notes="Regular")
    updated = customers.update_customer(customer.id, CustomerUpdate(first_name="Samantha"), admin)
    assert updated.first_name == "Samantha"
    assert updated.last_name == "Guest"
    assert updated.notes == "Regular"

    entry = db.query(AuditLog).filter(AuditLog.resource_type == "customer").one()
    assert entry.operation_type == "update"
    assert entry.details == {"fields": ["first_name"]}


def test_update_cannot_take_another_customers_number(customers, make_customer, admin):
    make_customer(mobile_number="+447700900201")
    other = make_customer(mobile_number="+447700900202")
    with pytest.raises(HTTPException) as exc:
        customers.update_customer(other.id, CustomerUpdate(mobile_number="07700900201"), admin)
    assert exc.value.status_code == 409


def test_customers_with_bookings_are_kept(customers, make_customer, admin, db):
    customer = make_customer()
    db.add(
        TableBooking(
            booking_reference="TB-2026-0001",
            customer_id=customer.id,
            booking_date=date(2026, 10, 24),
            booking_time="19:00",
            party_size=4,
        )
    )
    db.commit()

    with pytest.raises(HTTPException) as exc:
        customers.delete_customer(customer.id, admin)
    assert exc.value.detail == "Customers with bookings cannot be deleted"

    loner = make_customer()
    customers.delete_customer(loner.id, admin)
    with pytest.raises(HTTPException) as exc:
        customers.get_customer(loner.id)
    assert exc.value.status_code == 404


def test_sms_opt_out_is_timestamped(customers, make_customer, admin):
    customer = make_customer()
    opted_out = customers.set_sms_opt_in(customer.id, False, admin)
    assert opted_out.sms_opt_in is False
    assert opted_out.sms_opt_out_at is not None

    opted_in = customers.set_sms_opt_in(customer.id, True, admin)
    assert opted_in.sms_opt_out_at is None


def test_find_or_create_matches_on_phone_and_fills_gaps(customers, make_customer):
    existing = make_customer(first_name="Sam", mobile_number="+447700900301", last_name=None)

    found = customers.find_or_create_customer("Samuel", "Jones", "07700 900301", email="SAM@venue.test")
    assert found.id == existing.id
    assert found.first_name == "Sam"
    assert found.last_name == "Jones"
    assert found.email == "sam@venue.test"

    created = customers.find_or_create_customer(" Alex ", None, "07700900302")
    assert created.id != existing.id
    assert created.first_name == "Alex"
    assert created.mobile_number == "+447700900302"

    with pytest.raises(HTTPException) as exc:
        customers.find_or_create_customer("Jo", None, "not a phone")
    assert exc.value.detail == "Invalid phone number"


def test_customer_list_search(client, make_customer, admin_headers):
    make_customer(first_name="Sam", last_name="Baker")
    make_customer(first_name="Alex", last_name="Carter")
    make_customer(first_name="Jo", last_name="Baxter")

    response = client.get("/customers", params={"search": "Ba%"}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [c["last_name"] for c in body["customers"]] == ["Baker", "Baxter"]
    assert body["page"] == 1


def test_customer_api_permissions(client, make_user):
    viewer = make_user(permissions=[("customers", "view")])
    headers = auth_headers(viewer)
    assert client.get("/customers", headers=headers).status_code == 200

    response = client.post("/customers", json={"first_name": "Sam"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "You do not have permission to perform this action"

    editor = make_user(permissions=[("customers", "manage")])
    created = client.post("/customers", json={"first_name": "Sam"}, headers=auth_headers(editor))
    assert created.status_code == 201

    opt_out = client.put(
        f"/customers/{created.json()['id']}/sms-opt-in", json={"sms_opt_in": False}, headers=auth_headers(editor)
    )
    assert opt_out.json()["sms_opt_in"] is False


def test_notes_are_escaped_and_search_terms_stripped(customers, admin):
    customer = customers.create_customer(CustomerCreate(first_name="Sam", notes="  <b>VIP</b> & friends  "), admin)
    assert customer.notes == "&lt;b&gt;VIP&lt;/b&gt; &amp; friends"

    assert sanitize_search_term("  50%_off,(now)\\ ") == "50offnow"
    assert sanitize_search_term("%%") is None
    assert validate_and_sanitize_input("   ") is None
    with pytest.raises(ValueError):
        validate_and_sanitize_input("x" * 11, max_length=10)
