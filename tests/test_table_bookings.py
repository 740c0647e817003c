import asyncio
from datetime import date, datetime

import pytest
from fastapi import HTTPException

from venuehq.domain.table_bookings import service as booking_service_module
from venuehq.domain.table_bookings.schemas import BookingCreate, GuestBookingCreate, RecordPaymentRequest
from venuehq.domain.table_bookings.service import (
    TableBookingService,
    generate_manage_token,
    seed_booking_policies,
)
from venuehq.models_hours import BusinessHours
from venuehq.models_sms import Message
from venuehq.models_table_booking import BookingTimeSlot, TableBooking
from venuehq.services import twilio_service

WEDNESDAY = date(2026, 11, 4)
SUNDAY = date(2026, 11, 8)
NOW = datetime(2026, 11, 1, 10, 0)


@pytest.fixture()
def venue(db):
    seed_booking_policies(db)
    # Wednesday evenings and Sunday lunch
    db.add(BusinessHours(day_of_week=3, opens="12:00", closes="23:00", kitchen_opens="17:00", kitchen_closes="21:00"))
    db.add(BusinessHours(day_of_week=0, opens="12:00", closes="22:00", kitchen_opens="12:00", kitchen_closes="17:00"))
    db.commit()
    return TableBookingService(db)


def guest(**overrides):
    fields = {
        "booking_date": WEDNESDAY,
        "booking_time": "19:00",
        "party_size": 4,
        "first_name": "Alex",
        "last_name": "Guest",
        "mobile_number": "07700 900123",
        "email": "Alex@Example.com",
    }
    fields.update(overrides)
    return GuestBookingCreate(**fields)


def staff(**overrides):
    fields = guest().model_dump()
    fields.update(overrides)
    return BookingCreate(**fields)


def test_guest_booking_is_confirmed_and_texted(venue, sent_sms):
    result = asyncio.run(venue.create_booking(guest(), now=NOW))
    booking = result["booking"]

    assert booking.status == "confirmed"
    assert booking.booking_reference.startswith("TB-")
    assert booking.customer.mobile_number == "+447700900123"
    assert booking.customer.email == "alex@example.com"
    assert result["warnings"] == []
    assert "/bookings/manage?token=" in result["manage_url"]

    assert [m["message_type"] for m in sent_sms] == ["booking_confirmation"]
    assert "table for 4" in sent_sms[0]["body"]
    assert booking.confirmation_sent_at is not None


def test_repeat_guest_reuses_customer_record(venue, sent_sms):
    first = asyncio.run(venue.create_booking(guest(), now=NOW))["booking"]
    second = asyncio.run(venue.create_booking(guest(booking_time="17:00", mobile_number="+447700900123"), now=NOW))[
        "booking"
    ]
    assert first.customer_id == second.customer_id
    assert first.booking_reference != second.booking_reference


def test_booking_outside_kitchen_hours_is_rejected(venue):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(venue.create_booking(guest(booking_time="21:30"), now=NOW))
    assert exc.value.status_code == 400
    assert exc.value.detail == "Kitchen is only open from 5pm to 9pm on this day"


def test_capacity_is_never_overridable(venue, db):
    db.add(BookingTimeSlot(day_of_week=3, slot_time="19:00", max_covers=4))
    db.commit()
    asyncio.run(venue.create_booking(guest(), now=NOW))

    with pytest.raises(HTTPException) as exc:
        asyncio.run(
            venue.create_booking(staff(mobile_number="07700900456", override_policy=True), now=NOW)
        )
    assert exc.value.status_code == 409
    assert exc.value.detail == "No availability for 4 people at 7pm"


def test_staff_can_override_advance_notice(venue, sent_sms):
    now = datetime(2026, 11, 4, 18, 30)
    with pytest.raises(HTTPException) as exc:
        asyncio.run(venue.create_booking(guest(), now=now))
    assert exc.value.detail == "Bookings must be made at least 2 hours in advance"

    result = asyncio.run(venue.create_booking(staff(override_policy=True), now=now))
    assert result["warnings"] == ["Bookings must be made at least 2 hours in advance"]
    assert result["booking"].source == "phone"


def test_cash_is_staff_only(venue):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(venue.create_booking(staff(source="website", payment_method="cash"), now=NOW))
    assert exc.value.detail == "Cash payment option is only available for staff bookings"


def test_sunday_lunch_waits_for_payment(venue, sent_sms, monkeypatch):
    async def fake_checkout(**kwargs):
        return {"success": True, "session_id": "cs_test_1", "url": "https://pay.example/cs_test_1"}

    monkeypatch.setattr(booking_service_module.stripe_service, "create_checkout_session", fake_checkout)

    result = asyncio.run(
        venue.create_booking(guest(booking_date=SUNDAY, booking_time="13:00", booking_type="sunday_lunch"), now=NOW)
    )
    booking = result["booking"]
    assert booking.status == "pending_payment"
    assert booking.payment_status == "pending"
    assert booking.deposit_amount == 20.0
    assert booking.payment_link == "https://pay.example/cs_test_1"
    # Guests pay on the website, so no SMS until payment lands
    assert sent_sms == []

    paid = asyncio.run(venue.record_payment(booking.id, RecordPaymentRequest(payment_method="card")))
    assert paid.status == "confirmed"
    assert paid.payment_status == "paid"
    assert [m["message_type"] for m in sent_sms] == ["booking_confirmation"]


def test_sunday_lunch_on_a_weekday_is_rejected(venue):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(venue.create_booking(guest(booking_type="sunday_lunch"), now=NOW))
    assert exc.value.detail == "Sunday lunch is only available on Sundays"


def test_cancelling_paid_sunday_lunch_refunds_by_notice(venue, sent_sms):
    result = asyncio.run(
        venue.create_booking(
            staff(booking_date=SUNDAY, booking_time="13:00", booking_type="sunday_lunch", payment_method="cash"),
            now=NOW,
        )
    )
    booking = result["booking"]
    assert booking.status == "confirmed"
    assert booking.payment_status == "paid"

    cancelled = asyncio.run(venue.cancel_booking(booking.id, "Plans changed", now=datetime(2026, 11, 7, 7, 0)))
    assert cancelled["refund_amount"] == 10.0
    assert cancelled["refund_percentage"] == 50
    assert cancelled["booking"].status == "cancelled"
    assert cancelled["booking"].payment_status == "refunded"
    assert sent_sms[-1]["message_type"] == "booking_cancellation"
    assert "A refund of £10.00 will be processed." in sent_sms[-1]["body"]

    with pytest.raises(HTTPException) as exc:
        asyncio.run(venue.cancel_booking(booking.id))
    assert exc.value.detail == "Booking is already cancelled"


def test_status_transitions_need_a_confirmed_booking(venue, sent_sms):
    booking = asyncio.run(venue.create_booking(guest(), now=NOW))["booking"]
    assert venue.mark_no_show(booking.id).status == "no_show"

    with pytest.raises(HTTPException) as exc:
        venue.mark_completed(booking.id)
    assert exc.value.detail == "Only confirmed bookings can be marked as completed"

    with pytest.raises(HTTPException) as exc:
        venue.delete_booking(booking.id)
    assert exc.value.detail == "Only pending or cancelled bookings can be deleted"


def test_modification_is_checked_against_capacity(venue, db, sent_sms):
    db.add(BookingTimeSlot(day_of_week=3, slot_time="20:00", max_covers=4))
    db.commit()
    booking = asyncio.run(venue.create_booking(guest(party_size=2, booking_time="20:00"), now=NOW))["booking"]

    from venuehq.domain.table_bookings.schemas import BookingUpdate

    allowed = venue.check_modification_allowed(booking, BookingUpdate(party_size=4), now=NOW)
    assert allowed == {"allowed": True, "reason": None}

    blocked = venue.check_modification_allowed(booking, BookingUpdate(party_size=6), now=NOW)
    assert blocked["allowed"] is False
    assert blocked["reason"] == "No availability for 6 people at 8pm"


def test_manage_token_finds_the_booking(venue, sent_sms):
    booking = asyncio.run(venue.create_booking(guest(), now=NOW))["booking"]
    assert venue.get_booking_by_token(generate_manage_token(booking)).id == booking.id

    with pytest.raises(HTTPException) as exc:
        venue.get_booking_by_token("not-a-token")
    assert exc.value.detail == "Invalid or expired booking link"


def test_disabled_service_blocks_availability(venue, db):
    from venuehq.domain.business_hours.service import seed_service_statuses
    from venuehq.models_hours import ServiceStatus

    seed_service_statuses(db)
    status = db.query(ServiceStatus).filter(ServiceStatus.service_code == "table_bookings").one()
    status.is_enabled = False
    status.message = "Closed for refurbishment"
    db.commit()

    result = venue.check_availability(WEDNESDAY, 2, now=NOW)
    assert result == {"available": False, "time_slots": [], "kitchen_hours": None, "message": "Closed for refurbishment"}


def test_public_availability_endpoint(client, venue):
    response = client.get("/table-bookings/availability", params={"booking_date": "2027-06-02", "party_size": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["available"] is True
    assert body["time_slots"][0]["time"] == "17:00"
    assert body["time_slots"][-1]["time"] == "20:30"


def test_staff_booking_list_requires_permission(client, venue, make_user):
    from .conftest import auth_headers

    viewer = make_user(permissions=[("table_bookings", "view")])
    assert client.get("/table-bookings", headers=auth_headers(viewer)).status_code == 200
    assert client.delete("/table-bookings/1", headers=auth_headers(viewer)).status_code == 403
    assert client.get("/table-bookings").status_code == 401


def test_availability_range_and_next_slot(venue, monkeypatch):
    monkeypatch.setattr(booking_service_module, "now_local", lambda: NOW)

    # No weekly row for Tuesday
    assert venue.get_availability_range(date(2026, 11, 3), WEDNESDAY, 2) == {
        "2026-11-03": False,
        "2026-11-04": True,
    }
    with pytest.raises(HTTPException) as exc:
        venue.get_availability_range(WEDNESDAY, date(2026, 11, 3), 2)
    assert exc.value.detail == "End date cannot be before start date"

    assert venue.get_next_available_slot(2) == {
        "booking_date": date(2026, 11, 1),
        "time": "12:00",
        "available_capacity": 50,
    }
    assert venue.get_next_available_slot(2, preferred_time="19:10")["time"] == "16:30"

    # This Sunday's cutoff has passed
    lunch = venue.get_next_available_slot(2, "sunday_lunch")
    assert lunch["booking_date"] == SUNDAY
    assert lunch["time"] == "12:00"


def test_dashboard_stats(venue, db, make_customer):
    customer = make_customer()
    for n, (day, status, party) in enumerate(
        [
            (WEDNESDAY, "confirmed", 4),
            (WEDNESDAY, "cancelled", 2),
            (date(2026, 11, 6), "confirmed", 3),
            (SUNDAY, "pending_payment", 6),
            (date(2026, 10, 20), "completed", 2),
        ],
        start=1,
    ):
        db.add(
            TableBooking(
                booking_reference=f"TB-2026-{n:04d}",
                customer_id=customer.id,
                booking_date=day,
                booking_time="19:00",
                party_size=party,
                status=status,
            )
        )
    db.commit()

    assert venue.get_dashboard_stats(today=WEDNESDAY) == {
        "today_bookings": 1,
        "today_covers": 4,
        "upcoming_bookings": 2,
        "pending_payments": 1,
        "this_month_bookings": 3,
        "last_month_bookings": 1,
        "growth_percentage": 200.0,
    }


def test_confirmation_is_sent_once_per_booking(venue, db, monkeypatch):
    sent = []

    async def fake_send_sms(db, to_number, body, message_type, customer_id=None, template_key=None, dedupe_key=None):
        db.add(
            Message(
                direction="outbound",
                to_number=to_number,
                body=body,
                status="sent",
                message_type=message_type,
                customer_id=customer_id,
                template_key=template_key,
                dedupe_key=dedupe_key,
            )
        )
        db.commit()
        sent.append(body)
        return True, None

    # Every manage link carries a fresh signature
    links = iter(f"https://venue.test/manage/{n}" for n in range(10))
    monkeypatch.setattr(twilio_service, "send_sms", fake_send_sms)
    monkeypatch.setattr(booking_service_module, "manage_url_for", lambda booking: next(links))

    booking = asyncio.run(venue.create_booking(guest(), now=NOW))["booking"]
    asyncio.run(venue._send_confirmation(booking))

    assert len(sent) == 1
    assert db.query(Message).filter(Message.message_type == "booking_confirmation").count() == 1
