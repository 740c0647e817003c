import asyncio

import pytest
from fastapi import HTTPException

from venuehq.domain.messages.schemas import BulkSmsRequest, SendSmsRequest
from venuehq.domain.messages.service import (
    MessageService,
    get_template_body,
    send_customer_sms,
    send_guarded_sms,
)
from venuehq.domain.messages.templates import DEFAULT_TEMPLATES, render_template
from venuehq.models_sms import Message, MessageTemplate
from venuehq.services import twilio_service
from venuehq.services.twilio_service import count_sms_segments


@pytest.mark.parametrize(
    "body, segments",
    [
        ("Table for 4 confirmed", 1),
        ("a" * 160, 1),
        ("a" * 161, 2),
        ("€" * 80, 1),
        ("€" * 81, 2),
        ("🎉" + "a" * 69, 1),
        ("🎉" + "a" * 70, 2),
    ],
)
def test_segment_counting(body, segments):
    assert count_sms_segments(body) == segments


def test_render_template_blanks_unknown_placeholders():
    assert render_template("Hi {{ first_name }}, see you at {{venue}}!", {"first_name": "Sam"}) == "Hi Sam, see you at !"
    assert render_template("{{points}} points", {"points": 0}) == "0 points"


def test_stored_template_overrides_default(db):
    default = DEFAULT_TEMPLATES["loyalty_welcome"][1]
    assert get_template_body(db, "loyalty_welcome") == default

    db.add(MessageTemplate(key="loyalty_welcome", name="Welcome", body="Welcome aboard {{first_name}}"))
    db.commit()
    assert get_template_body(db, "loyalty_welcome") == "Welcome aboard {{first_name}}"

    db.query(MessageTemplate).update({"is_active": False})
    db.commit()
    assert get_template_body(db, "loyalty_welcome") == default
    assert get_template_body(db, "no_such_template") is None


@pytest.fixture()
def logged_sms(monkeypatch, db):
    """Record sends in the message log the way a successful Twilio call does"""
    sent = []

    async def fake_send_sms(db, to_number, body, message_type, customer_id=None, template_key=None, dedupe_key=None):
        db.add(
            Message(
                direction="outbound",
                to_number=to_number,
                body=body,
                segments=count_sms_segments(body),
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

    monkeypatch.setattr(twilio_service, "send_sms", fake_send_sms)
    return sent


def test_duplicate_template_send_is_suppressed(db, logged_sms):
    context = {"first_name": "Sam", "points": 50}
    first = asyncio.run(send_guarded_sms(db, "+447700900101", "loyalty", template_key="loyalty_welcome", context=context))
    assert first == (True, None)

    again = asyncio.run(send_guarded_sms(db, "+447700900101", "loyalty", template_key="loyalty_welcome", context=context))
    assert again == (False, "Duplicate message suppressed")

    # A different context is a different message
    other = asyncio.run(
        send_guarded_sms(db, "+447700900101", "loyalty", template_key="loyalty_welcome", context={**context, "points": 60})
    )
    assert other == (True, None)
    assert len(logged_sms) == 2


def test_recipient_hourly_limit_blocks_and_logs(db, logged_sms):
    for n in range(3):
        asyncio.run(send_guarded_sms(db, "+447700900102", "manual", body=f"Message {n}"))

    success, error = asyncio.run(send_guarded_sms(db, "+447700900102", "manual", body="One too many"))
    assert success is False
    assert error == "SMS rate limit exceeded: recipient already sent 3 messages this hour"

    blocked = db.query(Message).filter(Message.status == "blocked").one()
    assert blocked.body == "One too many"
    assert len(logged_sms) == 3

    # Other recipients are unaffected
    assert asyncio.run(send_guarded_sms(db, "+447700900103", "manual", body="Hello")) == (True, None)


def test_unknown_template_is_reported(db, sent_sms):
    result = asyncio.run(send_guarded_sms(db, "+447700900101", "manual", template_key="nope"))
    assert result == (False, "Unknown message template: nope")
    assert sent_sms == []


def test_unconfigured_provider_logs_a_failure(db):
    success, error = asyncio.run(send_guarded_sms(db, "+447700900104", "manual", body="Hello"))
    assert (success, error) == (False, "SMS provider not configured")
    assert db.query(Message).one().status == "failed"


def test_opted_out_customer_is_never_texted(db, make_customer, sent_sms):
    customer = make_customer(sms_opt_in=False)
    result = asyncio.run(send_customer_sms(db, customer, "manual", body="Hello"))
    assert result == (False, "Customer has opted out of SMS")
    assert sent_sms == []


def test_manual_send_needs_body_or_template(db, make_customer, admin):
    customer = make_customer()
    with pytest.raises(HTTPException) as exc:
        asyncio.run(MessageService(db).send_to_customer(customer.id, SendSmsRequest(), admin))
    assert exc.value.detail == "Either a message body or a template is required"


def test_bulk_send_skips_opted_out_customers(db, make_customer, admin, sent_sms):
    make_customer(first_name="Sam")
    make_customer(first_name="Alex")
    make_customer(first_name="Jo", sms_opt_in=False)

    result = asyncio.run(
        MessageService(db).send_bulk(BulkSmsRequest(body="Hi {{first_name}}, quiz tonight at 8!"), admin)
    )
    assert result == {"total": 3, "sent": 2, "failed": 0, "skipped": 1}
    assert [m["body"] for m in sent_sms] == ["Hi Sam, quiz tonight at 8!", "Hi Alex, quiz tonight at 8!"]
    assert {m["message_type"] for m in sent_sms} == {"bulk"}


def test_stop_and_start_keywords_update_consent(db, make_customer):
    customer = make_customer(mobile_number="+447700900155")
    service = MessageService(db)

    message = service.record_inbound("07700 900155", " stop ")
    assert message.customer_id == customer.id
    assert message.status == "received"
    db.refresh(customer)
    assert customer.sms_opt_in is False
    assert customer.sms_opt_out_at is not None

    service.record_inbound("+447700900155", "START")
    db.refresh(customer)
    assert customer.sms_opt_in is True
    assert customer.sms_opt_out_at is None

    stranger = service.record_inbound("+447700900999", "STOP")
    assert stranger.customer_id is None


def test_inbound_webhook_takes_form_fields(client, db, make_customer):
    customer = make_customer(mobile_number="+447700900156")
    response = client.post("/messages/inbound", data={"From": "+447700900156", "Body": "UNSUBSCRIBE"})
    assert response.status_code == 200
    assert response.json()["direction"] == "inbound"
    db.refresh(customer)
    assert customer.sms_opt_in is False


def test_template_api(client, admin_headers):
    payload = {"key": "Quiz_Night", "name": "Quiz night", "body": "Quiz tonight, {{first_name}}!"}
    created = client.post("/messages/templates", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["key"] == "quiz_night"

    duplicate = client.post("/messages/templates", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409

    bad = client.post("/messages/templates", json={**payload, "key": "quiz night"}, headers=admin_headers)
    assert bad.status_code == 422
