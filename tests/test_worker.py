import asyncio

import pytest

from venuehq import worker

from .conftest import TestingSessionLocal


@pytest.fixture(autouse=True)
def worker_sessions(db, monkeypatch):
    monkeypatch.setattr(worker, "SessionLocal", TestingSessionLocal)


def test_sms_task_needs_a_recipient():
    assert asyncio.run(worker.send_sms_task({}, body="Hello")) == {"success": False, "error": "No recipient"}
    assert asyncio.run(worker.send_sms_task({}, body="Hello", customer_id=999)) == {
        "success": False,
        "error": "Customer not found",
    }


def test_sms_task_sends_to_a_customer(make_customer, sent_sms):
    customer = make_customer(first_name="Sam")
    result = asyncio.run(
        worker.send_sms_task(
            {"job_id": "job-1"},
            message_type="loyalty",
            template_key="loyalty_welcome",
            context={"first_name": "Sam", "points": 50},
            customer_id=customer.id,
        )
    )
    assert result == {"success": True, "error": None}
    assert sent_sms[0]["to"] == customer.mobile_number
    assert "Sam" in sent_sms[0]["body"]


def test_sms_task_respects_opt_out(make_customer, sent_sms):
    customer = make_customer(sms_opt_in=False)
    result = asyncio.run(worker.send_sms_task({}, body="Hello", customer_id=customer.id))
    assert result == {"success": False, "error": "Customer has opted out of SMS"}
    assert sent_sms == []


def test_housekeeping_jobs_run_on_an_empty_database():
    assert asyncio.run(worker.invoice_status_task({})) == {"overdue": 0}
    assert asyncio.run(worker.expire_redemption_codes_task({})) == {"expired": 0}
    assert asyncio.run(worker.auto_close_sessions_task({})) == {"closed": 0}
    assert asyncio.run(worker.recurring_invoices_task({})) == {"generated": []}


def test_cron_schedule_covers_every_job():
    scheduled = {job.coroutine for job in worker.WorkerSettings.cron_jobs}
    assert scheduled == set(worker.WorkerSettings.functions) - {worker.send_sms_task}
