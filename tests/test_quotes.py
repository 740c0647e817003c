from datetime import date, timedelta

import pytest
from fastapi import HTTPException

from venuehq.domain.invoices.calculations import format_quote_number
from venuehq.domain.invoices.schemas import VendorBase
from venuehq.domain.invoices.service import InvoiceService
from venuehq.domain.quotes import service as quote_service_module
from venuehq.domain.quotes.schemas import QuoteCreate, QuoteUpdate
from venuehq.domain.quotes.service import QuoteService, is_transition_allowed

from .conftest import auth_headers

TODAY = date(2026, 10, 17)
LINES = [
    {"description": "Keg of lager", "quantity": 2, "unit_price": 10, "discount_percentage": 10, "vat_rate": 20},
    {"description": "Delivery", "quantity": 1, "unit_price": 30, "discount_percentage": 0, "vat_rate": 0},
]


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr(quote_service_module, "today_local", lambda: TODAY)


@pytest.fixture()
def quotes(db):
    return QuoteService(db)


@pytest.fixture()
def vendor(db, admin):
    return InvoiceService(db).create_vendor(VendorBase(name="Brewery Ltd", email="accounts@brewery.test"), admin)


def make_quote(quotes, vendor, **overrides):
    fields = {
        "vendor_id": vendor.id,
        "quote_date": TODAY,
        "valid_until": TODAY + timedelta(days=30),
        "line_items": LINES,
    }
    fields.update(overrides)
    return quotes.create_quote(QuoteCreate(**fields))


def test_quote_numbers_share_the_invoice_encoding():
    assert format_quote_number(1) == "QTE-003UX"
    assert format_quote_number(36) == "QTE-003VW"


def test_transition_table():
    assert is_transition_allowed("draft", "sent")
    assert is_transition_allowed("sent", "accepted")
    assert is_transition_allowed("sent", "draft")
    assert not is_transition_allowed("draft", "accepted")
    assert not is_transition_allowed("rejected", "sent")
    assert not is_transition_allowed("unknown", "sent")


def test_new_quote_is_a_draft_with_invoice_totals(quotes, vendor):
    quote = make_quote(quotes, vendor, quote_discount_percentage=10)
    assert quote.quote_number == "QTE-003UX"
    assert quote.status == "draft"
    assert quote.subtotal_amount == 48.0
    assert quote.discount_amount == 4.8
    assert quote.total_amount == 46.44
    assert [item.position for item in quote.line_items] == [0, 1]
    assert quote.line_items[0].total_amount == 19.44
    assert quote.vendor_name == "Brewery Ltd"

    assert make_quote(quotes, vendor).quote_number == "QTE-003UY"


def test_quote_needs_an_existing_vendor(quotes, vendor):
    with pytest.raises(HTTPException) as exc:
        make_quote(quotes, vendor, vendor_id=999)
    assert exc.value.status_code == 404


def test_only_drafts_can_be_edited_or_deleted(quotes, vendor, admin):
    quote = make_quote(quotes, vendor)
    updated = quotes.update_quote(
        quote.id,
        QuoteUpdate(
            vendor_id=vendor.id,
            quote_date=TODAY,
            valid_until=TODAY + timedelta(days=14),
            line_items=[{"description": "Glass hire", "quantity": 100, "unit_price": 0.5, "vat_rate": 20}],
        ),
        admin,
    )
    assert updated.total_amount == 60.0
    assert len(updated.line_items) == 1

    quotes.update_status(quote.id, "sent", admin)
    with pytest.raises(HTTPException) as exc:
        quotes.update_quote(
            quote.id, QuoteUpdate(vendor_id=vendor.id, quote_date=TODAY, valid_until=TODAY, line_items=LINES), admin
        )
    assert exc.value.detail == "Only draft quotes can be edited"
    with pytest.raises(HTTPException) as exc:
        quotes.delete_quote(quote.id, admin)
    assert exc.value.detail == "Only draft quotes can be deleted"

    draft = make_quote(quotes, vendor)
    quotes.delete_quote(draft.id, admin)
    with pytest.raises(HTTPException) as exc:
        quotes.get_quote(draft.id)
    assert exc.value.status_code == 404


def test_status_changes_follow_the_transition_table(quotes, vendor, admin):
    quote = make_quote(quotes, vendor)
    with pytest.raises(HTTPException) as exc:
        quotes.update_status(quote.id, "accepted", admin)
    assert exc.value.detail == "Invalid quote status transition from draft to accepted"

    assert quotes.update_status(quote.id, "sent", admin).status == "sent"
    assert quotes.update_status(quote.id, "sent", admin).status == "sent"
    assert quotes.update_status(quote.id, "accepted", admin).status == "accepted"
    with pytest.raises(HTTPException):
        quotes.update_status(quote.id, "rejected", admin)


def test_lapsed_quotes_cannot_be_sent(quotes, vendor, admin):
    quote = make_quote(quotes, vendor, quote_date=TODAY - timedelta(days=10), valid_until=TODAY - timedelta(days=1))
    with pytest.raises(HTTPException) as exc:
        quotes.update_status(quote.id, "sent", admin)
    assert exc.value.detail == "Quote validity has already passed"


def test_sent_quotes_expire_and_feed_the_summary(quotes, vendor, admin, db):
    make_quote(quotes, vendor)
    pending = make_quote(quotes, vendor)
    quotes.update_status(pending.id, "sent", admin)
    lapsing = make_quote(quotes, vendor, quote_discount_percentage=10)
    quotes.update_status(lapsing.id, "sent", admin)
    accepted = make_quote(quotes, vendor)
    quotes.update_status(accepted.id, "sent", admin)
    quotes.update_status(accepted.id, "accepted", admin)

    lapsing.valid_until = TODAY - timedelta(days=1)
    db.commit()

    assert quotes.get_summary(TODAY) == {
        "total_pending": 51.6,
        "total_expired": 46.44,
        "total_accepted": 51.6,
        "draft_count": 1,
    }
    assert quotes.get_quote(lapsing.id).status == "expired"
    assert [q.id for q in quotes.list_quotes("expired")] == [lapsing.id]


def test_accepted_quote_converts_to_a_draft_invoice(quotes, vendor, admin):
    quote = make_quote(quotes, vendor, quote_discount_percentage=10, reference="PO-7", notes="Includes <b>delivery</b>")
    assert quote.notes == "Includes &lt;b&gt;delivery&lt;/b&gt;"
    quotes.update_status(quote.id, "sent", admin)
    quotes.update_status(quote.id, "accepted", admin)

    invoice = quotes.convert_to_invoice(quote.id, admin)
    assert invoice.status == "draft"
    assert invoice.invoice_number == "INV-003UX"
    assert invoice.invoice_date == TODAY
    assert invoice.due_date == TODAY + timedelta(days=30)
    assert invoice.reference == "PO-7"
    assert invoice.notes == quote.notes
    assert invoice.total_amount == quote.total_amount == 46.44
    assert [item.description for item in invoice.line_items] == ["Keg of lager", "Delivery"]
    assert invoice.line_items[0].total_amount == 19.44
    assert quotes.get_quote(quote.id).converted_invoice_id == invoice.id

    with pytest.raises(HTTPException) as exc:
        quotes.convert_to_invoice(quote.id, admin)
    assert exc.value.detail == "This quote has already been converted to an invoice"
    with pytest.raises(HTTPException) as exc:
        quotes.update_status(quote.id, "rejected", admin)
    assert exc.value.detail == "Converted quotes cannot have their status changed"


def test_only_accepted_quotes_convert(quotes, vendor, admin):
    quote = make_quote(quotes, vendor)
    quotes.update_status(quote.id, "sent", admin)
    with pytest.raises(HTTPException) as exc:
        quotes.convert_to_invoice(quote.id, admin)
    assert exc.value.detail == "Only accepted quotes can be converted to invoices"


def test_quote_api_lifecycle(client, admin_headers, vendor):
    response = client.post(
        "/quotes",
        json={
            "vendor_id": vendor.id,
            "quote_date": "2026-10-17",
            "valid_until": "2026-11-16",
            "quote_discount_percentage": 10,
            "line_items": LINES,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "draft"
    assert body["total_amount"] == 46.44
    assert len(body["line_items"]) == 2

    for status in ("sent", "accepted"):
        response = client.post(f"/quotes/{body['id']}/status", json={"status": status}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == status

    response = client.post(f"/quotes/{body['id']}/convert", headers=admin_headers)
    assert response.status_code == 201
    invoice = response.json()
    assert invoice["status"] == "draft"
    assert invoice["total_amount"] == 46.44

    summary = client.get("/quotes/summary", headers=admin_headers).json()
    assert summary["total_accepted"] == 46.44
    assert client.get(f"/quotes/{body['id']}", headers=admin_headers).json()["converted_invoice_id"] == invoice["id"]


def test_quote_validity_cannot_precede_the_quote_date(client, admin_headers, vendor):
    response = client.post(
        "/quotes",
        json={"vendor_id": vendor.id, "quote_date": "2026-10-17", "valid_until": "2026-10-01", "line_items": LINES},
        headers=admin_headers,
    )
    assert response.status_code == 422


def test_quote_viewer_cannot_convert(client, make_user):
    viewer = make_user(permissions=[("invoices", "view")])
    headers = auth_headers(viewer)
    assert client.get("/quotes", headers=headers).status_code == 200
    assert client.post("/quotes/1/convert", headers=headers).status_code == 403
