from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from venuehq.domain.short_links.schemas import AliasCreate, ShortLinkCreate
from venuehq.domain.short_links.service import ShortLinkService
from venuehq.domain.short_links.tracking import bucket_start, daily_series, parse_browser, parse_device_type

NOW = datetime(2026, 10, 17, 12, 0)

IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X200) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@pytest.mark.parametrize(
    "user_agent, device, browser",
    [
        (IPHONE, "mobile", "Safari"),
        (EDGE, "desktop", "Edge"),
        (ANDROID_TABLET, "tablet", "Chrome"),
        ("Mozilla/5.0 (compatible; Googlebot/2.1)", "bot", "Other"),
        ("curl/8.4.0", "bot", "Other"),
        (None, "unknown", "Unknown"),
    ],
)
def test_user_agent_classification(user_agent, device, browser):
    assert parse_device_type(user_agent) == device
    assert parse_browser(user_agent) == browser


def test_buckets_start_at_period_boundaries():
    moment = datetime(2026, 10, 17, 14, 35)
    assert bucket_start(moment, "hour") == datetime(2026, 10, 17, 14, 0)
    assert bucket_start(moment, "day") == datetime(2026, 10, 17)
    assert bucket_start(moment, "week") == datetime(2026, 10, 12)
    assert bucket_start(moment, "month") == datetime(2026, 10, 1)
    with pytest.raises(ValueError):
        bucket_start(moment, "year")


def test_daily_series_is_zero_filled():
    clicks = [datetime(2026, 10, 15, 9, 0), datetime(2026, 10, 15, 21, 0), datetime(2026, 10, 17, 8, 0)]
    series = daily_series(clicks, date(2026, 10, 14), date(2026, 10, 17))
    assert [(d["date"].day, d["clicks"]) for d in series] == [(14, 0), (15, 2), (16, 0), (17, 1)]


def test_custom_codes_are_normalised_and_checked():
    assert ShortLinkCreate(destination_url="https://venue.test", custom_code=" Menu-2026 ").custom_code == "menu-2026"
    assert ShortLinkCreate(destination_url="https://venue.test", custom_code="").custom_code is None
    with pytest.raises(ValidationError):
        ShortLinkCreate(destination_url="https://venue.test", custom_code="a!")
    with pytest.raises(ValidationError):
        ShortLinkCreate(destination_url="ftp://venue.test/file")


@pytest.fixture()
def links(db):
    return ShortLinkService(db)


@pytest.fixture()
def menu_link(links, admin):
    return links.create_short_link(
        ShortLinkCreate(destination_url="https://venue.test/menu", name="Menu", link_type="promotion"), admin
    )["link"]


def test_generated_code_and_full_url(menu_link):
    assert len(menu_link.short_code) == 6
    assert menu_link.short_code.isalnum()
    assert menu_link.full_url.endswith(f"/l/{menu_link.short_code}")
    assert menu_link.click_count == 0


def test_same_destination_returns_existing_link(links, menu_link, admin):
    again = links.create_short_link(ShortLinkCreate(destination_url="https://venue.test/menu"), admin)
    assert again["already_exists"] is True
    assert again["link"].id == menu_link.id

    with pytest.raises(HTTPException) as exc:
        links.create_short_link(
            ShortLinkCreate(destination_url="https://venue.test/menu", custom_code="dinner"), admin
        )
    assert exc.value.status_code == 409
    assert "Short codes can't be changed" in exc.value.detail


def test_codes_are_unique_across_links_and_aliases(links, menu_link, admin):
    links.add_alias(menu_link.id, AliasCreate(alias_code="food"), admin)

    with pytest.raises(HTTPException) as exc:
        links.create_short_link(ShortLinkCreate(destination_url="https://venue.test/quiz", custom_code="food"), admin)
    assert exc.value.detail == "Custom code already in use. Please choose another."

    with pytest.raises(HTTPException) as exc:
        links.add_alias(menu_link.id, AliasCreate(alias_code=menu_link.short_code), admin)
    assert exc.value.status_code == 409


def test_alias_resolves_and_records_the_click(links, menu_link, admin):
    links.add_alias(menu_link.id, AliasCreate(alias_code="food"), admin)

    link = links.resolve("FOOD", user_agent=IPHONE, ip_address="203.0.113.5", country="gb", now=NOW)
    assert link.id == menu_link.id
    assert link.click_count == 1
    assert link.last_clicked_at == NOW

    [click] = link.clicks
    assert click.device_type == "mobile"
    assert click.browser == "Safari"
    assert click.country == "GB"


def test_unknown_and_expired_codes(links, admin):
    with pytest.raises(HTTPException) as exc:
        links.resolve("nothing", now=NOW)
    assert exc.value.status_code == 404

    expired = links.create_short_link(
        ShortLinkCreate(
            destination_url="https://venue.test/halloween", custom_code="spooky", expires_at=NOW - timedelta(days=1)
        ),
        admin,
    )["link"]
    with pytest.raises(HTTPException) as exc:
        links.resolve("spooky", now=NOW)
    assert exc.value.status_code == 410
    assert expired.click_count == 0


def test_link_analytics(links, menu_link):
    code = menu_link.short_code
    links.resolve(code, user_agent=IPHONE, ip_address="203.0.113.5", now=NOW - timedelta(days=2))
    links.resolve(code, user_agent=EDGE, ip_address="203.0.113.5", now=NOW)
    links.resolve(code, user_agent=EDGE, ip_address="198.51.100.7", now=NOW)
    # Outside the window
    links.resolve(code, user_agent=EDGE, ip_address="198.51.100.8", now=NOW - timedelta(days=10))

    analytics = links.get_link_analytics(menu_link.id, days=7, now=NOW)
    assert analytics["total_clicks"] == 3
    assert analytics["unique_visitors"] == 2
    assert len(analytics["daily"]) == 7
    assert analytics["daily"][0]["date"] == date(2026, 10, 11)
    assert analytics["daily"][-1] == {"date": date(2026, 10, 17), "clicks": 2}
    assert analytics["devices"] == {"desktop": 2, "mobile": 1}
    assert list(analytics["browsers"]) == ["Edge", "Safari"]


def test_click_volume_by_week(links, menu_link):
    for days_ago in (0, 1, 7):
        links.resolve(menu_link.short_code, now=NOW - timedelta(days=days_ago))

    volume = links.get_volume("week", days=30, now=NOW)
    assert volume["total_clicks"] == 3
    assert volume["buckets"] == [
        {"period_start": datetime(2026, 10, 5), "clicks": 1},
        {"period_start": datetime(2026, 10, 12), "clicks": 2},
    ]

    with pytest.raises(HTTPException) as exc:
        links.get_volume("year", now=NOW)
    assert exc.value.detail == "Period must be one of: hour, day, week, month"


def test_redirect_endpoint(client, admin_headers):
    created = client.post(
        "/short-links",
        json={"destination_url": "https://venue.test/quiz", "custom_code": "quiz"},
        headers=admin_headers,
    )
    assert created.status_code == 200
    assert created.json()["already_exists"] is False

    response = client.get("/l/quiz", headers={"user-agent": EDGE}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://venue.test/quiz"

    link = client.get(f"/short-links/{created.json()['id']}", headers=admin_headers).json()
    assert link["click_count"] == 1

    assert client.get("/l/missing", follow_redirects=False).status_code == 404
