# backend/tests/test_api_bookings.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from app.services.auth_service import create_access_token

from conftest import make_account


@pytest.fixture
def auth(cfg, clock):
    """Bearer headers minted at the frozen clock's current time."""

    def _headers(account) -> dict[str, str]:
        token, _exp = create_access_token(account, now=clock.now(), cfg=cfg)
        return {"Authorization": f"Bearer {token}"}

    return _headers


def _book(client, headers, listing_id, check_in="2026-04-10", check_out="2026-04-20"):
    return client.post(
        "/api/bookings",
        json={"listing_id": listing_id, "check_in_date": check_in, "check_out_date": check_out, "total_amount": "1000.00"},
        headers=headers,
    )


def test_host_creates_listing_guest_cannot(client, host, guest, auth):
    payload = {"title": "Loft", "location": "CDMX", "monthly_price": "900.00", "deposit_amount": "300.00"}
    r = client.post("/api/listings", json=payload, headers=auth(host))
    assert r.status_code == 201, r.text
    assert Decimal(r.json()["deposit_amount"]) == Decimal("300")

    assert client.post("/api/listings", json=payload, headers=auth(guest)).status_code == 403
    assert client.get(f"/api/listings/{r.json()['id']}").status_code == 200
    assert client.get("/api/listings/999").status_code == 404


def test_booking_lifecycle_over_http(client, clock, listing, host, guest, auth):
    r = _book(client, auth(guest), listing.id)
    assert r.status_code == 201, r.text
    b = r.json()
    assert b["status"] == "pending"
    assert Decimal(b["total_amount"]) == Decimal("1000")
    assert Decimal(b["deposit_amount"]) == Decimal("500")

    r = _book(client, auth(guest), listing.id, "2026-04-15", "2026-04-25")
    assert r.status_code == 409
    assert r.json()["code"] == "BOOKING_CONFLICT"

    assert client.post(f"/api/bookings/{b['id']}/confirm", headers=auth(guest)).status_code == 403
    r = client.post(f"/api/bookings/{b['id']}/confirm", headers=auth(host))
    assert r.status_code == 200
    assert r.json()["status"] == "confirmed"

    clock.at = datetime(2026, 4, 12, 9, 0)
    assert client.get(f"/api/bookings/{b['id']}", headers=auth(guest)).json()["status"] == "active"
    r = client.post(f"/api/bookings/{b['id']}/cancel", json={"reason": "too late"}, headers=auth(guest))
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"

    clock.at = datetime(2026, 4, 20, 10, 0)
    r = client.post(
        f"/api/bookings/{b['id']}/checkout",
        json={"condition": "poor", "damages_reported": False},
        headers=auth(host),
    )
    assert r.status_code == 200, r.text
    assert r.json()["refund_eligible"] is False

    r = client.get(f"/api/bookings/{b['id']}", headers=auth(host))
    assert r.json()["status"] == "completed"
    assert r.json()["deposit_refunded"] is False

    events = client.get(f"/api/bookings/{b['id']}/events", headers=auth(guest)).json()
    assert [e["event_type"] for e in events] == [
        "reservation.requested",
        "reservation.confirmed",
        "reservation.checked_out",
    ]


def test_checkout_requires_description_for_damage(client, clock, listing, host, guest, auth):
    b = _book(client, auth(guest), listing.id).json()
    client.post(f"/api/bookings/{b['id']}/confirm", headers=auth(host))
    clock.at = datetime(2026, 4, 20, 10, 0)

    r = client.post(f"/api/bookings/{b['id']}/checkout", json={"condition": "good", "damages_reported": True}, headers=auth(host))
    assert r.status_code == 400
    assert r.json()["details"]["field"] == "damage_description"


def test_cancel_returns_refund(client, listing, guest, auth):
    b = _book(client, auth(guest), listing.id).json()

    q = client.get(f"/api/bookings/{b['id']}/refund-quote", headers=auth(guest)).json()
    assert q["tier"] == "full"
    assert Decimal(q["amount"]) == Decimal("1500")

    r = client.post(f"/api/bookings/{b['id']}/cancel", json={"reason": "changed plans"}, headers=auth(guest))
    assert r.status_code == 200, r.text
    assert r.json()["reservation"]["status"] == "cancelled"
    assert r.json()["refund"]["percentage"] == 100


def test_outsiders_and_missing(client, db, listing, guest, auth):
    b = _book(client, auth(guest), listing.id).json()
    outsider = auth(make_account(db, email="nosy@example.com"))

    r = client.get(f"/api/bookings/{b['id']}", headers=outsider)
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"

    r = client.post(f"/api/bookings/{b['id']}/cancel", json={"reason": "x"}, headers=outsider)
    assert r.status_code == 403
    assert client.get(f"/api/bookings/{b['id']}", headers=auth(guest)).json()["status"] == "pending"

    assert client.get("/api/bookings/98765", headers=auth(guest)).status_code == 404
    assert client.get(f"/api/bookings/{b['id']}").status_code == 401


def test_status_patch_is_host_only_and_guarded(client, listing, host, guest, auth):
    b = _book(client, auth(guest), listing.id).json()
    url = f"/api/bookings/{b['id']}/status"

    assert client.patch(url, json={"status": "confirmed"}, headers=auth(guest)).status_code == 403
    r = client.patch(url, json={"status": "completed"}, headers=auth(host))
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"

    r = client.patch(url, json={"status": "cancelled"}, headers=auth(host))
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert r.json()["cancellation_reason"] == "declined_by_host"


def test_dashboards(client, listing, host, guest, auth):
    _book(client, auth(guest), listing.id)
    _book(client, auth(guest), listing.id, "2026-05-01", "2026-05-05")

    mine = client.get("/api/bookings/guest", headers=auth(guest))
    assert mine.status_code == 200
    assert len(mine.json()) == 2
    assert {x["viewer_party"] for x in mine.json()} == {"guest"}

    hosted = client.get("/api/bookings/host", headers=auth(host))
    assert hosted.status_code == 200
    assert len(hosted.json()) == 2

    assert client.get("/api/bookings/host", headers=auth(guest)).status_code == 403


def test_expired_token_rejected(client, clock, guest, auth):
    headers = auth(guest)
    clock.advance(days=8)
    r = client.get("/api/bookings/guest", headers=headers)
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHENTICATED"
    assert r.json()["message"] == "Token expired"


def test_overlong_stay_is_rejected_before_touching_the_calendar(client, listing, guest, auth):
    r = _book(client, auth(guest), listing.id, "2026-06-01", "2126-06-01")
    assert r.status_code == 400
    assert r.json()["details"]["field"] == "check_out_date"
    assert client.get("/api/bookings/guest", headers=auth(guest)).json() == []


def test_conflict_response_does_not_describe_the_other_stay(client, db, listing, guest, auth):
    first = _book(client, auth(guest), listing.id).json()
    rival = auth(make_account(db, email="rival@example.com"))

    r = _book(client, rival, listing.id, "2026-04-12", "2026-04-14")
    assert r.status_code == 409
    assert r.json()["details"] == {}
    assert str(first["id"]) not in r.json()["message"]
    assert "2026-04" not in r.json()["message"]
