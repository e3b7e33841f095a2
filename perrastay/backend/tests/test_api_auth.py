# backend/tests/test_api_auth.py
from __future__ import annotations

import logging
import re

from conftest import PASSWORD

TOKEN_RE = re.compile(r"token=([A-Za-z0-9_\-]+)")

SIGNUP = {
    "email": "Ana@Example.com",
    "password": PASSWORD,
    "first_name": "Ana",
    "last_name": "Ruiz",
    "is_host": True,
}


def test_signup_verify_signin_me(client, mailer):
    r = client.post("/api/users", json=SIGNUP)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["account"]["email"] == "ana@example.com"
    assert body["account"]["email_verified"] is False
    assert body["account"]["role"] == "host"
    assert "password_hash" not in body["account"]

    r = client.post("/api/signin", json={"email": "ana@example.com", "password": PASSWORD})
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_CREDENTIALS"

    token = TOKEN_RE.search(mailer.sent[-1].html).group(1)
    r = client.get(f"/api/verify-email/{token}")
    assert r.status_code == 200, r.text

    r = client.get(f"/api/verify-email/{token}")
    assert r.status_code == 400
    assert r.json()["code"] == "TOKEN_INVALID"

    r = client.post("/api/signin", json={"email": "ana@example.com", "password": PASSWORD})
    assert r.status_code == 200, r.text
    assert r.json()["token_type"] == "bearer"
    assert client.cookies.get("auth-token") == r.json()["access_token"]

    r = client.get("/api/me")
    assert r.status_code == 200
    assert r.json()["email"] == "ana@example.com"

    r = client.post("/api/signout")
    assert r.status_code == 200
    assert client.get("/api/me").status_code == 401


def test_me_with_bearer_header(client, guest):
    r = client.post("/api/signin", json={"email": guest.email, "password": PASSWORD})
    token = r.json()["access_token"]
    client.cookies.clear()

    assert client.get("/api/me").status_code == 401
    r = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["id"] == guest.id

    assert client.get("/api/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_signup_validation_errors(client):
    r = client.post("/api/users", json={**SIGNUP, "email": "not-an-email"})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert r.json()["details"]["field"] == "email"

    r = client.post("/api/users", json={**SIGNUP, "password": "alllowercase"})
    assert r.status_code == 400
    assert r.json()["details"]["field"] == "password"

    assert client.post("/api/users", json=SIGNUP).status_code == 201
    r = client.post("/api/users", json={**SIGNUP, "email": "ANA@example.com"})
    assert r.status_code == 409
    assert r.json()["code"] == "DUPLICATE_IDENTITY"


def test_lockout_over_http(client, guest, clock):
    for _ in range(5):
        r = client.post("/api/signin", json={"email": guest.email, "password": "Wrong-pass1!"})
        assert r.status_code == 401

    r = client.post("/api/signin", json={"email": guest.email, "password": PASSWORD})
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "900"
    assert r.json()["code"] == "ACCOUNT_LOCKED"
    assert "15 minutes" in r.json()["message"]

    clock.advance(minutes=15)
    assert client.post("/api/signin", json={"email": guest.email, "password": PASSWORD}).status_code == 200


def test_forgot_password_answers_the_same_for_everyone(client, guest, mailer):
    unknown = client.post("/api/forgot-password", json={"email": "ghost@example.com"})
    known = client.post("/api/forgot-password", json={"email": guest.email})
    assert unknown.status_code == known.status_code == 200
    assert unknown.json() == known.json()
    assert len(mailer.sent) == 1

    token = TOKEN_RE.search(mailer.sent[-1].html).group(1)
    r = client.post("/api/reset-password", json={"token": token, "new_password": "Fresh-pass9!"})
    assert r.status_code == 200, r.text
    assert client.post("/api/signin", json={"email": guest.email, "password": "Fresh-pass9!"}).status_code == 200


def test_resend_verification_is_generic(client):
    a = client.post("/api/resend-verification", json={"email": "ghost@example.com"})
    assert a.status_code == 200
    assert a.json()["ok"] is True


def test_request_log_never_contains_tokens(client, caplog):
    caplog.set_level(logging.INFO, logger="perrastay.request")
    r = client.get("/api/verify-email/super-secret-token-value")
    assert r.status_code == 400
    assert r.headers["X-Request-ID"]

    lines = [rec.getMessage() for rec in caplog.records if rec.name == "perrastay.request"]
    assert lines
    assert all("super-secret-token-value" not in line for line in lines)
    assert any("<redacted>" in line for line in lines)


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "abc-123"


def test_auth_failures_use_the_error_envelope(client):
    r = client.get("/api/me")
    assert r.status_code == 401
    assert r.json() == {"code": "UNAUTHENTICATED", "message": "Not authenticated", "details": {}}

    r = client.get("/api/me", headers={"Authorization": "Bearer nope"})
    assert r.json()["code"] == "UNAUTHENTICATED"
    assert r.json()["message"] == "Invalid token"


def test_bearer_header_wins_over_a_stale_cookie(client, guest):
    token = client.post("/api/signin", json={"email": guest.email, "password": PASSWORD}).json()["access_token"]
    client.cookies.clear()
    client.cookies.set("auth-token", "stale.cookie.value")

    r = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["id"] == guest.id


def test_host_only_route_forbids_guests_with_envelope(client, guest):
    token = client.post("/api/signin", json={"email": guest.email, "password": PASSWORD}).json()["access_token"]
    client.cookies.clear()

    r = client.get("/api/bookings/host", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"
