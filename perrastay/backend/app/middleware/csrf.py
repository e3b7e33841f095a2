# backend/app/middleware/csrf.py
"""
ASGI middleware enforcing a double-submit CSRF check for state-changing requests.

Rules:
- Enforced only for methods: POST, PUT, PATCH, DELETE
- Only when the request carries the auth cookie; a header-only bearer request
  has no ambient credential a foreign page could ride on
- The X-CSRF-Token header must equal the csrf_token cookie, and the token's
  signature must bind it to the auth cookie presented with the request
- Public auth endpoints (signup, signin, token flows) are exempt
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse

from ..config import Settings

logger = logging.getLogger(__name__)

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

EXEMPT_PATHS = frozenset(
    {
        "/api/users",
        "/api/signin",
        "/api/signout",
        "/api/resend-verification",
        "/api/forgot-password",
        "/api/reset-password",
        "/api/csrf-token",
    }
)
EXEMPT_PREFIXES = ("/api/verify-email/",)


def _sign(secret: str, nonce: str, auth_token: str) -> str:
    binding = hashlib.sha256((auth_token or "").encode("utf-8")).hexdigest()
    return hmac.new(secret.encode("utf-8"), f"{nonce}.{binding}".encode("utf-8"), hashlib.sha256).hexdigest()


def issue_csrf_token(cfg: Settings, auth_token: Optional[str]) -> str:
    nonce = secrets.token_urlsafe(16)
    return f"{nonce}.{_sign(cfg.csrf_secret, nonce, auth_token or '')}"


def csrf_token_valid(cfg: Settings, token: str, auth_token: Optional[str]) -> bool:
    try:
        nonce, sig = str(token).split(".", 1)
    except ValueError:
        return False
    return hmac.compare_digest(sig, _sign(cfg.csrf_secret, nonce, auth_token or ""))


class CSRFMiddleware:
    def __init__(self, app, cfg: Settings):
        self.app = app
        self.cfg = cfg

    def _is_exempt_path(self, path: str) -> bool:
        p = (path or "").rstrip("/") or "/"
        return p in EXEMPT_PATHS or any(p.startswith(x) for x in EXEMPT_PREFIXES)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self.cfg.csrf_enabled:
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET").upper()
        if method not in UNSAFE_METHODS:
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if self._is_exempt_path(path):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        auth_cookie = request.cookies.get(self.cfg.jwt_cookie_name)
        if not auth_cookie:
            await self.app(scope, receive, send)
            return

        cookie_token = request.cookies.get(self.cfg.csrf_cookie_name) or ""
        header_token = request.headers.get(self.cfg.csrf_header_name) or ""

        ok = (
            bool(header_token)
            and hmac.compare_digest(header_token, cookie_token)
            and csrf_token_valid(self.cfg, header_token, auth_cookie)
        )
        if not ok:
            logger.info("csrf_block", extra={"event": "csrf_block", "route": path})
            response = JSONResponse(
                status_code=403,
                content={
                    "code": "CSRF_TOKEN_INVALID",
                    "message": "Missing or invalid CSRF token",
                    "details": {},
                },
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
