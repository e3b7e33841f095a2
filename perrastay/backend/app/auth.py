# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import jwt  # PyJWT
from fastapi import Depends, Header, Request

from .clock import get_now
from .config import Settings
from .domain.errors import Forbidden, Unauthenticated
from .services.auth_service import decode_access_token


@dataclass(frozen=True)
class Principal:
    account_id: int
    email: str
    role: str  # guest | host

    @property
    def is_host(self) -> bool:
        return self.role == "host"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def bearer_token(request: Request, authorization: Optional[str], cfg: Settings) -> Optional[str]:
    """Explicit Authorization: Bearer <token> first, then the HttpOnly cookie."""
    token = None
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()
    if not token and cfg.jwt_cookie_name:
        token = request.cookies.get(cfg.jwt_cookie_name)
    return token or None


def get_principal(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    now: datetime = Depends(get_now),
    cfg: Settings = Depends(get_settings),
) -> Principal:
    """
    Resolve the caller from the bearer credential.

    The signed claims are trusted as-is; no store lookup per request.
    """
    token = bearer_token(request, authorization, cfg)
    if not token:
        raise Unauthenticated()

    try:
        claims = decode_access_token(token, now=now, cfg=cfg)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")

    try:
        account_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid token")

    role = str(claims.get("role") or "guest")
    if role not in ("guest", "host"):
        raise Unauthenticated("Invalid token")

    return Principal(account_id=account_id, email=str(claims.get("email") or ""), role=role)


def require_host(p: Principal = Depends(get_principal)) -> Principal:
    if not p.is_host:
        raise Forbidden("Requires a host account")
    return p


def require_guest(p: Principal = Depends(get_principal)) -> Principal:
    if p.is_host:
        raise Forbidden("Requires a guest account")
    return p
