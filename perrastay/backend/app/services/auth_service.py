# backend/app/services/auth_service.py
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt  # PyJWT
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..config import Settings, settings as default_settings
from ..domain.errors import AccountLocked, InvalidCredentials
from ..domain.password_policy import ensure_password_complexity
from ..models import Account
from .credential_store import CredentialStore, normalize_email
from .mailer import Mailer

log = logging.getLogger(__name__)


# -------------------------
# Password hashing (PBKDF2-HMAC-SHA256)
# -------------------------
def hash_password(password: str, *, iterations: Optional[int] = None) -> str:
    salt = secrets.token_bytes(16)
    iters = int(iterations or default_settings.pbkdf2_iterations)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        iters = int(iters_s)
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
        test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
        return hmac.compare_digest(test, dk)
    except (ValueError, TypeError):
        return False


# Burned on unknown emails so a miss costs the same as a wrong password.
_DUMMY_HASH = hash_password(secrets.token_urlsafe(16))


# -------------------------
# Bearer credential (JWT)
# -------------------------
def create_access_token(account: Account, *, now: datetime, cfg: Settings = default_settings) -> tuple[str, datetime]:
    exp = now + timedelta(minutes=int(cfg.jwt_exp_minutes))
    payload: dict[str, Any] = {
        "sub": str(account.id),
        "email": str(account.email),
        "role": account.role,
        "iat": int(_epoch(now)),
        "exp": int(_epoch(exp)),
    }
    return jwt.encode(payload, cfg.jwt_secret, algorithm=cfg.jwt_algorithm), exp


def decode_access_token(token: str, *, now: Optional[datetime] = None, cfg: Settings = default_settings) -> dict[str, Any]:
    """
    Verify signature and expiry. Raises jwt.InvalidTokenError (incl.
    ExpiredSignatureError) on a bad token.

    Expiry is checked against the injected clock rather than PyJWT's own.
    """
    claims = jwt.decode(
        token,
        cfg.jwt_secret,
        algorithms=[cfg.jwt_algorithm],
        options={"require": ["sub", "exp"], "verify_exp": False, "verify_iat": False},
    )
    if int(claims["exp"]) <= int(_epoch(now or utcnow())):
        raise jwt.ExpiredSignatureError("Signature has expired")
    return claims


def _epoch(dt: datetime) -> float:
    # naive datetimes here are UTC
    return (dt - datetime(1970, 1, 1)).total_seconds()


@dataclass(frozen=True)
class AuthResult:
    account: Account
    access_token: str
    expires_at: datetime


# -------------------------
# Session issuer
# -------------------------
def authenticate(
    db: Session,
    *,
    email: str,
    password: str,
    now: Optional[datetime] = None,
    cfg: Settings = default_settings,
) -> AuthResult:
    """
    Verify credentials and issue a bearer credential.

    Every failure mode except an active lock is reported as InvalidCredentials.
    The store is written on every attempt that matches an account.
    """
    now = now or utcnow()
    store = CredentialStore(db)
    account = store.find_by_email(normalize_email(email))

    if account is None:
        verify_password(password, _DUMMY_HASH)
        log.info("login failed", extra={"event": "login_failed"})
        raise InvalidCredentials()

    if account.locked_until is not None:
        if account.locked_until > now:
            retry_after = math.ceil((account.locked_until - now).total_seconds())
            log.info("login rejected: locked", extra={"event": "login_locked", "account_id": account.id})
            raise AccountLocked(retry_after_seconds=retry_after)
        # lock window elapsed: back to Unlocked with a fresh counter
        store.update(account, failed_login_attempts=0, locked_until=None)

    if not account.email_verified or not verify_password(password, account.password_hash):
        _record_failure(store, account, now=now, cfg=cfg)
        db.commit()
        raise InvalidCredentials()

    store.update(account, failed_login_attempts=0, locked_until=None, last_login_at=now)
    db.commit()

    token, exp = create_access_token(account, now=now, cfg=cfg)
    log.info("login ok", extra={"event": "login_ok", "account_id": account.id})
    return AuthResult(account=account, access_token=token, expires_at=exp)


def _record_failure(store: CredentialStore, account: Account, *, now: datetime, cfg: Settings) -> None:
    attempts = int(account.failed_login_attempts or 0) + 1
    changes: dict[str, Any] = {"failed_login_attempts": attempts, "last_failed_login_at": now}
    if attempts >= int(cfg.login_max_failed_attempts):
        changes["locked_until"] = now + timedelta(minutes=int(cfg.login_lockout_minutes))
        log.warning("account locked", extra={"event": "account_locked", "account_id": account.id})
    store.update(account, **changes)
    log.info("login failed", extra={"event": "login_failed", "account_id": account.id})


# -------------------------
# Signup
# -------------------------
def register_account(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    is_host: bool,
    mailer: Mailer,
    now: Optional[datetime] = None,
    cfg: Settings = default_settings,
) -> Account:
    """
    Create an unverified account and send its verification link.

    A failed email send is logged; the account and its token still stand.
    """
    from .token_service import issue_verification_token, send_verification

    now = now or utcnow()
    ensure_password_complexity(password)

    store = CredentialStore(db)
    account = store.create(
        email=email,
        password_hash=hash_password(password, iterations=cfg.pbkdf2_iterations),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        is_host=bool(is_host),
        email_verified=bool(cfg.auto_verify_email),
        last_password_change_at=now,
        created_at=now,
    )

    raw_token = None
    if not account.email_verified:
        raw_token = issue_verification_token(store, account, now=now, cfg=cfg)
    db.commit()

    if raw_token is not None:
        send_verification(mailer, account, raw_token, cfg=cfg)

    log.info("account created", extra={"event": "account_created", "account_id": account.id})
    return account
