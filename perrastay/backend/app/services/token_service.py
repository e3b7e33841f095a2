# backend/app/services/token_service.py
"""
Single-use tokens for email verification and password reset.

Both flows share one mechanism:
  - the raw token is random (secrets.token_urlsafe) and only ever emailed
  - the store keeps sha256(token) plus an expiry
  - redemption is one conditional UPDATE keyed on the digest, so two
    concurrent redemptions cannot both succeed
  - expiry is always evaluated here, never taken from the client

Requests that would reveal whether an address has an account (resend,
forgot-password) answer with the same acknowledgement in every case.
"""
from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..clock import utcnow
from ..config import Settings, settings as default_settings
from ..domain.errors import TokenExpired, TokenInvalid
from ..domain.password_policy import ensure_password_complexity
from ..models import Account
from .auth_service import hash_password
from .credential_store import CredentialStore, normalize_email
from .mailer import Mailer, password_reset_email, verification_email

log = logging.getLogger(__name__)

GENERIC_VERIFICATION_ACK = "If an unverified account exists for that address, a verification email has been sent."
GENERIC_RESET_ACK = "If an account exists for that address, a password reset email has been sent."


def new_token() -> str:
    return secrets.token_urlsafe(32)


def token_digest(token: str) -> str:
    return hashlib.sha256(str(token or "").encode("utf-8")).hexdigest()


# -------------------------
# Issue
# -------------------------
def issue_verification_token(
    store: CredentialStore, account: Account, *, now: datetime, cfg: Settings = default_settings
) -> str:
    raw = new_token()
    store.update(
        account,
        verification_token_hash=token_digest(raw),
        verification_token_expires_at=now + timedelta(hours=int(cfg.verification_token_hours)),
    )
    return raw


def issue_reset_token(
    store: CredentialStore, account: Account, *, now: datetime, cfg: Settings = default_settings
) -> str:
    raw = new_token()
    store.update(
        account,
        reset_token_hash=token_digest(raw),
        reset_token_expires_at=now + timedelta(minutes=int(cfg.reset_token_minutes)),
    )
    return raw


def send_verification(mailer: Mailer, account: Account, raw_token: str, *, cfg: Settings = default_settings) -> bool:
    msg = verification_email(to=account.email, token=raw_token, app_url=cfg.app_url, brand=cfg.app_name)
    ok = mailer.send(msg)
    if not ok:
        log.error("verification email not delivered", extra={"event": "email_failed", "account_id": account.id})
    return ok


def send_password_reset(mailer: Mailer, account: Account, raw_token: str, *, cfg: Settings = default_settings) -> bool:
    msg = password_reset_email(to=account.email, token=raw_token, app_url=cfg.app_url, brand=cfg.app_name)
    ok = mailer.send(msg)
    if not ok:
        log.error("reset email not delivered", extra={"event": "email_failed", "account_id": account.id})
    return ok


# -------------------------
# Verification flow
# -------------------------
def verify_email(db: Session, *, token: str, now: Optional[datetime] = None) -> Account:
    """Redeem a verification token. Raises TokenInvalid / TokenExpired without mutating."""
    now = now or utcnow()
    store = CredentialStore(db)
    digest = token_digest(token)

    account = store.find_by_verification_token(digest)
    if account is None:
        raise TokenInvalid()
    expires_at = account.verification_token_expires_at

    if not store.redeem_verification_token(digest, now=now):
        db.rollback()
        if expires_at is not None and expires_at <= now:
            raise TokenExpired()
        # lost the race to a concurrent redemption
        raise TokenInvalid()

    db.commit()
    db.refresh(account)
    log.info("email verified", extra={"event": "email_verified", "account_id": account.id})
    return account


def resend_verification(
    db: Session,
    *,
    email: str,
    mailer: Mailer,
    now: Optional[datetime] = None,
    cfg: Settings = default_settings,
) -> str:
    now = now or utcnow()
    store = CredentialStore(db)
    account = store.find_by_email(normalize_email(email))
    if account is None or account.email_verified:
        return GENERIC_VERIFICATION_ACK

    raw = issue_verification_token(store, account, now=now, cfg=cfg)
    db.commit()
    send_verification(mailer, account, raw, cfg=cfg)
    return GENERIC_VERIFICATION_ACK


# -------------------------
# Password reset flow
# -------------------------
def request_password_reset(
    db: Session,
    *,
    email: str,
    mailer: Mailer,
    now: Optional[datetime] = None,
    cfg: Settings = default_settings,
) -> str:
    now = now or utcnow()
    store = CredentialStore(db)
    account = store.find_by_email(normalize_email(email))
    if account is None:
        return GENERIC_RESET_ACK

    raw = issue_reset_token(store, account, now=now, cfg=cfg)
    db.commit()
    send_password_reset(mailer, account, raw, cfg=cfg)
    return GENERIC_RESET_ACK


def reset_password(
    db: Session,
    *,
    token: str,
    new_password: str,
    now: Optional[datetime] = None,
    cfg: Settings = default_settings,
) -> Account:
    """
    Redeem a reset token and set a new password.

    A successful reset is proof of identity, so the lockout state is cleared too.
    """
    now = now or utcnow()
    ensure_password_complexity(new_password, field="new_password")

    store = CredentialStore(db)
    digest = token_digest(token)
    account = store.find_by_reset_token(digest)
    if account is None:
        raise TokenInvalid()
    expires_at = account.reset_token_expires_at

    new_hash = hash_password(new_password, iterations=cfg.pbkdf2_iterations)
    if not store.redeem_reset_token(digest, now=now, new_password_hash=new_hash):
        db.rollback()
        if expires_at is not None and expires_at <= now:
            raise TokenExpired()
        raise TokenInvalid()

    db.commit()
    db.refresh(account)
    log.info("password reset", extra={"event": "password_reset", "account_id": account.id})
    return account
