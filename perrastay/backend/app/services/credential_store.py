# backend/app/services/credential_store.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.errors import DuplicateIdentity
from ..models import Account

log = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


class CredentialStore:
    """
    Persistence for accounts. No business rules live here.

    Every method takes the caller's session; nothing is cached between calls.
    Writes are flushed, not committed, so callers own the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, account_id: int) -> Optional[Account]:
        return self.db.get(Account, int(account_id))

    def find_by_email(self, email: str) -> Optional[Account]:
        return self.db.scalar(select(Account).where(Account.email == normalize_email(email)))

    def find_by_verification_token(self, token_hash: str) -> Optional[Account]:
        return self.db.scalar(select(Account).where(Account.verification_token_hash == token_hash))

    def find_by_reset_token(self, token_hash: str) -> Optional[Account]:
        return self.db.scalar(select(Account).where(Account.reset_token_hash == token_hash))

    def create(self, **fields: Any) -> Account:
        fields["email"] = normalize_email(fields.get("email", ""))
        row = Account(**fields)
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            log.info("duplicate account rejected", extra={"event": "account_duplicate"})
            raise DuplicateIdentity() from e
        return row

    def update(self, account: Account, **changes: Any) -> Account:
        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
        for k, v in changes.items():
            if not hasattr(Account, k):
                raise AttributeError(f"Account has no field {k!r}")
            setattr(account, k, v)
        self.db.add(account)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateIdentity() from e
        return account

    # -------------------------
    # Atomic single-use redemption
    # -------------------------
    def redeem_verification_token(self, token_hash: str, *, now: datetime) -> bool:
        """Check expiry and clear in one conditional UPDATE. True iff this call redeemed it."""
        res = self.db.execute(
            update(Account)
            .where(
                Account.verification_token_hash == token_hash,
                Account.verification_token_expires_at > now,
            )
            .values(
                email_verified=True,
                verification_token_hash=None,
                verification_token_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        return int(res.rowcount or 0) == 1

    def redeem_reset_token(self, token_hash: str, *, now: datetime, new_password_hash: str) -> bool:
        res = self.db.execute(
            update(Account)
            .where(
                Account.reset_token_hash == token_hash,
                Account.reset_token_expires_at > now,
            )
            .values(
                password_hash=new_password_hash,
                reset_token_hash=None,
                reset_token_expires_at=None,
                failed_login_attempts=0,
                locked_until=None,
                last_password_change_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return int(res.rowcount or 0) == 1
