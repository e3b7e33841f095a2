# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.clock import utcnow
from app.config import Settings
from app.models import Account, Listing
from app.services.auth_service import hash_password
from app.services.credential_store import normalize_email


@dataclass(frozen=True)
class SeedResult:
    host_email: str
    guest_email: str
    listing_id: Optional[int]


def _get_or_create_account(
    db: Session, *, email: str, first_name: str, is_host: bool, password: str, cfg: Settings
) -> Account:
    email = normalize_email(email)
    row = db.scalar(select(Account).where(Account.email == email))
    if row:
        return row
    now = utcnow()
    row = Account(
        email=email,
        first_name=first_name,
        last_name="Demo",
        password_hash=hash_password(password, iterations=cfg.pbkdf2_iterations),
        is_host=is_host,
        # demo accounts skip the email round-trip
        email_verified=True,
        last_password_change_at=now,
        created_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_listing(db: Session, *, host: Account, title: str) -> Listing:
    row = db.scalar(select(Listing).where(Listing.host_id == int(host.id), Listing.title == title))
    if row:
        return row
    row = Listing(
        host_id=int(host.id),
        title=title,
        location="Guadalajara, Jalisco",
        monthly_price=Decimal("1200.00"),
        deposit_amount=Decimal("500.00"),
        created_at=utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    db: Session,
    *,
    host_email: str,
    guest_email: str,
    password: str,
    cfg: Settings,
    create_sample_listing: bool = True,
) -> SeedResult:
    """Idempotent: rerunning returns the existing rows."""
    host = _get_or_create_account(db, email=host_email, first_name="Host", is_host=True, password=password, cfg=cfg)
    guest = _get_or_create_account(db, email=guest_email, first_name="Guest", is_host=False, password=password, cfg=cfg)

    listing_id = None
    if create_sample_listing:
        listing_id = int(_get_or_create_listing(db, host=host, title="Demo pet-friendly apartment").id)

    return SeedResult(host_email=host.email, guest_email=guest.email, listing_id=listing_id)
