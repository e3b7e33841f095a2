# backend/app/schemas.py
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _email(v: str) -> str:
    v = str(v or "").strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("must be a valid email address")
    return v


Email = Annotated[str, AfterValidator(_email)]


# -------------------- Accounts / auth --------------------

class SignupIn(BaseModel):
    email: Email
    password: str
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    is_host: bool = False


class SigninIn(BaseModel):
    email: Email
    password: str


class EmailIn(BaseModel):
    email: Email


class ResetPasswordIn(BaseModel):
    token: str = Field(min_length=1)
    new_password: str


class AccountOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    is_host: bool
    role: str
    email_verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SignupOut(BaseModel):
    account: AccountOut
    message: str


class SigninOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    account: AccountOut


class AckOut(BaseModel):
    ok: bool = True
    message: str


class CsrfTokenOut(BaseModel):
    csrf_token: str


# -------------------- Listings --------------------

class ListingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=200)
    monthly_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    deposit_amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class ListingOut(ListingCreate):
    id: int
    host_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Reservations --------------------

class ReservationCreate(BaseModel):
    listing_id: int
    check_in_date: date
    check_out_date: date
    total_amount: Decimal = Field(max_digits=10, decimal_places=2)


class ReservationOut(BaseModel):
    id: int
    listing_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    total_amount: Decimal
    deposit_amount: Decimal
    status: str
    deposit_refunded: bool
    checkout_confirmed_by_host: bool
    checkout_confirmed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_by_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    refund_amount: Optional[Decimal] = None
    refund_tier: Optional[str] = None
    created_at: datetime
    viewer_party: str


class CancelIn(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class StatusChangeIn(BaseModel):
    status: str
    reason: Optional[str] = Field(default=None, max_length=2000)


class RefundQuoteOut(BaseModel):
    days_until_check_in: int
    percentage: int
    tier: str
    amount: Decimal


class CancellationOut(BaseModel):
    reservation: ReservationOut
    refund: RefundQuoteOut


class CheckoutIn(BaseModel):
    condition: str
    damages_reported: bool = False
    damage_description: Optional[str] = Field(default=None, max_length=5000)
    notes: Optional[str] = Field(default=None, max_length=5000)


class CheckoutOut(BaseModel):
    reservation_id: int
    refund_eligible: bool
    message: str


class ReservationEventOut(BaseModel):
    id: int
    event_type: str
    actor_account_id: Optional[int] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
