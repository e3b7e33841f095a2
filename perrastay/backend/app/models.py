# backend/app/models.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .clock import utcnow
from .db import Base


# -----------------------------
# Accounts / credentials
# -----------------------------
class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # capability flag, not a subtype
    is_host: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # sha256 hex digests; raw tokens only ever leave in email
    verification_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    verification_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reset_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_failed_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    last_password_change_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    listings: Mapped[List["Listing"]] = relationship(back_populates="host")

    @property
    def role(self) -> str:
        return "host" if self.is_host else "guest"


# -----------------------------
# Listings (owned elsewhere; only what ownership checks need)
# -----------------------------
class Listing(Base):
    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    host_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    monthly_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    host: Mapped["Account"] = relationship(back_populates="listings")
    reservations: Mapped[List["Reservation"]] = relationship(back_populates="listing")


# -----------------------------
# Reservations
# -----------------------------
class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_reservations_dates_ordered"),
        Index("ix_reservations_listing_dates", "listing_id", "check_in_date", "check_out_date"),
        Index("ix_reservations_guest_status", "guest_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    listing_id: Mapped[int] = mapped_column(Integer, ForeignKey("listings.id"), nullable=False, index=True)
    guest_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # pending|confirmed|completed|cancelled ("active" is derived, never stored)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    deposit_refunded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    checkout_confirmed_by_host: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    checkout_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_by_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    refund_tier: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    listing: Mapped["Listing"] = relationship(back_populates="reservations")
    nights: Mapped[List["ReservationNight"]] = relationship(
        back_populates="reservation", cascade="all, delete-orphan"
    )
    checkout_record: Mapped[Optional["CheckoutRecord"]] = relationship(
        back_populates="reservation", uselist=False
    )


class ReservationNight(Base):
    """
    One row per night a calendar-holding reservation occupies.

    The unique (listing_id, night) index is what makes two overlapping
    reservations impossible, whatever the isolation level.
    """

    __tablename__ = "reservation_nights"
    __table_args__ = (UniqueConstraint("listing_id", "night", name="uq_reservation_nights_listing_night"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    listing_id: Mapped[int] = mapped_column(Integer, ForeignKey("listings.id"), nullable=False)
    reservation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    night: Mapped[date] = mapped_column(Date, nullable=False)

    reservation: Mapped["Reservation"] = relationship(back_populates="nights")


class CheckoutRecord(Base):
    __tablename__ = "checkout_records"
    __table_args__ = (UniqueConstraint("reservation_id", name="uq_checkout_records_reservation"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reservation_id: Mapped[int] = mapped_column(Integer, ForeignKey("reservations.id"), nullable=False)
    assessed_by_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=False)

    condition: Mapped[str] = mapped_column(String(20), nullable=False)  # excellent|good|fair|poor|damaged
    damages_reported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    damage_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deposit_refund_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    reservation: Mapped["Reservation"] = relationship(back_populates="checkout_record")


class ReservationEvent(Base):
    __tablename__ = "reservation_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reservation_id: Mapped[int] = mapped_column(Integer, ForeignKey("reservations.id"), nullable=False, index=True)
    actor_account_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("accounts.id"), nullable=True)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
