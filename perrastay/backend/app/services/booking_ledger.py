# backend/app/services/booking_ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..config import Settings, settings as default_settings
from ..domain import reservation_states as rs
from ..domain.audit import audit_write
from ..domain.errors import BookingConflict, Forbidden, InvalidTransition, ValidationError
from ..domain.refund_policy import RefundQuote, quote_refund
from ..models import Listing, Reservation
from .calendar_rules import claim_nights, ensure_no_overlap, release_nights
from .ownership import GUEST, HOST, must_get_listing, must_get_reservation, party_of

if TYPE_CHECKING:
    from ..auth import Principal

log = logging.getLogger(__name__)

HOST_DECLINE_REASON = "declined_by_host"


@dataclass(frozen=True)
class ReservationView:
    """A reservation as a caller sees it: stored row plus derived status."""

    reservation: Reservation
    status: str
    party: str

    def as_dict(self) -> dict:
        r = self.reservation
        return {
            "id": int(r.id),
            "listing_id": int(r.listing_id),
            "guest_id": int(r.guest_id),
            "check_in_date": r.check_in_date,
            "check_out_date": r.check_out_date,
            "total_amount": r.total_amount,
            "deposit_amount": r.deposit_amount,
            "status": self.status,
            "deposit_refunded": bool(r.deposit_refunded),
            "checkout_confirmed_by_host": bool(r.checkout_confirmed_by_host),
            "checkout_confirmed_at": r.checkout_confirmed_at,
            "cancellation_reason": r.cancellation_reason,
            "cancelled_by_id": r.cancelled_by_id,
            "cancelled_at": r.cancelled_at,
            "refund_amount": r.refund_amount,
            "refund_tier": r.refund_tier,
            "created_at": r.created_at,
            "viewer_party": self.party,
        }


@dataclass(frozen=True)
class CancellationResult:
    view: ReservationView
    refund: RefundQuote


def effective(r: Reservation, now: datetime) -> str:
    return rs.effective_status(r.status, r.check_in_date, r.check_out_date, now)


def _view(r: Reservation, listing: Listing, principal: "Principal", now: datetime) -> ReservationView:
    return ReservationView(reservation=r, status=effective(r, now), party=party_of(r, listing, principal))


def _resolve(
    db: Session, reservation_id: int, principal: "Principal", *, for_update: bool = False
) -> tuple[Reservation, Listing, str]:
    # NotFound if missing, Forbidden if the caller is neither guest nor listing owner.
    r = must_get_reservation(db, reservation_id=reservation_id, for_update=for_update)
    listing = must_get_listing(db, listing_id=r.listing_id)
    return r, listing, party_of(r, listing, principal)


def apply_transition(db: Session, r: Reservation, *, expected: str, **values) -> None:
    """
    Write a state change only if the stored status is still `expected`.

    The row lock covers PostgreSQL; the conditional UPDATE covers every store.
    A writer that lost the race gets InvalidTransition and changes nothing.
    """
    rid = int(r.id)
    res = db.execute(
        update(Reservation)
        .where(Reservation.id == rid, Reservation.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if int(res.rowcount or 0) != 1:
        db.rollback()
        log.info("stale transition rejected", extra={"event": "transition_conflict", "reservation_id": rid})
        raise InvalidTransition("status", "reservation was changed by another request")
    db.refresh(r)


# -----------------------------------------------------------------------------
# Create (-> pending)
# -----------------------------------------------------------------------------
def create_reservation(
    db: Session,
    *,
    principal: "Principal",
    listing_id: int,
    check_in: date,
    check_out: date,
    total_amount: Decimal,
    now: Optional[datetime] = None,
    cfg: Settings = default_settings,
) -> ReservationView:
    """
    Request a stay. Guest-only.

    The overlap check and the insert share one transaction. The listing row is
    locked first, and the per-night unique index backs the check, so two
    concurrent requests for overlapping dates cannot both persist.
    """
    now = now or utcnow()
    if principal.is_host:
        raise Forbidden("only guests can request reservations")

    if check_out <= check_in:
        raise ValidationError("check_out_date", "must be after check_in_date")
    if (check_out - check_in).days > int(cfg.max_stay_nights):
        raise ValidationError("check_out_date", f"stays are limited to {int(cfg.max_stay_nights)} nights")
    if check_in < now.date():
        raise ValidationError("check_in_date", "must not be in the past")
    total = Decimal(str(total_amount))
    if total <= 0:
        raise ValidationError("total_amount", "must be greater than zero")

    listing = must_get_listing(db, listing_id=listing_id, for_update=True)
    if int(listing.host_id) == int(principal.account_id):
        raise Forbidden("you cannot book your own listing")

    try:
        ensure_no_overlap(db, listing_id=listing.id, check_in=check_in, check_out=check_out)

        r = Reservation(
            listing_id=int(listing.id),
            guest_id=int(principal.account_id),
            check_in_date=check_in,
            check_out_date=check_out,
            total_amount=total,
            deposit_amount=Decimal(str(listing.deposit_amount)),
            status=rs.PENDING,
            deposit_refunded=False,
            created_at=now,
            updated_at=now,
        )
        db.add(r)
        db.flush()
        claim_nights(db, r)
        audit_write(
            db,
            reservation_id=r.id,
            actor_account_id=principal.account_id,
            event_type="reservation.requested",
            payload={"check_in": check_in, "check_out": check_out, "total_amount": total},
            created_at=now,
        )
        db.commit()
    except BookingConflict:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        log.info("night claim collided", extra={"event": "booking_conflict", "listing_id": listing_id})
        raise BookingConflict() from e

    log.info("reservation requested", extra={"event": "reservation_requested", "reservation_id": r.id})
    return ReservationView(reservation=r, status=effective(r, now), party=GUEST)


# -----------------------------------------------------------------------------
# Confirm (pending -> confirmed)
# -----------------------------------------------------------------------------
def confirm_reservation(
    db: Session, *, principal: "Principal", reservation_id: int, now: Optional[datetime] = None
) -> ReservationView:
    now = now or utcnow()
    r, listing, party = _resolve(db, reservation_id, principal, for_update=True)
    if party != HOST:
        raise Forbidden("only the listing owner can confirm a reservation")

    current = effective(r, now)
    if not rs.can_transition(current, rs.CONFIRMED):
        raise InvalidTransition("status", f"cannot confirm a reservation that is {current}")

    apply_transition(db, r, expected=r.status, status=rs.CONFIRMED, updated_at=now)
    audit_write(db, reservation_id=r.id, actor_account_id=principal.account_id, event_type="reservation.confirmed", created_at=now)
    db.commit()

    log.info("reservation confirmed", extra={"event": "reservation_confirmed", "reservation_id": r.id})
    return _view(r, listing, principal, now)


# -----------------------------------------------------------------------------
# Cancel / decline (pending|confirmed -> cancelled)
# -----------------------------------------------------------------------------
def refund_quote(
    db: Session, *, principal: "Principal", reservation_id: int, now: Optional[datetime] = None
) -> RefundQuote:
    now = now or utcnow()
    r, _listing, _party = _resolve(db, reservation_id, principal)
    return quote_refund(check_in=r.check_in_date, total_amount=r.total_amount, deposit_amount=r.deposit_amount, now=now)


def cancel_reservation(
    db: Session,
    *,
    principal: "Principal",
    reservation_id: int,
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> CancellationResult:
    """
    Cancel as the guest (own reservation) or decline/cancel as the listing owner.

    The refund is computed at cancellation time and stored with the reason.
    """
    now = now or utcnow()
    r, listing, party = _resolve(db, reservation_id, principal, for_update=True)

    reason = (reason or "").strip()
    if party == HOST and not reason:
        reason = HOST_DECLINE_REASON
    if not reason:
        raise ValidationError("reason", "a cancellation reason is required")

    current = effective(r, now)
    if not rs.can_transition(current, rs.CANCELLED):
        raise InvalidTransition("status", f"cannot cancel a reservation that is {current}")
    if current == rs.CONFIRMED and now.date() >= r.check_in_date:
        # stay window reached or passed; it ends through checkout
        raise InvalidTransition("status", "cannot cancel a reservation once the stay has started")

    quote = quote_refund(check_in=r.check_in_date, total_amount=r.total_amount, deposit_amount=r.deposit_amount, now=now)

    apply_transition(
        db,
        r,
        expected=r.status,
        status=rs.CANCELLED,
        cancellation_reason=reason,
        cancelled_by_id=int(principal.account_id),
        cancelled_at=now,
        refund_amount=quote.amount,
        refund_tier=quote.tier,
        updated_at=now,
    )
    release_nights(db, r)
    audit_write(
        db,
        reservation_id=r.id,
        actor_account_id=principal.account_id,
        event_type="reservation.cancelled",
        payload={"by": party, "reason": reason, "refund": quote.as_dict()},
        created_at=now,
    )
    db.commit()

    log.info(
        "reservation cancelled",
        extra={"event": "reservation_cancelled", "reservation_id": r.id, "account_id": principal.account_id},
    )
    return CancellationResult(view=_view(r, listing, principal, now), refund=quote)


def apply_status_change(
    db: Session,
    *,
    principal: "Principal",
    reservation_id: int,
    status: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReservationView:
    """
    Status writes from the host dashboard.

    Only guarded transitions are reachable; the stored status is never set directly.
    """
    target = (status or "").strip().lower()
    r, _listing, party = _resolve(db, reservation_id, principal)
    if party != HOST:
        raise Forbidden("only the listing owner can change reservation status")

    if target == rs.CONFIRMED:
        return confirm_reservation(db, principal=principal, reservation_id=r.id, now=now)
    if target == rs.CANCELLED:
        return cancel_reservation(db, principal=principal, reservation_id=r.id, reason=reason, now=now).view
    raise ValidationError("status", "must be one of confirmed, cancelled")


# -----------------------------------------------------------------------------
# Reads
# -----------------------------------------------------------------------------
def get_reservation(
    db: Session, *, principal: "Principal", reservation_id: int, now: Optional[datetime] = None
) -> ReservationView:
    now = now or utcnow()
    r, listing, _party = _resolve(db, reservation_id, principal)
    return _view(r, listing, principal, now)


def list_for_guest(db: Session, *, principal: "Principal", now: Optional[datetime] = None) -> list[ReservationView]:
    now = now or utcnow()
    rows = db.scalars(
        select(Reservation)
        .where(Reservation.guest_id == int(principal.account_id))
        .order_by(Reservation.check_in_date.desc(), Reservation.id.desc())
    ).all()
    return [ReservationView(reservation=r, status=effective(r, now), party=GUEST) for r in rows]


def list_for_host(db: Session, *, principal: "Principal", now: Optional[datetime] = None) -> list[ReservationView]:
    now = now or utcnow()
    rows = db.scalars(
        select(Reservation)
        .join(Listing, Listing.id == Reservation.listing_id)
        .where(Listing.host_id == int(principal.account_id))
        .order_by(Reservation.check_in_date.desc(), Reservation.id.desc())
    ).all()
    return [ReservationView(reservation=r, status=effective(r, now), party=HOST) for r in rows]
