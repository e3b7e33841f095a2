# backend/app/services/calendar_rules.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterator, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..domain.errors import BookingConflict
from ..domain.reservation_states import CALENDAR_HOLDING_STORED
from ..models import Reservation, ReservationNight

log = logging.getLogger(__name__)


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Half-open overlap: [a_start, a_end) and [b_start, b_end) share a night.

    Back-to-back stays (one checks out the day the next checks in) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def nights(check_in: date, check_out: date) -> Iterator[date]:
    d = check_in
    while d < check_out:
        yield d
        d += timedelta(days=1)


def find_conflict(
    db: Session,
    *,
    listing_id: int,
    check_in: date,
    check_out: date,
    ignore_reservation_id: Optional[int] = None,
) -> Optional[Reservation]:
    q = select(Reservation).where(
        Reservation.listing_id == int(listing_id),
        Reservation.status.in_(sorted(CALENDAR_HOLDING_STORED)),
        Reservation.check_in_date < check_out,
        Reservation.check_out_date > check_in,
    )
    if ignore_reservation_id is not None:
        q = q.where(Reservation.id != int(ignore_reservation_id))

    for r in db.scalars(q.order_by(Reservation.check_in_date.asc())).all():
        if overlaps(check_in, check_out, r.check_in_date, r.check_out_date):
            return r
    return None


def ensure_no_overlap(db: Session, *, listing_id: int, check_in: date, check_out: date) -> None:
    """Raise BookingConflict if a calendar-holding reservation overlaps."""
    r = find_conflict(db, listing_id=listing_id, check_in=check_in, check_out=check_out)
    if r is not None:
        # the other stay belongs to someone else; keep it out of the response
        log.info(
            "overlap rejected",
            extra={"event": "booking_conflict", "listing_id": int(listing_id), "reservation_id": int(r.id)},
        )
        raise BookingConflict()


def claim_nights(db: Session, reservation: Reservation) -> None:
    for night in nights(reservation.check_in_date, reservation.check_out_date):
        db.add(ReservationNight(listing_id=reservation.listing_id, reservation_id=reservation.id, night=night))


def release_nights(db: Session, reservation: Reservation) -> None:
    # synchronized so released rows leave the identity map too
    db.execute(delete(ReservationNight).where(ReservationNight.reservation_id == int(reservation.id)))
