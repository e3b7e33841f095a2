# backend/app/services/ownership.py
from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import Forbidden, NotFound
from ..models import Listing, Reservation

if TYPE_CHECKING:
    from ..auth import Principal

GUEST = "guest"
HOST = "host"


def must_get_listing(db: Session, *, listing_id: int, for_update: bool = False) -> Listing:
    q = select(Listing).where(Listing.id == int(listing_id))
    if for_update:
        # serializes bookings per listing on PostgreSQL; a no-op on SQLite
        q = q.with_for_update()
    row = db.scalar(q)
    if not row:
        raise NotFound("listing not found")
    return row


def must_get_reservation(db: Session, *, reservation_id: int, for_update: bool = False) -> Reservation:
    q = select(Reservation).where(Reservation.id == int(reservation_id))
    if for_update:
        # fresh row, held until commit on PostgreSQL
        q = q.with_for_update().execution_options(populate_existing=True)
    row = db.scalar(q)
    if not row:
        raise NotFound("reservation not found")
    return row


def party_of(reservation: Reservation, listing: Listing, principal: "Principal") -> str:
    """
    Which side of the reservation the caller is on.

    Existing-but-not-yours is Forbidden, never NotFound.
    """
    if int(listing.host_id) == int(principal.account_id):
        return HOST
    if int(reservation.guest_id) == int(principal.account_id):
        return GUEST
    raise Forbidden("you are not a party to this reservation")
