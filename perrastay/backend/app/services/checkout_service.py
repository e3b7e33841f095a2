# backend/app/services/checkout_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session

from ..clock import utcnow
from ..domain import reservation_states as rs
from ..domain.audit import audit_write
from ..domain.checkout import CheckoutAssessment, assess_checkout
from ..domain.errors import Forbidden, InvalidTransition
from ..models import CheckoutRecord
from .booking_ledger import apply_transition, effective
from .calendar_rules import release_nights
from .ownership import HOST, must_get_listing, must_get_reservation, party_of

if TYPE_CHECKING:
    from ..auth import Principal

log = logging.getLogger(__name__)

CHECKOUT_READY = frozenset({rs.CONFIRMED, rs.ACTIVE})


@dataclass(frozen=True)
class CheckoutResult:
    reservation_id: int
    refund_eligible: bool
    message: str


def confirm_checkout(
    db: Session,
    *,
    principal: "Principal",
    reservation_id: int,
    condition: str,
    damages_reported: bool,
    damage_description: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckoutResult:
    """
    Host records the post-stay property assessment.

    Completes the reservation, decides deposit eligibility and frees the
    calendar in one transaction. A reservation is checked out at most once.
    """
    now = now or utcnow()
    r = must_get_reservation(db, reservation_id=reservation_id, for_update=True)
    listing = must_get_listing(db, listing_id=r.listing_id)
    if party_of(r, listing, principal) != HOST:
        raise Forbidden("only the listing owner can confirm checkout")

    assessment: CheckoutAssessment = assess_checkout(
        condition=condition,
        damages_reported=damages_reported,
        damage_description=damage_description,
        notes=notes,
    )

    current = effective(r, now)
    if r.checkout_confirmed_by_host or current not in CHECKOUT_READY:
        raise InvalidTransition("status", f"cannot check out a reservation that is {current}")
    if now.date() < r.check_out_date:
        raise InvalidTransition("check_out_date", "checkout cannot be confirmed before the check-out date")

    apply_transition(
        db,
        r,
        expected=r.status,
        status=rs.COMPLETED,
        checkout_confirmed_by_host=True,
        checkout_confirmed_at=now,
        deposit_refunded=assessment.refund_eligible,
        updated_at=now,
    )
    db.add(
        CheckoutRecord(
            reservation_id=int(r.id),
            assessed_by_id=int(principal.account_id),
            condition=assessment.condition,
            damages_reported=assessment.damages_reported,
            damage_description=assessment.damage_description,
            notes=assessment.notes,
            deposit_refund_eligible=assessment.refund_eligible,
            created_at=now,
        )
    )
    release_nights(db, r)
    audit_write(
        db,
        reservation_id=r.id,
        actor_account_id=principal.account_id,
        event_type="reservation.checked_out",
        payload={
            "condition": assessment.condition,
            "damages_reported": assessment.damages_reported,
            "refund_eligible": assessment.refund_eligible,
        },
        created_at=now,
    )
    db.commit()

    log.info(
        "checkout confirmed",
        extra={"event": "checkout_confirmed", "reservation_id": r.id, "account_id": principal.account_id},
    )
    return CheckoutResult(reservation_id=int(r.id), refund_eligible=assessment.refund_eligible, message=assessment.message)
