# backend/app/routers/bookings.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_settings, require_host
from ..clock import get_now
from ..config import Settings
from ..db import get_db
from ..domain.audit import list_events
from ..schemas import (
    CancelIn,
    CancellationOut,
    CheckoutIn,
    CheckoutOut,
    RefundQuoteOut,
    ReservationCreate,
    ReservationEventOut,
    ReservationOut,
    StatusChangeIn,
)
from ..services import booking_ledger
from ..services.checkout_service import confirm_checkout

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _out(view: booking_ledger.ReservationView) -> ReservationOut:
    return ReservationOut(**view.as_dict())


@router.post("", response_model=ReservationOut, status_code=201)
def create_booking(
    payload: ReservationCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
    cfg: Settings = Depends(get_settings),
):
    view = booking_ledger.create_reservation(
        db,
        principal=p,
        listing_id=payload.listing_id,
        check_in=payload.check_in_date,
        check_out=payload.check_out_date,
        total_amount=payload.total_amount,
        now=now,
        cfg=cfg,
    )
    return _out(view)


# static paths before /{reservation_id}
@router.get("/guest", response_model=list[ReservationOut])
def my_bookings(db: Session = Depends(get_db), now: datetime = Depends(get_now), p: Principal = Depends(get_principal)):
    return [_out(v) for v in booking_ledger.list_for_guest(db, principal=p, now=now)]


@router.get("/host", response_model=list[ReservationOut])
def host_bookings(db: Session = Depends(get_db), now: datetime = Depends(get_now), p: Principal = Depends(require_host)):
    return [_out(v) for v in booking_ledger.list_for_host(db, principal=p, now=now)]


@router.get("/{reservation_id}", response_model=ReservationOut)
def get_booking(
    reservation_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    return _out(booking_ledger.get_reservation(db, principal=p, reservation_id=reservation_id, now=now))


@router.get("/{reservation_id}/refund-quote", response_model=RefundQuoteOut)
def refund_quote(
    reservation_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    quote = booking_ledger.refund_quote(db, principal=p, reservation_id=reservation_id, now=now)
    return RefundQuoteOut(**quote.as_dict())


@router.get("/{reservation_id}/events", response_model=list[ReservationEventOut])
def booking_events(
    reservation_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    # party check first; the event log is as private as the reservation
    booking_ledger.get_reservation(db, principal=p, reservation_id=reservation_id, now=now)
    return [ReservationEventOut(**e) for e in list_events(db, reservation_id=reservation_id)]


@router.post("/{reservation_id}/confirm", response_model=ReservationOut)
def confirm_booking(
    reservation_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    return _out(booking_ledger.confirm_reservation(db, principal=p, reservation_id=reservation_id, now=now))


@router.post("/{reservation_id}/cancel", response_model=CancellationOut)
def cancel_booking(
    reservation_id: int,
    payload: CancelIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    result = booking_ledger.cancel_reservation(
        db, principal=p, reservation_id=reservation_id, reason=payload.reason, now=now
    )
    return CancellationOut(reservation=_out(result.view), refund=RefundQuoteOut(**result.refund.as_dict()))


@router.patch("/{reservation_id}/status", response_model=ReservationOut)
def change_status(
    reservation_id: int,
    payload: StatusChangeIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    view = booking_ledger.apply_status_change(
        db, principal=p, reservation_id=reservation_id, status=payload.status, reason=payload.reason, now=now
    )
    return _out(view)


@router.post("/{reservation_id}/checkout", response_model=CheckoutOut)
def checkout(
    reservation_id: int,
    payload: CheckoutIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(get_principal),
):
    result = confirm_checkout(
        db,
        principal=p,
        reservation_id=reservation_id,
        condition=payload.condition,
        damages_reported=payload.damages_reported,
        damage_description=payload.damage_description,
        notes=payload.notes,
        now=now,
    )
    return CheckoutOut(reservation_id=result.reservation_id, refund_eligible=result.refund_eligible, message=result.message)
