# backend/tests/test_concurrent_transitions.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.domain.errors import BookingConflict, InvalidTransition
from app.models import Reservation, ReservationNight
from app.services import booking_ledger as ledger
from app.services import calendar_rules
from app.services.ownership import must_get_listing as real_must_get_listing

from conftest import NOW, make_account, make_listing, principal_for

CHECK_IN = date(2026, 4, 10)
CHECK_OUT = date(2026, 4, 20)


@pytest.fixture
def parties(file_session_factory):
    with file_session_factory() as s:
        host = make_account(s, email="host@example.com", is_host=True)
        guest = make_account(s, email="guest@example.com")
        listing = make_listing(s, host)
        v = ledger.create_reservation(
            s,
            principal=principal_for(guest),
            listing_id=listing.id,
            check_in=CHECK_IN,
            check_out=CHECK_OUT,
            total_amount=Decimal("1000.00"),
            now=NOW,
        )
        return principal_for(host), principal_for(guest), int(listing.id), int(v.reservation.id)


def _between_read_and_write(monkeypatch, action):
    """Run `action` once, after the caller has read the reservation but before it writes."""
    fired = []

    def hooked(db, **kw):
        if not fired:
            fired.append(True)
            action()
        return real_must_get_listing(db, **kw)

    monkeypatch.setattr(ledger, "must_get_listing", hooked)


def _night_count(session_factory, reservation_id):
    with session_factory() as s:
        return s.scalar(
            select(func.count()).select_from(ReservationNight).where(ReservationNight.reservation_id == reservation_id)
        )


def test_confirm_loses_to_a_cancel_that_committed_first(monkeypatch, file_session_factory, parties):
    host, guest, _listing_id, rid = parties

    def guest_cancels():
        with file_session_factory() as other:
            ledger.cancel_reservation(other, principal=guest, reservation_id=rid, reason="plans changed", now=NOW)

    _between_read_and_write(monkeypatch, guest_cancels)

    with file_session_factory() as s:
        with pytest.raises(InvalidTransition):
            ledger.confirm_reservation(s, principal=host, reservation_id=rid, now=NOW)

    with file_session_factory() as s:
        r = s.get(Reservation, rid)
        assert r.status == "cancelled"
        assert r.cancellation_reason == "plans changed"
    assert _night_count(file_session_factory, rid) == 0


def test_second_cancel_does_not_overwrite_the_first(monkeypatch, file_session_factory, parties):
    host, guest, _listing_id, rid = parties

    def guest_cancels():
        with file_session_factory() as other:
            ledger.cancel_reservation(other, principal=guest, reservation_id=rid, reason="plans changed", now=NOW)

    _between_read_and_write(monkeypatch, guest_cancels)

    with file_session_factory() as s:
        with pytest.raises(InvalidTransition):
            ledger.cancel_reservation(s, principal=host, reservation_id=rid, reason=None, now=NOW)

    with file_session_factory() as s:
        r = s.get(Reservation, rid)
        assert r.cancellation_reason == "plans changed"
        assert r.cancelled_by_id == guest.account_id


def test_night_claims_reject_a_booking_that_slipped_past_the_check(monkeypatch, file_session_factory, parties):
    _host, guest, listing_id, _rid = parties
    with file_session_factory() as s:
        rival = principal_for(make_account(s, email="rival@example.com"))

    real_check = calendar_rules.ensure_no_overlap

    def check_then_rival_books(db, **kw):
        # the check passes, then another session claims the same nights
        real_check(db, **kw)
        monkeypatch.setattr(ledger, "ensure_no_overlap", real_check)
        with file_session_factory() as other:
            ledger.create_reservation(
                other,
                principal=rival,
                listing_id=listing_id,
                check_in=date(2026, 5, 1),
                check_out=date(2026, 5, 5),
                total_amount=Decimal("400.00"),
                now=NOW,
            )

    monkeypatch.setattr(ledger, "ensure_no_overlap", check_then_rival_books)

    with file_session_factory() as s:
        with pytest.raises(BookingConflict):
            ledger.create_reservation(
                s,
                principal=guest,
                listing_id=listing_id,
                check_in=date(2026, 5, 3),
                check_out=date(2026, 5, 8),
                total_amount=Decimal("500.00"),
                now=NOW,
            )

    with file_session_factory() as s:
        may = s.scalars(select(Reservation).where(Reservation.check_in_date >= date(2026, 5, 1))).all()
        assert [(r.guest_id, r.check_in_date) for r in may] == [(rival.account_id, date(2026, 5, 1))]
        assert s.scalar(
            select(func.count()).select_from(ReservationNight).where(ReservationNight.night >= date(2026, 5, 1))
        ) == 4
