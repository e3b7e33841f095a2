from __future__ import annotations

from datetime import date, datetime

from app.domain import reservation_states as rs
from app.domain.password_policy import password_problems

CHECK_IN = date(2026, 5, 1)
CHECK_OUT = date(2026, 5, 8)


def test_confirmed_inside_window_is_active():
    assert rs.effective_status("confirmed", CHECK_IN, CHECK_OUT, datetime(2026, 5, 1, 0, 0)) == rs.ACTIVE
    assert rs.effective_status("confirmed", CHECK_IN, CHECK_OUT, datetime(2026, 5, 7, 23, 59)) == rs.ACTIVE


def test_window_is_half_open():
    assert rs.effective_status("confirmed", CHECK_IN, CHECK_OUT, datetime(2026, 4, 30, 23, 59)) == rs.CONFIRMED
    assert rs.effective_status("confirmed", CHECK_IN, CHECK_OUT, datetime(2026, 5, 8, 0, 0)) == rs.CONFIRMED


def test_only_confirmed_becomes_active():
    inside = datetime(2026, 5, 3)
    for stored in ("pending", "completed", "cancelled"):
        assert rs.effective_status(stored, CHECK_IN, CHECK_OUT, inside) == stored


def test_transition_table():
    assert rs.can_transition(rs.PENDING, rs.CONFIRMED)
    assert rs.can_transition(rs.PENDING, rs.CANCELLED)
    assert rs.can_transition(rs.CONFIRMED, rs.CANCELLED)
    assert rs.can_transition(rs.ACTIVE, rs.COMPLETED)
    assert not rs.can_transition(rs.ACTIVE, rs.CANCELLED)
    assert not rs.can_transition(rs.PENDING, rs.COMPLETED)
    for terminal in rs.TERMINAL_STATUSES:
        for target in rs.STORED_STATUSES:
            assert not rs.can_transition(terminal, target)


def test_calendar_holding():
    assert rs.holds_calendar(rs.PENDING)
    assert rs.holds_calendar(rs.ACTIVE)
    assert not rs.holds_calendar(rs.CANCELLED)
    assert not rs.holds_calendar(rs.COMPLETED)


def test_password_complexity_rules():
    assert password_problems("Sup3r-secret!") == []
    assert len(password_problems("short")) >= 1
    assert "must contain at least one special character" in password_problems("NoSymbols123")
    assert "must contain at least one uppercase letter" in password_problems("lower-case-1")
