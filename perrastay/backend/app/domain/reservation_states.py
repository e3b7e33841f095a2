# backend/app/domain/reservation_states.py
from __future__ import annotations

from datetime import date, datetime
from typing import Union

# -----------------------------------------------------------------------------
# Reservation lifecycle
# -----------------------------------------------------------------------------
#   pending -> confirmed -> (active) -> completed
#   pending | confirmed -> cancelled
#
# "active" is never written. It is what a confirmed reservation looks like
# while today falls inside [check_in, check_out).
# -----------------------------------------------------------------------------

PENDING = "pending"
CONFIRMED = "confirmed"
ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"

STORED_STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# Statuses whose reservations block the listing's calendar (effective view).
CALENDAR_HOLDING = frozenset({PENDING, CONFIRMED, ACTIVE})
# Same thing in stored terms.
CALENDAR_HOLDING_STORED = frozenset({PENDING, CONFIRMED})

# effective status -> effective statuses reachable through an explicit write
TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({CANCELLED, COMPLETED}),
    ACTIVE: frozenset({COMPLETED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}


def _as_date(v: Union[date, datetime]) -> date:
    return v.date() if isinstance(v, datetime) else v


def effective_status(stored: str, check_in: date, check_out: date, now: Union[date, datetime]) -> str:
    s = (stored or PENDING).strip().lower()
    if s == CONFIRMED and check_in <= _as_date(now) < check_out:
        return ACTIVE
    return s


def can_transition(current_effective: str, target: str) -> bool:
    return target in TRANSITIONS.get(current_effective, frozenset())


def holds_calendar(effective: str) -> bool:
    return effective in CALENDAR_HOLDING
