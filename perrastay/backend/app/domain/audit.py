# backend/app/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import ReservationEvent


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def audit_write(
    db: Session,
    *,
    reservation_id: int,
    actor_account_id: Optional[int],
    event_type: str,
    payload: Optional[dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> ReservationEvent:
    """
    Append one ledger event.

    Does NOT commit, so the event lands in the same transaction as the
    state change it describes.
    """
    row = ReservationEvent(
        reservation_id=int(reservation_id),
        actor_account_id=int(actor_account_id) if actor_account_id is not None else None,
        event_type=str(event_type),
        payload_json=_dumps(payload),
    )
    if created_at is not None:
        row.created_at = created_at
    db.add(row)
    return row


def list_events(db: Session, *, reservation_id: int) -> list[dict[str, Any]]:
    rows = db.scalars(
        select(ReservationEvent)
        .where(ReservationEvent.reservation_id == int(reservation_id))
        .order_by(ReservationEvent.id.asc())
    ).all()
    return [
        {
            "id": int(r.id),
            "event_type": r.event_type,
            "actor_account_id": r.actor_account_id,
            "payload": json.loads(r.payload_json) if r.payload_json else {},
            "created_at": r.created_at,
        }
        for r in rows
    ]
