from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import Request


def utcnow() -> datetime:
    # Stored timestamps are naive UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock:
    """Wall-clock UTC. Tests swap in a FrozenClock via app.state.clock."""

    def now(self) -> datetime:
        return utcnow()


class FrozenClock(Clock):
    def __init__(self, at: datetime) -> None:
        self.at = at

    def now(self) -> datetime:
        return self.at

    def advance(self, **delta) -> None:
        self.at = self.at + timedelta(**delta)


def get_now(request: Request) -> datetime:
    return request.app.state.clock.now()
