# backend/app/domain/refund_policy.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# Ordered most generous first. A row applies when days_until_check_in >= min_days.
# Changing the cancellation policy is an edit to this table only.
REFUND_TIERS: tuple[tuple[int, int, str], ...] = (
    (30, 100, "full"),
    (14, 50, "half"),
    (7, 25, "quarter"),
)
NO_REFUND_TIER = "none"

_CENTS = Decimal("0.01")
_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class RefundQuote:
    days_until_check_in: int
    percentage: int
    tier: str
    amount: Decimal

    def as_dict(self) -> dict:
        return {
            "days_until_check_in": self.days_until_check_in,
            "percentage": self.percentage,
            "tier": self.tier,
            "amount": str(self.amount),
        }


def _as_datetime(v: Union[date, datetime]) -> datetime:
    if isinstance(v, datetime):
        return v.replace(tzinfo=None) if v.tzinfo is not None else v
    return datetime.combine(v, time.min)


def days_until(check_in: Union[date, datetime], now: datetime) -> int:
    """floor((check_in - now) / 1 day); a date check-in counts from midnight UTC."""
    delta = _as_datetime(check_in) - _as_datetime(now)
    return math.floor(delta.total_seconds() / _SECONDS_PER_DAY)


def tier_for(days: int) -> tuple[int, str]:
    for min_days, pct, name in REFUND_TIERS:
        if days >= min_days:
            return pct, name
    return 0, NO_REFUND_TIER


def quote_refund(
    *,
    check_in: Union[date, datetime],
    total_amount: Decimal | int | str,
    deposit_amount: Decimal | int | str,
    now: datetime,
) -> RefundQuote:
    """
    Refund owed when a reservation is cancelled at `now`.

    The percentage applies to total + deposit. Pure: no clock, no store.
    """
    days = days_until(check_in, now)
    pct, tier = tier_for(days)
    base = Decimal(str(total_amount)) + Decimal(str(deposit_amount))
    amount = (base * Decimal(pct) / Decimal(100)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return RefundQuote(days_until_check_in=days, percentage=pct, tier=tier, amount=amount)
