from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.domain.refund_policy import days_until, quote_refund, tier_for

MIDNIGHT = datetime(2026, 3, 1, 0, 0, 0)


@pytest.mark.parametrize(
    "days,pct,tier,amount",
    [
        (45, 100, "full", "1500.00"),
        (30, 100, "full", "1500.00"),
        (29, 50, "half", "750.00"),
        (14, 50, "half", "750.00"),
        (13, 25, "quarter", "375.00"),
        (7, 25, "quarter", "375.00"),
        (6, 0, "none", "0.00"),
        (0, 0, "none", "0.00"),
    ],
)
def test_refund_tiers_apply_to_total_plus_deposit(days, pct, tier, amount):
    check_in = date.fromordinal(MIDNIGHT.date().toordinal() + days)
    q = quote_refund(check_in=check_in, total_amount=Decimal("1000.00"), deposit_amount=Decimal("500.00"), now=MIDNIGHT)
    assert q.days_until_check_in == days
    assert q.percentage == pct
    assert q.tier == tier
    assert q.amount == Decimal(amount)


def test_partial_day_floors_down():
    # 30 days away by calendar, 29.5 days by the clock
    now = datetime(2026, 3, 1, 12, 0, 0)
    assert days_until(date(2026, 3, 31), now) == 29
    assert tier_for(29) == (50, "half")


def test_past_check_in_is_negative_and_refunds_nothing():
    q = quote_refund(check_in=date(2026, 2, 27), total_amount="800", deposit_amount="200", now=MIDNIGHT)
    assert q.days_until_check_in < 0
    assert q.tier == "none"
    assert q.amount == Decimal("0.00")


def test_rounds_half_up_to_cents():
    # 25% of 10.10 is 2.525
    check_in = date(2026, 3, 10)
    q = quote_refund(check_in=check_in, total_amount="10.10", deposit_amount="0", now=MIDNIGHT)
    assert q.percentage == 25
    assert q.amount == Decimal("2.53")


def test_quote_is_pure():
    args = dict(check_in=date(2026, 4, 15), total_amount="1234.56", deposit_amount="100", now=MIDNIGHT)
    assert quote_refund(**args) == quote_refund(**args)
