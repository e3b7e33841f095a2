# backend/app/domain/checkout.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import ValidationError

# Ordered best to worst.
CONDITION_TIERS = ("excellent", "good", "fair", "poor", "damaged")
DEPOSIT_ELIGIBLE_CONDITIONS = frozenset({"excellent", "good"})


@dataclass(frozen=True)
class CheckoutAssessment:
    condition: str
    damages_reported: bool
    damage_description: Optional[str]
    notes: Optional[str]
    refund_eligible: bool

    @property
    def message(self) -> str:
        if self.refund_eligible:
            return "Checkout confirmed. The security deposit will be refunded to the guest."
        if self.damages_reported:
            return "Checkout confirmed. The security deposit is withheld because damages were reported."
        return f"Checkout confirmed. The security deposit is withheld for a '{self.condition}' condition rating."


def _clean(s: Optional[str]) -> Optional[str]:
    if s is None:
        return None
    s = s.strip()
    return s or None


def assess_checkout(
    *,
    condition: str,
    damages_reported: bool,
    damage_description: Optional[str] = None,
    notes: Optional[str] = None,
) -> CheckoutAssessment:
    """
    Validate a host's checkout judgment and derive deposit eligibility.

    Eligible only for an excellent/good rating with no damages reported.
    """
    cond = (condition or "").strip().lower()
    if cond not in CONDITION_TIERS:
        raise ValidationError("condition", f"must be one of {', '.join(CONDITION_TIERS)}")

    description = _clean(damage_description)
    if damages_reported and not description:
        raise ValidationError("damage_description", "is required when damages are reported")

    eligible = cond in DEPOSIT_ELIGIBLE_CONDITIONS and not damages_reported
    return CheckoutAssessment(
        condition=cond,
        damages_reported=bool(damages_reported),
        damage_description=description if damages_reported else None,
        notes=_clean(notes),
        refund_eligible=eligible,
    )
