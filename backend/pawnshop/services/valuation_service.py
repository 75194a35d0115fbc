# Overview: Loan valuation and risk estimation for pawn intake.

"""
Valuation & Risk Estimator

Advisory only: the recommended amount seeds the intake form and the
operator may lend a different amount. Pure functions, no database access.

Rules (by substring of the category name):
- "Gold":   risk 15 above 50 g, else 25; base rate 3500 per gram
- "Silver": risk 20 above 100 g, else 35; base rate 45 per gram
- other:    risk 45; base rate 500 per unit of weight

recommended_amount = weight * base_rate * 0.7, rounded half-up to a whole
currency unit. A risk score above 40 flags the ticket as high risk.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..errors import InvalidInput
from ..validation import MAX_AMOUNT, check_amount_cents, parse_positive_number, require_text


LOAN_TO_VALUE = Decimal("0.7")
HIGH_RISK_THRESHOLD = 40


@dataclass(frozen=True)
class Valuation:
    risk_score: int
    base_rate: int
    recommended_amount: int
    is_high_risk: bool

    def to_dict(self) -> dict:
        return {
            "risk_score": self.risk_score,
            "base_rate": self.base_rate,
            "recommended_amount": self.recommended_amount,
            "is_high_risk": self.is_high_risk,
        }


def risk_score(category: str, weight: Decimal) -> int:
    if "Gold" in category:
        return 15 if weight > 50 else 25
    if "Silver" in category:
        return 20 if weight > 100 else 35
    return 45


def base_rate(category: str) -> int:
    if "Gold" in category:
        return 3500
    if "Silver" in category:
        return 45
    return 500


def estimate_loan(category, weight) -> Valuation:
    """
    Estimate risk and a recommended loan amount for an item.

    Raises InvalidInput when category is blank, weight is not a positive
    finite number, or the recommendation would exceed the lending limit.
    """
    category = require_text(category, "category", max_length=64)
    grams = parse_positive_number(weight, "weight")

    risk = risk_score(category, grams)
    rate = base_rate(category)
    raw = grams * rate * LOAN_TO_VALUE
    if raw > MAX_AMOUNT:
        raise InvalidInput(
            f"weight {grams} values the item above the {MAX_AMOUNT:,.2f} lending limit",
            details={"weight": str(grams)},
        )
    amount = raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    check_amount_cents(int(amount) * 100, "recommended_amount")

    return Valuation(
        risk_score=risk,
        base_rate=rate,
        recommended_amount=int(amount),
        is_high_risk=risk > HIGH_RISK_THRESHOLD,
    )
