# Overview: Redemption settlement pricing shared by every caller.

"""
Settlement Calculator

total = principal + interest + service fee, where interest is a flat
percentage of the principal (not prorated by days elapsed). All arithmetic
happens in integer cents with half-up rounding so the redemption screen,
the dashboards and the ledger agree to the cent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..errors import InvalidInput
from ..validation import cents_to_decimal, check_amount_cents, to_cents


DEFAULT_INTEREST_RATE_BPS = 350
DEFAULT_SERVICE_FEE_CENTS = 5000


@dataclass(frozen=True)
class Settlement:
    principal: Decimal
    interest: Decimal
    service_fee: Decimal
    total: Decimal
    rate_bps: int

    @property
    def total_cents(self) -> int:
        return int(self.total * 100)

    def to_dict(self) -> dict:
        return {
            "principal": float(self.principal),
            "interest": float(self.interest),
            "service_fee": float(self.service_fee),
            "total": float(self.total),
            "total_cents": self.total_cents,
            "interest_rate_bps": self.rate_bps,
        }


def interest_cents(principal_cents: int, rate_bps: int) -> int:
    """principal * rate, half-up to the cent."""
    if rate_bps < 0:
        raise InvalidInput("interest rate must be >= 0")
    raw = Decimal(principal_cents) * Decimal(rate_bps) / Decimal(10000)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def settle_cents(
    principal_cents: int,
    rate_bps: int = DEFAULT_INTEREST_RATE_BPS,
    service_fee_cents: int = DEFAULT_SERVICE_FEE_CENTS,
) -> Settlement:
    if principal_cents < 0:
        raise InvalidInput("principal must be >= 0")
    check_amount_cents(principal_cents, "principal")
    interest = interest_cents(principal_cents, rate_bps)
    total = principal_cents + interest + service_fee_cents
    return Settlement(
        principal=cents_to_decimal(principal_cents),
        interest=cents_to_decimal(interest),
        service_fee=cents_to_decimal(service_fee_cents),
        total=cents_to_decimal(total),
        rate_bps=rate_bps,
    )


def settle(
    principal,
    rate_bps: int = DEFAULT_INTEREST_RATE_BPS,
    service_fee_cents: int = DEFAULT_SERVICE_FEE_CENTS,
) -> Settlement:
    """
    Price a redemption for a principal given in currency units.

    settle(50000) -> interest 1750.00, fee 50.00, total 51800.00.
    Raises InvalidInput on negative or non-finite principal.
    """
    return settle_cents(to_cents(principal, "principal"), rate_bps, service_fee_cents)
