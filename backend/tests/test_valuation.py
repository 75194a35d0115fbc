# Overview: Pytest coverage for loan valuation and settlement pricing.

from decimal import Decimal

import pytest

from pawnshop.errors import InvalidInput
from pawnshop.services.settlement_service import settle, settle_cents, interest_cents
from pawnshop.services.valuation_service import estimate_loan


class TestEstimateLoan:
    def test_heavy_gold(self):
        valuation = estimate_loan("Gold Jewelry", 60)
        assert valuation.risk_score == 15
        assert valuation.base_rate == 3500
        assert valuation.recommended_amount == 147000
        assert valuation.is_high_risk is False

    def test_light_gold(self):
        valuation = estimate_loan("Gold Jewelry", 50)
        assert valuation.risk_score == 25
        assert valuation.recommended_amount == 122500

    def test_silver_coins(self):
        valuation = estimate_loan("Silver Coins", 50)
        assert valuation.risk_score == 35
        assert valuation.base_rate == 45
        assert valuation.recommended_amount == 1575

    def test_heavy_silver(self):
        assert estimate_loan("Silver Jewelry", 150).risk_score == 20

    def test_other_category_is_high_risk(self):
        valuation = estimate_loan("Electronics", 2)
        assert valuation.risk_score == 45
        assert valuation.base_rate == 500
        assert valuation.recommended_amount == 700
        assert valuation.is_high_risk is True

    def test_fractional_weight_rounds_half_up(self):
        # 10.5 * 45 * 0.7 = 330.75
        assert estimate_loan("Silver Jewelry", 10.5).recommended_amount == 331

    def test_numeric_string_weight(self):
        assert estimate_loan("Gold Jewelry", "60").recommended_amount == 147000

    @pytest.mark.parametrize("weight", [0, -1, None, True, "abc", float("nan"), float("inf")])
    def test_rejects_invalid_weight(self, weight):
        with pytest.raises(InvalidInput):
            estimate_loan("Gold Jewelry", weight)

    def test_rejects_blank_category(self):
        with pytest.raises(InvalidInput):
            estimate_loan("  ", 10)

    @pytest.mark.parametrize("weight", [1e30, 10**40, "1e300", 5e7])
    def test_weight_beyond_lending_limit(self, weight):
        with pytest.raises(InvalidInput) as exc:
            estimate_loan("Gold Jewelry", weight)
        assert "lending limit" in str(exc.value)

    def test_largest_weight_within_limit(self):
        # 40,816 g * 3500 * 0.7 = 99,999,200
        assert estimate_loan("Gold Jewelry", 40816).recommended_amount == 99999200


class TestSettlement:
    def test_standard_redemption(self):
        result = settle(50000)
        assert result.principal == Decimal("50000.00")
        assert result.interest == Decimal("1750.00")
        assert result.service_fee == Decimal("50.00")
        assert result.total == Decimal("51800.00")
        assert result.to_dict()["total"] == 51800.0

    def test_cents_are_rounded_half_up(self):
        # 0.35 * 0.035 = 0.01225 -> 0.01
        result = settle(Decimal("0.35"))
        assert result.interest == Decimal("0.01")
        # 100.10 * 0.035 = 3.5035 -> 3.50
        assert settle("100.10").interest == Decimal("3.50")

    def test_zero_principal_still_pays_fee(self):
        assert settle(0).total == Decimal("50.00")

    def test_custom_rate(self):
        assert settle_cents(100000, rate_bps=400).interest == Decimal("40.00")

    def test_interest_cents(self):
        assert interest_cents(14700000, 350) == 514500

    def test_principal_cents_beyond_limit(self):
        with pytest.raises(InvalidInput):
            settle_cents(10**40)

    def test_limit_itself_is_accepted(self):
        assert settle("99999999.99").principal == Decimal("99999999.99")

    @pytest.mark.parametrize("principal", [-1, float("nan"), "x", None, 1e30, "100000000.00", 10**40])
    def test_rejects_invalid_principal(self, principal):
        with pytest.raises(InvalidInput):
            settle(principal)
