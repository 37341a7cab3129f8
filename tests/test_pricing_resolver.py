"""
Unit Tests for Pricing Resolver
"""

from decimal import Decimal

import pytest

from settlement.calculators.pricing import PricingResolver, quantize_money
from settlement.models import ClassType, TrainerLevel


class TestPricingResolver:

    @pytest.fixture
    def resolver(self, class_types):
        return PricingResolver({c.id: c for c in class_types})

    def test_single_session_price_for_regular(self, resolver):
        """Regular trainers use the Regular single-session price."""
        assert resolver.price("group", TrainerLevel.REGULAR) == Decimal("100")

    def test_master_level_uses_master_column(self, resolver):
        """Master trainers use the Master single-session price."""
        assert resolver.price("group", TrainerLevel.MASTER) == Decimal("150")

    def test_accepts_level_as_plain_string(self, resolver):
        """A plain string level resolves like the enum."""
        assert resolver.price("duo", "Regular") == Decimal("80")

    def test_missing_class_type_is_zero(self, resolver):
        """A dangling reference must not crash payout computation."""
        assert resolver.price("pilates-reformer", TrainerLevel.REGULAR) == Decimal("0")

    def test_missing_level_is_zero(self):
        """A price table without the trainer's level gives zero."""
        resolver = PricingResolver({"x": ClassType(id="x", pricing={"Regular": {"1": Decimal("50")}})})
        assert resolver.price("x", TrainerLevel.MASTER) == Decimal("0")

    def test_missing_single_session_tier_is_zero(self):
        """Only the 1-session tier values a session; 5 and 10 are ignored."""
        resolver = PricingResolver({"x": ClassType(id="x", pricing={"Regular": {"5": Decimal("200")}})})
        assert resolver.price("x", TrainerLevel.REGULAR) == Decimal("0")


class TestQuantizeMoney:

    def test_rounds_half_up(self):
        """Half a cent rounds up."""
        assert quantize_money(Decimal("10.005")) == Decimal("10.01")

    def test_keeps_exact_cents(self):
        """Exact cents are unchanged."""
        assert quantize_money(Decimal("33.30")) == Decimal("33.30")
