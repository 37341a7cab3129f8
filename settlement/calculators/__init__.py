"""
Calculators Package

Provides the valuation and matching components for settlement.
"""

from .debt import PackageDebtResolver
from .earnings import BookingLedger, EarningsCalculator
from .payout import PayoutCalculator
from .pricing import PricingResolver, quantize_money

__all__ = [
    "PricingResolver",
    "BookingLedger",
    "EarningsCalculator",
    "PayoutCalculator",
    "PackageDebtResolver",
    "quantize_money",
]
