"""
Pricing Resolver

Values a single session of a class type for a trainer level.
"""

from decimal import ROUND_HALF_UP, Decimal

from ..models import ClassType, TrainerLevel

SINGLE_SESSION_TIER = "1"


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents. Only used at the display boundary."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class PricingResolver:
    """Looks up the single-session price from a class type's pricing table."""

    def __init__(self, class_types: dict[str, ClassType]):
        self.class_types = class_types

    def has_class_type(self, class_type_id: str) -> bool:
        return class_type_id in self.class_types

    def price(self, class_type_id: str, trainer_level: TrainerLevel) -> Decimal:
        """
        Price of one session, or zero when the class type, the level or the
        single-session tier is missing. Missing references never raise.
        """
        class_type = self.class_types.get(class_type_id)
        if class_type is None:
            return Decimal("0")
        tiers = class_type.pricing.get(TrainerLevel(trainer_level).value, {})
        return tiers.get(SINGLE_SESSION_TIER, Decimal("0"))
