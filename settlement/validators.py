"""
Input Validation for the Settlement Engine

Validates studio data before any payout is calculated or recorded.
Raises ValueError with clear messages for any constraint violations.
"""

from decimal import Decimal

from .models import AdvancePayment, ClassType, Package, Trainer
from .store import StudioStore


class InputValidator:
    """Validates studio input according to business rules."""

    def validate(self, store: StudioStore) -> None:
        """
        Run all validations. Raises ValueError if any check fails.
        """
        for class_type in store.all("class_types"):
            self._validate_class_type(class_type)
        for trainer in store.all("trainers"):
            self._validate_trainer(trainer)
        for customer in store.all("customers"):
            for package in customer.packages:
                self.validate_package(package)
        for advance in store.all("advance_payments"):
            self._validate_advance(advance)

    def _validate_class_type(self, class_type: ClassType) -> None:
        for level, tiers in class_type.pricing.items():
            for tier, price in tiers.items():
                if price < 0:
                    raise ValueError(
                        f"Class type {class_type.id} has a negative {level} price for tier {tier}: {price}"
                    )

    def _validate_trainer(self, trainer: Trainer) -> None:
        for class_type_id, rate in trainer.commission_rates.items():
            if not (0 <= rate <= 1):
                raise ValueError(
                    f"Trainer {trainer.id} rate for {class_type_id} must be between 0 and 1, got: {rate}"
                )

    def validate_package(self, package: Package) -> None:
        if package.total_sessions < 0:
            raise ValueError(f"total_sessions cannot be negative, got: {package.total_sessions}")
        if not (0 <= package.sessions_remaining <= package.total_sessions):
            raise ValueError(
                f"sessions_remaining must be between 0 and {package.total_sessions}, "
                f"got: {package.sessions_remaining}"
            )
        if package.price < 0:
            raise ValueError(f"Package price cannot be negative, got: {package.price}")

    def _validate_advance(self, advance: AdvancePayment) -> None:
        if advance.amount < 0:
            raise ValueError(f"Advance {advance.id} amount cannot be negative, got: {advance.amount}")

    def validate_advance_amount(self, amount: Decimal) -> None:
        if amount <= 0:
            raise ValueError(f"Advance amount must be positive, got: {amount}")
