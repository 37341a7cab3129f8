"""
Payroll Processor - Main Orchestrator

Wires the settlement components together over a StudioStore.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from .calculators import (
    BookingLedger,
    EarningsCalculator,
    PackageDebtResolver,
    PayoutCalculator,
    PricingResolver,
)
from .config import StudioSettings
from .errors import TransactionConflictError
from .models import (
    AdvancePayment,
    DebtResolutionMethod,
    DebtResolutionResult,
    Package,
    PayoutCalculation,
    Payment,
    SessionDebt,
    WeeklySummary,
    parse_timestamp,
    to_decimal,
)
from .output import OutputBuilder
from .periods import localize, week_containing
from .recorder import SettlementRecorder
from .store import StudioStore
from .validators import InputValidator

logger = logging.getLogger(__name__)


class PayrollProcessor:
    """
    Main orchestrator for trainer payouts and package debt resolution.

    Payout flow:
    1. Resolve the viewed week
    2. Value this week and every unsettled prior week
    3. Deduct unapplied advances, add the manual adjustment
    4. On confirmation, record the Payment (retrying on conflict)
    """

    def __init__(self, store: StudioStore, settings: StudioSettings | None = None):
        self.store = store
        self.settings = settings or StudioSettings.from_env()
        self.validator = InputValidator()
        self.recorder = SettlementRecorder(store)
        self.debt_resolver = PackageDebtResolver(store, self.settings.tzinfo)

    def _payout_calculator(self) -> PayoutCalculator:
        """Built per call so every view reads the latest store contents."""
        pricing = PricingResolver({c.id: c for c in self.store.all("class_types")})
        ledger = BookingLedger(self.store.all("bookings"), self.settings.tzinfo)
        return PayoutCalculator(EarningsCalculator(ledger, pricing), self.settings)

    # -------------------------------------------------------------------------
    # Payouts (read-only)
    # -------------------------------------------------------------------------

    def calculate_payout(
        self,
        trainer_id: str,
        as_of: datetime | date,
        manual_adjustment: Decimal = Decimal("0"),
    ) -> PayoutCalculation:
        trainer = self.store.trainer(trainer_id)
        period = week_containing(as_of, self.settings)
        return self._payout_calculator().calculate(trainer, period, self.store.history(), manual_adjustment)

    def calculate_payouts(
        self,
        as_of: datetime | date,
        manual_adjustments: Dict[str, Decimal] | None = None,
    ) -> list[PayoutCalculation]:
        """One calculation per trainer; adjustments are keyed by trainer id."""
        manual_adjustments = manual_adjustments or {}
        period = week_containing(as_of, self.settings)
        calculator = self._payout_calculator()
        history = self.store.history()
        return [
            calculator.calculate(trainer, period, history, manual_adjustments.get(trainer.id, Decimal("0")))
            for trainer in self.store.all("trainers")
        ]

    def weekly_summary(self, payouts: list[PayoutCalculation]) -> WeeklySummary | None:
        """Studio-wide totals for the week shared by `payouts`."""
        if not payouts:
            return None
        period = payouts[0].current_period
        tz = self.settings.tzinfo
        summary = WeeklySummary(period=period)
        for payout in payouts:
            if payout.is_settled:
                summary.total_paid += payout.payment_record.amount
            else:
                summary.total_due += payout.total_due
            summary.total_sessions += sum(
                1 for b in payout.included_sessions if period.contains(localize(b.scheduled_at, tz))
            )
        return summary

    def payment_history(self, trainer_id: str) -> list[Payment]:
        self.store.trainer(trainer_id)
        return self.store.history().newest_first(trainer_id, self.settings.tzinfo)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def settle(
        self,
        trainer_id: str,
        as_of: datetime | date,
        manual_adjustment: Decimal = Decimal("0"),
        payment_date: datetime | None = None,
    ) -> Payment:
        """
        Record the payout for the week containing `as_of`.

        A conflicting concurrent write makes the recorder raise
        TransactionConflictError; the payout is then recomputed from fresh
        state and retried up to `settlement_max_retries` times.
        """
        trainer = self.store.trainer(trainer_id)
        attempts = max(1, self.settings.settlement_max_retries)
        for attempt in range(1, attempts + 1):
            calculation = self.calculate_payout(trainer_id, as_of, manual_adjustment)
            try:
                return self.recorder.record(trainer, calculation.current_period, calculation, payment_date)
            except TransactionConflictError as e:
                if attempt == attempts:
                    raise
                logger.warning(f"Settlement conflict for trainer {trainer_id} (attempt {attempt}): {e}")

    def record_advance(
        self,
        trainer_id: str,
        amount: Decimal,
        advance_date: datetime | None = None,
        notes: str = "",
    ) -> AdvancePayment:
        self.store.trainer(trainer_id)
        self.validator.validate_advance_amount(amount)
        advance = AdvancePayment(
            id=str(uuid.uuid4()),
            trainer_id=trainer_id,
            amount=amount,
            date=advance_date or datetime.now(timezone.utc),
            notes=notes,
        )
        with self.store.transaction(("trainer", trainer_id)) as txn:
            txn.append("advance_payments", advance)
        logger.info(f"Recorded advance {advance.id} of {amount} for trainer {trainer_id}")
        return advance

    def purchase_package(self, customer_id: str, package: Package, payment_method: str = "") -> DebtResolutionResult:
        self.validator.validate_package(package)
        return self.debt_resolver.on_package_purchased(customer_id, package, payment_method)

    def resolve_debt_manually(
        self,
        debt_id: str,
        method: DebtResolutionMethod,
        package_id: str | None = None,
        payment_id: str | None = None,
    ) -> SessionDebt:
        return self.debt_resolver.resolve_manually(debt_id, method, package_id, payment_id)


# =============================================================================
# CONVENIENCE FUNCTIONS (API entry points)
# =============================================================================


def _build_processor(data: Dict[str, Any]) -> PayrollProcessor:
    store = StudioStore.from_dict(data.get("studio", {}))
    processor = PayrollProcessor(store, StudioSettings.from_dict(data.get("settings")))
    processor.validator.validate(store)
    return processor


def calculate_payouts_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Payout breakdown for every trainer in the week containing `as_of`.
    """
    processor = _build_processor(data)
    as_of = parse_timestamp(data["as_of"])
    adjustments = {k: to_decimal(v) for k, v in data.get("manual_adjustments", {}).items()}

    payouts = processor.calculate_payouts(as_of, adjustments)
    builder = OutputBuilder(processor.settings)
    return {
        "period": builder.build_period(week_containing(as_of, processor.settings)),
        "payouts": [builder.build_payout(p) for p in payouts],
        "weekly_summary": builder.build_weekly_summary(processor.weekly_summary(payouts)),
    }


def settle_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    processor = _build_processor(data)
    trainer_id = data["trainer_id"]
    payment = processor.settle(
        trainer_id,
        parse_timestamp(data["as_of"]),
        to_decimal(data.get("manual_adjustment", 0)),
        parse_timestamp(data.get("payment_date")),
    )
    builder = OutputBuilder(processor.settings)
    applied = [a for a in processor.store.all("advance_payments") if a.applied_payment_id == payment.id]
    return {
        "payment": builder.build_payment(payment),
        "state_changes": {
            "applied_advances": [builder.build_advance(a) for a in applied],
        },
    }


def purchase_package_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    processor = _build_processor(data)
    customer_id = data["customer_id"]
    package_data = {**data["package"], "customer_id": customer_id}
    package_data.setdefault("id", str(uuid.uuid4()))
    result = processor.purchase_package(
        customer_id,
        Package.from_dict(package_data),
        data.get("payment_method", ""),
    )
    return OutputBuilder(processor.settings).build_debt_resolution(result)


def payment_history_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    processor = _build_processor(data)
    builder = OutputBuilder(processor.settings)
    return {
        "trainer_id": data["trainer_id"],
        "payments": [builder.build_payment(p) for p in processor.payment_history(data["trainer_id"])],
    }
