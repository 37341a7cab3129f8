"""
Settlement Recorder

Turns a confirmed PayoutCalculation into an immutable Payment. The Payment,
its settled periods and the consumed advances are committed as one unit.
"""

import logging
import uuid
from datetime import datetime, timezone

from .errors import AlreadySettledError, NothingToPayError, TransactionConflictError
from .models import PayoutCalculation, Payment, Period, Trainer
from .store import StudioStore

logger = logging.getLogger(__name__)


class SettlementRecorder:
    """The single place where payout state changes."""

    def __init__(self, store: StudioStore):
        self.store = store

    def record(
        self,
        trainer: Trainer,
        current_period: Period,
        calculation: PayoutCalculation,
        payment_date: datetime | None = None,
    ) -> Payment:
        if calculation.trainer.id != trainer.id:
            raise ValueError(f"Calculation belongs to trainer {calculation.trainer.id}, not {trainer.id}")
        if calculation.current_period.label != current_period.label:
            raise ValueError(
                f"Calculation is for {calculation.current_period.label}, not {current_period.label}"
            )
        if calculation.is_settled:
            raise AlreadySettledError(f"{current_period.label} is already settled for trainer {trainer.id}")
        if calculation.total_due <= 0:
            raise NothingToPayError(
                f"Nothing to pay trainer {trainer.id}: total due is {calculation.total_due}"
            )

        with self.store.transaction(("trainer", trainer.id)) as txn:
            self._check_still_current(trainer, current_period, calculation)

            payment = Payment(
                id=str(uuid.uuid4()),
                trainer_id=trainer.id,
                amount=calculation.total_due,
                payment_date=payment_date or datetime.now(timezone.utc),
                settled_periods=tuple(self.periods_to_settle(current_period, calculation)),
                balance_brought_forward=calculation.balance_brought_forward,
                manual_adjustment=calculation.manual_adjustment,
                advance_deductions_total=calculation.advance_deductions,
                earnings_for_period=calculation.this_period_earnings,
            )
            txn.append("payments", payment)
            for advance_id in calculation.advance_ids:
                txn.update("advance_payments", advance_id, is_applied=True, applied_payment_id=payment.id)

        logger.info(
            f"Recorded payment {payment.id} of {payment.amount} for trainer {trainer.id} "
            f"covering {len(payment.settled_periods)} period(s)"
        )
        return payment

    @staticmethod
    def periods_to_settle(current_period: Period, calculation: PayoutCalculation) -> list[Period]:
        """
        Unpaid prior periods, plus the current one only if it contributed.

        Paying off old weeks must not mark a current week with nothing in
        it as settled; that week may still be worked later.
        """
        periods = list(calculation.unpaid_periods)
        if calculation.this_period_earnings + calculation.manual_adjustment > 0:
            periods.append(current_period)
        return periods

    def _check_still_current(self, trainer: Trainer, current_period: Period, calculation: PayoutCalculation) -> None:
        """Re-read settlement state under the partition lock."""
        history = self.store.history()
        settled = history.settled_labels(trainer.id)

        if current_period.label in settled:
            raise AlreadySettledError(f"{current_period.label} is already settled for trainer {trainer.id}")

        stale = [p.label for p in calculation.unpaid_periods if p.label in settled]
        if stale:
            raise TransactionConflictError(
                f"Periods settled since the payout was calculated: {', '.join(stale)}"
            )

        unapplied = {a.id for a in history.unapplied_advances(trainer.id)}
        if unapplied != set(calculation.advance_ids):
            raise TransactionConflictError(
                f"Advances for trainer {trainer.id} changed since the payout was calculated"
            )
