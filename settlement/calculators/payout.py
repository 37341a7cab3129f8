"""
Payout Calculator

Produces the payout breakdown for a trainer and the period being viewed.
"""

import logging
from decimal import Decimal

from ..config import StudioSettings
from ..history import SettlementHistory
from ..models import PayoutCalculation, Period, Trainer
from ..periods import weeks_before
from .earnings import EarningsCalculator

logger = logging.getLogger(__name__)


class PayoutCalculator:
    """
    Read-only projection of what a trainer is owed.

    Total Due = This Period Earnings
              + Balance Brought Forward (unsettled prior weeks with earnings)
              + Manual Adjustment
              - Unapplied Advances

    Nothing here writes state; it is safe to recompute on every view.
    """

    def __init__(self, earnings: EarningsCalculator, settings: StudioSettings):
        self.earnings = earnings
        self.settings = settings

    def calculate(
        self,
        trainer: Trainer,
        current_period: Period,
        history: SettlementHistory,
        manual_adjustment: Decimal = Decimal("0"),
    ) -> PayoutCalculation:
        # Step 1: Earnings for the viewed week
        this_period_earnings = self.earnings.earnings(trainer, current_period.start, current_period.end)

        # Step 2: Labels already covered by this trainer's payments
        settled_labels = history.settled_labels(trainer.id)

        # Step 3: Carry forward unsettled prior weeks
        balance_brought_forward, unpaid_periods = self._carry_forward(trainer, current_period, settled_labels)

        # Step 4: Unapplied advances
        advances = history.unapplied_advances(trainer.id)
        advance_deductions = sum((a.amount for a in advances), Decimal("0"))

        # Step 5: Total
        total_due = this_period_earnings + balance_brought_forward + manual_adjustment - advance_deductions

        calculation = PayoutCalculation(
            trainer=trainer,
            current_period=current_period,
            this_period_earnings=this_period_earnings,
            balance_brought_forward=balance_brought_forward,
            unpaid_periods=unpaid_periods,
            advance_deductions=advance_deductions,
            advance_ids=tuple(a.id for a in advances),
            manual_adjustment=manual_adjustment,
            total_due=total_due,
            total_session_earnings=this_period_earnings + balance_brought_forward,
        )

        # Step 6: A settled period shows what was recorded, not a recomputation
        if current_period.label in settled_labels:
            self._apply_payment_record(calculation, history)
        else:
            calculation.included_sessions = self.earnings.ledger.payable_in_periods(
                trainer.id, [current_period, *unpaid_periods]
            )

        calculation.anomalies = self.earnings.anomalies(trainer, calculation.included_sessions)
        for anomaly in calculation.anomalies:
            logger.warning(f"Payout for trainer {trainer.id} valued a session at zero: {anomaly}")

        return calculation

    def _carry_forward(
        self,
        trainer: Trainer,
        current_period: Period,
        settled_labels: set[str],
    ) -> tuple[Decimal, list[Period]]:
        """
        Walk week by week from the anchor up to the current period.

        Weeks with zero earnings are skipped, so a trainer with no activity
        never accumulates empty unpaid periods.
        """
        balance = Decimal("0")
        unpaid = []
        for week in weeks_before(current_period, self.settings):
            if week.label in settled_labels:
                continue
            week_earnings = self.earnings.earnings(trainer, week.start, week.end)
            if week_earnings != 0:
                balance += week_earnings
                unpaid.append(week)
        return balance, unpaid

    def _apply_payment_record(self, calculation: PayoutCalculation, history: SettlementHistory) -> None:
        """Replace recomputed figures with the ones frozen in the Payment."""
        trainer = calculation.trainer
        payment = history.payment_for(trainer.id, calculation.current_period.label)

        calculation.is_settled = True
        calculation.payment_record = payment
        calculation.this_period_earnings = payment.earnings_for_period
        calculation.balance_brought_forward = payment.balance_brought_forward
        calculation.manual_adjustment = payment.manual_adjustment
        calculation.advance_deductions = payment.advance_deductions_total
        calculation.total_due = payment.amount
        calculation.total_session_earnings = payment.earnings_for_period + payment.balance_brought_forward
        calculation.included_sessions = self.earnings.ledger.payable_in_periods(
            trainer.id, payment.settled_periods
        )
