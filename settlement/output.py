"""
Output Builder

Constructs API responses from settlement value objects. Money is rounded to
cents here and nowhere earlier.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from .calculators.pricing import quantize_money
from .config import StudioSettings
from .models import (
    AdvancePayment,
    Booking,
    CustomerPayment,
    DebtResolutionResult,
    Package,
    PayoutCalculation,
    Payment,
    Period,
    SessionDebt,
    WeeklySummary,
)
from .periods import localize


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return float(quantize_money(value))


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"${value:,.2f}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def period_text(payment: Payment) -> str:
    """One label for single-period payments, a count otherwise."""
    if len(payment.settled_periods) > 1:
        return f"{len(payment.settled_periods)} periods"
    if payment.settled_periods:
        return payment.settled_periods[0].label
    return "N/A"


class OutputBuilder:
    """Builds the final output response."""

    def __init__(self, settings: StudioSettings):
        self.settings = settings

    def build_period(self, period: Period) -> dict:
        return {"start": _iso(period.start), "end": _iso(period.end), "label": period.label}

    def build_booking(self, booking: Booking) -> dict:
        return {
            "id": booking.id,
            "trainer_id": booking.trainer_id,
            "class_type_id": booking.class_type_id,
            "customer_ids": booking.customer_ids,
            "scheduled_at": _iso(localize(booking.scheduled_at, self.settings.tzinfo)),
            "status": booking.status.value,
        }

    def build_payout(self, calc: PayoutCalculation) -> dict:
        """Payout breakdown with value and description for each figure."""
        this_period = to_money(calc.this_period_earnings)
        brought_forward = to_money(calc.balance_brought_forward)
        adjustment = to_money(calc.manual_adjustment)
        advances = to_money(calc.advance_deductions)
        total = to_money(calc.total_due)

        return {
            "trainer_id": calc.trainer.id,
            "trainer_name": calc.trainer.name,
            "period": self.build_period(calc.current_period),
            "is_settled": calc.is_settled,
            "payment_id": calc.payment_record.id if calc.payment_record else None,
            "calculations": {
                "this_period_earnings": {
                    "value": this_period,
                    "description": f"Payable sessions in {calc.current_period.label}",
                },
                "balance_brought_forward": {
                    "value": brought_forward,
                    "description": (
                        f"Earnings from {len(calc.unpaid_periods)} unsettled prior week(s)"
                        if not calc.is_settled
                        else "Prior weeks settled together with this period"
                    ),
                },
                "manual_adjustment": {
                    "value": adjustment,
                    "description": "One-off adjustment entered for this payout" if adjustment else "No manual adjustment",
                },
                "advance_deductions": {
                    "value": advances,
                    "description": "Advances paid ahead of settlement" if advances else "No outstanding advances",
                },
                "total_due": {
                    "value": total,
                    "description": (
                        f"this_period ({_fmt(this_period)}) + brought_forward ({_fmt(brought_forward)}) "
                        f"+ adjustment ({_fmt(adjustment)}) - advances ({_fmt(advances)}) = {_fmt(total)}"
                    ),
                },
            },
            "total_session_earnings": to_money(calc.total_session_earnings),
            "unpaid_periods": [self.build_period(p) for p in calc.unpaid_periods],
            "included_sessions": [self.build_booking(b) for b in calc.included_sessions],
            "anomalies": list(calc.anomalies),
        }

    def build_weekly_summary(self, summary: Optional[WeeklySummary]) -> Optional[dict]:
        if summary is None:
            return None
        return {
            "period": self.build_period(summary.period),
            "total_due": to_money(summary.total_due),
            "total_paid": to_money(summary.total_paid),
            "total_sessions": summary.total_sessions,
        }

    def build_payment(self, payment: Payment) -> dict:
        return {
            "id": payment.id,
            "trainer_id": payment.trainer_id,
            "amount": to_money(payment.amount),
            "payment_date": _iso(payment.payment_date),
            "period_text": period_text(payment),
            "settled_periods": [self.build_period(p) for p in payment.settled_periods],
            "balance_brought_forward": to_money(payment.balance_brought_forward),
            "manual_adjustment": to_money(payment.manual_adjustment),
            "advance_deductions_total": to_money(payment.advance_deductions_total),
            "earnings_for_period": to_money(payment.earnings_for_period),
        }

    def build_advance(self, advance: AdvancePayment) -> dict:
        return {
            "id": advance.id,
            "trainer_id": advance.trainer_id,
            "amount": to_money(advance.amount),
            "date": _iso(advance.date),
            "notes": advance.notes,
            "is_applied": advance.is_applied,
            "applied_payment_id": advance.applied_payment_id,
        }

    def build_package(self, package: Package) -> dict:
        return {
            "id": package.id,
            "customer_id": package.customer_id,
            "class_type_id": package.class_type_id,
            "trainer_level": package.trainer_level.value,
            "price": to_money(package.price),
            "total_sessions": package.total_sessions,
            "sessions_remaining": package.sessions_remaining,
            "purchase_date": _iso(package.purchase_date),
            "expiration_date": _iso(package.expiration_date),
            "is_archived": package.is_archived,
        }

    def build_debt(self, debt: SessionDebt) -> dict:
        return {
            "id": debt.id,
            "customer_id": debt.customer_id,
            "booking_id": debt.booking_id,
            "class_type_id": debt.class_type_id,
            "trainer_level": debt.trainer_level.value,
            "date": _iso(debt.date),
            "is_resolved": debt.is_resolved,
            "resolving_package_id": debt.resolving_package_id,
            "resolved_by": debt.resolved_by.value if debt.resolved_by else None,
            "payment_id": debt.payment_id,
        }

    def build_customer_payment(self, payment: CustomerPayment) -> dict:
        return {
            "id": payment.id,
            "customer_id": payment.customer_id,
            "package_id": payment.package_id,
            "amount": to_money(payment.amount),
            "date": _iso(payment.date),
            "method": payment.method,
        }

    def build_debt_resolution(self, result: DebtResolutionResult) -> dict:
        return {
            "package": self.build_package(result.package),
            "resolved_debt": self.build_debt(result.resolved_debt) if result.resolved_debt else None,
            "customer_payment": (
                self.build_customer_payment(result.customer_payment) if result.customer_payment else None
            ),
        }
