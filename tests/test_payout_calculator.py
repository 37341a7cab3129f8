"""
Unit Tests for Payout Calculator

Week under test is Jan 13 - 19, 2025 unless noted. With the default anchor
the carry-forward walk covers the weeks of Dec 30 and Jan 06.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from settlement.calculators import BookingLedger, EarningsCalculator, PayoutCalculator, PricingResolver
from settlement.models import AdvancePayment, BookingStatus, Payment
from settlement.periods import week_containing

CURRENT = date(2025, 1, 15)


class TestPayoutCalculator:

    @pytest.fixture
    def calculate(self, make_store, settings, trainer):
        def _calculate(bookings=(), payments=(), advances=(), manual_adjustment=Decimal("0"), as_of=CURRENT):
            store = make_store(bookings=bookings, payments=payments, advances=advances)
            pricing = PricingResolver({c.id: c for c in store.all("class_types")})
            ledger = BookingLedger(store.all("bookings"), settings.tzinfo)
            calculator = PayoutCalculator(EarningsCalculator(ledger, pricing), settings)
            period = week_containing(as_of, settings)
            return calculator.calculate(trainer, period, store.history(), manual_adjustment)

        return _calculate

    def test_basic_payout(self, calculate, make_booking):
        """Rate 0.5, price 100, two payable sessions this week → 100 due."""
        result = calculate(bookings=[
            make_booking(datetime(2025, 1, 14, 9)),
            make_booking(datetime(2025, 1, 16, 9)),
        ])

        assert result.this_period_earnings == Decimal("100")
        assert result.balance_brought_forward == Decimal("0")
        assert result.unpaid_periods == []
        assert result.total_due == Decimal("100")
        assert result.is_settled is False
        assert len(result.included_sessions) == 2

    def test_carry_forward_with_advance(self, calculate, make_booking):
        """60 this week + 40 from last week - 20 advance = 80."""
        result = calculate(
            bookings=[
                make_booking(datetime(2025, 1, 7, 9), class_type_id="duo"),
                make_booking(datetime(2025, 1, 14, 9), class_type_id="solo"),
            ],
            advances=[AdvancePayment(id="a1", trainer_id="t1", amount=Decimal("20"))],
        )

        assert result.this_period_earnings == Decimal("60")
        assert result.balance_brought_forward == Decimal("40")
        assert [p.label for p in result.unpaid_periods] == ["Week of Jan 06 - 12, 2025"]
        assert result.advance_deductions == Decimal("20")
        assert result.advance_ids == ("a1",)
        assert result.total_due == Decimal("80")
        assert [b.id for b in result.included_sessions] == ["b1", "b2"]

    def test_weeks_without_earnings_are_not_carried(self, calculate, make_booking):
        """Only weeks with payable activity become unpaid periods."""
        result = calculate(
            bookings=[
                make_booking(datetime(2025, 1, 8, 9), status=BookingStatus.CANCELLED),
                make_booking(datetime(2025, 3, 4, 9)),
            ],
            as_of=date(2025, 3, 12),
        )

        assert [p.label for p in result.unpaid_periods] == ["Week of Mar 03 - 09, 2025"]
        assert result.balance_brought_forward == Decimal("50")

    def test_settled_weeks_are_excluded(self, calculate, make_booking, settings):
        """Weeks already settled for the trainer are not carried forward."""
        last_week = week_containing(date(2025, 1, 7), settings)
        payment = Payment(
            id="p1", trainer_id="t1", amount=Decimal("50"), payment_date=datetime(2025, 1, 12),
            settled_periods=(last_week,), earnings_for_period=Decimal("50"),
        )
        result = calculate(bookings=[make_booking(datetime(2025, 1, 7, 9))], payments=[payment])

        assert result.unpaid_periods == []
        assert result.balance_brought_forward == Decimal("0")
        assert result.total_due == Decimal("0")

    def test_other_trainers_settlements_do_not_count(self, calculate, make_booking, settings):
        """A week settled for t2 is still unpaid for t1."""
        last_week = week_containing(date(2025, 1, 7), settings)
        payment = Payment(
            id="p1", trainer_id="t2", amount=Decimal("40"), payment_date=datetime(2025, 1, 12),
            settled_periods=(last_week,),
        )
        result = calculate(bookings=[make_booking(datetime(2025, 1, 7, 9))], payments=[payment])

        assert result.balance_brought_forward == Decimal("50")

    def test_manual_adjustment_is_added(self, calculate, make_booking):
        """The manual adjustment is added to the total."""
        result = calculate(
            bookings=[make_booking(datetime(2025, 1, 14, 9))],
            manual_adjustment=Decimal("12.50"),
        )
        assert result.manual_adjustment == Decimal("12.50")
        assert result.total_due == Decimal("62.50")

    def test_total_due_can_be_negative(self, calculate, make_booking):
        """Advances larger than earnings still produce a figure to show."""
        result = calculate(
            bookings=[make_booking(datetime(2025, 1, 14, 9))],
            advances=[AdvancePayment(id="a1", trainer_id="t1", amount=Decimal("200"))],
        )
        assert result.total_due == Decimal("-150")

    def test_applied_and_foreign_advances_are_ignored(self, calculate, make_booking):
        """Only this trainer's unapplied advances are deducted."""
        result = calculate(
            bookings=[make_booking(datetime(2025, 1, 14, 9))],
            advances=[
                AdvancePayment(id="a1", trainer_id="t1", amount=Decimal("10"), is_applied=True),
                AdvancePayment(id="a2", trainer_id="t2", amount=Decimal("10")),
                AdvancePayment(id="a3", trainer_id="t1", amount=Decimal("5")),
            ],
        )
        assert result.advance_deductions == Decimal("5")
        assert result.advance_ids == ("a3",)

    def test_settled_period_reads_back_recorded_figures(self, calculate, make_booking, settings):
        """A booking added after settlement must not change the displayed payout."""
        this_week = week_containing(CURRENT, settings)
        last_week = week_containing(date(2025, 1, 7), settings)
        payment = Payment(
            id="p1", trainer_id="t1", amount=Decimal("85"), payment_date=datetime(2025, 1, 19),
            settled_periods=(last_week, this_week),
            balance_brought_forward=Decimal("50"), manual_adjustment=Decimal("5"),
            advance_deductions_total=Decimal("20"), earnings_for_period=Decimal("50"),
        )
        result = calculate(
            bookings=[
                make_booking(datetime(2025, 1, 7, 9)),
                make_booking(datetime(2025, 1, 14, 9)),
                make_booking(datetime(2025, 1, 15, 9)),  # added after the payment
            ],
            payments=[payment],
        )

        assert result.is_settled is True
        assert result.payment_record is payment
        assert result.this_period_earnings == Decimal("50")
        assert result.manual_adjustment == Decimal("5")
        assert result.advance_deductions == Decimal("20")
        assert result.total_due == Decimal("85")
        assert result.total_session_earnings == Decimal("100")
        assert [b.id for b in result.included_sessions] == ["b1", "b2", "b3"]

    def test_unknown_class_type_is_reported_not_raised(self, calculate, make_booking):
        """An unknown class type is reported as an anomaly instead of failing."""
        result = calculate(bookings=[
            make_booking(datetime(2025, 1, 14, 9)),
            make_booking(datetime(2025, 1, 14, 10), class_type_id="ghost"),
        ])

        assert result.this_period_earnings == Decimal("50")
        assert len(result.anomalies) == 1

    def test_new_year_week_does_not_reach_into_previous_year(self, calculate, make_booking):
        """Viewing the week spanning New Year carries the same balance as the week after."""
        bookings = [make_booking(datetime(2024, 6, 12, 9))]

        boundary = calculate(bookings=bookings, as_of=date(2025, 1, 2))
        following = calculate(bookings=bookings, as_of=date(2025, 1, 8))

        assert boundary.balance_brought_forward == following.balance_brought_forward == Decimal("0")
        assert boundary.unpaid_periods == following.unpaid_periods == []

    def test_projection_is_idempotent(self, calculate, make_booking):
        """The same inputs always give the same payout."""
        bookings = [
            make_booking(datetime(2025, 1, 7, 9), class_type_id="duo"),
            make_booking(datetime(2025, 1, 14, 9)),
        ]
        advances = [AdvancePayment(id="a1", trainer_id="t1", amount=Decimal("7"))]

        assert calculate(bookings=bookings, advances=advances) == calculate(bookings=bookings, advances=advances)
