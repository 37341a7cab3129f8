"""
Booking Ledger and Earnings Calculator

The ledger answers which of a trainer's sessions are payable inside a time
window; the calculator values them with the trainer's commission rates.
Both are read-only and safe to call repeatedly with overlapping windows.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable

from ..models import Booking, Period, Trainer
from ..periods import localize
from .pricing import PricingResolver


class BookingLedger:
    """Read-only view over all scheduled sessions."""

    def __init__(self, bookings: Iterable[Booking], tz: tzinfo):
        self.bookings = list(bookings)
        self.tz = tz

    def _in_window(self, booking: Booking, start: datetime, end: datetime) -> bool:
        moment = localize(booking.scheduled_at, self.tz)
        return localize(start, self.tz) <= moment <= localize(end, self.tz)

    def payable(self, trainer_id: str, start: datetime, end: datetime) -> list[Booking]:
        """Completed and late-cancelled sessions of the trainer within [start, end]."""
        matches = [
            b for b in self.bookings
            if b.trainer_id == trainer_id
            and b.status.is_payable
            and self._in_window(b, start, end)
        ]
        return sorted(matches, key=lambda b: localize(b.scheduled_at, self.tz))

    def payable_in_periods(self, trainer_id: str, periods: Iterable[Period]) -> list[Booking]:
        """Payable sessions falling in any of the given periods, each listed once."""
        periods = list(periods)
        matches = [
            b for b in self.bookings
            if b.trainer_id == trainer_id
            and b.status.is_payable
            and any(self._in_window(b, p.start, p.end) for p in periods)
        ]
        return sorted(matches, key=lambda b: localize(b.scheduled_at, self.tz))


class EarningsCalculator:
    """Sums the trainer's share of payable session value."""

    def __init__(self, ledger: BookingLedger, pricing: PricingResolver):
        self.ledger = ledger
        self.pricing = pricing

    def session_value(self, trainer: Trainer, booking: Booking) -> Decimal:
        """price(class type, trainer level) × commission rate (0 if no rate)."""
        price = self.pricing.price(booking.class_type_id, trainer.level)
        return price * trainer.rate_for(booking.class_type_id)

    def earnings_for_bookings(self, trainer: Trainer, bookings: Iterable[Booking]) -> Decimal:
        total = Decimal("0")
        for booking in bookings:
            total += self.session_value(trainer, booking)
        return total

    def earnings(self, trainer: Trainer, window_start: datetime, window_end: datetime) -> Decimal:
        bookings = self.ledger.payable(trainer.id, window_start, window_end)
        return self.earnings_for_bookings(trainer, bookings)

    def anomalies(self, trainer: Trainer, bookings: Iterable[Booking]) -> list[str]:
        """Describe sessions that were valued at zero because of a missing reference."""
        found = []
        for booking in bookings:
            if not self.pricing.has_class_type(booking.class_type_id):
                found.append(f"booking {booking.id}: unknown class type {booking.class_type_id}")
            elif self.pricing.price(booking.class_type_id, trainer.level) == 0:
                found.append(
                    f"booking {booking.id}: no single-session {trainer.level.value} price "
                    f"for class type {booking.class_type_id}"
                )
        return found
