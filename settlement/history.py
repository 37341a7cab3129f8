"""
Settlement History

Read view over the append-only Payment ledger and the trainer's advances.
The settled-label index is rebuilt from the Payment records on every call,
so it can never drift from them.
"""

from datetime import timezone, tzinfo
from typing import Iterable

from .models import AdvancePayment, Payment
from .periods import localize


class SettlementHistory:

    def __init__(self, payments: Iterable[Payment], advances: Iterable[AdvancePayment] = ()):
        self.payments = list(payments)
        self.advances = list(advances)

    def for_trainer(self, trainer_id: str) -> list[Payment]:
        return [p for p in self.payments if p.trainer_id == trainer_id]

    def settled_labels(self, trainer_id: str) -> set[str]:
        labels = set()
        for payment in self.for_trainer(trainer_id):
            labels |= payment.settled_labels
        return labels

    def is_settled(self, trainer_id: str, label: str) -> bool:
        return label in self.settled_labels(trainer_id)

    def payment_for(self, trainer_id: str, label: str) -> Payment | None:
        """The Payment whose settled periods include `label`, if any."""
        for payment in self.for_trainer(trainer_id):
            if label in payment.settled_labels:
                return payment
        return None

    def unapplied_advances(self, trainer_id: str) -> list[AdvancePayment]:
        return [a for a in self.advances if a.trainer_id == trainer_id and not a.is_applied]

    def newest_first(self, trainer_id: str, tz: tzinfo = timezone.utc) -> list[Payment]:
        """Dated payments by studio-local time, newest first; undated ones last."""
        payments = self.for_trainer(trainer_id)
        dated = [p for p in payments if p.payment_date is not None]
        undated = [p for p in payments if p.payment_date is None]
        return sorted(dated, key=lambda p: localize(p.payment_date, tz), reverse=True) + undated
