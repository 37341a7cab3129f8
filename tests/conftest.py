"""
Shared fixtures: a small studio with three class types and one trainer.

Every session is worth 50% of its single-session price to the trainer:
group = 50, duo = 40, solo = 60.
"""

import itertools
from datetime import datetime
from decimal import Decimal

import pytest

from settlement.config import StudioSettings
from settlement.models import Booking, BookingStatus, ClassType, Trainer, TrainerLevel
from settlement.processor import PayrollProcessor
from settlement.store import StudioStore


def _pricing(single: str, master_single: str) -> dict:
    return {
        "Regular": {"1": Decimal(single), "5": Decimal(single) * 4, "10": Decimal(single) * 8},
        "Master": {"1": Decimal(master_single), "5": Decimal(master_single) * 4, "10": Decimal(master_single) * 8},
    }


@pytest.fixture
def settings():
    return StudioSettings(timezone="UTC", week_starts_on=0, payout_anchor=None, settlement_max_retries=3)


@pytest.fixture
def class_types():
    return [
        ClassType(id="group", name="Group", capacity=8, pricing=_pricing("100", "150")),
        ClassType(id="duo", name="Duo", capacity=2, pricing=_pricing("80", "120")),
        ClassType(id="solo", name="Solo", capacity=1, pricing=_pricing("120", "180")),
    ]


@pytest.fixture
def trainer():
    return Trainer(
        id="t1",
        level=TrainerLevel.REGULAR,
        name="Ana",
        commission_rates={"group": Decimal("0.5"), "duo": Decimal("0.5"), "solo": Decimal("0.5")},
    )


@pytest.fixture
def other_trainer():
    return Trainer(
        id="t2",
        level=TrainerLevel.MASTER,
        name="Ben",
        commission_rates={"group": Decimal("0.4")},
    )


@pytest.fixture
def make_booking():
    counter = itertools.count(1)

    def _make(when: datetime, status=BookingStatus.COMPLETED, trainer_id="t1", class_type_id="group") -> Booking:
        return Booking(
            id=f"b{next(counter)}",
            trainer_id=trainer_id,
            class_type_id=class_type_id,
            scheduled_at=when,
            status=status,
            customer_ids=["c1"],
        )

    return _make


@pytest.fixture
def make_store(class_types, trainer, other_trainer):
    def _make(bookings=(), payments=(), advances=(), customers=(), debts=()) -> StudioStore:
        return StudioStore(
            class_types=class_types,
            trainers=[trainer, other_trainer],
            bookings=bookings,
            customers=customers,
            session_debts=debts,
            payments=payments,
            advance_payments=advances,
        )

    return _make


@pytest.fixture
def make_processor(make_store, settings):
    def _make(**collections) -> PayrollProcessor:
        return PayrollProcessor(make_store(**collections), settings)

    return _make
