"""
Domain Models for the Studio Payroll Settlement Engine

These dataclasses provide type-safe representations of all studio entities
the settlement core reads or writes. All monetary values use Decimal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from dateutil.parser import isoparse


def to_decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def parse_timestamp(value) -> datetime | None:
    """Accept datetimes or ISO-8601 strings; None stays None."""
    if value is None or isinstance(value, datetime):
        return value
    return isoparse(value)


# =============================================================================
# ENUMERATIONS
# =============================================================================


class BookingStatus(str, Enum):
    BOOKED = "Booked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    CANCELLED_LATE = "Cancelled - Late"
    DELETED = "Deleted"

    @property
    def is_payable(self) -> bool:
        """A late cancellation still earns the session fee."""
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED_LATE)


class TrainerLevel(str, Enum):
    REGULAR = "Regular"
    MASTER = "Master"


class DebtResolutionMethod(str, Enum):
    AUTO_PACKAGE = "auto_package"
    MANUAL_PACKAGE = "manual_package"
    MANUAL_PAYMENT = "manual_payment"


# =============================================================================
# STUDIO ENTITIES (owned by the CRUD layer, read by the core)
# =============================================================================


@dataclass
class ClassType:
    """A class offering with its per-level, per-tier price table."""

    id: str
    name: str = ""
    capacity: int = 1
    # {"Regular": {"1": Decimal, "5": Decimal, "10": Decimal}, "Master": {...}}
    pricing: dict[str, dict[str, Decimal]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "ClassType":
        pricing = {
            level: {tier: to_decimal(price) for tier, price in tiers.items()}
            for level, tiers in data.get("pricing", {}).items()
        }
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            capacity=data.get("capacity", data.get("max_capacity", 1)),
            pricing=pricing,
        )


@dataclass
class Trainer:
    id: str
    level: TrainerLevel
    name: str = ""
    commission_rates: dict[str, Decimal] = field(default_factory=dict)

    def rate_for(self, class_type_id: str) -> Decimal:
        return self.commission_rates.get(class_type_id, Decimal("0"))

    @classmethod
    def from_dict(cls, data: dict) -> "Trainer":
        return cls(
            id=data["id"],
            level=TrainerLevel(data["level"]),
            name=data.get("name", ""),
            commission_rates={k: to_decimal(v) for k, v in data.get("commission_rates", {}).items()},
        )


@dataclass
class Booking:
    id: str
    trainer_id: str
    class_type_id: str
    scheduled_at: datetime
    status: BookingStatus
    customer_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Booking":
        return cls(
            id=data["id"],
            trainer_id=data["trainer_id"],
            class_type_id=data["class_type_id"],
            scheduled_at=parse_timestamp(data["scheduled_at"]),
            status=BookingStatus(data["status"]),
            customer_ids=list(data.get("customer_ids", [])),
        )


@dataclass
class Package:
    """A session package owned by a customer."""

    id: str
    customer_id: str
    class_type_id: str
    trainer_level: TrainerLevel
    total_sessions: int
    sessions_remaining: int
    price: Decimal = Decimal("0")
    purchase_date: datetime | None = None
    expiration_date: datetime | None = None
    is_archived: bool = False

    @property
    def shape(self) -> tuple[str, TrainerLevel]:
        return (self.class_type_id, self.trainer_level)

    @classmethod
    def from_dict(cls, data: dict, customer_id: str | None = None) -> "Package":
        total = data["total_sessions"]
        return cls(
            id=data["id"],
            customer_id=data.get("customer_id", customer_id),
            class_type_id=data["class_type_id"],
            trainer_level=TrainerLevel(data["trainer_level"]),
            total_sessions=total,
            sessions_remaining=data.get("sessions_remaining", total),
            price=to_decimal(data.get("price", 0)),
            purchase_date=parse_timestamp(data.get("purchase_date")),
            expiration_date=parse_timestamp(data.get("expiration_date")),
            is_archived=data.get("is_archived", False),
        )


@dataclass
class Customer:
    id: str
    name: str = ""
    packages: list[Package] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            packages=[Package.from_dict(p, customer_id=data["id"]) for p in data.get("packages", [])],
        )


@dataclass
class SessionDebt:
    """A session consumed without a valid package, owed by the customer."""

    id: str
    customer_id: str
    booking_id: str
    class_type_id: str
    trainer_level: TrainerLevel
    date: datetime
    is_resolved: bool = False
    resolving_package_id: str | None = None
    resolved_by: DebtResolutionMethod | None = None
    payment_id: str | None = None

    @property
    def shape(self) -> tuple[str, TrainerLevel]:
        return (self.class_type_id, self.trainer_level)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionDebt":
        resolved_by = data.get("resolved_by")
        return cls(
            id=data["id"],
            customer_id=data["customer_id"],
            booking_id=data.get("booking_id", ""),
            class_type_id=data["class_type_id"],
            trainer_level=TrainerLevel(data["trainer_level"]),
            date=parse_timestamp(data["date"]),
            is_resolved=data.get("is_resolved", False),
            resolving_package_id=data.get("resolving_package_id"),
            resolved_by=DebtResolutionMethod(resolved_by) if resolved_by else None,
            payment_id=data.get("payment_id"),
        )


@dataclass
class AdvancePayment:
    """Money paid to a trainer ahead of settlement; deducted from the next payout."""

    id: str
    trainer_id: str
    amount: Decimal
    date: datetime | None = None
    notes: str = ""
    is_applied: bool = False
    applied_payment_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "AdvancePayment":
        return cls(
            id=data["id"],
            trainer_id=data["trainer_id"],
            amount=to_decimal(data["amount"]),
            date=parse_timestamp(data.get("date")),
            notes=data.get("notes", ""),
            is_applied=data.get("is_applied", False),
            applied_payment_id=data.get("applied_payment_id"),
        )


@dataclass
class CustomerPayment:
    id: str
    customer_id: str
    package_id: str
    amount: Decimal
    date: datetime | None
    method: str

    @classmethod
    def from_dict(cls, data: dict) -> "CustomerPayment":
        return cls(
            id=data["id"],
            customer_id=data["customer_id"],
            package_id=data["package_id"],
            amount=to_decimal(data["amount"]),
            date=parse_timestamp(data.get("date")),
            method=data.get("method", ""),
        )


# =============================================================================
# SETTLEMENT LEDGER
# =============================================================================


@dataclass(frozen=True)
class Period:
    """A start/end window plus the label used as the settlement key."""

    start: datetime
    end: datetime
    label: str

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @classmethod
    def from_dict(cls, data: dict) -> "Period":
        return cls(
            start=parse_timestamp(data["start"]),
            end=parse_timestamp(data["end"]),
            label=data["label"],
        )


@dataclass(frozen=True)
class Payment:
    """
    A recorded trainer settlement. Immutable once created; the list of
    Payments is the single source of truth for which periods are settled.
    """

    id: str
    trainer_id: str
    amount: Decimal
    payment_date: datetime | None
    settled_periods: tuple[Period, ...] = ()
    balance_brought_forward: Decimal = Decimal("0")
    manual_adjustment: Decimal = Decimal("0")
    advance_deductions_total: Decimal = Decimal("0")
    earnings_for_period: Decimal = Decimal("0")

    @property
    def settled_labels(self) -> set[str]:
        return {p.label for p in self.settled_periods}

    @classmethod
    def from_dict(cls, data: dict) -> "Payment":
        return cls(
            id=data["id"],
            trainer_id=data["trainer_id"],
            amount=to_decimal(data["amount"]),
            payment_date=parse_timestamp(data.get("payment_date")),
            settled_periods=tuple(Period.from_dict(p) for p in data.get("settled_periods", [])),
            balance_brought_forward=to_decimal(data.get("balance_brought_forward", 0)),
            manual_adjustment=to_decimal(data.get("manual_adjustment", 0)),
            advance_deductions_total=to_decimal(data.get("advance_deductions_total", 0)),
            earnings_for_period=to_decimal(data.get("earnings_for_period", 0)),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class PayoutCalculation:
    """
    The full payout breakdown for one trainer and one viewed period.
    A read-only projection; recomputed on every view.
    """

    trainer: Trainer
    current_period: Period
    this_period_earnings: Decimal = Decimal("0")
    balance_brought_forward: Decimal = Decimal("0")
    unpaid_periods: list[Period] = field(default_factory=list)
    advance_deductions: Decimal = Decimal("0")
    advance_ids: tuple[str, ...] = ()
    manual_adjustment: Decimal = Decimal("0")
    total_due: Decimal = Decimal("0")
    is_settled: bool = False
    payment_record: Payment | None = None
    included_sessions: list[Booking] = field(default_factory=list)
    total_session_earnings: Decimal = Decimal("0")
    anomalies: list[str] = field(default_factory=list)


@dataclass
class DebtResolutionResult:
    """Outcome of a package purchase passing through debt resolution."""

    package: Package
    resolved_debt: SessionDebt | None = None
    customer_payment: CustomerPayment | None = None


@dataclass
class WeeklySummary:
    period: Period
    total_due: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_sessions: int = 0
