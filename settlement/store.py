"""
Studio Store

Keyed in-memory collections for every entity the settlement core touches,
plus the one transactional mutation path both writers use.

Writers open `store.transaction(partition)`; the partition lock (one per
trainer or customer) serializes writers on the same partition, and the
staged appends and field updates are applied together at commit or not at
all.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Iterator

from .errors import UnknownEntityError
from .history import SettlementHistory
from .models import (
    AdvancePayment,
    Booking,
    ClassType,
    Customer,
    CustomerPayment,
    Payment,
    SessionDebt,
    Trainer,
)

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "class_types",
    "trainers",
    "bookings",
    "customers",
    "session_debts",
    "payments",
    "advance_payments",
    "customer_payments",
)

# Ledger collections: records are only ever added
APPEND_ONLY = {"payments", "customer_payments"}


class Transaction:
    """Stages appends and field updates; nothing is visible until commit."""

    def __init__(self, store: "StudioStore"):
        self.store = store
        self._appends: list[tuple[str, Any]] = []
        self._updates: list[tuple[str, str, dict]] = []

    def append(self, collection: str, record: Any) -> None:
        self._appends.append((collection, record))

    def update(self, collection: str, key: str, **changes) -> None:
        if collection in APPEND_ONLY:
            raise ValueError(f"{collection} records are immutable")
        self._updates.append((collection, key, changes))

    def commit(self) -> None:
        """
        Build every new record first, then swap them all in.

        Any error while building (unknown id, duplicate id, bad field)
        leaves the store untouched.
        """
        staged: dict[str, dict[str, Any]] = {}

        def current(collection: str, key: str):
            pending = staged.get(collection, {})
            if key in pending:
                return pending[key]
            return self.store.get(collection, key)

        for collection, record in self._appends:
            if current(collection, record.id) is not None:
                raise ValueError(f"{collection} already contains {record.id}")
            staged.setdefault(collection, {})[record.id] = record

        for collection, key, changes in self._updates:
            existing = current(collection, key)
            if existing is None:
                raise UnknownEntityError(f"No {collection} record with id {key}")
            staged.setdefault(collection, {})[key] = replace(existing, **changes)

        with self.store._commit_lock:
            for collection, records in staged.items():
                self.store._collections[collection].update(records)


class StudioStore:
    """In-memory persistence for one studio."""

    def __init__(
        self,
        class_types=(),
        trainers=(),
        bookings=(),
        customers=(),
        session_debts=(),
        payments=(),
        advance_payments=(),
        customer_payments=(),
    ):
        self._collections: dict[str, dict[str, Any]] = {
            "class_types": {c.id: c for c in class_types},
            "trainers": {t.id: t for t in trainers},
            "bookings": {b.id: b for b in bookings},
            "customers": {c.id: c for c in customers},
            "session_debts": {d.id: d for d in session_debts},
            "payments": {p.id: p for p in payments},
            "advance_payments": {a.id: a for a in advance_payments},
            "customer_payments": {p.id: p for p in customer_payments},
        }
        self._commit_lock = threading.Lock()
        self._partition_locks: dict[tuple[str, str], threading.RLock] = {}
        self._partition_guard = threading.Lock()

    @classmethod
    def from_dict(cls, data: dict) -> "StudioStore":
        return cls(
            class_types=[ClassType.from_dict(c) for c in data.get("class_types", [])],
            trainers=[Trainer.from_dict(t) for t in data.get("trainers", [])],
            bookings=[Booking.from_dict(b) for b in data.get("bookings", [])],
            customers=[Customer.from_dict(c) for c in data.get("customers", [])],
            session_debts=[SessionDebt.from_dict(d) for d in data.get("session_debts", [])],
            payments=[Payment.from_dict(p) for p in data.get("payments", [])],
            advance_payments=[AdvancePayment.from_dict(a) for a in data.get("advance_payments", [])],
            customer_payments=[CustomerPayment.from_dict(p) for p in data.get("customer_payments", [])],
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, collection: str, key: str):
        with self._commit_lock:
            return self._collections[collection].get(key)

    def all(self, collection: str) -> list:
        with self._commit_lock:
            return list(self._collections[collection].values())

    def require(self, collection: str, key: str):
        record = self.get(collection, key)
        if record is None:
            raise UnknownEntityError(f"No {collection} record with id {key}")
        return record

    def trainer(self, trainer_id: str) -> Trainer:
        return self.require("trainers", trainer_id)

    def customer(self, customer_id: str) -> Customer:
        return self.require("customers", customer_id)

    def history(self) -> SettlementHistory:
        return SettlementHistory(self.all("payments"), self.all("advance_payments"))

    def unresolved_debts(self, customer_id: str) -> list[SessionDebt]:
        return [d for d in self.all("session_debts") if d.customer_id == customer_id and not d.is_resolved]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _lock_for(self, partition: tuple[str, str]) -> threading.RLock:
        with self._partition_guard:
            if partition not in self._partition_locks:
                self._partition_locks[partition] = threading.RLock()
            return self._partition_locks[partition]

    @contextmanager
    def transaction(self, partition: tuple[str, str]) -> Iterator[Transaction]:
        """
        Serialize writers on `partition` and commit staged changes atomically.

        Reads made inside the block see every commit that finished before the
        lock was taken. An exception inside the block discards everything.
        """
        with self._lock_for(partition):
            txn = Transaction(self)
            yield txn
            txn.commit()
            logger.debug(
                f"Committed {len(txn._appends)} appends and {len(txn._updates)} updates for {partition}"
            )
