"""
Package Debt Resolver

Matches a newly purchased package against the customer's oldest outstanding
session debt of the same shape (class type + trainer level).
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone, tzinfo
from typing import Iterable

from ..errors import DebtAlreadyResolvedError
from ..models import (
    CustomerPayment,
    DebtResolutionMethod,
    DebtResolutionResult,
    Package,
    SessionDebt,
)
from ..periods import localize
from ..store import StudioStore

logger = logging.getLogger(__name__)


class PackageDebtResolver:
    """Resolves at most one session debt per package purchase, oldest first."""

    def __init__(self, store: StudioStore, tz: tzinfo = timezone.utc):
        self.store = store
        self.tz = tz

    def oldest_matching_debt(self, debts: Iterable[SessionDebt], package: Package) -> SessionDebt | None:
        """Earliest unresolved debt whose shape equals the package's; naive dates are studio-local."""
        matching = [d for d in debts if not d.is_resolved and d.shape == package.shape]
        if not matching:
            return None
        return min(matching, key=lambda d: localize(d.date, self.tz))

    def on_package_purchased(
        self,
        customer_id: str,
        new_package: Package,
        payment_method: str = "",
        purchase_date: datetime | None = None,
    ) -> DebtResolutionResult:
        """
        Add the package to the customer and settle one matching debt.

        The package, the debt update and the customer payment are committed
        together. A debt is only consumed if the package has a session to
        give; a package bought with zero sessions leaves the debt open.
        """
        with self.store.transaction(("customer", customer_id)) as txn:
            customer = self.store.customer(customer_id)
            package = replace(new_package, customer_id=customer_id)

            debt = self.oldest_matching_debt(self.store.unresolved_debts(customer_id), package)
            resolved = None
            if debt is not None and package.sessions_remaining > 0:
                package = replace(package, sessions_remaining=package.sessions_remaining - 1)
                changes = dict(
                    is_resolved=True,
                    resolving_package_id=package.id,
                    resolved_by=DebtResolutionMethod.AUTO_PACKAGE,
                )
                txn.update("session_debts", debt.id, **changes)
                resolved = replace(debt, **changes)
            elif debt is not None:
                logger.info(f"Package {package.id} has no sessions; debt {debt.id} left unresolved")

            txn.update("customers", customer_id, packages=[*customer.packages, package])

            payment = CustomerPayment(
                id=str(uuid.uuid4()),
                customer_id=customer_id,
                package_id=package.id,
                amount=package.price,
                date=purchase_date or package.purchase_date or datetime.now(timezone.utc),
                method=payment_method,
            )
            txn.append("customer_payments", payment)

        if resolved is not None:
            logger.info(f"Package {package.id} resolved session debt {resolved.id} for customer {customer_id}")
        return DebtResolutionResult(package=package, resolved_debt=resolved, customer_payment=payment)

    def resolve_manually(
        self,
        debt_id: str,
        method: DebtResolutionMethod,
        package_id: str | None = None,
        payment_id: str | None = None,
    ) -> SessionDebt:
        """
        Resolve a debt by hand, either from an existing package
        (manual_package) or against a separate customer payment
        (manual_payment).
        """
        method = DebtResolutionMethod(method)
        if method == DebtResolutionMethod.AUTO_PACKAGE:
            raise ValueError("auto_package resolution only happens on package purchase")

        customer_id = self.store.require("session_debts", debt_id).customer_id
        with self.store.transaction(("customer", customer_id)) as txn:
            debt = self.store.require("session_debts", debt_id)
            if debt.is_resolved:
                raise DebtAlreadyResolvedError(f"Session debt {debt_id} is already resolved")

            if method == DebtResolutionMethod.MANUAL_PACKAGE:
                changes = self._consume_from_package(txn, debt, package_id)
            else:
                if not payment_id:
                    raise ValueError("payment_id is required for manual_payment resolution")
                changes = dict(is_resolved=True, resolved_by=method, payment_id=payment_id)

            txn.update("session_debts", debt.id, **changes)

        logger.info(f"Session debt {debt_id} resolved by {method.value}")
        return replace(debt, **changes)

    def _consume_from_package(self, txn, debt: SessionDebt, package_id: str | None) -> dict:
        customer = self.store.customer(debt.customer_id)
        package = next((p for p in customer.packages if p.id == package_id), None)
        if package is None:
            raise ValueError(f"Customer {customer.id} has no package {package_id}")
        if package.shape != debt.shape:
            raise ValueError(f"Package {package_id} does not match the class type and level of debt {debt.id}")
        if package.sessions_remaining <= 0:
            raise ValueError(f"Package {package_id} has no sessions remaining")

        used = replace(package, sessions_remaining=package.sessions_remaining - 1)
        txn.update(
            "customers",
            customer.id,
            packages=[used if p.id == package.id else p for p in customer.packages],
        )
        return dict(
            is_resolved=True,
            resolving_package_id=package.id,
            resolved_by=DebtResolutionMethod.MANUAL_PACKAGE,
        )
