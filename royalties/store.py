"""
Data Access Contracts

The engine reads sales through SalesStore and persists advance state plus
calculation records through CalculationLedger. The in-memory implementations
back the tests and the HTTP/Lambda surfaces; production wires database-backed
ones with the same semantics.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .errors import ConcurrencyError, DataError, DuplicateCalculationError
from .models import AdvanceState, CalculationRecord, SalesPeriodTotals

logger = logging.getLogger(__name__)


# =============================================================================
# CONTRACTS
# =============================================================================


class SalesStore(ABC):
    """Read-only access to net sales. Every query is scoped by tenant."""

    @abstractmethod
    def get_net_sales_for_period(
        self, tenant_id: str, title_id: str, format: str, period_start: date, period_end: date
    ) -> SalesPeriodTotals | None:
        """
        Net quantity and revenue for the period.

        A known title with no rows for the format or period totals zero. None
        means the store holds no sales data for the title at all.
        """

    @abstractmethod
    def get_lifetime_sales_before_date(
        self, tenant_id: str, title_id: str, format: str, period_start: date
    ) -> Decimal | None:
        """Cumulative net units sold strictly before period_start."""


class CalculationLedger(ABC):
    """Advance state and the append-only history of calculation records."""

    @abstractmethod
    def register(self, contract_id: str, state: AdvanceState) -> AdvanceState:
        """Seed a contract's advance state if it is not tracked yet; return the current state."""

    @abstractmethod
    def get_advance_state(self, contract_id: str) -> AdvanceState:
        """Current advance state of a contract."""

    @abstractmethod
    def lock(self, contract_id: str):
        """Context manager holding the contract exclusively for a compute-and-commit step."""

    @abstractmethod
    def has_record(self, contract_id: str, period_start: date, period_end: date) -> bool:
        """Whether the (contract, period) already has a committed record."""

    @abstractmethod
    def commit(self, record: CalculationRecord, expected_version: int, new_state: AdvanceState) -> None:
        """Write the record and the new advance state together, or neither."""

    @abstractmethod
    def records_for(self, contract_id: str) -> tuple[CalculationRecord, ...]:
        """Committed records of a contract, oldest first."""


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================


@dataclass(frozen=True)
class SalesPeriodRow:
    period_start: date
    period_end: date
    totals: SalesPeriodTotals


class InMemorySalesStore(SalesStore):
    """
    Sales history held in memory, keyed by (tenant, title, format).

    A store created with tenant_id is a tenant-scoped view (the interactive
    credential); one created without is elevated and may read any tenant
    (background jobs).
    """

    def __init__(self, tenant_id: str | None = None):
        self.tenant_id = tenant_id
        self._rows = defaultdict(list)
        self._baselines = {}
        self._lock = threading.Lock()

    def scoped(self, tenant_id: str) -> "InMemorySalesStore":
        """Tenant-scoped view sharing this store's data."""
        view = InMemorySalesStore(tenant_id=tenant_id)
        view._rows = self._rows
        view._baselines = self._baselines
        view._lock = self._lock
        return view

    def record_period(
        self,
        tenant_id: str,
        title_id: str,
        format: str,
        period_start: date,
        period_end: date,
        totals: SalesPeriodTotals,
    ) -> None:
        self._check_tenant(tenant_id)
        with self._lock:
            self._rows[(tenant_id, title_id, format)].append(SalesPeriodRow(period_start, period_end, totals))

    def set_lifetime_baseline(self, tenant_id: str, title_id: str, format: str, units: Decimal) -> None:
        """Units sold before the first recorded period (e.g. imported history)."""
        self._check_tenant(tenant_id)
        if units < 0:
            raise DataError(f"Lifetime baseline cannot be negative, got: {units}", tenant_id=tenant_id)
        with self._lock:
            self._baselines[(tenant_id, title_id, format)] = units

    def get_net_sales_for_period(self, tenant_id, title_id, format, period_start, period_end):
        self._check_tenant(tenant_id)
        with self._lock:
            rows = [
                r
                for r in self._rows.get((tenant_id, title_id, format), [])
                if period_start <= r.period_start and r.period_end <= period_end
            ]

        if not rows:
            if not self._knows_title(tenant_id, title_id):
                return None
            return SalesPeriodTotals(net_quantity=Decimal("0"), net_revenue=Decimal("0"))

        return SalesPeriodTotals(
            net_quantity=sum((r.totals.net_quantity for r in rows), Decimal("0")),
            net_revenue=sum((r.totals.net_revenue for r in rows), Decimal("0")),
        )

    def get_lifetime_sales_before_date(self, tenant_id, title_id, format, period_start):
        self._check_tenant(tenant_id)
        key = (tenant_id, title_id, format)
        with self._lock:
            rows = [r for r in self._rows.get(key, []) if r.period_end < period_start]
            baseline = self._baselines.get(key, Decimal("0"))

        # Late returns are not subtracted from lifetime history: a period with
        # more returns than sales contributes nothing rather than a negative.
        return baseline + sum((max(Decimal("0"), r.totals.net_quantity) for r in rows), Decimal("0"))

    def _knows_title(self, tenant_id: str, title_id: str) -> bool:
        with self._lock:
            keys = list(self._rows) + list(self._baselines)
        return any(key[:2] == (tenant_id, title_id) for key in keys)

    def _check_tenant(self, tenant_id: str) -> None:
        if self.tenant_id is not None and tenant_id != self.tenant_id:
            raise PermissionError(f"Sales store scoped to tenant {self.tenant_id} cannot read tenant {tenant_id}")


class InMemoryLedger(CalculationLedger):
    """
    Ledger with one exclusive lock per contract plus an optimistic version
    check at commit time.
    """

    def __init__(self, lock_timeout: float = 0.0):
        self.lock_timeout = lock_timeout
        self._states = {}
        self._records = defaultdict(list)
        self._locks = {}
        self._guard = threading.Lock()

    def register(self, contract_id, state):
        with self._guard:
            return self._states.setdefault(contract_id, state)

    def get_advance_state(self, contract_id):
        with self._guard:
            state = self._states.get(contract_id)
        if state is None:
            raise DataError(f"No advance state tracked for contract {contract_id}", contract_id=contract_id)
        return state

    @contextmanager
    def lock(self, contract_id, timeout: float | None = None):
        with self._guard:
            contract_lock = self._locks.setdefault(contract_id, threading.Lock())

        wait = self.lock_timeout if timeout is None else timeout
        if wait > 0:
            acquired = contract_lock.acquire(timeout=wait)
        else:
            acquired = contract_lock.acquire(blocking=False)

        if not acquired:
            raise ConcurrencyError(
                f"Contract {contract_id} is locked by another calculation",
                contract_id=contract_id,
            )

        try:
            yield
        finally:
            contract_lock.release()

    def has_record(self, contract_id, period_start, period_end):
        with self._guard:
            return any(
                r.period_start == period_start and r.period_end == period_end
                for r in self._records.get(contract_id, [])
            )

    def commit(self, record, expected_version, new_state):
        contract_id = record.contract_id
        with self._guard:
            current = self._states.get(contract_id)
            if current is None:
                raise DataError(f"No advance state tracked for contract {contract_id}", contract_id=contract_id)

            if current.version != expected_version:
                raise ConcurrencyError(
                    f"Advance state of contract {contract_id} moved from version "
                    f"{expected_version} to {current.version}",
                    contract_id=contract_id,
                )

            if any(
                r.period_start == record.period_start and r.period_end == record.period_end
                for r in self._records[contract_id]
            ):
                raise DuplicateCalculationError(
                    f"Contract {contract_id} already calculated for "
                    f"{record.period_start} to {record.period_end}",
                    contract_id=contract_id,
                )

            self._states[contract_id] = new_state
            self._records[contract_id].append(record)

        logger.info(
            f"Committed record {record.record_id} for contract {contract_id}; "
            f"advance_recouped now {new_state.advance_recouped}"
        )

    def records_for(self, contract_id):
        with self._guard:
            return tuple(self._records.get(contract_id, []))
