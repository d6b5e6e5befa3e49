"""
Royalty Processor - Main Orchestrator

Coordinates the royalty calculation pipeline through discrete, testable steps.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict

from .assembler import CalculationAssembler
from .calculators import (
    AdvanceRecoupmentTracker,
    LifetimeSalesResolver,
    ProjectionEstimator,
    SplitAllocator,
    TierAllocator,
)
from .config import EngineSettings
from .errors import DataError, DuplicateCalculationError, RoyaltyEngineError
from .models import (
    AdvanceState,
    Allocation,
    CalculationRecord,
    CalculationRequest,
    Contract,
    ContractTier,
    FormatCalculation,
    SalesPeriodTotals,
    parse_date,
    to_decimal,
)
from .store import CalculationLedger, InMemoryLedger, InMemorySalesStore, SalesStore
from .validators import InputValidator

logger = logging.getLogger(__name__)

Authorizer = Callable[[str, Contract], None]


class RoyaltyProcessor:
    """
    Main orchestrator for royalty calculation.

    Implements a clear pipeline pattern:
    1. Authorize
    2. Validate Input
    3. Read Period Sales (per format)
    4. Resolve Lifetime Position (lifetime mode only)
    5. Allocate Tiers
    6. Recoup Advance (under the contract lock)
    7. Split Among Co-Authors
    8. Assemble Record
    9. Commit Record and Advance State
    """

    def __init__(
        self,
        sales_store: SalesStore,
        ledger: CalculationLedger | None = None,
        authorizer: Authorizer | None = None,
        settings: EngineSettings | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.sales_store = sales_store
        self.ledger = ledger or InMemoryLedger(lock_timeout=self.settings.lock_timeout_seconds)
        self.authorizer = authorizer

        self.validator = InputValidator()
        self.tier_allocator = TierAllocator(self.validator)
        self.lifetime_resolver = LifetimeSalesResolver(sales_store)
        self.recoupment_tracker = AdvanceRecoupmentTracker()
        self.split_allocator = SplitAllocator(self.validator)
        self.assembler = CalculationAssembler()

    def calculate(self, request: CalculationRequest) -> CalculationRecord:
        """
        Run a (contract, period) calculation and commit it.

        Sales are read before the contract lock is taken. Everything that
        touches the advance balance happens under the lock, and the record and
        new advance state are committed together or not at all.
        """
        contract = request.contract
        try:
            # Steps 1-5: pure computation
            formats = self._compute_formats(request)
            gross = self._gross(formats)

            with self.ledger.lock(contract.contract_id):
                if self.ledger.has_record(contract.contract_id, request.period_start, request.period_end):
                    raise DuplicateCalculationError(
                        f"Contract {contract.contract_id} already calculated for "
                        f"{request.period_start} to {request.period_end}"
                    )

                # Step 6: Recoup against the ledger's balance, not the payload's
                state = self.ledger.register(contract.contract_id, contract.advance_state)
                recoupment = self.recoupment_tracker.apply(gross, state)

                # Step 7: Split
                allocations = self._split(contract, recoupment.net_payable)

                # Step 8: Assemble
                record = self.assembler.assemble(request, formats, recoupment, allocations)

                # Step 9: Commit
                self.ledger.commit(record, state.version, recoupment.new_state)

        except RoyaltyEngineError as e:
            self._log_failure(request, e)
            raise e.with_context(
                tenant_id=request.tenant_id,
                contract_id=contract.contract_id,
                period_start=request.period_start,
                period_end=request.period_end,
            )

        except PermissionError:
            logger.warning(
                f"Calculation denied: tenant={request.tenant_id} contract={contract.contract_id} "
                f"period={request.period_start}..{request.period_end}"
            )
            raise

        logger.info(
            f"Calculated contract {contract.contract_id} for {request.period_start}..{request.period_end}: "
            f"gross={record.gross_royalty} recouped={recoupment.recoupment} net={record.net_payable}"
        )
        return record

    def preview(self, request: CalculationRequest, advance_state: AdvanceState | None = None) -> CalculationRecord:
        """
        Compute the record for a (contract, period) without committing anything.

        Recoupment runs against advance_state when given, otherwise against the
        advance figures carried on the contract.
        """
        try:
            formats = self._compute_formats(request)
        except RoyaltyEngineError as e:
            self._log_failure(request, e)
            raise e.with_context(
                tenant_id=request.tenant_id,
                contract_id=request.contract.contract_id,
                period_start=request.period_start,
                period_end=request.period_end,
            )

        state = advance_state or request.contract.advance_state
        recoupment = self.recoupment_tracker.apply(self._gross(formats), state)
        allocations = self._split(request.contract, recoupment.net_payable)
        return self.assembler.assemble(request, formats, recoupment, allocations)

    def preview_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Preview a calculation from raw dictionary input.

        Convenience method for API usage.
        """
        request = CalculationRequest.from_dict(data)
        return self.preview(request).to_dict()

    def _compute_formats(self, request: CalculationRequest) -> list[FormatCalculation]:
        contract = request.contract

        # Step 1: Authorize
        if self.authorizer is not None:
            self.authorizer(request.tenant_id, contract)

        # Step 2: Validate
        self.validator.validate(request)

        formats = []
        for format in contract.formats:
            tiers = contract.tiers_for(format)

            # Step 3: Read period sales
            totals = self.sales_store.get_net_sales_for_period(
                request.tenant_id, contract.title_id, format, request.period_start, request.period_end
            )
            if totals is None:
                raise DataError(f"No sales data for title {contract.title_id}", format=format, title_id=contract.title_id)

            # Step 4: Resolve lifetime position
            lifetime_before = None
            if contract.is_lifetime_mode:
                lifetime_before = self.lifetime_resolver.resolve(
                    request.tenant_id, contract.title_id, format, request.period_start
                )

            # Step 5: Allocate tiers
            allocation = self.tier_allocator.allocate(
                totals.net_quantity,
                totals.net_revenue,
                tiers,
                contract.tier_calculation_mode,
                lifetime_before if lifetime_before is not None else Decimal("0"),
            )
            formats.append(self.assembler.build_format(format, totals, allocation, tiers, lifetime_before))

        return formats

    def _split(self, contract: Contract, net_payable: Decimal) -> list[Allocation]:
        if not contract.co_author_splits:
            return []
        return self.split_allocator.split(net_payable, contract.co_author_splits)

    @staticmethod
    def _gross(formats: list[FormatCalculation]) -> Decimal:
        return sum((f.royalty for f in formats), Decimal("0"))

    @staticmethod
    def _log_failure(request: CalculationRequest, error: RoyaltyEngineError) -> None:
        logger.error(
            f"Calculation failed: tenant={request.tenant_id} contract={request.contract.contract_id} "
            f"period={request.period_start}..{request.period_end} kind={error.kind}: {error.message}"
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def sales_store_from_dict(
    data: Dict[str, Any],
    tenant_id: str,
    title_id: str,
    period_start: date,
    period_end: date,
    store: InMemorySalesStore | None = None,
) -> InMemorySalesStore:
    """
    Seed an in-memory store from a request payload.

    Expects "sales": [{"format", "net_quantity", "net_revenue"}] for the period
    and, optionally, "lifetime": {format: units sold before the period}.
    """
    store = store or InMemorySalesStore()
    for row in data.get("sales", []):
        store.record_period(
            tenant_id, title_id, row["format"], period_start, period_end, SalesPeriodTotals.from_dict(row)
        )
    for format, units in (data.get("lifetime") or {}).items():
        store.set_lifetime_baseline(tenant_id, title_id, format, to_decimal(units))
    return store


def preview_royalty_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Preview a royalty calculation from a Python dict and return a Python dict."""
    request = CalculationRequest.from_dict(input_data)
    store = sales_store_from_dict(
        input_data, request.tenant_id, request.contract.title_id, request.period_start, request.period_end
    )
    processor = RoyaltyProcessor(store.scoped(request.tenant_id))
    return processor.preview(request).to_dict()


def project_royalty_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Project tier crossover and annual royalty from a Python dict.

    Expects "tiers", "recent_periods" (net_quantity/net_revenue per period),
    "current_lifetime_position" and optionally "as_of" and "periods_per_year".
    """
    tiers = sorted((ContractTier.from_dict(t) for t in input_data["tiers"]), key=lambda t: t.min_quantity)
    recent = [SalesPeriodTotals.from_dict(p) for p in input_data.get("recent_periods", [])]
    as_of = input_data.get("as_of")

    projection = ProjectionEstimator().project(
        recent_periods=recent,
        tiers=tiers,
        current_lifetime_position=to_decimal(input_data["current_lifetime_position"]),
        as_of=parse_date(as_of) if as_of else None,
        periods_per_year=int(input_data.get("periods_per_year", 12)),
    )
    return projection.to_dict()
