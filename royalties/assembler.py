"""
Calculation Assembler

Constructs the immutable calculation record from the pipeline's step results.
"""

from decimal import Decimal

from .calculators.tiers import next_tier_after
from .models import (
    Allocation,
    CalculationRecord,
    CalculationRequest,
    ContractTier,
    FormatCalculation,
    RecoupmentResult,
    SalesPeriodTotals,
    TierAllocation,
)


class CalculationAssembler:
    """Builds the calculation record. Pure composition, no I/O."""

    def build_format(
        self,
        format: str,
        totals: SalesPeriodTotals,
        allocation: TierAllocation,
        tiers: list[ContractTier],
        lifetime_before: Decimal | None = None,
    ) -> FormatCalculation:
        """
        Build one format's section.

        In lifetime mode the section also carries the lifetime position before
        and after the period and the next tier's threshold, so a statement can
        show "lifetime sales: X units, next tier at Y" without recomputing.
        """
        if lifetime_before is None:
            return FormatCalculation(
                format=format,
                net_quantity=totals.net_quantity,
                net_revenue=totals.net_revenue,
                tier_breakdowns=allocation.breakdowns,
                royalty=allocation.royalty,
            )

        # Net-negative periods leave lifetime history where it was
        lifetime_after = lifetime_before + max(Decimal("0"), totals.net_quantity)
        next_tier = next_tier_after(tiers, lifetime_after)

        return FormatCalculation(
            format=format,
            net_quantity=totals.net_quantity,
            net_revenue=totals.net_revenue,
            tier_breakdowns=allocation.breakdowns,
            royalty=allocation.royalty,
            lifetime_before=lifetime_before,
            lifetime_after=lifetime_after,
            next_tier_threshold=next_tier.min_quantity if next_tier else None,
        )

    def assemble(
        self,
        request: CalculationRequest,
        formats: list[FormatCalculation],
        recoupment: RecoupmentResult,
        allocations: list[Allocation] | None = None,
    ) -> CalculationRecord:
        """Construct the complete calculation record."""
        contract = request.contract
        gross = sum((f.royalty for f in formats), Decimal("0"))

        return CalculationRecord(
            tenant_id=request.tenant_id,
            contract_id=contract.contract_id,
            title_id=contract.title_id,
            period_start=request.period_start,
            period_end=request.period_end,
            tier_calculation_mode=contract.tier_calculation_mode,
            formats=tuple(formats),
            gross_royalty=gross,
            recoupment=recoupment,
            net_payable=recoupment.net_payable,
            net_payable_unfloored=recoupment.net_payable_unfloored,
            allocations=tuple(allocations or ()),
        )
