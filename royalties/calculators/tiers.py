"""
Tier Allocator

Applies a contract's tiered-rate schedule to one format's period totals.
All arithmetic uses Decimal; each format royalty is rounded once with ROUND_HALF_UP.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from ..errors import ConfigurationError, DataError
from ..models import (
    LIFETIME_MODE,
    PERIOD_MODE,
    TIER_CALCULATION_MODES,
    ContractTier,
    TierAllocation,
    TierBreakdown,
)
from ..validators import InputValidator

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def tier_at(tiers: list[ContractTier], position: Decimal) -> ContractTier | None:
    """Return the tier whose [min, max) range contains position."""
    for tier in tiers:
        if position >= tier.min_quantity and (tier.max_quantity is None or position < tier.max_quantity):
            return tier
    return None


def next_tier_after(tiers: list[ContractTier], position: Decimal) -> ContractTier | None:
    """Return the first tier that starts above position, or None at the top tier."""
    for tier in tiers:
        if tier.min_quantity > position:
            return tier
    return None


class TierAllocator:
    """Distributes a period's units and revenue across a tier schedule."""

    def __init__(self, validator: InputValidator | None = None):
        self.validator = validator or InputValidator()

    def allocate(
        self,
        period_quantity: Decimal,
        period_revenue: Decimal,
        tiers: list[ContractTier],
        mode: str = PERIOD_MODE,
        lifetime_before: Decimal = ZERO,
    ) -> TierAllocation:
        """
        Allocate a period's net units to tiers and compute the royalty.

        Period mode places the period on [0, quantity); lifetime mode places it
        on [lifetime_before, lifetime_before + quantity), so a period that
        crosses a boundary is split between the rates on either side.

        Revenue is spread across tiers in proportion to units, i.e. every unit
        in the period is assumed to have sold at the same average price:

            tier_royalty = units_in_tier / period_quantity * period_revenue * rate

        The format royalty is rounded once to the cent (ROUND_HALF_UP). Every
        slice but the last is rounded on its own and the last slice takes the
        difference, so slices add up to the format royalty exactly and never
        drift from the unrounded total by more than half a cent.
        """
        if mode not in TIER_CALCULATION_MODES:
            raise ConfigurationError(f"Invalid tier calculation mode: {mode}")

        # A malformed schedule is a caller bug, never something to work around
        self.validator.validate_tier_schedule(tiers)

        # Zero or net-negative periods earn nothing and consume no lifetime position
        if period_quantity <= 0:
            return TierAllocation()

        # Units sold for no net revenue earn nothing; a format never claws back
        # royalty earned by the title's other formats
        if period_revenue <= 0:
            return TierAllocation()

        if not tiers:
            logger.warning(f"No tiers configured, {period_quantity} units earn no royalty")
            return TierAllocation()

        if mode == LIFETIME_MODE:
            if lifetime_before is None or lifetime_before < 0:
                raise DataError(f"Lifetime position must be a non-negative quantity, got: {lifetime_before}")
            window_start = lifetime_before
        else:
            window_start = ZERO

        window_end = window_start + period_quantity
        slices = []

        for tier in tiers:
            overlap_start = max(window_start, tier.min_quantity)
            if tier.max_quantity is None:
                overlap_end = window_end
            else:
                overlap_end = min(window_end, tier.max_quantity)

            if overlap_end <= overlap_start:
                continue

            units_in_tier = overlap_end - overlap_start
            exact = units_in_tier * period_revenue * tier.rate / period_quantity
            slices.append((tier, overlap_start, overlap_end, units_in_tier, exact))

        royalty = quantize_money(sum((s[4] for s in slices), ZERO))
        breakdowns = []
        allocated = ZERO

        for i, (tier, overlap_start, overlap_end, units_in_tier, exact) in enumerate(slices):
            if i == len(slices) - 1:
                tier_royalty = royalty - allocated
            else:
                tier_royalty = quantize_money(exact)
                allocated += tier_royalty

            breakdowns.append(
                TierBreakdown(
                    tier_id=tier.tier_id,
                    min_quantity=tier.min_quantity,
                    max_quantity=tier.max_quantity,
                    rate=tier.rate,
                    units_applied=units_in_tier,
                    royalty_amount=tier_royalty,
                    lifetime_start=overlap_start if mode == LIFETIME_MODE else None,
                    lifetime_end=overlap_end if mode == LIFETIME_MODE else None,
                )
            )

        return TierAllocation(breakdowns=tuple(breakdowns), royalty=royalty)
