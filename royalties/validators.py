"""
Input Validation for the Royalty Calculation Engine

Contract configuration is validated when contracts are authored, but the engine
re-checks it before every calculation and refuses to run on a violated
invariant. Raises ConfigurationError (a ValueError) with a clear message for
any constraint violation; nothing is silently repaired.
"""

from decimal import Decimal

from .errors import ConfigurationError
from .models import (
    TIER_CALCULATION_MODES,
    CalculationRequest,
    CoAuthorSplit,
    Contract,
    ContractTier,
)

FULL_OWNERSHIP = Decimal("100")


class InputValidator:
    """Validates contracts and calculation requests according to business rules."""

    def validate(self, request: CalculationRequest) -> None:
        """
        Run all validations. Raises ConfigurationError if any check fails.
        """
        self._validate_period(request)
        self.validate_contract(request.contract)

        if request.contract.tenant_id != request.tenant_id:
            raise ConfigurationError(
                f"Contract {request.contract.contract_id} does not belong to tenant {request.tenant_id}",
                tenant_id=request.tenant_id,
                contract_id=request.contract.contract_id,
            )

    def validate_contract(self, contract: Contract) -> None:
        """Validate contract-level constraints."""
        if contract.tier_calculation_mode not in TIER_CALCULATION_MODES:
            raise ConfigurationError(
                f"Invalid tier_calculation_mode: {contract.tier_calculation_mode}. Must be 'period' or 'lifetime'",
                contract_id=contract.contract_id,
            )

        if contract.advance_amount < 0:
            raise ConfigurationError(
                f"advance_amount cannot be negative, got: {contract.advance_amount}",
                contract_id=contract.contract_id,
            )

        if contract.advance_recouped < 0:
            raise ConfigurationError(
                f"advance_recouped cannot be negative, got: {contract.advance_recouped}",
                contract_id=contract.contract_id,
            )

        if contract.advance_recouped > contract.advance_amount:
            raise ConfigurationError(
                f"advance_recouped ({contract.advance_recouped}) cannot exceed "
                f"advance_amount ({contract.advance_amount})",
                contract_id=contract.contract_id,
            )

        for format in contract.formats:
            try:
                self.validate_tier_schedule(contract.tiers_for(format))
            except ConfigurationError as e:
                raise e.with_context(contract_id=contract.contract_id, format=format)

        if contract.co_author_splits:
            try:
                self.validate_splits(contract.co_author_splits)
            except ConfigurationError as e:
                raise e.with_context(contract_id=contract.contract_id)

    def validate_tier_schedule(self, tiers: list[ContractTier]) -> None:
        """
        Validate one format's tier schedule.

        The schedule must be sorted by min_quantity, start at 0, be contiguous
        and non-overlapping ([min, max) ranges), and end with an unbounded tier.
        """
        if not tiers:
            return

        formats = {t.format for t in tiers}
        if len(formats) > 1:
            raise ConfigurationError(f"Tier schedule mixes formats: {sorted(formats)}")

        for i, tier in enumerate(tiers):
            if not (0 <= tier.rate <= 1):
                raise ConfigurationError(f"Tier {i} rate must be between 0 and 1, got: {tier.rate}")

            if tier.min_quantity < 0:
                raise ConfigurationError(f"Tier {i} min_quantity cannot be negative, got: {tier.min_quantity}")

            if tier.max_quantity is not None and tier.max_quantity <= tier.min_quantity:
                raise ConfigurationError(
                    f"Tier {i} max_quantity ({tier.max_quantity}) must be greater than "
                    f"min_quantity ({tier.min_quantity})"
                )

        if tiers[0].min_quantity != 0:
            raise ConfigurationError(f"First tier must start at 0, got: {tiers[0].min_quantity}")

        for i, (current, following) in enumerate(zip(tiers, tiers[1:])):
            if current.max_quantity is None:
                raise ConfigurationError(f"Only the final tier may be unbounded, tier {i} is not final")

            if following.min_quantity < current.max_quantity:
                raise ConfigurationError(
                    f"Tiers {i} and {i + 1} overlap or are unsorted: "
                    f"[{current.min_quantity}, {current.max_quantity}) vs starting at {following.min_quantity}"
                )

            if following.min_quantity > current.max_quantity:
                raise ConfigurationError(
                    f"Gap between tier {i} (ends {current.max_quantity}) "
                    f"and tier {i + 1} (starts {following.min_quantity})"
                )

        if tiers[-1].max_quantity is not None:
            raise ConfigurationError(
                f"Final tier must be unbounded (max_quantity=None), got: {tiers[-1].max_quantity}"
            )

    def validate_splits(self, owners: list[CoAuthorSplit]) -> None:
        """Co-author shares must be positive, unique per owner, and sum to exactly 100%."""
        if not owners:
            raise ConfigurationError("At least one owner is required for a split")

        owner_ids = [o.owner_id for o in owners]
        if len(set(owner_ids)) != len(owner_ids):
            raise ConfigurationError(f"Duplicate owner in co-author splits: {owner_ids}")

        for owner in owners:
            if not (0 < owner.ownership_percentage <= FULL_OWNERSHIP):
                raise ConfigurationError(
                    f"ownership_percentage for {owner.owner_id} must be in (0, 100], "
                    f"got: {owner.ownership_percentage}"
                )

        total = sum((o.ownership_percentage for o in owners), Decimal("0"))
        if total != FULL_OWNERSHIP:
            raise ConfigurationError(f"Co-author ownership percentages must sum to 100, got: {total}")

    def _validate_period(self, request: CalculationRequest) -> None:
        if request.period_start > request.period_end:
            raise ConfigurationError(
                f"period_start ({request.period_start}) must not be after period_end ({request.period_end})",
                tenant_id=request.tenant_id,
                contract_id=request.contract.contract_id,
            )
