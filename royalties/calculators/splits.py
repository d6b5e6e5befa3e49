"""
Split Allocator

Divides an amount among a title's co-owners by ownership percentage.
"""

from decimal import ROUND_DOWN, Decimal

from ..models import Allocation, CoAuthorSplit
from ..validators import InputValidator


class SplitAllocator:
    """Splits money across owners so the shares always add back to the input."""

    def __init__(self, validator: InputValidator | None = None):
        self.validator = validator or InputValidator()

    def split(self, amount: Decimal, owners: list[CoAuthorSplit]) -> list[Allocation]:
        """
        Split amount by ownership percentage.

        Owners are ordered by ascending owner_id. Every owner but the last gets
        their share rounded down to the cent; the last owner gets whatever is
        left, so the rounding remainder always lands on the same owner and
        sum(allocations) == amount exactly.
        """
        if amount < 0:
            raise ValueError(f"Cannot split a negative amount, got: {amount}")

        self.validator.validate_splits(owners)

        if len(owners) == 1:
            owner = owners[0]
            return [Allocation(owner.owner_id, owner.ownership_percentage, amount)]

        ordered = sorted(owners, key=lambda o: o.owner_id)

        allocations = []
        allocated = Decimal("0")
        for owner in ordered[:-1]:
            share = self._share(amount, owner.ownership_percentage)
            allocations.append(Allocation(owner.owner_id, owner.ownership_percentage, share))
            allocated += share

        last = ordered[-1]
        allocations.append(Allocation(last.owner_id, last.ownership_percentage, amount - allocated))

        return allocations

    def _share(self, amount: Decimal, percentage: Decimal) -> Decimal:
        # Rounding down keeps the remainder owner's amount non-negative
        return (amount * percentage / Decimal("100")).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
