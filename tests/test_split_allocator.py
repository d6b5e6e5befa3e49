"""
Unit Tests for Split Allocator
"""

from decimal import Decimal

import pytest

from royalties.calculators.splits import SplitAllocator
from royalties.errors import ConfigurationError
from royalties.models import CoAuthorSplit


def _owners(*pairs):
    return [CoAuthorSplit(owner_id, Decimal(str(pct))) for owner_id, pct in pairs]


class TestSplitAllocator:
    """Test dividing net payable among co-authors."""

    @pytest.fixture
    def allocator(self):
        return SplitAllocator()

    def test_even_split_remainder_goes_to_last_owner(self, allocator):
        """$100.01 at 50/50: $50.00 and $50.01"""
        result = allocator.split(Decimal("100.01"), _owners(("author-a", 50), ("author-b", 50)))

        assert [(a.owner_id, a.amount) for a in result] == [
            ("author-a", Decimal("50.00")),
            ("author-b", Decimal("50.01")),
        ]

    def test_three_way_split(self, allocator):
        result = allocator.split(Decimal("100"), _owners(("a", "33.33"), ("b", "33.33"), ("c", "33.34")))

        assert [a.amount for a in result] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]

    def test_order_is_by_owner_id(self, allocator):
        """Input order does not change who absorbs the remainder"""
        result = allocator.split(Decimal("10.01"), _owners(("b", 60), ("a", 40)))

        assert [(a.owner_id, a.amount) for a in result] == [("a", Decimal("4.00")), ("b", Decimal("6.01"))]

    def test_no_owner_goes_negative(self, allocator):
        """Four 25% owners sharing two cents"""
        result = allocator.split(Decimal("0.02"), _owners(("a", 25), ("b", 25), ("c", 25), ("d", 25)))

        assert all(a.amount >= 0 for a in result)
        assert sum(a.amount for a in result) == Decimal("0.02")

    def test_sum_is_exact(self, allocator):
        owners = _owners(("a", "12.5"), ("b", "37.5"), ("c", "50"))
        for amount in ("0.01", "0.99", "1234.57", "99999.99"):
            result = allocator.split(Decimal(amount), owners)
            assert sum(a.amount for a in result) == Decimal(amount)

    def test_same_inputs_same_split(self, allocator):
        """Splitting twice gives the same shares and leaves the owner list as given"""
        owners = _owners(("c", "33.34"), ("a", "33.33"), ("b", "33.33"))

        first = allocator.split(Decimal("333.33"), owners)
        second = allocator.split(Decimal("333.33"), owners)

        assert first == second
        assert [o.owner_id for o in owners] == ["c", "a", "b"]

    def test_single_owner_gets_everything(self, allocator):
        result = allocator.split(Decimal("123.45"), _owners(("solo", 100)))

        assert len(result) == 1
        assert result[0].amount == Decimal("123.45")

    def test_zero_amount(self, allocator):
        result = allocator.split(Decimal("0"), _owners(("a", 50), ("b", 50)))

        assert [a.amount for a in result] == [Decimal("0.00"), Decimal("0")]

    def test_shares_must_total_100(self, allocator):
        with pytest.raises(ConfigurationError, match="sum to 100"):
            allocator.split(Decimal("100"), _owners(("a", 50), ("b", 40)))

    def test_duplicate_owner_rejected(self, allocator):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            allocator.split(Decimal("100"), _owners(("a", 50), ("a", 50)))

    def test_negative_amount_rejected(self, allocator):
        with pytest.raises(ValueError, match="negative"):
            allocator.split(Decimal("-1"), _owners(("a", 100)))
