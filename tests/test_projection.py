"""
Unit Tests for Projection Estimator

Schedule used throughout: 10% to 50,000 units, 12% to 100,000, 15% after.
"""

from datetime import date
from decimal import Decimal

import pytest

from royalties.calculators.projection import ProjectionEstimator
from royalties.errors import DataError
from royalties.models import ContractTier, SalesPeriodTotals

TIERS = [
    ContractTier("t1", "hardcover", Decimal("0"), Decimal("50000"), Decimal("0.10")),
    ContractTier("t2", "hardcover", Decimal("50000"), Decimal("100000"), Decimal("0.12")),
    ContractTier("t3", "hardcover", Decimal("100000"), None, Decimal("0.15")),
]


def _periods(*units, price=20):
    return [SalesPeriodTotals(Decimal(str(u)), Decimal(str(u)) * price) for u in units]


class TestVelocityAndCrossover:
    """Test the tier crossover estimate."""

    @pytest.fixture
    def estimator(self):
        return ProjectionEstimator()

    def test_periods_to_next_tier(self, estimator):
        """25,000 units to go at 1,000 a month = 25 months"""
        projection = estimator.project(_periods(1000, 1000, 1000), TIERS, Decimal("25000"))

        assert projection.velocity_per_period == Decimal("1000")
        assert projection.units_to_next_tier == Decimal("25000")
        assert projection.periods_to_next_tier == 25

    def test_velocity_is_trailing_average(self, estimator):
        projection = estimator.project(_periods(900, 1100, 1000), TIERS, Decimal("0"))

        assert projection.velocity_per_period == Decimal("1000")

    def test_partial_period_rounds_up(self, estimator):
        """100 units to go at 30 a month needs a fourth month"""
        projection = estimator.project(_periods(30), TIERS, Decimal("49900"))

        assert projection.periods_to_next_tier == 4

    def test_crossover_date_uses_fixed_length_periods(self, estimator):
        """25 periods × 365/12 days = 761 days after 2025-01-01"""
        projection = estimator.project(
            _periods(1000, 1000, 1000), TIERS, Decimal("25000"), as_of=date(2025, 1, 1)
        )

        assert projection.estimated_crossover_date == date(2027, 2, 1)

    def test_no_date_without_as_of(self, estimator):
        projection = estimator.project(_periods(1000), TIERS, Decimal("25000"))

        assert projection.periods_to_next_tier == 25
        assert projection.estimated_crossover_date is None

    def test_zero_velocity_has_no_crossover(self, estimator):
        projection = estimator.project(_periods(0, 0), TIERS, Decimal("25000"), as_of=date(2025, 1, 1))

        assert projection.periods_to_next_tier is None
        assert projection.estimated_crossover_date is None

    def test_no_recent_sales(self, estimator):
        projection = estimator.project([], TIERS, Decimal("25000"))

        assert projection.velocity_per_period == Decimal("0")
        assert projection.projected_annual_royalty_with_escalation == Decimal("0")


class TestTierPosition:
    """Test current and next tier reporting."""

    @pytest.fixture
    def estimator(self):
        return ProjectionEstimator()

    def test_exactly_at_threshold_is_next_tier(self, estimator):
        projection = estimator.project(_periods(1000), TIERS, Decimal("50000"))

        assert projection.current_rate == Decimal("0.12")
        assert projection.next_rate == Decimal("0.15")
        assert projection.next_tier_threshold == Decimal("100000")

    def test_top_tier_has_no_next(self, estimator):
        projection = estimator.project(_periods(1000), TIERS, Decimal("150000"), as_of=date(2025, 1, 1))

        assert projection.current_rate == Decimal("0.15")
        assert projection.next_rate is None
        assert projection.units_to_next_tier is None
        assert projection.estimated_crossover_date is None
        assert projection.projected_annual_royalty_at_next_tier == projection.projected_annual_royalty_at_current_rate


class TestAnnualRoyalty:
    """Test the twelve-month royalty projections."""

    @pytest.fixture
    def estimator(self):
        return ProjectionEstimator()

    def test_year_within_current_tier(self, estimator):
        """12,000 units × $20 × 10% = $24,000; no tier is crossed"""
        projection = estimator.project(_periods(1000, 1000, 1000), TIERS, Decimal("10000"))

        assert projection.projected_annual_units == Decimal("12000")
        assert projection.projected_annual_revenue == Decimal("240000.00")
        assert projection.projected_annual_royalty_at_current_rate == Decimal("24000.00")
        assert projection.projected_annual_royalty_with_escalation == Decimal("24000.00")
        assert projection.escalation_benefit == Decimal("0")

    def test_year_crossing_a_tier(self, estimator):
        """From 45,000: 5,000 × $10 × 10% + 7,000 × $10 × 12% = $5,000 + $8,400"""
        projection = estimator.project(_periods(1000, price=10), TIERS, Decimal("45000"))

        assert projection.projected_annual_royalty_at_current_rate == Decimal("12000.00")
        assert projection.projected_annual_royalty_at_next_tier == Decimal("14400.00")
        assert projection.projected_annual_royalty_with_escalation == Decimal("13400.00")
        assert projection.escalation_benefit == Decimal("1400.00")

    def test_to_dict_is_json_safe(self, estimator):
        data = estimator.project(_periods(1000), TIERS, Decimal("25000"), as_of=date(2025, 1, 1)).to_dict()

        assert data["estimated_crossover_date"] == "2027-02-01"
        assert data["periods_to_next_tier"] == 25
        assert data["current_rate"] == "0.10"


class TestProjectionInputs:
    """Test rejection of unusable inputs."""

    @pytest.fixture
    def estimator(self):
        return ProjectionEstimator()

    def test_negative_position_rejected(self, estimator):
        with pytest.raises(DataError):
            estimator.project(_periods(1000), TIERS, Decimal("-1"))

    def test_periods_per_year_must_be_positive(self, estimator):
        with pytest.raises(ValueError, match="periods_per_year"):
            estimator.project(_periods(1000), TIERS, Decimal("0"), periods_per_year=0)

    def test_weekly_periods(self, estimator):
        """52 weekly periods of 100 units"""
        projection = estimator.project(_periods(100), TIERS, Decimal("0"), periods_per_year=52)

        assert projection.projected_annual_units == Decimal("5200")
