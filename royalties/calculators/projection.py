"""
Projection Estimator

Estimates when a lifetime-mode title will reach its next tier and what a year
of sales at the current velocity would earn. Purely read-side.
"""

from datetime import date, timedelta
from decimal import ROUND_CEILING, Decimal

from ..errors import DataError
from ..models import LIFETIME_MODE, ContractTier, Projection, SalesPeriodTotals
from .tiers import TierAllocator, next_tier_after, quantize_money, tier_at

DAYS_PER_YEAR = Decimal("365")


class ProjectionEstimator:
    """Projects tier crossover and annual royalty from recent sales."""

    def __init__(self, tier_allocator: TierAllocator | None = None):
        self.tier_allocator = tier_allocator or TierAllocator()

    def project(
        self,
        recent_periods: list[SalesPeriodTotals],
        tiers: list[ContractTier],
        current_lifetime_position: Decimal,
        as_of: date | None = None,
        periods_per_year: int = 12,
    ) -> Projection:
        """
        Build a projection.

        Velocity is the plain trailing average of net units over recent_periods.
        No crossover is estimated when velocity is zero or negative, when the
        title already sits in the top tier, or when no as_of date is given.
        """
        if current_lifetime_position < 0:
            raise DataError(f"Lifetime position cannot be negative, got: {current_lifetime_position}")
        if periods_per_year <= 0:
            raise ValueError(f"periods_per_year must be positive, got: {periods_per_year}")

        self.tier_allocator.validator.validate_tier_schedule(tiers)

        velocity = self._velocity(recent_periods)
        avg_price = self._average_unit_price(recent_periods)

        current_tier = tier_at(tiers, current_lifetime_position)
        next_tier = next_tier_after(tiers, current_lifetime_position)
        current_rate = current_tier.rate if current_tier else Decimal("0")

        next_threshold = next_tier.min_quantity if next_tier else None
        units_to_next = next_threshold - current_lifetime_position if next_tier else None

        periods_to_next = None
        crossover_date = None
        if units_to_next is not None and velocity > 0:
            periods_to_next = int((units_to_next / velocity).to_integral_value(rounding=ROUND_CEILING))
            if as_of is not None:
                crossover_date = as_of + self._periods_to_timedelta(periods_to_next, periods_per_year)

        annual_units = max(velocity, Decimal("0")) * periods_per_year
        annual_revenue = quantize_money(annual_units * avg_price)

        at_current = quantize_money(annual_revenue * current_rate)
        next_rate = next_tier.rate if next_tier else None
        at_next = quantize_money(annual_revenue * (next_rate if next_rate is not None else current_rate))

        escalated = self.tier_allocator.allocate(
            annual_units, annual_revenue, tiers, LIFETIME_MODE, current_lifetime_position
        ).royalty

        return Projection(
            velocity_per_period=velocity,
            current_lifetime_position=current_lifetime_position,
            current_rate=current_rate,
            next_rate=next_rate,
            next_tier_threshold=next_threshold,
            units_to_next_tier=units_to_next,
            periods_to_next_tier=periods_to_next,
            estimated_crossover_date=crossover_date,
            projected_annual_units=annual_units,
            projected_annual_revenue=annual_revenue,
            projected_annual_royalty_at_current_rate=at_current,
            projected_annual_royalty_at_next_tier=at_next,
            projected_annual_royalty_with_escalation=escalated,
        )

    def _velocity(self, periods: list[SalesPeriodTotals]) -> Decimal:
        if not periods:
            return Decimal("0")
        total = sum((p.net_quantity for p in periods), Decimal("0"))
        return total / len(periods)

    def _average_unit_price(self, periods: list[SalesPeriodTotals]) -> Decimal:
        quantity = sum((p.net_quantity for p in periods), Decimal("0"))
        if quantity <= 0:
            return Decimal("0")
        revenue = sum((p.net_revenue for p in periods), Decimal("0"))
        return revenue / quantity

    @staticmethod
    def _periods_to_timedelta(periods: int, periods_per_year: int) -> timedelta:
        """
        Convert a period count to days.

        NOTE: Uses fixed 365-day years split evenly into periods, not calendar
        months, so the estimate does not drift with month lengths.
        """
        days = (Decimal(periods) * DAYS_PER_YEAR / periods_per_year).to_integral_value(rounding=ROUND_CEILING)
        return timedelta(days=int(days))
