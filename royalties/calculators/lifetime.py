"""
Lifetime Sales Resolver

Looks up how many units of a title/format were sold before a period starts.
Only used for contracts in lifetime tier mode.
"""

import logging
from datetime import date
from decimal import Decimal

from ..errors import DataError

logger = logging.getLogger(__name__)


class LifetimeSalesResolver:
    """
    Resolves the lifetime position a period starts from.

    The resolver does not care which credential reached storage: interactive
    requests pass a tenant-scoped store, background jobs pass an elevated one,
    and the lookup is the same either way.
    """

    def __init__(self, sales_store):
        self.sales_store = sales_store

    def resolve(self, tenant_id: str, title_id: str, format: str, period_start: date) -> Decimal:
        """Cumulative net units sold strictly before period_start."""
        position = self.sales_store.get_lifetime_sales_before_date(tenant_id, title_id, format, period_start)

        if position is None:
            raise DataError(
                f"Lifetime sales unavailable for {format}",
                tenant_id=tenant_id,
                title_id=title_id,
                format=format,
                period_start=period_start,
            )

        # Lifetime history never goes below zero; a negative answer means the
        # store subtracted late returns from it.
        if position < 0:
            raise DataError(
                f"Lifetime sales for {format} cannot be negative, got: {position}",
                tenant_id=tenant_id,
                title_id=title_id,
                format=format,
                period_start=period_start,
            )

        logger.debug(f"Lifetime position for {title_id}/{format} before {period_start}: {position}")
        return position
