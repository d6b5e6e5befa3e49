"""
Advance Recoupment Tracker

Handles recoupment of an outstanding advance from the period's gross royalty.
"""

import logging
from decimal import Decimal

from ..models import AdvanceState, RecoupmentResult

logger = logging.getLogger(__name__)


class AdvanceRecoupmentTracker:
    """Withholds royalty to repay the contract's advance."""

    def apply(self, gross_royalty: Decimal, advance_state: AdvanceState) -> RecoupmentResult:
        """
        Net gross royalty against the advance.

        - Recoupment = min(gross_royalty, remaining advance), never below zero
        - Net payable = gross_royalty - recoupment, floored at zero; the
          unfloored value is kept for audit
        - The returned new_state is not persisted here (caller commits it)
        """
        remaining = advance_state.remaining

        recoupment = max(Decimal("0"), min(gross_royalty, remaining))

        new_state = advance_state.recoup(recoupment)
        if new_state.fully_recouped and not advance_state.fully_recouped:
            logger.info(
                f"Advance fully recouped: {gross_royalty} gross covers remaining {remaining} "
                f"of {advance_state.advance_total}"
            )

        net_unfloored = gross_royalty - recoupment

        return RecoupmentResult(
            advance_total=advance_state.advance_total,
            previously_recouped=advance_state.advance_recouped,
            recoupment=recoupment,
            net_payable=max(Decimal("0"), net_unfloored),
            net_payable_unfloored=net_unfloored,
            new_state=new_state,
        )
