"""
Royalty Calculation Engine

A modular engine for computing author royalties from net sales: tiered rates
(per period or against lifetime sales), advance recoupment and co-author splits.

Usage:
    from royalties import RoyaltyProcessor, InMemorySalesStore

    processor = RoyaltyProcessor(sales_store)
    record = processor.calculate(request)
"""

from .batch import BatchItemResult, BatchRunner, BatchSummary
from .config import EngineSettings
from .errors import (
    ConcurrencyError,
    ConfigurationError,
    DataError,
    DuplicateCalculationError,
    RoyaltyEngineError,
)
from .models import (
    AdvanceState,
    CalculationRecord,
    CalculationRequest,
    CoAuthorSplit,
    Contract,
    ContractTier,
    Projection,
    SalesPeriodTotals,
)
from .processor import RoyaltyProcessor, preview_royalty_from_dict, project_royalty_from_dict
from .store import CalculationLedger, InMemoryLedger, InMemorySalesStore, SalesStore

__all__ = [
    # Main entry points
    "RoyaltyProcessor",
    "BatchRunner",
    "preview_royalty_from_dict",
    "project_royalty_from_dict",
    # Models
    "AdvanceState",
    "CalculationRecord",
    "CalculationRequest",
    "CoAuthorSplit",
    "Contract",
    "ContractTier",
    "Projection",
    "SalesPeriodTotals",
    "BatchItemResult",
    "BatchSummary",
    # Storage
    "SalesStore",
    "CalculationLedger",
    "InMemorySalesStore",
    "InMemoryLedger",
    # Settings and errors
    "EngineSettings",
    "RoyaltyEngineError",
    "ConfigurationError",
    "DataError",
    "ConcurrencyError",
    "DuplicateCalculationError",
]

__version__ = "1.0.0"
