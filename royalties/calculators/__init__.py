"""
Calculators Package

Provides all calculation components for royalty processing.
"""

from .lifetime import LifetimeSalesResolver
from .projection import ProjectionEstimator
from .recoupment import AdvanceRecoupmentTracker
from .splits import SplitAllocator
from .tiers import TierAllocator, quantize_money

__all__ = [
    "TierAllocator",
    "LifetimeSalesResolver",
    "AdvanceRecoupmentTracker",
    "SplitAllocator",
    "ProjectionEstimator",
    "quantize_money",
]
