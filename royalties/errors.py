"""
Error Taxonomy for the Royalty Calculation Engine

Every failure aborts the whole (contract, period) calculation. Errors carry a
machine-readable kind plus the tenant/contract/period context they were raised
in, so callers can log and translate them without parsing messages.
"""


class RoyaltyEngineError(Exception):
    """Base class for all structured engine failures."""

    kind = "engine"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def with_context(self, **context) -> "RoyaltyEngineError":
        """Attach extra context (keys already present are kept)."""
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "context": {k: str(v) for k, v in self.context.items()},
        }


class ConfigurationError(RoyaltyEngineError, ValueError):
    """Malformed contract configuration: tier schedule, shares, mode."""

    kind = "configuration"


class DataError(RoyaltyEngineError, ValueError):
    """Sales data required for a format is missing or unusable."""

    kind = "data"


class ConcurrencyError(RoyaltyEngineError):
    """Another calculation holds the contract, or its advance state moved."""

    kind = "concurrency"


class DuplicateCalculationError(RoyaltyEngineError):
    """The (contract, period) already has a committed calculation record."""

    kind = "duplicate_period"
