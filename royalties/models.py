"""
Domain Models for the Royalty Calculation Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values and unit quantities use Decimal for precision.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from .errors import ConfigurationError

PERIOD_MODE = "period"
LIFETIME_MODE = "lifetime"
TIER_CALCULATION_MODES = (PERIOD_MODE, LIFETIME_MODE)

SCHEMA_VERSION = 1


def to_decimal(value) -> Decimal:
    """Convert a raw JSON/DB value to Decimal without going through float repr."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a valid decimal value: {value!r}") from None


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class ContractTier:
    """A single tier in a royalty schedule, covering [min_quantity, max_quantity)."""

    tier_id: str
    format: str
    min_quantity: Decimal
    max_quantity: Decimal | None  # None = unbounded
    rate: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "ContractTier":
        max_quantity = data.get("max_quantity")
        return cls(
            tier_id=str(data["tier_id"]),
            format=data["format"],
            min_quantity=to_decimal(data["min_quantity"]),
            max_quantity=to_decimal(max_quantity) if max_quantity is not None else None,
            rate=to_decimal(data["rate"]),
        )


@dataclass(frozen=True)
class CoAuthorSplit:
    """An owner's share of a title, as a percentage (50 = 50%)."""

    owner_id: str
    ownership_percentage: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "CoAuthorSplit":
        return cls(
            owner_id=str(data["owner_id"]),
            ownership_percentage=to_decimal(data["ownership_percentage"]),
        )


@dataclass(frozen=True)
class AdvanceState:
    """Advance balance of a contract. The only cross-period mutable state."""

    advance_total: Decimal
    advance_recouped: Decimal
    version: int = 0

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.advance_total - self.advance_recouped)

    @property
    def fully_recouped(self) -> bool:
        return self.advance_recouped >= self.advance_total

    def recoup(self, amount: Decimal) -> "AdvanceState":
        return replace(self, advance_recouped=self.advance_recouped + amount, version=self.version + 1)


@dataclass
class Contract:
    """Royalty contract for one title: tier schedule, advance and co-owners."""

    contract_id: str
    tenant_id: str
    title_id: str
    tier_calculation_mode: str = PERIOD_MODE
    tiers: list[ContractTier] = field(default_factory=list)
    advance_amount: Decimal = Decimal("0")
    advance_recouped: Decimal = Decimal("0")
    co_author_splits: list[CoAuthorSplit] = field(default_factory=list)
    status: str = "active"

    @property
    def is_lifetime_mode(self) -> bool:
        return self.tier_calculation_mode == LIFETIME_MODE

    @property
    def formats(self) -> list[str]:
        """Formats that carry a tier schedule, in first-seen order."""
        seen = []
        for tier in self.tiers:
            if tier.format not in seen:
                seen.append(tier.format)
        return seen

    def tiers_for(self, format: str) -> list[ContractTier]:
        return sorted(
            (t for t in self.tiers if t.format == format),
            key=lambda t: t.min_quantity,
        )

    @property
    def advance_state(self) -> AdvanceState:
        return AdvanceState(advance_total=self.advance_amount, advance_recouped=self.advance_recouped)

    @classmethod
    def from_dict(cls, data: dict) -> "Contract":
        mode = data.get("tier_calculation_mode", PERIOD_MODE)
        if mode not in TIER_CALCULATION_MODES:
            raise ConfigurationError(
                f"Invalid tier_calculation_mode: {mode}. Must be 'period' or 'lifetime'",
                contract_id=data.get("contract_id"),
            )
        return cls(
            contract_id=str(data["contract_id"]),
            tenant_id=str(data["tenant_id"]),
            title_id=str(data["title_id"]),
            tier_calculation_mode=mode,
            tiers=[ContractTier.from_dict(t) for t in data.get("tiers", [])],
            advance_amount=to_decimal(data.get("advance_amount", 0)),
            advance_recouped=to_decimal(data.get("advance_recouped", 0)),
            co_author_splits=[CoAuthorSplit.from_dict(s) for s in data.get("co_author_splits", [])],
            status=data.get("status", "active"),
        )


@dataclass(frozen=True)
class SalesPeriodTotals:
    """Net (sales minus returns) totals for one format and period. May be negative."""

    net_quantity: Decimal
    net_revenue: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "SalesPeriodTotals":
        return cls(
            net_quantity=to_decimal(data["net_quantity"]),
            net_revenue=to_decimal(data["net_revenue"]),
        )


@dataclass
class CalculationRequest:
    """One (contract, period) calculation."""

    tenant_id: str
    contract: Contract
    period_start: date
    period_end: date

    @classmethod
    def from_dict(cls, data: dict) -> "CalculationRequest":
        contract = Contract.from_dict(data["contract"])
        return cls(
            tenant_id=str(data.get("tenant_id", contract.tenant_id)),
            contract=contract,
            period_start=parse_date(data["period_start"]),
            period_end=parse_date(data["period_end"]),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass(frozen=True)
class TierBreakdown:
    """Units and royalty that one tier received from a period."""

    tier_id: str
    min_quantity: Decimal
    max_quantity: Decimal | None
    rate: Decimal
    units_applied: Decimal
    royalty_amount: Decimal
    # Lifetime mode only: the slice of the lifetime position this tier consumed
    lifetime_start: Decimal | None = None
    lifetime_end: Decimal | None = None


@dataclass(frozen=True)
class TierAllocation:
    """Result of applying a tier schedule to one format's period totals."""

    breakdowns: tuple[TierBreakdown, ...] = ()
    royalty: Decimal = Decimal("0")

    @property
    def units_applied(self) -> Decimal:
        return sum((b.units_applied for b in self.breakdowns), Decimal("0"))


@dataclass(frozen=True)
class FormatCalculation:
    """Per-format section of a calculation record."""

    format: str
    net_quantity: Decimal
    net_revenue: Decimal
    tier_breakdowns: tuple[TierBreakdown, ...]
    royalty: Decimal
    lifetime_before: Decimal | None = None
    lifetime_after: Decimal | None = None
    next_tier_threshold: Decimal | None = None


@dataclass(frozen=True)
class RecoupmentResult:
    """Results of netting gross royalty against the outstanding advance."""

    advance_total: Decimal = Decimal("0")
    previously_recouped: Decimal = Decimal("0")
    recoupment: Decimal = Decimal("0")
    net_payable: Decimal = Decimal("0")
    net_payable_unfloored: Decimal = Decimal("0")
    new_state: AdvanceState | None = None

    @property
    def remaining_advance(self) -> Decimal:
        return max(Decimal("0"), self.advance_total - self.previously_recouped - self.recoupment)


@dataclass(frozen=True)
class Allocation:
    """One owner's share of a split amount."""

    owner_id: str
    ownership_percentage: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Projection:
    """Forward-looking estimate built from recent sales velocity. Read-only."""

    velocity_per_period: Decimal
    current_lifetime_position: Decimal
    current_rate: Decimal
    next_rate: Decimal | None
    next_tier_threshold: Decimal | None
    units_to_next_tier: Decimal | None
    periods_to_next_tier: int | None
    estimated_crossover_date: date | None
    projected_annual_units: Decimal
    projected_annual_revenue: Decimal
    projected_annual_royalty_at_current_rate: Decimal
    projected_annual_royalty_at_next_tier: Decimal
    projected_annual_royalty_with_escalation: Decimal

    @property
    def escalation_benefit(self) -> Decimal:
        return self.projected_annual_royalty_with_escalation - self.projected_annual_royalty_at_current_rate

    def to_dict(self) -> dict:
        return {
            "velocity_per_period": str(self.velocity_per_period),
            "current_lifetime_position": str(self.current_lifetime_position),
            "current_rate": str(self.current_rate),
            "next_rate": _optional_str(self.next_rate),
            "next_tier_threshold": _optional_str(self.next_tier_threshold),
            "units_to_next_tier": _optional_str(self.units_to_next_tier),
            "periods_to_next_tier": self.periods_to_next_tier,
            "estimated_crossover_date": (
                self.estimated_crossover_date.isoformat() if self.estimated_crossover_date else None
            ),
            "projected_annual_units": str(self.projected_annual_units),
            "projected_annual_revenue": str(self.projected_annual_revenue),
            "projected_annual_royalty_at_current_rate": str(self.projected_annual_royalty_at_current_rate),
            "projected_annual_royalty_at_next_tier": str(self.projected_annual_royalty_at_next_tier),
            "projected_annual_royalty_with_escalation": str(self.projected_annual_royalty_with_escalation),
            "escalation_benefit": str(self.escalation_benefit),
        }


@dataclass(frozen=True)
class CalculationRecord:
    """
    The persisted output of one successful calculation run.

    Immutable and append-only: a later run never edits a record, and the
    schema_version lets statement rendering evolve without duck-typed fields.
    """

    tenant_id: str
    contract_id: str
    title_id: str
    period_start: date
    period_end: date
    tier_calculation_mode: str
    formats: tuple[FormatCalculation, ...]
    gross_royalty: Decimal
    recoupment: RecoupmentResult
    net_payable: Decimal
    net_payable_unfloored: Decimal
    allocations: tuple[Allocation, ...] = ()
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    schema_version: int = SCHEMA_VERSION

    @property
    def is_split(self) -> bool:
        return len(self.allocations) > 1

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe document. Decimals are written as strings."""
        return {
            "schema_version": self.schema_version,
            "record_id": self.record_id,
            "tenant_id": self.tenant_id,
            "contract_id": self.contract_id,
            "title_id": self.title_id,
            "period": {
                "start_date": self.period_start.isoformat(),
                "end_date": self.period_end.isoformat(),
            },
            "tier_calculation_mode": self.tier_calculation_mode,
            "formats": [_format_to_dict(f) for f in self.formats],
            "gross_royalty": str(self.gross_royalty),
            "advance_recoupment": {
                "original_advance": str(self.recoupment.advance_total),
                "previously_recouped": str(self.recoupment.previously_recouped),
                "this_periods_recoupment": str(self.recoupment.recoupment),
                "remaining_advance": str(self.recoupment.remaining_advance),
            },
            "net_payable": str(self.net_payable),
            "net_payable_unfloored": str(self.net_payable_unfloored),
            "is_split_calculation": self.is_split,
            "allocations": [
                {
                    "owner_id": a.owner_id,
                    "ownership_percentage": str(a.ownership_percentage),
                    "amount": str(a.amount),
                }
                for a in self.allocations
            ],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CalculationRecord":
        version = data.get("schema_version")
        if version != SCHEMA_VERSION:
            raise ConfigurationError(
                f"Unsupported calculation record schema_version: {version}",
                record_id=data.get("record_id"),
            )
        advance = data["advance_recoupment"]
        advance_total = to_decimal(advance["original_advance"])
        previously_recouped = to_decimal(advance["previously_recouped"])
        recouped = to_decimal(advance["this_periods_recoupment"])
        recoupment = RecoupmentResult(
            advance_total=advance_total,
            previously_recouped=previously_recouped,
            recoupment=recouped,
            net_payable=to_decimal(data["net_payable"]),
            net_payable_unfloored=to_decimal(data["net_payable_unfloored"]),
            new_state=AdvanceState(advance_total, previously_recouped + recouped),
        )
        return cls(
            record_id=data["record_id"],
            schema_version=version,
            tenant_id=data["tenant_id"],
            contract_id=data["contract_id"],
            title_id=data["title_id"],
            period_start=parse_date(data["period"]["start_date"]),
            period_end=parse_date(data["period"]["end_date"]),
            tier_calculation_mode=data["tier_calculation_mode"],
            formats=tuple(_format_from_dict(f) for f in data["formats"]),
            gross_royalty=to_decimal(data["gross_royalty"]),
            recoupment=recoupment,
            net_payable=recoupment.net_payable,
            net_payable_unfloored=recoupment.net_payable_unfloored,
            allocations=tuple(
                Allocation(
                    owner_id=a["owner_id"],
                    ownership_percentage=to_decimal(a["ownership_percentage"]),
                    amount=to_decimal(a["amount"]),
                )
                for a in data.get("allocations", [])
            ),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


def _optional_str(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _optional_decimal(value) -> Decimal | None:
    return to_decimal(value) if value is not None else None


def _format_to_dict(fc: FormatCalculation) -> dict:
    return {
        "format": fc.format,
        "net_quantity": str(fc.net_quantity),
        "net_revenue": str(fc.net_revenue),
        "tier_breakdowns": [
            {
                "tier_id": tb.tier_id,
                "tier_min_quantity": str(tb.min_quantity),
                "tier_max_quantity": _optional_str(tb.max_quantity),
                "tier_rate": str(tb.rate),
                "quantity_in_tier": str(tb.units_applied),
                "royalty_earned": str(tb.royalty_amount),
                "lifetime_start": _optional_str(tb.lifetime_start),
                "lifetime_end": _optional_str(tb.lifetime_end),
            }
            for tb in fc.tier_breakdowns
        ],
        "format_royalty": str(fc.royalty),
        "lifetime_before": _optional_str(fc.lifetime_before),
        "lifetime_after": _optional_str(fc.lifetime_after),
        "next_tier_threshold": _optional_str(fc.next_tier_threshold),
    }


def _format_from_dict(data: dict) -> FormatCalculation:
    return FormatCalculation(
        format=data["format"],
        net_quantity=to_decimal(data["net_quantity"]),
        net_revenue=to_decimal(data["net_revenue"]),
        tier_breakdowns=tuple(
            TierBreakdown(
                tier_id=tb["tier_id"],
                min_quantity=to_decimal(tb["tier_min_quantity"]),
                max_quantity=_optional_decimal(tb["tier_max_quantity"]),
                rate=to_decimal(tb["tier_rate"]),
                units_applied=to_decimal(tb["quantity_in_tier"]),
                royalty_amount=to_decimal(tb["royalty_earned"]),
                lifetime_start=_optional_decimal(tb.get("lifetime_start")),
                lifetime_end=_optional_decimal(tb.get("lifetime_end")),
            )
            for tb in data["tier_breakdowns"]
        ),
        royalty=to_decimal(data["format_royalty"]),
        lifetime_before=_optional_decimal(data.get("lifetime_before")),
        lifetime_after=_optional_decimal(data.get("lifetime_after")),
        next_tier_threshold=_optional_decimal(data.get("next_tier_threshold")),
    )
