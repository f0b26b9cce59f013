"""
Pricing Resolver

Prices report rows from sector/category pricing configuration.

Configs are scoped by (sector, category id, pipe size). A pipe-size
specific config is preferred, with a sector-wide config (no pipe size)
as the fallback. Length tiers are inclusive on both ends and must not
overlap; an overlapping config is rejected when it is loaded.

Costs:
    - Day-rate work:  day_rate / runs_per_shift * total_length
    - Patch repairs:  unit_cost * repair_count

All money is Decimal rounded half-up to 2 decimal places. A row that
cannot be priced gets cost None and a status saying why; pricing never
fails the batch.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .errors import PricingConfigError
from .integrity import BatchWarning, WarningCategory, WarningSeverity
from .models import DefectType, LogicalRow, PricingStatus
from .repairs import extract_repair_count
from .rule_table import CLEAN, LINER, PATCH, REINSPECT, ROOT_CUT

logger = logging.getLogger(__name__)


CENT = Decimal("0.01")
DEFAULT_SECTOR = "utilities"
DEFAULT_PRICING_PATH = Path(__file__).parent.parent / "config" / "pricing.yaml"

# Work categories
CATEGORY_JET_VAC = "cctv-jet-vac"
CATEGORY_PATCHING = "patching"
CATEGORY_LINING = "lining"

ACTION_CATEGORIES = {
    CLEAN: CATEGORY_JET_VAC,
    ROOT_CUT: CATEGORY_JET_VAC,
    REINSPECT: CATEGORY_JET_VAC,
    PATCH: CATEGORY_PATCHING,
    LINER: CATEGORY_LINING,
}


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, name: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value).replace("£", "").replace(",", "").strip())
    except InvalidOperation as e:
        raise PricingConfigError(f"{name} is not a number: {value!r}") from e


def _to_int(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise PricingConfigError(f"{name} is not an integer: {value!r}") from e


@dataclass(frozen=True)
class PricingTier:
    """Length range [range_start, range_end] (metres, inclusive)."""
    range_start: float
    range_end: float
    day_rate: Optional[Decimal] = None
    runs_per_shift: Optional[int] = None
    label: str = ""

    def contains(self, length: float) -> bool:
        return self.range_start <= length <= self.range_end


@dataclass(frozen=True)
class PricingConfig:
    """Pricing for one (sector, category, pipe size) scope."""
    sector: str
    category_id: str
    pipe_size: Optional[int] = None
    day_rate: Optional[Decimal] = None
    runs_per_shift: Optional[int] = None
    min_quantity: Optional[int] = None
    unit_cost: Optional[Decimal] = None
    tiers: Tuple[PricingTier, ...] = ()

    def __post_init__(self):
        validate_tiers(self.tiers, self.scope_label)
        if self.runs_per_shift is not None and self.runs_per_shift <= 0:
            raise PricingConfigError(f"{self.scope_label}: runs_per_shift must be positive")

    @property
    def scope_label(self) -> str:
        size = f"{self.pipe_size}mm" if self.pipe_size is not None else "any size"
        return f"{self.sector}/{self.category_id}/{size}"

    def tier_for(self, length: float) -> Optional[PricingTier]:
        for tier in self.tiers:
            if tier.contains(length):
                return tier
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingConfig":
        sector = str(data.get("sector") or "").strip()
        category_id = str(data.get("category") or data.get("category_id") or "").strip()
        if not sector or not category_id:
            raise PricingConfigError(f"Pricing config needs sector and category: {data!r}")

        tiers = []
        for raw in data.get("tiers") or []:
            if not isinstance(raw, dict):
                raise PricingConfigError(f"{sector}/{category_id}: invalid tier {raw!r}")
            try:
                start = float(raw["range_start"])
                end = float(raw["range_end"])
            except (KeyError, TypeError, ValueError) as e:
                raise PricingConfigError(f"{sector}/{category_id}: invalid tier {raw!r}") from e
            runs = _to_int(raw.get("runs_per_shift"), "runs_per_shift")
            if runs is not None and runs <= 0:
                raise PricingConfigError(f"{sector}/{category_id}: runs_per_shift must be positive")
            tiers.append(PricingTier(
                range_start=start,
                range_end=end,
                day_rate=_to_decimal(raw.get("day_rate"), "day_rate"),
                runs_per_shift=runs,
                label=str(raw.get("label", "")),
            ))

        return cls(
            sector=sector,
            category_id=category_id,
            pipe_size=_to_int(data.get("pipe_size"), "pipe_size"),
            day_rate=_to_decimal(data.get("day_rate"), "day_rate"),
            runs_per_shift=_to_int(data.get("runs_per_shift"), "runs_per_shift"),
            min_quantity=_to_int(data.get("min_quantity"), "min_quantity"),
            unit_cost=_to_decimal(data.get("unit_cost"), "unit_cost"),
            tiers=tuple(tiers),
        )


def validate_tiers(tiers: Iterable[PricingTier], scope: str = "") -> None:
    """
    Reject reversed or overlapping tiers.

    Raises:
        PricingConfigError: If any two tiers share a length
    """
    ordered = sorted(tiers, key=lambda t: (t.range_start, t.range_end))
    for tier in ordered:
        if tier.range_start > tier.range_end:
            raise PricingConfigError(
                f"{scope}: tier {tier.label or ''} starts after it ends "
                f"({tier.range_start} > {tier.range_end})"
            )
    for previous, current in zip(ordered, ordered[1:]):
        if current.range_start <= previous.range_end:
            raise PricingConfigError(
                f"{scope}: tiers overlap ({previous.range_start}-{previous.range_end} "
                f"and {current.range_start}-{current.range_end})"
            )


class PricingProvider:
    """Source of pricing configs."""

    def get(self, sector: str, category_id: str,
            pipe_size: Optional[int]) -> Optional[PricingConfig]:
        raise NotImplementedError


class StaticPricingProvider(PricingProvider):
    """Pricing configs held in memory (usually loaded from YAML)."""

    def __init__(self, configs: Iterable[PricingConfig] = ()):
        self.configs: Dict[Tuple[str, str, Optional[int]], PricingConfig] = {}
        for config in configs:
            key = (config.sector.lower(), config.category_id.lower(), config.pipe_size)
            if key in self.configs:
                raise PricingConfigError(f"Duplicate pricing config for {config.scope_label}")
            self.configs[key] = config

    def __len__(self) -> int:
        return len(self.configs)

    def get(self, sector: str, category_id: str,
            pipe_size: Optional[int]) -> Optional[PricingConfig]:
        sector_key = (sector or "").lower()
        category_key = (category_id or "").lower()
        if pipe_size is not None:
            specific = self.configs.get((sector_key, category_key, pipe_size))
            if specific:
                return specific
        return self.configs.get((sector_key, category_key, None))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StaticPricingProvider":
        entries = data.get("configs") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise PricingConfigError("Pricing file must contain a 'configs' list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise PricingConfigError(f"Pricing config entry must be a mapping: {entry!r}")
        return cls(PricingConfig.from_dict(entry) for entry in entries)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "StaticPricingProvider":
        path = Path(path)
        if not path.exists():
            raise PricingConfigError(f"Pricing config not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise PricingConfigError(f"Pricing config {path} is not valid YAML: {e}") from e

        provider = cls.from_dict(data)
        logger.info(f"Loaded {len(provider)} pricing configs from {path}")
        return provider


def load_pricing_config(path: Union[str, Path, None] = None) -> StaticPricingProvider:
    """Load pricing from a YAML file (defaults to config/pricing.yaml)."""
    return StaticPricingProvider.from_yaml(path or DEFAULT_PRICING_PATH)


@dataclass
class PricingResult:
    """Outcome of pricing one row."""
    row: LogicalRow
    warnings: List[BatchWarning] = field(default_factory=list)


def category_for(row: LogicalRow) -> Optional[str]:
    """Pricing category id for a row's recommended work."""
    if row.defect_type is DefectType.OBSERVATION:
        return None
    return ACTION_CATEGORIES.get(row.recommendation)


def _warning(row: LogicalRow, message: str, **details) -> BatchWarning:
    return BatchWarning(
        category=WarningCategory.PRICING,
        message=f"Item {row.item_label}: {message}",
        item_no=row.item_no,
        letter_suffix=row.letter_suffix,
        details=details,
    )


def _lookup(provider: PricingProvider, sector: str, category_id: str,
            pipe_size: Optional[int]) -> Optional[PricingConfig]:
    try:
        return provider.get(sector, category_id, pipe_size)
    except Exception as e:
        logger.error(f"Pricing lookup failed for {sector}/{category_id}/{pipe_size}: {e}")
        return None


def price_row(row: LogicalRow, provider: Optional[PricingProvider],
              sector: str = DEFAULT_SECTOR) -> PricingResult:
    """
    Price a single row.

    Args:
        row: Row from the splitter
        provider: Pricing source, or None when no pricing is configured
        sector: Sector the upload belongs to

    Returns:
        PricingResult with a new row carrying cost and pricing_status
    """
    if row.defect_type is DefectType.OBSERVATION:
        return PricingResult(row=row.with_cost(None, PricingStatus.NO_WORK))

    category_id = category_for(row)

    if row.pipe_size is None or row.total_length is None:
        return PricingResult(
            row=row.with_cost(None, PricingStatus.MISSING_DIMENSIONS),
            warnings=[_warning(row, "pipe size or length missing, cannot price")],
        )

    config = None
    if provider is not None and category_id:
        config = _lookup(provider, sector, category_id, row.pipe_size)

    if config is None:
        return PricingResult(
            row=row.with_cost(None, PricingStatus.NO_CONFIG),
            warnings=[_warning(
                row,
                f"configure pricing for {sector}/{category_id} {row.pipe_size}mm",
                sector=sector, category_id=category_id, pipe_size=row.pipe_size,
            )],
        )

    if row.defect_type is DefectType.STRUCTURAL and row.recommendation == PATCH \
            and config.unit_cost is not None:
        return _price_patch(row, config)

    return _price_day_rate(row, config)


def _price_patch(row: LogicalRow, config: PricingConfig) -> PricingResult:
    repairs = row.repair_count or extract_repair_count(row.recommendation, row.defect_positions)
    cost = round_money(config.unit_cost * repairs)
    warnings = []
    if config.min_quantity and repairs < config.min_quantity:
        warnings.append(BatchWarning(
            category=WarningCategory.PRICING,
            severity=WarningSeverity.INFO,
            message=(f"Item {row.item_label}: {repairs} patch(es) below minimum "
                     f"quantity {config.min_quantity}"),
            item_no=row.item_no,
            letter_suffix=row.letter_suffix,
            details={"repair_count": repairs, "min_quantity": config.min_quantity},
        ))
    logger.debug(f"Item {row.item_label}: {repairs} x {config.unit_cost} = {cost}")
    return PricingResult(
        row=row.with_cost(cost, PricingStatus.PRICED),
        warnings=warnings,
    )


def _price_day_rate(row: LogicalRow, config: PricingConfig) -> PricingResult:
    length = Decimal(str(row.total_length))
    tier = config.tier_for(row.total_length)
    if tier is None:
        return PricingResult(
            row=row.with_cost(None, PricingStatus.NEEDS_MANUAL_PRICING),
            warnings=[_warning(
                row, f"no tier covers {row.total_length}m in {config.scope_label}, needs manual pricing",
                length=row.total_length,
            )],
        )

    day_rate = tier.day_rate if tier.day_rate is not None else config.day_rate
    runs = tier.runs_per_shift if tier.runs_per_shift is not None else config.runs_per_shift
    if day_rate is None or not runs:
        return PricingResult(
            row=row.with_cost(None, PricingStatus.NO_CONFIG),
            warnings=[_warning(row, f"{config.scope_label} has no day rate or runs per shift")],
        )

    cost = round_money(day_rate * length / Decimal(runs))
    logger.debug(f"Item {row.item_label}: {day_rate}/{runs} x {length}m = {cost} ({tier.label})")
    return PricingResult(row=row.with_cost(cost, PricingStatus.PRICED))


def price_rows(rows: Iterable[LogicalRow], provider: Optional[PricingProvider],
               sector: str = DEFAULT_SECTOR) -> Tuple[List[LogicalRow], List[BatchWarning]]:
    """
    Price every row.

    With no provider every row is left unpriced and a single warning is
    raised instead of one per row.
    """
    rows = list(rows)
    if provider is None:
        unpriced = [
            r.with_cost(None, PricingStatus.NO_WORK if r.defect_type is DefectType.OBSERVATION
                        else PricingStatus.NO_CONFIG)
            for r in rows
        ]
        return unpriced, [BatchWarning(
            category=WarningCategory.PRICING,
            message="No pricing configuration loaded; all costs left empty",
        )]

    priced: List[LogicalRow] = []
    warnings: List[BatchWarning] = []
    for row in rows:
        result = price_row(row, provider, sector)
        priced.append(result.row)
        warnings.extend(result.warnings)

    total = sum((r.cost for r in priced if r.cost is not None), Decimal("0.00"))
    logger.info(
        f"Priced {sum(1 for r in priced if r.pricing_status is PricingStatus.PRICED)}"
        f"/{len(priced)} rows, total £{total:,.2f}"
    )
    return priced, warnings
