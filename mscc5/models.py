"""
Typed records for the survey grading engine.

Raw survey records are validated once by the normalizer and then travel
through classification, splitting, pricing and sequencing as immutable
dataclasses. Only the pricing resolver produces rows with a cost set,
and it does so by returning a new LogicalRow.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class Category(Enum):
    """Observation-level MSCC5 category."""
    STRUCTURAL = "structural"
    SERVICE = "service"
    NEUTRAL = "neutral"            # Informational codes (line deviation, joints, unknown)


class DefectType(Enum):
    """Category of a verdict or report row."""
    SERVICE = "service"
    STRUCTURAL = "structural"
    OBSERVATION = "observation"    # Section with nothing to grade


class PricingStatus(Enum):
    """Outcome of pricing a single row."""
    UNPRICED = "unpriced"                      # Pricing has not run yet
    PRICED = "priced"
    NO_WORK = "no_work"                        # Observation-only row
    NO_CONFIG = "no_config"                    # Configure pricing
    MISSING_DIMENSIONS = "missing_dimensions"  # Pipe size or length missing
    NEEDS_MANUAL_PRICING = "needs_manual_pricing"  # No tier covers the length


@dataclass(frozen=True)
class RawObservation:
    """An observation as it arrives from the input feed, before validation."""
    code: Optional[str]
    distance_text: Union[str, float, int, None] = None
    free_text: str = ""
    grade: Union[str, int, None] = None   # Surveyor-recorded grade, if any


@dataclass(frozen=True)
class Observation:
    """A single validated MSCC5 observation."""
    code: str
    category: Category
    grade: int = 0                      # 0 = no grading applicable
    position: Optional[float] = None    # Chainage in metres
    percentage: Optional[int] = None    # Cross-sectional loss, 0-100
    remark: str = ""

    @property
    def position_display(self) -> str:
        if self.position is None:
            return "?"
        return f"{self.position:.2f}m"

    def describe(self) -> str:
        """Short human-readable form used in row defect text."""
        text = f"{self.code} {self.position_display}"
        if self.grade:
            text += f" (Grade {self.grade})"
        if self.remark:
            text += f": {self.remark}"
        return text


@dataclass(frozen=True)
class PhysicalSection:
    """One pipe run between two manholes/nodes."""
    sort_order: int
    start_node: str = ""
    end_node: str = ""
    pipe_size: Optional[int] = None         # Diameter in mm
    pipe_material: str = ""
    total_length: Optional[float] = None    # Metres
    surveyed_length: Optional[float] = None
    observations: Tuple[Observation, ...] = ()
    item_no: Optional[int] = None           # Authentic item number, defaults to sort_order

    @property
    def authentic_item_no(self) -> int:
        return self.item_no if self.item_no is not None else self.sort_order


@dataclass(frozen=True)
class SectionVerdict:
    """Graded outcome for one category of a section."""
    category: DefectType
    grade: int
    recommendation: str
    adoptable: bool
    governing_code: Optional[str] = None
    repair_count: Optional[int] = None      # Structural patch groups
    observations: Tuple[Observation, ...] = ()

    @property
    def positions(self) -> Tuple[float, ...]:
        return tuple(o.position for o in self.observations if o.position is not None)


@dataclass(frozen=True)
class LogicalRow:
    """
    One row of the survey report.

    Rows are keyed by (upload_id, item_no, letter_suffix). A mixed section
    produces a SERVICE row with no suffix and a STRUCTURAL row with 'a'.
    """
    item_no: int
    letter_suffix: Optional[str]
    defect_type: DefectType
    severity_grade: int
    recommendation: str
    adoptable: bool
    start_node: str = ""
    end_node: str = ""
    pipe_size: Optional[int] = None
    pipe_material: str = ""
    total_length: Optional[float] = None
    defects: str = ""
    governing_code: Optional[str] = None
    repair_count: Optional[int] = None
    defect_positions: Tuple[float, ...] = ()
    cost: Optional[Decimal] = None
    pricing_status: PricingStatus = PricingStatus.UNPRICED

    @property
    def item_label(self) -> str:
        """Item number as shown on the report, e.g. '5' or '5a'."""
        return f"{self.item_no}{self.letter_suffix or ''}"

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.item_no, self.letter_suffix or "")

    def with_cost(self, cost: Optional[Decimal], status: PricingStatus) -> "LogicalRow":
        return replace(self, cost=cost, pricing_status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_no": self.item_no,
            "letter_suffix": self.letter_suffix,
            "item": self.item_label,
            "defect_type": self.defect_type.value,
            "severity_grade": self.severity_grade,
            "recommendation": self.recommendation,
            "adoptable": self.adoptable,
            "start_node": self.start_node,
            "end_node": self.end_node,
            "pipe_size": self.pipe_size,
            "pipe_material": self.pipe_material,
            "total_length": self.total_length,
            "defects": self.defects,
            "governing_code": self.governing_code,
            "repair_count": self.repair_count,
            "defect_positions": list(self.defect_positions),
            "cost": str(self.cost) if self.cost is not None else None,
            "pricing_status": self.pricing_status.value,
        }


@dataclass
class BatchResult:
    """Everything a batch run produces; rebuilt from scratch on reprocessing."""
    rows: list = field(default_factory=list)          # List[LogicalRow], report order
    warnings: list = field(default_factory=list)      # List[BatchWarning]
    rules_version: str = ""
    upload_id: Optional[str] = None
    sector: Optional[str] = None

    def keyed_rows(self) -> Dict[Tuple[Optional[str], int, Optional[str]], LogicalRow]:
        """Rows indexed by their unique (upload_id, item_no, letter_suffix) key."""
        return {(self.upload_id, r.item_no, r.letter_suffix): r for r in self.rows}

    @property
    def total_cost(self) -> Decimal:
        return sum((r.cost for r in self.rows if r.cost is not None), Decimal("0.00"))

    def summary(self) -> Dict[str, Any]:
        """Counts used in the report header and CLI output."""
        return {
            "sections": len({r.item_no for r in self.rows}),
            "rows": len(self.rows),
            "service_rows": sum(1 for r in self.rows if r.defect_type is DefectType.SERVICE),
            "structural_rows": sum(1 for r in self.rows if r.defect_type is DefectType.STRUCTURAL),
            "observation_rows": sum(1 for r in self.rows if r.defect_type is DefectType.OBSERVATION),
            "not_adoptable": sum(1 for r in self.rows if not r.adoptable),
            "high_severity": sum(1 for r in self.rows if r.severity_grade >= 4),
            "priced_rows": sum(1 for r in self.rows if r.pricing_status is PricingStatus.PRICED),
            "total_cost": str(self.total_cost),
            "warnings": len(self.warnings),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "sector": self.sector,
            "rules_version": self.rules_version,
            "summary": self.summary(),
            "rows": [r.to_dict() for r in self.rows],
            "warnings": [w.to_dict() for w in self.warnings],
        }
