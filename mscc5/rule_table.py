"""
MSCC5 Rule Table

Static, versioned mapping from MSCC5 observation code to category,
grade thresholds and recommended actions. Lookups are case-insensitive;
codes not in the table are treated as NEUTRAL with a "reinspect"
recommendation.

The built-in table can be replaced by a YAML file (RuleTable.from_yaml)
so a new ruleset can be trialled without a code change.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

import yaml

from .errors import RuleTableError
from .models import Category

logger = logging.getLogger(__name__)


RULES_VERSION = "MSCC5-2024.1"

# Recommendations
REINSPECT = "reinspect"
NO_ACTION = "no action required"
CLEAN = "clean"
ROOT_CUT = "root cut"
PATCH = "patch"
LINER = "liner"

# Grade thresholds
SERVICE_ACTION_GRADE = 2        # Service defects need cleaning from grade 2
STRUCTURAL_PATCH_GRADE = 3      # Medium structural defects get patch repairs
STRUCTURAL_LINER_GRADE = 4      # High structural defects need a full liner
ADOPTABLE_MAX_GRADE = 2         # Anything above this fails adoption
ADOPTION_STRUCTURAL_FLOOR = 3   # Ungraded structural defects in adoption surveys

ADOPTION_SECTOR = "adoption"

MIN_GRADE = 0
MAX_GRADE = 5

# Percentage -> grade bands, checked top-down (first threshold met wins)
DEPOSIT_BANDS = ((40, 4), (20, 3), (5, 2), (0, 1))
WATER_LEVEL_BANDS = ((50, 3), (20, 2), (6, 1))
DEFORMATION_BANDS = ((25, 5), (15, 4), (8, 3), (0, 2))
FRACTURE_BANDS = ((30, 5), (20, 4), (0, 3))


@dataclass(frozen=True)
class RuleEntry:
    """Rule for one MSCC5 code."""
    code: str
    category: Category
    description: str = ""
    action_threshold: Optional[int] = None      # Lowest grade that triggers `action`
    escalation_threshold: Optional[int] = None  # Lowest grade that triggers `escalated_action`
    action: str = REINSPECT
    escalated_action: Optional[str] = None
    banned_for_adoption: bool = False
    percentage_bands: Tuple[Tuple[int, int], ...] = ()
    default_grade: Optional[int] = None         # Grade when the survey records none

    def recommend(self, grade: Optional[int]) -> str:
        if not grade or self.action_threshold is None or grade < self.action_threshold:
            return REINSPECT
        if (self.escalation_threshold is not None
                and self.escalated_action
                and grade >= self.escalation_threshold):
            return self.escalated_action
        return self.action

    def grade_for_percentage(self, percentage: Optional[int]) -> Optional[int]:
        if percentage is None or not self.percentage_bands:
            return None
        for threshold, grade in self.percentage_bands:
            if percentage >= threshold:
                return grade
        return 0


def _service(code: str, description: str, action: str = CLEAN,
             banned: bool = False, bands=(), default_grade: Optional[int] = None) -> RuleEntry:
    return RuleEntry(
        code=code,
        category=Category.SERVICE,
        description=description,
        action_threshold=SERVICE_ACTION_GRADE,
        action=action,
        banned_for_adoption=banned,
        percentage_bands=bands,
        default_grade=default_grade,
    )


def _structural(code: str, description: str, banned: bool = False, bands=(),
                default_grade: Optional[int] = None) -> RuleEntry:
    return RuleEntry(
        code=code,
        category=Category.STRUCTURAL,
        description=description,
        action_threshold=STRUCTURAL_PATCH_GRADE,
        escalation_threshold=STRUCTURAL_LINER_GRADE,
        action=PATCH,
        escalated_action=LINER,
        banned_for_adoption=banned,
        percentage_bands=bands,
        default_grade=default_grade,
    )


def _neutral(code: str, description: str) -> RuleEntry:
    return RuleEntry(code=code, category=Category.NEUTRAL, description=description)


_BUILTIN_ENTRIES = [
    # Service / operational
    _service("DE", "Deposits", bands=DEPOSIT_BANDS),
    _service("DEE", "Deposits attached encrustation", bands=DEPOSIT_BANDS),
    _service("DEF", "Deposits attached fouling", bands=DEPOSIT_BANDS),
    _service("DEG", "Deposits attached grease", bands=DEPOSIT_BANDS),
    _service("DER", "Deposits settled coarse", bands=DEPOSIT_BANDS, default_grade=3),
    _service("DES", "Deposits settled fine", bands=DEPOSIT_BANDS, default_grade=3),
    _service("WL", "Water level", bands=WATER_LEVEL_BANDS, default_grade=2),
    _service("OB", "Obstacle", default_grade=3),
    _service("OBZ", "Obstacle other"),
    _service("ID", "Infiltration dripping"),
    _service("IS", "Infiltration seeping"),
    _service("IR", "Infiltration running"),
    _service("IG", "Infiltration gushing"),
    _service("RI", "Root ingress", action=ROOT_CUT, banned=True, default_grade=3),
    _service("RF", "Roots fine", action=ROOT_CUT, banned=True),
    _service("RM", "Roots mass", action=ROOT_CUT, banned=True),
    _service("RT", "Roots tap", action=ROOT_CUT, banned=True),

    # Structural
    _structural("CR", "Crack", default_grade=2),
    _structural("CL", "Crack longitudinal"),
    _structural("CC", "Crack circumferential"),
    _structural("CM", "Crack multiple"),
    _structural("FC", "Fracture circumferential", banned=True, bands=FRACTURE_BANDS,
                default_grade=3),
    _structural("FL", "Fracture longitudinal", banned=True, bands=FRACTURE_BANDS,
                default_grade=3),
    _structural("FM", "Fracture multiple", banned=True, bands=FRACTURE_BANDS),
    _structural("B", "Broken", banned=True),
    _structural("H", "Hole"),
    _structural("X", "Collapse"),
    _structural("D", "Deformed", bands=DEFORMATION_BANDS),
    _structural("JDS", "Joint displaced small", default_grade=2),
    _structural("JDM", "Joint displaced medium"),
    _structural("JDL", "Joint displaced large", default_grade=4),
    _structural("OJM", "Open joint medium"),
    _structural("OJL", "Open joint large", banned=True),
    _structural("LL", "Line deviates left"),
    _structural("LR", "Line deviates right"),
    _structural("LU", "Line deviates up"),
    _structural("LD", "Line deviates down"),

    # Informational
    _neutral("JN", "Junction"),
    _neutral("CN", "Connection"),
    _neutral("MH", "Manhole / node"),
    _neutral("ST", "Start of survey"),
    _neutral("SA", "Survey abandoned"),
    _neutral("GP", "General photograph"),
    _neutral("REM", "General remark"),
    _neutral("OBI", "Obstruction noted, not graded"),
]


def _grade_value(spec: Dict, name: str) -> Optional[int]:
    value = spec.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    if value < MIN_GRADE or value > MAX_GRADE:
        raise ValueError(f"{name} {value} outside {MIN_GRADE}-{MAX_GRADE}")
    return value


def _action_value(spec: Dict, name: str, default: Optional[str]) -> Optional[str]:
    value = spec.get(name, default)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{name} must be text, got {value!r}")
    return value


def _bands_value(spec: Dict) -> Tuple[Tuple[int, int], ...]:
    bands = []
    for band in spec.get("percentage_bands") or []:
        threshold, grade = band
        if isinstance(threshold, bool) or not isinstance(threshold, int) \
                or isinstance(grade, bool) or not isinstance(grade, int):
            raise ValueError(f"percentage band {band!r} must be [percent, grade] numbers")
        if not 0 <= threshold <= 100 or not MIN_GRADE <= grade <= MAX_GRADE:
            raise ValueError(f"percentage band {band!r} out of range")
        bands.append((threshold, grade))
    return tuple(bands)


def _entry_from_dict(code: str, spec: Dict) -> RuleEntry:
    return RuleEntry(
        code=code,
        category=Category(str(spec.get("category", "neutral")).lower()),
        description=str(spec.get("description", "")),
        action_threshold=_grade_value(spec, "action_threshold"),
        escalation_threshold=_grade_value(spec, "escalation_threshold"),
        action=_action_value(spec, "action", REINSPECT) or REINSPECT,
        escalated_action=_action_value(spec, "escalated_action", None),
        banned_for_adoption=bool(spec.get("banned", False)),
        percentage_bands=_bands_value(spec),
        default_grade=_grade_value(spec, "default_grade"),
    )


class RuleTable:
    """Versioned MSCC5 code rules."""

    def __init__(self, entries: Iterable[RuleEntry], version: str = RULES_VERSION):
        self.version = version
        self.entries: Dict[str, RuleEntry] = {}
        for entry in entries:
            self.entries[entry.code.strip().upper()] = entry

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, code) -> bool:
        return self.is_known(code)

    def is_known(self, code: Optional[str]) -> bool:
        return bool(code) and code.strip().upper() in self.entries

    def lookup(self, code: Optional[str]) -> RuleEntry:
        """Rule for a code; unknown codes get a NEUTRAL/reinspect entry."""
        key = (code or "").strip().upper()
        entry = self.entries.get(key)
        if entry is None:
            return _neutral(key, "Unmapped code")
        return entry

    def category_of(self, code: Optional[str]) -> Category:
        return self.lookup(code).category

    def recommend(self, code: Optional[str], grade: Optional[int]) -> str:
        return self.lookup(code).recommend(grade)

    def is_banned(self, code: Optional[str]) -> bool:
        return self.lookup(code).banned_for_adoption

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RuleTable":
        """
        Load a rule table from YAML.

        Expected layout::

            version: MSCC5-2024.1
            codes:
              WL:
                category: service
                action_threshold: 2
                action: clean
                percentage_bands: [[50, 3], [20, 2], [6, 1]]
                default_grade: 2

        Raises:
            RuleTableError: If the file is missing, unparseable, empty or a rule
                has a wrongly typed or out-of-range value
        """
        path = Path(path)
        if not path.exists():
            raise RuleTableError(f"Rule table not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuleTableError(f"Rule table {path} is not valid YAML: {e}") from e

        if not isinstance(data, dict):
            raise RuleTableError(f"Rule table {path} must be a mapping with a 'codes' section")

        codes = data.get("codes") or {}
        if not isinstance(codes, dict) or not codes:
            raise RuleTableError(f"Rule table {path} defines no codes")

        entries = []
        for code, spec in codes.items():
            spec = spec or {}
            if not isinstance(spec, dict):
                raise RuleTableError(f"Invalid rule for code {code!r} in {path}: expected a mapping")
            try:
                entries.append(_entry_from_dict(str(code).strip().upper(), spec))
            except (ValueError, TypeError, AttributeError) as e:
                raise RuleTableError(f"Invalid rule for code {code!r} in {path}: {e}") from e

        version = str(data.get("version") or RULES_VERSION)
        logger.info(f"Loaded {len(entries)} rules ({version}) from {path}")
        return cls(entries, version=version)


DEFAULT_RULE_TABLE = RuleTable(_BUILTIN_ENTRIES)


def rules_version(table: Optional[RuleTable] = None) -> str:
    """Version string of the rule table in use, for audit logs."""
    return (table or DEFAULT_RULE_TABLE).version
