"""
Observation Normalizer

Turns raw survey records into validated Observation records. This is the
only place free text is parsed for chainage, percentages and grades.
Malformed input never raises: it is logged and degraded (unknown code ->
NEUTRAL grade 0, unreadable distance -> position None).

Grade precedence: recorded grade, then the code's percentage bands, then
the code's default grade, then 0. Adoption surveys lift a defaulted
structural grade to at least 3.
"""

import logging
import re
from typing import Any, Mapping, Optional, Union

from .models import Category, Observation, RawObservation
from .rule_table import (
    ADOPTION_SECTOR,
    ADOPTION_STRUCTURAL_FLOOR,
    DEFAULT_RULE_TABLE,
    MAX_GRADE,
    MIN_GRADE,
    RuleTable,
)

logger = logging.getLogger(__name__)


DISTANCE_PATTERN = re.compile(r'(-?\d+(?:\.\d+)?)\s*m\b', re.IGNORECASE)
PERCENT_PATTERN = re.compile(r'(\d+)\s*%')
GRADE_PATTERN = re.compile(r'(-?\d+)')


def parse_position(distance: Union[str, float, int, None]) -> Optional[float]:
    """
    Chainage in metres from a distance field.

    Accepts numbers or text like "12.5m" / "12.5 m". Anything else,
    including negative values, gives None.
    """
    if distance is None or isinstance(distance, bool):
        return None
    if isinstance(distance, (int, float)):
        value = float(distance)
    else:
        match = DISTANCE_PATTERN.search(str(distance))
        if not match:
            return None
        value = float(match.group(1))
    if value < 0:
        return None
    return value


def parse_percentage(text: Optional[str]) -> Optional[int]:
    """First integer percentage in free text, if it is 0-100."""
    if not text:
        return None
    match = PERCENT_PATTERN.search(text)
    if not match:
        return None
    value = int(match.group(1))
    if value > 100:
        return None
    return value


def parse_grade(grade: Union[str, int, None]) -> Optional[int]:
    """
    Recorded grade as an int, or None when absent.

    Raises ValueError for grades that are present but unusable so the
    caller can log them against the observation.
    """
    if grade is None or isinstance(grade, bool):
        return None
    if isinstance(grade, int):
        value = grade
    else:
        text = str(grade).strip()
        if not text:
            return None
        match = GRADE_PATTERN.search(text)
        if not match:
            raise ValueError(f"no grade in {grade!r}")
        value = int(match.group(1))
    if value < MIN_GRADE or value > MAX_GRADE:
        raise ValueError(f"grade {value} outside {MIN_GRADE}-{MAX_GRADE}")
    return value


def _default_grade(entry, sector: Optional[str]) -> int:
    grade = entry.default_grade or 0
    if (sector or "").strip().lower() == ADOPTION_SECTOR and entry.category is Category.STRUCTURAL:
        grade = max(grade, ADOPTION_STRUCTURAL_FLOOR)
    if grade:
        logger.debug(f"{entry.code}: no grade recorded, using default {grade}")
    return grade


def normalize_observation(
    raw: Union[RawObservation, Mapping[str, Any]],
    rule_table: RuleTable = DEFAULT_RULE_TABLE,
    sector: Optional[str] = None
) -> Observation:
    """
    Validate one raw observation.

    Args:
        raw: RawObservation or a mapping with code/distance/remark/grade keys
        rule_table: Rules used to categorise the code and derive grades
        sector: Survey sector; "adoption" applies the stricter structural default

    Returns:
        Observation (never raises for bad data)
    """
    if not isinstance(raw, RawObservation):
        raw = RawObservation(
            code=raw.get("code"),
            distance_text=raw.get("distance", raw.get("distance_text")),
            free_text=raw.get("remark", raw.get("free_text")) or "",
            grade=raw.get("grade"),
        )

    code = (raw.code or "").strip().upper()
    free_text = (raw.free_text or "").strip()
    position = parse_position(raw.distance_text)
    percentage = parse_percentage(free_text)

    if raw.distance_text not in (None, "") and position is None:
        logger.warning(f"Unreadable distance {raw.distance_text!r} for code {code or '<empty>'}")

    if not code or not rule_table.is_known(code):
        logger.warning(f"Unknown MSCC5 code {code or '<empty>'!s}, treating as neutral")
        return Observation(
            code=code,
            category=Category.NEUTRAL,
            grade=0,
            position=position,
            percentage=percentage,
            remark=free_text,
        )

    entry = rule_table.lookup(code)

    try:
        grade = parse_grade(raw.grade)
    except ValueError as e:
        logger.warning(f"Invalid grade for {code}: {e}; using 0")
        grade = 0

    if grade is None:
        grade = entry.grade_for_percentage(percentage)
        if grade is not None:
            logger.debug(f"{code}: grade {grade} derived from {percentage}%")

    if grade is None:
        grade = _default_grade(entry, sector)

    return Observation(
        code=code,
        category=entry.category,
        grade=grade,
        position=position,
        percentage=percentage,
        remark=free_text,
    )
