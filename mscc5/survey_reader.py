"""
Survey Reader - CSV input feed

Reads a flat export of normalized survey records (one row per
observation, section columns repeated on every row) into
PhysicalSection objects.

Columns:
    sort_order, item_no, start_node, end_node, pipe_size, pipe_material,
    total_length, surveyed_length, code, distance, grade, remark, deleted

A section with no observations is a row with an empty code. Sections
flagged as deleted are dropped; their item number shows up as a gap.
A row with neither sort_order nor item_no is skipped with a DATA_SHAPE
warning.
"""

import csv
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import SurveyReadError
from .integrity import BatchWarning, WarningCategory
from .models import PhysicalSection, RawObservation
from .normalizer import normalize_observation
from .rule_table import DEFAULT_RULE_TABLE, RuleTable

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "y", "x"}
NUMBER_PATTERN = re.compile(r'-?\d+(?:\.\d+)?')


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = NUMBER_PATTERN.search(str(value))
    if not match:
        return None
    return int(float(match.group(0)))


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    match = NUMBER_PATTERN.search(str(value))
    if not match:
        return None
    return float(match.group(0))


def _distance(value: Optional[str]) -> Union[str, float, None]:
    """Plain numbers are metres; anything else goes to the normalizer as text."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return text


def _section_key(row: Dict[str, str]) -> Optional[int]:
    key = _parse_int(row.get("sort_order"))
    if key is None:
        key = _parse_int(row.get("item_no"))
    return key


def _unplaced_row_warning(line_no: int, row: Dict[str, str]) -> BatchWarning:
    return BatchWarning(
        category=WarningCategory.DATA_SHAPE,
        message=f"Line {line_no}: row has no sort_order or item_no, skipped",
        details={"line": line_no, "code": row.get("code", "")},
    )


def read_survey_csv(
    csv_path: Union[str, Path],
    rule_table: RuleTable = DEFAULT_RULE_TABLE,
    sector: Optional[str] = None
) -> Tuple[List[PhysicalSection], List[BatchWarning]]:
    """
    Load sections from a survey CSV.

    Rows that cannot be placed in a section are skipped with a warning;
    the rest of the file is still read.

    Args:
        csv_path: Path to the CSV export
        rule_table: Rules used to normalize observation codes
        sector: Survey sector, passed to the normalizer for default grades

    Returns:
        Tuple of (sections ordered by sort_order, data warnings)

    Raises:
        SurveyReadError: If the file is missing or cannot be read
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise SurveyReadError(f"Survey file not found: {csv_path}")

    headers: Dict[int, Dict[str, str]] = {}
    observations: Dict[int, list] = {}
    deleted = set()
    warnings: List[BatchWarning] = []

    try:
        with open(csv_path, 'r', encoding='utf-8-sig', newline='') as f:
            reader = csv.DictReader(f)
            for line_no, row in enumerate(reader, start=2):
                row = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k}
                key = _section_key(row)
                if key is None:
                    logger.warning(f"Line {line_no}: no sort_order or item_no, skipping row")
                    warnings.append(_unplaced_row_warning(line_no, row))
                    continue

                if row.get("deleted", "").lower() in TRUTHY:
                    deleted.add(key)
                    continue

                headers.setdefault(key, row)
                observations.setdefault(key, [])
                if row.get("code"):
                    raw = RawObservation(
                        code=row.get("code"),
                        distance_text=_distance(row.get("distance")),
                        free_text=row.get("remark", ""),
                        grade=row.get("grade") or None,
                    )
                    observations[key].append(normalize_observation(raw, rule_table, sector))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise SurveyReadError(f"Could not read survey file {csv_path}: {e}") from e

    for key in sorted(deleted - set(headers)):
        logger.info(f"Section {key} marked deleted in source, skipping")

    sections = []
    for key in sorted(headers):
        head = headers[key]
        sections.append(PhysicalSection(
            sort_order=key,
            item_no=_parse_int(head.get("item_no")),
            start_node=head.get("start_node", ""),
            end_node=head.get("end_node", ""),
            pipe_size=_parse_int(head.get("pipe_size")),
            pipe_material=head.get("pipe_material", ""),
            total_length=_parse_float(head.get("total_length")),
            surveyed_length=_parse_float(head.get("surveyed_length")),
            observations=tuple(observations[key]),
        ))

    logger.info(f"Read {len(sections)} sections from {csv_path.name}")
    return sections, warnings
