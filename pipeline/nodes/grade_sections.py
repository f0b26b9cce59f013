"""
Node 3: Classification & Splitting
Grades every section against the MSCC5 rules and splits mixed sections
into service and structural rows.
"""

import logging
from typing import Dict, Any

from mscc5.batch import grade_sections
from mscc5.rule_table import DEFAULT_RULE_TABLE

from ..state import SurveyState

logger = logging.getLogger(__name__)


def grade_sections_node(state: SurveyState) -> Dict[str, Any]:
    """
    Classify and split all sections.

    Per-section failures are contained by grade_sections and come back
    as warnings; nothing here aborts the batch.

    Args:
        state: Current workflow state

    Returns:
        State updates with rows and warnings
    """
    sections = state.get("sections") or []
    rule_table = state.get("rule_table") or DEFAULT_RULE_TABLE
    parallel = state.get("parallel", False)

    rows, warnings = grade_sections(sections, rule_table, parallel=parallel)

    split_count = sum(1 for r in rows if r.letter_suffix)
    logger.info(f"{len(rows)} rows from {len(sections)} sections ({split_count} split)")

    return {
        "rows": rows,
        "warnings": state.get("warnings", []) + warnings,
    }
