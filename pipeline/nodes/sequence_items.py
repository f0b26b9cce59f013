"""
Node 4: Sequencing
Checks the authentic item numbering once every section has been graded.
"""

import logging
from typing import Dict, Any

from mscc5.sequencer import sequence_sections

from ..state import SurveyState

logger = logging.getLogger(__name__)


def sequence_items_node(state: SurveyState) -> Dict[str, Any]:
    """
    Report gaps and duplicates in the item numbering.

    Args:
        state: Current workflow state

    Returns:
        State updates with skipped_items and warnings
    """
    report = sequence_sections(state.get("sections") or [])

    if not report.skipped:
        logger.info(f"Item numbering complete 1-{max(report.item_numbers, default=0)}")

    return {
        "skipped_items": report.skipped,
        "warnings": state.get("warnings", []) + report.warnings,
    }
