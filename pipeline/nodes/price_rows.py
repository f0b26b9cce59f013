"""
Node 5: Pricing
Prices graded rows from the sector pricing configuration.
"""

import logging
from typing import Dict, Any

from mscc5.pricing import price_rows

from ..state import SurveyState

logger = logging.getLogger(__name__)


def price_rows_node(state: SurveyState) -> Dict[str, Any]:
    """
    Price every row.

    Rows that cannot be priced keep cost None with a status and a
    warning; pricing never fails the batch.

    Args:
        state: Current workflow state

    Returns:
        State updates with priced rows and warnings
    """
    rows = state.get("rows") or []
    sector = state.get("sector", "utilities")

    if not rows:
        logger.warning("No rows to price")
        return {"rows": []}

    priced, warnings = price_rows(rows, state.get("pricing"), sector)

    return {
        "rows": priced,
        "warnings": state.get("warnings", []) + warnings,
    }
