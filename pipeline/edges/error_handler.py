"""
Error Handling Edges
Conditional routing for fatal batch errors.
"""

import logging
from datetime import datetime
from typing import Literal

from ..state import SurveyState

logger = logging.getLogger(__name__)


def route_after_config(state: SurveyState) -> Literal["load", "fail"]:
    """
    Route after loading configuration.

    A rule table or pricing file that failed to load aborts the batch.

    Args:
        state: Current workflow state

    Returns:
        Next node: "load" or "fail"
    """
    if state.get("last_error") or state.get("rule_table") is None:
        logger.error(f"Configuration unusable, aborting batch: {state.get('last_error')}")
        return "fail"
    return "load"


def route_after_load(state: SurveyState) -> Literal["grade", "fail"]:
    """
    Route after reading sections.

    Decision logic:
    - Sections loaded: continue to grading
    - Unreadable input or zero sections: abort the batch

    Args:
        state: Current workflow state

    Returns:
        Next node: "grade" or "fail"
    """
    if state.get("last_error") or not state.get("sections"):
        logger.error(f"No sections to process, aborting batch: {state.get('last_error')}")
        return "fail"

    logger.debug(f"{len(state['sections'])} sections loaded, routing to grade")
    return "grade"


def mark_batch_failed(state: SurveyState) -> dict:
    """
    Mark the batch as aborted.

    No partial rows are kept: an aborted batch produces nothing.

    Args:
        state: Current workflow state

    Returns:
        State updates with failed flag set
    """
    last_error = state.get("last_error") or "Unknown error"
    logger.warning(f"Batch {state.get('upload_id')} aborted: {last_error}")

    return {
        "failed": True,
        "last_error": last_error,
        "rows": [],
        "end_time": datetime.now().isoformat(),
    }
