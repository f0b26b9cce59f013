"""
Workflow State Schema for the Survey Grading Agent
Defines the state that flows through the LangGraph workflow.
"""

from typing import TypedDict, List, Optional, Dict, Any
from datetime import datetime
from pathlib import Path


class SurveyState(TypedDict):
    """
    State schema for the survey grading workflow.

    One run processes one upload. Each node reads from and writes
    partial updates to this state.
    """

    # ========================
    # Input Configuration
    # ========================
    input_path: str                    # Survey CSV export
    output_path: str                   # Output directory for reports
    pricing_config_path: str           # Pricing YAML ("" = no pricing)
    rules_path: str                    # Optional rule table YAML ("" = built-in)
    sector: str                        # Sector used to select pricing
    upload_id: str                     # Identifier for this upload
    parallel: bool                     # Grade sections on a thread pool

    # ========================
    # Batch Data
    # ========================
    sections: Optional[List[Any]]      # PhysicalSection list from load_sections
    rows: Optional[List[Any]]          # LogicalRow list (graded, then priced)
    warnings: List[Any]                # BatchWarning list, appended by each node
    rule_table: Optional[Any]          # RuleTable from load_config
    pricing: Optional[Any]             # PricingProvider from load_config (None = unpriced)
    rules_version: Optional[str]       # Version of the rule table used
    skipped_items: List[int]           # Gaps in the authentic numbering

    # ========================
    # Output
    # ========================
    report_path: Optional[str]         # Path to generated JSON report
    csv_path: Optional[str]            # Path to generated CSV report
    summary: Optional[Dict]            # Batch summary data

    # ========================
    # Error Handling
    # ========================
    last_error: Optional[str]          # Most recent fatal error message
    failed: bool                       # Batch aborted

    # ========================
    # Timing
    # ========================
    start_time: Optional[str]          # ISO timestamp when run started
    end_time: Optional[str]            # ISO timestamp when run completed


def create_initial_state(
    input_path: str,
    output_path: str,
    pricing_config_path: str = None,
    rules_path: str = None,
    sector: str = "utilities",
    upload_id: str = None,
    parallel: bool = False
) -> SurveyState:
    """
    Create initial state for a new workflow run.

    Args:
        input_path: Survey CSV to process
        output_path: Directory for output reports
        pricing_config_path: Pricing YAML, or None to leave costs empty
        rules_path: Rule table YAML, or None for the built-in table
        sector: Sector used to select pricing
        upload_id: Upload identifier (defaults to the input file stem)
        parallel: Grade sections on a thread pool

    Returns:
        Initialized SurveyState
    """
    return SurveyState(
        # Input
        input_path=input_path,
        output_path=output_path,
        pricing_config_path=pricing_config_path or "",
        rules_path=rules_path or "",
        sector=sector,
        upload_id=upload_id or Path(input_path).stem,
        parallel=parallel,

        # Batch data
        sections=None,
        rows=None,
        warnings=[],
        rule_table=None,
        pricing=None,
        rules_version=None,
        skipped_items=[],

        # Output
        report_path=None,
        csv_path=None,
        summary=None,

        # Error handling
        last_error=None,
        failed=False,

        # Timing
        start_time=datetime.now().isoformat(),
        end_time=None,
    )


def get_state_summary(state: SurveyState) -> Dict[str, Any]:
    """
    Get a summary of current state for logging/debugging.
    """
    return {
        "upload_id": state.get("upload_id"),
        "sections": len(state.get("sections") or []),
        "rows": len(state.get("rows") or []),
        "warnings": len(state.get("warnings") or []),
        "skipped_items": state.get("skipped_items", []),
        "last_error": state.get("last_error"),
        "failed": state.get("failed", False),
    }
