"""
Batch processing.

process_batch is the pure reprocessing entry point: the same sections,
rule table and pricing give the same rows and warnings every time. The
workflow nodes call the individual stages below so both paths share one
implementation.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from .classifier import classify_section
from .errors import EmptyBatchError, RuleTableError
from .integrity import BatchWarning, WarningCategory
from .models import BatchResult, DefectType, LogicalRow, PhysicalSection
from .pricing import DEFAULT_SECTOR, PricingProvider, price_rows
from .rule_table import DEFAULT_RULE_TABLE, REINSPECT, RuleTable
from .sequencer import sequence_sections
from .splitter import split_section

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


def _fallback_row(section: PhysicalSection, error: Exception) -> LogicalRow:
    return LogicalRow(
        item_no=section.authentic_item_no,
        letter_suffix=None,
        defect_type=DefectType.OBSERVATION,
        severity_grade=0,
        recommendation=REINSPECT,
        adoptable=False,
        start_node=section.start_node,
        end_node=section.end_node,
        pipe_size=section.pipe_size,
        pipe_material=section.pipe_material,
        total_length=section.total_length,
        defects=f"Could not be graded automatically: {error}",
    )


def grade_section(section: PhysicalSection,
                  rule_table: RuleTable) -> Tuple[List[LogicalRow], List[BatchWarning]]:
    """
    Classify and split one section.

    A failure here is contained to the section: it becomes a single
    "reinspect" row plus a warning instead of aborting the batch.
    """
    try:
        verdicts = classify_section(section, rule_table)
        return split_section(section, verdicts), []
    except Exception as e:
        logger.error(f"Item {section.authentic_item_no} failed to grade: {e}")
        return [_fallback_row(section, e)], [BatchWarning(
            category=WarningCategory.SECTION,
            message=f"Item {section.authentic_item_no}: grading failed ({e}), marked for reinspection",
            item_no=section.authentic_item_no,
        )]


def grade_sections(
    sections: Sequence[PhysicalSection],
    rule_table: RuleTable = DEFAULT_RULE_TABLE,
    parallel: bool = False,
    max_workers: int = DEFAULT_MAX_WORKERS
) -> Tuple[List[LogicalRow], List[BatchWarning]]:
    """
    Classify and split every section.

    Sections are independent, so with parallel=True they are graded on a
    thread pool. Results are collected in sort order either way.
    """
    ordered = sorted(sections, key=lambda s: s.sort_order)

    if parallel and len(ordered) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(lambda s: grade_section(s, rule_table), ordered))
    else:
        results = [grade_section(s, rule_table) for s in ordered]

    rows: List[LogicalRow] = []
    warnings: List[BatchWarning] = []
    for section_rows, section_warnings in results:
        rows.extend(section_rows)
        warnings.extend(section_warnings)

    logger.info(f"Graded {len(ordered)} sections into {len(rows)} rows")
    return rows, warnings


def check_batch_inputs(sections: Sequence[PhysicalSection],
                       rule_table: Optional[RuleTable]) -> None:
    """
    Raise for conditions that abort the whole batch.

    Raises:
        EmptyBatchError: No sections
        RuleTableError: No usable rule table
    """
    if not sections:
        raise EmptyBatchError("Upload contains no sections")
    if rule_table is None or len(rule_table) == 0:
        raise RuleTableError("No MSCC5 rule table loaded")


def process_batch(
    sections: Sequence[PhysicalSection],
    rule_table: RuleTable = DEFAULT_RULE_TABLE,
    pricing: Optional[PricingProvider] = None,
    sector: str = DEFAULT_SECTOR,
    upload_id: Optional[str] = None,
    parallel: bool = False,
    max_workers: int = DEFAULT_MAX_WORKERS
) -> BatchResult:
    """
    Grade, sequence and price a whole upload.

    Args:
        sections: Fully populated sections for one upload
        rule_table: MSCC5 rules
        pricing: Pricing provider, or None to leave costs empty
        sector: Sector used to select pricing
        upload_id: Identifier carried into the row keys
        parallel: Grade sections on a thread pool

    Returns:
        BatchResult with rows in report order and all warnings

    Raises:
        BatchAbortedError: Zero sections or no rule table
    """
    check_batch_inputs(sections, rule_table)

    rows, warnings = grade_sections(sections, rule_table, parallel, max_workers)

    # Sequencing needs every section, so it runs after grading completes
    sequence = sequence_sections(sections)
    warnings.extend(sequence.warnings)

    rows, pricing_warnings = price_rows(rows, pricing, sector)
    warnings.extend(pricing_warnings)

    return BatchResult(
        rows=rows,
        warnings=warnings,
        rules_version=rule_table.version,
        upload_id=upload_id,
        sector=sector,
    )
