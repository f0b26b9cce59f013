"""
Sequencer / Gap Reporter

Item numbers come from the source survey and are never renumbered. When
sections were deleted from the source report the numbering has holes;
those are reported as a warning so reviewers know the report is still
complete.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Sequence

from .integrity import BatchWarning, WarningCategory, skipped_items_warning
from .models import PhysicalSection

logger = logging.getLogger(__name__)


@dataclass
class SequenceReport:
    """Item numbers in processing order plus any integrity warnings."""
    item_numbers: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    duplicates: List[int] = field(default_factory=list)
    warnings: List[BatchWarning] = field(default_factory=list)


def find_gaps(item_numbers: Sequence[int]) -> List[int]:
    """Integers in 1..max(item_numbers) that do not appear."""
    if not item_numbers:
        return []
    present = set(item_numbers)
    return [n for n in range(1, max(present) + 1) if n not in present]


def sequence_sections(sections: Sequence[PhysicalSection]) -> SequenceReport:
    """
    Order sections by sort_order and report numbering gaps.

    Args:
        sections: All sections of the upload

    Returns:
        SequenceReport with authentic item numbers in sort order
    """
    ordered = sorted(sections, key=lambda s: s.sort_order)
    item_numbers = [s.authentic_item_no for s in ordered]
    report = SequenceReport(item_numbers=item_numbers)

    report.skipped = find_gaps(item_numbers)
    if report.skipped:
        logger.warning(f"Missing items {report.skipped} - sections were deleted from original report")
        report.warnings.append(skipped_items_warning(report.skipped))

    report.duplicates = sorted(n for n, count in Counter(item_numbers).items() if count > 1)
    if report.duplicates:
        logger.warning(f"Duplicate item numbers: {report.duplicates}")
        report.warnings.append(BatchWarning(
            category=WarningCategory.SEQUENCE,
            message=f"duplicate item numbers: {report.duplicates}",
            details={"duplicates": report.duplicates},
        ))

    return report
