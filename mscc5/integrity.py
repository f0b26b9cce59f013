"""
Batch warnings.

Non-fatal problems found while processing an upload. The batch always
completes; these travel alongside the rows so reviewers can see what
needs attention (skipped items, rows that could not be priced, etc.).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class WarningSeverity(Enum):
    """Severity levels for batch warnings."""
    WARNING = "warning"     # Needs a reviewer
    INFO = "info"           # Informational only


class WarningCategory(Enum):
    """What part of the batch raised the warning."""
    SEQUENCE = "sequence"
    PRICING = "pricing"
    SECTION = "section"
    DATA_SHAPE = "data_shape"


@dataclass
class BatchWarning:
    """A single batch warning."""
    category: WarningCategory
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING
    item_no: Optional[int] = None
    letter_suffix: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "item_no": self.item_no,
            "letter_suffix": self.letter_suffix,
            "details": self.details,
        }


def skipped_items_warning(skipped: List[int]) -> BatchWarning:
    return BatchWarning(
        category=WarningCategory.SEQUENCE,
        message=f"items skipped due to source deletion: {skipped}",
        details={"skipped": list(skipped)},
    )


def count_by_category(warnings: List[BatchWarning]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for w in warnings:
        counts[w.category.value] = counts.get(w.category.value, 0) + 1
    return counts
