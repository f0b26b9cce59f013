"""
Section Splitter

Turns a section and its verdicts into report rows. A section with both
service and structural defects becomes two rows: item N (SERVICE) and
item Na (STRUCTURAL). Output depends only on the inputs, so splitting
the same section twice gives identical rows.
"""

from typing import List, Optional, Sequence

from .models import Category, DefectType, LogicalRow, PhysicalSection, SectionVerdict

STRUCTURAL_SUFFIX = "a"
NO_DEFECT_TEXT = "No service or structural defect found"


def _describe(observations) -> str:
    return ". ".join(o.describe() for o in observations)


def _row_text(verdict: SectionVerdict, neutral_text: str, first: bool) -> str:
    if verdict.category is DefectType.OBSERVATION:
        return neutral_text or NO_DEFECT_TEXT
    text = _describe(verdict.observations)
    if first and neutral_text:
        text = f"{text}. {neutral_text}" if text else neutral_text
    return text


def _build_row(section: PhysicalSection, verdict: SectionVerdict,
               suffix: Optional[str], defects: str) -> LogicalRow:
    return LogicalRow(
        item_no=section.authentic_item_no,
        letter_suffix=suffix,
        defect_type=verdict.category,
        severity_grade=verdict.grade,
        recommendation=verdict.recommendation,
        adoptable=verdict.adoptable,
        start_node=section.start_node,
        end_node=section.end_node,
        pipe_size=section.pipe_size,
        pipe_material=section.pipe_material,
        total_length=section.total_length,
        defects=defects,
        governing_code=verdict.governing_code,
        repair_count=verdict.repair_count,
        defect_positions=verdict.positions,
    )


def split_section(section: PhysicalSection,
                  verdicts: Sequence[SectionVerdict]) -> List[LogicalRow]:
    """
    Build the report rows for one section.

    Args:
        section: The physical section
        verdicts: Output of the classifier for that section

    Returns:
        One row, or two rows (service first, structural with suffix 'a')

    Raises:
        ValueError: If verdicts is empty or repeats a category
    """
    if not verdicts:
        raise ValueError(f"Item {section.authentic_item_no} has no verdicts")

    categories = [v.category for v in verdicts]
    if len(set(categories)) != len(categories):
        raise ValueError(f"Item {section.authentic_item_no} has duplicate verdict categories")

    neutral_text = _describe(o for o in section.observations if o.category is Category.NEUTRAL)

    if len(verdicts) == 1:
        verdict = verdicts[0]
        return [_build_row(section, verdict, None, _row_text(verdict, neutral_text, True))]

    by_type = {v.category: v for v in verdicts}
    service = by_type.get(DefectType.SERVICE)
    structural = by_type.get(DefectType.STRUCTURAL)
    if service is None or structural is None or len(verdicts) != 2:
        raise ValueError(
            f"Item {section.authentic_item_no}: cannot split verdicts {[c.value for c in categories]}"
        )

    return [
        _build_row(section, service, None, _row_text(service, neutral_text, True)),
        _build_row(section, structural, STRUCTURAL_SUFFIX, _row_text(structural, neutral_text, False)),
    ]
