"""
Classification Engine

Grades one section's observations into at most two verdicts: one for
SERVICE defects and one for STRUCTURAL defects. A section with neither
gets a single OBSERVATION verdict. NEUTRAL observations never drive a
verdict; they are kept for the row description only.
"""

import logging
from typing import List, Sequence

from .models import Category, DefectType, Observation, PhysicalSection, SectionVerdict
from .repairs import count_repairs
from .rule_table import ADOPTABLE_MAX_GRADE, DEFAULT_RULE_TABLE, NO_ACTION, RuleTable

logger = logging.getLogger(__name__)

# Verdict order is fixed: SERVICE row first, STRUCTURAL row gets the suffix
VERDICT_ORDER = (
    (Category.SERVICE, DefectType.SERVICE),
    (Category.STRUCTURAL, DefectType.STRUCTURAL),
)


def _governing_observation(partition: Sequence[Observation]) -> Observation:
    """
    Observation that sets the partition grade.

    Highest grade wins; ties go to the earliest known position, then to
    the observation recorded first.
    """
    indexed = list(enumerate(partition))
    best_grade = max(o.grade for o in partition)
    candidates = [(i, o) for i, o in indexed if o.grade == best_grade]
    candidates.sort(key=lambda pair: (
        pair[1].position is None,
        pair[1].position if pair[1].position is not None else 0.0,
        pair[0],
    ))
    return candidates[0][1]


def _verdict_for(partition: List[Observation], defect_type: DefectType,
                 rule_table: RuleTable) -> SectionVerdict:
    governing = _governing_observation(partition)
    grade = governing.grade
    banned = [o.code for o in partition if rule_table.is_banned(o.code)]
    adoptable = grade <= ADOPTABLE_MAX_GRADE and not banned

    repair_count = None
    if defect_type is DefectType.STRUCTURAL:
        repair_count = count_repairs(o.position for o in partition if o.position is not None)

    return SectionVerdict(
        category=defect_type,
        grade=grade,
        recommendation=rule_table.recommend(governing.code, grade),
        adoptable=adoptable,
        governing_code=governing.code,
        repair_count=repair_count,
        observations=tuple(partition),
    )


def classify_observations(
    observations: Sequence[Observation],
    rule_table: RuleTable = DEFAULT_RULE_TABLE
) -> List[SectionVerdict]:
    """
    Grade a section's observations.

    Args:
        observations: Validated observations for one section
        rule_table: Rules for recommendations and banned codes

    Returns:
        One or two verdicts (SERVICE before STRUCTURAL), or a single
        OBSERVATION verdict when nothing is gradeable
    """
    verdicts = []
    for category, defect_type in VERDICT_ORDER:
        partition = [o for o in observations if o.category is category]
        if partition:
            verdicts.append(_verdict_for(partition, defect_type, rule_table))

    if not verdicts:
        return [SectionVerdict(
            category=DefectType.OBSERVATION,
            grade=0,
            recommendation=NO_ACTION,
            adoptable=True,
            observations=tuple(observations),
        )]

    return verdicts


def classify_section(section: PhysicalSection,
                     rule_table: RuleTable = DEFAULT_RULE_TABLE) -> List[SectionVerdict]:
    verdicts = classify_observations(section.observations, rule_table)
    logger.debug(
        f"Item {section.authentic_item_no}: "
        + ", ".join(f"{v.category.value} grade {v.grade} -> {v.recommendation}" for v in verdicts)
    )
    return verdicts
