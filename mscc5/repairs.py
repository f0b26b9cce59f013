"""
Patch repair counting.

Structural defects close together along the pipe are fixed by one patch.
Positions within PATCH_PROXIMITY_M of the previous defect share a patch.
"""

import re
from typing import Iterable, List, Optional

PATCH_PROXIMITY_M = 1.0          # Max gap between defects covered by one patch
REPAIR_COUNT_PATTERN = re.compile(r'(\d+)\s+(?:repair|patch)', re.IGNORECASE)


def group_by_proximity(positions: Iterable[float],
                       proximity: float = PATCH_PROXIMITY_M) -> List[List[float]]:
    """
    Group chainage positions into patch groups.

    >>> group_by_proximity([5.0, 1.2, 1.8, 9.0])
    [[1.2, 1.8], [5.0], [9.0]]
    """
    groups: List[List[float]] = []
    for position in sorted(positions):
        if groups and position - groups[-1][-1] <= proximity:
            groups[-1].append(position)
        else:
            groups.append([position])
    return groups


def count_repairs(positions: Iterable[float],
                  proximity: float = PATCH_PROXIMITY_M) -> int:
    """Number of patches needed for the given positions (at least 1)."""
    return max(1, len(group_by_proximity(positions, proximity)))


def extract_repair_count(
    recommendation: Optional[str],
    positions: Iterable[float] = (),
    proximity: float = PATCH_PROXIMITY_M
) -> int:
    """
    Repair count for rows without a structured count.

    Uses an explicit "N repairs"/"N patches" in the recommendation text
    first, then proximity grouping of the defect positions.
    """
    if recommendation:
        match = REPAIR_COUNT_PATTERN.search(recommendation)
        if match and int(match.group(1)) > 0:
            return int(match.group(1))
    return count_repairs(positions, proximity)
