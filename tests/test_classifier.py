"""
Tests for the Classification Engine

Tests partitioning, max-grade selection, tie-breaks, adoptability and
the synthetic observation verdict.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mscc5.classifier import classify_observations, classify_section
from mscc5.models import DefectType, Observation, PhysicalSection
from mscc5.normalizer import normalize_observation
from mscc5.rule_table import DEFAULT_RULE_TABLE


def obs(code, grade=0, position=None, remark=""):
    return Observation(
        code=code,
        category=DEFAULT_RULE_TABLE.category_of(code),
        grade=grade,
        position=position,
        remark=remark,
    )


class TestSingleCategory:
    """Sections with one kind of defect."""

    def test_water_level_grade_two(self):
        """One SERVICE "WL" grade 2 -> clean, adoptable."""
        verdicts = classify_observations([obs("WL", 2, 5.2)])

        assert len(verdicts) == 1
        v = verdicts[0]
        assert v.category == DefectType.SERVICE
        assert v.grade == 2
        assert v.adoptable is True
        assert v.recommendation == "clean"
        assert v.governing_code == "WL"
        assert v.repair_count is None

    def test_grade_is_partition_max(self):
        verdicts = classify_observations([obs("CR", 2, 1.0), obs("FL", 4, 3.0), obs("JDM", 3, 6.0)])
        assert len(verdicts) == 1
        assert verdicts[0].grade == 4
        assert verdicts[0].governing_code == "FL"
        assert verdicts[0].recommendation == "liner"


class TestMixedSection:
    """Sections with both service and structural defects."""

    def test_line_deviation_and_water_level(self):
        """LL grade 3 + WL grade 2 -> service verdict then structural verdict."""
        verdicts = classify_observations([obs("LL", 3, 18.4), obs("WL", 2, 5.2)])

        assert [v.category for v in verdicts] == [DefectType.SERVICE, DefectType.STRUCTURAL]
        service, structural = verdicts
        assert service.grade == 2
        assert service.adoptable is True
        assert structural.grade == 3
        assert structural.adoptable is False
        assert structural.recommendation == "patch"

    def test_neutral_observations_do_not_create_verdicts(self):
        verdicts = classify_observations([obs("JN", 0, 2.0), obs("WL", 2, 5.0)])
        assert len(verdicts) == 1
        assert verdicts[0].category == DefectType.SERVICE


class TestTieBreak:
    """Recommendation code when several observations share the max grade."""

    def test_earliest_position_wins(self):
        verdicts = classify_observations([obs("RI", 3, 9.0), obs("DES", 3, 2.5)])
        assert verdicts[0].governing_code == "DES"
        assert verdicts[0].recommendation == "clean"

    def test_unknown_position_goes_last(self):
        verdicts = classify_observations([obs("RI", 3, None), obs("DES", 3, 12.0)])
        assert verdicts[0].governing_code == "DES"

    def test_input_order_when_no_positions(self):
        verdicts = classify_observations([obs("RI", 3), obs("DES", 3)])
        assert verdicts[0].governing_code == "RI"
        assert verdicts[0].recommendation == "root cut"


class TestAdoptability:
    """Grade threshold and banned codes."""

    @pytest.mark.parametrize("grade", [3, 4, 5])
    def test_grade_above_two_never_adoptable(self, grade):
        for code in ("WL", "CR", "DES", "JDM"):
            verdicts = classify_observations([obs(code, grade, 1.0)])
            assert verdicts[0].adoptable is False

    def test_banned_structural_code_at_low_grade(self):
        verdicts = classify_observations([obs("FC", 1, 4.0)])
        assert verdicts[0].grade == 1
        assert verdicts[0].adoptable is False

    def test_banned_service_code_at_low_grade(self):
        verdicts = classify_observations([obs("RF", 2, 4.0)])
        assert verdicts[0].adoptable is False

    def test_banned_code_only_affects_its_own_category(self):
        verdicts = classify_observations([obs("RI", 1, 1.0), obs("CR", 2, 3.0)])
        service, structural = verdicts
        assert service.adoptable is False
        assert structural.adoptable is True


class TestObservationVerdict:
    """Sections with nothing gradeable."""

    def test_empty_section(self):
        """Zero observations -> one OBSERVATION verdict."""
        verdicts = classify_observations([])

        assert len(verdicts) == 1
        v = verdicts[0]
        assert v.category == DefectType.OBSERVATION
        assert v.grade == 0
        assert v.recommendation == "no action required"
        assert v.adoptable is True

    def test_only_unknown_codes(self):
        zx = normalize_observation({"code": "ZX", "grade": 1})
        verdicts = classify_observations([zx])
        assert len(verdicts) == 1
        assert verdicts[0].category == DefectType.OBSERVATION


class TestRepairCount:
    """Structured patch counts on structural verdicts."""

    def test_proximity_groups(self):
        verdicts = classify_observations([
            obs("FC", 3, 1.2), obs("CR", 3, 1.8), obs("JDM", 3, 5.0),
        ])
        assert verdicts[0].repair_count == 2
        assert verdicts[0].positions == (1.2, 1.8, 5.0)

    def test_no_positions_counts_one(self):
        verdicts = classify_observations([obs("CR", 3), obs("FC", 3)])
        assert verdicts[0].repair_count == 1


class TestClassifySection:
    """classify_section wrapper."""

    def test_uses_section_observations(self):
        section = PhysicalSection(sort_order=4, observations=(obs("WL", 2, 5.2),))
        verdicts = classify_section(section)
        assert verdicts[0].category == DefectType.SERVICE

    def test_deterministic(self):
        section = PhysicalSection(
            sort_order=1,
            observations=(obs("LL", 3, 18.4), obs("WL", 2, 5.2), obs("JN", 0, 3.0)),
        )
        assert classify_section(section) == classify_section(section)
