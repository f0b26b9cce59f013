"""
Tests for batch processing

Tests the end-to-end pure reprocessing function: row order, warnings,
fatal errors, fault isolation and determinism.
"""

import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import mscc5.batch
from mscc5.batch import process_batch
from mscc5.errors import BatchAbortedError, EmptyBatchError, RuleTableError
from mscc5.integrity import WarningCategory
from mscc5.models import DefectType, Observation, PhysicalSection, PricingStatus, RawObservation
from mscc5.normalizer import normalize_observation
from mscc5.pricing import PricingConfig, PricingTier, StaticPricingProvider
from mscc5.rule_table import DEFAULT_RULE_TABLE, RuleTable


def obs(code, grade=0, position=None):
    return Observation(code=code, category=DEFAULT_RULE_TABLE.category_of(code),
                       grade=grade, position=position)


@pytest.fixture
def survey():
    """Survey of items 1-5 with item 3 deleted at source."""
    return [
        PhysicalSection(sort_order=1, start_node="MH1", end_node="MH2", pipe_size=225,
                        total_length=33.0, observations=(obs("WL", 2, 5.2),)),
        PhysicalSection(sort_order=2, start_node="MH2", end_node="MH3", pipe_size=225,
                        total_length=34.0, observations=(obs("LL", 3, 18.4), obs("WL", 2, 5.2))),
        PhysicalSection(sort_order=4, start_node="MH4", end_node="MH5", pipe_size=225,
                        total_length=12.0),
        PhysicalSection(sort_order=5, start_node="MH5", end_node="MH6", pipe_size=None,
                        total_length=20.0, observations=(obs("DES", 3, 2.0),)),
    ]


@pytest.fixture
def pricing():
    return StaticPricingProvider([
        PricingConfig(sector="utilities", category_id="cctv-jet-vac", tiers=(
            PricingTier(0, 33, Decimal("61.67"), 30, "A"),
            PricingTier(34, 66, Decimal("74.00"), 25, "B"),
        )),
        PricingConfig(sector="utilities", category_id="patching",
                      unit_cost=Decimal("350"), min_quantity=1),
    ])


class TestProcessBatch:
    """Full batch output."""

    def test_rows_in_report_order(self, survey, pricing):
        result = process_batch(survey, pricing=pricing, upload_id="GR7188")

        assert [r.item_label for r in result.rows] == ["1", "2", "2a", "4", "5"]
        assert [r.defect_type for r in result.rows] == [
            DefectType.SERVICE, DefectType.SERVICE, DefectType.STRUCTURAL,
            DefectType.OBSERVATION, DefectType.SERVICE,
        ]

    def test_costs(self, survey, pricing):
        rows = process_batch(survey, pricing=pricing).rows

        assert rows[0].cost == Decimal("67.84")
        assert rows[1].cost == Decimal("100.64")
        assert rows[2].cost == Decimal("350.00")      # One patch at 18.4m
        assert rows[3].cost is None
        assert rows[3].pricing_status == PricingStatus.NO_WORK
        assert rows[4].cost is None
        assert rows[4].pricing_status == PricingStatus.MISSING_DIMENSIONS

    def test_warnings(self, survey, pricing):
        warnings = process_batch(survey, pricing=pricing).warnings
        sequence = [w for w in warnings if w.category == WarningCategory.SEQUENCE]
        pricing_warnings = [w for w in warnings if w.category == WarningCategory.PRICING]

        assert len(sequence) == 1
        assert sequence[0].details == {"skipped": [3]}
        assert [w.item_no for w in pricing_warnings] == [5]

    def test_no_pricing(self, survey):
        result = process_batch(survey)
        assert all(r.cost is None for r in result.rows)
        assert len(result.rows) == 5

    def test_row_keys_unique(self, survey):
        keyed = process_batch(survey, upload_id="GR7188").keyed_rows()
        assert len(keyed) == 5
        assert ("GR7188", 2, None) in keyed
        assert ("GR7188", 2, "a") in keyed

    def test_rules_version_recorded(self, survey):
        assert process_batch(survey).rules_version == "MSCC5-2024.1"

    def test_summary(self, survey, pricing):
        summary = process_batch(survey, pricing=pricing).summary()
        assert summary["sections"] == 4
        assert summary["rows"] == 5
        assert summary["structural_rows"] == 1
        assert summary["not_adoptable"] == 2
        assert summary["total_cost"] == "518.48"


class TestDeterminism:
    """Reprocessing gives the same result."""

    def test_idempotent(self, survey, pricing):
        first = process_batch(survey, pricing=pricing, upload_id="U1")
        second = process_batch(survey, pricing=pricing, upload_id="U1")

        assert first.rows == second.rows
        assert first.to_dict() == second.to_dict()

    def test_parallel_matches_serial(self, survey, pricing):
        serial = process_batch(survey, pricing=pricing)
        parallel = process_batch(survey, pricing=pricing, parallel=True, max_workers=3)
        assert serial.rows == parallel.rows


class TestFatalErrors:
    """Conditions that abort a batch."""

    def test_empty_batch(self):
        with pytest.raises(EmptyBatchError):
            process_batch([])

    def test_empty_batch_is_batch_aborted(self):
        with pytest.raises(BatchAbortedError):
            process_batch([])

    def test_missing_rule_table(self, survey):
        with pytest.raises(RuleTableError):
            process_batch(survey, rule_table=None)

    def test_empty_rule_table(self, survey):
        with pytest.raises(RuleTableError):
            process_batch(survey, rule_table=RuleTable([]))


class TestFaultIsolation:
    """One broken section does not abort the batch."""

    def test_failing_section_becomes_reinspect_row(self, survey, monkeypatch):
        real_classify = mscc5.batch.classify_section

        def flaky_classify(section, rule_table):
            if section.sort_order == 2:
                raise ValueError("corrupt observation block")
            return real_classify(section, rule_table)

        monkeypatch.setattr(mscc5.batch, "classify_section", flaky_classify)
        result = process_batch(survey)

        assert [r.item_label for r in result.rows] == ["1", "2", "4", "5"]
        failed = result.rows[1]
        assert failed.recommendation == "reinspect"
        assert failed.adoptable is False
        section_warnings = [w for w in result.warnings if w.category == WarningCategory.SECTION]
        assert len(section_warnings) == 1
        assert section_warnings[0].item_no == 2


class TestUngradedObservations:
    """Structural defects recorded without a grade are still graded."""

    def _section(self, code, sector=None):
        observation = normalize_observation(RawObservation(code=code, distance_text="4.0m"),
                                            sector=sector)
        return PhysicalSection(sort_order=1, pipe_size=225, total_length=20.0,
                               observations=(observation,))

    def test_ungraded_large_joint_displacement_needs_liner(self):
        row = process_batch([self._section("JDL")]).rows[0]
        assert row.defect_type == DefectType.STRUCTURAL
        assert row.severity_grade == 4
        assert row.recommendation == "liner"
        assert row.adoptable is False

    def test_ungraded_fracture_is_patched(self):
        row = process_batch([self._section("FC")]).rows[0]
        assert row.severity_grade == 3
        assert row.recommendation == "patch"
        assert row.adoptable is False

    def test_ungraded_crack_in_adoption_survey_fails_adoption(self):
        row = process_batch([self._section("CR", sector="adoption")], sector="adoption").rows[0]
        assert row.defect_type == DefectType.STRUCTURAL
        assert row.severity_grade == 3
        assert row.recommendation == "patch"
        assert row.adoptable is False
