"""
Tests for the Observation Normalizer

Tests code cleanup, chainage/percentage parsing and grade handling.
"""

import logging
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mscc5.models import Category, RawObservation
from mscc5.normalizer import (
    normalize_observation, parse_position, parse_percentage, parse_grade
)


class TestParsePosition:
    """Tests for chainage parsing."""

    def test_metres_suffix(self):
        assert parse_position("5.2m") == 5.2

    def test_metres_with_space(self):
        assert parse_position("18.4 m") == 18.4

    def test_numeric_input(self):
        assert parse_position(12) == 12.0
        assert parse_position(0.5) == 0.5

    def test_unparseable_is_none(self):
        """Bad distance text is not an error."""
        assert parse_position("near the manhole") is None
        assert parse_position("") is None
        assert parse_position(None) is None

    def test_negative_is_none(self):
        assert parse_position("-3m") is None
        assert parse_position(-1.0) is None


class TestParsePercentage:
    """Tests for percentage extraction from free text."""

    def test_single_percentage(self):
        assert parse_percentage("Water level 25% of diameter") == 25

    def test_first_match_wins(self):
        assert parse_percentage("Deposits 10% rising to 30%") == 10

    def test_no_percentage(self):
        assert parse_percentage("Crack at joint") is None
        assert parse_percentage("") is None

    def test_over_100_rejected(self):
        assert parse_percentage("150% loss") is None


class TestParseGrade:
    """Tests for recorded grade parsing."""

    def test_int_grade(self):
        assert parse_grade(3) == 3

    def test_text_grade(self):
        assert parse_grade("Grade 4") == 4
        assert parse_grade("2") == 2

    def test_absent_grade(self):
        assert parse_grade(None) is None
        assert parse_grade("  ") is None

    def test_out_of_range_raises(self):
        with pytest.raises(ValueError):
            parse_grade(9)

    def test_text_without_digit_raises(self):
        with pytest.raises(ValueError):
            parse_grade("severe")


class TestNormalizeObservation:
    """Tests for the full normalization step."""

    def test_code_is_trimmed_and_upper_cased(self):
        obs = normalize_observation(RawObservation(code="  wl ", distance_text="5.2m", grade=2))
        assert obs.code == "WL"
        assert obs.category == Category.SERVICE
        assert obs.grade == 2
        assert obs.position == 5.2

    def test_structural_code(self):
        obs = normalize_observation(RawObservation(code="FC", distance_text="3.1m", grade="4"))
        assert obs.category == Category.STRUCTURAL
        assert obs.grade == 4

    def test_unknown_code_is_neutral_grade_zero(self):
        obs = normalize_observation(RawObservation(code="ZX", grade=1))
        assert obs.code == "ZX"
        assert obs.category == Category.NEUTRAL
        assert obs.grade == 0

    def test_empty_code_is_neutral(self):
        obs = normalize_observation(RawObservation(code="", free_text="General remark"))
        assert obs.category == Category.NEUTRAL
        assert obs.grade == 0
        assert obs.remark == "General remark"

    def test_unknown_code_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            normalize_observation(RawObservation(code="ZX"))
        assert "Unknown MSCC5 code ZX" in caplog.text

    def test_invalid_grade_degrades_to_zero(self):
        obs = normalize_observation(RawObservation(code="WL", grade=7))
        assert obs.category == Category.SERVICE
        assert obs.grade == 0

    def test_grade_derived_from_percentage(self):
        """Without a recorded grade, percentage bands set the grade."""
        obs = normalize_observation(RawObservation(code="WL", free_text="Water level 30%"))
        assert obs.percentage == 30
        assert obs.grade == 2

        obs = normalize_observation(RawObservation(code="DES", free_text="Settled deposits 45%"))
        assert obs.grade == 4

    def test_recorded_grade_wins_over_percentage(self):
        obs = normalize_observation(RawObservation(code="WL", free_text="Water level 60%", grade=1))
        assert obs.grade == 1

    def test_no_grade_no_bands_no_default_is_zero(self):
        obs = normalize_observation(RawObservation(code="CL", free_text="Crack 20%"))
        assert obs.grade == 0

    def test_default_grade_when_nothing_recorded(self):
        """Ungraded structural codes take the code's default grade."""
        assert normalize_observation(RawObservation(code="JDL", distance_text="4.0m")).grade == 4
        assert normalize_observation(RawObservation(code="FC", distance_text="4.0m")).grade == 3
        assert normalize_observation(RawObservation(code="CR", distance_text="4.0m")).grade == 2

    def test_percentage_band_wins_over_default(self):
        obs = normalize_observation(RawObservation(code="DES", free_text="Settled deposits 10%"))
        assert obs.grade == 2

    def test_percentage_below_every_band_is_zero(self):
        obs = normalize_observation(RawObservation(code="WL", free_text="Water level 3%"))
        assert obs.grade == 0

    def test_recorded_grade_wins_over_default(self):
        obs = normalize_observation(RawObservation(code="JDL", grade=1))
        assert obs.grade == 1

    def test_adoption_sector_lifts_ungraded_structural(self):
        obs = normalize_observation(RawObservation(code="CR"), sector="adoption")
        assert obs.grade == 3
        obs = normalize_observation(RawObservation(code="CL"), sector="Adoption")
        assert obs.grade == 3
        obs = normalize_observation(RawObservation(code="JDL"), sector="adoption")
        assert obs.grade == 4

    def test_adoption_sector_keeps_recorded_and_service_grades(self):
        assert normalize_observation(RawObservation(code="CR", grade=1), sector="adoption").grade == 1
        assert normalize_observation(RawObservation(code="WL"), sector="adoption").grade == 2
        assert normalize_observation(RawObservation(code="CR"), sector="utilities").grade == 2

    def test_mapping_input(self):
        obs = normalize_observation({
            "code": "jdl", "distance": "7.0m", "grade": 4, "remark": "Joint displaced"
        })
        assert obs.code == "JDL"
        assert obs.category == Category.STRUCTURAL
        assert obs.position == 7.0
        assert obs.remark == "Joint displaced"
