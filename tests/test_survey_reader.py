"""
Tests for the Survey Reader (CSV input feed)
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mscc5.errors import SurveyReadError
from mscc5.integrity import WarningCategory
from mscc5.models import Category
from mscc5.survey_reader import read_survey_csv

HEADER = ("sort_order,item_no,start_node,end_node,pipe_size,pipe_material,"
          "total_length,surveyed_length,code,distance,grade,remark,deleted\n")

SURVEY_CSV = HEADER + (
    "1,,MH1,MH2,150mm,Vitrified clay,33,33,WL,5.2,2,Water level 20%,\n"
    "2,,MH2,MH3,225,Concrete,34,34,LL,18.4m,3,Line deviates left,\n"
    "2,,MH2,MH3,225,Concrete,34,34,WL,2.0,2,,\n"
    "3,,MH3,MH4,150,PVC,20,20,DES,1.0,,Settled deposits 25%,yes\n"
    "4,,MH4,MH5,150,PVC,12,12,,,,,\n"
    "5,,MH5,MH6,150,PVC,15,15,ZX,3.0,1,Unknown code,\n"
)


@pytest.fixture
def survey_file(tmp_path):
    path = tmp_path / "GR7188.csv"
    path.write_text(SURVEY_CSV, encoding="utf-8")
    return path


class TestReadSurvey:
    """Grouping rows into sections."""

    def test_sections_grouped_by_sort_order(self, survey_file):
        sections, _ = read_survey_csv(survey_file)
        assert [s.sort_order for s in sections] == [1, 2, 4, 5]

    def test_deleted_section_dropped(self, survey_file):
        sections, _ = read_survey_csv(survey_file)
        assert 3 not in [s.authentic_item_no for s in sections]

    def test_section_fields(self, survey_file):
        first = read_survey_csv(survey_file)[0][0]
        assert first.start_node == "MH1"
        assert first.end_node == "MH2"
        assert first.pipe_size == 150
        assert first.pipe_material == "Vitrified clay"
        assert first.total_length == 33.0

    def test_observations_normalized(self, survey_file):
        sections, _ = read_survey_csv(survey_file)
        wl = sections[0].observations[0]
        assert wl.code == "WL"
        assert wl.category == Category.SERVICE
        assert wl.grade == 2
        assert wl.position == 5.2
        assert wl.percentage == 20

        ll, wl2 = sections[1].observations
        assert ll.category == Category.STRUCTURAL
        assert ll.position == 18.4
        assert wl2.position == 2.0

    def test_empty_code_row_gives_empty_section(self, survey_file):
        sections, _ = read_survey_csv(survey_file)
        assert sections[2].sort_order == 4
        assert sections[2].observations == ()

    def test_unknown_code_kept_as_neutral(self, survey_file):
        zx = read_survey_csv(survey_file)[0][3].observations[0]
        assert zx.category == Category.NEUTRAL
        assert zx.grade == 0

    def test_item_no_column(self, tmp_path):
        path = tmp_path / "survey.csv"
        path.write_text(HEADER + "1,10,A,B,150,PVC,5,5,WL,1,2,,\n", encoding="utf-8")
        section = read_survey_csv(path)[0][0]
        assert section.item_no == 10
        assert section.authentic_item_no == 10


class TestReadErrors:
    """Unusable input."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(SurveyReadError):
            read_survey_csv(tmp_path / "missing.csv")

    def test_header_only_gives_no_sections(self, tmp_path):
        path = tmp_path / "survey.csv"
        path.write_text(HEADER, encoding="utf-8")
        assert read_survey_csv(path) == ([], [])


class TestMalformedRows:
    """Bad rows are skipped without losing the rest of the upload."""

    def test_row_without_section_number_is_skipped(self, tmp_path):
        path = tmp_path / "survey.csv"
        path.write_text(HEADER + (
            "1,,MH1,MH2,150,PVC,10,10,WL,1.0,2,,\n"
            "2,,MH2,MH3,150,PVC,12,12,CR,3.0,3,,\n"
            ",,MH3,MH4,150,PVC,5,5,DES,1.0,2,,\n"
        ), encoding="utf-8")

        sections, warnings = read_survey_csv(path)

        assert [s.sort_order for s in sections] == [1, 2]
        assert len(warnings) == 1
        assert warnings[0].category == WarningCategory.DATA_SHAPE
        assert warnings[0].details == {"line": 4, "code": "DES"}

    def test_sort_order_zero_is_kept(self, tmp_path):
        path = tmp_path / "survey.csv"
        path.write_text(HEADER + "0,7,A,B,150,PVC,5,5,WL,1,2,,\n", encoding="utf-8")

        sections, warnings = read_survey_csv(path)

        assert sections[0].sort_order == 0
        assert sections[0].item_no == 7
        assert warnings == []

    def test_sector_reaches_normalizer(self, tmp_path):
        path = tmp_path / "survey.csv"
        path.write_text(HEADER + "1,,A,B,150,PVC,5,5,CR,1.0,,,\n", encoding="utf-8")

        utilities, _ = read_survey_csv(path)
        adoption, _ = read_survey_csv(path, sector="adoption")

        assert utilities[0].observations[0].grade == 2
        assert adoption[0].observations[0].grade == 3
