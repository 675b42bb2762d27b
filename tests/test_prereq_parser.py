import math

import pytest
from prereq_parser import (
    build_prereq_check_string,
    parse_prereqs,
    prereq_course_codes,
)


class TestParsePrereqs:
    @pytest.mark.parametrize("raw", [None, "none", "None", "", "n/a", math.nan])
    def test_none_values(self, raw):
        assert parse_prereqs(raw) == {"type": "none"}

    def test_single(self):
        assert parse_prereqs("MAT1001") == {"type": "single", "course": "MAT1001"}

    def test_single_is_normalized(self):
        assert parse_prereqs("mat 1001") == {"type": "single", "course": "MAT1001"}

    def test_semicolon_and(self):
        assert parse_prereqs("MAT1001; FIS1001") == {
            "type": "and",
            "courses": ["MAT1001", "FIS1001"],
        }

    def test_comma_and(self):
        assert parse_prereqs("MAT1001,FIS1001")["courses"] == ["MAT1001", "FIS1001"]

    def test_word_and(self):
        assert parse_prereqs("MAT1001 and FIS1001")["courses"] == ["MAT1001", "FIS1001"]

    def test_list_input(self):
        assert parse_prereqs(["MAT1001", "FIS1001"])["type"] == "and"

    def test_empty_list_is_none(self):
        assert parse_prereqs([]) == {"type": "none"}

    def test_duplicates_collapsed(self):
        assert parse_prereqs("MAT1001; mat1001") == {"type": "single", "course": "MAT1001"}

    def test_annotation_stripped(self):
        assert parse_prereqs("MAT1001 (may be concurrent)") == {"type": "single", "course": "MAT1001"}

    def test_or_is_unsupported(self):
        parsed = parse_prereqs("MAT1001 or FIS1001")
        assert parsed["type"] == "unsupported"
        assert parsed["raw"] == "MAT1001 or FIS1001"

    def test_free_text_is_unsupported(self):
        assert parse_prereqs("approval of the department")["type"] == "unsupported"


class TestPrereqHelpers:
    def test_codes_of_and(self):
        assert prereq_course_codes({"type": "and", "courses": ["A1", "B2"]}) == ["A1", "B2"]

    def test_codes_of_unsupported(self):
        assert prereq_course_codes({"type": "unsupported", "raw": "x"}) == []

    def test_check_string(self):
        parsed = parse_prereqs("MAT1001; FIS1001")
        assert build_prereq_check_string(parsed, {"MAT1001"}) == "MAT1001 ✓; FIS1001 ✗"

    def test_check_string_none(self):
        assert build_prereq_check_string({"type": "none"}, set()) == "No prerequisites"
