import pytest
from unlocks import (
    build_reverse_prereq_map,
    collect_dependents,
    compute_chain_depths,
    get_direct_unlocks,
)


@pytest.fixture
def course_codes():
    return ["ING9001", "ING9002", "ING9003", "ING9004", "MAT1001", "MAT1002", "FIS1002"]


@pytest.fixture
def prereq_map():
    return {
        "ING9001": [],
        "ING9002": ["ING9001"],
        "ING9003": ["ING9002"],
        "ING9004": ["ING9003"],
        "MAT1001": [],
        "MAT1002": ["MAT1001"],
        "FIS1002": ["MAT1001", "MAT1002"],
    }


class TestBuildReversePrereqMap:
    def test_every_course_has_entry(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        assert set(reverse) == set(course_codes)

    def test_mat1001_unlocks_in_catalog_order(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        assert reverse["MAT1001"] == ["MAT1002", "FIS1002"]

    def test_exact_transpose(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        for code, prereqs in prereq_map.items():
            for p in prereqs:
                assert code in reverse[p]
        for code, deps in reverse.items():
            for d in deps:
                assert code in prereq_map[d]

    def test_unknown_prereq_ignored(self):
        reverse = build_reverse_prereq_map(["A1"], {"A1": ["ZZZ999"]})
        assert reverse == {"A1": []}


class TestComputeChainDepths:
    def test_linear_chain(self, course_codes, prereq_map):
        depths = compute_chain_depths(build_reverse_prereq_map(course_codes, prereq_map))
        assert depths["ING9001"] == 3
        assert depths["ING9003"] == 1
        assert depths["ING9004"] == 0

    def test_longest_branch_wins(self, course_codes, prereq_map):
        depths = compute_chain_depths(build_reverse_prereq_map(course_codes, prereq_map))
        # MAT1001 -> MAT1002 -> FIS1002 beats MAT1001 -> FIS1002
        assert depths["MAT1001"] == 2

    def test_cycle_terminates(self):
        reverse = {"A1": ["B1"], "B1": ["C1"], "C1": ["A1"]}
        depths = compute_chain_depths(reverse)
        assert set(depths) == {"A1", "B1", "C1"}

    def test_long_chain_no_recursion_limit(self):
        codes = [f"C{i}" for i in range(5000)]
        reverse = {codes[i]: [codes[i + 1]] for i in range(len(codes) - 1)}
        reverse[codes[-1]] = []
        assert compute_chain_depths(reverse)["C0"] == 4999


class TestCollectDependents:
    def test_transitive(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        assert set(collect_dependents("ING9001", reverse)) == {"ING9002", "ING9003", "ING9004"}

    def test_no_duplicates_on_diamond(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        deps = collect_dependents("MAT1001", reverse)
        assert sorted(deps) == ["FIS1002", "MAT1002"]

    def test_include_prunes_traversal(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        deps = collect_dependents("ING9001", reverse, include=lambda c: c != "ING9002")
        assert deps == []

    def test_cycle_terminates(self):
        reverse = {"A1": ["B1"], "B1": ["A1"]}
        assert collect_dependents("A1", reverse) == ["B1"]


class TestGetDirectUnlocks:
    def test_limit_applied(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        assert get_direct_unlocks("MAT1001", reverse, limit=1) == ["MAT1002"]

    def test_course_not_in_map(self, course_codes, prereq_map):
        reverse = build_reverse_prereq_map(course_codes, prereq_map)
        assert get_direct_unlocks("ICI9999", reverse) == []
