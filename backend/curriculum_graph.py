"""
Curriculum dependency graph.

Built once from the catalog and never mutated afterwards. Course code is
the node key everywhere; titles are only carried for display.
"""

from dataclasses import replace

from catalog import Course
from unlocks import build_reverse_prereq_map, collect_dependents, compute_chain_depths


# ── Integrity report ──────────────────────────────────────────────────────────

class CatalogReport:
    """Collects integrity errors and warnings found while building the graph."""

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.duplicate_codes: list[str] = []
        self.duplicate_titles: list[str] = []
        self.dangling_prereqs: list[dict] = []
        self.cycles: list[list[str]] = []

    def error(self, msg: str) -> None:
        self.errors.append(msg)

    def warn(self, msg: str) -> None:
        self.warnings.append(msg)

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        lines = [f"[{status}] Catalog integrity"]
        for e in self.errors:
            lines.append(f"  [ERROR] {e}")
        for w in self.warnings:
            lines.append(f"  [WARN]  {w}")
        if self.passed and not self.warnings:
            lines.append("  All checks passed.")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "duplicate_codes": list(self.duplicate_codes),
            "duplicate_titles": list(self.duplicate_titles),
            "dangling_prereqs": [dict(d) for d in self.dangling_prereqs],
            "cycles": [list(c) for c in self.cycles],
        }


def find_prereq_cycles(prereq_map: dict[str, list[str]]) -> list[list[str]]:
    """
    Detect prerequisite cycles with an iterative three-colour DFS.

    Returns each cycle once as a path that starts and ends on the same code,
    e.g. ["A", "B", "A"]. An empty list means the relation is a DAG.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    colour = {code: WHITE for code in prereq_map}
    cycles: list[list[str]] = []
    seen_cycles: set[frozenset] = set()

    for root in prereq_map:
        if colour[root] != WHITE:
            continue
        path: list[str] = [root]
        stack: list[tuple[str, int]] = [(root, 0)]
        colour[root] = GREY
        while stack:
            node, idx = stack[-1]
            edges = prereq_map.get(node, [])
            if idx < len(edges):
                stack[-1] = (node, idx + 1)
                nxt = edges[idx]
                if nxt not in colour:
                    continue
                if colour[nxt] == GREY:
                    cycle = path[path.index(nxt):] + [nxt]
                    key = frozenset(cycle)
                    if key not in seen_cycles:
                        seen_cycles.add(key)
                        cycles.append(cycle)
                elif colour[nxt] == WHITE:
                    colour[nxt] = GREY
                    path.append(nxt)
                    stack.append((nxt, 0))
                continue
            colour[node] = BLACK
            path.pop()
            stack.pop()

    return cycles


# ── Graph ─────────────────────────────────────────────────────────────────────

class CurriculumGraph:
    """
    Immutable-after-build view of the curriculum.

    Use build_graph() rather than constructing this directly; the
    constructor expects already-validated inputs.
    """

    def __init__(
        self,
        courses: dict[str, Course],
        prereqs: dict[str, list[str]],
        report: CatalogReport,
    ):
        self.courses = courses
        self.course_order = list(courses)
        self.report = report

        self.code_to_title = {code: c.title for code, c in courses.items()}
        self.title_to_code: dict[str, str] = {}
        for code, c in courses.items():
            self.title_to_code.setdefault(c.title, code)

        self.prereqs = prereqs
        self.dependents = build_reverse_prereq_map(self.course_order, prereqs)

        self.by_semester: dict[int, list[str]] = {}
        for code, c in courses.items():
            self.by_semester.setdefault(c.semester, []).append(code)

        self.max_semester = max((c.semester for c in courses.values()), default=0)
        self.total_credits = sum(c.credits for c in courses.values())

        self.ideal_cumulative_credits: dict[int, int] = {}
        running = 0
        for sem in range(1, self.max_semester + 1):
            running += sum(courses[code].credits for code in self.by_semester.get(sem, []))
            self.ideal_cumulative_credits[sem] = running

        self._chain_depths = compute_chain_depths(self.dependents)

    def __contains__(self, code) -> bool:
        return code in self.courses

    def __len__(self) -> int:
        return len(self.courses)

    def get(self, code: str) -> Course | None:
        return self.courses.get(code)

    def all_courses(self) -> list[Course]:
        return [self.courses[code] for code in self.course_order]

    def title_of(self, code: str) -> str:
        return self.code_to_title.get(code, code)

    def code_for_title(self, title: str) -> str | None:
        return self.title_to_code.get(title)

    def prerequisites_of(self, code: str) -> list[str]:
        return list(self.prereqs.get(code, []))

    def dependents_of(self, code: str) -> list[str]:
        return list(self.dependents.get(code, []))

    def courses_in_semester(self, semester: int) -> list[str]:
        return list(self.by_semester.get(semester, []))

    def semesters(self) -> list[int]:
        return list(range(1, self.max_semester + 1))

    def areas(self) -> list[str]:
        return list(dict.fromkeys(self.courses[code].area for code in self.course_order))

    def critical_path_length(self, code: str) -> int:
        """Longest chain of dependent hops reachable from code (0 for a leaf)."""
        return self._chain_depths.get(code, 0)

    def all_dependents(self, code: str, include=None) -> list[str]:
        """Transitive dependents of code; include filters and prunes the walk."""
        return collect_dependents(code, self.dependents, include=include)

    def missing_prereqs(self, code: str, approved_codes) -> list[str]:
        return [p for p in self.prereqs.get(code, []) if p not in approved_codes]

    def ideal_cumulative_at(self, semester: int) -> int:
        """Cumulative ideal credits at semester, saturating past the last semester."""
        if semester < 1:
            return 0
        if semester > self.max_semester:
            return self.total_credits
        return self.ideal_cumulative_credits.get(semester, 0)

    def ideal_semester_for(self, approved_credits: int) -> int:
        """
        Smallest semester whose cumulative ideal credits reach approved_credits.

        Scenario: cumulative {1: 10, 2: 22, 3: 34} and 15 approved credits → 2.
        Credits past the full-program total map to the last semester.
        """
        for sem in range(1, self.max_semester + 1):
            if approved_credits <= self.ideal_cumulative_credits[sem]:
                return sem
        return self.max_semester or 1


def build_graph(courses, verbose: bool = True) -> CurriculumGraph:
    """
    Validate the catalog and build the graph. Never raises on bad data.

    Duplicate codes keep the first declaration; dangling prerequisite codes
    are dropped; cycles are reported but left in place, and every traversal
    is guarded against them.
    """
    report = CatalogReport()
    by_code: dict[str, Course] = {}
    seen_titles: dict[str, str] = {}

    for course in courses:
        if course.code in by_code:
            if course.code not in report.duplicate_codes:
                report.duplicate_codes.append(course.code)
            report.error(f"Duplicate course code: {course.code} ('{course.title}' ignored)")
            continue
        if course.credits < 0:
            report.warn(f"Negative credits for {course.code}: {course.credits} (using 0)")
            course = replace(course, credits=0)
        if course.semester < 1:
            report.warn(f"Invalid semester for {course.code}: {course.semester} (using 1)")
            course = replace(course, semester=1)
        if course.title in seen_titles:
            report.duplicate_titles.append(course.title)
            report.warn(
                f"Duplicate course title '{course.title}' on {seen_titles[course.title]} and {course.code}"
            )
        else:
            seen_titles[course.title] = course.code
        by_code[course.code] = course

    prereqs: dict[str, list[str]] = {}
    for code, course in by_code.items():
        resolved: list[str] = []
        for p in course.prereq_codes:
            if p not in by_code:
                report.dangling_prereqs.append({"course": code, "prereq": p})
                report.error(f"Unknown prerequisite {p} for {code} (dropped)")
                continue
            if p == code:
                report.cycles.append([code, code])
                report.error(f"Course {code} lists itself as a prerequisite (dropped)")
                continue
            if p not in resolved:
                resolved.append(p)
        prereqs[code] = resolved

    for cycle in find_prereq_cycles(prereqs):
        report.cycles.append(cycle)
        report.error(f"Prerequisite cycle: {' -> '.join(cycle)}")

    if verbose:
        for e in report.errors:
            print(f"[WARN] {e}")
        for w in report.warnings:
            print(f"[WARN] {w}")

    return CurriculumGraph(by_code, prereqs, report)
