import math
import time

from config import (
    LOW_LOAD_FRACTION,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    DelayConfig,
)
from semester_recommender import build_recommendations, plan_next_semester
from timeline import estimate_timeline


def _percent(part: int, whole: int) -> int:
    """Half-up rounded percentage; 0 for an empty whole."""
    if whole <= 0:
        return 0
    return math.floor(100 * part / whole + 0.5)


class _TtlReportCache:
    """Per-report-name cache whose entries expire ttl_seconds after being set."""

    def __init__(self, ttl_seconds: float, clock=time.monotonic):
        self.ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock
        self._items: dict[str, tuple[float, object]] = {}

    def get(self, name: str):
        entry = self._items.get(name)
        if entry is None:
            return None
        stamp, value = entry
        if self._clock() - stamp >= self.ttl_seconds:
            self._items.pop(name, None)
            return None
        return value

    def set(self, name: str, value) -> None:
        self._items[name] = (self._clock(), value)

    def clear(self) -> None:
        self._items.clear()


class DelayAnalyzer:
    """
    Derived analysis over a graph + progress store: delay metrics, critical
    courses, blocked sequences, recommendations and per-area progress.

    Reports are cached per name for config.cache_ttl_seconds and dropped
    whenever the store mutates (the analyzer registers invalidate() as a
    store listener).
    """

    def __init__(self, graph, store, config: DelayConfig | None = None, clock=time.monotonic):
        self.graph = graph
        self.store = store
        self.config = config or DelayConfig()
        self._cache = _TtlReportCache(self.config.cache_ttl_seconds, clock=clock)
        store.add_listener(self.invalidate)

    def invalidate(self, approvals_changed: bool = True) -> None:
        self._cache.clear()

    def set_config(self, config: DelayConfig) -> None:
        self.config = config
        self._cache.ttl_seconds = max(0.0, float(config.cache_ttl_seconds))
        self.invalidate()

    def _cached(self, name: str, compute):
        value = self._cache.get(name)
        if value is None:
            value = compute()
            self._cache.set(name, value)
        return value

    # ── Delay metrics ─────────────────────────────────────────────────────────

    def compute_delay_metrics(self) -> dict:
        return self._cached("metrics", self._compute_delay_metrics)

    def _compute_delay_metrics(self) -> dict:
        graph = self.graph
        approved = self.store.credit_summary()["approved_credits"]
        real = self.store.current_semester
        ideal = graph.ideal_semester_for(approved)

        expected_ideal = graph.ideal_cumulative_at(ideal)
        expected_current = graph.ideal_cumulative_at(real)

        semester_delay = max(0, real - ideal)
        credit_deficit = max(0, expected_current - approved)
        adaptive_margin = max(self.config.delay_margin, real * 2)

        return {
            "ideal_semester": ideal,
            "real_semester": real,
            "semester_delay": semester_delay,
            "credit_deficit": credit_deficit,
            "approved_credits": approved,
            "expected_credits_ideal": expected_ideal,
            "expected_credits_current": expected_current,
            "adaptive_margin": adaptive_margin,
            "is_behind": semester_delay > 0 or credit_deficit > adaptive_margin,
            "timeline": estimate_timeline(
                graph.total_credits - approved,
                real,
                credits_per_term=self.config.credits_per_ideal_semester,
                total_semesters=self.config.total_semesters,
            ),
        }

    def current_semester_breakdown(self) -> dict:
        """Approved / available / blocked split of the courses declared for the current semester."""
        graph, store = self.graph, self.store
        semester = store.current_semester
        codes = graph.courses_in_semester(semester)

        approved, available, blocked, pending = [], [], [], []
        total_credits = approved_credits = 0
        for code in codes:
            course = graph.courses[code]
            total_credits += course.credits
            entry = {
                "course_code": code,
                "course_name": course.title,
                "credits": course.credits,
            }
            if store.is_approved(code):
                approved_credits += course.credits
                approved.append(entry)
                continue
            entry["critical"] = self.is_critical(code)
            if store.is_available(code):
                entry["available"] = True
                available.append(entry)
            else:
                entry["available"] = False
                entry["missing_prereqs"] = store.missing_prereqs(code)
                blocked.append(entry)
            pending.append(entry)

        return {
            "semester": semester,
            "course_count": len(codes),
            "total_credits": total_credits,
            "approved_count": len(approved),
            "approved_credits": approved_credits,
            "available_count": len(available),
            "blocked_count": len(blocked),
            "approved": approved,
            "available": available,
            "blocked": blocked,
            "pending": pending,
            "approved_percentage": _percent(len(approved), len(codes)),
            "credit_percentage": _percent(approved_credits, total_credits),
        }

    # ── Critical courses ──────────────────────────────────────────────────────

    def critical_threshold(self) -> int:
        unapproved = len(self.graph) - len(self.store.approved_codes)
        return max(
            self.config.critical_threshold_base,
            math.ceil(self.config.critical_threshold_fraction * unapproved),
        )

    def effective_dependents(self, code: str) -> list[str]:
        """Transitive dependents still to be approved; approved courses stop the walk."""
        return self.graph.all_dependents(code, include=lambda c: not self.store.is_approved(c))

    def identify_critical_courses(self) -> list[dict]:
        return self._cached("critical_courses", self._identify_critical_courses)

    def _identify_critical_courses(self) -> list[dict]:
        graph, store = self.graph, self.store
        threshold = self.critical_threshold()
        critical = []
        for code in graph.course_order:
            if store.is_approved(code):
                continue
            blocked_count = len(self.effective_dependents(code))
            if blocked_count < threshold:
                continue
            course = graph.courses[code]
            path_length = graph.critical_path_length(code)
            critical.append({
                "course_code": code,
                "course_name": course.title,
                "semester": course.semester,
                "credits": course.credits,
                "blocked_count": blocked_count,
                "available": store.is_available(code),
                "critical_path_length": path_length,
                "impact": blocked_count * (path_length + 1),
            })
        # sorted() is stable, so equal impact keeps catalog order.
        return sorted(critical, key=lambda c: -c["impact"])

    def is_critical(self, code: str) -> bool:
        return any(c["course_code"] == code for c in self.identify_critical_courses())

    # ── Blocked sequences ─────────────────────────────────────────────────────

    def _blocked_sequence_from(self, start: str, claimed: set[str]) -> list[str]:
        """Unapproved dependents reachable from start, skipping codes an earlier sequence claimed."""
        sequence: list[str] = []
        seen: set[str] = set(claimed)
        stack = [start]
        while stack:
            code = stack.pop()
            if code in seen:
                continue
            seen.add(code)
            sequence.append(code)
            for dep in self.graph.dependents_of(code):
                if dep not in seen and not self.store.is_approved(dep):
                    stack.append(dep)
        return sequence

    def analyze_blocked_sequences(self) -> list[dict]:
        return self._cached("blocked_sequences", self._analyze_blocked_sequences)

    def _analyze_blocked_sequences(self) -> list[dict]:
        visited: set[str] = set()
        sequences = []
        for code in self.graph.course_order:
            if self.store.is_approved(code) or code in visited:
                continue
            path = self._blocked_sequence_from(code, visited)
            if len(path) < 2:
                continue
            sequences.append({
                "start": path[0],
                "length": len(path),
                "path": path,
                "criticality": len(path) * 2,
            })
            visited.update(path)
        return sorted(sequences, key=lambda s: -s["criticality"])

    # ── Recommendations ───────────────────────────────────────────────────────

    def approved_load_by_semester(self) -> dict[int, int]:
        load = {}
        for sem in self.graph.semesters():
            load[sem] = sum(
                self.graph.courses[code].credits
                for code in self.graph.courses_in_semester(sem)
                if self.store.is_approved(code)
            )
        return load

    def next_semester_plan(self) -> dict | None:
        real = self.store.current_semester
        if real >= self.graph.max_semester:
            return None
        return plan_next_semester(
            self.graph,
            self.store,
            self.is_critical,
            real + 1,
            config=self.config,
        )

    def generate_recommendations(self) -> list[dict]:
        return self._cached("recommendations", self._generate_recommendations)

    def _generate_recommendations(self) -> list[dict]:
        return build_recommendations(
            self.compute_delay_metrics(),
            self.current_semester_breakdown(),
            self.identify_critical_courses(),
            self.next_semester_plan(),
            self.approved_load_by_semester(),
            config=self.config,
        )

    # ── Area and load summaries ───────────────────────────────────────────────

    def analyze_progress_by_area(self) -> dict[str, dict]:
        areas: dict[str, dict] = {}
        for course in self.graph.all_courses():
            area = areas.setdefault(course.area, {
                "course_count": 0,
                "approved_count": 0,
                "total_credits": 0,
                "approved_credits": 0,
                "courses": [],
            })
            approved = self.store.is_approved(course.code)
            area["course_count"] += 1
            area["total_credits"] += course.credits
            if approved:
                area["approved_count"] += 1
                area["approved_credits"] += course.credits
            area["courses"].append({
                "course_code": course.code,
                "course_name": course.title,
                "approved": approved,
                "credits": course.credits,
            })

        for area in areas.values():
            area["course_percentage"] = _percent(area["approved_count"], area["course_count"])
            area["credit_percentage"] = _percent(area["approved_credits"], area["total_credits"])
        return areas

    def analyze_semester_load(self) -> dict:
        by_semester = {}
        for sem in self.graph.semesters():
            codes = self.graph.courses_in_semester(sem)
            approved = [c for c in codes if self.store.is_approved(c)]
            by_semester[sem] = {
                "credits": sum(self.graph.courses[c].credits for c in codes),
                "course_count": len(codes),
                "approved_count": len(approved),
                "pending_count": len(codes) - len(approved),
                "approved_credits": sum(self.graph.courses[c].credits for c in approved),
            }
        loads = [s["credits"] for s in by_semester.values()]
        return {
            "by_semester": by_semester,
            "max_load": max(loads, default=0),
            "min_load": min(loads, default=0),
        }

    def identify_problems(self) -> list[dict]:
        """Flat list of {kind, message, details, priority} issues for a summary panel."""
        metrics = self.compute_delay_metrics()
        problems = []

        critical = self.identify_critical_courses()
        if critical:
            problems.append({
                "kind": "critical_courses",
                "message": f"You have {len(critical)} pending critical course(s)",
                "details": critical,
                "priority": PRIORITY_HIGH,
            })

        sequences = self.analyze_blocked_sequences()
        if sequences:
            problems.append({
                "kind": "blocked_sequences",
                "message": "Blocked course sequences detected",
                "details": sequences,
                "priority": PRIORITY_MEDIUM,
            })

        # Only semesters already behind the student count as under-loaded.
        low_limit = self.config.credits_per_ideal_semester * LOW_LOAD_FRACTION
        approved_load = self.approved_load_by_semester()
        low_semesters = [
            sem for sem, credits in approved_load.items()
            if sem < metrics["real_semester"] and credits < low_limit
        ]
        if low_semesters:
            problems.append({
                "kind": "low_load",
                "message": f"Low approved load in {len(low_semesters)} semester(s)",
                "details": low_semesters,
                "priority": PRIORITY_LOW,
            })

        delay = metrics["semester_delay"]
        if delay > 0:
            problems.append({
                "kind": "semester_delay",
                "message": f"You are {delay} semester(s) behind",
                "details": {
                    "ideal_semester": metrics["ideal_semester"],
                    "real_semester": metrics["real_semester"],
                },
                "priority": PRIORITY_HIGH if delay > 1 else PRIORITY_MEDIUM,
            })

        if metrics["credit_deficit"] > self.config.delay_margin:
            problems.append({
                "kind": "credit_deficit",
                "message": f"You have a deficit of {metrics['credit_deficit']} credits",
                "details": "Consider a heavier course load this semester",
                "priority": PRIORITY_MEDIUM,
            })

        return problems
