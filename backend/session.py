"""
CurriculumSession: one student's view of one catalog.

Owns the immutable graph, the mutable ProgressStore and the DelayAnalyzer,
and is the single entry point the presentation layer (server.py, scripts)
talks to.
"""

import json
from datetime import datetime, timezone

from config import (
    COLOR_THEME_KEY,
    COLOR_THEMES,
    DEFAULT_COLOR_THEME,
    DEFAULT_THEME_MODE,
    DELAY_CONFIG_KEY,
    SNAPSHOT_SCHEMA_VERSION,
    THEME_MODE_KEY,
    THEME_MODES,
    DelayConfig,
)
from curriculum_graph import build_graph
from data_loader import load_catalog
from delay_analyzer import DelayAnalyzer
from normalizer import normalize_text
from prereq_parser import build_prereq_check_string, parse_prereqs
from progress_store import ProgressStore
from storage import MemoryStorage
from unlocks import get_direct_unlocks
from validators import find_inconsistent_approvals, validate_snapshot


class CurriculumSession:
    def __init__(self, graph, storage=None, config: DelayConfig | None = None):
        self.graph = graph
        self.storage = storage if storage is not None else MemoryStorage()
        self._base_config = config or DelayConfig()
        self.store = ProgressStore(graph, self.storage)
        self.analyzer = DelayAnalyzer(
            graph,
            self.store,
            self._base_config.with_overrides(self._load_delay_overrides()),
        )

        issues = self.consistency_issues()
        if issues:
            print(
                f"[WARN] {len(issues)} saved approval(s) have unapproved prerequisites: "
                f"{[i['course_code'] for i in issues]}"
            )

    @classmethod
    def from_catalog(cls, data_path: str, storage=None, config: DelayConfig | None = None, verbose: bool = True):
        """Load the catalog at data_path, validate it and open a session over it."""
        graph = build_graph(load_catalog(data_path), verbose=verbose)
        return cls(graph, storage=storage, config=config)

    @property
    def config(self) -> DelayConfig:
        return self.analyzer.config

    # ── Catalog reads ─────────────────────────────────────────────────────────

    def list_courses(self) -> list[dict]:
        return [self._course_view(code) for code in self.graph.course_order]

    def areas(self) -> list[str]:
        return self.graph.areas()

    def semesters(self) -> list[dict]:
        return [
            {
                "semester": sem,
                "course_codes": self.graph.courses_in_semester(sem),
                "credits": sum(self.graph.courses[c].credits for c in self.graph.courses_in_semester(sem)),
                "ideal_cumulative_credits": self.graph.ideal_cumulative_at(sem),
            }
            for sem in self.graph.semesters()
        ]

    def _course_view(self, code: str) -> dict:
        view = self.graph.courses[code].to_dict()
        view["state"] = self.store.status(code)
        view["critical"] = self.analyzer.is_critical(code)
        return view

    def course_status(self, code: str) -> dict | None:
        """Everything a course card or tooltip shows. None for unknown codes."""
        course = self.graph.get(code)
        if course is None:
            return None
        approved = self.store.approved_codes
        prereqs = self.graph.prerequisites_of(code)
        parsed = {"type": "unsupported", "raw": ""} if course.manual_review else parse_prereqs(prereqs)
        missing = self.store.missing_prereqs(code)
        reverse_map = self.graph.dependents
        return {
            **course.to_dict(),
            "state": self.store.status(code),
            "approved": self.store.is_approved(code),
            "available": self.store.is_available(code),
            "critical": self.analyzer.is_critical(code),
            "critical_path_length": self.graph.critical_path_length(code),
            "prereq_check": build_prereq_check_string(parsed, approved),
            "missing_prereqs": [{"code": p, "title": self.graph.title_of(p)} for p in missing],
            "opens": [
                {"code": d, "title": self.graph.title_of(d)}
                for d in get_direct_unlocks(code, reverse_map)
            ],
        }

    def filter_courses(self, area: str | None = None, query: str = "", only_available: bool = False) -> dict[int, list[dict]]:
        """
        Courses grouped by semester, filtered by area, a search query and
        availability. The query matches title or code, ignoring case and
        accents ("calculo" finds "Cálculo I").
        """
        needle = normalize_text(query)
        area = (area or "").strip().lower()
        grouped: dict[int, list[dict]] = {}
        for sem in self.graph.semesters():
            for code in self.graph.courses_in_semester(sem):
                course = self.graph.courses[code]
                if area and area != "all" and course.area != area:
                    continue
                if needle and needle not in normalize_text(course.title) and needle not in normalize_text(code):
                    continue
                if only_available and (self.store.is_approved(code) or not self.store.is_available(code)):
                    continue
                grouped.setdefault(sem, []).append(self._course_view(code))
        return grouped

    # ── Progress and analysis reads ───────────────────────────────────────────

    @property
    def current_semester(self) -> int:
        return self.store.current_semester

    def approved_codes(self) -> list[str]:
        return self.store.approved_list()

    def credit_summary(self) -> dict:
        return self.store.credit_summary()

    def delay_metrics(self) -> dict:
        return self.analyzer.compute_delay_metrics()

    def critical_courses(self) -> list[dict]:
        return self.analyzer.identify_critical_courses()

    def recommendations(self) -> list[dict]:
        return self.analyzer.generate_recommendations()

    def area_progress(self) -> dict[str, dict]:
        return self.analyzer.analyze_progress_by_area()

    def blocked_sequences(self) -> list[dict]:
        return self.analyzer.analyze_blocked_sequences()

    def current_semester_breakdown(self) -> dict:
        return self.analyzer.current_semester_breakdown()

    def semester_load(self) -> dict:
        return self.analyzer.analyze_semester_load()

    def problems(self) -> list[dict]:
        return self.analyzer.identify_problems()

    def consistency_issues(self) -> list[dict]:
        return find_inconsistent_approvals(self.store.approved_codes, self.graph.prereqs)

    def analysis(self) -> dict:
        """Every analysis report in one payload."""
        return {
            "credit_summary": self.credit_summary(),
            "delay_metrics": self.delay_metrics(),
            "current_semester": self.current_semester_breakdown(),
            "critical_courses": self.critical_courses(),
            "recommendations": self.recommendations(),
            "blocked_sequences": self.blocked_sequences(),
            "area_progress": self.area_progress(),
            "semester_load": self.semester_load(),
            "problems": self.problems(),
        }

    # ── Writes ────────────────────────────────────────────────────────────────

    def approve(self, code: str) -> dict:
        return self.store.approve(code)

    def unapprove(self, code: str) -> list[str]:
        return self.store.unapprove(code)

    def set_current_semester(self, semester) -> int:
        return self.store.set_current_semester(semester)

    def reset(self) -> None:
        self.store.reset()

    # ── Snapshots ─────────────────────────────────────────────────────────────

    def export_snapshot(self) -> dict:
        return {
            "approvedCodes": self.store.approved_list(),
            "creditSummary": self.credit_summary(),
            "currentSemester": self.current_semester,
            "delayMetrics": self.delay_metrics(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "schemaVersion": SNAPSHOT_SCHEMA_VERSION,
        }

    def restore_snapshot(self, snapshot) -> dict:
        """
        Replace the session progress with an exported snapshot.

        Unknown codes are dropped; the rest are approved in prerequisite
        order so a snapshot missing a prerequisite cannot break the approval
        invariant. Returns {"ok": False, "error_code", "message"} on a
        malformed document.
        """
        cleaned, error_code, message = validate_snapshot(snapshot, self.graph.courses)
        if error_code:
            return {"ok": False, "error_code": error_code, "message": message}
        if cleaned["schema_version"] not in (None, SNAPSHOT_SCHEMA_VERSION):
            print(f"[WARN] Importing snapshot with schemaVersion {cleaned['schema_version']}")

        result = self.store.restore(cleaned["approved_codes"], cleaned["current_semester"])
        return {
            "ok": True,
            "restored": result["restored"],
            "skipped_unknown": cleaned["dropped_codes"] + result["skipped_unknown"],
            "skipped_prereqs_incomplete": result["skipped_prereqs_incomplete"],
            "current_semester": self.current_semester,
        }

    # ── Preferences ───────────────────────────────────────────────────────────

    def preferences(self) -> dict:
        theme_mode = self.storage.get_item(THEME_MODE_KEY)
        color_theme = self.storage.get_item(COLOR_THEME_KEY)
        return {
            "themeMode": theme_mode if theme_mode in THEME_MODES else DEFAULT_THEME_MODE,
            "colorTheme": color_theme if color_theme in COLOR_THEMES else DEFAULT_COLOR_THEME,
            "delayConfig": self.config.persisted_overrides(),
        }

    def set_theme_mode(self, mode: str) -> bool:
        if mode not in THEME_MODES:
            return False
        self.storage.set_item(THEME_MODE_KEY, mode)
        return True

    def set_color_theme(self, theme: str) -> bool:
        if theme not in COLOR_THEMES:
            return False
        self.storage.set_item(COLOR_THEME_KEY, theme)
        return True

    def _load_delay_overrides(self) -> dict:
        raw = self.storage.get_item(DELAY_CONFIG_KEY)
        if not raw:
            return {}
        try:
            overrides = json.loads(raw)
        except ValueError as exc:
            print(f"[WARN] Saved delay config is unreadable; using defaults: {exc}")
            return {}
        return overrides if isinstance(overrides, dict) else {}

    def update_delay_config(self, overrides: dict) -> DelayConfig:
        """Apply and persist delay thresholds; only the persisted subset is stored."""
        config = self.config.with_overrides(overrides)
        self.analyzer.set_config(config)
        self.storage.set_item(DELAY_CONFIG_KEY, json.dumps(config.persisted_overrides()))
        return config
