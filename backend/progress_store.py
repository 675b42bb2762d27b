import json
import math

from catalog import catalog_signature
from config import APPROVED_CODES_KEY, CATALOG_SIGNATURE_KEY, CURRENT_SEMESTER_KEY
from curriculum_graph import CurriculumGraph
from storage import MemoryStorage


def _parse_semester(raw, default: int = 1) -> int:
    try:
        return max(1, int(str(raw).strip()))
    except (TypeError, ValueError):
        return default


class ProgressStore:
    """
    The student's mutable session state: approved course codes and the
    self-declared current semester.

    Only approve / unapprove / set_current_semester / reset / restore mutate
    it. Every mutation invalidates the derived caches, persists, and then
    notifies listeners with approvals_changed=True/False.
    """

    def __init__(self, graph: CurriculumGraph, storage=None):
        self.graph = graph
        self.storage = storage if storage is not None else MemoryStorage()
        self.approved_codes: set[str] = set()
        self.current_semester = 1
        self._credit_cache: dict | None = None
        self._availability_cache: dict[str, bool] = {}
        self._listeners: list = []
        self._load()

    # ── Persistence ───────────────────────────────────────────────────────────

    def _load(self) -> None:
        signature = catalog_signature(self.graph.all_courses())
        stored_signature = self.storage.get_item(CATALOG_SIGNATURE_KEY)
        if stored_signature and stored_signature != signature:
            print("[INFO] Catalog changed since last session; clearing saved progress.")
            self.storage.remove_item(APPROVED_CODES_KEY)
            self.storage.remove_item(CURRENT_SEMESTER_KEY)
        self.storage.set_item(CATALOG_SIGNATURE_KEY, signature)

        raw_codes = self.storage.get_item(APPROVED_CODES_KEY)
        codes = []
        if raw_codes:
            try:
                parsed = json.loads(raw_codes)
            except ValueError as exc:
                print(f"[WARN] Saved approved courses are unreadable; starting empty: {exc}")
                parsed = []
            if isinstance(parsed, list):
                codes = [c for c in parsed if isinstance(c, str)]
        self.approved_codes = {c for c in codes if c in self.graph}

        raw_semester = self.storage.get_item(CURRENT_SEMESTER_KEY)
        self.current_semester = _parse_semester(raw_semester) if raw_semester else 1

        self._persist_approved()

    def _persist_approved(self) -> None:
        try:
            self.storage.set_item(APPROVED_CODES_KEY, json.dumps(self.approved_list()))
        except OSError as exc:
            print(f"[WARN] Could not persist approved courses: {exc}")

    def _persist_semester(self) -> None:
        try:
            self.storage.set_item(CURRENT_SEMESTER_KEY, str(self.current_semester))
        except OSError as exc:
            print(f"[WARN] Could not persist current semester: {exc}")

    # ── Cache invalidation ────────────────────────────────────────────────────

    def add_listener(self, callback) -> None:
        """callback(approvals_changed: bool) runs after every mutation."""
        self._listeners.append(callback)

    def _invalidate(self, approvals_changed: bool = True) -> None:
        if approvals_changed:
            self._credit_cache = None
            self._availability_cache.clear()
        for callback in self._listeners:
            callback(approvals_changed)

    # ── Queries ───────────────────────────────────────────────────────────────

    def is_approved(self, code: str) -> bool:
        return code in self.approved_codes

    def approved_list(self) -> list[str]:
        """Approved codes in catalog order."""
        return [code for code in self.graph.course_order if code in self.approved_codes]

    def is_available(self, code: str) -> bool:
        """
        True iff every direct prerequisite is approved. Unknown codes and
        courses flagged for manual review are never available.
        """
        cached = self._availability_cache.get(code)
        if cached is not None:
            return cached
        if code not in self.graph:
            return False
        available = self._prereqs_met(code, self.approved_codes)
        self._availability_cache[code] = available
        return available

    def _prereqs_met(self, code: str, approved: set[str]) -> bool:
        if self.graph.courses[code].manual_review:
            return False
        return all(p in approved for p in self.graph.prerequisites_of(code))

    def missing_prereqs(self, code: str) -> list[str]:
        return self.graph.missing_prereqs(code, self.approved_codes)

    def status(self, code: str) -> str:
        if self.is_approved(code):
            return "approved"
        if self.is_available(code):
            return "available"
        return "blocked"

    def credit_summary(self) -> dict:
        if self._credit_cache is not None:
            return dict(self._credit_cache)
        total = self.graph.total_credits
        approved = sum(self.graph.courses[c].credits for c in self.approved_codes)
        # Half-up rounding, so 0.5 never rounds to the even neighbour.
        percentage = math.floor(100 * approved / total + 0.5) if total > 0 else 0
        self._credit_cache = {
            "total_credits": total,
            "approved_credits": approved,
            "percentage": percentage,
        }
        return dict(self._credit_cache)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def approve(self, code: str) -> dict:
        """
        Approve a course whose direct prerequisites are all approved.

        Declines with error_code PREREQS_INCOMPLETE (and the missing codes)
        otherwise, and with MANUAL_REVIEW_REQUIRED when the course carries an
        unparseable prerequisite field. Approving an approved course is a
        successful no-op.
        """
        if code not in self.graph:
            return {
                "ok": False,
                "course_code": code,
                "error_code": "UNKNOWN_COURSE",
                "message": f"Course {code} is not in the catalog.",
            }
        if code in self.approved_codes:
            return {"ok": True, "course_code": code, "already_approved": True}
        if self.graph.courses[code].manual_review:
            return {
                "ok": False,
                "course_code": code,
                "error_code": "MANUAL_REVIEW_REQUIRED",
                "message": f"The prerequisites of {code} need manual review before it can be approved.",
            }
        if not self.is_available(code):
            return {
                "ok": False,
                "course_code": code,
                "error_code": "PREREQS_INCOMPLETE",
                "message": "Complete the prerequisites first.",
                "missing_prereqs": self.missing_prereqs(code),
            }

        self.approved_codes.add(code)
        self._persist_approved()
        self._invalidate(approvals_changed=True)
        return {"ok": True, "course_code": code, "already_approved": False}

    def unapprove(self, code: str) -> list[str]:
        """
        Unapprove code and every approved course in its transitive dependents.

        Returns the additionally removed codes (not including code itself).
        A course that is not approved is left alone and [] is returned.
        """
        if code not in self.approved_codes:
            return []
        cascaded = [d for d in self.graph.all_dependents(code) if d in self.approved_codes]
        self.approved_codes.discard(code)
        for dep in cascaded:
            self.approved_codes.discard(dep)
        self._persist_approved()
        self._invalidate(approvals_changed=True)
        return cascaded

    def set_current_semester(self, semester) -> int:
        self.current_semester = _parse_semester(semester, default=self.current_semester)
        self._persist_semester()
        self._invalidate(approvals_changed=False)
        return self.current_semester

    def reset(self) -> None:
        self.approved_codes = set()
        self.current_semester = 1
        self.storage.remove_item(APPROVED_CODES_KEY)
        self.storage.remove_item(CURRENT_SEMESTER_KEY)
        self._invalidate(approvals_changed=True)

    def restore(self, codes, current_semester=None) -> dict:
        """
        Replace the approved set with codes, applied in prerequisite order.

        Codes outside the catalog, and codes whose prerequisites are not in
        the restored set, are skipped and reported.
        """
        wanted = [c for c in dict.fromkeys(codes) if c in self.graph]
        unknown = [c for c in dict.fromkeys(codes) if c not in self.graph]
        approved: set[str] = set()
        pending = list(wanted)
        progressed = True
        while pending and progressed:
            progressed = False
            remaining = []
            for code in pending:
                if self._prereqs_met(code, approved):
                    approved.add(code)
                    progressed = True
                else:
                    remaining.append(code)
            pending = remaining

        self.approved_codes = approved
        if current_semester is not None:
            self.current_semester = _parse_semester(current_semester, default=self.current_semester)
        self._persist_approved()
        self._persist_semester()
        self._invalidate(approvals_changed=True)
        return {
            "restored": self.approved_list(),
            "skipped_unknown": unknown,
            "skipped_prereqs_incomplete": pending,
        }
