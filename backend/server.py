import os
import sys
import time
import threading

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from config import DelayConfig, _env_float, _env_int
from normalizer import normalize_code
from session import CurriculumSession
from storage import JsonFileStorage, MemoryStorage
from validators import (
    validate_code_body,
    validate_preferences_body,
    validate_semester_body,
)

load_dotenv()

app = Flask(__name__)

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_CATALOG_PATH = os.path.join(PROJECT_ROOT, "data", "courses.csv")


def _resolve_path(raw: str | None, default: str | None) -> str | None:
    if not raw:
        return default
    if not os.path.isabs(raw):
        return os.path.join(PROJECT_ROOT, raw)
    return raw


CATALOG_PATH = _resolve_path(os.environ.get("CATALOG_PATH"), _DEFAULT_CATALOG_PATH)
STATE_PATH = _resolve_path(os.environ.get("STATE_PATH"), None)

_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)

# Serialises every session read, mutation and catalog reload.
_session_lock = threading.Lock()
_catalog_mtime = None

_ERROR_STATUS = {
    "INVALID_INPUT": 400,
    "INVALID_CODE": 400,
    "INVALID_SNAPSHOT": 400,
    "UNKNOWN_COURSE": 404,
    "NOT_FOUND": 404,
    "PREREQS_INCOMPLETE": 409,
    "MANUAL_REVIEW_REQUIRED": 409,
}


def _catalog_file_mtime(path: str):
    try:
        if os.path.isdir(path):
            return os.path.getmtime(os.path.join(path, "courses.csv"))
        return os.path.getmtime(path)
    except OSError:
        return None


def _open_storage():
    if not STATE_PATH:
        print("[INFO] STATE_PATH not set; progress is kept in memory only.")
        return MemoryStorage()
    return JsonFileStorage(STATE_PATH)


# ── Startup catalog load ───────────────────────────────────────────────────────
try:
    _storage = _open_storage()
    _session = CurriculumSession.from_catalog(CATALOG_PATH, storage=_storage, config=DelayConfig.from_env())
    _catalog_mtime = _catalog_file_mtime(CATALOG_PATH)
    print(f"[OK] Loaded {len(_session.graph)} courses from {CATALOG_PATH}")
except FileNotFoundError:
    print(f"[FATAL] Catalog file not found: {CATALOG_PATH}", file=sys.stderr)
    sys.exit(1)
except Exception as exc:
    print(f"[FATAL] Failed to load catalog: {exc}", file=sys.stderr)
    sys.exit(1)


def _reload_catalog_if_changed(force: bool = False) -> bool:
    """
    Rebuild the session when CATALOG_PATH changes on disk.

    Saved progress survives the reload unless the set of course codes
    changed, in which case the catalog-signature check purges it.
    Returns True when a reload occurred, else False.
    """
    global _session, _catalog_mtime

    with _session_lock:
        latest_mtime = _catalog_file_mtime(CATALOG_PATH)
        if not force:
            if latest_mtime is None:
                return False
            if _catalog_mtime is not None and latest_mtime <= _catalog_mtime:
                return False

        try:
            new_session = CurriculumSession.from_catalog(
                CATALOG_PATH,
                storage=_storage,
                config=_session.config,
            )
        except Exception as exc:
            print(f"[WARN] Catalog reload failed; keeping previous catalog: {exc}", file=sys.stderr)
            return False

        _session = new_session
        _catalog_mtime = latest_mtime
        print(f"[OK] Reloaded {len(new_session.graph)} courses from {CATALOG_PATH}")
        return True


def _refresh_catalog_if_needed() -> None:
    try:
        _reload_catalog_if_changed()
    except Exception as exc:
        print(f"[WARN] Catalog reload check failed: {exc}", file=sys.stderr)


def _error_response(error_code: str, message: str, status: int | None = None, **extra):
    error = {"error_code": error_code, "message": message}
    error.update(extra)
    return jsonify({"mode": "error", "error": error}), status or _ERROR_STATUS.get(error_code, 400)


def _progress_payload() -> dict:
    """Caller holds _session_lock."""
    return {
        "approved_codes": _session.approved_codes(),
        "current_semester": _session.current_semester,
        "credit_summary": _session.credit_summary(),
        "delay_metrics": _session.delay_metrics(),
    }


# -- Security headers ------------------------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# ── Error handlers ─────────────────────────────────────────────────────────────
@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        code = "NOT_FOUND" if e.code == 404 else "HTTP_ERROR"
        return _error_response(code, e.description or e.name, e.code)
    print(f"[WARN] Unhandled error on {request.method} {request.path}: {e!r}", file=sys.stderr)
    return jsonify({
        "mode": "error",
        "error": {
            "error_code": "SERVER_ERROR",
            "message": "An unexpected server error occurred.",
        },
    }), 500


# ── Routes ─────────────────────────────────────────────────────────────────────
@app.route("/health", methods=["GET"])
def health_endpoint():
    with _session_lock:
        report = _session.graph.report
        course_count = len(_session.graph)
    return jsonify({
        "status": "ok",
        "version": "2.0.0",
        "courses": course_count,
        "catalog_passed": report.passed,
        "catalog_errors": len(report.errors),
        "persistent": STATE_PATH is not None,
    })


@app.route("/courses", methods=["GET"])
def get_courses():
    """Catalog with per-course state. area / q / only_available filter the by_semester view."""
    _refresh_catalog_if_needed()
    only_available = request.args.get("only_available", "").strip().lower() in {"1", "true", "yes"}
    with _session_lock:
        grouped = _session.filter_courses(
            area=request.args.get("area"),
            query=request.args.get("q", ""),
            only_available=only_available,
        )
        payload = {
            "courses": _session.list_courses(),
            "areas": _session.areas(),
            "semesters": _session.semesters(),
            "by_semester": {str(sem): courses for sem, courses in grouped.items()},
        }
    return jsonify(payload)


@app.route("/courses/<code>", methods=["GET"])
def get_course(code):
    normalized = normalize_code(code)
    with _session_lock:
        status = _session.course_status(normalized) if normalized else None
    if status is None:
        return _error_response("UNKNOWN_COURSE", f"Course {code} is not in the catalog.")
    return jsonify(status)


@app.route("/progress", methods=["GET"])
def get_progress():
    with _session_lock:
        payload = _progress_payload()
    return jsonify(payload)


@app.route("/approve", methods=["POST"])
def approve_endpoint():
    body = request.get_json(silent=True)
    with _session_lock:
        code, error_code, message = validate_code_body(body, _session.graph.courses)
        if error_code:
            return _error_response(error_code, message)
        result = _session.approve(code)
        progress = _progress_payload()
    if not result["ok"]:
        extra = {"course_code": code}
        if "missing_prereqs" in result:
            extra["missing_prereqs"] = result["missing_prereqs"]
        return _error_response(result["error_code"], result["message"], **extra)
    return jsonify({
        "mode": "approve",
        "course_code": code,
        "already_approved": result["already_approved"],
        "progress": progress,
    })


@app.route("/unapprove", methods=["POST"])
def unapprove_endpoint():
    body = request.get_json(silent=True)
    with _session_lock:
        code, error_code, message = validate_code_body(body, _session.graph.courses)
        if error_code:
            return _error_response(error_code, message)
        was_approved = _session.store.is_approved(code)
        cascaded = _session.unapprove(code)
        progress = _progress_payload()
    return jsonify({
        "mode": "unapprove",
        "course_code": code,
        "was_approved": was_approved,
        "cascaded": cascaded,
        "progress": progress,
    })


@app.route("/semester", methods=["POST"])
def semester_endpoint():
    semester, error_code, message = validate_semester_body(request.get_json(silent=True))
    if error_code:
        return _error_response(error_code, message)
    with _session_lock:
        _session.set_current_semester(semester)
        progress = _progress_payload()
    return jsonify({"mode": "semester", "progress": progress})


@app.route("/reset", methods=["POST"])
def reset_endpoint():
    with _session_lock:
        _session.reset()
        progress = _progress_payload()
    return jsonify({"mode": "reset", "progress": progress})


@app.route("/analysis", methods=["GET"])
def analysis_endpoint():
    _refresh_catalog_if_needed()
    with _session_lock:
        payload = _session.analysis()
    return jsonify(payload)


@app.route("/export", methods=["GET"])
def export_endpoint():
    with _session_lock:
        snapshot = _session.export_snapshot()
    return jsonify(snapshot)


@app.route("/import", methods=["POST"])
def import_endpoint():
    body = request.get_json(silent=True)
    with _session_lock:
        result = _session.restore_snapshot(body)
        progress = _progress_payload() if result["ok"] else None
    if not result["ok"]:
        return _error_response(result["error_code"], result["message"])
    return jsonify({"mode": "import", **result, "progress": progress})


@app.route("/preferences", methods=["GET", "POST"])
def preferences_endpoint():
    if request.method == "GET":
        with _session_lock:
            prefs = _session.preferences()
        return jsonify(prefs)

    changes, error_code, message = validate_preferences_body(request.get_json(silent=True))
    if error_code:
        return _error_response(error_code, message)
    with _session_lock:
        if "theme_mode" in changes:
            _session.set_theme_mode(changes["theme_mode"])
        if "color_theme" in changes:
            _session.set_color_theme(changes["color_theme"])
        if "delay_config" in changes:
            _session.update_delay_config(changes["delay_config"])
        prefs = _session.preferences()
    return jsonify(prefs)


if __name__ == "__main__":
    port = _env_int("PORT", 5000)
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"
    app.run(host="127.0.0.1", port=port, debug=debug)
