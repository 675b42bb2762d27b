"""
Pure input-validation helpers for the session write API and its HTTP adapter.
No Flask or data-loader imports.

Every validate_* helper returns (value, error_code, message): value is None
whenever error_code is set.
"""

from typing import Dict, List, Optional, Tuple

from config import COLOR_THEMES, THEME_MODES
from normalizer import normalize_code, normalize_input


def validate_course_code(raw, catalog_codes) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None, "INVALID_INPUT", "course_code is required."
    if not isinstance(raw, str):
        return None, "INVALID_INPUT", "course_code must be a string."
    code = normalize_code(raw)
    if code is None:
        return None, "INVALID_CODE", f"'{raw}' is not a valid course code."
    if code not in catalog_codes:
        return None, "UNKNOWN_COURSE", f"Course {code} is not in the catalog."
    return code, None, None


def validate_code_body(body, catalog_codes) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    if not isinstance(body, dict):
        return None, "INVALID_INPUT", "Request body must be a JSON object."
    return validate_course_code(body.get("course_code"), catalog_codes)


def _coerce_semester(raw) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        if not raw.is_integer():
            return None
        raw = int(raw)
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value >= 1 else None


def validate_semester_body(body) -> Tuple[Optional[int], Optional[str], Optional[str]]:
    if not isinstance(body, dict):
        return None, "INVALID_INPUT", "Request body must be a JSON object."
    if "semester" not in body:
        return None, "INVALID_INPUT", "semester is required."
    semester = _coerce_semester(body.get("semester"))
    if semester is None:
        return None, "INVALID_INPUT", "semester must be an integer >= 1."
    return semester, None, None


def validate_snapshot(doc, catalog_codes) -> Tuple[Optional[dict], Optional[str], Optional[str]]:
    """
    Check an exported progress document before it is restored.

    Returns the cleaned document:
      {
        "approved_codes": ["MAT1001", ...],    # normalized, in the catalog
        "dropped_codes":  ["MAT9999", "?!"],   # unknown or unparseable
        "current_semester": 3 | None,
        "schema_version": "2.0" | None,
      }
    """
    if not isinstance(doc, dict):
        return None, "INVALID_SNAPSHOT", "Snapshot must be a JSON object."
    codes = doc.get("approvedCodes")
    if not isinstance(codes, list):
        return None, "INVALID_SNAPSHOT", "approvedCodes must be a list of course codes."
    if any(not isinstance(c, str) for c in codes):
        return None, "INVALID_SNAPSHOT", "approvedCodes must only contain strings."

    semester = None
    if doc.get("currentSemester") is not None:
        semester = _coerce_semester(doc["currentSemester"])
        if semester is None:
            return None, "INVALID_SNAPSHOT", "currentSemester must be an integer >= 1."

    normalized = normalize_input(codes, catalog_codes)
    schema_version = doc.get("schemaVersion")
    return {
        "approved_codes": normalized["valid"],
        "dropped_codes": normalized["not_in_catalog"] + normalized["invalid"],
        "current_semester": semester,
        "schema_version": str(schema_version) if schema_version is not None else None,
    }, None, None


def validate_preferences_body(body) -> Tuple[Optional[dict], Optional[str], Optional[str]]:
    """Accepts any subset of themeMode, colorTheme and delayConfig."""
    if not isinstance(body, dict):
        return None, "INVALID_INPUT", "Request body must be a JSON object."
    changes: dict = {}
    if "themeMode" in body:
        if body["themeMode"] not in THEME_MODES:
            return None, "INVALID_INPUT", f"themeMode must be one of {sorted(THEME_MODES)}."
        changes["theme_mode"] = body["themeMode"]
    if "colorTheme" in body:
        if body["colorTheme"] not in COLOR_THEMES:
            return None, "INVALID_INPUT", f"colorTheme must be one of {sorted(COLOR_THEMES)}."
        changes["color_theme"] = body["colorTheme"]
    if "delayConfig" in body:
        if not isinstance(body["delayConfig"], dict):
            return None, "INVALID_INPUT", "delayConfig must be a JSON object."
        changes["delay_config"] = body["delayConfig"]
    if not changes:
        return None, "INVALID_INPUT", "Nothing to update."
    return changes, None, None


def find_inconsistent_approvals(
    approved_codes,
    prereq_map: Dict[str, List[str]],
) -> List[dict]:
    """
    Return approved courses that have a direct prerequisite not approved.

    Each item:
      {"course_code": "MAT1002", "missing_prereqs": ["MAT1001"]}
    """
    approved = set(approved_codes)
    issues = []
    for code in sorted(approved):
        missing = [p for p in prereq_map.get(code, []) if p not in approved]
        if missing:
            issues.append({"course_code": code, "missing_prereqs": missing})
    return issues
