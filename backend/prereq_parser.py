import re
import pandas as pd
from normalizer import normalize_code

# Case-insensitive OR detector. Alternatives are not part of the curriculum grammar.
OR_SPLIT = re.compile(r'\s+or\s+', re.IGNORECASE)

# Regex to strip parenthetical annotation clauses, e.g. "(may be concurrent)"
ANNOTATION_RE = re.compile(r'\s*\([^)]*\)')

# Separators accepted between required codes.
AND_SPLIT = re.compile(r'\s*(?:[;,]|\band\b)\s*', re.IGNORECASE)

NONE_VALUES = {"none", "none listed", "n/a", "nan", "-", ""}


def _strip_annotations(s: str) -> str:
    """Remove parenthetical annotation clauses, e.g. '(may be concurrent)'."""
    return ANNOTATION_RE.sub('', s).strip()


def parse_prereqs(prereq_raw) -> dict:
    """
    Parses the prerequisite field of a catalog row.

    Supported grammar:
      none / empty / NaN       → {"type": "none"}
      CODE                     → {"type": "single", "course": "MAT1001"}
      CODE;CODE / CODE,CODE    → {"type": "and", "courses": [...]}
      CODE and CODE            → {"type": "and", "courses": [...]}
      ["CODE", "CODE"]         → same as the separated form (JSON catalogs)

    Anything else (alternatives, free text) →
                                 {"type": "unsupported", "raw": "<original string>"}

    Declaration order is preserved and duplicate codes are collapsed.
    """
    if prereq_raw is None or (isinstance(prereq_raw, float) and pd.isna(prereq_raw)):
        return {"type": "none"}

    if isinstance(prereq_raw, (list, tuple, set, frozenset)):
        tokens = [str(t) for t in prereq_raw if t is not None]
        raw_display = "; ".join(tokens)
    else:
        raw_display = str(prereq_raw).strip()
        if raw_display.lower() in NONE_VALUES:
            return {"type": "none"}
        stripped = _strip_annotations(raw_display)
        if OR_SPLIT.search(stripped):
            return {"type": "unsupported", "raw": raw_display}
        tokens = AND_SPLIT.split(stripped)

    codes: list[str] = []
    for tok in tokens:
        tok = tok.strip()
        if not tok or tok.lower() in NONE_VALUES:
            continue
        code = normalize_code(tok)
        if code is None:
            return {"type": "unsupported", "raw": raw_display}
        if code not in codes:
            codes.append(code)

    if not codes:
        return {"type": "none"}
    if len(codes) == 1:
        return {"type": "single", "course": codes[0]}
    return {"type": "and", "courses": codes}


def prereq_course_codes(parsed_prereq: dict) -> list[str]:
    t = parsed_prereq.get("type")
    if t == "single":
        course = parsed_prereq.get("course")
        return [course] if course else []
    if t == "and":
        return [c for c in parsed_prereq.get("courses", []) if c]
    return []


def build_prereq_check_string(parsed_prereq: dict, approved_codes: set) -> str:
    """
    Returns a human-readable string showing which prereqs are satisfied.
    Examples:
      "MAT1001 ✓"
      "ICI1242 ✓; MAT1002 ✗"
    """
    t = parsed_prereq.get("type")
    if t == "none":
        return "No prerequisites"
    if t == "unsupported":
        return "Manual review required"
    return "; ".join(
        f"{c} ✓" if c in approved_codes else f"{c} ✗"
        for c in prereq_course_codes(parsed_prereq)
    )
