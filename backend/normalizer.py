import re
import unicodedata

# Matches: MAT1001, ICI 1241, fin100-14, FF1, OPT4
CANONICAL = re.compile(r'^([A-Za-z]{1,6})\s*(\d{1,4}(?:-\d{1,3})?[A-Za-z]?)$')


def normalize_code(raw) -> str | None:
    """
    Normalizes a course code to canonical 'DEPTNNNN' format (no inner space).
    Handles: 'mat1001', 'MAT 1001', ' ICI1241 ', 'fin100-14', 'ff1'
    Returns None if the string cannot be parsed as a course code.
    """
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    m = CANONICAL.match(s)
    if m:
        return f"{m.group(1).upper()}{m.group(2).upper()}"
    return None


def normalize_text(raw) -> str:
    """Accent-insensitive, lower-cased form used for course search."""
    decomposed = unicodedata.normalize("NFD", str(raw or ""))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def normalize_input(raw, catalog_codes: set) -> dict:
    """
    Normalizes a list of codes, or a comma/newline/semicolon-separated string.

    Returns:
      {
        "valid":         ["MAT1001", "ICI1241"],   # normalized + found in catalog
        "invalid":       ["asdfasdf!"],            # failed regex
        "not_in_catalog": ["MAT9999"]              # valid format but unknown course
      }
    """
    if raw is None:
        return {"valid": [], "invalid": [], "not_in_catalog": []}
    if isinstance(raw, str):
        if not raw.strip():
            return {"valid": [], "invalid": [], "not_in_catalog": []}
        tokens = re.split(r'[,\n;]+', raw)
    else:
        tokens = [str(t) for t in raw if t is not None]

    valid = []
    invalid = []
    not_in_catalog = []
    seen: set[str] = set()

    for token in tokens:
        token = token.strip()
        if not token:
            continue
        normalized = normalize_code(token)
        if normalized is None:
            if token not in seen:
                invalid.append(token)
                seen.add(token)
        elif normalized in seen:
            pass  # deduplicate silently
        elif normalized not in catalog_codes:
            not_in_catalog.append(normalized)
            seen.add(normalized)
        else:
            valid.append(normalized)
            seen.add(normalized)

    return {"valid": valid, "invalid": invalid, "not_in_catalog": not_in_catalog}
