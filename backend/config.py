import os
from dataclasses import dataclass, fields, replace

# ── Persisted state keys ──────────────────────────────────────────────────────
THEME_MODE_KEY = "theme_mode"
COLOR_THEME_KEY = "color_theme"
DELAY_CONFIG_KEY = "delay_config"
CURRENT_SEMESTER_KEY = "current_semester"
APPROVED_CODES_KEY = "approved_codes"
CATALOG_SIGNATURE_KEY = "catalog_signature"

THEME_MODES = {"dark", "light"}
DEFAULT_THEME_MODE = "light"

# Palette id -> display label.
COLOR_THEMES = {
    "indigo": "Indigo",
    "emerald": "Emerald",
    "sunset": "Sunset",
    "ocean": "Ocean",
    "nocturnal": "Nocturnal",
}
DEFAULT_COLOR_THEME = "indigo"

# Version tag written into exported snapshots.
SNAPSHOT_SCHEMA_VERSION = "2.0"

# Recommendation priorities, highest first.
PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"

# Approved load below this fraction of the ideal per-semester load is "low".
LOW_LOAD_FRACTION = 0.6

# Number of critical courses listed by the critical_available recommendation.
CRITICAL_ACTIONS_LIMIT = 3

# Persisted override keys (camelCase, as stored) -> DelayConfig field names.
_OVERRIDE_ALIASES = {
    "creditsPerIdealSemester": "credits_per_ideal_semester",
    "totalSemesters": "total_semesters",
    "delayMargin": "delay_margin",
}
PERSISTED_OVERRIDE_KEYS = tuple(_OVERRIDE_ALIASES)


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class DelayConfig:
    """
    Tunable thresholds for the delay analysis.

    Several curriculum variants disagree on these constants (critical
    threshold 3 vs adaptive 10%, ideal load 22 vs 24), so every one of them
    is a parameter rather than a hard-coded rule.
    """
    credits_per_ideal_semester: int = 22
    total_semesters: int = 11
    delay_margin: int = 6
    critical_threshold_base: int = 2
    critical_threshold_fraction: float = 0.1
    max_semester_credits: int = 24
    max_suggestions: int = 4
    load_imbalance_factor: float = 1.5
    cache_ttl_seconds: float = 2.0

    @classmethod
    def from_env(cls) -> "DelayConfig":
        return cls(cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", 2.0, minimum=0.0))

    def with_overrides(self, overrides) -> "DelayConfig":
        """
        Returns a copy with overrides applied.

        Accepts the persisted camelCase keys (creditsPerIdealSemester,
        totalSemesters, delayMargin) and any snake_case field name. Unknown
        keys and values that are not non-negative numbers are ignored.
        """
        if not isinstance(overrides, dict):
            return self
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            name = _OVERRIDE_ALIASES.get(key, key)
            if name not in known or isinstance(value, bool):
                continue
            try:
                num = float(value)
            except (TypeError, ValueError):
                continue
            if num < 0:
                continue
            current = getattr(self, name)
            changes[name] = int(num) if isinstance(current, int) else num
        return replace(self, **changes) if changes else self

    def persisted_overrides(self) -> dict:
        """The persisted subset in its stored camelCase form."""
        return {alias: getattr(self, name) for alias, name in _OVERRIDE_ALIASES.items()}
