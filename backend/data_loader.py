import os
import pandas as pd

from catalog import Course
from normalizer import normalize_code
from prereq_parser import parse_prereqs, prereq_course_codes

REQUIRED_COLUMNS = ["course_code", "course_name", "credits", "semester"]

# Older exports use the source-language column names.
_COLUMN_ALIASES = {
    "code": "course_code",
    "sigla": "course_code",
    "title": "course_name",
    "nombre": "course_name",
    "creditos": "credits",
    "sem": "semester",
    "prereqs": "prereq_hard",
    "prerequisites": "prereq_hard",
}


def _safe_int(val, default: int = 0) -> int:
    if pd.isna(val):
        return default
    num = pd.to_numeric(val, errors="coerce")
    if pd.isna(num):
        return default
    return int(num)


def _read_courses_frame(data_path: str) -> pd.DataFrame:
    """Read the raw courses table from a CSV file, a data directory, or a workbook."""
    if os.path.isdir(data_path):
        csv_path = os.path.join(data_path, "courses.csv")
        if not os.path.isfile(csv_path):
            raise FileNotFoundError(f"No courses.csv in data directory: {data_path}")
        return pd.read_csv(csv_path, dtype={"course_code": str})
    if not os.path.isfile(data_path):
        raise FileNotFoundError(f"Catalog file not found: {data_path}")
    if data_path.lower().endswith((".xlsx", ".xlsm")):
        xl = pd.ExcelFile(data_path, engine="openpyxl")
        sheet = "courses" if "courses" in xl.sheet_names else xl.sheet_names[0]
        return xl.parse(sheet)
    return pd.read_csv(data_path, dtype={"course_code": str})


def normalize_courses_df(courses_df: pd.DataFrame) -> pd.DataFrame:
    """Rename alias columns, fill defaults and coerce column types. Raises on missing columns."""
    courses_df = courses_df.copy()
    courses_df.columns = [str(c).strip().lower() for c in courses_df.columns]

    rename_map = {
        alias: canonical
        for alias, canonical in _COLUMN_ALIASES.items()
        if alias in courses_df.columns and canonical not in courses_df.columns
    }
    if rename_map:
        courses_df = courses_df.rename(columns=rename_map)

    missing = [c for c in REQUIRED_COLUMNS if c not in courses_df.columns]
    if missing:
        raise ValueError(f"Catalog is missing required column(s): {missing}")

    if "area" not in courses_df.columns:
        courses_df["area"] = ""
    if "prereq_hard" not in courses_df.columns:
        courses_df["prereq_hard"] = "none"

    courses_df = courses_df.dropna(subset=["course_code"])
    courses_df["course_code"] = courses_df["course_code"].astype(str).str.strip()
    courses_df["course_name"] = courses_df["course_name"].fillna("").astype(str).str.strip()
    courses_df["area"] = courses_df["area"].fillna("").astype(str).str.strip().str.lower()
    courses_df["prereq_hard"] = courses_df["prereq_hard"].fillna("none")
    courses_df["credits"] = courses_df["credits"].apply(_safe_int)
    courses_df["semester"] = courses_df["semester"].apply(lambda v: _safe_int(v, default=1))
    return courses_df.reset_index(drop=True)


def courses_from_df(courses_df: pd.DataFrame) -> list[Course]:
    """
    Build Course records in row order.

    Codes that fail normalization are kept verbatim so the graph build can
    still report them.
    """
    courses: list[Course] = []
    for _, row in courses_df.iterrows():
        raw_code = row["course_code"]
        code = normalize_code(raw_code) or raw_code
        parsed = parse_prereqs(row.get("prereq_hard", "none"))
        courses.append(Course(
            code=code,
            title=row["course_name"] or code,
            credits=int(row["credits"]),
            semester=int(row["semester"]),
            area=row["area"],
            prereq_codes=tuple(prereq_course_codes(parsed)),
            manual_review=parsed["type"] == "unsupported",
        ))
    return courses


def load_data(data_path: str) -> dict:
    """Load and parse the course catalog. Raises on file/schema errors."""
    courses = courses_from_df(normalize_courses_df(_read_courses_frame(data_path)))

    unsupported = sorted({c.code for c in courses if c.manual_review})
    if unsupported:
        print(f"[WARN] {len(unsupported)} course(s) have unsupported prereq format (manual review required): {unsupported}")

    return {
        "courses": courses,
        "unsupported_prereqs": unsupported,
    }


def load_catalog(data_path: str) -> list[Course]:
    return load_data(data_path)["courses"]
