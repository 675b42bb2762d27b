"""
Integrity validator for a curriculum catalog.

Builds the prerequisite graph and reports duplicate codes, dangling or
self-referencing prerequisites, cycles, unparseable prerequisite fields and
suspicious credit loads. Importable for tests and runnable as a standalone
CLI; exits non-zero when the catalog has errors.

Usage:
    python scripts/validate_catalog.py
    python scripts/validate_catalog.py --path path/to/courses.csv
    python scripts/validate_catalog.py --path path/to/catalog.xlsx --strict
"""

import argparse
import json
import os
import sys

BACKEND_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend")
DEFAULT_CATALOG_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "courses.csv")


def validate_catalog(data: dict, max_semester_credits: int = 24):
    """
    Build the graph from load_data() output and extend its report with
    catalog-level checks that do not affect the build itself.
    """
    from curriculum_graph import build_graph

    graph = build_graph(data["courses"], verbose=False)
    report = graph.report

    for code in data.get("unsupported_prereqs", []):
        report.error(f"Unsupported prerequisite format for {code} (manual review required)")

    for course in graph.all_courses():
        if course.credits == 0:
            report.warn(f"Course {course.code} has 0 credits")

    for sem in graph.semesters():
        codes = graph.courses_in_semester(sem)
        if not codes:
            report.warn(f"Semester {sem} has no courses")
            continue
        load = sum(graph.courses[c].credits for c in codes)
        if load > max_semester_credits:
            report.warn(f"Semester {sem} declares {load} credits (max recommended {max_semester_credits})")

    return graph, report


# ── CLI entry point ───────────────────────────────────────────────────────────

def main(args=None):
    parser = argparse.ArgumentParser(
        description="Validate a curriculum catalog before it is served.",
    )
    parser.add_argument(
        "--path", type=str,
        default=DEFAULT_CATALOG_PATH,
        help="Catalog CSV, data directory or workbook.",
    )
    parser.add_argument("--strict", action="store_true", help="Treat warnings as failures.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")
    opts = parser.parse_args(args)

    sys.path.insert(0, BACKEND_DIR)
    from data_loader import load_data

    try:
        data = load_data(opts.path)
    except (FileNotFoundError, ValueError) as exc:
        print(f"[FATAL] {exc}", file=sys.stderr)
        return 2

    graph, report = validate_catalog(data)

    if opts.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(f"[INFO] {len(graph)} courses, {graph.max_semester} semesters, {graph.total_credits} credits")
        print(report.summary())

    if not report.passed:
        return 1
    if opts.strict and report.warnings:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
