import sys
import os

import pytest

# Add backend/ to path so tests can import backend modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

# Add scripts/ to path so tests can import script modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))

from catalog import Course  # noqa: E402

BUNDLED_CATALOG = os.path.join(os.path.dirname(__file__), "..", "data", "courses.csv")


def make_course(code, semester=1, credits=4, prereqs=(), title=None, area="core", manual_review=False):
    return Course(
        code=code,
        title=title or f"Course {code}",
        credits=credits,
        semester=semester,
        area=area,
        prereq_codes=tuple(prereqs),
        manual_review=manual_review,
    )


@pytest.fixture
def small_courses():
    """
    Three-semester toy plan with cumulative ideal credits {1: 10, 2: 22, 3: 34}.

    MAT1001 -> MAT1002 -> MAT1003
    FIS1001 -> FIS1002 -> ING1001 (which also requires MAT1002)
    """
    return [
        make_course("MAT1001", 1, 5, area="matematicas", title="Cálculo I"),
        make_course("FIS1001", 1, 5, area="fisica", title="Física I"),
        make_course("MAT1002", 2, 6, ["MAT1001"], area="matematicas", title="Cálculo II"),
        make_course("FIS1002", 2, 6, ["FIS1001"], area="fisica", title="Física II"),
        make_course("MAT1003", 3, 6, ["MAT1002"], area="matematicas", title="Cálculo III"),
        make_course("ING1001", 3, 6, ["MAT1002", "FIS1002"], area="ingenieria", title="Mecánica"),
    ]


@pytest.fixture
def small_graph(small_courses):
    from curriculum_graph import build_graph
    return build_graph(small_courses, verbose=False)


@pytest.fixture
def bundled_catalog_path():
    return BUNDLED_CATALOG
