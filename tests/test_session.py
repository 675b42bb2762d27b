import json
from datetime import datetime

import pytest
from conftest import make_course
from curriculum_graph import build_graph
from session import CurriculumSession
from storage import JsonFileStorage, MemoryStorage


@pytest.fixture
def session(small_graph):
    return CurriculumSession(small_graph, MemoryStorage())


class TestReadApi:
    def test_manual_review_course_status(self):
        graph = build_graph([make_course("ICI2001", 1, 4, manual_review=True)], verbose=False)
        status = CurriculumSession(graph, MemoryStorage()).course_status("ICI2001")
        assert status["state"] == "blocked"
        assert status["manual_review"] is True
        assert status["prereq_check"] == "Manual review required"

    def test_list_courses_has_state(self, session):
        courses = session.list_courses()
        assert len(courses) == 6
        first = courses[0]
        assert first["code"] == "MAT1001"
        assert first["state"] == "available"
        assert first["critical"] is True

    def test_semesters(self, session):
        semesters = session.semesters()
        assert [s["semester"] for s in semesters] == [1, 2, 3]
        assert semesters[1]["ideal_cumulative_credits"] == 22

    def test_course_status(self, session):
        session.approve("MAT1001")
        status = session.course_status("ING1001")
        assert status["state"] == "blocked"
        assert status["missing_prereqs"] == [
            {"code": "MAT1002", "title": "Cálculo II"},
            {"code": "FIS1002", "title": "Física II"},
        ]
        assert status["prereq_check"] == "MAT1002 ✗; FIS1002 ✗"

    def test_course_status_opens(self, session):
        opens = session.course_status("MAT1002")["opens"]
        assert [o["code"] for o in opens] == ["MAT1003", "ING1001"]

    def test_course_status_unknown(self, session):
        assert session.course_status("NOPE999") is None


class TestFilterCourses:
    def test_accent_insensitive_query(self, session):
        grouped = session.filter_courses(query="calculo")
        codes = [c["code"] for courses in grouped.values() for c in courses]
        assert codes == ["MAT1001", "MAT1002", "MAT1003"]

    def test_query_matches_code(self, session):
        grouped = session.filter_courses(query="fis100")
        assert list(grouped) == [1, 2]

    def test_area_filter(self, session):
        grouped = session.filter_courses(area="fisica")
        assert [c["code"] for c in grouped[1]] == ["FIS1001"]
        assert 3 not in grouped

    def test_all_area(self, session):
        grouped = session.filter_courses(area="all")
        assert sum(len(v) for v in grouped.values()) == 6

    def test_only_available(self, session):
        session.approve("MAT1001")
        grouped = session.filter_courses(only_available=True)
        codes = [c["code"] for courses in grouped.values() for c in courses]
        assert codes == ["FIS1001", "MAT1002"]


class TestSnapshots:
    def test_export_shape(self, session):
        session.approve("MAT1001")
        session.set_current_semester(2)
        snapshot = session.export_snapshot()
        assert snapshot["approvedCodes"] == ["MAT1001"]
        assert snapshot["currentSemester"] == 2
        assert snapshot["schemaVersion"] == "2.0"
        assert snapshot["creditSummary"]["approved_credits"] == 5
        assert snapshot["delayMetrics"]["real_semester"] == 2
        assert datetime.fromisoformat(snapshot["timestamp"]).tzinfo is not None

    def test_export_import_roundtrip(self, session, small_graph):
        for code in ["MAT1001", "FIS1001", "MAT1002"]:
            session.approve(code)
        session.set_current_semester(3)
        snapshot = json.loads(json.dumps(session.export_snapshot()))

        fresh = CurriculumSession(small_graph, MemoryStorage())
        result = fresh.restore_snapshot(snapshot)
        assert result["ok"]
        assert set(fresh.approved_codes()) == {"MAT1001", "FIS1001", "MAT1002"}
        assert fresh.current_semester == 3
        assert fresh.credit_summary() == session.credit_summary()
        assert fresh.delay_metrics() == session.delay_metrics()

    def test_import_drops_unknown_codes(self, session):
        result = session.restore_snapshot({"approvedCodes": ["MAT1001", "OLD999"]})
        assert result["ok"]
        assert result["restored"] == ["MAT1001"]
        assert result["skipped_unknown"] == ["OLD999"]

    def test_import_malformed(self, session):
        session.approve("MAT1001")
        result = session.restore_snapshot({"approvedCodes": "MAT1001"})
        assert not result["ok"]
        assert result["error_code"] == "INVALID_SNAPSHOT"
        assert session.approved_codes() == ["MAT1001"]


class TestPreferences:
    def test_defaults(self, session):
        assert session.preferences() == {
            "themeMode": "light",
            "colorTheme": "indigo",
            "delayConfig": {"creditsPerIdealSemester": 22, "totalSemesters": 11, "delayMargin": 6},
        }

    def test_set_theme(self, session):
        assert session.set_theme_mode("dark")
        assert session.set_color_theme("ocean")
        assert not session.set_theme_mode("sepia")
        assert not session.set_color_theme("plaid")
        prefs = session.preferences()
        assert prefs["themeMode"] == "dark"
        assert prefs["colorTheme"] == "ocean"

    def test_delay_config_persisted_and_applied(self, small_graph):
        storage = MemoryStorage()
        session = CurriculumSession(small_graph, storage)
        session.update_delay_config({"delayMargin": 20})
        assert json.loads(storage.get_item("delay_config"))["delayMargin"] == 20
        assert session.delay_metrics()["adaptive_margin"] == 20

        reopened = CurriculumSession(small_graph, storage)
        assert reopened.config.delay_margin == 20

    def test_corrupt_delay_config_uses_defaults(self, small_graph, capsys):
        session = CurriculumSession(small_graph, MemoryStorage({"delay_config": "{bad"}))
        assert session.config.delay_margin == 6
        assert "[WARN]" in capsys.readouterr().out


class TestSessionLifecycle:
    def test_file_backed_session_survives_restart(self, small_graph, tmp_path):
        path = str(tmp_path / "progress.json")
        session = CurriculumSession(small_graph, JsonFileStorage(path))
        session.approve("MAT1001")
        session.set_theme_mode("dark")

        reopened = CurriculumSession(small_graph, JsonFileStorage(path))
        assert reopened.approved_codes() == ["MAT1001"]
        assert reopened.preferences()["themeMode"] == "dark"

    def test_reset(self, session):
        session.approve("MAT1001")
        session.reset()
        assert session.approved_codes() == []
        assert session.credit_summary()["approved_credits"] == 0

    def test_inconsistent_saved_state_warns(self, small_graph, capsys):
        CurriculumSession(small_graph, MemoryStorage({"approved_codes": '["MAT1002"]'}))
        assert "unapproved prerequisites" in capsys.readouterr().out

    def test_from_catalog(self, bundled_catalog_path):
        session = CurriculumSession.from_catalog(bundled_catalog_path, verbose=False)
        assert len(session.list_courses()) == 58
        assert session.credit_summary()["total_credits"] == 212

    def test_analysis_payload(self, session):
        payload = session.analysis()
        assert set(payload) == {
            "credit_summary", "delay_metrics", "current_semester", "critical_courses",
            "recommendations", "blocked_sequences", "area_progress", "semester_load", "problems",
        }
