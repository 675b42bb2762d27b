"""
Endpoint tests for the local progress server.

These tests use the real Flask test client against the bundled catalog, so
they exercise the full request→response pipeline. STATE_PATH is unset in
tests, so the session keeps progress in memory.
"""

import json
import threading

import pytest
import server


@pytest.fixture(scope="module")
def client():
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


@pytest.fixture(autouse=True)
def fresh_progress():
    server._session.reset()
    yield
    server._session.reset()


def post(client, path, payload):
    resp = client.post(path, data=json.dumps(payload), content_type="application/json")
    return resp.status_code, resp.get_json()


class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_health_response_body(self, client):
        data = client.get("/health").get_json()
        assert data["status"] == "ok"
        assert data["courses"] == 58
        assert data["catalog_passed"] is True


class TestSecurityHeaders:
    def test_security_headers_on_health(self, client):
        resp = client.get("/health")
        assert resp.headers.get("X-Frame-Options") == "DENY"
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("Referrer-Policy") == "same-origin"

    def test_security_headers_on_error(self, client):
        resp = client.post("/approve", data="{}", content_type="application/json")
        assert resp.status_code == 400
        assert resp.headers.get("X-Frame-Options") == "DENY"


class TestCourses:
    def test_lists_catalog(self, client):
        data = client.get("/courses").get_json()
        assert len(data["courses"]) == 58
        assert "matematicas" in data["areas"]
        assert len(data["semesters"]) == 11

    def test_search_filter(self, client):
        data = client.get("/courses?q=ingles").get_json()
        codes = [c["code"] for courses in data["by_semester"].values() for c in courses]
        assert codes == ["ING9001", "ING9002", "ING9003", "ING9004"]

    def test_only_available(self, client):
        data = client.get("/courses?only_available=1").get_json()
        states = {c["state"] for courses in data["by_semester"].values() for c in courses}
        assert states == {"available"}

    def test_course_detail(self, client):
        resp = client.get("/courses/mat1002")
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["code"] == "MAT1002"
        assert data["state"] == "blocked"
        assert data["missing_prereqs"][0]["code"] == "MAT1001"

    def test_unknown_course_404(self, client):
        resp = client.get("/courses/XYZ9999")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["error_code"] == "UNKNOWN_COURSE"


class TestApprove:
    def test_approve_then_progress(self, client):
        status, data = post(client, "/approve", {"course_code": "MAT1001"})
        assert status == 200
        assert data["progress"]["approved_codes"] == ["MAT1001"]
        assert data["progress"]["credit_summary"]["approved_credits"] == 6

    def test_prereqs_incomplete_409(self, client):
        status, data = post(client, "/approve", {"course_code": "MAT1002"})
        assert status == 409
        assert data["mode"] == "error"
        assert data["error"]["error_code"] == "PREREQS_INCOMPLETE"
        assert data["error"]["missing_prereqs"] == ["MAT1001"]

    def test_unknown_course_404(self, client):
        status, data = post(client, "/approve", {"course_code": "MAT9999"})
        assert status == 404
        assert data["error"]["error_code"] == "UNKNOWN_COURSE"

    def test_invalid_code_400(self, client):
        status, data = post(client, "/approve", {"course_code": "???"})
        assert status == 400
        assert data["error"]["error_code"] == "INVALID_CODE"

    def test_non_json_body_400(self, client):
        resp = client.post("/approve", data="not json", content_type="text/plain")
        assert resp.status_code == 400

    def test_approve_twice(self, client):
        post(client, "/approve", {"course_code": "MAT1001"})
        status, data = post(client, "/approve", {"course_code": "MAT1001"})
        assert status == 200
        assert data["already_approved"] is True


class TestUnapprove:
    def test_cascade(self, client):
        post(client, "/approve", {"course_code": "MAT1001"})
        post(client, "/approve", {"course_code": "MAT1002"})
        status, data = post(client, "/unapprove", {"course_code": "MAT1001"})
        assert status == 200
        assert data["was_approved"] is True
        assert data["cascaded"] == ["MAT1002"]
        assert data["progress"]["approved_codes"] == []

    def test_not_approved_is_noop(self, client):
        status, data = post(client, "/unapprove", {"course_code": "MAT1001"})
        assert status == 200
        assert data["was_approved"] is False
        assert data["cascaded"] == []


class TestSemesterAndReset:
    def test_set_semester(self, client):
        status, data = post(client, "/semester", {"semester": 4})
        assert status == 200
        assert data["progress"]["current_semester"] == 4
        assert data["progress"]["delay_metrics"]["semester_delay"] == 3

    def test_invalid_semester(self, client):
        status, data = post(client, "/semester", {"semester": 0})
        assert status == 400
        assert data["error"]["error_code"] == "INVALID_INPUT"

    def test_reset(self, client):
        post(client, "/approve", {"course_code": "MAT1001"})
        post(client, "/semester", {"semester": 3})
        status, data = post(client, "/reset", {})
        assert status == 200
        assert data["progress"]["approved_codes"] == []
        assert data["progress"]["current_semester"] == 1


class TestAnalysis:
    def test_analysis_sections(self, client):
        data = client.get("/analysis").get_json()
        assert data["credit_summary"]["total_credits"] == 212
        assert data["delay_metrics"]["ideal_semester"] == 1
        assert isinstance(data["recommendations"], list)
        assert data["critical_courses"][0]["impact"] >= data["critical_courses"][-1]["impact"]

    def test_recommendation_shape(self, client):
        post(client, "/semester", {"semester": 3})
        recs = client.get("/analysis").get_json()["recommendations"]
        assert recs[0]["kind"] == "no_progress_this_term"
        for rec in recs:
            assert set(rec) == {"kind", "title", "actions", "priority"}


class TestExportImport:
    def test_roundtrip(self, client):
        post(client, "/approve", {"course_code": "MAT1001"})
        post(client, "/semester", {"semester": 2})
        snapshot = client.get("/export").get_json()
        assert snapshot["schemaVersion"] == "2.0"

        post(client, "/reset", {})
        status, data = post(client, "/import", snapshot)
        assert status == 200
        assert data["restored"] == ["MAT1001"]
        assert data["progress"]["current_semester"] == 2

    def test_malformed_snapshot_400(self, client):
        status, data = post(client, "/import", {"approvedCodes": 5})
        assert status == 400
        assert data["error"]["error_code"] == "INVALID_SNAPSHOT"


class TestPreferences:
    def test_get_defaults(self, client):
        data = client.get("/preferences").get_json()
        assert data["themeMode"] in {"light", "dark"}
        assert "delayConfig" in data

    def test_update(self, client):
        status, data = post(client, "/preferences", {"themeMode": "dark", "delayConfig": {"delayMargin": 9}})
        assert status == 200
        assert data["themeMode"] == "dark"
        assert data["delayConfig"]["delayMargin"] == 9
        post(client, "/preferences", {"themeMode": "light", "delayConfig": {"delayMargin": 6}})

    def test_invalid_theme_400(self, client):
        status, data = post(client, "/preferences", {"colorTheme": "plaid"})
        assert status == 400
        assert data["error"]["error_code"] == "INVALID_INPUT"


class TestCatalogReload:
    def test_unchanged_catalog_not_reloaded(self, client):
        assert server._reload_catalog_if_changed() is False

    def test_forced_reload_keeps_progress(self, client):
        post(client, "/approve", {"course_code": "MAT1001"})
        assert server._reload_catalog_if_changed(force=True) is True
        data = client.get("/progress").get_json()
        assert data["approved_codes"] == ["MAT1001"]


class TestUnknownRoutes:
    def test_404_envelope(self, client):
        resp = client.get("/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["error_code"] == "NOT_FOUND"


class TestSessionLock:
    def _read_in_thread(self, path, results):
        def read():
            with server.app.test_client() as c:
                results.append(c.get(path).status_code)
        worker = threading.Thread(target=read)
        worker.start()
        return worker

    @pytest.mark.parametrize("path", ["/progress", "/courses/MAT1001", "/export"])
    def test_reads_wait_for_pending_mutation(self, client, path):
        results = []
        server._session_lock.acquire()
        try:
            worker = self._read_in_thread(path, results)
            worker.join(timeout=0.2)
            assert worker.is_alive()
            assert results == []
        finally:
            server._session_lock.release()
        worker.join(timeout=5)
        assert results == [200]

    def test_mutation_payload_reflects_its_own_change(self, client):
        status, data = post(client, "/approve", {"course_code": "MAT1001"})
        assert status == 200
        assert data["progress"]["credit_summary"]["approved_credits"] == 6
        status, data = post(client, "/unapprove", {"course_code": "MAT1001"})
        assert data["progress"]["credit_summary"]["approved_credits"] == 0
