"""
Tests — Coverage API (/api/v1/projects/<pid>/coverage/...).

Covers:
    - Overview, statistics, modules, gaps, test case picker
    - Feature CRUD + auto-link on create
    - Manual link / unlink, cross-project rejection
    - Auto-link single + all
    - Analyses: create (local / external), history ordering + limit
    - 404 for unknown project / feature in another project
"""

import pytest

from app.models import db
from app.models.coverage import feature_test_case
from app.services import coverage_access


# ═════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═════════════════════════════════════════════════════════════════════════════

@pytest.fixture()
def api_project(client):
    res = client.post("/api/v1/projects", json={"name": "Storefront"})
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def api_suite(client, api_project):
    res = client.post(f"/api/v1/projects/{api_project['id']}/suites", json={"name": "Regression"})
    assert res.status_code == 201
    return res.get_json()


def _case(client, suite_id, title):
    res = client.post(f"/api/v1/suites/{suite_id}/test-cases", json={"title": title})
    assert res.status_code == 201
    return res.get_json()


def _feature(client, project_id, **data):
    data.setdefault("priority", "medium")
    res = client.post(f"/api/v1/projects/{project_id}/coverage/features", json=data)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _base(project):
    return f"/api/v1/projects/{project['id']}/coverage"


# ═════════════════════════════════════════════════════════════════════════════
# OVERVIEW / READ ENDPOINTS
# ═════════════════════════════════════════════════════════════════════════════

class TestCoverageRead:
    def test_statistics_empty_project(self, client, api_project):
        res = client.get(f"{_base(api_project)}/statistics")
        assert res.status_code == 200
        assert res.get_json() == {
            "overall_coverage": 0,
            "total_features": 0,
            "covered_features": 0,
            "uncovered_features": 0,
            "total_test_cases": 0,
            "gaps_count": 0,
        }

    def test_statistics_scenario(self, client, api_project, api_suite):
        _case(client, api_suite["id"], "Registration with valid email")
        _feature(client, api_project["id"], name="Registration")
        _feature(client, api_project["id"], name="Dashboard")

        stats = client.get(f"{_base(api_project)}/statistics").get_json()

        assert stats["overall_coverage"] == 50
        assert stats["total_features"] == 2
        assert stats["covered_features"] == 1
        assert stats["uncovered_features"] == 1
        assert stats["gaps_count"] == 1
        assert stats["total_test_cases"] == 1

    def test_gaps_and_modules(self, client, api_project, api_suite):
        _case(client, api_suite["id"], "Cart keeps items")
        _feature(client, api_project["id"], name="Cart", module=["Shop"])
        dashboard = _feature(client, api_project["id"], name="Dashboard", priority="high",
                             category="Core", description="Home widgets")

        gaps = client.get(f"{_base(api_project)}/gaps").get_json()
        assert gaps == [{
            "id": dashboard["id"],
            "feature": "Dashboard",
            "description": "Home widgets",
            "module": None,
            "modules": [],
            "category": "Core",
            "priority": "high",
        }]

        modules = {m["module"]: m for m in client.get(f"{_base(api_project)}/modules").get_json()}
        assert modules["Shop"]["coverage_percentage"] == 100
        assert modules["Shop"]["test_cases_count"] == 1
        assert modules["Uncategorized"]["coverage_percentage"] == 0

    def test_overview(self, client, api_project, api_suite):
        _case(client, api_suite["id"], "Search by keyword")
        _feature(client, api_project["id"], name="Search")

        body = client.get(_base(api_project)).get_json()

        assert body["project"]["id"] == api_project["id"]
        assert body["statistics"]["overall_coverage"] == 100
        assert body["features"][0]["test_cases"][0]["title"] == "Search by keyword"
        assert body["latest_analysis"] is None

    def test_test_case_picker(self, client, api_project, api_suite):
        tc = _case(client, api_suite["id"], "Smoke: app boots")
        res = client.get(f"{_base(api_project)}/test-cases")
        assert res.get_json() == [{
            "id": tc["id"],
            "title": "Smoke: app boots",
            "test_suite": {"id": api_suite["id"], "name": "Regression"},
        }]

    def test_unknown_project_is_404(self, client):
        res = client.get("/api/v1/projects/4242/coverage/statistics")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════════
# FEATURES
# ═════════════════════════════════════════════════════════════════════════════

class TestFeatureEndpoints:
    def test_create_feature_auto_links(self, client, api_project, api_suite):
        _case(client, api_suite["id"], "Test user registration flow")
        login_case = _case(client, api_suite["id"], "Verify LOGIN form validation")

        feature = _feature(client, api_project["id"], name="Login", priority="critical")

        assert feature["auto_linked_test_case_ids"] == [login_case["id"]]
        assert feature["test_cases_count"] == 1

    def test_create_feature_validation_error(self, client, api_project):
        res = client.post(f"{_base(api_project)}/features", json={"name": "", "priority": "invalid"})
        assert res.status_code == 422
        details = res.get_json()["details"]
        assert "name" in details and "priority" in details

    def test_create_feature_rejects_non_object_body(self, client, api_project):
        res = client.post(f"{_base(api_project)}/features", json=["Login"])
        assert res.status_code == 400

    def test_update_and_delete_feature(self, client, api_project):
        feature = _feature(client, api_project["id"], name="Original Name")
        url = f"{_base(api_project)}/features/{feature['id']}"

        res = client.put(url, json={"name": "Updated Name", "priority": "high"})
        assert res.status_code == 200
        assert res.get_json()["name"] == "Updated Name"
        assert res.get_json()["priority"] == "high"

        assert client.delete(url).status_code == 200
        assert client.put(url, json={"priority": "low"}).status_code == 404

    def test_deactivated_feature_leaves_statistics(self, client, api_project):
        feature = _feature(client, api_project["id"], name="Legacy")
        client.put(f"{_base(api_project)}/features/{feature['id']}", json={"is_active": False})

        stats = client.get(f"{_base(api_project)}/statistics").get_json()
        assert stats["total_features"] == 0
        listed = client.get(f"{_base(api_project)}/features?include_inactive=1").get_json()
        assert [f["name"] for f in listed] == ["Legacy"]

    def test_feature_of_other_project_is_404(self, client, api_project):
        other = client.post("/api/v1/projects", json={"name": "Other"}).get_json()
        foreign = _feature(client, other["id"], name="Foreign")

        res = client.put(f"{_base(api_project)}/features/{foreign['id']}", json={"priority": "low"})
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# LINKING
# ═════════════════════════════════════════════════════════════════════════════

class TestLinking:
    def test_manual_link_and_unlink(self, client, api_project, api_suite):
        tc = _case(client, api_suite["id"], "Unrelated title")
        feature = _feature(client, api_project["id"], name="Login")
        url = f"{_base(api_project)}/features/{feature['id']}/test-cases"

        res = client.post(url, json={"test_case_id": tc["id"]})
        assert res.status_code == 201
        assert res.get_json()["created"] is True

        res = client.post(url, json={"test_case_id": tc["id"]})
        assert res.status_code == 200
        assert res.get_json()["created"] is False

        res = client.delete(f"{url}/{tc['id']}")
        assert res.get_json()["removed"] is True

    def test_manual_link_requires_test_case_id(self, client, api_project):
        feature = _feature(client, api_project["id"], name="Login")
        res = client.post(f"{_base(api_project)}/features/{feature['id']}/test-cases", json={})
        assert res.status_code == 400

    def test_manual_link_cross_project_rejected(self, client, api_project):
        other = client.post("/api/v1/projects", json={"name": "Other"}).get_json()
        other_suite = client.post(f"/api/v1/projects/{other['id']}/suites", json={"name": "S"}).get_json()
        foreign = _case(client, other_suite["id"], "Login elsewhere")
        feature = _feature(client, api_project["id"], name="Checkout")

        res = client.post(
            f"{_base(api_project)}/features/{feature['id']}/test-cases",
            json={"test_case_id": foreign["id"]},
        )
        assert res.status_code == 422

    def test_auto_link_keeps_manual_link(self, client, api_project, api_suite):
        manual = _case(client, api_suite["id"], "Session timeout")
        feature = _feature(client, api_project["id"], name="Login")
        client.post(f"{_base(api_project)}/features/{feature['id']}/test-cases",
                    json={"test_case_id": manual["id"]})
        matching = _case(client, api_suite["id"], "Login with SSO")

        res = client.post(f"{_base(api_project)}/features/{feature['id']}/auto-link")

        assert res.status_code == 200
        assert res.get_json()["linked_test_case_ids"] == [matching["id"]]
        listed = client.get(f"{_base(api_project)}/features").get_json()[0]
        assert sorted(tc["id"] for tc in listed["test_cases"]) == sorted([manual["id"], matching["id"]])

    def test_auto_link_all(self, client, api_project):
        _feature(client, api_project["id"], name="Login")
        _feature(client, api_project["id"], name="Dashboard")
        suite = client.post(f"/api/v1/projects/{api_project['id']}/suites", json={"name": "New"}).get_json()
        _case(client, suite["id"], "Test login page loads")
        _case(client, suite["id"], "Test dashboard widgets")

        res = client.post(f"{_base(api_project)}/auto-link")
        body = res.get_json()

        assert res.status_code == 200
        assert body["features_processed"] == 2
        assert body["links_created"] == 2

        again = client.post(f"{_base(api_project)}/auto-link").get_json()
        assert again["links_created"] == 0
        assert client.get(f"{_base(api_project)}/statistics").get_json()["overall_coverage"] == 100

    def test_auto_link_all_with_concurrent_duplicate(self, client, api_project, api_suite, monkeypatch):
        feature = _feature(client, api_project["id"], name="Login")
        raced = _case(client, api_suite["id"], "Login with SSO")
        fresh = _case(client, api_suite["id"], "Login lockout")

        def stale_read(feature_id):
            # The pair lands between the read of existing links and the insert.
            db.session.execute(
                feature_test_case.insert().values(feature_id=feature_id, test_case_id=raced["id"])
            )
            return set()

        monkeypatch.setattr(coverage_access, "get_linked_test_case_ids", stale_read)
        res = client.post(f"{_base(api_project)}/auto-link")
        monkeypatch.undo()

        assert res.status_code == 200
        assert res.get_json()["results"] == {str(feature["id"]): [fresh["id"]]}
        listed = client.get(f"{_base(api_project)}/features").get_json()[0]
        assert sorted(tc["id"] for tc in listed["test_cases"]) == sorted([raced["id"], fresh["id"]])


# ═════════════════════════════════════════════════════════════════════════════
# ANALYSES
# ═════════════════════════════════════════════════════════════════════════════

class TestAnalyses:
    def test_create_local_analysis(self, client, api_project):
        _feature(client, api_project["id"], name="Dashboard")
        res = client.post(f"{_base(api_project)}/analyses", json={})

        assert res.status_code == 201
        body = res.get_json()
        assert body["overall_coverage"] == 0
        assert body["gaps_count"] == 1
        assert body["analysis_data"]["source"] == "local"

    def test_create_external_analysis(self, client, api_project):
        analysis = {"overall_coverage": 72, "summary": "Good", "gaps": [{"feature": "A"}]}
        res = client.post(f"{_base(api_project)}/analyses", json={"analysis": analysis})

        body = res.get_json()
        assert body["overall_coverage"] == 72
        assert body["gaps_count"] == 1
        assert body["analysis_data"] == analysis

    def test_create_analysis_with_fractional_coverage(self, client, api_project):
        analysis = {"overall_coverage": 72.5, "summary": "Decimal score"}
        res = client.post(f"{_base(api_project)}/analyses", json={"analysis": analysis})

        assert res.status_code == 201
        body = res.get_json()
        assert body["overall_coverage"] == 73
        assert body["analysis_data"]["overall_coverage"] == 72.5

    def test_create_analysis_invalid_payload(self, client, api_project):
        res = client.post(f"{_base(api_project)}/analyses", json={"analysis": {"overall_coverage": 101}})
        assert res.status_code == 422

    def test_history_newest_first(self, client, api_project):
        for coverage in (10, 20, 30):
            client.post(f"{_base(api_project)}/analyses", json={"analysis": {"overall_coverage": coverage}})

        res = client.get(f"{_base(api_project)}/history?limit=30")
        history = res.get_json()

        assert res.status_code == 200
        assert [h["coverage"] for h in history] == [30, 20, 10]
        assert set(history[0]) == {"date", "coverage", "features", "gaps"}

    def test_history_limit(self, client, api_project):
        for _ in range(4):
            client.post(f"{_base(api_project)}/analyses", json={})

        assert len(client.get(f"{_base(api_project)}/history?limit=2").get_json()) == 2
        assert len(client.get(f"{_base(api_project)}/history").get_json()) == 4

    @pytest.mark.parametrize("limit", ["abc", "0", "-3"])
    def test_history_bad_limit(self, client, api_project, limit):
        res = client.get(f"{_base(api_project)}/history?limit={limit}")
        assert res.status_code == 400

    def test_overview_shows_latest_analysis(self, client, api_project):
        client.post(f"{_base(api_project)}/analyses", json={"analysis": {"overall_coverage": 5}})
        client.post(f"{_base(api_project)}/analyses", json={"analysis": {"overall_coverage": 6}})

        body = client.get(_base(api_project)).get_json()
        assert body["latest_analysis"]["overall_coverage"] == 6
