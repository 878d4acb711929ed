"""
Tests — `flask coverage ...` CLI commands.
"""

import json

from app.models.coverage import CoverageAnalysis


def test_stats_command(app, project, make_suite, make_case, make_feature, link):
    login = make_feature(project, "Login")
    make_feature(project, "Dashboard")
    link(login, make_case(make_suite(project), "Login ok"))

    result = app.test_cli_runner().invoke(args=["coverage", "stats", str(project.id)])

    assert result.exit_code == 0
    assert json.loads(result.output)["overall_coverage"] == 50


def test_auto_link_command(app, project, make_suite, make_case, make_feature):
    make_case(make_suite(project), "Login with SSO")
    make_feature(project, "Login")

    result = app.test_cli_runner().invoke(args=["coverage", "auto-link", str(project.id)])

    assert result.exit_code == 0
    assert "created 1 link(s)" in result.output


def test_snapshot_command(app, project, make_feature):
    make_feature(project, "Dashboard")

    result = app.test_cli_runner().invoke(args=["coverage", "snapshot", str(project.id)])

    assert result.exit_code == 0
    assert CoverageAnalysis.query.filter_by(project_id=project.id).count() == 1


def test_unknown_project_fails(app):
    result = app.test_cli_runner().invoke(args=["coverage", "stats", "4242"])
    assert result.exit_code != 0
    assert "not found" in result.output.lower()
