"""
Test Coverage Service
Project Blueprint — workspaces, projects, test suites and test cases.

Endpoints:
    Workspaces:
        POST   /api/v1/workspaces                      — Create workspace
        GET    /api/v1/workspaces/<wid>                — Detail

    Projects:
        GET    /api/v1/projects                        — List (?workspace_id=)
        POST   /api/v1/projects                        — Create
        GET    /api/v1/projects/<pid>                  — Detail

    Test Suites:
        GET    /api/v1/projects/<pid>/suites           — List suites
        POST   /api/v1/projects/<pid>/suites           — Create suite
        GET    /api/v1/suites/<sid>                    — Detail (+ test cases)

    Test Cases:
        GET    /api/v1/suites/<sid>/test-cases         — List
        POST   /api/v1/suites/<sid>/test-cases         — Create
"""

import logging

from flask import Blueprint, jsonify, request

from app.services import coverage_access, project_service
from app.blueprints import register_error_handlers
from app.utils.helpers import db_commit_or_error, json_object_body

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")
register_error_handlers(project_bp)


# ═════════════════════════════════════════════════════════════════════════════
# WORKSPACES
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/workspaces", methods=["POST"])
def create_workspace():
    data, err = json_object_body()
    if err:
        return err
    ws = project_service.create_workspace(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(ws.to_dict()), 201


@project_bp.route("/workspaces/<int:workspace_id>", methods=["GET"])
def get_workspace(workspace_id):
    ws = project_service.get_workspace(workspace_id)
    result = ws.to_dict()
    result["projects"] = [p.to_dict() for p in ws.projects]
    return jsonify(result), 200


# ═════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
def list_projects():
    workspace_id = request.args.get("workspace_id", type=int)
    projects = project_service.list_projects(workspace_id)
    return jsonify([p.to_dict() for p in projects]), 200


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data, err = json_object_body()
    if err:
        return err
    project = project_service.create_project(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project = coverage_access.get_project(project_id)
    return jsonify(project.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════════
# TEST SUITES
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<int:project_id>/suites", methods=["GET"])
def list_suites(project_id):
    coverage_access.get_project(project_id)
    suites = project_service.list_suites(project_id)
    return jsonify([s.to_dict() for s in suites]), 200


@project_bp.route("/projects/<int:project_id>/suites", methods=["POST"])
def create_suite(project_id):
    coverage_access.get_project(project_id)
    data, err = json_object_body()
    if err:
        return err
    suite = project_service.create_suite(project_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(suite.to_dict()), 201


@project_bp.route("/suites/<int:suite_id>", methods=["GET"])
def get_suite(suite_id):
    suite = project_service.get_suite(suite_id)
    return jsonify(suite.to_dict(include_cases=True)), 200


# ═════════════════════════════════════════════════════════════════════════════
# TEST CASES
# ═════════════════════════════════════════════════════════════════════════════

@project_bp.route("/suites/<int:suite_id>/test-cases", methods=["GET"])
def list_test_cases(suite_id):
    suite = project_service.get_suite(suite_id)
    return jsonify([tc.to_dict() for tc in suite.test_cases]), 200


@project_bp.route("/suites/<int:suite_id>/test-cases", methods=["POST"])
def create_test_case(suite_id):
    data, err = json_object_body()
    if err:
        return err
    tc = project_service.create_test_case(suite_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(tc.to_dict()), 201
