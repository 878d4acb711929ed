"""
Test Coverage Service
Coverage Blueprint — feature coverage, auto-linking and analysis history.

All routes are scoped under /api/v1/projects/<project_id>/coverage so every
request names its project; the project is resolved before any service call.

Endpoints:
    Overview:
        GET    /projects/<pid>/coverage                         — Stats + modules + gaps + features
        GET    /projects/<pid>/coverage/statistics              — Statistics
        GET    /projects/<pid>/coverage/modules                 — Coverage by module
        GET    /projects/<pid>/coverage/gaps                    — Uncovered features
        GET    /projects/<pid>/coverage/test-cases              — Test case picker list

    Features:
        GET    /projects/<pid>/coverage/features                — List (?include_inactive=1)
        POST   /projects/<pid>/coverage/features                — Create (+ auto-link)
        PUT    /projects/<pid>/coverage/features/<fid>          — Update
        DELETE /projects/<pid>/coverage/features/<fid>          — Delete

    Linking:
        POST   /projects/<pid>/coverage/features/<fid>/test-cases         — Manual link
        DELETE /projects/<pid>/coverage/features/<fid>/test-cases/<tcid>  — Manual unlink
        POST   /projects/<pid>/coverage/features/<fid>/auto-link          — Auto-link one
        POST   /projects/<pid>/coverage/auto-link                         — Auto-link all

    Analyses:
        POST   /projects/<pid>/coverage/analyses                — Record snapshot
        GET    /projects/<pid>/coverage/history                 — Trend (?limit=30)

Layer contract:
    - Blueprint: parse input, resolve project, call service, commit once.
    - Services own all queries and validation; they never commit.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from app.blueprints import register_error_handlers
from app.services import (
    auto_link_service,
    coverage_access,
    coverage_calculator,
    coverage_snapshot_service,
    feature_service,
)
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error, json_object_body, parse_limit

logger = logging.getLogger(__name__)

coverage_bp = Blueprint("coverage", __name__, url_prefix="/api/v1")
register_error_handlers(coverage_bp)


# ═════════════════════════════════════════════════════════════════════════════
# OVERVIEW
# ═════════════════════════════════════════════════════════════════════════════

@coverage_bp.route("/projects/<int:project_id>/coverage", methods=["GET"])
def coverage_overview(project_id):
    """Everything the coverage page needs in one call."""
    project = coverage_access.get_project(project_id)
    latest = coverage_snapshot_service.latest_snapshot(project_id)
    return jsonify({
        "project": {"id": project.id, "name": project.name},
        "statistics": coverage_calculator.get_statistics(project_id),
        "coverage_by_module": coverage_calculator.get_coverage_by_module(project_id),
        "gaps": coverage_calculator.get_gaps(project_id),
        "features": feature_service.list_features(project_id),
        "latest_analysis": latest.to_dict() if latest else None,
    }), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/statistics", methods=["GET"])
def coverage_statistics(project_id):
    coverage_access.get_project(project_id)
    return jsonify(coverage_calculator.get_statistics(project_id)), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/modules", methods=["GET"])
def coverage_by_module(project_id):
    coverage_access.get_project(project_id)
    return jsonify(coverage_calculator.get_coverage_by_module(project_id)), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/gaps", methods=["GET"])
def coverage_gaps(project_id):
    coverage_access.get_project(project_id)
    return jsonify(coverage_calculator.get_gaps(project_id)), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/test-cases", methods=["GET"])
def coverage_test_cases(project_id):
    coverage_access.get_project(project_id)
    return jsonify(feature_service.list_project_test_cases(project_id)), 200


# ═════════════════════════════════════════════════════════════════════════════
# FEATURES
# ═════════════════════════════════════════════════════════════════════════════

@coverage_bp.route("/projects/<int:project_id>/coverage/features", methods=["GET"])
def list_features(project_id):
    coverage_access.get_project(project_id)
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    return jsonify(feature_service.list_features(project_id, include_inactive)), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/features", methods=["POST"])
def create_feature(project_id):
    """Create a feature; matching test cases are linked immediately.

    Body: { name, priority, description?, module?, category? }
    Returns: 201 with the feature and the auto-linked test case ids.
    """
    coverage_access.get_project(project_id)
    data, err = json_object_body()
    if err:
        return err

    feature, linked = feature_service.create_feature(project_id, data)
    err = db_commit_or_error()
    if err:
        return err

    result = feature.to_dict(include_test_cases=True)
    result["auto_linked_test_case_ids"] = linked
    return jsonify(result), 201


@coverage_bp.route("/projects/<int:project_id>/coverage/features/<int:feature_id>", methods=["PUT"])
def update_feature(project_id, feature_id):
    coverage_access.get_project(project_id)
    data, err = json_object_body()
    if err:
        return err

    feature = feature_service.update_feature(project_id, feature_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(feature.to_dict(include_test_cases=True)), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/features/<int:feature_id>", methods=["DELETE"])
def delete_feature(project_id, feature_id):
    coverage_access.get_project(project_id)
    feature_service.delete_feature(project_id, feature_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": feature_id}), 200


# ═════════════════════════════════════════════════════════════════════════════
# LINKING
# ═════════════════════════════════════════════════════════════════════════════

@coverage_bp.route(
    "/projects/<int:project_id>/coverage/features/<int:feature_id>/test-cases",
    methods=["POST"],
)
def link_test_case(project_id, feature_id):
    """Manually link a test case. Body: { test_case_id }"""
    coverage_access.get_project(project_id)
    data, err = json_object_body()
    if err:
        return err

    test_case_id = data.get("test_case_id")
    if test_case_id is None:
        return api_error(E.VALIDATION_REQUIRED, "test_case_id is required")
    if isinstance(test_case_id, bool) or not isinstance(test_case_id, int):
        return api_error(E.VALIDATION_INVALID, "test_case_id must be an integer")

    created = feature_service.link_test_case(project_id, feature_id, test_case_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "feature_id": feature_id,
        "test_case_id": test_case_id,
        "created": created,
    }), 201 if created else 200


@coverage_bp.route(
    "/projects/<int:project_id>/coverage/features/<int:feature_id>/test-cases/<int:test_case_id>",
    methods=["DELETE"],
)
def unlink_test_case(project_id, feature_id, test_case_id):
    coverage_access.get_project(project_id)
    removed = feature_service.unlink_test_case(project_id, feature_id, test_case_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"feature_id": feature_id, "test_case_id": test_case_id, "removed": removed}), 200


@coverage_bp.route(
    "/projects/<int:project_id>/coverage/features/<int:feature_id>/auto-link",
    methods=["POST"],
)
def auto_link_feature(project_id, feature_id):
    coverage_access.get_project(project_id)
    feature = coverage_access.get_feature(project_id, feature_id)
    linked = auto_link_service.auto_link_feature(project_id, feature)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"feature_id": feature.id, "linked_test_case_ids": linked}), 200


@coverage_bp.route("/projects/<int:project_id>/coverage/auto-link", methods=["POST"])
def auto_link_all(project_id):
    coverage_access.get_project(project_id)
    results = auto_link_service.auto_link_all_features(project_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "features_processed": len(results),
        "links_created": sum(len(ids) for ids in results.values()),
        "results": {str(fid): ids for fid, ids in results.items()},
    }), 200


# ═════════════════════════════════════════════════════════════════════════════
# ANALYSES
# ═════════════════════════════════════════════════════════════════════════════

@coverage_bp.route("/projects/<int:project_id>/coverage/analyses", methods=["POST"])
def create_analysis(project_id):
    """Record a coverage snapshot.

    Body (optional): { "analysis": { overall_coverage?, summary?, risks?, gaps?, ... } }
    The analysis object comes from an external analyzer and is stored as-is.
    """
    coverage_access.get_project(project_id)
    data, err = json_object_body()
    if err:
        return err

    snapshot = coverage_snapshot_service.create_snapshot(project_id, data.get("analysis"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(snapshot.to_dict()), 201


@coverage_bp.route("/projects/<int:project_id>/coverage/history", methods=["GET"])
def coverage_history(project_id):
    coverage_access.get_project(project_id)
    limit, err = parse_limit(
        current_app.config.get("COVERAGE_HISTORY_LIMIT", 30),
        current_app.config.get("COVERAGE_HISTORY_MAX_LIMIT", 365),
    )
    if err:
        return err
    return jsonify(coverage_snapshot_service.history(project_id, limit)), 200
