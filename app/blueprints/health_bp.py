"""
Health probes.

    GET /api/v1/health/ready  — process is up (no I/O)
    GET /api/v1/health/live   — database reachable and coverage tables present
"""

import logging
import time

from flask import Blueprint, jsonify
from sqlalchemy import inspect

from app.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

# Tables the coverage endpoints cannot work without
REQUIRED_TABLES = (
    "projects",
    "test_suites",
    "test_cases",
    "project_features",
    "feature_test_case",
    "coverage_analyses",
)


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


def _check_database():
    t0 = time.perf_counter()
    db.session.execute(db.text("SELECT 1"))
    return {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}


def _check_schema():
    present = set(inspect(db.engine).get_table_names())
    missing = [t for t in REQUIRED_TABLES if t not in present]
    if missing:
        return {"status": "error", "missing_tables": missing}
    return {"status": "ok", "tables": len(REQUIRED_TABLES)}


@health_bp.route("/live", methods=["GET"])
def live():
    """Database round-trip plus schema presence. 503 when either fails."""
    checks = {}
    for name, probe in (("database", _check_database), ("schema", _check_schema)):
        try:
            checks[name] = probe()
        except Exception as exc:
            logger.error("Health check %s failed: %s", name, exc)
            checks[name] = {"status": "error", "detail": str(exc)}

    healthy = all(c["status"] == "ok" for c in checks.values())
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
