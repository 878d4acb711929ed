"""Coverage analysis snapshots — write-once history for trend charts.

A snapshot freezes the project's coverage statistics at a point in time,
optionally together with an externally produced analysis (summary, risks,
recommendations, gaps). The external analysis is stored as-is; only two
numbers are read from it:

    overall_coverage  — used when present (rounded half up to a whole
                        percent), else the computed value
    gaps              — its length becomes gaps_count when it is a list,
                        else the computed gap count

Feature and test case totals always come from the computed statistics.

Transaction policy: flush() for the id, never commit(). Caller commits.
"""

import logging
import math
from datetime import datetime, timezone

from sqlalchemy import select

from app.core.exceptions import ValidationError
from app.models import db
from app.models.coverage import CoverageAnalysis
from app.services import coverage_calculator

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 30


def validate_analysis_payload(payload):
    """Check the shape of an external analysis payload.

    Raises:
        ValidationError: payload is not an object, overall_coverage is not
                         a number in 0..100, or gaps is not a list.
    """
    if payload is None:
        return
    if not isinstance(payload, dict):
        raise ValidationError("analysis must be a JSON object.")

    errors = {}
    coverage = payload.get("overall_coverage")
    if coverage is not None:
        if isinstance(coverage, bool) or not isinstance(coverage, (int, float)) or not 0 <= coverage <= 100:
            errors["overall_coverage"] = "must be a number between 0 and 100"
    gaps = payload.get("gaps")
    if gaps is not None and not isinstance(gaps, list):
        errors["gaps"] = "must be a list"
    if errors:
        raise ValidationError("Invalid analysis payload.", details=errors)


def _whole_percent(value):
    """72.5 -> 73, 72.4 -> 72; same half-up rule as the calculator."""
    return int(math.floor(value + 0.5))


def build_local_analysis(project_id, statistics=None):
    """Analysis payload assembled from local computations only."""
    statistics = statistics or coverage_calculator.get_statistics(project_id)
    return {
        "source": "local",
        "statistics": statistics,
        "coverage_by_module": coverage_calculator.get_coverage_by_module(project_id),
        "gaps": coverage_calculator.get_gaps(project_id),
    }


def create_snapshot(project_id, analysis=None, statistics=None, analyzed_at=None):
    """Persist a new CoverageAnalysis for the project.

    Args:
        project_id:  Owning project (already validated by the caller).
        analysis:    Optional external analysis payload (dict).
        statistics:  Precomputed get_statistics() result; computed when None.
        analyzed_at: Snapshot timestamp; now (UTC) when None.

    Returns:
        The flushed CoverageAnalysis instance (uncommitted).
    """
    validate_analysis_payload(analysis)
    statistics = statistics or coverage_calculator.get_statistics(project_id)

    if analysis is None:
        payload = build_local_analysis(project_id, statistics)
        overall = statistics["overall_coverage"]
        gaps_count = statistics["gaps_count"]
    else:
        payload = analysis
        overall = analysis.get("overall_coverage")
        overall = statistics["overall_coverage"] if overall is None else _whole_percent(overall)
        gaps = analysis.get("gaps")
        gaps_count = len(gaps) if isinstance(gaps, list) else statistics["gaps_count"]

    snapshot = CoverageAnalysis(
        project_id=project_id,
        analysis_data=payload,
        overall_coverage=overall,
        total_features=statistics["total_features"],
        covered_features=statistics["covered_features"],
        total_test_cases=statistics["total_test_cases"],
        gaps_count=gaps_count,
        analyzed_at=analyzed_at or datetime.now(timezone.utc),
    )
    db.session.add(snapshot)
    db.session.flush()

    logger.info(
        "Coverage snapshot %s recorded for project %s: %s%% (%s gaps)",
        snapshot.id, project_id, overall, gaps_count,
    )
    return snapshot


def _history_query(project_id):
    return (
        select(CoverageAnalysis)
        .where(CoverageAnalysis.project_id == project_id)
        .order_by(CoverageAnalysis.analyzed_at.desc(), CoverageAnalysis.id.desc())
    )


def history(project_id, limit=DEFAULT_HISTORY_LIMIT):
    """Most recent snapshots, newest first, as {date, coverage, features, gaps}."""
    if limit is None:
        limit = DEFAULT_HISTORY_LIMIT
    if limit < 1:
        raise ValidationError("limit must be a positive integer.", details={"limit": limit})

    snapshots = db.session.execute(_history_query(project_id).limit(limit)).scalars()
    return [s.to_trend_point() for s in snapshots]


def latest_snapshot(project_id):
    """Most recent CoverageAnalysis for the project, or None."""
    return db.session.execute(_history_query(project_id).limit(1)).scalar_one_or_none()
