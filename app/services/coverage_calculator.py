"""Coverage aggregation over a project's feature ↔ test case graph.

Read-only: nothing here writes to the session.

Definitions:
    covered feature  — active feature with >= 1 linked test case
    coverage %       — round(covered / total * 100), 0 when total == 0
    gap              — active feature with no linked test case

Only features passing coverage_access.is_eligible_for_coverage() take part.

Module breakdown: a feature is grouped under its primary module tag (the
first one) or under UNCATEGORIZED_MODULE when it has none, so every active
feature lands in exactly one bucket. test_cases_count per module is the
sum of each feature's linked test cases. A test case linked to two
features of the same module is counted twice; the total is
not deduplicated.
"""

import logging

from app.models.coverage import UNCATEGORIZED_MODULE
from app.services import coverage_access

logger = logging.getLogger(__name__)


def coverage_percentage(covered, total):
    """Integer percentage rounded half up; 0 for an empty denominator."""
    if total <= 0:
        return 0
    return (covered * 200 + total) // (total * 2)


def primary_module(feature):
    """First module tag of the feature, or None when it has no tags."""
    modules = [m for m in feature.modules if m]
    return modules[0] if modules else None


def _active_features_with_counts(project_id):
    features = coverage_access.get_active_features(project_id)
    counts = coverage_access.linked_test_case_counts([f.id for f in features])
    return [(f, counts.get(f.id, 0)) for f in features]


def calculate_overall_coverage(project_id):
    """Percentage of active features with at least one linked test case."""
    rows = _active_features_with_counts(project_id)
    covered = sum(1 for _, count in rows if count > 0)
    return coverage_percentage(covered, len(rows))


def get_coverage_by_module(project_id):
    """Per-module coverage breakdown, in order of first appearance.

    Returns:
        list of {module, total_features, covered_features,
                 test_cases_count, coverage_percentage}
    """
    stats = {}
    for feature, count in _active_features_with_counts(project_id):
        module = primary_module(feature) or UNCATEGORIZED_MODULE
        bucket = stats.setdefault(module, {"total": 0, "covered": 0, "test_cases": 0})
        bucket["total"] += 1
        if count > 0:
            bucket["covered"] += 1
        bucket["test_cases"] += count

    return [
        {
            "module": module,
            "total_features": bucket["total"],
            "covered_features": bucket["covered"],
            "test_cases_count": bucket["test_cases"],
            "coverage_percentage": coverage_percentage(bucket["covered"], bucket["total"]),
        }
        for module, bucket in stats.items()
    ]


def gap_view(feature):
    return {
        "id": feature.id,
        "feature": feature.name,
        "description": feature.description,
        "module": primary_module(feature),
        "modules": feature.modules,
        "category": feature.category,
        "priority": feature.priority,
    }


def get_gaps(project_id):
    """Active features without any linked test case, projected as gaps."""
    return [
        gap_view(feature)
        for feature, count in _active_features_with_counts(project_id)
        if count == 0
    ]


def get_statistics(project_id):
    """Composite coverage statistics for a project.

    total_test_cases is the project-wide test case count, independent of
    which test cases are linked to features.
    """
    rows = _active_features_with_counts(project_id)
    total = len(rows)
    covered = sum(1 for _, count in rows if count > 0)
    result = {
        "overall_coverage": coverage_percentage(covered, total),
        "total_features": total,
        "covered_features": covered,
        "uncovered_features": total - covered,
        "total_test_cases": coverage_access.count_test_cases_for_project(project_id),
        "gaps_count": total - covered,
    }
    logger.debug("Coverage statistics project=%s: %s", project_id, result)
    return result
