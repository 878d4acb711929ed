"""Auto-linking of test cases to features by name matching.

A test case is linked to a feature when the feature name appears in the
test case title (feature_matcher.matches). Links are only ever added:
manual links and earlier auto-links survive every run, and re-running
after new test cases appear just adds the new matches.

Test cases are loaded once per auto_link_feature() call, so linking all
features is O(features × test cases) string comparisons.

Transaction policy: no commit(). Caller commits.
"""

import logging

from app.services import coverage_access, feature_matcher

logger = logging.getLogger(__name__)


def auto_link_feature(project_id, feature):
    """Link every project test case whose title matches the feature name.

    Args:
        project_id: Project whose test cases are scanned. The feature must
                    already be known to belong to this project.
        feature:    ProjectFeature instance.

    Returns:
        Sorted list of test case ids newly linked (empty when nothing new).
    """
    test_cases = coverage_access.get_test_cases_for_project(project_id)
    matching_ids = [tc.id for tc in feature_matcher.filter_matching(feature.name, test_cases)]
    if not matching_ids:
        return []

    linked = coverage_access.attach_associations(feature.id, matching_ids)
    if linked:
        logger.info(
            "Auto-linked %d test case(s) to feature %s (%s) in project %s",
            len(linked), feature.id, feature.name, project_id,
        )
    return linked


def auto_link_all_features(project_id):
    """Run auto_link_feature for every active feature in the project.

    Returns:
        {feature_id: [newly linked test case ids]} for every active feature.
    """
    results = {}
    for feature in coverage_access.get_active_features(project_id):
        results[feature.id] = auto_link_feature(project_id, feature)

    total = sum(len(ids) for ids in results.values())
    logger.info(
        "Auto-link pass for project %s: %d feature(s), %d new link(s)",
        project_id, len(results), total,
    )
    return results
