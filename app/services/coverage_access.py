"""Project-scoped data access for the coverage engine.

Every lookup takes an explicit project_id and only returns rows that
belong to that project:

    Project ──▶ ProjectFeature
    Project ──▶ TestSuite ──▶ TestCase

The association helpers are the only writers of feature_test_case.
attach_associations() is an idempotent set-union: existing pairs are left
untouched and nothing is ever removed. detach_association() exists for
explicit manual unlinking only; the auto-link engine never calls it.

Transaction policy: no commit() here. Writes go through the session
transaction; the caller commits.
"""

import logging

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.coverage import ProjectFeature, feature_test_case
from app.models.project import Project
from app.models.testing import TestCase, TestSuite

logger = logging.getLogger(__name__)

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
_CONFLICT_FREE_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


# ── Eligibility ──────────────────────────────────────────────────────────────

def is_eligible_for_coverage(feature):
    """Single predicate deciding whether a feature counts toward coverage."""
    return bool(feature.is_active)


def _eligible_clause():
    """SQL form of is_eligible_for_coverage()."""
    return ProjectFeature.is_active.is_(True)


# ── Lookups ──────────────────────────────────────────────────────────────────

def get_project(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def get_feature(project_id, feature_id):
    """Return the feature if it belongs to the project, else NotFoundError."""
    feature = db.session.execute(
        select(ProjectFeature).where(
            ProjectFeature.id == feature_id,
            ProjectFeature.project_id == project_id,
        )
    ).scalar_one_or_none()
    if feature is None:
        raise NotFoundError(
            resource="ProjectFeature", resource_id=feature_id, project_id=project_id,
        )
    return feature


def get_features(project_id, include_inactive=False):
    stmt = select(ProjectFeature).where(ProjectFeature.project_id == project_id)
    if not include_inactive:
        stmt = stmt.where(_eligible_clause())
    return list(db.session.execute(stmt.order_by(ProjectFeature.id)).scalars())


def get_active_features(project_id):
    """Features that participate in coverage computation."""
    return get_features(project_id, include_inactive=False)


def get_test_cases_for_project(project_id):
    """All test cases in any suite of the project, ordered by suite then position."""
    stmt = (
        select(TestCase)
        .join(TestSuite, TestCase.test_suite_id == TestSuite.id)
        .where(TestSuite.project_id == project_id)
        .order_by(TestSuite.sort_order, TestSuite.id, TestCase.sort_order, TestCase.id)
    )
    return list(db.session.execute(stmt).scalars())


def count_test_cases_for_project(project_id):
    stmt = (
        select(db.func.count(TestCase.id))
        .join(TestSuite, TestCase.test_suite_id == TestSuite.id)
        .where(TestSuite.project_id == project_id)
    )
    return db.session.execute(stmt).scalar_one()


def get_project_test_case(project_id, test_case_id):
    """Return the test case if it sits in a suite of the project.

    Raises:
        ValidationError: the test case is missing or belongs elsewhere.
    """
    tc = db.session.execute(
        select(TestCase)
        .join(TestSuite, TestCase.test_suite_id == TestSuite.id)
        .where(TestCase.id == test_case_id, TestSuite.project_id == project_id)
    ).scalar_one_or_none()
    if tc is None:
        raise ValidationError(
            "Test case does not belong to this project.",
            details={"test_case_id": test_case_id},
        )
    return tc


# ── Association edges ────────────────────────────────────────────────────────

def linked_test_case_counts(feature_ids):
    """Return {feature_id: number of linked test cases} for the given ids.

    Features without links are absent from the result.
    """
    if not feature_ids:
        return {}
    rows = db.session.execute(
        select(feature_test_case.c.feature_id, db.func.count(feature_test_case.c.test_case_id))
        .where(feature_test_case.c.feature_id.in_(list(feature_ids)))
        .group_by(feature_test_case.c.feature_id)
    ).all()
    return {feature_id: count for feature_id, count in rows}


def get_linked_test_case_ids(feature_id):
    rows = db.session.execute(
        select(feature_test_case.c.test_case_id)
        .where(feature_test_case.c.feature_id == feature_id)
    ).scalars()
    return set(rows)


def _insert_link(feature_id, test_case_id):
    """Insert one edge; return False when the pair already exists.

    SQLite and PostgreSQL skip the duplicate in the statement itself.
    Other backends run the insert in a savepoint and roll it back on a
    unique violation, so the surrounding transaction survives.
    """
    row = {"feature_id": feature_id, "test_case_id": test_case_id}
    insert = _CONFLICT_FREE_INSERTS.get(db.session.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(feature_test_case).values(**row).on_conflict_do_nothing(
            index_elements=["feature_id", "test_case_id"],
        )
        return db.session.execute(stmt).rowcount > 0

    try:
        with db.session.begin_nested():
            db.session.execute(feature_test_case.insert().values(**row))
    except IntegrityError:
        return False
    return True


def attach_associations(feature_id, test_case_ids):
    """Link test cases to a feature without detaching anything.

    Pairs that already exist are skipped, including pairs another
    transaction inserted after the existing links were read, so repeated
    or concurrent calls converge on the same edge set.

    Returns:
        Sorted list of test case ids that were newly linked by this call.
    """
    wanted = {int(tc_id) for tc_id in test_case_ids}
    if not wanted:
        return []

    candidates = sorted(wanted - get_linked_test_case_ids(feature_id))
    inserted = [tc_id for tc_id in candidates if _insert_link(feature_id, tc_id)]
    if len(inserted) < len(candidates):
        logger.debug(
            "Feature %s: %d link(s) already present at insert time",
            feature_id, len(candidates) - len(inserted),
        )
    if inserted:
        logger.debug("Attached %d test case(s) to feature %s", len(inserted), feature_id)
    return inserted


def detach_association(feature_id, test_case_id):
    """Remove one feature ↔ test case edge. Returns True when a row was deleted."""
    result = db.session.execute(
        feature_test_case.delete().where(
            feature_test_case.c.feature_id == feature_id,
            feature_test_case.c.test_case_id == test_case_id,
        )
    )
    return result.rowcount > 0
