"""
Shared pytest fixtures for the Test Coverage Service test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - workspace / project: Pre-created entities
    - make_suite / make_case / make_feature: builder helpers
"""

import pytest

from app import create_app
from app.models import db as _db
from app.models.coverage import ProjectFeature
from app.models.project import Project, Workspace
from app.models.testing import TestCase, TestSuite


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def workspace():
    ws = Workspace(name="QA Team", slug="qa-team")
    _db.session.add(ws)
    _db.session.commit()
    return ws


@pytest.fixture()
def project(workspace):
    proj = Project(name="Checkout Web", workspace_id=workspace.id)
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def other_project(workspace):
    proj = Project(name="Back Office", workspace_id=workspace.id)
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def make_suite():
    def _make(project, name="Regression"):
        suite = TestSuite(project_id=project.id, name=name)
        _db.session.add(suite)
        _db.session.flush()
        return suite
    return _make


@pytest.fixture()
def make_case():
    def _make(suite, title):
        tc = TestCase(test_suite_id=suite.id, title=title)
        _db.session.add(tc)
        _db.session.flush()
        return tc
    return _make


@pytest.fixture()
def make_feature():
    def _make(project, name, module=None, is_active=True, priority="medium", **kwargs):
        feature = ProjectFeature(
            project_id=project.id,
            name=name,
            module=module,
            is_active=is_active,
            priority=priority,
            **kwargs,
        )
        _db.session.add(feature)
        _db.session.flush()
        return feature
    return _make


@pytest.fixture()
def link():
    """Attach test cases to a feature the way a manual link does."""
    from app.services.coverage_access import attach_associations

    def _link(feature, *test_cases):
        attach_associations(feature.id, [tc.id for tc in test_cases])
        _db.session.flush()
    return _link
