"""Project, test suite and test case plumbing.

Just enough CRUD to populate the coverage graph:
    Workspace ──▶ Project ──▶ TestSuite ──▶ TestCase

Transaction policy: flush(), never commit(). Caller commits.
"""

import logging

from sqlalchemy import select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.project import Project, Workspace
from app.models.testing import (
    AUTOMATION_STATUSES, SUITE_TYPES, TEST_CASE_PRIORITIES,
    TEST_CASE_SEVERITIES, TEST_CASE_TYPES, TestCase, TestSuite,
)

logger = logging.getLogger(__name__)


def _required_str(data, field, errors, max_len=255):
    value = data.get(field)
    value = value.strip() if isinstance(value, str) else ""
    if not value:
        errors[field] = "is required"
    elif len(value) > max_len:
        errors[field] = f"must be at most {max_len} characters"
    return value


def _enum(data, field, allowed, default, errors):
    value = data.get(field) or default
    if value not in allowed:
        errors[field] = f"must be one of: {', '.join(sorted(allowed))}"
    return value


# ── Workspaces ───────────────────────────────────────────────────────────────

def create_workspace(data):
    errors = {}
    name = _required_str(data, "name", errors, max_len=200)
    slug = _required_str(data, "slug", errors, max_len=100)
    if errors:
        raise ValidationError("Invalid workspace data.", details=errors)

    exists = db.session.execute(
        select(Workspace.id).where(Workspace.slug == slug)
    ).scalar_one_or_none()
    if exists is not None:
        raise ConflictError("Workspace", "slug", slug)

    ws = Workspace(name=name, slug=slug)
    db.session.add(ws)
    db.session.flush()
    return ws


def get_workspace(workspace_id):
    ws = db.session.get(Workspace, workspace_id)
    if ws is None:
        raise NotFoundError(resource="Workspace", resource_id=workspace_id)
    return ws


# ── Projects ─────────────────────────────────────────────────────────────────

def create_project(data):
    errors = {}
    name = _required_str(data, "name", errors)
    workspace_id = data.get("workspace_id")
    if errors:
        raise ValidationError("Invalid project data.", details=errors)
    if workspace_id is not None and db.session.get(Workspace, workspace_id) is None:
        raise NotFoundError(resource="Workspace", resource_id=workspace_id)

    project = Project(
        name=name,
        description=data.get("description"),
        workspace_id=workspace_id,
    )
    db.session.add(project)
    db.session.flush()
    logger.info("Project %s created (workspace=%s)", project.id, workspace_id)
    return project


def list_projects(workspace_id=None):
    stmt = select(Project).order_by(Project.id)
    if workspace_id is not None:
        stmt = stmt.where(Project.workspace_id == workspace_id)
    return list(db.session.execute(stmt).scalars())


# ── Test suites ──────────────────────────────────────────────────────────────

def create_suite(project_id, data):
    errors = {}
    name = _required_str(data, "name", errors)
    suite_type = data.get("type")
    if suite_type is not None and suite_type not in SUITE_TYPES:
        errors["type"] = f"must be one of: {', '.join(sorted(SUITE_TYPES))}"
    module = data.get("module")
    if isinstance(module, str):
        module = [module]
    if module is not None and not isinstance(module, list):
        errors["module"] = "must be a list of strings"

    parent_id = data.get("parent_id")
    if parent_id is not None:
        parent = db.session.get(TestSuite, parent_id)
        if parent is None or parent.project_id != project_id:
            errors["parent_id"] = "parent suite must belong to the same project"
    if errors:
        raise ValidationError("Invalid test suite data.", details=errors)

    suite = TestSuite(
        project_id=project_id,
        parent_id=parent_id,
        name=name,
        description=data.get("description"),
        type=suite_type,
        module=module,
        sort_order=data.get("sort_order") or 0,
    )
    db.session.add(suite)
    db.session.flush()
    return suite


def list_suites(project_id):
    return list(db.session.execute(
        select(TestSuite)
        .where(TestSuite.project_id == project_id)
        .order_by(TestSuite.sort_order, TestSuite.id)
    ).scalars())


def get_suite(suite_id):
    suite = db.session.get(TestSuite, suite_id)
    if suite is None:
        raise NotFoundError(resource="TestSuite", resource_id=suite_id)
    return suite


# ── Test cases ───────────────────────────────────────────────────────────────

def create_test_case(suite_id, data):
    suite = get_suite(suite_id)

    errors = {}
    title = _required_str(data, "title", errors)
    priority = _enum(data, "priority", TEST_CASE_PRIORITIES, "medium", errors)
    severity = _enum(data, "severity", TEST_CASE_SEVERITIES, "major", errors)
    tc_type = _enum(data, "type", TEST_CASE_TYPES, "functional", errors)
    automation_status = _enum(
        data, "automation_status", AUTOMATION_STATUSES, "not_automated", errors,
    )
    steps = data.get("steps")
    if steps is not None and not isinstance(steps, list):
        errors["steps"] = "must be a list"
    if errors:
        raise ValidationError("Invalid test case data.", details=errors)

    sort_order = data.get("sort_order")
    if sort_order is None:
        sort_order = suite.test_cases.count()

    tc = TestCase(
        test_suite_id=suite.id,
        title=title,
        description=data.get("description"),
        preconditions=data.get("preconditions"),
        steps=steps,
        expected_result=data.get("expected_result"),
        priority=priority,
        severity=severity,
        type=tc_type,
        automation_status=automation_status,
        tags=data.get("tags"),
        sort_order=sort_order,
    )
    db.session.add(tc)
    db.session.flush()
    return tc
