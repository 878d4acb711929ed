"""
Test Coverage Service
Testing domain models.

Models:
    - TestSuite:  grouping of test cases within a project (nestable)
    - TestCase:   individual test case in a suite

Architecture ref:
    Project ──1:N──▶ Test Suite ──1:N──▶ Test Case
    Test Case ──N:M──▶ Project Feature  (see app.models.coverage)

A test case belongs to exactly one suite, which belongs to exactly one
project; that chain is what scopes test cases into a project's coverage.
"""

from datetime import datetime, timezone

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────

TEST_CASE_PRIORITIES = {"low", "medium", "high", "critical"}

TEST_CASE_SEVERITIES = {"trivial", "minor", "major", "critical", "blocker"}

TEST_CASE_TYPES = {
    "functional", "smoke", "regression", "integration", "acceptance",
    "performance", "security", "usability", "other",
}

AUTOMATION_STATUSES = {"not_automated", "to_be_automated", "automated"}

SUITE_TYPES = {"functional", "regression", "smoke", "integration", "e2e", "other"}


# ═════════════════════════════════════════════════════════════════════════════
# TEST SUITE
# ═════════════════════════════════════════════════════════════════════════════

class TestSuite(db.Model):
    """
    Logical grouping of test cases inside a project.

    Suites can nest through parent_id; coverage does not care about the
    nesting, only about the owning project.
    """

    __tablename__ = "test_suites"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    parent_id = db.Column(
        db.Integer, db.ForeignKey("test_suites.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(30), nullable=True, comment="functional | regression | smoke | ...")
    module = db.Column(db.JSON, nullable=True, comment="List of module tags")
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    # ── Audit
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships
    test_cases = db.relationship(
        "TestCase", backref="suite", lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="TestCase.sort_order",
    )
    children = db.relationship(
        "TestSuite", backref=db.backref("parent", remote_side=[id]),
        lazy="dynamic", cascade="all, delete-orphan",
    )

    def to_dict(self, include_cases=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "module": self.module or [],
            "sort_order": self.sort_order,
            "case_count": self.test_cases.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_cases:
            result["test_cases"] = [tc.to_dict() for tc in self.test_cases]
        return result

    def __repr__(self):
        return f"<TestSuite {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# TEST CASE
# ═════════════════════════════════════════════════════════════════════════════

class TestCase(db.Model):
    """Manual or automated test case. Its title drives feature auto-linking."""

    __tablename__ = "test_cases"

    id = db.Column(db.Integer, primary_key=True)
    test_suite_id = db.Column(
        db.Integer, db.ForeignKey("test_suites.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    preconditions = db.Column(db.Text, nullable=True)
    steps = db.Column(db.JSON, nullable=True, comment="[{action, expected}]")
    expected_result = db.Column(db.Text, nullable=True)
    priority = db.Column(db.String(20), nullable=False, default="medium")
    severity = db.Column(db.String(20), nullable=False, default="major")
    type = db.Column(db.String(30), nullable=False, default="functional")
    automation_status = db.Column(db.String(30), nullable=False, default="not_automated")
    tags = db.Column(db.JSON, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "test_suite_id": self.test_suite_id,
            "title": self.title,
            "description": self.description,
            "preconditions": self.preconditions,
            "steps": self.steps or [],
            "expected_result": self.expected_result,
            "priority": self.priority,
            "severity": self.severity,
            "type": self.type,
            "automation_status": self.automation_status,
            "tags": self.tags or [],
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<TestCase {self.id}: {self.title[:30]}>"
