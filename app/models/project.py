"""Workspace -> Project hierarchy.

A Workspace is the tenant root; every Project belongs to at most one
workspace. Projects own test suites, coverage features and coverage
analysis snapshots.
"""

from datetime import datetime, timezone

from app.models import db


class Workspace(db.Model):
    """Tenant container for projects."""

    __tablename__ = "workspaces"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), nullable=False, unique=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    projects = db.relationship(
        "Project", backref="workspace", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Workspace {self.id}: {self.slug}>"


class Project(db.Model):
    """QA project: the scope of every coverage computation."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    workspace_id = db.Column(
        db.Integer,
        db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Nullable for single-tenant installs",
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships
    test_suites = db.relationship(
        "TestSuite", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
        foreign_keys="TestSuite.project_id",
    )
    features = db.relationship(
        "ProjectFeature", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    coverage_analyses = db.relationship(
        "CoverageAnalysis", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "name": self.name,
            "description": self.description,
            "suite_count": self.test_suites.count(),
            "feature_count": self.features.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"
