"""
Test Coverage Service
Coverage domain models.

Models:
    - ProjectFeature:     product capability tracked for test coverage
    - feature_test_case:  N:M edge between features and test cases
    - CoverageAnalysis:   write-once coverage snapshot for trend reporting

Architecture ref:
    Project ──1:N──▶ ProjectFeature ──N:M──▶ TestCase
    Project ──1:N──▶ CoverageAnalysis

A feature is covered iff it has at least one row in feature_test_case.
"""

from datetime import datetime, timezone

from sqlalchemy import event as _sa_event

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────

FEATURE_PRIORITIES = {"critical", "high", "medium", "low"}

UNCATEGORIZED_MODULE = "Uncategorized"


feature_test_case = db.Table(
    "feature_test_case",
    db.Column(
        "feature_id", db.Integer,
        db.ForeignKey("project_features.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "test_case_id", db.Integer,
        db.ForeignKey("test_cases.id", ondelete="CASCADE"),
        primary_key=True, index=True,
    ),
    db.Column(
        "created_at", db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    ),
)


# ═════════════════════════════════════════════════════════════════════════════
# PROJECT FEATURE
# ═════════════════════════════════════════════════════════════════════════════

class ProjectFeature(db.Model):
    """
    Product capability to be tested.

    module holds zero or more free-text module tags (JSON list). Inactive
    features are kept for reference but excluded from every coverage number.
    """

    __tablename__ = "project_features"
    __table_args__ = (
        db.Index("ix_project_features_project_priority", "project_id", "priority"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    module = db.Column(db.JSON, nullable=True, comment="List of module tags")
    category = db.Column(db.String(100), nullable=True)
    priority = db.Column(
        db.String(20), nullable=False, default="medium",
        comment="critical | high | medium | low",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)

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
        "TestCase",
        secondary=feature_test_case,
        lazy="dynamic",
        backref=db.backref("features", lazy="dynamic"),
    )

    @property
    def modules(self):
        """Module tags as a list; [] when unset."""
        return list(self.module or [])

    def to_dict(self, include_test_cases=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "module": self.modules,
            "category": self.category,
            "priority": self.priority,
            "is_active": self.is_active,
            "test_cases_count": self.test_cases.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_test_cases:
            from app.models.testing import TestCase

            result["test_cases"] = [
                {
                    "id": tc.id,
                    "title": tc.title,
                    "test_suite": {"id": tc.suite.id, "name": tc.suite.name},
                }
                for tc in self.test_cases.order_by(TestCase.id)
            ]
        return result

    def __repr__(self):
        return f"<ProjectFeature {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# COVERAGE ANALYSIS SNAPSHOT
# ═════════════════════════════════════════════════════════════════════════════

class CoverageAnalysis(db.Model):
    """
    Point-in-time coverage snapshot for trend reporting.

    Business rule: created on demand, never mutated. analysis_data is an
    opaque payload (local statistics or an externally enriched analysis
    with summary / risks / recommendations).
    """

    __tablename__ = "coverage_analyses"
    __table_args__ = (
        db.Index("ix_coverage_analyses_project_analyzed", "project_id", "analyzed_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    analysis_data = db.Column(db.JSON, nullable=False)
    overall_coverage = db.Column(db.Integer, nullable=True)
    total_features = db.Column(db.Integer, nullable=True)
    covered_features = db.Column(db.Integer, nullable=True)
    total_test_cases = db.Column(db.Integer, nullable=True)
    gaps_count = db.Column(db.Integer, nullable=True)
    analyzed_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "analysis_data": self.analysis_data,
            "overall_coverage": self.overall_coverage,
            "total_features": self.total_features,
            "covered_features": self.covered_features,
            "total_test_cases": self.total_test_cases,
            "gaps_count": self.gaps_count,
            "analyzed_at": self.analyzed_at.isoformat() if self.analyzed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def to_trend_point(self):
        """Compact shape used by the history endpoint."""
        return {
            "date": self.analyzed_at.strftime("%Y-%m-%d") if self.analyzed_at else None,
            "coverage": self.overall_coverage,
            "features": self.total_features,
            "gaps": self.gaps_count,
        }

    def __repr__(self):
        return f"<CoverageAnalysis {self.id}: project={self.project_id} {self.overall_coverage}%>"


@_sa_event.listens_for(CoverageAnalysis, "before_update")
def _reject_snapshot_update(mapper, connection, target):
    """Snapshots are write-once."""
    raise ValueError(f"CoverageAnalysis id={target.id} is immutable")
