"""coverage_initial_schema

Create workspaces, projects, test suites/cases, project features,
the feature <-> test case association and coverage analysis snapshots.

Revision ID: 5e1f2a3b4c6d
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5e1f2a3b4c6d"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "workspaces" not in existing_tables:
        op.create_table(
            "workspaces",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("slug", sa.String(length=100), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug"),
        )

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("workspace_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_workspace_id", "projects", ["workspace_id"])

    if "test_suites" not in existing_tables:
        op.create_table(
            "test_suites",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("parent_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=True),
            sa.Column("module", sa.JSON(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["parent_id"], ["test_suites.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_test_suites_project_id", "test_suites", ["project_id"])
        op.create_index("ix_test_suites_parent_id", "test_suites", ["parent_id"])

    if "test_cases" not in existing_tables:
        op.create_table(
            "test_cases",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("test_suite_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("preconditions", sa.Text(), nullable=True),
            sa.Column("steps", sa.JSON(), nullable=True),
            sa.Column("expected_result", sa.Text(), nullable=True),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("severity", sa.String(length=20), nullable=False, server_default="major"),
            sa.Column("type", sa.String(length=30), nullable=False, server_default="functional"),
            sa.Column("automation_status", sa.String(length=30), nullable=False,
                      server_default="not_automated"),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["test_suite_id"], ["test_suites.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_test_cases_test_suite_id", "test_cases", ["test_suite_id"])

    if "project_features" not in existing_tables:
        op.create_table(
            "project_features",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("module", sa.JSON(), nullable=True),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_features_project_id", "project_features", ["project_id"])
        op.create_index(
            "ix_project_features_project_priority", "project_features", ["project_id", "priority"],
        )

    if "feature_test_case" not in existing_tables:
        op.create_table(
            "feature_test_case",
            sa.Column("feature_id", sa.Integer(), nullable=False),
            sa.Column("test_case_id", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["feature_id"], ["project_features.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["test_case_id"], ["test_cases.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("feature_id", "test_case_id"),
        )
        op.create_index("ix_feature_test_case_test_case_id", "feature_test_case", ["test_case_id"])

    if "coverage_analyses" not in existing_tables:
        op.create_table(
            "coverage_analyses",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("analysis_data", sa.JSON(), nullable=False),
            sa.Column("overall_coverage", sa.Integer(), nullable=True),
            sa.Column("total_features", sa.Integer(), nullable=True),
            sa.Column("covered_features", sa.Integer(), nullable=True),
            sa.Column("total_test_cases", sa.Integer(), nullable=True),
            sa.Column("gaps_count", sa.Integer(), nullable=True),
            sa.Column("analyzed_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_coverage_analyses_project_id", "coverage_analyses", ["project_id"])
        op.create_index(
            "ix_coverage_analyses_project_analyzed", "coverage_analyses", ["project_id", "analyzed_at"],
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    # Children first.
    for table in (
        "coverage_analyses",
        "feature_test_case",
        "project_features",
        "test_cases",
        "test_suites",
        "projects",
        "workspaces",
    ):
        if table in existing_tables:
            op.drop_table(table)
