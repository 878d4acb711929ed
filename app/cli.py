"""Coverage CLI commands.

Usage:
    flask coverage stats 3
    flask coverage auto-link 3
    flask coverage snapshot 3
"""

import json
import logging

import click
from flask.cli import AppGroup

from app.core.exceptions import NotFoundError
from app.models import db
from app.services import (
    auto_link_service,
    coverage_access,
    coverage_calculator,
    coverage_snapshot_service,
)

logger = logging.getLogger(__name__)

coverage_cli = AppGroup("coverage", help="Test coverage maintenance commands.")


def _require_project(project_id):
    try:
        return coverage_access.get_project(project_id)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc


@coverage_cli.command("stats")
@click.argument("project_id", type=int)
def stats_cmd(project_id):
    """Print coverage statistics for a project as JSON."""
    _require_project(project_id)
    click.echo(json.dumps(coverage_calculator.get_statistics(project_id), indent=2))


@coverage_cli.command("auto-link")
@click.argument("project_id", type=int)
def auto_link_cmd(project_id):
    """Auto-link test cases to every active feature of a project."""
    _require_project(project_id)
    results = auto_link_service.auto_link_all_features(project_id)
    db.session.commit()
    created = sum(len(ids) for ids in results.values())
    click.echo(f"Processed {len(results)} feature(s), created {created} link(s).")


@coverage_cli.command("snapshot")
@click.argument("project_id", type=int)
def snapshot_cmd(project_id):
    """Record a coverage snapshot from local statistics."""
    _require_project(project_id)
    snapshot = coverage_snapshot_service.create_snapshot(project_id)
    db.session.commit()
    click.echo(f"Snapshot {snapshot.id}: {snapshot.overall_coverage}% coverage, "
               f"{snapshot.gaps_count} gap(s).")
