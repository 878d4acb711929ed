"""
Tests — per-blueprint rate limits.

The session app runs with RATELIMIT_ENABLED off, so these tests build a
separate app with its own Limiter and tight limits:
  - coverage routes answer 429 once RATELIMIT_COVERAGE is spent
  - project routes follow RATELIMIT_PROJECT instead
  - health probes are exempt even from the limiter's default limit
"""

import pytest
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from app.blueprints.coverage_bp import coverage_bp
from app.blueprints.health_bp import health_bp
from app.blueprints.project_bp import project_bp
from app.config import TestingConfig
from app.middleware.rate_limiter import init_rate_limits
from app.models import db
from app.models.project import Project


@pytest.fixture()
def limited_app():
    app = Flask(__name__)
    app.config.from_object(TestingConfig())
    app.config.update(
        SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
        RATELIMIT_ENABLED=True,
        RATELIMIT_COVERAGE="2/minute",
        RATELIMIT_PROJECT="3/minute",
    )
    db.init_app(app)
    limiter = Limiter(get_remote_address, default_limits=["2/minute"], storage_uri="memory://")
    limiter.init_app(app)
    for bp in (health_bp, project_bp, coverage_bp):
        app.register_blueprint(bp)
    init_rate_limits(app, limiter)

    with app.app_context():
        db.create_all()
        project = Project(name="Rate limited")
        db.session.add(project)
        db.session.commit()
        app.config["LIMITED_PROJECT_ID"] = project.id
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_coverage_limit_returns_429(limited_app):
    client = limited_app.test_client()
    url = f"/api/v1/projects/{limited_app.config['LIMITED_PROJECT_ID']}/coverage/statistics"

    codes = [client.get(url).status_code for _ in range(3)]

    assert codes == [200, 200, 429]


def test_project_routes_use_project_limit(limited_app):
    client = limited_app.test_client()
    project_id = limited_app.config["LIMITED_PROJECT_ID"]

    codes = [client.get(f"/api/v1/projects/{project_id}").status_code for _ in range(4)]

    assert codes == [200, 200, 200, 429]


def test_health_is_exempt(limited_app):
    client = limited_app.test_client()

    codes = {client.get("/api/v1/health/live").status_code for _ in range(5)}

    assert codes == {200}
