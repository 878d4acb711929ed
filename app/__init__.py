"""
Test Coverage Service
Flask application factory.

    from app import create_app
    app = create_app()           # APP_ENV or "development"
    app = create_app("testing")
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

from app.config import config
from app.models import db
from app.middleware.logging_config import configure_logging
from app.middleware.rate_limiter import init_rate_limits
from app.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # limits are per blueprint, see middleware/rate_limiter.py
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_name=None):
    """Build the app for ``config_name`` ("development", "testing", "production")."""
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    configure_logging(app)
    _init_extensions(app)
    init_request_timing(app)
    _init_schema(app)
    _register_blueprints(app)
    _register_app_error_handlers(app)
    init_rate_limits(app, limiter)

    from app.cli import coverage_cli
    app.cli.add_command(coverage_cli)

    logger.debug("App created (config=%s)", config_name)
    return app


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    origins = app.config.get("CORS_ORIGINS") or ""
    if origins == "*":
        CORS(app)
    elif origins:
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])


def _init_schema(app):
    # Model modules must be imported before create_all / Alembic autogenerate
    from app.models import coverage, project, testing  # noqa: F401

    with app.app_context():
        try:
            db.create_all()
        except Exception as exc:
            # Migrations own the schema; startup continues without it
            logger.warning("db.create_all() skipped: %s", exc)


def _register_blueprints(app):
    from app.blueprints.coverage_bp import coverage_bp
    from app.blueprints.health_bp import health_bp
    from app.blueprints.project_bp import project_bp

    for bp in (health_bp, project_bp, coverage_bp):
        app.register_blueprint(bp)


def _register_app_error_handlers(app):
    """Fallbacks for errors raised outside any blueprint (unknown routes etc.)."""

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500
