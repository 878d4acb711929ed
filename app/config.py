"""
Test Coverage Service
Configuration classes, selected by name in create_app().

    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name]())

Environment variables read here:
    DATABASE_URL, TEST_DATABASE_URL, SECRET_KEY, CORS_ORIGINS, REDIS_URL,
    LOG_LEVEL, LOG_FORMAT, COVERAGE_HISTORY_LIMIT, COVERAGE_HISTORY_MAX_LIMIT,
    RATELIMIT_PROJECT, RATELIMIT_COVERAGE
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def _db_url_from_env(var="DATABASE_URL"):
    # Heroku-style postgres:// is rejected by SQLAlchemy 2.x
    raw = os.getenv(var, "")
    if raw.startswith("postgres://"):
        return "postgresql://" + raw[len("postgres://"):]
    return raw or None


def _int_env(name, default):
    return int(os.getenv(name, str(default)))


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    LOG_LEVEL = os.getenv("LOG_LEVEL")
    LOG_FORMAT = os.getenv("LOG_FORMAT")  # json | console; None picks by environment

    # Flask-Limiter
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    RATELIMIT_ENABLED = True
    RATELIMIT_PROJECT = os.getenv("RATELIMIT_PROJECT", "60/minute")
    RATELIMIT_COVERAGE = os.getenv("RATELIMIT_COVERAGE", "120/minute")

    # Trend history: default length and the most a caller may ask for
    COVERAGE_HISTORY_LIMIT = _int_env("COVERAGE_HISTORY_LIMIT", 30)
    COVERAGE_HISTORY_MAX_LIMIT = _int_env("COVERAGE_HISTORY_MAX_LIMIT", 365)


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = (
        _db_url_from_env()
        or f"sqlite:///{os.path.join(basedir, 'instance', 'coverage_dev.db')}"
    )


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = _db_url_from_env("TEST_DATABASE_URL") or "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _db_url_from_env()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        # 30s per statement; coverage queries are project-scoped and short
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL must be set in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
