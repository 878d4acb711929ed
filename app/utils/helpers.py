"""Shared blueprint helpers.

db_commit_or_error:  single commit point per request, maps DB errors to JSON
parse_limit:         bounded integer query parameter
json_object_body:    request JSON that must be an object (empty body -> {})
"""
import logging

from flask import request

from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def json_object_body():
    """Return ``(data, None)`` or ``(None, error_response)`` when the body is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None


def parse_limit(default, max_limit, name="limit"):
    """Read an integer query parameter capped at ``max_limit``.

    Returns:
        (value, None) on success, (None, error_response) on bad input.
    """
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default, None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be an integer")
    if value < 1:
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be a positive integer")
    return min(value, max_limit), None


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    Other → 500 (unexpected)
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")
