"""
Test Coverage Service
Blueprint helpers shared by the API blueprints.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.utils.errors import E, api_error, service_error_response

logger = logging.getLogger(__name__)

SERVICE_ERRORS = (NotFoundError, ValidationError, ConflictError)


def register_error_handlers(bp):
    """Map service exceptions to JSON envelopes on ``bp``.

    The session is rolled back first: a service may have flushed rows before
    raising, and nothing from a failed request may reach the next commit.
    """

    def _handle_service_error(error):
        db.session.rollback()
        logger.info("%s rejected: %s", request.endpoint, error)
        return service_error_response(error)

    for exc_type in SERVICE_ERRORS:
        bp.register_error_handler(exc_type, _handle_service_error)

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unhandled error in %s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
