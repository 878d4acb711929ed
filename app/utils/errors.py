"""JSON error envelope shared by every endpoint.

Body shape::

    {"error": "<human message>", "code": "ERR_...", "details": {...}}

``details`` is only present for field-level validation failures.

Blueprint code returns ``api_error(...)`` for request-shape problems it
detects itself (bad query parameter, non-object body). Service exceptions
go through ``service_error_response`` via the blueprint error handlers.
"""

from __future__ import annotations

from flask import jsonify

from app.core.exceptions import ConflictError, NotFoundError, ValidationError


class E:
    """Machine-readable error codes."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"      # 400 missing field
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"        # 400 malformed input
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"  # 422 business rule
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}

# Service exception type -> error code
_CODE_BY_EXCEPTION = (
    (NotFoundError, E.NOT_FOUND),
    (ValidationError, E.VALIDATION_CONSTRAINT),
    (ConflictError, E.CONFLICT_DUPLICATE),
)


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(response, status)`` for a Flask view.

    ``status`` overrides the code's default HTTP status (400 when unknown).
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)


def service_error_response(exc: Exception):
    """Translate a service-layer exception into the standard envelope."""
    for exc_type, code in _CODE_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return api_error(code, str(exc), details=getattr(exc, "details", None))
    return api_error(E.INTERNAL, "Internal server error")
