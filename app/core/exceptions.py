"""
Service-layer exception hierarchy.

Services raise these types; blueprints register one handler per type and
map them to HTTP status codes. Errors coming from the database layer are
NOT wrapped here; they propagate to the caller unchanged.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ProjectFeature", resource_id=7, project_id=3)
    raise ValidationError("name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """A resource does not exist inside the requested project scope.

    Raised both for genuinely missing rows and for rows that belong to a
    different project, so a 404 never confirms cross-project existence.

    Args:
        resource: Model name (e.g. "Project", "ProjectFeature").
        resource_id: The id that was looked up.
        project_id: The enforced project scope, for log context only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        project_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.project_id = project_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if project_id is not None:
            msg += f" (project={project_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Input was well-formed but violated a business rule. Maps to HTTP 422.

    Args:
        message: Human-readable explanation.
        details: Optional field -> error mapping for structured responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Operation would duplicate a unique value. Maps to HTTP 409."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")
