"""Coverage feature management: CRUD plus manual test case links.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for committing.

Creating a feature immediately auto-links matching test cases, so a
quick-created feature shows its coverage right away.
"""

import logging

from app.core.exceptions import ValidationError
from app.models import db
from app.models.coverage import FEATURE_PRIORITIES, ProjectFeature
from app.services import auto_link_service, coverage_access

logger = logging.getLogger(__name__)

NAME_MAX = 255
MODULE_MAX = 100
CATEGORY_MAX = 100


# ── Input normalization ──────────────────────────────────────────────────────

def _clean_modules(value, errors):
    """Accept a list of tags or a single string; return a deduplicated list."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        errors["module"] = "must be a list of strings"
        return []

    modules = []
    for item in value:
        if not isinstance(item, str):
            errors["module"] = "must be a list of strings"
            return []
        text = item.strip()
        if not text:
            continue
        if len(text) > MODULE_MAX:
            errors["module"] = f"each module must be at most {MODULE_MAX} characters"
            return []
        modules.append(text)
    return list(dict.fromkeys(modules))


def _validate_feature_data(data, partial=False):
    """Validate and normalize a feature payload.

    Returns:
        dict of clean field values present in ``data``.

    Raises:
        ValidationError: with per-field details.
    """
    errors = {}
    clean = {}

    if "name" in data or not partial:
        name = data.get("name")
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            errors["name"] = "is required"
        elif len(name) > NAME_MAX:
            errors["name"] = f"must be at most {NAME_MAX} characters"
        else:
            clean["name"] = name

    if "priority" in data or not partial:
        priority = data.get("priority")
        if priority not in FEATURE_PRIORITIES:
            errors["priority"] = f"must be one of: {', '.join(sorted(FEATURE_PRIORITIES))}"
        else:
            clean["priority"] = priority

    if "description" in data:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            errors["description"] = "must be a string"
        else:
            clean["description"] = description or None

    if "module" in data:
        clean["module"] = _clean_modules(data.get("module"), errors)

    if "category" in data:
        category = data.get("category")
        if category is not None and not isinstance(category, str):
            errors["category"] = "must be a string"
        elif category and len(category) > CATEGORY_MAX:
            errors["category"] = f"must be at most {CATEGORY_MAX} characters"
        else:
            clean["category"] = (category or "").strip() or None

    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            errors["is_active"] = "must be a boolean"
        else:
            clean["is_active"] = data["is_active"]

    if errors:
        raise ValidationError("Invalid feature data.", details=errors)
    return clean


# ═════════════════════════════════════════════════════════════════════════════
# FEATURE CRUD
# ═════════════════════════════════════════════════════════════════════════════

def list_features(project_id, include_inactive=False):
    features = coverage_access.get_features(project_id, include_inactive=include_inactive)
    return [f.to_dict(include_test_cases=True) for f in features]


def create_feature(project_id, data):
    """Create a feature and auto-link matching test cases.

    Returns:
        (feature, linked_test_case_ids)
    """
    coverage_access.get_project(project_id)
    clean = _validate_feature_data(data)

    feature = ProjectFeature(project_id=project_id, **clean)
    db.session.add(feature)
    db.session.flush()

    linked = auto_link_service.auto_link_feature(project_id, feature)
    logger.info("Feature %s created in project %s (%d auto-linked)", feature.id, project_id, len(linked))
    return feature, linked


def update_feature(project_id, feature_id, data):
    """Partial update. Links are left untouched, even after a rename."""
    feature = coverage_access.get_feature(project_id, feature_id)
    clean = _validate_feature_data(data, partial=True)
    for field, value in clean.items():
        setattr(feature, field, value)
    db.session.flush()
    return feature


def delete_feature(project_id, feature_id):
    """Delete a feature; its association rows go with it."""
    feature = coverage_access.get_feature(project_id, feature_id)
    db.session.delete(feature)
    db.session.flush()
    logger.info("Feature %s deleted from project %s", feature_id, project_id)


# ═════════════════════════════════════════════════════════════════════════════
# MANUAL LINKING
# ═════════════════════════════════════════════════════════════════════════════

def link_test_case(project_id, feature_id, test_case_id):
    """Manually link a project test case to a feature (idempotent).

    Returns:
        True when a new link was created, False when it already existed.

    Raises:
        NotFoundError: feature is not in the project.
        ValidationError: test case is not in the project.
    """
    feature = coverage_access.get_feature(project_id, feature_id)
    tc = coverage_access.get_project_test_case(project_id, test_case_id)
    return bool(coverage_access.attach_associations(feature.id, [tc.id]))


def unlink_test_case(project_id, feature_id, test_case_id):
    feature = coverage_access.get_feature(project_id, feature_id)
    return coverage_access.detach_association(feature.id, test_case_id)


def list_project_test_cases(project_id):
    """Picker list of every test case in the project with its suite."""
    return [
        {
            "id": tc.id,
            "title": tc.title,
            "test_suite": {"id": tc.suite.id, "name": tc.suite.name},
        }
        for tc in coverage_access.get_test_cases_for_project(project_id)
    ]
