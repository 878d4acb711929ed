"""
Tests — feature CRUD and manual linking (service layer).
"""

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.coverage import ProjectFeature
from app.services import coverage_access, feature_service


def test_create_feature_auto_links_matching_cases(project, make_suite, make_case):
    suite = make_suite(project)
    match = make_case(suite, "Password reset email is sent")
    make_case(suite, "Profile avatar upload")

    feature, linked = feature_service.create_feature(project.id, {
        "name": "  Password reset ",
        "priority": "critical",
        "module": "Auth",
        "category": "Security",
    })
    db.session.commit()

    assert feature.name == "Password reset"
    assert feature.module == ["Auth"]
    assert linked == [match.id]


@pytest.mark.parametrize("data, field", [
    ({"priority": "high"}, "name"),
    ({"name": "", "priority": "high"}, "name"),
    ({"name": "x" * 256, "priority": "high"}, "name"),
    ({"name": "Login"}, "priority"),
    ({"name": "Login", "priority": "urgent"}, "priority"),
    ({"name": "Login", "priority": "low", "module": [1, 2]}, "module"),
    ({"name": "Login", "priority": "low", "module": ["m" * 101]}, "module"),
    ({"name": "Login", "priority": "low", "category": "c" * 101}, "category"),
])
def test_create_feature_validation(project, data, field):
    with pytest.raises(ValidationError) as exc:
        feature_service.create_feature(project.id, data)
    assert field in exc.value.details


def test_create_feature_unknown_project():
    with pytest.raises(NotFoundError):
        feature_service.create_feature(9999, {"name": "Login", "priority": "low"})


def test_module_tags_deduplicated(project):
    feature, _ = feature_service.create_feature(project.id, {
        "name": "Cart", "priority": "medium", "module": ["Shop", "Shop", " ", "Web"],
    })
    assert feature.module == ["Shop", "Web"]


def test_update_feature_partial(project, make_feature):
    feature = make_feature(project, "Login", priority="low")

    feature_service.update_feature(project.id, feature.id, {"priority": "high", "is_active": False})
    db.session.commit()

    refreshed = db.session.get(ProjectFeature, feature.id)
    assert refreshed.priority == "high"
    assert refreshed.is_active is False
    assert refreshed.name == "Login"


def test_update_feature_rejects_bad_is_active(project, make_feature):
    feature = make_feature(project, "Login")
    with pytest.raises(ValidationError):
        feature_service.update_feature(project.id, feature.id, {"is_active": "no"})


def test_update_feature_cross_project_is_not_found(project, other_project, make_feature):
    feature = make_feature(other_project, "Login")
    with pytest.raises(NotFoundError):
        feature_service.update_feature(project.id, feature.id, {"priority": "low"})


def test_delete_feature_removes_associations(project, make_suite, make_case, make_feature, link):
    tc = make_case(make_suite(project), "Login ok")
    feature = make_feature(project, "Login")
    link(feature, tc)
    db.session.commit()
    feature_id = feature.id

    feature_service.delete_feature(project.id, feature_id)
    db.session.commit()

    assert db.session.get(ProjectFeature, feature_id) is None
    assert coverage_access.get_linked_test_case_ids(feature_id) == set()


def test_link_test_case_is_idempotent(project, make_suite, make_case, make_feature):
    tc = make_case(make_suite(project), "Anything")
    feature = make_feature(project, "Login")

    assert feature_service.link_test_case(project.id, feature.id, tc.id) is True
    assert feature_service.link_test_case(project.id, feature.id, tc.id) is False
    assert feature.test_cases.count() == 1


def test_link_test_case_from_other_project_rejected(project, other_project, make_suite, make_case, make_feature):
    foreign = make_case(make_suite(other_project), "Login elsewhere")
    feature = make_feature(project, "Login")

    with pytest.raises(ValidationError):
        feature_service.link_test_case(project.id, feature.id, foreign.id)


def test_unlink_test_case(project, make_suite, make_case, make_feature, link):
    tc = make_case(make_suite(project), "Login ok")
    feature = make_feature(project, "Login")
    link(feature, tc)

    assert feature_service.unlink_test_case(project.id, feature.id, tc.id) is True
    assert feature_service.unlink_test_case(project.id, feature.id, tc.id) is False


def test_list_project_test_cases(project, make_suite, make_case):
    suite = make_suite(project, "Smoke")
    tc = make_case(suite, "App starts")

    assert feature_service.list_project_test_cases(project.id) == [
        {"id": tc.id, "title": "App starts", "test_suite": {"id": suite.id, "name": "Smoke"}},
    ]


def test_list_features_hides_inactive_by_default(project, make_feature):
    make_feature(project, "Active")
    make_feature(project, "Retired", is_active=False)

    assert [f["name"] for f in feature_service.list_features(project.id)] == ["Active"]
    assert len(feature_service.list_features(project.id, include_inactive=True)) == 2
