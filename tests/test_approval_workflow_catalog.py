import pytest
from decimal import Decimal

from app.core.exceptions import (
    DuplicateNameError,
    NotFoundError,
    OverlappingRangeError,
    ValidationError,
    WorkflowNotFoundError,
)
from app.services.workflow_catalog import WorkflowCatalog


def _definition(name="Short Leave", min_days="0.5", max_days="2", levels=None, **extra):
    data = {
        "name": name,
        "min_days": min_days,
        "max_days": max_days,
        "approval_levels": levels or [{"level": 1, "role_ids": ["TEAM_LEAD"]}],
    }
    data.update(extra)
    return data


def test_create_resolves_role_names_and_ids(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    workflow = catalog.create(_definition(levels=[
        {"level": 2, "role_ids": [roles["MANAGER"].id, "manager"]},
        {"level": 1, "role_ids": ["team_lead"], "department_specific": True},
    ]))

    assert [lvl.level for lvl in workflow.levels] == [1, 2]
    assert workflow.levels[0].role_ids == [roles["TEAM_LEAD"].id]
    assert workflow.levels[0].department_specific is True
    # Duplicates collapse once resolved to ids
    assert workflow.levels[1].role_ids == [roles["MANAGER"].id]


def test_create_rejects_unknown_role(db_session, roles):
    with pytest.raises(ValidationError) as exc:
        WorkflowCatalog(db_session).create(_definition(levels=[{"level": 1, "role_ids": ["JANITOR"]}]))
    assert exc.value.details == {"level": 1, "role": "JANITOR"}


@pytest.mark.parametrize("levels", [
    [],
    [{"level": 0, "role_ids": ["HR"]}],
    [{"level": 1, "role_ids": []}],
    [{"level": 1, "role_ids": ["HR"]}, {"level": 1, "role_ids": ["MANAGER"]}],
    [{"level": 1, "role_ids": [1.5]}],
])
def test_create_rejects_malformed_levels(db_session, roles, levels):
    data = _definition()
    data["approval_levels"] = levels
    with pytest.raises(ValidationError):
        WorkflowCatalog(db_session).create(data)


def test_create_rejects_inverted_range(db_session, roles):
    with pytest.raises(ValidationError):
        WorkflowCatalog(db_session).create(_definition(min_days="5", max_days="2"))


def test_create_rejects_duplicate_name(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    catalog.create(_definition())
    with pytest.raises(DuplicateNameError):
        catalog.create(_definition(min_days="3", max_days="4"))


def test_create_rejects_overlapping_active_range(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    catalog.create(_definition())
    with pytest.raises(OverlappingRangeError) as exc:
        catalog.create(_definition(name="Overlap", min_days="2", max_days="4"))
    assert exc.value.details["overlapping_workflows"][0]["name"] == "Short Leave"


def test_inactive_workflows_may_overlap(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    catalog.create(_definition())
    draft = catalog.create(_definition(name="Draft", min_days="1", max_days="3", is_active=False))
    assert draft.is_active is False


def test_create_rejects_unknown_category(db_session, roles):
    with pytest.raises(ValidationError):
        WorkflowCatalog(db_session).create(_definition(category_id=42))


def test_update_excludes_itself_from_overlap_check(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    workflow = catalog.create(_definition())

    updated = catalog.update(workflow.id, {"max_days": "3", "approval_levels": [{"level": 1, "role_ids": ["HR"]}]})

    assert updated.max_days == Decimal("3")
    assert updated.levels[0].role_ids == [roles["HR"].id]


def test_update_rejects_overlap_with_other_workflow(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    catalog.create(_definition())
    medium = catalog.create(_definition(name="Medium Leave", min_days="2.5", max_days="5"))
    with pytest.raises(OverlappingRangeError):
        catalog.update(medium.id, {"min_days": "1"})


def test_update_rejects_inverted_range(db_session, roles):
    catalog = WorkflowCatalog(db_session)
    workflow = catalog.create(_definition())
    with pytest.raises(ValidationError):
        catalog.update(workflow.id, {"min_days": "3"})


def test_find_applicable_workflow_boundaries(db_session, default_workflows):
    catalog = WorkflowCatalog(db_session)
    assert catalog.find_applicable_workflow(Decimal("0.5")).name == "Short Leave"
    assert catalog.find_applicable_workflow(Decimal("2")).name == "Short Leave"
    assert catalog.find_applicable_workflow(Decimal("2.5")).name == "Medium Leave"
    assert catalog.find_applicable_workflow(Decimal("6")).name == "Long Leave"
    with pytest.raises(WorkflowNotFoundError):
        catalog.find_applicable_workflow(Decimal("0.25"))


def test_find_applicable_workflow_ignores_inactive(db_session, default_workflows):
    catalog = WorkflowCatalog(db_session)
    catalog.update(default_workflows["Short Leave"].id, {"is_active": False})
    with pytest.raises(WorkflowNotFoundError):
        catalog.find_applicable_workflow(Decimal("1"))


def test_list_orders_by_min_days(db_session, default_workflows):
    names = [w.name for w in WorkflowCatalog(db_session).list_workflows(is_active=True)]
    assert names == ["Short Leave", "Medium Leave", "Long Leave"]


def test_delete_workflow(db_session, default_workflows):
    catalog = WorkflowCatalog(db_session)
    workflow_id = default_workflows["Long Leave"].id
    catalog.delete(workflow_id)
    with pytest.raises(NotFoundError):
        catalog.get(workflow_id)
    with pytest.raises(NotFoundError):
        catalog.delete(workflow_id)


def test_update_null_is_active_still_checks_overlap(db_session, default_workflows):
    catalog = WorkflowCatalog(db_session)
    short = default_workflows["Short Leave"]

    with pytest.raises(OverlappingRangeError):
        catalog.update(short.id, {"min_days": "0.5", "max_days": "4", "is_active": None})

    db_session.expire_all()
    stored = catalog.get(short.id)
    assert stored.max_days == Decimal("2")
    assert stored.is_active is True


def test_update_null_range_bound_keeps_stored_value(db_session, default_workflows):
    catalog = WorkflowCatalog(db_session)
    short = default_workflows["Short Leave"]

    updated = catalog.update(short.id, {"min_days": None, "max_days": None, "name": "Quick Leave"})

    assert updated.name == "Quick Leave"
    assert updated.min_days == Decimal("0.5")
    assert updated.max_days == Decimal("2")


def test_update_can_clear_category(db_session, roles):
    from app.models.approval_workflow import WorkflowCategory

    category = WorkflowCategory(name="Standard")
    db_session.add(category)
    db_session.commit()
    catalog = WorkflowCatalog(db_session)
    workflow = catalog.create(_definition(category_id=category.id))

    updated = catalog.update(workflow.id, {"category_id": None})
    assert updated.category_id is None
