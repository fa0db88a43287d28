from decimal import Decimal

from app.core.init_system import init_system_data
from app.models.approval_workflow import ApprovalWorkflow
from app.models.role import Role, SystemRole


def test_bootstrap_seeds_roles_and_workflows(db_session):
    init_system_data(db_session)

    names = {role.name for role in db_session.query(Role).all()}
    assert names == {r.value for r in SystemRole}

    workflows = db_session.query(ApprovalWorkflow).order_by(ApprovalWorkflow.min_days).all()
    assert [w.name for w in workflows] == ["Short Leave", "Medium Leave", "Long Leave"]
    assert [len(w.levels) for w in workflows] == [1, 2, 3]
    assert workflows[1].min_days == Decimal("2.5")


def test_bootstrap_is_idempotent(db_session):
    init_system_data(db_session)
    init_system_data(db_session)

    assert db_session.query(Role).count() == len(SystemRole)
    assert db_session.query(ApprovalWorkflow).count() == 3


def test_bootstrap_keeps_existing_workflows(db_session, roles):
    db_session.add(ApprovalWorkflow(
        name="Custom",
        min_days=Decimal("0.5"),
        max_days=Decimal("30"),
        approval_levels=[{"level": 1, "role_ids": [roles["HR"].id], "department_specific": False, "required": True}],
    ))
    db_session.commit()

    init_system_data(db_session)

    assert [w.name for w in db_session.query(ApprovalWorkflow).all()] == ["Custom"]
