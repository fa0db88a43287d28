"""
Approver Resolution

Turns an approval level definition into the concrete users who may act on it.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.approval_workflow import ApprovalWorkflow
from app.models.user import User
from app.schemas.workflow import ApprovalLevel


def resolve_approvers(
    db: Session,
    level: ApprovalLevel,
    requester_id: Optional[int] = None,
    department_id: Optional[int] = None,
) -> List[User]:
    """
    Active users holding one of the level's roles.

    Department-specific levels keep only users of `department_id` (when the
    requester has a department); the requester is always excluded. An empty
    list means nobody can approve the level, which callers must treat as a
    configuration failure.
    """
    if not level.role_ids:
        return []

    query = db.query(User).filter(
        User.role_id.in_(level.role_ids),
        User.is_active == True,  # noqa: E712
    )
    if level.department_specific and department_id is not None:
        query = query.filter(User.department_id == department_id)
    if requester_id is not None:
        query = query.filter(User.id != requester_id)

    unique = {}
    for user in query.order_by(User.id).all():
        unique.setdefault(user.id, user)
    return list(unique.values())


def approvers_for_workflow(
    db: Session,
    workflow: ApprovalWorkflow,
    requester_id: Optional[int] = None,
    department_id: Optional[int] = None,
) -> List[dict]:
    return [
        {
            "level": level.level,
            "approvers": resolve_approvers(db, level, requester_id, department_id),
        }
        for level in workflow.levels
    ]
