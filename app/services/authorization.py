"""
Approver authorization rules.

Answers "may this actor act on that user's leave?" from reporting lines and
roles only; it knows nothing about workflow levels.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.models.department import Department
from app.models.user import User


@dataclass(frozen=True)
class AuthorizationResult:
    is_authorized: bool
    reason: Optional[str] = None


def is_approver_authorized(db: Session, actor_id: int, target_user_id: int) -> AuthorizationResult:
    """
    Access rules:
    - Nobody acts on their own requests
    - SUPER_ADMIN, HR: any user
    - The target's direct manager or team lead
    - The manager of the target's department
    """
    if actor_id == target_user_id:
        return AuthorizationResult(False, "You cannot approve your own leave request")

    actor = db.get(User, actor_id)
    if actor is None or not actor.is_active:
        return AuthorizationResult(False, "Approver not found or inactive")

    target = db.get(User, target_user_id)
    if target is None:
        return AuthorizationResult(False, "Requesting user not found")

    if actor.is_admin_or_hr:
        return AuthorizationResult(True)

    if target.manager_id == actor.id or target.team_lead_id == actor.id:
        return AuthorizationResult(True)

    if target.department_id is not None:
        department = db.get(Department, target.department_id)
        if department is not None and department.manager_user_id == actor.id:
            return AuthorizationResult(True)

    return AuthorizationResult(False, "You are not authorized to act on this user's leave requests")


def is_manager_or_admin(actor: User, target: User) -> bool:
    """Deletion decisions: the requester's manager, or admin/HR."""
    return target.manager_id == actor.id or actor.is_admin_or_hr
