import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.approval_workflow import ApprovalWorkflow
from app.models.role import Role, SystemRole

logger = logging.getLogger(__name__)

SYSTEM_ROLE_DESCRIPTIONS = {
    SystemRole.SUPER_ADMIN: "Full access to every organization setting",
    SystemRole.HR: "Human resources; approves and administers all leave",
    SystemRole.MANAGER: "Department or line manager",
    SystemRole.TEAM_LEAD: "Team lead; first approval step for short leaves",
    SystemRole.EMPLOYEE: "Regular employee",
}

# (name, min_days, max_days, approver role per level)
DEFAULT_WORKFLOWS = [
    ("Short Leave", Decimal("0.5"), Decimal("2"), [SystemRole.TEAM_LEAD]),
    ("Medium Leave", Decimal("2.5"), Decimal("5"), [SystemRole.TEAM_LEAD, SystemRole.MANAGER]),
    ("Long Leave", Decimal("5.5"), Decimal("365"), [SystemRole.TEAM_LEAD, SystemRole.MANAGER, SystemRole.HR]),
]


def seed_roles(db: Session) -> dict:
    """Create missing system roles; returns {name: Role}."""
    existing = {role.name: role for role in db.query(Role).all()}
    for role_name, description in SYSTEM_ROLE_DESCRIPTIONS.items():
        if role_name.value not in existing:
            role = Role(name=role_name.value, description=description, is_system=True)
            db.add(role)
            existing[role_name.value] = role
            logger.info(f"✓ Created system role {role_name.value}")
    db.flush()
    return existing


def seed_workflows(db: Session, roles: dict) -> int:
    """Default duration bands; skipped entirely once any workflow exists."""
    if db.query(ApprovalWorkflow.id).first() is not None:
        return 0
    for name, min_days, max_days, approver_roles in DEFAULT_WORKFLOWS:
        levels = [
            {
                "level": number,
                "role_ids": [roles[role_name.value].id],
                "department_specific": role_name != SystemRole.HR,
                "required": True,
            }
            for number, role_name in enumerate(approver_roles, start=1)
        ]
        db.add(ApprovalWorkflow(name=name, min_days=min_days, max_days=max_days, approval_levels=levels, is_active=True))
        logger.info(f"✓ Created default workflow '{name}' ({min_days}-{max_days} days)")
    return len(DEFAULT_WORKFLOWS)


def init_system_data(db: Optional[Session] = None) -> None:
    """
    Idempotent bootstrap: system roles plus the default approval workflows.
    """
    owns_session = db is None
    db = db or SessionLocal()
    try:
        roles = seed_roles(db)
        created = seed_workflows(db, roles)
        db.commit()
        if created:
            logger.info(f"✓ System bootstrapped with {created} default workflow(s)")
        else:
            logger.info("System initialization check: workflows already configured.")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
        raise
    finally:
        if owns_session:
            db.close()
