from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin
from app.schemas.workflow import LevelApprovers, WorkflowCreate, WorkflowResponse, WorkflowUpdate
from app.services.workflow_catalog import WorkflowCatalog

router = APIRouter(prefix="/approval-workflows", tags=["approval-workflows"])


@router.post("", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
def create_workflow(
    payload: WorkflowCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    return WorkflowCatalog(db).create(payload)


@router.get("", response_model=List[WorkflowResponse])
def list_workflows(
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return WorkflowCatalog(db).list_workflows(is_active=is_active)


@router.get("/duration/{days}", response_model=WorkflowResponse)
def get_workflow_for_duration(
    days: Decimal,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The active workflow that would govern a leave of `days` days."""
    return WorkflowCatalog(db).find_applicable_workflow(days)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
def get_workflow(
    workflow_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return WorkflowCatalog(db).get(workflow_id)


@router.get("/{workflow_id}/approvers", response_model=List[LevelApprovers])
def get_workflow_approvers(
    workflow_id: int,
    requester_id: Optional[int] = None,
    department_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Who would be asked to approve at each level, optionally for a given requester."""
    return WorkflowCatalog(db).approvers_for_workflow(workflow_id, requester_id, department_id)


@router.put("/{workflow_id}", response_model=WorkflowResponse)
def update_workflow(
    workflow_id: int,
    payload: WorkflowUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    return WorkflowCatalog(db).update(workflow_id, payload)


@router.delete("/{workflow_id}")
def delete_workflow(
    workflow_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    WorkflowCatalog(db).delete(workflow_id)
    return {"message": "Approval workflow deleted successfully"}
