import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin
from app.schemas.leave import (
    DeletionDecision,
    LeaveDeletionResponse,
    LeaveRequestCreate,
    LeaveRequestList,
    LeaveRequestResponse,
    LeaveStatusUpdate,
)
from app.services.leave_request_service import LeaveRequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


def _as_list(requests) -> LeaveRequestList:
    items = [LeaveRequestResponse.model_validate(r) for r in requests]
    return LeaveRequestList(leave_requests=items, count=len(items))


@router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
def create_leave_request(
    payload: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = LeaveRequestService(db).create(current_user.id, payload)
    return LeaveRequestResponse.model_validate(leave)


@router.get("", response_model=LeaveRequestList)
def list_leave_requests(
    user_id: Optional[int] = None,
    leave_type_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    requests = LeaveRequestService(db).list_requests(
        user_id=user_id,
        leave_type_id=leave_type_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return _as_list(requests)


@router.get("/me", response_model=LeaveRequestList)
def list_my_leave_requests(
    status: Optional[str] = None,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _as_list(LeaveRequestService(db).list_user_requests(current_user.id, status=status, year=year))


@router.get("/inbox", response_model=LeaveRequestList)
def list_inbox(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Requests the current user oversees. `status=pending_approval` returns
    everything still awaiting a decision.
    """
    return _as_list(LeaveRequestService(db).list_inbox(current_user.id, status=status))


@router.get("/{request_id}", response_model=LeaveRequestResponse)
def get_leave_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = LeaveRequestService(db).get_request(request_id, current_user.id)
    return LeaveRequestResponse.model_validate(leave)


@router.put("/{request_id}/status", response_model=LeaveRequestResponse)
def update_leave_status(
    request_id: int,
    payload: LeaveStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = LeaveRequestService(db).update_status(request_id, current_user.id, payload.status, payload.comments)
    return LeaveRequestResponse.model_validate(leave)


@router.put("/{request_id}/cancel", response_model=LeaveRequestResponse)
def cancel_leave_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = LeaveRequestService(db).cancel(request_id, current_user.id)
    return LeaveRequestResponse.model_validate(leave)


@router.delete("/{request_id}", response_model=LeaveDeletionResponse)
def delete_leave_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = LeaveRequestService(db).delete(request_id, current_user.id)
    if leave is not None:
        return LeaveDeletionResponse(
            message="Deletion request submitted for approval",
            deleted=False,
            leave_request=LeaveRequestResponse.model_validate(leave),
        )
    return LeaveDeletionResponse(message="Leave request deleted successfully", deleted=True)


@router.put("/{request_id}/approve-delete", response_model=LeaveDeletionResponse)
def approve_leave_deletion(
    request_id: int,
    payload: Optional[DeletionDecision] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comments = payload.comments if payload else None
    LeaveRequestService(db).approve_deletion(request_id, current_user.id, comments)
    return LeaveDeletionResponse(message="Leave deletion approved", deleted=True)


@router.put("/{request_id}/reject-delete", response_model=LeaveRequestResponse)
def reject_leave_deletion(
    request_id: int,
    payload: Optional[DeletionDecision] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comments = payload.comments if payload else None
    leave = LeaveRequestService(db).reject_deletion(request_id, current_user.id, comments)
    return LeaveRequestResponse.model_validate(leave)
