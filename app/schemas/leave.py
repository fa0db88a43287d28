from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from app.models.leave_request import LeaveRequestType, LeaveStatus


class ApprovalHistoryEntry(BaseModel):
    level: int
    approver_id: int
    approver_name: str
    approved_at: datetime
    comments: Optional[str] = None


class WorkflowMetadata(BaseModel):
    """
    Approval bookkeeping stored on every leave request.

    required_approval_levels is fixed when the request is created and already
    excludes levels whose roles include the requester's own role.
    """
    request_user_role: Optional[str] = None
    request_user_role_id: Optional[int] = None
    workflow_id: Optional[int] = None
    current_approval_level: int = 0
    required_approval_levels: List[int] = []
    approval_history: List[ApprovalHistoryEntry] = []
    is_fully_approved: bool = False

    # Deletion workflow
    deletion_requested_by: Optional[int] = None
    deletion_requested_at: Optional[datetime] = None
    original_status: Optional[LeaveStatus] = None
    deletion_rejected_by: Optional[int] = None
    deletion_rejected_at: Optional[datetime] = None
    deletion_rejection_comments: Optional[str] = None

    @property
    def highest_required_level(self) -> Optional[int]:
        return max(self.required_approval_levels) if self.required_approval_levels else None

    def next_required_level(self) -> Optional[int]:
        """First required level above the last completed one."""
        for level in sorted(self.required_approval_levels):
            if level > self.current_approval_level:
                return level
        return None

    def to_column(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class LeaveRequestCreate(BaseModel):
    leave_type_id: int
    start_date: date
    end_date: date
    request_type: LeaveRequestType = LeaveRequestType.FULL_DAY
    reason: str = Field(..., min_length=1, max_length=2000)


class LeaveStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]
    comments: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return value.lower() if isinstance(value, str) else value


class DeletionDecision(BaseModel):
    comments: Optional[str] = None


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    request_type: LeaveRequestType
    number_of_days: Decimal
    reason: str
    status: LeaveStatus
    approver_id: Optional[int] = None
    approver_comments: Optional[str] = None
    approved_at: Optional[datetime] = None
    workflow_metadata: WorkflowMetadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeaveRequestList(BaseModel):
    leave_requests: List[LeaveRequestResponse]
    count: int


class LeaveDeletionResponse(BaseModel):
    message: str
    deleted: bool
    leave_request: Optional[LeaveRequestResponse] = None


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    leave_type_id: int
    year: int
    balance: Decimal
    used: Decimal
    carry_forward: Decimal
    remaining: Decimal
