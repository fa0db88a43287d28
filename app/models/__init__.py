# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    role, user, department, leave_type, holiday,
    approval_workflow, leave_balance, leave_request, notification
)

# Explicit class exports for cleaner imports
from .role import Role, SystemRole
from .user import User, Gender
from .department import Department
from .leave_type import LeaveType
from .holiday import Holiday
from .approval_workflow import ApprovalWorkflow, WorkflowCategory
from .leave_balance import LeaveBalance
from .leave_request import LeaveRequest, LeaveStatus, LeaveRequestType
from .notification import Notification

__all__ = [
    "Role",
    "SystemRole",
    "User",
    "Gender",
    "Department",
    "LeaveType",
    "Holiday",
    "ApprovalWorkflow",
    "WorkflowCategory",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveRequestType",
    "Notification",
]
