from sqlalchemy import Column, Integer, String, Date, Numeric, ForeignKey, DateTime, JSON, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
import enum

class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIALLY_APPROVED = "partially_approved"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    PENDING_DELETION = "pending_deletion"

class LeaveRequestType(str, enum.Enum):
    FULL_DAY = "full_day"
    FIRST_HALF = "first_half"
    SECOND_HALF = "second_half"

# Statuses that still occupy the requester's calendar
ACTIVE_STATUSES = (
    LeaveStatus.PENDING.value,
    LeaveStatus.PARTIALLY_APPROVED.value,
    LeaveStatus.APPROVED.value,
    LeaveStatus.PENDING_DELETION.value,
)

# Statuses an approver can still act on
AWAITING_APPROVAL_STATUSES = (
    LeaveStatus.PENDING.value,
    LeaveStatus.PARTIALLY_APPROVED.value,
)

class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    request_type = Column(String, default=LeaveRequestType.FULL_DAY.value, nullable=False)
    number_of_days = Column(Numeric(8, 2), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String, default=LeaveStatus.PENDING.value, nullable=False, index=True)  # Using String to store enum value for simplicity with SQLite

    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approver_comments = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Serialized WorkflowMetadata; always reassigned whole, never mutated in place
    workflow_metadata = Column("metadata", JSON, nullable=False, default=dict)

    # Compare-and-swap counter: every UPDATE/DELETE checks the version it read
    version_id = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    approver = relationship("User", foreign_keys=[approver_id])
    leave_type = relationship("LeaveType")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self):
        return f"<LeaveRequest {self.id} user={self.user_id} {self.start_date}..{self.end_date} {self.status}>"
