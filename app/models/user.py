"""
User Model.
Carries the role, department and reporting lines the approval engine reads.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base
from app.models.role import ADMIN_ROLES


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)  # Added for display purposes
    gender = Column(Enum(Gender), nullable=True)

    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id", use_alter=True, name="fk_user_department_id"), nullable=True, index=True)

    # Reporting lines
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    team_lead_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    role = relationship("Role", back_populates="users")
    department_rel = relationship("Department", foreign_keys=[department_id], back_populates="employees")
    managed_department = relationship("Department", foreign_keys="Department.manager_user_id", back_populates="manager")
    manager = relationship("User", remote_side=[id], foreign_keys=[manager_id])
    team_lead = relationship("User", remote_side=[id], foreign_keys=[team_lead_id])
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    # Leave Workflow
    leave_requests = relationship("LeaveRequest", foreign_keys="[LeaveRequest.user_id]", back_populates="user", cascade="all, delete-orphan")
    leave_balances = relationship("LeaveBalance", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role_name})>"

    @property
    def role_name(self) -> str | None:
        return self.role.name if self.role else None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def is_admin_or_hr(self) -> bool:
        """Admins and HR bypass relationship checks."""
        return self.role_name in ADMIN_ROLES
