from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class SystemRole(str, enum.Enum):
    """
    Names of the built-in roles.

    Workflow levels reference roles by id; these names are only used for
    privilege checks (admin/HR bypasses) and bootstrap seeding.
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    HR = "HR"
    MANAGER = "MANAGER"
    TEAM_LEAD = "TEAM_LEAD"
    EMPLOYEE = "EMPLOYEE"


ADMIN_ROLES = (SystemRole.SUPER_ADMIN.value, SystemRole.HR.value)


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    description = Column(String, nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="role")

    def __repr__(self):
        return f"<Role {self.name}>"
