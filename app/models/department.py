"""
Department Model.
Only the fields the approval engine needs: membership and the department manager.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    code = Column(String, nullable=False, index=True)  # Short code like "ENG", "HR", "FIN"

    # Department manager (user who manages this department)
    manager_user_id = Column(Integer, ForeignKey("users.id", use_alter=True, name="fk_department_manager_id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    manager = relationship("User", foreign_keys=[manager_user_id], back_populates="managed_department")
    employees = relationship("User", foreign_keys="User.department_id", back_populates="department_rel")

    def __repr__(self):
        return f"<Department {self.code}: {self.name}>"
