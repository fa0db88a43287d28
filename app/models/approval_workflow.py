from typing import List
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, JSON, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class WorkflowCategory(Base):
    __tablename__ = "workflow_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)

    workflows = relationship("ApprovalWorkflow", back_populates="category")


class ApprovalWorkflow(Base):
    """
    Maps a leave-duration window [min_days, max_days] to ordered approval levels.

    approval_levels is written only through the workflow catalog, which
    validates it into ApprovalLevel entries with role ids resolved.
    """
    __tablename__ = "approval_workflows"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    min_days = Column(Numeric(8, 2), nullable=False)
    max_days = Column(Numeric(8, 2), nullable=False)
    approval_levels = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    category_id = Column(Integer, ForeignKey("workflow_categories.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("WorkflowCategory", back_populates="workflows")

    @property
    def levels(self) -> List["ApprovalLevel"]:
        """Typed, ascending view of approval_levels."""
        from app.schemas.workflow import ApprovalLevel
        parsed = [ApprovalLevel.model_validate(raw) for raw in (self.approval_levels or [])]
        return sorted(parsed, key=lambda lvl: lvl.level)

    def get_level(self, level_number: int) -> "ApprovalLevel | None":
        return next((lvl for lvl in self.levels if lvl.level == level_number), None)

    def __repr__(self):
        return f"<ApprovalWorkflow {self.name} [{self.min_days}-{self.max_days}]>"
