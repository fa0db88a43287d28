from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

# A level's approver role, given either by id or by role name.
# The workflow catalog resolves every RoleRef to a role id before storing.
RoleRef = Union[StrictInt, StrictStr]


def _check_unique_levels(levels) -> None:
    numbers = [lvl.level for lvl in levels]
    if len(numbers) != len(set(numbers)):
        raise ValueError("Approval level numbers must be unique within a workflow")


class ApprovalLevel(BaseModel):
    """A stored approval level; role_ids are always resolved ids."""
    level: int = Field(..., gt=0)
    role_ids: List[int] = Field(..., min_length=1)
    department_specific: bool = False
    required: bool = True


class ApprovalLevelIn(BaseModel):
    level: int = Field(..., gt=0)
    role_ids: List[RoleRef] = Field(..., min_length=1)
    department_specific: bool = False
    required: bool = True


class WorkflowCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    min_days: Decimal = Field(..., ge=0)
    max_days: Decimal = Field(..., gt=0)
    approval_levels: List[ApprovalLevelIn] = Field(..., min_length=1)
    is_active: bool = True
    category_id: Optional[int] = None

    @model_validator(mode="after")
    def check_range_and_levels(self):
        if self.min_days > self.max_days:
            raise ValueError("min_days cannot be greater than max_days")
        _check_unique_levels(self.approval_levels)
        return self


class WorkflowUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    min_days: Optional[Decimal] = Field(None, ge=0)
    max_days: Optional[Decimal] = Field(None, gt=0)
    approval_levels: Optional[List[ApprovalLevelIn]] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    category_id: Optional[int] = None

    @model_validator(mode="after")
    def check_levels(self):
        if self.approval_levels is not None:
            _check_unique_levels(self.approval_levels)
        return self


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    min_days: Decimal
    max_days: Decimal
    approval_levels: List[ApprovalLevel]
    is_active: bool
    category_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ApproverSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: Optional[str] = None
    role_id: Optional[int] = None
    department_id: Optional[int] = None


class LevelApprovers(BaseModel):
    level: int
    approvers: List[ApproverSummary]
