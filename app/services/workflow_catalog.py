"""
Workflow Catalog

Stores approval workflows and answers "which workflow governs a leave of N
days". Level definitions are validated here, once, on every write:
role references are resolved to role ids and stored as ApprovalLevel dicts,
so readers never re-parse or branch on legacy shapes.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    DuplicateNameError,
    NotFoundError,
    OverlappingRangeError,
    ValidationError,
    WorkflowNotFoundError,
)
from app.models.approval_workflow import ApprovalWorkflow, WorkflowCategory
from app.models.role import Role
from app.schemas.workflow import ApprovalLevel, ApprovalLevelIn, WorkflowCreate, WorkflowUpdate
from app.services.approver_resolution import approvers_for_workflow
from app.services.base import BaseService


class WorkflowCatalog(BaseService):

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, workflow_id: int) -> ApprovalWorkflow:
        workflow = self.db.get(ApprovalWorkflow, workflow_id)
        if workflow is None:
            raise NotFoundError("Approval workflow not found")
        return workflow

    def list_workflows(self, is_active: Optional[bool] = None) -> List[ApprovalWorkflow]:
        query = self.db.query(ApprovalWorkflow)
        if is_active is not None:
            query = query.filter(ApprovalWorkflow.is_active == is_active)
        return query.order_by(ApprovalWorkflow.min_days.asc()).all()

    def find_applicable_workflow(self, number_of_days: Decimal) -> ApprovalWorkflow:
        """The active workflow whose [min_days, max_days] contains the duration."""
        days = Decimal(number_of_days)
        workflow = (
            self.db.query(ApprovalWorkflow)
            .filter(
                ApprovalWorkflow.is_active == True,  # noqa: E712
                ApprovalWorkflow.min_days <= days,
                ApprovalWorkflow.max_days >= days,
            )
            .order_by(ApprovalWorkflow.min_days.asc())
            .first()
        )
        if workflow is None:
            self._logger.warning(f"No active approval workflow covers {days} day(s)")
            raise WorkflowNotFoundError()
        return workflow

    def approvers_for_workflow(
        self,
        workflow_id: int,
        requester_id: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> List[dict]:
        return approvers_for_workflow(self.db, self.get(workflow_id), requester_id, department_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def create(self, data: Union[WorkflowCreate, Dict[str, Any]]) -> ApprovalWorkflow:
        payload = _coerce(WorkflowCreate, data)
        with self.transaction("create_workflow", payload=payload):
            self._ensure_unique_name(payload.name)
            if payload.is_active:
                self._ensure_no_overlap(payload.min_days, payload.max_days)
            self._ensure_category(payload.category_id)

            workflow = ApprovalWorkflow(
                name=payload.name,
                min_days=payload.min_days,
                max_days=payload.max_days,
                approval_levels=self._resolve_levels(payload.approval_levels),
                is_active=payload.is_active,
                category_id=payload.category_id,
            )
            self.db.add(workflow)
        self.db.refresh(workflow)
        self._logger.info(f"Created approval workflow '{workflow.name}'", extra={"workflow_id": workflow.id})
        return workflow

    def update(self, workflow_id: int, data: Union[WorkflowUpdate, Dict[str, Any]]) -> ApprovalWorkflow:
        payload = _coerce(WorkflowUpdate, data)
        # An explicit null leaves the stored value unchanged; only category_id may be cleared
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "category_id" in payload.model_fields_set:
            changes["category_id"] = payload.category_id
        with self.transaction("update_workflow", workflow_id=workflow_id, payload=payload):
            workflow = self.get(workflow_id)

            new_name = changes.get("name")
            if new_name and new_name != workflow.name:
                self._ensure_unique_name(new_name)

            min_days = changes.get("min_days", workflow.min_days)
            max_days = changes.get("max_days", workflow.max_days)
            if Decimal(min_days) > Decimal(max_days):
                raise ValidationError("min_days cannot be greater than max_days")

            is_active = changes.get("is_active", workflow.is_active)
            if is_active:
                self._ensure_no_overlap(min_days, max_days, exclude_id=workflow.id)

            if "category_id" in changes:
                self._ensure_category(changes["category_id"])

            if payload.approval_levels is not None:
                workflow.approval_levels = self._resolve_levels(payload.approval_levels)
            for field in ("name", "min_days", "max_days", "is_active"):
                if field in changes:
                    setattr(workflow, field, changes[field])
            if "category_id" in changes:
                workflow.category_id = changes["category_id"]
        self.db.refresh(workflow)
        return workflow

    def delete(self, workflow_id: int) -> None:
        """
        Hard delete. In-flight requests keep their own required levels, but
        their workflow_id no longer resolves afterwards.
        """
        with self.transaction("delete_workflow", workflow_id=workflow_id):
            workflow = self.get(workflow_id)
            self.db.delete(workflow)
        self._logger.info("Deleted approval workflow", extra={"workflow_id": workflow_id})

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def _ensure_unique_name(self, name: str) -> None:
        exists = self.db.query(ApprovalWorkflow.id).filter(ApprovalWorkflow.name == name).first()
        if exists:
            raise DuplicateNameError("Approval workflow with this name already exists")

    def _ensure_no_overlap(self, min_days, max_days, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(ApprovalWorkflow).filter(
            ApprovalWorkflow.is_active == True,  # noqa: E712
            ApprovalWorkflow.min_days <= Decimal(max_days),
            ApprovalWorkflow.max_days >= Decimal(min_days),
        )
        if exclude_id is not None:
            query = query.filter(ApprovalWorkflow.id != exclude_id)
        overlapping = query.all()
        if overlapping:
            raise OverlappingRangeError(
                "This workflow overlaps with an existing workflow",
                details={
                    "overlapping_workflows": [
                        {"id": w.id, "name": w.name, "min_days": str(w.min_days), "max_days": str(w.max_days)}
                        for w in overlapping
                    ]
                },
            )

    def _ensure_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and self.db.get(WorkflowCategory, category_id) is None:
            raise ValidationError(f"Workflow category {category_id} does not exist")

    def _resolve_levels(self, levels: List[ApprovalLevelIn]) -> List[dict]:
        """Resolve every RoleRef to a role id and store levels in ascending order."""
        roles = self.db.query(Role).all()
        by_id = {role.id: role for role in roles}
        by_name = {role.name.upper(): role for role in roles}

        resolved = []
        for level in sorted(levels, key=lambda lvl: lvl.level):
            role_ids = []
            for ref in level.role_ids:
                role = by_id.get(ref) if isinstance(ref, int) else by_name.get(ref.strip().upper())
                if role is None:
                    raise ValidationError(
                        f"Unknown role '{ref}' in approval level {level.level}",
                        details={"level": level.level, "role": ref},
                    )
                if role.id not in role_ids:
                    role_ids.append(role.id)
            resolved.append(
                ApprovalLevel(
                    level=level.level,
                    role_ids=role_ids,
                    department_specific=level.department_specific,
                    required=level.required,
                ).model_dump()
            )
        return resolved


def _coerce(model, data):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid approval workflow definition",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc
