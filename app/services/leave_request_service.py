"""
Leave Request Service Layer

The multi-level approval state machine for leave requests.

    pending -> partially_approved -> ... -> approved
    pending | partially_approved -> rejected
    any (but cancelled / pending_deletion) -> cancelled        (owner)
    approved | partially_approved -> pending_deletion -> restored | removed

Every public command is a single transaction: the request row is read
with a row lock, validated, mutated together with its ledger row and
committed once. LeaveRequest.version_id turns each write into a
compare-and-swap, so a concurrent writer fails instead of being lost.
Notifications are queued during the transition and sent after commit.
"""
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import extract
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidStateError,
    NoApproverConfiguredError,
    NotFoundError,
    NoWorkflowError,
    OverlapConflictError,
    PastStartDateError,
    ValidationError,
)
from app.models.approval_workflow import ApprovalWorkflow
from app.models.leave_request import (
    ACTIVE_STATUSES,
    AWAITING_APPROVAL_STATUSES,
    LeaveRequest,
    LeaveRequestType,
    LeaveStatus,
)
from app.models.leave_type import LeaveType
from app.models.role import SystemRole
from app.models.user import User
from app.schemas.leave import ApprovalHistoryEntry, LeaveRequestCreate, WorkflowMetadata
from app.services.approver_resolution import resolve_approvers
from app.services.authorization import is_approver_authorized, is_manager_or_admin
from app.services.base import BaseService
from app.services.leave_ledger import LeaveLedger
from app.services.notification import InAppNotifier, NotificationDispatcher, Notifier
from app.services.workflow_catalog import WorkflowCatalog
from app.utils.dates import (
    count_business_days,
    format_period,
    half_day_value,
    holidays_in_range,
    today,
)

# Special inbox filter meaning "anything an approver can still act on"
PENDING_APPROVAL_FILTER = "pending_approval"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _conflict_summary(leave: LeaveRequest) -> Dict[str, Any]:
    return {
        "id": leave.id,
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
        "status": leave.status,
        "leave_type_id": leave.leave_type_id,
    }


class LeaveRequestService(BaseService):
    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        super().__init__(db)
        self.catalog = WorkflowCatalog(db)
        self.ledger = LeaveLedger(db)
        self.notifications = NotificationDispatcher(notifier or InAppNotifier(db))

    @contextmanager
    def _transition(self, operation: str, **context: Any) -> Iterator[None]:
        """Transaction + notifications that are only sent once it committed."""
        try:
            with self.transaction(operation, **context):
                yield
        except Exception:
            self.notifications.discard()
            raise
        self.notifications.flush()

    # ==================================================================
    # Creation
    # ==================================================================
    def create(self, user_id: int, data: Union[LeaveRequestCreate, Dict[str, Any]]) -> LeaveRequest:
        payload = data if isinstance(data, LeaveRequestCreate) else _parse_create(data)

        with self._transition("create_leave_request", user_id=user_id, payload=payload):
            user = self._get_user(user_id, "User not found")
            start, end = payload.start_date, payload.end_date

            if start > end:
                raise ValidationError("Start date cannot be after end date")
            if start < today():
                raise ValidationError("Cannot apply for leave with a start date in the past")

            holidays = holidays_in_range(self.db, start, end)
            if holidays:
                names = ", ".join(h.name for h in holidays)
                raise ValidationError(
                    f"Cannot apply for leave on holidays. The following holidays fall within your selected dates: {names}",
                    details={"holidays": [{"name": h.name, "date": h.date.isoformat()} for h in holidays]},
                )

            leave_type = self.db.get(LeaveType, payload.leave_type_id)
            if leave_type is None:
                raise NotFoundError("Leave type not found")
            if not leave_type.is_active:
                raise ValidationError("This leave type is currently inactive")
            if leave_type.applicable_gender and user.gender != leave_type.applicable_gender:
                raise ValidationError(
                    f"This leave type is only applicable for {leave_type.applicable_gender.value} employees"
                )

            number_of_days = self._number_of_days(payload, leave_type)

            overlapping = self._find_overlaps(user.id, start, end, ACTIVE_STATUSES)
            if overlapping:
                first = overlapping[0]
                raise OverlapConflictError(
                    f"You already have a {first.status} leave request for "
                    f"{format_period(first.start_date, first.end_date)}. "
                    "Multiple leave requests on the same day(s) are not allowed.",
                    [_conflict_summary(r) for r in overlapping],
                )

            balance = self.ledger.get_balance(user.id, leave_type.id, start.year)
            pending = self.ledger.pending_days(user.id, leave_type.id, start.year)
            available = self.ledger.available_balance(balance, pending)
            if number_of_days > available:
                raise InsufficientBalanceError(available=available, requested=number_of_days, pending=pending)

            workflow = self.catalog.find_applicable_workflow(number_of_days)
            # A person cannot approve their own request: drop levels held by the requester's role
            required_levels = [
                level.level for level in workflow.levels
                if user.role_id is None or user.role_id not in level.role_ids
            ]

            metadata = WorkflowMetadata(
                request_user_role=user.role_name,
                request_user_role_id=user.role_id,
                workflow_id=workflow.id,
                current_approval_level=0,
                required_approval_levels=required_levels,
            )
            leave = LeaveRequest(
                user_id=user.id,
                leave_type_id=leave_type.id,
                start_date=start,
                end_date=end,
                request_type=payload.request_type.value,
                number_of_days=number_of_days,
                reason=payload.reason,
                status=LeaveStatus.PENDING.value,
            )

            if not required_levels:
                self._auto_approve(leave, metadata, user, leave_type)
            else:
                first_level = workflow.get_level(required_levels[0])
                approvers = resolve_approvers(self.db, first_level, user.id, user.department_id)
                if not approvers:
                    self.log_warning(
                        f"No approvers found for leave request from user {user.id} at level {required_levels[0]}",
                        workflow_id=workflow.id,
                    )
                    raise NoApproverConfiguredError()

                leave.workflow_metadata = metadata.to_column()
                self.db.add(leave)
                self.db.flush()

                note = ""
                if len(required_levels) > 1:
                    note = "\n\nNote: This leave request requires multi-level approval."
                self.notifications.queue_many(
                    approvers,
                    f"Leave request from {user.display_name}",
                    (start, end),
                    f"{user.display_name} requested {number_of_days} day(s) of {leave_type.name}.\n"
                    f"Reason: {payload.reason}{note}",
                    leave_request_id=leave.id,
                )

        self._logger.info(
            f"Leave request {leave.id} created with status {leave.status}",
            extra={"leave_request_id": leave.id, "user_id": user_id},
        )
        return leave

    def _number_of_days(self, payload: LeaveRequestCreate, leave_type: LeaveType) -> Decimal:
        start, end = payload.start_date, payload.end_date
        working_days = count_business_days(start, end)
        if working_days <= 0:
            raise ValidationError("The selected dates contain no working days")

        if payload.request_type != LeaveRequestType.FULL_DAY:
            if not leave_type.is_half_day_allowed:
                raise ValidationError("Half-day leave is not allowed for this leave type")
            if start != end:
                raise ValidationError("Half-day leave can only be applied for a single day")
            return half_day_value()
        return working_days

    def _auto_approve(self, leave: LeaveRequest, metadata: WorkflowMetadata, user: User, leave_type: LeaveType) -> None:
        """Every level of the workflow belongs to the requester's own role."""
        if not settings.workflow.auto_approve_without_levels:
            raise NoApproverConfiguredError(
                "Every approval level of the applicable workflow is held by your own role. "
                "Please contact your administrator."
            )
        metadata.is_fully_approved = True
        leave.status = LeaveStatus.APPROVED.value
        leave.approved_at = _now()
        leave.workflow_metadata = metadata.to_column()
        self.db.add(leave)
        self.db.flush()
        self.ledger.record_usage(leave)

        self.notifications.queue(
            user,
            f"Leave {LeaveStatus.APPROVED.value}",
            (leave.start_date, leave.end_date),
            f"Your {leave_type.name} request was approved automatically: "
            "no approval level applies to your role.",
            leave_request_id=leave.id,
        )

    # ==================================================================
    # Approval / rejection
    # ==================================================================
    def update_status(self, request_id: int, actor_id: int, status: str, comments: Optional[str] = None) -> LeaveRequest:
        normalized = (status or "").lower()
        if normalized == LeaveStatus.APPROVED.value:
            return self.approve(request_id, actor_id, comments)
        if normalized == LeaveStatus.REJECTED.value:
            return self.reject(request_id, actor_id, comments)
        raise ValidationError(
            "Invalid status",
            details={"valid_values": [LeaveStatus.APPROVED.value, LeaveStatus.REJECTED.value]},
        )

    def approve(self, request_id: int, actor_id: int, comments: Optional[str] = None) -> LeaveRequest:
        with self._transition("approve_leave_request", leave_request_id=request_id, actor_id=actor_id):
            leave = self._load_for_decision(request_id)
            actor = self._get_user(actor_id, "Approver not found")
            requester = self._get_user(leave.user_id, "User not found")
            metadata = _metadata(leave)
            workflow = self._workflow_for(metadata)

            self._authorize_decision(actor, requester, metadata, workflow)

            level = self._match_level(actor, requester, leave, metadata, workflow)
            if level is None:
                raise ForbiddenError("You do not have the required role to approve this leave request")

            metadata.approval_history.append(
                ApprovalHistoryEntry(
                    level=level,
                    approver_id=actor.id,
                    approver_name=actor.display_name,
                    approved_at=_now(),
                    comments=comments or None,
                )
            )
            metadata.current_approval_level = max(metadata.current_approval_level, level)
            period = (leave.start_date, leave.end_date)
            leave_type_name = leave.leave_type.name if leave.leave_type else "leave"

            if level < metadata.highest_required_level:
                self._ensure_no_approved_overlap(leave)

                next_level = metadata.next_required_level()
                next_definition = workflow.get_level(next_level) if next_level is not None else None
                next_approvers = (
                    resolve_approvers(self.db, next_definition, requester.id, requester.department_id)
                    if next_definition is not None else []
                )
                if not next_approvers:
                    raise NoApproverConfiguredError(
                        f"No approvers are configured for approval level {next_level}. "
                        "Please contact your administrator."
                    )

                trail = f"Approved at level {level} by {actor.display_name}"
                if comments:
                    trail += f"\nComments: {comments}"
                leave.approver_comments = f"{leave.approver_comments}\n{trail}" if leave.approver_comments else trail
                leave.status = LeaveStatus.PARTIALLY_APPROVED.value
                leave.approver_id = actor.id
                leave.workflow_metadata = metadata.to_column()

                self.notifications.queue_many(
                    next_approvers,
                    f"Leave request from {requester.display_name}",
                    period,
                    f"{leave.reason}\n\nThis request has been approved at L-{level} "
                    f"and requires your approval at L-{next_level}.",
                    leave_request_id=leave.id,
                )
                self.notifications.queue(
                    requester,
                    f"Leave {LeaveStatus.PARTIALLY_APPROVED.value}",
                    period,
                    f"Your {leave_type_name} request has been approved at L-{level} by "
                    f"{actor.display_name} and is awaiting further approval.",
                    leave_request_id=leave.id,
                )
            else:
                metadata.is_fully_approved = True
                self._ensure_no_approved_overlap(leave)

                leave.status = LeaveStatus.APPROVED.value
                leave.approver_id = actor.id
                leave.approved_at = _now()
                if comments:
                    leave.approver_comments = comments
                leave.workflow_metadata = metadata.to_column()
                self.ledger.record_usage(leave)

                self.notifications.queue(
                    requester,
                    f"Leave {LeaveStatus.APPROVED.value}",
                    period,
                    f"Your {leave_type_name} request for {leave.number_of_days} day(s) has been approved."
                    + (f" Comments: {comments}" if comments else ""),
                    leave_request_id=leave.id,
                )

        self._logger.info(
            f"Leave request {request_id} {leave.status} at level {level} by user {actor_id}",
            extra={"leave_request_id": request_id},
        )
        return leave

    def reject(self, request_id: int, actor_id: int, comments: Optional[str] = None) -> LeaveRequest:
        with self._transition("reject_leave_request", leave_request_id=request_id, actor_id=actor_id):
            leave = self._load_for_decision(request_id)
            actor = self._get_user(actor_id, "Approver not found")
            requester = self._get_user(leave.user_id, "User not found")
            metadata = _metadata(leave)
            workflow = self._workflow_for(metadata, required=False)

            self._authorize_decision(actor, requester, metadata, workflow)

            leave.status = LeaveStatus.REJECTED.value
            leave.approver_id = actor.id
            leave.approver_comments = comments

            leave_type_name = leave.leave_type.name if leave.leave_type else "leave"
            self.notifications.queue(
                requester,
                f"Leave {LeaveStatus.REJECTED.value}",
                (leave.start_date, leave.end_date),
                f"Your {leave_type_name} request has been rejected by {actor.display_name}."
                + (f" Reason: {comments}" if comments else ""),
                leave_request_id=leave.id,
            )

        self._logger.info(f"Leave request {request_id} rejected by user {actor_id}")
        return leave

    def _load_for_decision(self, request_id: int) -> LeaveRequest:
        leave = self._load_request(request_id, lock=True)
        if leave.status not in AWAITING_APPROVAL_STATUSES:
            raise InvalidStateError(
                "Only pending or partially approved leave requests can be approved or rejected",
                details={"status": leave.status},
            )
        return leave

    def _authorize_decision(
        self,
        actor: User,
        requester: User,
        metadata: WorkflowMetadata,
        workflow: Optional[ApprovalWorkflow],
    ) -> None:
        """Reporting-line authority over the requester, or the role of the next required level."""
        if actor.id == requester.id:
            raise ForbiddenError("You cannot approve or reject your own leave request")

        result = is_approver_authorized(self.db, actor.id, requester.id)
        if result.is_authorized:
            return

        next_level = metadata.next_required_level()
        definition = workflow.get_level(next_level) if workflow is not None and next_level is not None else None
        if definition is not None and actor.role_id in definition.role_ids:
            return

        raise ForbiddenError(result.reason or "You are not authorized to update this leave request")

    def _match_level(
        self,
        actor: User,
        requester: User,
        leave: LeaveRequest,
        metadata: WorkflowMetadata,
        workflow: ApprovalWorkflow,
    ) -> Optional[int]:
        """
        The required level the actor approves at.

        A partially approved request only accepts its next required level;
        a pending one takes the first required level the actor's role holds.
        """
        if actor.role_id is None:
            return None
        if leave.status == LeaveStatus.PARTIALLY_APPROVED.value:
            candidates = [metadata.next_required_level()]
        else:
            candidates = sorted(metadata.required_approval_levels)

        for number in candidates:
            if number is None:
                continue
            definition = workflow.get_level(number)
            if definition is None or actor.role_id not in definition.role_ids:
                continue
            if (
                definition.department_specific
                and requester.department_id is not None
                and actor.department_id != requester.department_id
                and not actor.is_admin_or_hr
            ):
                continue
            return number
        return None

    def _ensure_no_approved_overlap(self, leave: LeaveRequest) -> None:
        overlapping = self._find_overlaps(
            leave.user_id,
            leave.start_date,
            leave.end_date,
            (LeaveStatus.APPROVED.value,),
            exclude_id=leave.id,
        )
        if overlapping:
            for other in overlapping:
                self.log_warning(
                    f"Leave request {leave.id} overlaps approved request {other.id}",
                    leave_request_id=leave.id,
                    conflicting_request_id=other.id,
                )
            raise OverlapConflictError(
                "Cannot approve this leave request as it overlaps with already approved leave requests",
                [_conflict_summary(r) for r in overlapping],
            )

    # ==================================================================
    # Cancellation
    # ==================================================================
    def cancel(self, request_id: int, user_id: int) -> LeaveRequest:
        with self._transition("cancel_leave_request", leave_request_id=request_id, user_id=user_id):
            leave = self._load_request(request_id, lock=True)
            if leave.user_id != user_id:
                raise ForbiddenError("You can only cancel your own leave requests")
            if leave.status == LeaveStatus.CANCELLED.value:
                raise InvalidStateError("Leave request is already cancelled")
            if leave.status == LeaveStatus.PENDING_DELETION.value:
                raise InvalidStateError("Leave request is pending deletion approval and cannot be cancelled")

            if leave.status == LeaveStatus.APPROVED.value:
                if leave.start_date < today():
                    raise PastStartDateError()
                self.ledger.revert_usage(leave)

            leave.status = LeaveStatus.CANCELLED.value

            requester = leave.user
            self._queue_manager_notice(requester, leave, LeaveStatus.CANCELLED.value, "Cancelled by employee")

        self._logger.info(f"Leave request {request_id} cancelled by user {user_id}")
        return leave

    # ==================================================================
    # Deletion workflow
    # ==================================================================
    def delete(self, request_id: int, actor_id: int) -> Optional[LeaveRequest]:
        """
        Delete a request, or open a deletion approval for it.

        Returns the request when it moved to pending_deletion, None when
        the row was removed.
        """
        with self._transition("delete_leave_request", leave_request_id=request_id, actor_id=actor_id):
            leave = self._load_request(request_id, lock=True)
            actor = self._get_user(actor_id, "User not found")
            is_owner = leave.user_id == actor.id
            if not is_owner and not actor.is_admin_or_hr:
                raise ForbiddenError("You can only delete your own leave requests")

            requester = leave.user
            metadata = _metadata(leave)

            if is_owner and not actor.is_admin_or_hr:
                if leave.status == LeaveStatus.PENDING_DELETION.value:
                    raise InvalidStateError("A deletion request for this leave is already pending approval")

                if leave.status in (LeaveStatus.APPROVED.value, LeaveStatus.PARTIALLY_APPROVED.value):
                    workflow = self._deletion_workflow(leave, metadata)
                    if workflow is not None and len(workflow.levels) > 1:
                        metadata.original_status = LeaveStatus(leave.status)
                        metadata.deletion_requested_by = actor.id
                        metadata.deletion_requested_at = _now()
                        leave.status = LeaveStatus.PENDING_DELETION.value
                        leave.workflow_metadata = metadata.to_column()

                        self._queue_manager_notice(
                            requester, leave, LeaveStatus.PENDING_DELETION.value,
                            "Employee has requested to delete this leave. Please review and approve.",
                        )
                        self._logger.info(f"Leave request {request_id} deletion requested by user {actor_id}")
                        return leave

            if _was_approved(leave, metadata):
                self.ledger.revert_usage(leave)

            note = "Deleted by employee" if is_owner else f"Deleted by {actor.display_name}"
            self._queue_manager_notice(requester, leave, "deleted", note)
            self.db.delete(leave)

        self._logger.info(f"Leave request {request_id} deleted by user {actor_id}")
        return None

    def approve_deletion(self, request_id: int, actor_id: int, comments: Optional[str] = None) -> None:
        with self._transition("approve_leave_deletion", leave_request_id=request_id, actor_id=actor_id):
            leave, actor, requester = self._load_for_deletion_decision(request_id, actor_id, "approve")
            metadata = _metadata(leave)

            if metadata.original_status == LeaveStatus.APPROVED:
                self.ledger.revert_usage(leave)

            self.notifications.queue(
                requester,
                "Leave deleted",
                (leave.start_date, leave.end_date),
                f"Your request to delete this leave has been approved by {actor.display_name}"
                + (f". Comments: {comments}" if comments else ""),
                leave_request_id=leave.id,
            )
            self.db.delete(leave)

        self._logger.info(f"Leave request {request_id} deletion approved by {actor_id}")

    def reject_deletion(self, request_id: int, actor_id: int, comments: Optional[str] = None) -> LeaveRequest:
        with self._transition("reject_leave_deletion", leave_request_id=request_id, actor_id=actor_id):
            leave, actor, requester = self._load_for_deletion_decision(request_id, actor_id, "reject")
            metadata = _metadata(leave)

            if metadata.original_status is None:
                self._logger.error(
                    f"Leave request {request_id} is pending deletion without an original status",
                    extra={"leave_request_id": request_id},
                )
                raise InvalidStateError(
                    "This leave request has no recorded status to restore; contact your administrator"
                )

            leave.status = metadata.original_status.value
            metadata.deletion_rejected_by = actor.id
            metadata.deletion_rejected_at = _now()
            metadata.deletion_rejection_comments = comments
            leave.workflow_metadata = metadata.to_column()

            self.notifications.queue(
                requester,
                f"Leave {leave.status}",
                (leave.start_date, leave.end_date),
                f"Your request to delete this leave has been rejected by {actor.display_name}"
                + (f". Comments: {comments}" if comments else ""),
                leave_request_id=leave.id,
            )

        self._logger.info(f"Leave request {request_id} deletion rejected by {actor_id}")
        return leave

    def _load_for_deletion_decision(self, request_id: int, actor_id: int, verb: str):
        leave = self._load_request(request_id, lock=True)
        if leave.status != LeaveStatus.PENDING_DELETION.value:
            raise InvalidStateError("This leave request is not pending deletion approval")
        actor = self._get_user(actor_id, "Approver not found")
        requester = self._get_user(leave.user_id, "User not found")
        if actor.id == requester.id:
            raise ForbiddenError(f"You cannot {verb} the deletion of your own leave request")
        if not is_manager_or_admin(actor, requester):
            raise ForbiddenError(f"You are not authorized to {verb} this deletion request")
        return leave, actor, requester

    def _deletion_workflow(self, leave: LeaveRequest, metadata: WorkflowMetadata) -> Optional[ApprovalWorkflow]:
        if metadata.workflow_id is not None:
            workflow = self.db.get(ApprovalWorkflow, metadata.workflow_id)
            if workflow is not None:
                return workflow
        try:
            return self.catalog.find_applicable_workflow(leave.number_of_days)
        except NoWorkflowError:
            # Nothing governs this duration any more: delete directly
            return None

    def _queue_manager_notice(self, requester: Optional[User], leave: LeaveRequest, status: str, note: str) -> None:
        if requester is None or requester.manager is None:
            return
        leave_type_name = leave.leave_type.name if leave.leave_type else "Leave"
        self.notifications.queue(
            requester.manager,
            f"{leave_type_name} {status}: {requester.display_name}",
            (leave.start_date, leave.end_date),
            note,
            leave_request_id=leave.id,
        )

    # ==================================================================
    # Queries
    # ==================================================================
    def get_request(self, request_id: int, viewer_id: int) -> LeaveRequest:
        leave = self._load_request(request_id)
        viewer = self._get_user(viewer_id, "User not found")
        if leave.user_id == viewer.id or viewer.is_admin_or_hr:
            return leave
        if is_approver_authorized(self.db, viewer.id, leave.user_id).is_authorized:
            return leave
        metadata = _metadata(leave)
        workflow = self._workflow_for(metadata, required=False)
        next_level = metadata.next_required_level()
        definition = workflow.get_level(next_level) if workflow is not None and next_level is not None else None
        if definition is not None and viewer.role_id in definition.role_ids:
            return leave
        raise ForbiddenError("You are not allowed to view this leave request")

    def list_requests(
        self,
        user_id: Optional[int] = None,
        leave_type_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest)
        if user_id is not None:
            query = query.filter(LeaveRequest.user_id == user_id)
        if leave_type_id is not None:
            query = query.filter(LeaveRequest.leave_type_id == leave_type_id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        if start_date is not None:
            query = query.filter(LeaveRequest.start_date >= start_date)
        if end_date is not None:
            query = query.filter(LeaveRequest.end_date <= end_date)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def list_user_requests(self, user_id: int, status: Optional[str] = None, year: Optional[int] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.user_id == user_id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        if year is not None:
            query = query.filter(extract("year", LeaveRequest.start_date) == year)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def list_inbox(self, actor_id: int, status: Optional[str] = None) -> List[LeaveRequest]:
        """
        Requests an approver oversees:
        - SUPER_ADMIN, HR: everyone
        - MANAGER: direct reports and themselves
        - TEAM_LEAD: team members and themselves
        - anyone else: their own requests
        """
        actor = self._get_user(actor_id, "User not found")
        query = self.db.query(LeaveRequest)

        if not actor.is_admin_or_hr:
            if actor.role_name == SystemRole.MANAGER.value:
                managed = self.db.query(User.id).filter(User.manager_id == actor.id)
            elif actor.role_name == SystemRole.TEAM_LEAD.value:
                managed = self.db.query(User.id).filter(User.team_lead_id == actor.id)
            else:
                managed = None
            user_ids = [actor.id] + ([row.id for row in managed.all()] if managed is not None else [])
            query = query.filter(LeaveRequest.user_id.in_(user_ids))

        if status == PENDING_APPROVAL_FILTER:
            query = query.filter(LeaveRequest.status.in_(AWAITING_APPROVAL_STATUSES))
        elif status:
            query = query.filter(LeaveRequest.status == status)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    # ==================================================================
    # Helpers
    # ==================================================================
    def _get_user(self, user_id: int, message: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(message)
        return user

    def _load_request(self, request_id: int, lock: bool = False) -> LeaveRequest:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.id == request_id)
        if lock:
            query = query.with_for_update()
        leave = query.first()
        if leave is None:
            raise NotFoundError("Leave request not found")
        return leave

    def _workflow_for(self, metadata: WorkflowMetadata, required: bool = True) -> Optional[ApprovalWorkflow]:
        workflow = self.db.get(ApprovalWorkflow, metadata.workflow_id) if metadata.workflow_id is not None else None
        if workflow is None and required:
            raise NoWorkflowError("The approval workflow for this leave request no longer exists. Please contact your administrator.")
        return workflow

    def _find_overlaps(self, user_id: int, start: date, end: date, statuses, exclude_id: Optional[int] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest).filter(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status.in_(statuses),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        if exclude_id is not None:
            query = query.filter(LeaveRequest.id != exclude_id)
        return query.order_by(LeaveRequest.start_date).all()


def _metadata(leave: LeaveRequest) -> WorkflowMetadata:
    return WorkflowMetadata.model_validate(leave.workflow_metadata or {})


def _was_approved(leave: LeaveRequest, metadata: WorkflowMetadata) -> bool:
    """Whether the request's days are currently booked in the ledger."""
    if leave.status == LeaveStatus.APPROVED.value:
        return True
    return leave.status == LeaveStatus.PENDING_DELETION.value and metadata.original_status == LeaveStatus.APPROVED


def _parse_create(data: Dict[str, Any]) -> LeaveRequestCreate:
    try:
        return LeaveRequestCreate.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Leave type, start date, end date, and reason are required",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc
