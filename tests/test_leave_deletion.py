import pytest
from datetime import timedelta
from decimal import Decimal

from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.models.leave_request import LeaveRequest, LeaveStatus
from app.services.leave_request_service import LeaveRequestService


@pytest.fixture
def setup(default_workflows, employee, team_lead, manager, hr_user, grant_balance):
    for user in (employee, team_lead, manager, hr_user):
        grant_balance(user)


def _approved_request(db_session, employee, team_lead, manager, leave_type, start, days):
    """Create and fully approve a request of `days` weekdays starting on a Monday."""
    service = LeaveRequestService(db_session)
    leave = service.create(employee.id, {
        "leave_type_id": leave_type.id,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=days - 1)).isoformat(),
        "reason": "Conference",
    })
    service.approve(leave.id, team_lead.id)
    if days > 2:
        service.approve(leave.id, manager.id)
    return leave.id


def test_owner_deletes_pending_request_directly(db_session, setup, employee, leave_type, next_monday, balance_of):
    service = LeaveRequestService(db_session)
    leave = service.create(employee.id, {
        "leave_type_id": leave_type.id,
        "start_date": next_monday.isoformat(),
        "end_date": next_monday.isoformat(),
        "reason": "Errand",
    })

    assert service.delete(leave.id, employee.id) is None
    assert db_session.query(LeaveRequest).count() == 0
    assert balance_of(employee, next_monday.year).used == Decimal("0")


def test_single_level_approved_request_is_deleted_and_reverted(
    db_session, setup, employee, team_lead, manager, leave_type, next_monday, balance_of
):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 2)
    assert balance_of(employee, next_monday.year).used == Decimal("2")

    assert LeaveRequestService(db_session).delete(request_id, employee.id) is None
    assert db_session.get(LeaveRequest, request_id) is None
    assert balance_of(employee, next_monday.year).used == Decimal("0")


def test_multi_level_approved_request_needs_deletion_approval(
    db_session, setup, employee, team_lead, manager, leave_type, next_monday, balance_of
):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 3)
    service = LeaveRequestService(db_session)

    pending = service.delete(request_id, employee.id)

    assert pending is not None
    assert pending.status == LeaveStatus.PENDING_DELETION.value
    assert pending.workflow_metadata["original_status"] == LeaveStatus.APPROVED.value
    assert pending.workflow_metadata["deletion_requested_by"] == employee.id
    # Days stay booked until the deletion is decided
    assert balance_of(employee, next_monday.year).used == Decimal("3")

    with pytest.raises(InvalidStateError):
        service.delete(request_id, employee.id)
    with pytest.raises(InvalidStateError):
        service.cancel(request_id, employee.id)


def test_approve_deletion_removes_request_and_reverts(
    db_session, setup, employee, team_lead, manager, leave_type, next_monday, balance_of
):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 3)
    service = LeaveRequestService(db_session)
    service.delete(request_id, employee.id)

    service.approve_deletion(request_id, manager.id, "OK")

    assert db_session.get(LeaveRequest, request_id) is None
    assert balance_of(employee, next_monday.year).used == Decimal("0")


def test_reject_deletion_restores_original_status(
    db_session, setup, employee, team_lead, manager, leave_type, next_monday, balance_of
):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 3)
    service = LeaveRequestService(db_session)
    service.delete(request_id, employee.id)

    restored = service.reject_deletion(request_id, manager.id, "Too late")

    assert restored.status == LeaveStatus.APPROVED.value
    assert restored.workflow_metadata["deletion_rejected_by"] == manager.id
    assert restored.workflow_metadata["deletion_rejection_comments"] == "Too late"
    assert balance_of(employee, next_monday.year).used == Decimal("3")


def test_partially_approved_deletion_does_not_touch_balance(
    db_session, setup, employee, team_lead, manager, leave_type, next_monday, balance_of
):
    service = LeaveRequestService(db_session)
    leave = service.create(employee.id, {
        "leave_type_id": leave_type.id,
        "start_date": next_monday.isoformat(),
        "end_date": (next_monday + timedelta(days=2)).isoformat(),
        "reason": "Move",
    })
    service.approve(leave.id, team_lead.id)

    pending = service.delete(leave.id, employee.id)
    assert pending.workflow_metadata["original_status"] == LeaveStatus.PARTIALLY_APPROVED.value

    service.approve_deletion(leave.id, manager.id)
    assert balance_of(employee, next_monday.year).used == Decimal("0")


def test_deletion_decision_requires_manager_or_admin(
    db_session, setup, employee, team_lead, manager, leave_type, next_monday
):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 3)
    service = LeaveRequestService(db_session)
    service.delete(request_id, employee.id)

    with pytest.raises(ForbiddenError):
        service.approve_deletion(request_id, team_lead.id)
    with pytest.raises(ForbiddenError):
        service.reject_deletion(request_id, employee.id)


def test_deletion_decision_requires_pending_deletion(db_session, setup, employee, team_lead, manager, leave_type, next_monday):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 3)
    with pytest.raises(InvalidStateError):
        LeaveRequestService(db_session).approve_deletion(request_id, manager.id)


def test_reject_deletion_without_original_status_fails(db_session, setup, employee, manager, leave_type, next_monday):
    broken = LeaveRequest(
        user_id=employee.id,
        leave_type_id=leave_type.id,
        start_date=next_monday,
        end_date=next_monday,
        number_of_days=Decimal("1"),
        reason="Imported",
        status=LeaveStatus.PENDING_DELETION.value,
        workflow_metadata={},
    )
    db_session.add(broken)
    db_session.commit()

    with pytest.raises(InvalidStateError):
        LeaveRequestService(db_session).reject_deletion(broken.id, manager.id)

    db_session.expire_all()
    assert db_session.get(LeaveRequest, broken.id).status == LeaveStatus.PENDING_DELETION.value


def test_hr_deletes_pending_deletion_directly(
    db_session, setup, employee, team_lead, manager, hr_user, leave_type, next_monday, balance_of
):
    request_id = _approved_request(db_session, employee, team_lead, manager, leave_type, next_monday, 3)
    service = LeaveRequestService(db_session)
    service.delete(request_id, employee.id)

    assert service.delete(request_id, hr_user.id) is None
    assert db_session.get(LeaveRequest, request_id) is None
    assert balance_of(employee, next_monday.year).used == Decimal("0")


def test_other_employee_cannot_delete(db_session, setup, make_user, employee, leave_type, next_monday):
    service = LeaveRequestService(db_session)
    leave = service.create(employee.id, {
        "leave_type_id": leave_type.id,
        "start_date": next_monday.isoformat(),
        "end_date": next_monday.isoformat(),
        "reason": "Errand",
    })
    stranger = make_user("stranger@acme.test", "EMPLOYEE")

    with pytest.raises(ForbiddenError):
        service.delete(leave.id, stranger.id)


def test_delete_unknown_request(db_session, setup, employee):
    with pytest.raises(NotFoundError):
        LeaveRequestService(db_session).delete(9999, employee.id)
