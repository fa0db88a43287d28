"""
Leave Balance Ledger

Per user / leave type / year entitlement records. Only the leave request
state machine mutates `used`, and always inside its own transaction: a
ledger failure fails the transition that triggered it.
"""
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.leave_balance import LeaveBalance
from app.models.leave_request import AWAITING_APPROVAL_STATUSES, LeaveRequest

ZERO = Decimal("0")


class LeaveLedger:
    def __init__(self, db: Session):
        self.db = db

    def find_balance(self, user_id: int, leave_type_id: int, year: int, lock: bool = False) -> Optional[LeaveBalance]:
        query = self.db.query(LeaveBalance).filter(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def get_balance(self, user_id: int, leave_type_id: int, year: int, lock: bool = False) -> LeaveBalance:
        balance = self.find_balance(user_id, leave_type_id, year, lock=lock)
        if balance is None:
            raise NotFoundError(f"No leave balance found for this leave type in {year}")
        return balance

    def balances_for_user(self, user_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
        query = self.db.query(LeaveBalance).filter(LeaveBalance.user_id == user_id)
        if year is not None:
            query = query.filter(LeaveBalance.year == year)
        return query.order_by(LeaveBalance.year.desc(), LeaveBalance.leave_type_id).all()

    def pending_days(self, user_id: int, leave_type_id: int, year: int) -> Decimal:
        """Days booked by requests of this type that still await approval."""
        query = self.db.query(func.coalesce(func.sum(LeaveRequest.number_of_days), 0)).filter(
            LeaveRequest.user_id == user_id,
            LeaveRequest.leave_type_id == leave_type_id,
            LeaveRequest.status.in_(AWAITING_APPROVAL_STATUSES),
            extract("year", LeaveRequest.start_date) == year,
        )
        return Decimal(str(query.scalar() or 0))

    def available_balance(self, balance: LeaveBalance, pending: Decimal) -> Decimal:
        return (
            Decimal(balance.balance or 0)
            + Decimal(balance.carry_forward or 0)
            - Decimal(balance.used or 0)
            - pending
        )

    def record_usage(self, leave: LeaveRequest) -> LeaveBalance:
        """Final approval: book the request's days against its start-date year."""
        balance = self.get_balance(leave.user_id, leave.leave_type_id, leave.start_date.year, lock=True)
        balance.used = Decimal(balance.used or 0) + Decimal(leave.number_of_days)
        return balance

    def revert_usage(self, leave: LeaveRequest) -> LeaveBalance:
        """Cancellation or deletion of an approved request; never below zero."""
        balance = self.get_balance(leave.user_id, leave.leave_type_id, leave.start_date.year, lock=True)
        balance.used = max(Decimal(balance.used or 0) - Decimal(leave.number_of_days), ZERO)
        return balance
