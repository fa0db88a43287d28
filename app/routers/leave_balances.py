from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user
from app.schemas.leave import LeaveBalanceResponse
from app.services.leave_ledger import LeaveLedger

router = APIRouter(prefix="/leave-balances", tags=["leave-balances"])


@router.get("/me", response_model=List[LeaveBalanceResponse])
def get_my_balances(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return LeaveLedger(db).balances_for_user(current_user.id, year=year)
