from decimal import Decimal
from sqlalchemy import Column, Integer, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base

class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("user_id", "leave_type_id", "year", name="uq_leave_balance_user_type_year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    balance = Column(Numeric(8, 2), default=Decimal("0"), nullable=False)
    used = Column(Numeric(8, 2), default=Decimal("0"), nullable=False)
    carry_forward = Column(Numeric(8, 2), default=Decimal("0"), nullable=False)

    user = relationship("User", back_populates="leave_balances")
    leave_type = relationship("LeaveType")

    @property
    def remaining(self) -> Decimal:
        """Entitlement left before pending requests are taken into account."""
        return Decimal(self.balance or 0) + Decimal(self.carry_forward or 0) - Decimal(self.used or 0)
