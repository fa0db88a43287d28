from sqlalchemy import Column, Integer, String, Numeric, Boolean, Enum
from app.database import Base
from app.models.user import Gender

class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)  # e.g., "Vacation", "Sick"
    description = Column(String, nullable=True)
    default_days = Column(Numeric(8, 2), default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    applicable_gender = Column(Enum(Gender), nullable=True)  # None = everyone
    is_half_day_allowed = Column(Boolean, default=False, nullable=False)
