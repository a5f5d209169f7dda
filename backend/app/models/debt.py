"""
Debt model. Only the columns needed for FREE tier debt counting.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from app.core.database import Base


class DebtStatus(str, enum.Enum):
    OPEN = "OPEN"  # No payments yet
    PARTIAL = "PARTIAL"
    PAID = "PAID"


# Statuses that count against the FREE tier debt limit
ACTIVE_DEBT_STATUSES = (DebtStatus.OPEN, DebtStatus.PARTIAL)


class Debt(Base):
    __tablename__ = "debts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    counterparty_name = Column(String(255), nullable=False)
    total_amount = Column(Float, nullable=False, default=0.0)
    status = Column(SQLEnum(DebtStatus, values_callable=lambda x: [e.value for e in x]), default=DebtStatus.OPEN, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
