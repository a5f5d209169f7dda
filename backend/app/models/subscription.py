"""
Subscription model.

One row per subscription period. History is append-only: a downgrade creates a
new FREE row instead of rewriting the PREMIUM one, and rows are never deleted.
"""
import enum
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base, ensure_utc, utcnow


class SubscriptionPlan(str, enum.Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


class SubscriptionStatus(str, enum.Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"  # Terminal
    CANCELLED = "CANCELLED"  # Terminal


ACTIVE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL)


def _new_id() -> str:
    return str(uuid.uuid4())


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String(50), nullable=True)  # NULL for FREE and trial records
    provider_reference = Column(String(255), nullable=True)
    plan = Column(SQLEnum(SubscriptionPlan, values_callable=lambda x: [e.value for e in x]), nullable=False)
    status = Column(SQLEnum(SubscriptionStatus, values_callable=lambda x: [e.value for e in x]), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)  # NULL = no fixed expiry
    # Kept after the record leaves TRIAL status so a trial is granted once per lifetime
    trial_granted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="subscriptions")

    __table_args__ = (
        Index("idx_subscription_user_status", "user_id", "status"),
        Index("idx_subscription_ended", "ended_at"),
    )

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """ACTIVE or TRIAL, and not past ended_at."""
        if self.status not in ACTIVE_STATUSES:
            return False
        if self.ended_at is None:
            return True
        now = ensure_utc(now) if now else utcnow()
        return ensure_utc(self.ended_at) > now

    def is_premium(self, now: Optional[datetime] = None) -> bool:
        return self.plan == SubscriptionPlan.PREMIUM and self.is_active(now)

    def is_trial(self, now: Optional[datetime] = None) -> bool:
        return self.status == SubscriptionStatus.TRIAL and self.is_active(now)

    def cancel(self, now: Optional[datetime] = None) -> None:
        """Cancel immediately: entitlement ends now even if ended_at was in the future."""
        now = ensure_utc(now) if now else utcnow()
        self.status = SubscriptionStatus.CANCELLED
        if self.ended_at is None or ensure_utc(self.ended_at) > now:
            self.ended_at = now

    def extend_by(self, days: int, now: Optional[datetime] = None) -> None:
        if self.ended_at is None:
            now = ensure_utc(now) if now else utcnow()
            self.ended_at = now + timedelta(days=days)
        else:
            self.ended_at = ensure_utc(self.ended_at) + timedelta(days=days)

    def mark_as_expired(self) -> None:
        self.status = SubscriptionStatus.EXPIRED

    def days_remaining(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole days until ended_at; None for records without expiry."""
        if self.ended_at is None:
            return None
        now = ensure_utc(now) if now else utcnow()
        ended_at = ensure_utc(self.ended_at)
        if ended_at <= now:
            return 0
        return (ended_at.date() - now.date()).days

    def __repr__(self) -> str:
        return f"<Subscription {self.id} user={self.user_id} plan={self.plan} status={self.status}>"
