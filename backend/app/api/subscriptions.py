"""
Subscription management API endpoints.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.core.database import get_db
from app.core.auth import get_current_user_dependency
from app.models.user import User
from app.models.subscription import Subscription
from app.services.entitlement import is_premium_user
from app.services.quota import get_report_limiter, remaining_report_quota
from app.services.subscription import (
    subscription_repository,
    cancel_subscription,
    create_trial_self_service,
    get_subscription_history as get_subscription_history_service,
    get_subscription_stats,
    get_upgrade_info,
)

router = APIRouter()


# Response Models
class SubscriptionResponse(BaseModel):
    id: str
    plan: str
    status: str
    provider: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            id=subscription.id,
            plan=subscription.plan.value,
            status=subscription.status.value,
            provider=subscription.provider,
            started_at=subscription.started_at,
            ended_at=subscription.ended_at,
        )


class SubscriptionStatusResponse(BaseModel):
    tier: str
    status: str
    is_premium: bool
    is_trial: bool
    started_at: datetime
    ended_at: Optional[datetime]
    days_remaining: Optional[int]
    trial_days_remaining: Optional[int]


class SubscriptionHistoryResponse(BaseModel):
    subscriptions: List[SubscriptionResponse]
    total: int


class UpgradeInfoResponse(BaseModel):
    message: str
    current_tier: str
    premium: bool
    target_tier: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    duration_days: Optional[int] = None


class ReportQuotaResponse(BaseModel):
    is_premium: bool
    limit: int
    remaining: int


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Get the active subscription and entitlement flags for the user."""
    stats = get_subscription_stats(db, current_user.id)
    subscription = stats.subscription

    return SubscriptionStatusResponse(
        tier=stats.tier.value,
        status=subscription.status.value,
        is_premium=stats.is_premium,
        is_trial=stats.is_trial,
        started_at=subscription.started_at,
        ended_at=subscription.ended_at,
        days_remaining=stats.days_remaining,
        trial_days_remaining=stats.trial_days_remaining,
    )


@router.get("/history", response_model=SubscriptionHistoryResponse)
async def get_subscription_history(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Get subscription history for the user, newest first."""
    subscriptions = get_subscription_history_service(db, current_user.id, limit=limit, offset=offset)
    total = subscription_repository.count_by_user(db, current_user.id)

    return SubscriptionHistoryResponse(
        subscriptions=[SubscriptionResponse.from_subscription(s) for s in subscriptions],
        total=total,
    )


@router.post("/trial", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def start_trial(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Start a self-service trial (once per lifetime)."""
    subscription = create_trial_self_service(db, current_user.id)
    return SubscriptionResponse.from_subscription(subscription)


@router.post("/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Cancel the active PREMIUM subscription, effective immediately."""
    cancel_subscription(db, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/upgrade", response_model=UpgradeInfoResponse)
async def upgrade_info(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    info = get_upgrade_info(db, current_user.id)
    return UpgradeInfoResponse(
        message=info.message,
        current_tier=info.current_tier.value,
        premium=info.premium,
        target_tier=info.target_tier.value if info.target_tier else None,
        price=info.price,
        currency=info.currency,
        duration_days=info.duration_days,
    )


@router.get("/report-quota", response_model=ReportQuotaResponse)
async def report_quota(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user_dependency),
):
    """Remaining report generations for today (not consumed by this call)."""
    limiter = get_report_limiter()
    return ReportQuotaResponse(
        is_premium=is_premium_user(db, current_user.id),
        limit=limiter.limit,
        remaining=remaining_report_quota(db, current_user.id, limiter),
    )
