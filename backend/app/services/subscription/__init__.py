"""
Subscription service for managing user subscriptions.
"""
from app.services.subscription.subscription_service import (
    get_active_subscription,
    get_current_subscription,
    get_subscription_history,
    create_trial_for_new_user,
    create_trial_self_service,
    create_free_subscription,
    cancel_subscription,
    activate_or_extend_premium,
    get_subscription_stats,
    get_upgrade_info,
)
from app.services.subscription.eligibility import is_eligible_for_trial
from app.services.subscription.subscription_models import (
    SubscriptionStats,
    UpgradeInfo,
)

__all__ = [
    "get_active_subscription",
    "get_current_subscription",
    "get_subscription_history",
    "create_trial_for_new_user",
    "create_trial_self_service",
    "create_free_subscription",
    "cancel_subscription",
    "activate_or_extend_premium",
    "get_subscription_stats",
    "get_upgrade_info",
    "is_eligible_for_trial",
    "SubscriptionStats",
    "UpgradeInfo",
]
