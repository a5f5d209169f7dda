"""
Database models.
"""
from app.models.user import User
from app.models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from app.models.wallet import Wallet
from app.models.debt import Debt, DebtStatus
from app.models.payment import PaymentTransaction, PaymentStatus

__all__ = [
    "User",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "Wallet",
    "Debt",
    "DebtStatus",
    "PaymentTransaction",
    "PaymentStatus",
]
