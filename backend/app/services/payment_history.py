"""
Payment history lookups (consulted by trial eligibility only).
"""
from sqlalchemy.orm import Session

from app.models.payment import PaymentTransaction, PaymentStatus


def has_successful_payment(db: Session, user_id: int) -> bool:
    """True if any payment of the user ever settled successfully."""
    query = db.query(PaymentTransaction.id).filter(
        PaymentTransaction.user_id == user_id,
        PaymentTransaction.status == PaymentStatus.SUCCESS,
    )
    return db.query(query.exists()).scalar()
