"""
Trial expiry job.

Runs daily (midnight in the reference timezone) to downgrade expired trials:
- Mark every TRIAL subscription whose ended_at has passed as EXPIRED
- Create a replacement FREE subscription for its user, unless the user
  already has another active subscription (e.g. paid after the lapse)

Each trial is processed in its own transaction; one user's failure is logged
and counted, and the run moves on. Only a failure to query the expired trials
aborts the run (it is retried on the next schedule). Re-running is a no-op for
trials already processed because they no longer have TRIAL status.
"""
import logging
import time
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core import config
from app.core.business_events import log_business_event
from app.core.database import SessionLocal, ensure_utc, utcnow
from app.models.subscription import Subscription, SubscriptionStatus
from app.services.subscription import subscription_repository
from app.services.subscription.subscription_service import create_free_subscription
from app.services.user_directory import get_user

logger = logging.getLogger(__name__)


def _process_expired_trial(db: Session, trial_id: str, now: datetime, tz: ZoneInfo) -> bool:
    """
    Expire one trial under the user's row lock.

    Returns False when the trial left TRIAL status before the lock was taken
    (cancelled or reconciled elsewhere). A FREE record is created only when
    the user has no other active subscription, e.g. none paid after the lapse.
    """
    expired_trial = db.query(Subscription).filter(Subscription.id == trial_id).one()
    user_id = expired_trial.user_id
    logger.info(f"Processing expired trial {trial_id} for user {user_id}")

    user = get_user(db, user_id, lock=True)
    db.refresh(expired_trial)
    if expired_trial.status != SubscriptionStatus.TRIAL:
        logger.info(f"Trial {trial_id} is already {expired_trial.status.value}, skipping")
        db.rollback()
        return False

    expired_trial.mark_as_expired()
    subscription_repository.save(db, expired_trial)

    free_subscription = None
    if subscription_repository.find_active_by_user(db, user_id, now) is None:
        free_subscription = create_free_subscription(db, user_id, now=now, commit=False)
    db.commit()

    log_business_event("TRIAL_EXPIRED_TO_FREE" if free_subscription else "TRIAL_EXPIRED", user.email, {
        "expired_trial_id": trial_id,
        "free_subscription_id": free_subscription.id if free_subscription else None,
        "trial_started_at": expired_trial.started_at,
        "trial_ended_at": expired_trial.ended_at,
        "downgraded_at": now.astimezone(tz),
    })
    if free_subscription:
        logger.info(f"Successfully downgraded user {user_id} from TRIAL to FREE")
    else:
        logger.info(f"Trial {trial_id} expired; user {user_id} keeps their active subscription")
    return True


def process_expired_trials(
    session_factory: Optional[Callable[[], Session]] = None,
    now: Optional[datetime] = None,
    reference_timezone: Optional[str] = None
) -> dict:
    """
    Find expired trials and downgrade each one to FREE.

    Returns counts of trials found, expired, skipped and failed. Raises if the
    expired trials can't be queried.
    """
    session_factory = session_factory or SessionLocal
    tz = ZoneInfo(reference_timezone or config.REFERENCE_TIMEZONE)
    now = ensure_utc(now) if now else utcnow()
    start_time = time.monotonic()

    logger.info(f"Starting expired trial processing job at {now.astimezone(tz)}")

    db = session_factory()
    try:
        try:
            expired_trials = subscription_repository.find_expired_trials(db, now)
        except Exception as e:
            logger.error(f"Fatal error during expired trial processing: {e}", exc_info=True)
            db.rollback()
            raise

        if not expired_trials:
            logger.info("No expired trials found")
            return {"found": 0, "succeeded": 0, "skipped": 0, "failed": 0, "duration_ms": 0}

        logger.info(f"Found {len(expired_trials)} expired trials to process")

        success_count = 0
        skipped_count = 0
        failure_count = 0
        # Ids captured up front; a rollback expires the loaded rows
        pending = [trial.id for trial in expired_trials]
        for trial_id in pending:
            try:
                if _process_expired_trial(db, trial_id, now, tz):
                    success_count += 1
                else:
                    skipped_count += 1
            except Exception as e:
                failure_count += 1
                logger.error(f"Failed to process expired trial {trial_id}: {e}", exc_info=True)
                db.rollback()
                continue

        duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"Expired trial processing completed: {success_count} successful, {skipped_count} skipped, "
            f"{failure_count} failed, duration={duration_ms}ms"
        )

        return {
            "found": len(expired_trials),
            "succeeded": success_count,
            "skipped": skipped_count,
            "failed": failure_count,
            "duration_ms": duration_ms,
        }
    finally:
        db.close()
