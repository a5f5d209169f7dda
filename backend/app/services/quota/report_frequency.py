"""
Daily report generation limit for FREE tier users.

Counters are keyed by user and calendar day in the reference timezone, so a
new day starts a new counter without any reset job. The counter TTL is longer
than a day to cover timezone edges.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core import config
from app.core.exceptions import ReportLimitExceededError
from app.services.cache.counter_cache import TimeWindowedCounterCache
from app.services.entitlement import is_premium_user

logger = logging.getLogger(__name__)


class ReportFrequencyLimiter:
    """Per-user daily counter; ``allow`` checks and consumes in one call."""

    def __init__(
        self,
        limit: Optional[int] = None,
        reference_timezone: Optional[str] = None,
        window: Optional[timedelta] = None,
        max_entries: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.limit = limit if limit is not None else config.FREE_DAILY_REPORT_LIMIT
        self.timezone = ZoneInfo(reference_timezone or config.REFERENCE_TIMEZONE)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._cache = TimeWindowedCounterCache(
            ttl=window or timedelta(hours=config.REPORT_COUNTER_WINDOW_HOURS),
            max_entries=max_entries or config.REPORT_COUNTER_MAX_ENTRIES,
            clock=self._clock,
        )

    def window_key(self, user_id: int) -> str:
        """``"<user_id>:<YYYY-MM-DD>"`` for today in the reference timezone."""
        today = self._clock().astimezone(self.timezone).date()
        return f"{user_id}:{today.isoformat()}"

    def allow(self, user_id: int) -> bool:
        """
        Consume one report from today's quota.

        Returns False (and rolls the increment back) once the limit is reached.
        Call exactly once per attempted report, never peek-then-act.
        """
        key = self.window_key(user_id)
        current = self._cache.increment(key)

        if current > self.limit:
            self._cache.decrement(key)
            logger.warning(f"User {user_id} exceeded daily report limit: {current - 1}/{self.limit}")
            return False

        logger.debug(f"User {user_id} report count: {current}/{self.limit}")
        return True

    def remaining(self, user_id: int) -> int:
        return max(0, self.limit - self._cache.peek(self.window_key(user_id)))

    def reset(self, user_id: int) -> None:
        """Clear today's counter (support/admin action)."""
        self._cache.invalidate(self.window_key(user_id))
        logger.info(f"Reset daily report quota for user: {user_id}")


_limiter: Optional[ReportFrequencyLimiter] = None
_limiter_lock = threading.Lock()


def get_report_limiter() -> ReportFrequencyLimiter:
    """Get or create the process-wide limiter."""
    global _limiter
    if _limiter is None:
        with _limiter_lock:
            if _limiter is None:
                _limiter = ReportFrequencyLimiter()
    return _limiter


def allow_report_generation(
    db: Session,
    user_id: int,
    limiter: Optional[ReportFrequencyLimiter] = None
) -> bool:
    """PREMIUM users are never counted; FREE users consume one from today's quota."""
    if is_premium_user(db, user_id):
        return True
    return (limiter or get_report_limiter()).allow(user_id)


def remaining_report_quota(
    db: Session,
    user_id: int,
    limiter: Optional[ReportFrequencyLimiter] = None
) -> int:
    return (limiter or get_report_limiter()).remaining(user_id)


def check_report_quota(
    db: Session,
    user_id: int,
    limiter: Optional[ReportFrequencyLimiter] = None
) -> None:
    """Raise ReportLimitExceededError when a FREE user has no reports left today."""
    limiter = limiter or get_report_limiter()
    if not allow_report_generation(db, user_id, limiter):
        raise ReportLimitExceededError(
            f"You have exceeded the daily limit of {limiter.limit} reports for FREE tier. "
            "Upgrade to PREMIUM for unlimited reports or try again tomorrow.",
            details={"limit": limiter.limit, "remaining": limiter.remaining(user_id)},
        )
