"""
Scheduler service for background jobs using APScheduler.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core import config
from app.services.scheduler.trial_expiry import process_expired_trials

logger = logging.getLogger(__name__)

TRIAL_EXPIRY_JOB_ID = "trial_expiry"

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler(timezone=ZoneInfo(config.REFERENCE_TIMEZONE))
    return _scheduler


def start_scheduler():
    """Start the scheduler and register the background jobs."""
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")
        add_trial_expiry_job(scheduler)
    else:
        logger.debug("Scheduler already running")


def stop_scheduler():
    """Stop the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None


def parse_schedule_time(value: str) -> tuple[int, int]:
    """Parse ``"HH:MM"`` into (hour, minute)."""
    try:
        hour, minute = map(int, value.split(":"))
    except ValueError:
        raise ValueError(f"Invalid schedule time {value!r}, expected HH:MM")
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid schedule time {value!r}, expected HH:MM")
    return hour, minute


def build_trial_expiry_trigger(
    schedule: Optional[str] = None,
    timezone: Optional[str] = None,
    startup_delay_seconds: Optional[int] = None,
    now: Optional[datetime] = None
) -> CronTrigger:
    """Daily cron trigger in the reference timezone that can't fire before the startup delay."""
    tz = ZoneInfo(timezone or config.REFERENCE_TIMEZONE)
    hour, minute = parse_schedule_time(schedule or config.TRIAL_EXPIRY_SCHEDULE)
    delay = startup_delay_seconds if startup_delay_seconds is not None else config.SCHEDULER_STARTUP_DELAY_SECONDS
    now = now or datetime.now(tz)
    return CronTrigger(
        hour=hour,
        minute=minute,
        timezone=tz,
        start_date=now + timedelta(seconds=delay),
    )


def add_trial_expiry_job(
    scheduler: Optional[BackgroundScheduler] = None,
    schedule: Optional[str] = None,
    timezone: Optional[str] = None,
    startup_delay_seconds: Optional[int] = None
):
    """Register the daily trial expiry job (replaces an existing registration)."""
    scheduler = scheduler or get_scheduler()
    tz_name = timezone or config.REFERENCE_TIMEZONE
    trigger = build_trial_expiry_trigger(schedule, tz_name, startup_delay_seconds)

    job = scheduler.add_job(
        process_expired_trials,
        trigger=trigger,
        kwargs={"reference_timezone": tz_name},
        id=TRIAL_EXPIRY_JOB_ID,
        replace_existing=True,
        max_instances=1,  # Prevent overlapping executions
        coalesce=True,
    )

    logger.info(f"Added trial expiry job (daily at {schedule or config.TRIAL_EXPIRY_SCHEDULE} {tz_name})")
    return job
