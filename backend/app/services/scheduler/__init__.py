"""
Scheduler service for background jobs.
"""
from app.services.scheduler.scheduler_service import (
    TRIAL_EXPIRY_JOB_ID,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
    add_trial_expiry_job,
    build_trial_expiry_trigger,
)
from app.services.scheduler.trial_expiry import process_expired_trials

__all__ = [
    "TRIAL_EXPIRY_JOB_ID",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "add_trial_expiry_job",
    "build_trial_expiry_trigger",
    "process_expired_trials",
]
