"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.services.scheduler import TRIAL_EXPIRY_JOB_ID, get_scheduler

router = APIRouter()


@router.get("/health")
async def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    scheduler = get_scheduler()
    return {
        "status": "ok",
        "scheduler_running": scheduler.running,
        "trial_expiry_job": scheduler.get_job(TRIAL_EXPIRY_JOB_ID) is not None,
    }
