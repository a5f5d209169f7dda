"""
FastAPI application entry point.
"""
import logging

from fastapi import FastAPI

from app.api import health, subscriptions
from app.core.config import get_settings
from app.core.database import init_engine
from app.core.exceptions import register_exception_handlers
from app.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

app_settings = get_settings()

app = FastAPI(
    title="Expense Tracker API",
    description="Personal finance tracker with FREE and PREMIUM tiers",
    version="0.1.0",
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["subscriptions"])


@app.on_event("startup")
async def startup_event():
    """Initialize database and background jobs on startup."""
    init_engine()

    if app_settings.enable_scheduler:
        # Registers the daily trial expiry job; its first run waits for the startup delay
        start_scheduler()
    else:
        logger.info("Scheduler disabled by configuration")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    stop_scheduler()
