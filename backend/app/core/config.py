"""
Configuration management.
Loads from config_local.py (gitignored) for secrets, with defaults.
Any name missing from config_local.py keeps its default.
"""
from typing import Optional

# Try to import local config (gitignored)
try:
    from app import config_local
except ImportError:
    config_local = None

DATABASE_DSN: Optional[str] = getattr(config_local, "DATABASE_DSN", None)  # database will fail at startup if not set
TRIAL_DAYS: int = getattr(config_local, "TRIAL_DAYS", 14)
REFERENCE_TIMEZONE: str = getattr(config_local, "REFERENCE_TIMEZONE", "Asia/Jakarta")  # Used for report day keys and the trial expiry job
TRIAL_EXPIRY_SCHEDULE: str = getattr(config_local, "TRIAL_EXPIRY_SCHEDULE", "00:00")  # HH:MM in REFERENCE_TIMEZONE
SCHEDULER_STARTUP_DELAY_SECONDS: int = getattr(config_local, "SCHEDULER_STARTUP_DELAY_SECONDS", 60)  # Let the app finish booting before the first run
ENABLE_SCHEDULER: bool = getattr(config_local, "ENABLE_SCHEDULER", True)

# FREE tier quotas
FREE_WALLET_LIMIT: int = 1
FREE_DEBT_LIMIT: int = 10
FREE_DAILY_REPORT_LIMIT: int = 10
REPORT_COUNTER_WINDOW_HOURS: int = 48  # Longer than a day to tolerate timezone edges
REPORT_COUNTER_MAX_ENTRIES: int = 10000

# Tier limits for exports and date ranges
PREMIUM_EXPORT_LIMIT: int = 10000
FREE_EXPORT_LIMIT: int = 100
PREMIUM_DATE_RANGE_DAYS: int = 365
FREE_DATE_RANGE_DAYS: int = 90

# Upgrade offer
PREMIUM_PRICE: float = 25000.00
PREMIUM_CURRENCY: str = "IDR"
PREMIUM_DURATION_DAYS: int = 30


def get_settings():
    """Return settings object (for FastAPI dependency injection if needed)."""
    return type("Settings", (), {
        "database_dsn": DATABASE_DSN,
        "trial_days": TRIAL_DAYS,
        "reference_timezone": REFERENCE_TIMEZONE,
        "trial_expiry_schedule": TRIAL_EXPIRY_SCHEDULE,
        "scheduler_startup_delay_seconds": SCHEDULER_STARTUP_DELAY_SECONDS,
        "enable_scheduler": ENABLE_SCHEDULER,
        "free_wallet_limit": FREE_WALLET_LIMIT,
        "free_debt_limit": FREE_DEBT_LIMIT,
        "free_daily_report_limit": FREE_DAILY_REPORT_LIMIT,
        "report_counter_window_hours": REPORT_COUNTER_WINDOW_HOURS,
        "report_counter_max_entries": REPORT_COUNTER_MAX_ENTRIES,
        "premium_price": PREMIUM_PRICE,
        "premium_currency": PREMIUM_CURRENCY,
        "premium_duration_days": PREMIUM_DURATION_DAYS,
    })()
