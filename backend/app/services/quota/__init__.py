"""
FREE tier quota enforcement.
"""
from app.services.quota.wallet_quota import check_wallet_quota
from app.services.quota.debt_quota import check_debt_quota
from app.services.quota.report_frequency import (
    ReportFrequencyLimiter,
    get_report_limiter,
    allow_report_generation,
    remaining_report_quota,
    check_report_quota,
)

__all__ = [
    "check_wallet_quota",
    "check_debt_quota",
    "ReportFrequencyLimiter",
    "get_report_limiter",
    "allow_report_generation",
    "remaining_report_quota",
    "check_report_quota",
]
