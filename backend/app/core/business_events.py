"""
Structured logging for business events (subscription lifecycle, downgrades).

Each event is a single log line on the ``business_events`` logger:

    Business Event: TRIAL_STARTED | user=j***@example.com | subscription_id=... | plan=PREMIUM
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger("business_events")


def mask_email(email: Optional[str]) -> str:
    """Mask the local part of an email, keeping its first character and the domain."""
    if not email:
        return ""
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if not local:
        return f"***@{domain}"
    return f"{local[0]}***@{domain}"


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def log_business_event(event_type: str, username: Optional[str], attributes: Optional[Mapping[str, Any]] = None) -> None:
    parts = [f"Business Event: {event_type}", f"user={mask_email(username)}"]
    for key, value in (attributes or {}).items():
        parts.append(f"{key}={_format_value(value)}")
    logger.info(" | ".join(parts))
