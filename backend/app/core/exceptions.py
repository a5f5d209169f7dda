"""
Business exceptions raised by the subscription and quota services.

Services raise these, never HTTPException. Anything that does not derive from
BusinessError is an unexpected failure and is propagated as-is.
"""
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class BusinessError(Exception):
    """Base class for business rejections (distinguishable from system failures)."""
    code: str = "business_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details


class NotFoundError(BusinessError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(BusinessError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class TrialNotEligibleError(ForbiddenError):
    code = "trial_not_eligible"


class QuotaExceededError(ForbiddenError):
    code = "quota_exceeded"


class ReportLimitExceededError(QuotaExceededError):
    code = "report_limit_exceeded"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class InvalidStateError(BusinessError):
    code = "invalid_state"
    status_code = status.HTTP_400_BAD_REQUEST


async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
            }
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BusinessError, business_error_handler)
