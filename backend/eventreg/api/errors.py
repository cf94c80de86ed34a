"""
Maps service-layer errors to HTTP responses.

The services only know the error category; the status code is decided here.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from eventreg.core.exceptions import AppError, ErrorCategory, InternalError
from eventreg.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def app_error_handler(request: Request, error: AppError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY[error.category]
    log = logger.error if status_code >= 500 else logger.info
    log(
        "request_rejected",
        category=error.category.value,
        reason=error.reason,
        status_code=status_code,
    )

    headers = {}
    if isinstance(error, InternalError) and error.retry_after:
        headers["Retry-After"] = str(error.retry_after)

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "category": error.category.value,
                "reason": error.reason,
                "message": error.message,
                "path": request.url.path,
                **error.details,
            }
        },
        headers=headers,
    )
