"""
Error Handling Middleware

Centralized error handling and response formatting.
"""
import traceback
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from ...core.config import ENVIRONMENT
from ...core.logging_config import get_logger
from ...api.exceptions import (
    DocumentNotFoundError,
    DuplicateUserError,
    InvalidBatchError,
    LoanAccessDeniedError,
    UserNotFoundError,
    handle_business_exception
)

logger = get_logger(__name__)

BUSINESS_EXCEPTIONS = (
    DocumentNotFoundError,
    DuplicateUserError,
    InvalidBatchError,
    LoanAccessDeniedError,
    UserNotFoundError,
    ValueError,
)


def _error_body(request: Request, status_code: int, error, **extra) -> dict:
    body = {
        "success": False,
        "error": error,
        "status_code": status_code,
        "path": request.url.path,
        "request_id": getattr(request.state, "request_id", None)
    }
    body.update(extra)
    return body


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that provides centralized error handling.

    Converts exceptions raised by handlers to JSON error responses:
    - HTTPException → its status code
    - Business exceptions → status code from handle_business_exception
    - Unexpected exceptions → 500, with error text and traceback outside production
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except RequestValidationError as e:
            logger.warning(f"Validation error for {request.method} {request.url.path}: {e.errors()}")
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content=_error_body(request, 422, "Validation Error", detail=e.errors())
            )

        except HTTPException as e:
            logger.debug(f"HTTP exception for {request.method} {request.url.path}: {e.status_code} - {e.detail}")
            return JSONResponse(
                status_code=e.status_code,
                content=_error_body(request, e.status_code, e.detail)
            )

        except BUSINESS_EXCEPTIONS as e:
            http_exception = handle_business_exception(e)
            logger.warning(f"Business exception for {request.method} {request.url.path}: {http_exception.detail}")
            return JSONResponse(
                status_code=http_exception.status_code,
                content=_error_body(request, http_exception.status_code, http_exception.detail)
            )

        except Exception as e:
            is_development = ENVIRONMENT != "production"
            error_traceback = traceback.format_exc() if is_development else None

            logger.error(f"Unexpected error for {request.method} {request.url.path}: {e}", exc_info=True)

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=_error_body(
                    request,
                    500,
                    str(e) if is_development else "Internal server error",
                    traceback=error_traceback
                )
            )
