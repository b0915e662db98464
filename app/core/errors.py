"""
Error Handling Utilities
Maps analytics exceptions to sanitized, consistent HTTP error responses.
"""

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.analytics.exceptions import (
    AnalyticsError,
    ConfigurationError,
    InsufficientDataError,
    InvalidRangeError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes for frontend handling."""

    # Analytics input errors
    INSUFFICIENT_DATA = "insufficient_data"
    INVALID_DATE_RANGE = "invalid_date_range"
    INVALID_PARAMETER = "invalid_parameter"
    CALCULATION_FAILED = "calculation_failed"

    # General errors
    VALIDATION_ERROR = "validation_error"
    INTERNAL_ERROR = "internal_error"


# User-friendly error messages
ERROR_MESSAGES = {
    ErrorCode.INSUFFICIENT_DATA: "Not enough financial history for this analysis. Try a wider date range.",
    ErrorCode.INVALID_DATE_RANGE: "The start date must be on or before the end date.",
    ErrorCode.INVALID_PARAMETER: "One of the analysis parameters is not supported.",
    ErrorCode.CALCULATION_FAILED: "Unable to calculate analytics. Please try again later.",
    ErrorCode.VALIDATION_ERROR: "Invalid request. Please check your input and try again.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again later.",
}

# Analytics errors whose own message is safe to show
_DESCRIPTIVE_CODES = {
    ErrorCode.INSUFFICIENT_DATA,
    ErrorCode.INVALID_DATE_RANGE,
    ErrorCode.INVALID_PARAMETER,
}


def sanitize_error_message(
    exception: Exception,
    error_code: ErrorCode,
    log_details: bool = True,
) -> str:
    """
    Sanitize error message for user-facing responses.

    Unexpected failures are logged with their traceback and replaced by a
    generic message; analytics input errors keep their own message.

    Args:
        exception: The exception that occurred
        error_code: Error code for categorization
        log_details: Whether to log exception details

    Returns:
        User-facing message
    """
    if error_code in _DESCRIPTIVE_CODES and isinstance(exception, AnalyticsError):
        if log_details:
            logger.warning("Analytics request rejected [%s]: %s", error_code.value, exception.message)
        return exception.message

    if log_details:
        logger.error(
            "Error [%s]: %s",
            error_code.value,
            str(exception),
            exc_info=exception,
        )

    return ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])


def get_error_code_for_exception(exception: Exception) -> tuple[ErrorCode, int]:
    """
    Map exception types to error codes and HTTP status codes.

    Args:
        exception: The exception that occurred

    Returns:
        Tuple of (error_code, http_status_code)
    """
    if isinstance(exception, InsufficientDataError):
        return ErrorCode.INSUFFICIENT_DATA, status.HTTP_422_UNPROCESSABLE_ENTITY

    if isinstance(exception, InvalidRangeError):
        return ErrorCode.INVALID_DATE_RANGE, status.HTTP_400_BAD_REQUEST

    if isinstance(exception, ConfigurationError):
        return ErrorCode.INVALID_PARAMETER, status.HTTP_400_BAD_REQUEST

    if isinstance(exception, AnalyticsError):
        return ErrorCode.CALCULATION_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exception, ValueError):
        return ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST

    return ErrorCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_body(exc: Exception) -> tuple[int, dict]:
    error_code, http_status = get_error_code_for_exception(exc)
    content = {
        "error_code": error_code.value,
        "message": sanitize_error_message(exc, error_code),
    }
    if isinstance(exc, AnalyticsError) and exc.details:
        content["details"] = exc.details
    return http_status, content


async def analytics_exception_handler(_request, exc: AnalyticsError) -> JSONResponse:
    """Handler for errors raised by the analytics engines."""
    http_status, content = _error_body(exc)
    return JSONResponse(status_code=http_status, content=content)


async def global_exception_handler(_request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for FastAPI.

    Catches all unhandled exceptions and returns sanitized error responses.
    Excludes HTTPException (intentional responses) and ValidationError (FastAPI validation).
    """
    if isinstance(exc, HTTPException):
        raise exc

    if isinstance(exc, RequestValidationError):
        raise exc

    http_status, content = _error_body(exc)
    return JSONResponse(status_code=http_status, content=content)


def create_error_response(
    error_code: ErrorCode,
    message: Optional[str] = None,
    http_status: Optional[int] = None,
) -> HTTPException:
    """
    Create a standardized HTTPException with error code.

    Args:
        error_code: Error code enum
        message: Optional custom message (uses default if not provided)
        http_status: Optional HTTP status code (uses default if not provided)

    Returns:
        HTTPException with standardized format
    """
    if message is None:
        message = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR])

    if http_status is None:
        if error_code == ErrorCode.INSUFFICIENT_DATA:
            http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
        elif error_code in (ErrorCode.INVALID_DATE_RANGE, ErrorCode.INVALID_PARAMETER, ErrorCode.VALIDATION_ERROR):
            http_status = status.HTTP_400_BAD_REQUEST
        else:
            http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(
        status_code=http_status,
        detail={
            "error_code": error_code.value,
            "message": message,
        },
    )
