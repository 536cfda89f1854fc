"""
Application error taxonomy.
Every domain error carries the HTTP status it maps to; the API layer
renders them through `app_error_handler`.
"""

from typing import Any, Optional
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None, is_operational: bool = True):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.is_operational = is_operational


class ValidationError(AppError):
    """Input or upstream payload failed validation."""

    status_code = 400

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class BadRequestError(AppError):
    status_code = 400

    def __init__(self, message: str = "Bad request"):
        super().__init__(message)


class UnauthorizedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)


class DatabaseError(AppError):
    """A persistence operation failed."""

    status_code = 500

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message, is_operational=False)
        self.original_error = original_error


class ExternalServiceError(AppError):
    """A call to a collaborator outside this process failed."""

    status_code = 502

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message, is_operational=False)
        self.original_error = original_error


# ----------------------------------------------------------------------------
# LLM provider failures (all surface as 502 to our own callers)
# ----------------------------------------------------------------------------

class LLMAuthenticationError(ExternalServiceError):
    pass


class LLMRateLimitError(ExternalServiceError):
    pass


class LLMInvalidRequestError(ExternalServiceError):
    pass


class LLMUnavailableError(ExternalServiceError):
    pass


class LLMConnectionError(ExternalServiceError):
    """No HTTP response was received at all."""


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as a JSON response with its status code."""
    content = {"error": exc.message}
    if isinstance(exc, ValidationError) and exc.details is not None:
        content["details"] = exc.details

    if exc.is_operational:
        logger.warning(
            f"Operational error on {request.method} {request.url.path}: "
            f"{exc.message} ({type(exc).__name__}, {exc.status_code})"
        )
    else:
        cause = getattr(exc, "original_error", None)
        logger.error(
            f"Non-operational error on {request.method} {request.url.path}: "
            f"{exc.message} ({type(exc).__name__}, {exc.status_code}) cause={cause!r}"
        )

    return JSONResponse(status_code=exc.status_code, content=content)
