"""
Error taxonomy and the JSON error envelope

Error response format:
{
    "success": false,
    "error": {
        "code": "NOT_FOUND",
        "message": "Review request not found",
        "details": {...}
    }
}
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)


class ReviewRunnerError(Exception):
    """Base exception for all application errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "Internal server error",
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(ReviewRunnerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Invalid request data", details: Optional[Any] = None):
        super().__init__(message, details)


class Unauthenticated(ReviewRunnerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class Forbidden(ReviewRunnerError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


class BusinessInactive(ReviewRunnerError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "BUSINESS_INACTIVE"

    def __init__(self, message: str = "Business is not active"):
        super().__init__(message)


class NotFound(ReviewRunnerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource_type: str = "Resource"):
        super().__init__(f"{resource_type} not found")


class UserNotProvisioned(NotFound):
    code = "USER_NOT_FOUND"

    def __init__(self):
        ReviewRunnerError.__init__(
            self,
            "User not found - may need to be created via webhook or profile endpoint",
        )


class NoBusinessAssigned(NotFound):
    code = "BUSINESS_NOT_FOUND"

    def __init__(self):
        ReviewRunnerError.__init__(
            self,
            "No business found for this user. Please complete onboarding.",
        )


class AlreadyExists(ReviewRunnerError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_EXISTS"


class SendFailed(ReviewRunnerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "SEND_FAILED"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "Failed to send message")


class DependencyError(ReviewRunnerError):
    """A downstream provider (Places, SendGrid, Twilio, Clerk) failed"""

    code = "DEPENDENCY_ERROR"


class ConfigurationError(ReviewRunnerError):
    """A required third-party credential is not configured"""

    code = "CONFIGURATION_ERROR"


def error_body(code: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def error_response(status_code: int, code: str, message: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, details))


def success_body(data: Any, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    body.update(extra)
    return body


async def review_runner_error_handler(request: Request, exc: ReviewRunnerError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed: %s", exc.message,
        extra={"extra_data": {
            "path": request.url.path,
            "status_code": exc.status_code,
            "code": exc.code,
        }},
    )
    details = exc.details
    if exc.status_code >= 500 and not settings.DEBUG_ERROR_DETAILS:
        details = None
    return error_response(exc.status_code, exc.code, exc.message, details)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "loc": list(err.get("loc", [])),
            "msg": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        ValidationError.code,
        "Invalid request data",
        errors,
    )


HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "ALREADY_EXISTS",
    429: "RATE_LIMITED",
    503: "SERVICE_UNAVAILABLE",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"extra_data": {"path": request.url.path}},
    )
    details = None
    if settings.DEBUG_ERROR_DETAILS:
        details = {"exception": type(exc).__name__, "message": str(exc)}
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "Internal server error",
        details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReviewRunnerError, review_runner_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
