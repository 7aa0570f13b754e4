"""
seaptc/errors.py
Centralized API error handling.

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / malformed request
- 401: Staff ID or login code missing
- 403: Not staff / not admin / outside the participant access window
- 404: Class, participant or evaluation code does not exist
- 429: Rate limit exceeded
- 500: Internal error, including undecodable stored data
- 503: Database unavailable or transaction retries exhausted
"""
import logging
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse

from seaptc.exceptions import (
    BlobDecodeError,
    ConfigurationInvalidError,
    InvalidInputError,
    LoginCodeExhaustedError,
    SeaptcException,
    UnknownBlobError,
)

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    LOGIN_INVALID = "LOGIN_INVALID"

    FORBIDDEN = "FORBIDDEN"
    STAFF_REQUIRED = "STAFF_REQUIRED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"
    CLOSED = "CLOSED"

    NOT_FOUND = "NOT_FOUND"
    CLASS_NOT_FOUND = "CLASS_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    BLOB_DECODE_ERROR = "BLOB_DECODE_ERROR"
    UNKNOWN_BLOB = "UNKNOWN_BLOB"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    LOGIN_CODES_EXHAUSTED = "LOGIN_CODES_EXHAUSTED"


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class UnauthorizedError(APIError):
    """401 Unauthorized - Credentials missing"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier!r} not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class ServiceUnavailableError(APIError):
    """503 Service Unavailable - Database failure"""
    def __init__(self, message: str = "Conference data is temporarily unavailable", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="Service Unavailable",
            message=message,
            code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details
        )


class InternalError(APIError):
    """500 Internal Server Error"""
    def __init__(self, message: str = "An internal error occurred", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


def from_core_exception(exc: SeaptcException) -> APIError:
    """Map a conference core exception to its API error."""
    if isinstance(exc, InvalidInputError):
        return BadRequestError(exc.message, details={"invalid": exc.fields})
    if isinstance(exc, ConfigurationInvalidError):
        return BadRequestError(exc.message, code=ErrorCode.INVALID_CONFIGURATION)
    if isinstance(exc, LoginCodeExhaustedError):
        return APIError(exc.status_code, "Service Unavailable", exc.message, ErrorCode.LOGIN_CODES_EXHAUSTED)
    if isinstance(exc, BlobDecodeError):
        return APIError(exc.status_code, "Internal Error", exc.message, ErrorCode.BLOB_DECODE_ERROR,
                        {"blob": exc.name})
    if isinstance(exc, UnknownBlobError):
        return APIError(exc.status_code, "Internal Error", exc.message, ErrorCode.UNKNOWN_BLOB,
                        {"blob": exc.name})
    return APIError(exc.status_code, "Error", exc.message, ErrorCode.INTERNAL_ERROR)
