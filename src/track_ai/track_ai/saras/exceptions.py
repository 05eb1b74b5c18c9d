"""Typed errors raised at the Saras boundary.

The client layer raises these; services catch them at the edge of each public
operation and turn them into structured results.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

LOGIN_ENDPOINT = "/users/userLogin"
STORAGE_ENDPOINT = "/process/knowledges/createStorage"
CREATE_PROCESS_ENDPOINT = "/process/createProcess"


class ErrorType(str, Enum):
    UNAVAILABLE = "saras_unavailable"
    AUTH_FAILED = "saras_auth_failed"
    VALIDATION_ERROR = "saras_validation_error"
    TIMEOUT = "saras_timeout"
    UPLOAD_FAILED = "upload_failed"


class SarasApiError(Exception):
    def __init__(
        self,
        message: str,
        *,
        type: ErrorType = ErrorType.UNAVAILABLE,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.type = type
        self.endpoint = endpoint
        self.status_code = status_code
        self.context = context

    def to_log_context(self) -> dict[str, Any]:
        """Loggable view of the error (never includes request payloads or tokens)."""
        return {
            "type": self.type.value,
            "endpoint": self.endpoint,
            "status_code": self.status_code,
            "message": self.message,
        }


class SarasUnavailable(SarasApiError):
    def __init__(self, endpoint: str, message: Optional[str] = None, *, status_code: Optional[int] = None):
        super().__init__(
            message or "Saras API is unavailable",
            type=ErrorType.UNAVAILABLE,
            endpoint=endpoint,
            status_code=status_code,
        )


class SarasAuthFailed(SarasApiError):
    def __init__(self, message: Optional[str] = None, *, endpoint: str = LOGIN_ENDPOINT, status_code: Optional[int] = None):
        super().__init__(
            message or "Saras authentication failed",
            type=ErrorType.AUTH_FAILED,
            endpoint=endpoint,
            status_code=status_code,
        )


class SarasValidationError(SarasApiError):
    def __init__(self, endpoint: str, message: str, errors: Optional[dict[str, Any]] = None):
        super().__init__(
            message,
            type=ErrorType.VALIDATION_ERROR,
            endpoint=endpoint,
            status_code=422,
            context={"errors": errors} if errors else None,
        )

    @property
    def errors(self) -> dict[str, Any]:
        return (self.context or {}).get("errors") or {}


class SarasTimeout(SarasApiError):
    def __init__(self, endpoint: str):
        super().__init__("Saras API request timed out", type=ErrorType.TIMEOUT, endpoint=endpoint)


class SarasUploadFailed(SarasApiError):
    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message, type=ErrorType.UPLOAD_FAILED, endpoint=STORAGE_ENDPOINT, context=context)
