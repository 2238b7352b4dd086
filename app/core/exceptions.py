"""
Base exception classes for application-wide error handling.

This module provides the root of the exception hierarchy used by every app.
Each exception carries a machine-readable error code, a human-readable
message and optional structured details, and knows which HTTP status it
maps to when it reaches the API layer.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed or missing caller input (400)
    ├── NotFoundError - Resource not found (404)
    ├── ConflictError - State conflicts, invalid transitions (409)
    └── ExternalServiceError - Third-party service failures (502)

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "Missing required fields",
        details={"email": ["This field is required."]},
    )

    # In an API view the exception handler renders e.to_dict()
    # with e.http_status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        http_status: Status code used when rendered by the API layer
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Account ID required",
                "error_code": "VALIDATION_ERROR",
                "details": {"accountId": ["This field is required."]}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when caller input is malformed or missing.

    Never retried automatically. Field-level problems go in ``details``
    keyed by the request field name.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"
    http_status: int = status.HTTP_404_NOT_FOUND


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current resource state.

    Used for invalid state transitions and stale writes.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = status.HTTP_409_CONFLICT


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Log the original error for debugging but don't expose internal
    details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = status.HTTP_502_BAD_GATEWAY


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """
    DRF exception handler that renders BaseApplicationError subclasses.

    Falls back to DRF's default handler for everything else so that
    authentication and parsing errors keep their standard shape.

    Configured via REST_FRAMEWORK["EXCEPTION_HANDLER"].
    """
    if isinstance(exc, BaseApplicationError):
        return Response(exc.to_dict(), status=exc.http_status)
    return drf_exception_handler(exc, context)
