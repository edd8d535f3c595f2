"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No sensitive data leaks in error messages

Aggregation code never raises for bad data: malformed records are skipped
and empty inputs produce zero values. Exceptions here cover request-level
failures (authorization, unknown ids, invalid lifecycle transitions).
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the bearer token is missing, invalid or belongs to an
    unknown or inactive user.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class AuthorizationError(AppException):
    """
    Raised when the caller lacks the role an operation requires.

    WHY: Analytics and administrative response edits are restricted to
    ADMIN/ANALYST roles. Distinguishing 403 from 401 lets clients show
    "no permission" rather than "please log in".

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is malformed or its signature does not verify."""

    default_message = "Invalid token"


# ============================================================================
# Validation & Lookup Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when request data fails business validation.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppException):
    """
    Raised when the request conflicts with the current state of a resource.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Request conflicts with current resource state"


# ============================================================================
# Survey Exceptions
# ============================================================================


class SurveyError(AppException):
    """
    Base class for survey-related errors.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Survey error"


class SurveyNotFoundError(ResourceNotFoundError):
    """Raised when a survey id does not exist."""

    default_message = "Survey not found"


class SurveyNotPublishedError(SurveyError):
    """
    Raised when a respondent tries to start or submit an unpublished survey.

    WHY: Draft surveys are still being edited; accepting answers against
    them would produce responses to questions that may be removed.
    """

    default_message = "Survey is not accepting responses"


# ============================================================================
# Response Lifecycle Exceptions
# ============================================================================


class ResponseNotFoundError(ResourceNotFoundError):
    """Raised when a completed response id does not exist."""

    default_message = "Survey response not found"


class SessionNotFoundError(ResourceNotFoundError):
    """Raised when an in-progress response session id does not exist."""

    default_message = "Response session not found"


class SessionAlreadyCompletedError(ConflictError):
    """
    Raised when an answer is recorded against a session that was already
    marked completed.

    HTTP Status: 409 Conflict
    """

    default_message = "Response session is no longer open"


# ============================================================================
# Analytics & Infrastructure Exceptions
# ============================================================================


class AnalyticsError(AppException):
    """
    Raised when analytics data cannot be loaded.

    WHY: Aggregators never fail on bad records; this wraps failures of the
    surrounding data access so the client gets a structured 500.
    """

    status_code = 500
    default_message = "Failed to compute analytics"


class DatabaseError(AppException):
    """
    Raised when a database operation fails.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database operation failed"
