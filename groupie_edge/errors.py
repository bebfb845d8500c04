"""
Error taxonomy for the Groupie Edge server.

Every error that can end a request is an ``EdgeError`` subclass carrying the
HTTP status, a short machine-readable ``error`` code and a generic message.
``main.create_app`` registers one exception handler that renders them as::

    {"error": "<code>", "message": "<text>"}

Raw driver errors and tracebacks never end up in these payloads.
"""

from typing import Dict, Optional

from fastapi import status


class EdgeError(Exception):
    """Base class for request-terminating errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.message
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error, "message": self.message}


# =============================================================================
# Relay Errors
# =============================================================================

class RelayError(EdgeError):
    """Errors raised while relaying a request to the upstream API."""


class RouteNotFound(RelayError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"
    message = "No proxy route for this path"


class UpstreamUnavailable(RelayError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "upstream_unavailable"
    message = "Failed to fetch remote API, try again later"


# =============================================================================
# Auth Errors
# =============================================================================

class AuthError(EdgeError):
    """Errors raised by the registration/login state machine."""


class MethodNotAllowed(AuthError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    error = "method_not_allowed"
    message = "Method not allowed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"Allow": "POST"})


class StoreUnavailable(AuthError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "database_unavailable"
    message = "Database unavailable, try again later"


class InvalidPayload(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_json"
    message = "Request body is not a valid JSON payload"


class InvalidFields(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_fields"
    message = "Missing or invalid fields"


class MissingCredentials(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "missing_credentials"
    message = "Missing credentials"


class InvalidCredentials(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "invalid_credentials"
    message = "Invalid credentials"


class Conflict(AuthError):
    status_code = status.HTTP_409_CONFLICT
    error = "conflict"
    message = "User already exists"


class Internal(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_error"
    message = "Internal server error"


# =============================================================================
# Site Errors
# =============================================================================

class AssetNotFound(EdgeError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"
    message = "File not found"
