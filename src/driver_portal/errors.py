"""
Error taxonomy for the driver portal core.

Validation and authorization failures are terminal. Fetch failures are
retried by the project feed before a PersistentFetchError surfaces.
"""

from typing import Optional


class PortalError(Exception):
    """Base class for every error raised by the driver portal core."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Missing or malformed input, raised before any store access."""
    status_code = 422
    default_message = "Invalid input"


class ContextError(PortalError):
    """Authorization context used before bind, after clear, or bound twice."""
    default_message = "Authorization context is not available"


# ==================== AUTHENTICATION ====================

class AuthenticationError(PortalError):
    status_code = 401
    default_message = "Authentication failed"


class InvalidCredentials(AuthenticationError):
    # Same message for unknown id and wrong PIN
    default_message = "Invalid Driver ID or PIN"


class InvalidToken(AuthenticationError):
    default_message = "Invalid or expired access token"


class LoginThrottled(AuthenticationError):
    status_code = 429
    default_message = "Too many login attempts, try again later"


# ==================== AUTHORIZATION / TRANSITIONS ====================

class NotOwned(PortalError):
    """Project missing or assigned to someone else; both answer the same way."""
    status_code = 404
    default_message = "Project not found"


class TransitionRejected(PortalError):
    status_code = 409
    default_message = "Project status could not be changed"

    def __init__(self, message: Optional[str] = None, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status


# ==================== FETCH ====================

class FetchError(PortalError):
    status_code = 503
    default_message = "Failed to load projects"


class TransientFetchError(FetchError):
    """Network or backend failure, safe to retry."""


class PersistentFetchError(FetchError):
    """Retries exhausted."""

    def __init__(self, message: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
