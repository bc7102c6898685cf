from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidDuration(ValidationError):
    """Raised when a session duration is not positive or exceeds the allowed maximum."""


class InvalidIdentity(ValidationError):
    """Raised when a claimant identity (email) is malformed or not allowed."""


class NotFoundError(DomainError):
    """Raised when a looked-up entity never existed."""


class SessionNotFound(NotFoundError):
    pass


class RequestNotFound(NotFoundError):
    pass


class NoLongerActiveError(DomainError):
    """Raised when an entity existed but is no longer usable."""


class SessionNotActive(NoLongerActiveError):
    """The session code exists but the session is expired or completed."""


class SessionExpired(NoLongerActiveError):
    """The session was not active at the moment attendance was being written."""


class ChallengeFailed(DomainError):
    """Raised when a one-time passcode could not be redeemed."""

    def __init__(self, result, message: str | None = None):
        self.result = result
        super().__init__(message or f"Challenge verification failed: {result.value}")


class AuthenticationError(DomainError):
    """Raised when a caller cannot prove who it is (e.g. bad cron secret)."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class ConflictError(DomainError):
    """Raised when a write collides with existing state."""


class DuplicateSessionCode(ConflictError):
    """Raised by repositories when an active session already holds a code."""
