"""Application-wide exception classes."""

from __future__ import annotations

from typing import Optional


class ApplicationError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class DatabaseError(ApplicationError):
    """Base exception for database-related errors."""
    pass


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool has issues."""
    pass


class StoreUnavailableError(DatabaseError):
    """Raised when the record store times out or fails transiently.

    This is the only error callers are expected to retry.
    """
    retryable = True


class ValidationError(ApplicationError):
    """Raised when input data fails validation.

    Carries the offending field so callers can re-prompt for it.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class OutOfRangeError(ValidationError):
    """Raised when a lottery or diary number is outside the printed range."""
    pass


class InvalidFormatError(ValidationError):
    """Raised when a lottery number string cannot be parsed."""
    pass


class RangeMismatchError(ValidationError):
    """Raised when a lottery number does not belong to the chosen diary."""
    pass


class InvalidAmountError(ValidationError):
    """Raised when a monetary amount is negative."""
    pass


class InvalidTransitionError(ValidationError):
    """Raised when a transition policy rejects a status change."""
    pass


class MissingFieldError(ValidationError):
    """Raised when a required field is empty."""
    pass


class NotFoundError(ApplicationError):
    """Raised when a referenced record does not exist."""
    pass


class UnknownDiaryError(NotFoundError):
    """Raised when a referenced diary does not exist."""
    pass


class ConflictError(ApplicationError):
    """Raised when a uniqueness constraint is violated."""
    pass


class DuplicateLotteryNumberError(ConflictError):
    """Raised when a lottery number has already been sold."""
    pass


class ConflictActiveAllotmentError(ConflictError):
    """Raised when a diary already has an active allotment."""
    pass
