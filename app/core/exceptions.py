"""Custom exception hierarchy."""

class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class NotFoundError(AppError):
    """Raised when a requested record does not exist."""
    pass


class ClaimStateError(AppError):
    """Raised when a claim lifecycle transition is not allowed."""

    def __init__(self, message: str, current_state: str = None, requested_state: str = None):
        super().__init__(message)
        self.current_state = current_state
        self.requested_state = requested_state


class DuplicateAlertError(DatabaseError):
    """Raised when the store already holds an unresolved alert for the same key."""
    pass
