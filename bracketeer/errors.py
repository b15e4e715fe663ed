"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class InvalidStateError(AppError):
    """Raised when an entity is not in a state that allows the operation."""

    def __init__(self, message="Operation not allowed in the current state."):
        """Initialize the error."""
        super().__init__(message, 400)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists.", status_code=409):
        """Initialize the error."""
        super().__init__(message, status_code)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class AuthenticationError(AppError):
    """Raised when a request carries no valid credentials."""

    def __init__(self, message="Authentication required."):
        """Initialize the error."""
        super().__init__(message, 401)


class ForbiddenError(AppError):
    """Raised when the caller may not perform the operation."""

    def __init__(self, message="You are not allowed to perform this action."):
        """Initialize the error."""
        super().__init__(message, 403)


class InsufficientFundsError(AppError):
    """Raised when a wallet cannot cover a charge."""

    def __init__(self, message="Insufficient wallet balance."):
        """Initialize the error."""
        super().__init__(message, 402)


class UpstreamError(AppError):
    """Raised when an external service fails or cannot be reached."""

    def __init__(self, message="Upstream service unavailable."):
        """Initialize the error."""
        super().__init__(message, 502)


class MatchIntegrityError(Exception):
    """Raised when a match document would be persisted in an invalid state."""
