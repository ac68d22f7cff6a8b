"""Exception types shared across the news service."""


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class ValidationFailure(Exception):
    """Raised when request parameters are malformed or out of range.

    Always raised before any I/O happens; never retried.
    """
    pass


class ProviderFailure(Exception):
    """Raised when the external news provider errors or times out."""
    pass


class DuplicateRecordError(Exception):
    """Raised when an insert violates a uniqueness constraint in the store."""
    pass


class RecordNotFound(Exception):
    """Raised when a user-owned record does not exist or belongs to someone else."""
    pass


class AuthenticationFailure(Exception):
    """Raised when a request carries no bearer token, or one that fails verification."""
    pass


class RateLimitExceeded(Exception):
    """Raised when a client exhausts its request window.

    Attributes:
        retry_after (int): Seconds until the window resets.
    """

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after
