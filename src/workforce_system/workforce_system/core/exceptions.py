class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when an employee, assignment or salary record does not exist."""


class ComputationError(DomainError):
    """Raised when a calculation would produce an inconsistent or illegal result."""


class PersistenceError(DomainError):
    """Raised when the underlying store rejects a write."""


class ConflictError(DomainError):
    """Raised when a write would duplicate or supersede existing state."""


class JobAlreadyRunningError(ConflictError):
    """Raised when a batch job is triggered while the same run is in flight."""


class RecordTimeoutError(DomainError):
    """Raised when a per-record unit of work passes its deadline before writing."""


class RateLimitExceededError(DomainError):
    """Raised when an administrative trigger is called too often."""
