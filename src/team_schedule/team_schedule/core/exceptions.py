class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when the caller lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when an id is unknown or belongs to another team."""


class ConflictError(DomainError):
    """Raised when a create-only write hits an existing unique key."""


class InvalidTargetError(ConflictError):
    """Raised when an attendance transfer target is not acceptable."""


class ConsistencyGuardError(ConflictError):
    """Raised when a write would overwrite an already-paid tuition row."""
