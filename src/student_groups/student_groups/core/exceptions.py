class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced group does not exist."""


class ConfigurationError(DomainError):
    """Raised when a group's stored filter cannot be evaluated."""


class StoreError(DomainError):
    """Raised when the underlying data store fails."""


class ReconcileInProgressError(DomainError):
    """Raised when a filter run could not acquire the reconcile lock in time."""
