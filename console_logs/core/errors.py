"""Core exception classes for the application."""


class ValidationError(Exception):
    """Raised when validation fails."""


class InvalidTransitionError(ValidationError):
    """Raised when a process status update breaks the lifecycle."""


class NotFoundError(Exception):
    """Raised when a resource is not found."""


class StorageError(Exception):
    """Raised when the underlying store fails."""


class IndexDegradedError(Exception):
    """Raised when text search is requested but the search index is unusable."""
