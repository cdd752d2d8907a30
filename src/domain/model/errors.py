"""Domain-level exceptions.

Adapters translate driver failures into these errors.
Route handlers catch them and map to appropriate HTTP status codes.

"Not found" is not an error for lookups: repositories return None,
an empty list or False instead.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class DuplicateError(DomainError):
    """Entity with the same unique key already exists."""


class DuplicateKeyError(DuplicateError):
    """A write would violate a unique user key (login, email, activation/reset key)."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"A user with the same {field} already exists")


class PermissionDeniedError(DomainError):
    """Caller lacks permission for the requested action."""


class ValidationError(DomainError):
    """Input violates a business validation rule."""


class StorageError(DomainError):
    """Backing store is unavailable or a write failed."""
