"""User directory domain models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, TypeVar

from domain.model.errors import ValidationError

ROLE_ADMIN = 'ROLE_ADMIN'
ROLE_USER = 'ROLE_USER'
ROLE_ANONYMOUS = 'ROLE_ANONYMOUS'

DEFAULT_AUTHORITIES = (ROLE_ADMIN, ROLE_USER)

SYSTEM_ACCOUNT = 'system'
DEFAULT_LANGUAGE = 'en'

T = TypeVar('T')


def normalize_email(email: str) -> str:
    """Canonical form used for email uniqueness and case-insensitive lookup.

    casefold, not lower: "straße" and "STRASSE" must match.
    """
    return email.casefold()


def as_utc(moment: datetime) -> datetime:
    """Treat a naive datetime as UTC, the way the MongoDB driver does."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class Authority:
    """A permission grouping (role) a user can be granted."""
    name: str


@dataclass(frozen=True)
class User:
    """Domain model representing a directory user.

    Instances are immutable; workflows produce an updated copy with
    ``dataclasses.replace`` and hand it back to the repository.

    ``authorities`` is None when the roles were not loaded by the lookup
    that produced this instance.
    """
    login: str
    email: str
    password_hash: str = field(repr=False)
    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    lang_key: str = DEFAULT_LANGUAGE
    image_url: str | None = None
    activated: bool = False
    activation_key: str | None = None
    reset_key: str | None = None
    reset_date: datetime | None = None
    created_by: str = SYSTEM_ACCOUNT
    created_date: datetime | None = None
    last_modified_by: str | None = None
    last_modified_date: datetime | None = None
    authorities: frozenset[str] | None = None

    @property
    def email_key(self) -> str:
        return normalize_email(self.email)

    def check_invariants(self) -> None:
        """Raise ValidationError if the record cannot be stored as-is."""
        if not self.login:
            raise ValidationError("Login must not be empty")
        if not self.email:
            raise ValidationError("Email must not be empty")
        if self.activated and self.activation_key is not None:
            raise ValidationError("An activated user cannot keep an activation key")
        if self.reset_key is not None and self.reset_date is None:
            raise ValidationError("A reset key requires a reset date")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of an ordered listing (0-based page index)."""
    items: list[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages


def check_page_request(page: int, size: int) -> None:
    """Validate pagination arguments shared by all listing operations."""
    if page < 0:
        raise ValidationError("Page index must not be negative")
    if size < 1:
        raise ValidationError("Page size must be at least 1")
