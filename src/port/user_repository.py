"""Port for user directory data access."""

from datetime import datetime
from typing import Protocol

from domain.model.user import Page, User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Lookups return None (or an empty result) when nothing matches.
    Write failures raise DuplicateKeyError, ValidationError or StorageError.
    """

    # ── writes ───────────────────────────────────────────────

    def create(self, user: User) -> User:
        """Insert a new user. Return the stored User with id and audit dates assigned.

        created_date comes from the store clock and never goes below the
        newest created_date already stored. Naive clock values are read as UTC.
        """
        ...

    def update(self, user: User) -> User | None:
        """Replace an existing user by id. Return None if the id is unknown.

        created_by and created_date are never changed by an update.
        """
        ...

    def delete(self, user_id: str) -> bool:
        """Delete a user. Return True if deleted, False if not found."""
        ...

    # ── key lookups ──────────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        ...

    def find_by_activation_key(self, activation_key: str) -> User | None:
        """Find the user holding exactly this pending activation key."""
        ...

    def find_by_reset_key(self, reset_key: str) -> User | None:
        """Find the user holding exactly this password reset key."""
        ...

    def find_by_login(self, login: str) -> User | None:
        """Find a user by login (case-sensitive)."""
        ...

    def find_by_email_ignore_case(self, email: str) -> User | None:
        """Find a user by email, casefolding both sides. None finds nothing."""
        ...

    def find_with_authorities_by_login(self, login: str) -> User | None:
        """Like find_by_login, with the authorities set always populated."""
        ...

    def find_with_authorities_by_email_ignore_case(self, email: str) -> User | None:
        """Like find_by_email_ignore_case, with the authorities set always populated."""
        ...

    # ── listings ─────────────────────────────────────────────

    def find_stale_unactivated(self, before: datetime) -> list[User]:
        """Users not activated, holding an activation key, created strictly before `before`.

        A naive `before` is read as UTC.
        """
        ...

    def list_activated(self, page: int = 0, size: int = 20) -> Page[User]:
        """Activated users ordered by id ascending."""
        ...

    def list_all(self, page: int = 0, size: int = 20) -> Page[User]:
        """All users ordered by id ascending."""
        ...

    def count(self) -> int:
        ...
