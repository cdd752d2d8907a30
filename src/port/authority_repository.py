from typing import Protocol

from domain.model.user import Authority


class AuthorityRepository(Protocol):
    """Protocol for the authority (role) catalogue."""

    def get(self, name: str) -> Authority | None:
        ...

    def find_all(self) -> list[Authority]:
        """All authorities sorted by name."""
        ...

    def save(self, authority: Authority) -> Authority:
        """Insert the authority if missing. Saving an existing name is a no-op."""
        ...
