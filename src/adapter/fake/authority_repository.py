"""In-memory implementation of AuthorityRepository for testing."""

import threading

from domain.model.user import Authority


class FakeAuthorityRepository:
    def __init__(self, names: tuple[str, ...] = ()):
        self._lock = threading.Lock()
        self.store: dict[str, Authority] = {name: Authority(name) for name in names}

    def get(self, name: str) -> Authority | None:
        return self.store.get(name)

    def find_all(self) -> list[Authority]:
        with self._lock:
            return sorted(self.store.values(), key=lambda a: a.name)

    def save(self, authority: Authority) -> Authority:
        with self._lock:
            return self.store.setdefault(authority.name, authority)
