"""In-memory implementation of UserRepository.

Used by tests and local runs. Safe to share between threads: every
operation runs under one re-entrant lock, and stored records are frozen
values that are swapped whole, so readers never see a half-applied write.
"""

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from domain.model.errors import DuplicateKeyError
from domain.model.user import Page, User, as_utc, check_page_request, normalize_email


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FakeUserRepository:
    def __init__(self, now: Callable[[], datetime] = _utcnow):
        self._now = now
        self._lock = threading.RLock()
        self._last_created: datetime | None = None

        self.store: dict[str, User] = {}
        # secondary indexes: key -> user id
        self._by_login: dict[str, str] = {}
        self._by_email: dict[str, str] = {}
        self._by_activation_key: dict[str, str] = {}
        self._by_reset_key: dict[str, str] = {}
        # user id -> authority names (association table)
        self._authorities: dict[str, frozenset[str]] = {}

    # ── index maintenance ────────────────────────────────────

    def _indexes(self) -> list[tuple[str, dict[str, str], Callable[[User], str | None]]]:
        return [
            ('login', self._by_login, lambda u: u.login),
            ('email', self._by_email, lambda u: u.email_key),
            ('activation_key', self._by_activation_key, lambda u: u.activation_key),
            ('reset_key', self._by_reset_key, lambda u: u.reset_key),
        ]

    def _check_unique(self, user: User, user_id: str) -> None:
        for field_name, index, key_of in self._indexes():
            key = key_of(user)
            if key is None:
                continue
            owner = index.get(key)
            if owner is not None and owner != user_id:
                raise DuplicateKeyError(field_name)

    def _unindex(self, user: User) -> None:
        for _, index, key_of in self._indexes():
            key = key_of(user)
            if key is not None and index.get(key) == user.id:
                del index[key]

    def _index(self, user: User) -> None:
        for _, index, key_of in self._indexes():
            key = key_of(user)
            if key is not None:
                index[key] = user.id

    def _next_created_date(self) -> datetime:
        now = as_utc(self._now())
        if self._last_created is not None and now < self._last_created:
            now = self._last_created
        self._last_created = now
        return now

    # ── write operations ─────────────────────────────────────

    def create(self, user: User) -> User:
        user.check_invariants()
        with self._lock:
            user_id = user.id or uuid.uuid4().hex
            if user_id in self.store:
                raise DuplicateKeyError('id')
            self._check_unique(user, user_id)

            created = self._next_created_date()
            stored = replace(
                user,
                id=user_id,
                created_date=created,
                last_modified_by=user.last_modified_by or user.created_by,
                last_modified_date=created,
                authorities=None,
            )
            self.store[user_id] = stored
            self._index(stored)
            self._authorities[user_id] = frozenset(user.authorities or ())
            return stored

    def update(self, user: User) -> User | None:
        user.check_invariants()
        with self._lock:
            existing = self.store.get(user.id) if user.id else None
            if existing is None:
                return None
            self._check_unique(user, existing.id)

            stored = replace(
                user,
                created_by=existing.created_by,
                created_date=existing.created_date,
                last_modified_date=as_utc(self._now()),
                authorities=None,
            )
            self._unindex(existing)
            self.store[existing.id] = stored
            self._index(stored)
            if user.authorities is not None:
                self._authorities[existing.id] = frozenset(user.authorities)
            return stored

    def delete(self, user_id: str) -> bool:
        with self._lock:
            existing = self.store.pop(user_id, None)
            if existing is None:
                return False
            self._unindex(existing)
            self._authorities.pop(user_id, None)
            return True

    # ── key lookups ──────────────────────────────────────────

    def _lookup(self, index: dict[str, str], key: str | None) -> User | None:
        if key is None:
            return None
        with self._lock:
            user_id = index.get(key)
            return self.store.get(user_id) if user_id else None

    def _with_authorities(self, user: User | None) -> User | None:
        if user is None:
            return None
        with self._lock:
            return replace(user, authorities=self._authorities.get(user.id, frozenset()))

    def get_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self.store.get(user_id)

    def find_by_activation_key(self, activation_key: str) -> User | None:
        return self._lookup(self._by_activation_key, activation_key)

    def find_by_reset_key(self, reset_key: str) -> User | None:
        return self._lookup(self._by_reset_key, reset_key)

    def find_by_login(self, login: str) -> User | None:
        return self._lookup(self._by_login, login)

    def find_by_email_ignore_case(self, email: str) -> User | None:
        if email is None:
            return None
        return self._lookup(self._by_email, normalize_email(email))

    def find_with_authorities_by_login(self, login: str) -> User | None:
        with self._lock:
            return self._with_authorities(self.find_by_login(login))

    def find_with_authorities_by_email_ignore_case(self, email: str) -> User | None:
        with self._lock:
            return self._with_authorities(self.find_by_email_ignore_case(email))

    # ── listings ─────────────────────────────────────────────

    def find_stale_unactivated(self, before: datetime) -> list[User]:
        before = as_utc(before)
        with self._lock:
            return [
                u for u in self.store.values()
                if not u.activated
                and u.activation_key is not None
                and u.created_date < before
            ]

    def _page(self, users: list[User], page: int, size: int) -> Page[User]:
        check_page_request(page, size)
        users.sort(key=lambda u: u.id)
        start = page * size
        return Page(items=users[start:start + size], page=page, size=size, total=len(users))

    def list_activated(self, page: int = 0, size: int = 20) -> Page[User]:
        with self._lock:
            users = [u for u in self.store.values() if u.activated]
        return self._page(users, page, size)

    def list_all(self, page: int = 0, size: int = 20) -> Page[User]:
        with self._lock:
            users = list(self.store.values())
        return self._page(users, page, size)

    def count(self) -> int:
        with self._lock:
            return len(self.store)
