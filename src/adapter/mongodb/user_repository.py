"""MongoDB implementation of UserRepository.

Document layout (collection ``users``)::

    {
        '_id': <user id>,
        'login': ..., 'email': ..., 'email_key': ...,
        'password_hash': ..., 'activated': bool,
        'activation_key': str | None, 'reset_key': str | None, 'reset_date': ...,
        'created_by': ..., 'created_date': ..., 'last_modified_by': ..., 'last_modified_date': ...,
        'authorities': [<authority name>, ...],
        ...
    }

Plain lookups project ``authorities`` away and return ``authorities=None``;
only the ``*_with_authorities_*`` lookups load them.
"""

import uuid
from datetime import datetime, timezone
from logging import getLogger
from typing import Callable

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from pymongo.errors import PyMongoError

from adapter.mongodb import USERS_COLLECTION_NAME
from domain.model.errors import DuplicateKeyError, StorageError
from domain.model.user import Page, User, as_utc, check_page_request, normalize_email

logger = getLogger(__name__)

WITHOUT_AUTHORITIES = {'authorities': False}

# stored field -> domain field reported in DuplicateKeyError
_UNIQUE_FIELDS = {
    '_id': 'id',
    'login': 'login',
    'email_key': 'email',
    'activation_key': 'activation_key',
    'reset_key': 'reset_key',
}

# fields an update may change; created_by/created_date are write-once
_MUTABLE_FIELDS = (
    'login', 'email', 'password_hash', 'first_name', 'last_name', 'lang_key',
    'image_url', 'activated', 'activation_key', 'reset_key', 'reset_date',
    'last_modified_by',
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _duplicate_field(error: MongoDuplicateKeyError) -> str:
    key_value = (error.details or {}).get('keyValue') or {}
    for stored_field in key_value:
        if stored_field in _UNIQUE_FIELDS:
            return _UNIQUE_FIELDS[stored_field]
    return 'key'


class MongoUserRepository:
    def __init__(self, db: Database, now: Callable[[], datetime] = _utcnow):
        self.collection = db[USERS_COLLECTION_NAME]
        self._now = now

    # ── indexes ──────────────────────────────────────────────

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('login', 1)], 'idx_users_login', unique=True)
            create_index_safe(self.collection, [('email_key', 1)], 'idx_users_email_key', unique=True)
            create_index_safe(
                self.collection, [('activation_key', 1)], 'idx_users_activation_key',
                unique=True, partialFilterExpression={'activation_key': {'$type': 'string'}},
            )
            create_index_safe(
                self.collection, [('reset_key', 1)], 'idx_users_reset_key',
                unique=True, partialFilterExpression={'reset_key': {'$type': 'string'}},
            )
            create_index_safe(
                self.collection, [('activated', 1), ('created_date', 1)], 'idx_users_activated_created',
            )
            create_index_safe(self.collection, [('created_date', -1)], 'idx_users_created_date')
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    # ── mapping ──────────────────────────────────────────────

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        authorities = None
        if 'authorities' in doc:
            authorities = frozenset(doc['authorities'] or ())

        return User(
            id=doc['_id'],
            login=doc['login'],
            email=doc['email'],
            password_hash=doc.get('password_hash', ''),
            first_name=doc.get('first_name'),
            last_name=doc.get('last_name'),
            lang_key=doc.get('lang_key', 'en'),
            image_url=doc.get('image_url'),
            activated=doc.get('activated', False),
            activation_key=doc.get('activation_key'),
            reset_key=doc.get('reset_key'),
            reset_date=doc.get('reset_date'),
            created_by=doc.get('created_by', 'system'),
            created_date=doc.get('created_date'),
            last_modified_by=doc.get('last_modified_by'),
            last_modified_date=doc.get('last_modified_date'),
            authorities=authorities,
        )

    def _mutable_fields(self, user: User) -> dict:
        fields = {name: getattr(user, name) for name in _MUTABLE_FIELDS}
        fields['email_key'] = user.email_key
        return fields

    def _next_created_date(self) -> datetime:
        """Service clock, clamped so created_date never goes below the newest stored one.

        Inserts racing from two processes can still interleave.
        """
        now = as_utc(self._now())
        try:
            latest = self.collection.find_one(
                {}, {'created_date': True}, sort=[('created_date', -1)],
            )
        except PyMongoError as e:
            logger.error("Failed to read latest created_date", extra={"error": str(e)})
            raise StorageError("Failed to create user") from e

        if latest and latest.get('created_date') is not None:
            newest = as_utc(latest['created_date'])
            if now < newest:
                return newest
        return now

    # ── write operations ─────────────────────────────────────

    def create(self, user: User) -> User:
        """Insert a new user. Raises DuplicateKeyError or StorageError."""
        user.check_invariants()
        now = self._next_created_date()
        doc = {
            '_id': user.id or uuid.uuid4().hex,
            **self._mutable_fields(user),
            'last_modified_by': user.last_modified_by or user.created_by,
            'created_by': user.created_by,
            'created_date': now,
            'last_modified_date': now,
            'authorities': sorted(user.authorities or ()),
        }
        try:
            self.collection.insert_one(doc)
        except MongoDuplicateKeyError as e:
            field = _duplicate_field(e)
            logger.warning("User creation rejected: duplicate key", extra={"login": user.login, "field": field})
            raise DuplicateKeyError(field) from e
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"login": user.login, "error": str(e)})
            raise StorageError("Failed to create user") from e

        logger.info("User created", extra={"userId": doc['_id'], "login": user.login})
        return self._to_domain({k: v for k, v in doc.items() if k != 'authorities'})

    def update(self, user: User) -> User | None:
        """Apply the user's mutable fields to the stored document. Return None if absent."""
        user.check_invariants()
        if not user.id:
            return None

        changes = {**self._mutable_fields(user), 'last_modified_date': as_utc(self._now())}
        if user.authorities is not None:
            changes['authorities'] = sorted(user.authorities)
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user.id},
                {'$set': changes},
                projection=WITHOUT_AUTHORITIES,
                return_document=ReturnDocument.AFTER,
            )
        except MongoDuplicateKeyError as e:
            field = _duplicate_field(e)
            logger.warning("User update rejected: duplicate key", extra={"userId": user.id, "field": field})
            raise DuplicateKeyError(field) from e
        except PyMongoError as e:
            logger.error("Failed to update user", extra={"userId": user.id, "error": str(e)})
            raise StorageError("Failed to update user") from e

        if doc is None:
            return None
        logger.debug("User updated", extra={"userId": user.id})
        return self._to_domain(doc)

    def delete(self, user_id: str) -> bool:
        """Delete a user. Return True if deleted, False if not found."""
        try:
            result = self.collection.delete_one({'_id': user_id})
        except PyMongoError as e:
            logger.error("Failed to delete user", extra={"userId": user_id, "error": str(e)})
            raise StorageError("Failed to delete user") from e

        if result.deleted_count > 0:
            logger.info("User deleted", extra={"userId": user_id})
            return True
        return False

    # ── key lookups ──────────────────────────────────────────

    def _find_one(self, query: dict, with_authorities: bool = False) -> User | None:
        projection = None if with_authorities else WITHOUT_AUTHORITIES
        try:
            doc = self.collection.find_one(query, projection)
        except PyMongoError as e:
            logger.error("Failed to look up user", extra={"fields": sorted(query), "error": str(e)})
            raise StorageError("Failed to look up user") from e

        if doc is None:
            return None
        if with_authorities:
            doc.setdefault('authorities', [])
        return self._to_domain(doc)

    def get_by_id(self, user_id: str) -> User | None:
        return self._find_one({'_id': user_id})

    def find_by_activation_key(self, activation_key: str) -> User | None:
        if activation_key is None:
            return None
        return self._find_one({'activation_key': activation_key})

    def find_by_reset_key(self, reset_key: str) -> User | None:
        if reset_key is None:
            return None
        return self._find_one({'reset_key': reset_key})

    def find_by_login(self, login: str) -> User | None:
        return self._find_one({'login': login})

    def find_by_email_ignore_case(self, email: str) -> User | None:
        if email is None:
            return None
        return self._find_one({'email_key': normalize_email(email)})

    def find_with_authorities_by_login(self, login: str) -> User | None:
        return self._find_one({'login': login}, with_authorities=True)

    def find_with_authorities_by_email_ignore_case(self, email: str) -> User | None:
        if email is None:
            return None
        return self._find_one({'email_key': normalize_email(email)}, with_authorities=True)

    # ── listings ─────────────────────────────────────────────

    def find_stale_unactivated(self, before: datetime) -> list[User]:
        query = {
            'activated': False,
            'activation_key': {'$ne': None},
            'created_date': {'$lt': as_utc(before)},
        }
        try:
            return [self._to_domain(doc) for doc in self.collection.find(query, WITHOUT_AUTHORITIES)]
        except PyMongoError as e:
            logger.error("Failed to find stale unactivated users", extra={"error": str(e)})
            raise StorageError("Failed to find stale unactivated users") from e

    def _page(self, query: dict, page: int, size: int) -> Page[User]:
        check_page_request(page, size)
        try:
            total = self.collection.count_documents(query)
            cursor = (
                self.collection.find(query, WITHOUT_AUTHORITIES)
                .sort('_id', 1)
                .skip(page * size)
                .limit(size)
            )
            items = [self._to_domain(doc) for doc in cursor]
        except PyMongoError as e:
            logger.error("Failed to list users", extra={"page": page, "size": size, "error": str(e)})
            raise StorageError("Failed to list users") from e
        return Page(items=items, page=page, size=size, total=total)

    def list_activated(self, page: int = 0, size: int = 20) -> Page[User]:
        return self._page({'activated': True}, page, size)

    def list_all(self, page: int = 0, size: int = 20) -> Page[User]:
        return self._page({}, page, size)

    def count(self) -> int:
        try:
            return self.collection.count_documents({})
        except PyMongoError as e:
            logger.error("Failed to count users", extra={"error": str(e)})
            raise StorageError("Failed to count users") from e
