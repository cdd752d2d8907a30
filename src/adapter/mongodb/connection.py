"""MongoDB client for the user directory.

One client per process, checked with a ping before reuse. A missing
MONGO_URL or a failed first connection is remembered so request handlers
answer 503 without waiting on server selection each time.
"""

import os
import logging
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from adapter.mongodb import USERS_COLLECTION_NAME

logger = logging.getLogger(__name__)

# Driver-level logs are noisy at INFO
logging.getLogger('pymongo').setLevel(logging.WARNING)

MONGO_URL = os.getenv('MONGO_URL')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'user_directory')

CLIENT_OPTIONS = {
    'tz_aware': True,  # created_date comparisons need aware datetimes
    'serverSelectionTimeoutMS': 5000,
    'connectTimeoutMS': 5000,
    'socketTimeoutMS': 30000,
    'maxPoolSize': 10,
    'retryWrites': True,
    'retryReads': True,
}

_client_cache = None
_connection_attempted = False
_connection_failed = False


def reset_client():
    """Forget the cached client and any recorded configuration failure."""
    global _client_cache, _connection_attempted, _connection_failed
    _client_cache = None
    _connection_attempted = False
    _connection_failed = False


def ping(client: MongoClient) -> str | None:
    """Ping the server. Return None when it answers, else the error text."""
    try:
        client.admin.command('ping')
        return None
    except PyMongoError as e:
        return str(e)[:200]


def get_mongodb_client() -> MongoClient | None:
    """Cached client, or None when MongoDB is unconfigured or unreachable.

    A cached client that stops answering is dropped and rebuilt. Once the
    first connection has failed, no further attempts are made until
    reset_client().
    """
    global _client_cache, _connection_attempted, _connection_failed

    if _client_cache is not None:
        if ping(_client_cache) is None:
            return _client_cache
        logger.debug("[MONGODB] Cached client failed ping, reconnecting")
        _client_cache = None

    if _connection_failed:
        return None

    if not MONGO_URL:
        logger.error("[MONGODB] MONGO_URL not configured.")
        _connection_failed = True
        return None

    try:
        client = MongoClient(MONGO_URL, **CLIENT_OPTIONS)
        error = ping(client)
    except PyMongoError as e:  # bad URL or options
        error = str(e)[:200]
    if error is not None:
        if not _connection_attempted:
            logger.error("[MONGODB] Initial connection failed", extra={"error": error})
            _connection_failed = True
        return None

    if not _connection_attempted:
        logger.info(f"[MONGODB] Connected to {DATABASE_NAME}")
    _connection_attempted = True
    _client_cache = client
    return client


def get_database() -> Database | None:
    client = get_mongodb_client()
    return client[DATABASE_NAME] if client is not None else None


def user_store_status() -> dict:
    """Health of the user store: reachable, and how many users it holds."""
    db = get_database()
    if db is None:
        return {
            "status": "unhealthy",
            "database": DATABASE_NAME,
            "message": "Connection failed or not configured",
        }

    error = ping(db.client)
    if error is not None:
        return {"status": "unhealthy", "database": DATABASE_NAME, "message": f"Connection error: {error}"}

    try:
        users = db[USERS_COLLECTION_NAME].estimated_document_count()
    except PyMongoError as e:
        return {"status": "unhealthy", "database": DATABASE_NAME, "message": f"Users collection unreadable: {str(e)[:200]}"}

    return {"status": "healthy", "database": DATABASE_NAME, "users": users}
