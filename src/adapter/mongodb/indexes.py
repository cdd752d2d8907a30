"""MongoDB index management utilities.

The users collection relies on unique and partial indexes for its key
invariants, so an index that exists with the wrong options is replaced
rather than left in place.
"""

from logging import getLogger

from pymongo.errors import OperationFailure

logger = getLogger(__name__)

# Server error codes for an index that clashes with an existing one
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86

_COMPARED_OPTIONS = ('unique', 'sparse', 'partialFilterExpression')


def create_index_safe(collection, keys: list, name: str, **kwargs) -> bool:
    """Create index, replacing a conflicting one.

    Handles three conflict scenarios:
    - Same name but different key spec
    - Same key spec but different name
    - Same name and keys but different options (e.g. an index that lost `unique`)
    """
    try:
        collection.create_index(keys, name=name, **kwargs)
        return True
    except OperationFailure as e:
        if e.code not in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT) and "already exists" not in str(e):
            raise
        return _resolve_conflict(collection, keys, name, **kwargs)


def _resolve_conflict(collection, keys: list, name: str, **kwargs) -> bool:
    """Drop the clashing index and recreate it with the desired spec."""
    wanted_keys = dict(keys)
    wanted_options = {opt: kwargs.get(opt) for opt in _COMPARED_OPTIONS}

    for idx_name, idx_info in collection.index_information().items():
        if idx_name == '_id_':
            continue

        same_name = idx_name == name
        same_keys = dict(idx_info.get('key', [])) == wanted_keys
        same_options = {opt: idx_info.get(opt) for opt in _COMPARED_OPTIONS} == wanted_options

        if same_name != same_keys or (same_name and not same_options):
            logger.warning("Dropping conflicting index", extra={"index": idx_name, "wanted": name})
            collection.drop_index(idx_name)
            collection.create_index(keys, name=name, **kwargs)
            logger.info("Recreated index", extra={"index": name})
            return True

    logger.error("Failed to resolve index conflict", extra={"index": name})
    return False


def ensure_all_indexes(db) -> bool:
    """Ensure indexes for all collections. Called at app startup."""
    from adapter.mongodb.authority_repository import MongoAuthorityRepository
    from adapter.mongodb.user_repository import MongoUserRepository

    results = [
        MongoUserRepository(db).ensure_indexes(),
        MongoAuthorityRepository(db).ensure_indexes(),
    ]
    return all(results)
