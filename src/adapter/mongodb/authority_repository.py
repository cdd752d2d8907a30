"""MongoDB implementation of AuthorityRepository."""

from logging import getLogger

from pymongo.database import Database
from pymongo.errors import PyMongoError

from adapter.mongodb import AUTHORITIES_COLLECTION_NAME
from domain.model.errors import StorageError
from domain.model.user import Authority

logger = getLogger(__name__)


class MongoAuthorityRepository:
    def __init__(self, db: Database):
        self.collection = db[AUTHORITIES_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        # _id is the authority name; MongoDB indexes it already.
        return True

    def get(self, name: str) -> Authority | None:
        try:
            doc = self.collection.find_one({'_id': name})
        except PyMongoError as e:
            logger.error("Failed to get authority", extra={"authority": name, "error": str(e)})
            raise StorageError("Failed to get authority") from e
        return Authority(doc['_id']) if doc else None

    def find_all(self) -> list[Authority]:
        try:
            return [Authority(doc['_id']) for doc in self.collection.find({}).sort('_id', 1)]
        except PyMongoError as e:
            logger.error("Failed to list authorities", extra={"error": str(e)})
            raise StorageError("Failed to list authorities") from e

    def save(self, authority: Authority) -> Authority:
        try:
            result = self.collection.update_one(
                {'_id': authority.name},
                {'$setOnInsert': {'_id': authority.name}},
                upsert=True,
            )
        except PyMongoError as e:
            logger.error("Failed to save authority", extra={"authority": authority.name, "error": str(e)})
            raise StorageError("Failed to save authority") from e

        if result.upserted_id is not None:
            logger.info("Authority created", extra={"authority": authority.name})
        return authority
