from typing import Any, Dict, List, Optional, Sequence

from pymongo import ASCENDING, MongoClient
from pymongo.errors import DuplicateKeyError

from reloop.errors import DuplicateDocumentError
from reloop.stores.collection import COLLECTION_INDEXES, Collection, Filter, Sort
from reloop.utils.config import config
from reloop.utils.logger import logger


class MongoCollection(Collection):
    """Collection backed by a pymongo collection."""

    def __init__(self, collection):
        self.collection = collection

    def insert_one(self, document: Dict[str, Any]) -> str:
        try:
            result = self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise DuplicateDocumentError(str(e)) from e
        return result.inserted_id

    def find_one(self, filter: Filter, sort: Optional[Sort] = None) -> Optional[Dict[str, Any]]:
        return self.collection.find_one(filter, sort=list(sort) if sort else None)

    def find(self, filter: Filter, sort: Optional[Sort] = None, skip: int = 0, limit: int = 0) -> List[Dict[str, Any]]:
        cursor = self.collection.find(filter)
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def count(self, filter: Filter) -> int:
        return self.collection.count_documents(filter)

    def update_one(self, filter: Filter, set_fields: Dict[str, Any], inc: Optional[Dict[str, int]] = None) -> int:
        update = {}
        if set_fields:
            update["$set"] = set_fields
        if inc:
            update["$inc"] = inc
        try:
            result = self.collection.update_one(filter, update)
        except DuplicateKeyError as e:
            raise DuplicateDocumentError(str(e)) from e
        return result.matched_count

    def sum(self, filter: Filter, fields: Sequence[str]) -> Dict[str, int]:
        group = {"_id": None, **{field: {"$sum": f"${field}"} for field in fields}}
        results = list(self.collection.aggregate([{"$match": filter}, {"$group": group}]))
        totals = results[0] if results else {}
        return {field: totals.get(field, 0) for field in fields}

    def update_many(self, filter: Filter, set_fields: Dict[str, Any]) -> int:
        result = self.collection.update_many(filter, {"$set": set_fields})
        return result.modified_count

    def delete_one(self, filter: Filter) -> bool:
        result = self.collection.delete_one(filter)
        return result.deleted_count > 0


class MongoDBClient:
    def __init__(self, mongo_uri: Optional[str] = None, db_name: Optional[str] = None):
        self.mongo_uri = mongo_uri or config.mongo_uri
        self.client = MongoClient(self.mongo_uri, tz_aware=True)

        self.db = self.client[db_name or config.mongo_db_name]
        self.submissions = self.db.submissions
        self.products = self.db.products
        self.users = self.db.users
        self.reports = self.db.reports
        self.create_indexes()

    def create_indexes(self):
        """Create necessary indexes for collections."""
        for name, indexes in COLLECTION_INDEXES.items():
            for index in indexes:
                options = {"name": index.index_name}
                if index.unique:
                    options["unique"] = True
                if index.partial:
                    # Partial unique indexes close the check-then-create races
                    options["partialFilterExpression"] = index.partial
                self.db[name].create_index([(field, ASCENDING) for field in index.fields], **options)
        logger.debug("MongoDB indexes ensured")

    def collection(self, name: str) -> MongoCollection:
        return MongoCollection(self.db[name])

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the MongoDB connection."""
        if self.client:
            self.client.close()
