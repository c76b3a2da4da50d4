"""
Tests for the MongoDB backend with a mocked pymongo client.
"""

import pytest
from unittest.mock import MagicMock, patch

from pymongo.errors import DuplicateKeyError

from reloop.errors import DuplicateDocumentError
from reloop.utils.mongodb_client import MongoCollection, MongoDBClient


@pytest.fixture
def mock_pymongo_collection():
    """Fixture providing a mocked pymongo collection."""
    return MagicMock()


@pytest.fixture
def collection(mock_pymongo_collection):
    """Fixture providing a MongoCollection around the mock."""
    return MongoCollection(mock_pymongo_collection)


class TestMongoCollection:
    """Tests for the pymongo adapter."""

    def test_insert_maps_duplicate_key(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(DuplicateDocumentError):
            collection.insert_one({"_id": "1"})

    def test_insert_returns_id(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.insert_one.return_value.inserted_id = "abc"

        assert collection.insert_one({"_id": "abc"}) == "abc"

    def test_find_applies_sort_skip_limit(self, collection, mock_pymongo_collection):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.__iter__.return_value = iter([{"_id": "1"}])
        mock_pymongo_collection.find.return_value = cursor

        result = collection.find({"ownerId": "u"}, sort=[("createdAt", -1)], skip=20, limit=10)

        assert result == [{"_id": "1"}]
        mock_pymongo_collection.find.assert_called_once_with({"ownerId": "u"})
        cursor.sort.assert_called_once_with([("createdAt", -1)])
        cursor.skip.assert_called_once_with(20)
        cursor.limit.assert_called_once_with(10)

    def test_update_one_builds_set_and_inc(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.update_one.return_value.matched_count = 1

        matched = collection.update_one({"_id": "1", "status": "pending"}, {"status": "resolved"}, inc={"views": 1})

        assert matched == 1
        mock_pymongo_collection.update_one.assert_called_once_with(
            {"_id": "1", "status": "pending"},
            {"$set": {"status": "resolved"}, "$inc": {"views": 1}},
        )

    def test_update_many_is_one_call(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.update_many.return_value.modified_count = 4

        assert collection.update_many({"ownerId": "u"}, {"status": "deactivated"}) == 4
        mock_pymongo_collection.update_many.assert_called_once_with(
            {"ownerId": "u"}, {"$set": {"status": "deactivated"}}
        )

    def test_sum_groups_matching_documents(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.aggregate.return_value = iter([{"_id": None, "co2Saved": 300, "waterSaved": 3000}])

        totals = collection.sum({"status": "approved"}, ("co2Saved", "waterSaved"))

        assert totals == {"co2Saved": 300, "waterSaved": 3000}
        mock_pymongo_collection.aggregate.assert_called_once_with([
            {"$match": {"status": "approved"}},
            {"$group": {"_id": None, "co2Saved": {"$sum": "$co2Saved"}, "waterSaved": {"$sum": "$waterSaved"}}},
        ])

    def test_sum_without_matches_is_zero(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.aggregate.return_value = iter([])

        assert collection.sum({"status": "approved"}, ("co2Saved",)) == {"co2Saved": 0}

    def test_delete_one(self, collection, mock_pymongo_collection):
        mock_pymongo_collection.delete_one.return_value.deleted_count = 0

        assert collection.delete_one({"_id": "1"}) is False


class TestMongoDBClient:
    """Tests for client setup and index creation."""

    @patch('reloop.utils.mongodb_client.MongoClient')
    def test_creates_partial_unique_indexes(self, MockMongoClient):
        database = MagicMock()
        MockMongoClient.return_value.__getitem__.return_value = database

        with MongoDBClient(mongo_uri="mongodb://test:27017", db_name="reloop_test"):
            pass

        MockMongoClient.assert_called_once_with("mongodb://test:27017", tz_aware=True)
        MockMongoClient.return_value.__getitem__.assert_called_once_with("reloop_test")
        index_calls = database.__getitem__.return_value.create_index.call_args_list
        partial = [call for call in index_calls if "partialFilterExpression" in call.kwargs]
        assert {call.kwargs["name"] for call in partial} == {"one_processing_per_owner", "one_pending_per_owner"}
        assert all(call.kwargs["unique"] for call in partial)
        MockMongoClient.return_value.close.assert_called_once()

    @patch('reloop.utils.mongodb_client.MongoClient')
    def test_collection_wraps_pymongo(self, MockMongoClient):
        client = MongoDBClient(mongo_uri="mongodb://test:27017", db_name="reloop_test")

        assert isinstance(client.collection("products"), MongoCollection)
