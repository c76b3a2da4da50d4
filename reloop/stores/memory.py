"""
In-process document collections. Used for local development and tests.
"""

import copy
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from reloop.errors import DuplicateDocumentError
from reloop.stores.collection import COLLECTION_INDEXES, Collection, Filter, Index, Sort

_MISSING = object()


def get_path(document: Dict[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return _MISSING
            current = current[index]
        elif isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def set_path(document: Dict[str, Any], path: str, value: Any):
    parts = path.split(".")
    current: Any = document
    for part in parts[:-1]:
        current = current[int(part)] if isinstance(current, list) else current.setdefault(part, {})
    last = parts[-1]
    if isinstance(current, list):
        current[int(last)] = value
    else:
        current[last] = value


def _matches_condition(actual: Any, expected: Any) -> bool:
    if isinstance(expected, dict) and expected and all(key.startswith("$") for key in expected):
        for operator, operand in expected.items():
            value = None if actual is _MISSING else actual
            if operator == "$in" and value not in operand:
                return False
            if operator == "$nin" and value in operand:
                return False
            if operator == "$ne" and value == operand:
                return False
            if operator == "$gte" and (value is None or value < operand):
                return False
            if operator == "$lt" and (value is None or value >= operand):
                return False
            if operator == "$lte" and (value is None or value > operand):
                return False
        return True
    if actual is _MISSING:
        return expected is None
    return actual == expected


def matches(document: Dict[str, Any], filter: Filter) -> bool:
    return all(_matches_condition(get_path(document, key), expected) for key, expected in filter.items())


def _sort_key(value: Any):
    # None sorts first, like MongoDB
    if value is None or value is _MISSING:
        return (0, 0)
    if isinstance(value, datetime):
        return (1, value.timestamp())
    return (1, value)


class InMemoryCollection(Collection):
    """Thread-safe collection holding deep copies of its documents."""

    def __init__(self, indexes: Optional[List[Index]] = None):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._indexes = [index for index in (indexes or []) if index.unique]
        self._lock = threading.RLock()

    def _check_unique(self, candidate: Dict[str, Any], ignore_id: Optional[str] = None):
        for index in self._indexes:
            if index.partial and not matches(candidate, index.partial):
                continue
            key = tuple(get_path(candidate, name) for name in index.fields)
            for doc_id, existing in self._documents.items():
                if doc_id == ignore_id:
                    continue
                if index.partial and not matches(existing, index.partial):
                    continue
                if tuple(get_path(existing, name) for name in index.fields) == key:
                    raise DuplicateDocumentError(
                        f"Duplicate key for index {index.index_name}: {key}"
                    )

    def insert_one(self, document: Dict[str, Any]) -> str:
        with self._lock:
            doc_id = document["_id"]
            if doc_id in self._documents:
                raise DuplicateDocumentError(f"Duplicate key for index _id: {doc_id}")
            self._check_unique(document)
            self._documents[doc_id] = copy.deepcopy(document)
            return doc_id

    def find(self, filter: Filter, sort: Optional[Sort] = None, skip: int = 0, limit: int = 0) -> List[Dict[str, Any]]:
        with self._lock:
            results = [copy.deepcopy(doc) for doc in self._documents.values() if matches(doc, filter)]
        for field, direction in reversed(list(sort or [])):
            results.sort(key=lambda doc: _sort_key(get_path(doc, field)), reverse=direction < 0)
        results = results[skip:]
        return results[:limit] if limit else results

    def find_one(self, filter: Filter, sort: Optional[Sort] = None) -> Optional[Dict[str, Any]]:
        results = self.find(filter, sort=sort, limit=1)
        return results[0] if results else None

    def count(self, filter: Filter) -> int:
        with self._lock:
            return sum(1 for doc in self._documents.values() if matches(doc, filter))

    def sum(self, filter: Filter, fields: Sequence[str]) -> Dict[str, int]:
        with self._lock:
            matched = [doc for doc in self._documents.values() if matches(doc, filter)]
        totals = {}
        for field in fields:
            values = (get_path(doc, field) for doc in matched)
            totals[field] = sum(value for value in values if isinstance(value, (int, float)))
        return totals

    def _apply(self, document: Dict[str, Any], set_fields: Dict[str, Any], inc: Optional[Dict[str, int]]):
        updated = copy.deepcopy(document)
        for path, value in set_fields.items():
            set_path(updated, path, copy.deepcopy(value))
        for path, amount in (inc or {}).items():
            current = get_path(updated, path)
            set_path(updated, path, (0 if current is _MISSING else current) + amount)
        self._check_unique(updated, ignore_id=document["_id"])
        return updated

    def update_one(self, filter: Filter, set_fields: Dict[str, Any], inc: Optional[Dict[str, int]] = None) -> int:
        with self._lock:
            for doc_id, document in self._documents.items():
                if matches(document, filter):
                    self._documents[doc_id] = self._apply(document, set_fields, inc)
                    return 1
            return 0

    def update_many(self, filter: Filter, set_fields: Dict[str, Any]) -> int:
        with self._lock:
            targets = [doc_id for doc_id, doc in self._documents.items() if matches(doc, filter)]
            # Build every new version first so a constraint violation leaves nothing half-applied
            updated = {doc_id: self._apply(self._documents[doc_id], set_fields, None) for doc_id in targets}
            self._documents.update(updated)
            return len(updated)

    def delete_one(self, filter: Filter) -> bool:
        with self._lock:
            for doc_id, document in self._documents.items():
                if matches(document, filter):
                    del self._documents[doc_id]
                    return True
            return False


class InMemoryDatabase:
    """Holds one InMemoryCollection per entity, with the standard indexes."""

    def __init__(self):
        self._collections = {
            name: InMemoryCollection(indexes) for name, indexes in COLLECTION_INDEXES.items()
        }

    def collection(self, name: str) -> InMemoryCollection:
        return self._collections[name]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        pass
