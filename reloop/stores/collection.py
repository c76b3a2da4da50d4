"""
Abstract document collection used by the typed stores.
This provides a common interface for MongoDB and the in-process backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

Filter = Dict[str, Any]
Sort = Sequence[Tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


@dataclass(frozen=True)
class Index:
    """Index definition shared by every backend."""

    fields: Tuple[str, ...]
    unique: bool = False
    partial: Dict[str, Any] = field(default_factory=dict)
    name: Optional[str] = None

    @property
    def index_name(self) -> str:
        return self.name or "_".join(self.fields)


COLLECTION_INDEXES: Dict[str, List[Index]] = {
    "submissions": [
        Index(("ownerId", "createdAt")),
        # One in-flight generation job per owner
        Index(("ownerId",), unique=True, partial={"status": "processing"}, name="one_processing_per_owner"),
    ],
    "products": [
        Index(("ownerId", "status")),
        Index(("status", "isPublic")),
        Index(("submissionId", "ideaIndex"), unique=True, name="one_product_per_idea"),
        # One moderation slot per owner
        Index(("ownerId",), unique=True, partial={"status": "pending_verification"}, name="one_pending_per_owner"),
    ],
    "users": [
        Index(("email",), unique=True),
    ],
    "reports": [
        Index(("productId", "status")),
        Index(("createdAt",)),
    ],
}


class Collection(ABC):
    """Abstract base class for document collections."""

    @abstractmethod
    def insert_one(self, document: Dict[str, Any]) -> str:
        """
        Insert a document and return its id.

        Raises:
            DuplicateDocumentError: if a unique index rejects the document
        """
        pass

    @abstractmethod
    def find_one(self, filter: Filter, sort: Optional[Sort] = None) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def find(
        self,
        filter: Filter,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def count(self, filter: Filter) -> int:
        pass

    @abstractmethod
    def update_one(self, filter: Filter, set_fields: Dict[str, Any], inc: Optional[Dict[str, int]] = None) -> int:
        """
        Apply ``$set``/``$inc`` to the first document matching ``filter``.

        Returns:
            Number of documents matched (0 or 1)
        """
        pass

    @abstractmethod
    def update_many(self, filter: Filter, set_fields: Dict[str, Any]) -> int:
        """
        Apply ``$set`` to every matching document in a single store call.

        Returns:
            Number of documents modified
        """
        pass

    @abstractmethod
    def sum(self, filter: Filter, fields: Sequence[str]) -> Dict[str, int]:
        """
        Total each numeric field over the documents matching ``filter``.

        Returns:
            Mapping of field name to total, 0 when nothing matches
        """
        pass

    @abstractmethod
    def delete_one(self, filter: Filter) -> bool:
        pass
