from typing import List, Optional

from reloop.models.base import plain
from reloop.models.user import AccountStatus, User
from reloop.stores.collection import DESCENDING, Collection, Filter


class UserStore:
    """Typed access to the users collection."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def create(self, user: User) -> User:
        self.collection.insert_one(user.to_document())
        return user

    def get(self, user_id: str) -> Optional[User]:
        document = self.collection.find_one({"_id": user_id})
        return User.from_document(document) if document else None

    def save(self, user: User, expected_status: Optional[AccountStatus] = None) -> bool:
        document = user.to_document()
        document.pop("_id")
        query = {"_id": user.id}
        if expected_status is not None:
            query["status"] = expected_status.value
        return self.collection.update_one(query, document) == 1

    def set_verified(self, user: User) -> bool:
        """Persist a first-time verification. Never overwrites an earlier one."""
        matched = self.collection.update_one(
            {"_id": user.id, "isVerified": False},
            {"isVerified": True, "verifiedAt": user.verifiedAt, "verifiedBy": user.verifiedBy, "updatedAt": user.updatedAt},
        )
        return matched == 1

    def list(self, selector: Filter, skip: int = 0, limit: int = 0) -> List[User]:
        documents = self.collection.find(plain(selector), sort=[("createdAt", DESCENDING)], skip=skip, limit=limit)
        return [User.from_document(doc) for doc in documents]

    def count(self, selector: Filter) -> int:
        return self.collection.count(plain(selector))
