from typing import List, Optional

from reloop.models.submission import Submission, SubmissionStatus, WasteInput
from reloop.stores.collection import DESCENDING, Collection


class SubmissionStore:
    """Typed access to the submissions collection."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def _load(self, document) -> Optional[Submission]:
        return Submission.from_document(document) if document else None

    def create(self, submission: Submission) -> Submission:
        self.collection.insert_one(submission.to_document())
        return submission

    def get(self, submission_id: str, owner_id: Optional[str] = None) -> Optional[Submission]:
        query = {"_id": submission_id}
        if owner_id is not None:
            query["ownerId"] = owner_id
        return self._load(self.collection.find_one(query))

    def find_processing(self, owner_id: str) -> Optional[Submission]:
        return self._load(self.collection.find_one(
            {"ownerId": owner_id, "status": SubmissionStatus.PROCESSING.value}
        ))

    def find_completed_duplicate(self, owner_id: str, waste: WasteInput) -> Optional[Submission]:
        return self._load(self.collection.find_one(
            {"ownerId": owner_id, "status": SubmissionStatus.COMPLETED.value, **waste.fingerprint()},
            sort=[("createdAt", DESCENDING)],
        ))

    def list_completed(self, owner_id: str, waste: Optional[WasteInput] = None) -> List[Submission]:
        query = {"ownerId": owner_id, "status": SubmissionStatus.COMPLETED.value}
        if waste is not None:
            query.update(waste.fingerprint())
        return [self._load(doc) for doc in self.collection.find(query, sort=[("createdAt", DESCENDING)])]

    def list_for_owner(self, owner_id: str, skip: int = 0, limit: int = 20) -> List[Submission]:
        documents = self.collection.find(
            {"ownerId": owner_id}, sort=[("createdAt", DESCENDING)], skip=skip, limit=limit
        )
        return [self._load(doc) for doc in documents]

    def count_for_owner(self, owner_id: str) -> int:
        return self.collection.count({"ownerId": owner_id})

    def save_outcome(self, submission: Submission) -> bool:
        """Persist a completed or failed submission. Only a processing submission can be written."""
        matched = self.collection.update_one(
            {"_id": submission.id, "status": SubmissionStatus.PROCESSING.value},
            {
                "productIdeas": [idea.model_dump() for idea in submission.productIdeas],
                "status": submission.status.value,
                "errorMessage": submission.errorMessage,
                "updatedAt": submission.updatedAt,
            },
        )
        return matched == 1

    def mark_idea_published(self, submission_id: str, idea_index: int, product_id: str) -> bool:
        """Flag an idea as published. Fails if it already is."""
        prefix = f"productIdeas.{idea_index}"
        matched = self.collection.update_one(
            {
                "_id": submission_id,
                "status": SubmissionStatus.COMPLETED.value,
                f"{prefix}.isPublished": False,
            },
            {f"{prefix}.isPublished": True, f"{prefix}.publishedProductId": product_id},
        )
        return matched == 1

    def clear_idea_publication(self, submission_id: str, idea_index: int, product_id: str) -> bool:
        prefix = f"productIdeas.{idea_index}"
        matched = self.collection.update_one(
            {"_id": submission_id, f"{prefix}.publishedProductId": product_id},
            {f"{prefix}.isPublished": False, f"{prefix}.publishedProductId": None},
        )
        return matched == 1

    def delete(self, submission_id: str, owner_id: str) -> bool:
        return self.collection.delete_one({
            "_id": submission_id,
            "ownerId": owner_id,
            "status": {"$ne": SubmissionStatus.PROCESSING.value},
        })
