from typing import Any, Dict, List, Optional

from reloop.models.base import plain
from reloop.models.product import Product, ProductStatus
from reloop.stores.collection import DESCENDING, Collection, Filter, Sort


# Maintained with $inc by reads and reports, never written back from a loaded product.
COUNTER_FIELDS = ("viewCount", "reportCount")


class ProductStore:
    """Typed access to the products collection."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def _load(self, document) -> Optional[Product]:
        return Product.from_document(document) if document else None

    def create(self, product: Product) -> Product:
        self.collection.insert_one(product.to_document())
        return product

    def get(self, product_id: str, owner_id: Optional[str] = None) -> Optional[Product]:
        query = {"_id": product_id}
        if owner_id is not None:
            query["ownerId"] = owner_id
        return self._load(self.collection.find_one(query))

    def find_pending_for_owner(self, owner_id: str) -> Optional[Product]:
        return self._load(self.collection.find_one(
            {"ownerId": owner_id, "status": ProductStatus.PENDING_VERIFICATION.value}
        ))

    def save_transition(self, product: Product, expected_status: ProductStatus) -> bool:
        """
        Write the product only if its stored status is still ``expected_status``.

        Returns:
            True if the write went through, False if another writer got there first
        """
        document = product.to_document()
        document.pop("_id")
        for field in COUNTER_FIELDS:
            document.pop(field)
        matched = self.collection.update_one(
            {"_id": product.id, "status": expected_status.value}, document
        )
        return matched == 1

    def update_many(self, selector: Filter, fields: Dict[str, Any]) -> int:
        """Apply the same field values to every product matching ``selector`` in one call."""
        return self.collection.update_many(plain(selector), plain(fields))

    def increment(self, product_id: str, field: str, amount: int = 1):
        self.collection.update_one({"_id": product_id}, {}, inc={field: amount})

    def list(self, selector: Filter, sort: Optional[Sort] = None, skip: int = 0, limit: int = 0) -> List[Product]:
        documents = self.collection.find(
            plain(selector), sort=sort or [("createdAt", DESCENDING)], skip=skip, limit=limit
        )
        return [self._load(doc) for doc in documents]

    def count(self, selector: Filter) -> int:
        return self.collection.count(plain(selector))

    def impact_totals(self, selector: Filter) -> Dict[str, int]:
        totals = self.collection.sum(plain(selector), ("co2Saved", "waterSaved"))
        return {"totalCO2Saved": totals["co2Saved"], "totalWaterSaved": totals["waterSaved"]}

    def delete(self, product_id: str, statuses) -> bool:
        return self.collection.delete_one({
            "_id": product_id,
            "status": {"$in": [status.value for status in statuses]},
        })
