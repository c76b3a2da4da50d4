from datetime import datetime
from typing import List, Optional

from reloop.models.base import plain
from reloop.models.report import Report, ReportStatus
from reloop.stores.collection import ASCENDING, DESCENDING, Collection, Filter


class ReportStore:
    """Typed access to the reports collection."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def create(self, report: Report) -> Report:
        self.collection.insert_one(report.to_document())
        return report

    def get(self, report_id: str) -> Optional[Report]:
        document = self.collection.find_one({"_id": report_id})
        return Report.from_document(document) if document else None

    def find_pending(self, product_id: str, reporter_email: str) -> Optional[Report]:
        document = self.collection.find_one({
            "productId": product_id,
            "reporterEmail": reporter_email,
            "status": ReportStatus.PENDING.value,
        })
        return Report.from_document(document) if document else None

    def save_resolution(self, report: Report) -> bool:
        """Persist a resolution. Only a pending report can be resolved."""
        document = report.to_document()
        document.pop("_id")
        matched = self.collection.update_one(
            {"_id": report.id, "status": ReportStatus.PENDING.value}, document
        )
        return matched == 1

    def list(self, selector: Filter, oldest_first: bool = False) -> List[Report]:
        direction = ASCENDING if oldest_first else DESCENDING
        documents = self.collection.find(plain(selector), sort=[("createdAt", direction)])
        return [Report.from_document(doc) for doc in documents]

    def created_between(self, start: datetime, end: datetime) -> List[Report]:
        documents = self.collection.find(
            {"createdAt": {"$gte": start, "$lt": end}}, sort=[("createdAt", DESCENDING)]
        )
        return [Report.from_document(doc) for doc in documents]

    def count(self, selector: Filter) -> int:
        return self.collection.count(plain(selector))
