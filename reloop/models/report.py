"""
Reports filed against published products.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from reloop.models.base import Document, check_transition
from reloop.utils.utils import utcnow


class ReportReason(str, Enum):
    MISLEADING = "misleading"
    INAPPROPRIATE = "inappropriate"
    SPAM = "spam"
    COPYRIGHT = "copyright"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class ReportAction(str, Enum):
    DISMISS = "dismiss"
    DEACTIVATE = "deactivate"


REPORT_TRANSITIONS = {
    ReportStatus.PENDING: {ReportStatus.RESOLVED},
    ReportStatus.RESOLVED: set(),
}


class Report(Document):
    # May point at a product that has since been deleted.
    productId: str
    reporterEmail: str
    reason: ReportReason
    details: Optional[str] = None

    status: ReportStatus = ReportStatus.PENDING
    resolutionAction: Optional[ReportAction] = None
    resolvedBy: Optional[str] = None
    resolvedAt: Optional[datetime] = None
    adminNotes: Optional[str] = None

    createdAt: datetime = Field(default_factory=utcnow)

    def resolve(self, action: ReportAction, resolved_by: Optional[str], notes: Optional[str] = None):
        check_transition(REPORT_TRANSITIONS, self.status, ReportStatus.RESOLVED, "report")
        self.status = ReportStatus.RESOLVED
        self.resolutionAction = action
        self.resolvedBy = resolved_by
        self.resolvedAt = utcnow()
        if notes:
            self.adminNotes = notes

    def summary(self) -> dict:
        return {
            "id": self.id,
            "productId": self.productId,
            "reason": self.reason.value,
            "status": self.status.value,
            "action": self.resolutionAction.value if self.resolutionAction else None,
            "resolvedAt": self.resolvedAt,
        }
