"""
Published products and their moderation state machine.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, model_validator

from reloop.errors import PreconditionError, ValidationError
from reloop.models.base import Document, check_transition, plain
from reloop.models.submission import Submission
from reloop.utils.utils import utcnow


class ProductStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    APPROVED = "approved"
    REJECTED = "rejected"
    DEACTIVATED = "deactivated"


class DeactivationType(str, Enum):
    ADMIN_ACTION = "admin_action"
    USER_SUSPENSION = "user_suspension"
    POLICY_VIOLATION = "policy_violation"
    USER_REQUEST = "user_request"


PRODUCT_TRANSITIONS = {
    ProductStatus.PENDING_VERIFICATION: {ProductStatus.APPROVED, ProductStatus.REJECTED},
    ProductStatus.APPROVED: {ProductStatus.DEACTIVATED},
    ProductStatus.DEACTIVATED: {ProductStatus.APPROVED},
    ProductStatus.REJECTED: set(),
}

# Deactivation types an admin may pick when deactivating a single product.
ADMIN_DEACTIVATION_TYPES = {DeactivationType.ADMIN_ACTION, DeactivationType.POLICY_VIOLATION}

# Statuses in which the owner may delete the product and free the idea slot.
DELETABLE_STATUSES = {ProductStatus.PENDING_VERIFICATION, ProductStatus.REJECTED}

DEACTIVATION_FIELDS = ("deactivationReason", "deactivationType", "deactivatedBy", "deactivatedAt", "previousStatus")


class Product(Document):
    ownerId: str
    submissionId: str
    ideaIndex: int

    # Copied idea content
    name: str
    description: str
    targetMarket: str = ""
    imageUrl: str = ""
    researchQuestions: List[str] = Field(default_factory=list)
    successFactors: List[str] = Field(default_factory=list)
    co2Saved: int = 0
    waterSaved: int = 0
    profitMargin: int = 0
    feasibilityScore: int = 0

    # Copied waste details
    material: str
    quantity: str
    industry: str
    properties: List[str] = Field(default_factory=list)

    status: ProductStatus = ProductStatus.PENDING_VERIFICATION
    previousStatus: Optional[ProductStatus] = None

    deactivationReason: Optional[str] = None
    deactivationType: Optional[DeactivationType] = None
    deactivatedBy: Optional[str] = None
    deactivatedAt: Optional[datetime] = None

    rejectionReason: Optional[str] = None
    reviewedBy: Optional[str] = None
    reviewedAt: Optional[datetime] = None
    adminNotes: List[str] = Field(default_factory=list)

    isPublic: bool = False
    publishedAt: Optional[datetime] = None
    viewCount: int = 0
    reportCount: int = 0

    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _previous_status_only_while_deactivated(self):
        if (self.previousStatus is not None) != (self.status == ProductStatus.DEACTIVATED):
            raise ValueError("previousStatus must be set exactly when the product is deactivated")
        if self.previousStatus not in (None, ProductStatus.APPROVED):
            raise ValueError("previousStatus can only be approved")
        return self

    @classmethod
    def from_idea(cls, submission: Submission, idea_index: int) -> "Product":
        idea = submission.productIdeas[idea_index]
        return cls(
            ownerId=submission.ownerId,
            submissionId=submission.id,
            ideaIndex=idea_index,
            name=idea.name,
            description=idea.description,
            targetMarket=idea.targetMarket,
            imageUrl=idea.imageUrl,
            researchQuestions=idea.researchQuestions,
            successFactors=idea.successFactors,
            co2Saved=idea.co2Saved,
            waterSaved=idea.waterSaved,
            profitMargin=idea.profitMargin,
            feasibilityScore=idea.feasibilityScore,
            material=submission.material,
            quantity=submission.quantity,
            industry=submission.industry,
            properties=submission.properties,
        )

    @property
    def is_live(self) -> bool:
        return self.status == ProductStatus.APPROVED and self.isPublic

    def _add_note(self, note: Optional[str]):
        if note:
            self.adminNotes.append(note)

    def approve(self, reviewer_id: str, notes: Optional[str] = None):
        if self.status != ProductStatus.PENDING_VERIFICATION:
            raise PreconditionError(
                "Can only approve pending products",
                required=ProductStatus.PENDING_VERIFICATION,
                actual=self.status,
            )
        now = utcnow()
        self.status = ProductStatus.APPROVED
        self.isPublic = True
        self.publishedAt = now
        self.reviewedBy = reviewer_id
        self.reviewedAt = now
        self.updatedAt = now
        self._add_note(notes)

    def reject(self, reviewer_id: str, reason: str, notes: Optional[str] = None):
        if not (reason or "").strip():
            raise ValidationError("Please provide rejection reason")
        check_transition(PRODUCT_TRANSITIONS, self.status, ProductStatus.REJECTED, "product")
        now = utcnow()
        self.status = ProductStatus.REJECTED
        self.rejectionReason = reason.strip()
        self.isPublic = False
        self.reviewedBy = reviewer_id
        self.reviewedAt = now
        self.updatedAt = now
        self._add_note(notes)

    def deactivate(
        self,
        actor_id: Optional[str],
        reason: str,
        deactivation_type: Union[DeactivationType, str] = DeactivationType.ADMIN_ACTION,
        notes: Optional[str] = None,
    ):
        if not (reason or "").strip():
            raise ValidationError("Please provide deactivation reason")
        check_transition(PRODUCT_TRANSITIONS, self.status, ProductStatus.DEACTIVATED, "product")
        fields = self.deactivation_fields(reason.strip(), DeactivationType(deactivation_type), actor_id)
        for key, value in fields.items():
            setattr(self, key, value)
        self._add_note(notes)

    def reactivate(self, notes: Optional[str] = None):
        if self.status != ProductStatus.DEACTIVATED:
            raise PreconditionError(
                "Can only reactivate deactivated products",
                required=ProductStatus.DEACTIVATED,
                actual=self.status,
            )
        restored = self.previousStatus or ProductStatus.APPROVED
        for key, value in self.reactivation_fields(restored).items():
            setattr(self, key, value)
        if notes:
            self._add_note(f"Reactivation: {notes}")

    @staticmethod
    def deactivation_fields(
        reason: str,
        deactivation_type: DeactivationType,
        actor_id: Optional[str],
    ) -> Dict[str, Any]:
        """Field values written when an approved product is deactivated."""
        now = utcnow()
        return {
            "previousStatus": ProductStatus.APPROVED,
            "status": ProductStatus.DEACTIVATED,
            "isPublic": False,
            "deactivationReason": reason,
            "deactivationType": deactivation_type,
            "deactivatedBy": actor_id,
            "deactivatedAt": now,
            "updatedAt": now,
        }

    @staticmethod
    def reactivation_fields(restored: ProductStatus = ProductStatus.APPROVED) -> Dict[str, Any]:
        """Field values written when a deactivated product goes live again."""
        fields = {key: None for key in DEACTIVATION_FIELDS}
        fields.update({"status": restored, "isPublic": True, "updatedAt": utcnow()})
        return fields

    def summary(self) -> dict:
        return plain({
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "isPublic": self.isPublic,
            "previousStatus": self.previousStatus,
            "deactivationType": self.deactivationType,
            "rejectionReason": self.rejectionReason,
            "publishedAt": self.publishedAt,
            "submittedAt": self.createdAt,
        })
