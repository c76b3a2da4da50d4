"""
Waste submissions and the ideas generated for them.
"""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from reloop.models.base import Document, check_transition
from reloop.utils.utils import utcnow

QUANTITY_PATTERN = re.compile(r"^\d+(\.\d+)?\s*[A-Za-z]+\.?(\s*/\s*[A-Za-z]+)?$")


class SubmissionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


SUBMISSION_TRANSITIONS = {
    SubmissionStatus.PROCESSING: {SubmissionStatus.COMPLETED, SubmissionStatus.FAILED},
    SubmissionStatus.COMPLETED: set(),
    SubmissionStatus.FAILED: set(),
}


class WasteInput(BaseModel):
    """Description of an industrial waste stream as entered by a user."""

    material: str = Field(..., description="What the waste is made of")
    quantity: str = Field(..., description="Amount produced, e.g. '15 tons/month'")
    properties: List[str] = Field(default_factory=list, description="Free-form property tags")
    industry: str = Field(..., description="Industry producing the waste")

    @field_validator("material", "quantity", "industry")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("quantity")
    @classmethod
    def _check_quantity(cls, value: str) -> str:
        if not QUANTITY_PATTERN.match(value):
            raise ValueError("must look like '<number> <unit>[/period]'")
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _split_properties(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [str(item).strip() for item in value if str(item).strip()]

    def fingerprint(self) -> dict:
        """Fields that make two submissions exact duplicates of each other."""
        return {"material": self.material, "quantity": self.quantity, "industry": self.industry}


class GeneratedIdea(BaseModel):
    """One idea as returned by an idea generator, before enrichment."""

    name: str = Field(..., description="Short, marketable product name")
    description: str = Field(..., description="Two or three sentences about the product")
    targetMarket: str = Field("", description="Who would buy this")
    visualDescription: str = Field("", description="Detailed visual description for image generation")
    imageKeywords: str = Field("", description="Generic keywords used for stock photo search")
    researchQuestions: List[str] = Field(default_factory=list)
    successFactors: List[str] = Field(default_factory=list)

    @field_validator("imageKeywords", mode="before")
    @classmethod
    def _join_keywords(cls, value):
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value)
        return value or ""


class IdeaResponse(BaseModel):
    """Model representing a response from an idea generator."""

    output: List[GeneratedIdea] = Field(default_factory=list)


class ImpactMetrics(BaseModel):
    co2Saved: int
    waterSaved: int
    profitMargin: int
    feasibilityScore: int


class Idea(BaseModel):
    """An enriched idea stored on its submission."""

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
    isPublished: bool = False
    publishedProductId: Optional[str] = None

    @classmethod
    def enrich(cls, generated: GeneratedIdea, image_url: str, impact: ImpactMetrics) -> "Idea":
        return cls(
            name=generated.name,
            description=generated.description,
            targetMarket=generated.targetMarket,
            imageUrl=image_url,
            researchQuestions=generated.researchQuestions,
            successFactors=generated.successFactors,
            **impact.model_dump()
        )


class Submission(Document):
    ownerId: str
    material: str
    quantity: str
    properties: List[str] = Field(default_factory=list)
    industry: str
    productIdeas: List[Idea] = Field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.PROCESSING
    errorMessage: Optional[str] = None
    excludedCount: int = 0
    reanalysisOf: Optional[str] = None
    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    @classmethod
    def start(cls, owner_id: str, waste: WasteInput, **extra) -> "Submission":
        return cls(ownerId=owner_id, **waste.model_dump(), **extra)

    @property
    def waste_input(self) -> WasteInput:
        return WasteInput(
            material=self.material,
            quantity=self.quantity,
            properties=self.properties,
            industry=self.industry,
        )

    def complete(self, ideas: List[Idea]):
        check_transition(SUBMISSION_TRANSITIONS, self.status, SubmissionStatus.COMPLETED, "submission")
        self.productIdeas = list(ideas)
        self.status = SubmissionStatus.COMPLETED
        self.errorMessage = None
        self.updatedAt = utcnow()

    def fail(self, message: str):
        check_transition(SUBMISSION_TRANSITIONS, self.status, SubmissionStatus.FAILED, "submission")
        self.productIdeas = []
        self.status = SubmissionStatus.FAILED
        self.errorMessage = message
        self.updatedAt = utcnow()

    def status_summary(self) -> dict:
        return {
            "status": self.status.value,
            "hasResults": len(self.productIdeas) > 0,
            "ideasCount": len(self.productIdeas),
            "createdAt": self.createdAt,
            "errorMessage": self.errorMessage,
        }
