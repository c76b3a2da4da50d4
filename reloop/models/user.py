"""
User accounts: verification and suspension.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from reloop.errors import PermissionDeniedError, ValidationError
from reloop.models.base import Document, check_transition
from reloop.utils.utils import utcnow


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


ACCOUNT_TRANSITIONS = {
    AccountStatus.ACTIVE: {AccountStatus.SUSPENDED},
    AccountStatus.SUSPENDED: {AccountStatus.ACTIVE},
}


class User(Document):
    name: str
    email: str
    companyName: str = ""
    location: str = ""
    role: UserRole = UserRole.USER

    isVerified: bool = False
    verifiedAt: Optional[datetime] = None
    verifiedBy: Optional[str] = None

    status: AccountStatus = AccountStatus.ACTIVE
    suspensionReason: Optional[str] = None

    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _reason_only_while_suspended(self):
        if (self.suspensionReason is not None) != (self.status == AccountStatus.SUSPENDED):
            raise ValueError("suspensionReason must be set exactly when the account is suspended")
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def verify(self, verified_by: Optional[str]) -> bool:
        """Mark the user verified. Returns True only the first time."""
        if self.isVerified:
            return False
        self.isVerified = True
        self.verifiedAt = utcnow()
        self.verifiedBy = verified_by
        self.updatedAt = self.verifiedAt
        return True

    def suspend(self, reason: str):
        if not (reason or "").strip():
            raise ValidationError("Please provide suspension reason")
        if self.is_admin:
            raise PermissionDeniedError("Cannot suspend admin users", user_id=self.id)
        check_transition(ACCOUNT_TRANSITIONS, self.status, AccountStatus.SUSPENDED, "user")
        self.status = AccountStatus.SUSPENDED
        self.suspensionReason = reason.strip()
        self.updatedAt = utcnow()

    def reactivate(self):
        check_transition(ACCOUNT_TRANSITIONS, self.status, AccountStatus.ACTIVE, "user")
        self.status = AccountStatus.ACTIVE
        self.suspensionReason = None
        self.updatedAt = utcnow()

    def summary(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "status": self.status.value,
            "isVerified": self.isVerified,
            "suspensionReason": self.suspensionReason,
        }
