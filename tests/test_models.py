"""
Tests for the entity models and their transition rules.
"""

import pytest

from reloop.errors import (
    ConflictError,
    PermissionDeniedError,
    PreconditionError,
    SubmissionInProgressError,
    ValidationError,
)
from reloop.models.product import DeactivationType, Product, ProductStatus
from reloop.models.report import Report, ReportAction, ReportStatus
from reloop.models.submission import Idea, Submission, SubmissionStatus, WasteInput
from reloop.models.user import AccountStatus, User, UserRole


@pytest.fixture
def waste():
    """Fixture providing a waste input."""
    return WasteInput(material=" Wood offcuts ", quantity="2.5 tons/month", properties="dry, untreated", industry="Joinery")


@pytest.fixture
def completed(waste):
    """Fixture providing a completed submission with two ideas."""
    submission = Submission.start("owner-1", waste)
    submission.complete([Idea(name="Stools", description="d"), Idea(name="Toys", description="d")])
    return submission


@pytest.fixture
def product(completed):
    """Fixture providing a pending product built from the second idea."""
    return Product.from_idea(completed, 1)


class TestSubmission:
    """Tests for the submission lifecycle."""

    def test_waste_input_normalises(self, waste):
        assert waste.material == "Wood offcuts"
        assert waste.properties == ["dry", "untreated"]
        assert waste.fingerprint() == {"material": "Wood offcuts", "quantity": "2.5 tons/month", "industry": "Joinery"}

    @pytest.mark.parametrize("quantity", ["10 kg", "10kg", "2.5 tons/month", "100 units / week", "3 lbs."])
    def test_quantity_formats(self, quantity):
        assert WasteInput(material="m", quantity=quantity, industry="i").quantity == quantity

    def test_start_is_processing_without_ideas(self, waste):
        submission = Submission.start("owner-1", waste)

        assert submission.status == SubmissionStatus.PROCESSING
        assert submission.productIdeas == []

    def test_completed_is_terminal(self, completed):
        with pytest.raises(PreconditionError):
            completed.fail("late error")
        with pytest.raises(PreconditionError):
            completed.complete([])

    def test_fail_clears_ideas(self, waste):
        submission = Submission.start("owner-1", waste)

        submission.fail("boom")

        assert submission.status_summary()["hasResults"] is False
        assert submission.errorMessage == "boom"

    def test_document_round_trip_uses_underscore_id(self, completed):
        document = completed.to_document()

        assert document["_id"] == completed.id
        assert document["status"] == "completed"
        assert Submission.from_document(document).productIdeas[1].name == "Toys"


class TestProduct:
    """Tests for product transitions and invariants."""

    def test_from_idea_copies_content(self, product, completed):
        assert product.name == "Toys"
        assert product.ideaIndex == 1
        assert product.submissionId == completed.id
        assert product.properties == ["dry", "untreated"]
        assert product.status == ProductStatus.PENDING_VERIFICATION

    def test_previous_status_only_while_deactivated(self, product):
        document = product.to_document()
        document["previousStatus"] = "approved"

        with pytest.raises(ValueError):
            Product.from_document(document)

    def test_previous_status_must_be_approved(self, product):
        document = product.to_document()
        document.update(status="deactivated", previousStatus="rejected")

        with pytest.raises(ValueError):
            Product.from_document(document)

    def test_deactivate_and_reactivate(self, product):
        product.approve("admin")
        product.deactivate("admin", "Hold", DeactivationType.ADMIN_ACTION)

        assert product.previousStatus == ProductStatus.APPROVED
        assert product.is_live is False

        product.reactivate()

        assert product.status == ProductStatus.APPROVED
        assert product.previousStatus is None
        assert product.deactivatedBy is None
        assert product.is_live

    def test_deactivation_fields_produce_valid_documents(self, product):
        product.approve("admin")
        document = product.to_document()
        document.update(Product.deactivation_fields("User suspended: x", DeactivationType.USER_SUSPENSION, None))

        restored = Product.from_document(document)

        assert restored.deactivationType == DeactivationType.USER_SUSPENSION


class TestUser:
    """Tests for verification and suspension."""

    def test_verify_only_once(self):
        user = User(name="A", email="a@example.com")

        assert user.verify("admin-1") is True
        first = user.verifiedAt
        assert user.verify("admin-2") is False
        assert user.verifiedAt == first
        assert user.verifiedBy == "admin-1"

    def test_suspension_reason_iff_suspended(self):
        with pytest.raises(ValueError):
            User(name="A", email="a@example.com", suspensionReason="x")
        with pytest.raises(ValueError):
            User(name="A", email="a@example.com", status=AccountStatus.SUSPENDED)

    def test_suspend_and_reactivate(self):
        user = User(name="A", email="a@example.com")

        user.suspend(" Spam ")
        assert user.suspensionReason == "Spam"
        user.reactivate()

        assert user.is_active
        assert user.suspensionReason is None

    def test_admin_cannot_be_suspended(self):
        with pytest.raises(PermissionDeniedError):
            User(name="A", email="a@example.com", role=UserRole.ADMIN).suspend("x")


class TestReport:
    """Tests for report resolution."""

    def test_resolve_once(self):
        report = Report(productId="p1", reporterEmail="r@example.com", reason="spam")

        report.resolve(ReportAction.DISMISS, "admin", "fine")

        assert report.status == ReportStatus.RESOLVED
        with pytest.raises(PreconditionError):
            report.resolve(ReportAction.DEACTIVATE, "admin")


class TestErrors:
    """Tests for the error taxonomy."""

    def test_conflict_payload(self):
        error = SubmissionInProgressError("busy", conflict_id="s1")

        assert isinstance(error, ConflictError)
        assert error.status_code == 429
        assert error.to_dict() == {"message": "busy", "conflict_id": "s1"}

    def test_precondition_payload_uses_state_values(self):
        error = PreconditionError("nope", required={ProductStatus.APPROVED}, actual=ProductStatus.REJECTED)

        assert error.to_dict() == {"message": "nope", "required": ["approved"], "actual": "rejected"}

    def test_validation_status_code(self):
        assert ValidationError("bad").status_code == 400
