"""
Moderation of published products, user accounts and reports.

Every transition is validated on the model, then persisted with a
compare-and-set on the prior status. Cascades from a user to their products
are single bulk updates keyed by owner, status and deactivation type.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from reloop.errors import (
    ConflictError,
    DuplicateDocumentError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from reloop.models.product import (
    ADMIN_DEACTIVATION_TYPES,
    DELETABLE_STATUSES,
    DeactivationType,
    Product,
    ProductStatus,
)
from reloop.models.report import Report, ReportAction, ReportReason, ReportStatus
from reloop.models.submission import SubmissionStatus
from reloop.models.user import AccountStatus, User
from reloop.services.notification_service import NotificationService
from reloop.stores.collection import ASCENDING, DESCENDING
from reloop.stores.products import ProductStore
from reloop.stores.reports import ReportStore
from reloop.stores.submissions import SubmissionStore
from reloop.stores.users import UserStore
from reloop.utils.logger import logger
from reloop.utils.utils import utcnow

DELETED_PRODUCT_NAME = "Deleted Product"

LIVE_SELECTOR = {"status": ProductStatus.APPROVED, "isPublic": True}


class ModerationEngine:
    """Product, user and report state machines and the cascades between them."""

    def __init__(
        self,
        submissions: SubmissionStore,
        products: ProductStore,
        users: UserStore,
        reports: ReportStore,
        notifications: NotificationService,
    ):
        self.submissions = submissions
        self.products = products
        self.users = users
        self.reports = reports
        self.notifications = notifications

    # Helpers

    def _get_product(self, product_id: str, owner_id: Optional[str] = None) -> Product:
        product = self.products.get(product_id, owner_id)
        if not product:
            raise NotFoundError("Product not found", product_id=product_id)
        return product

    def _get_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found", user_id=user_id)
        return user

    def _save_product(self, product: Product, expected_status: ProductStatus):
        if not self.products.save_transition(product, expected_status):
            raise ConflictError(
                "Product was modified by another request, please retry",
                conflict_id=product.id,
            )

    def _notify(self, method: str, *args) -> bool:
        try:
            return bool(getattr(self.notifications, method)(*args))
        except Exception as e:
            logger.error(f"Notification {method} failed: {e}")
            return False

    # Publish and delete (owner-initiated)

    def publish(self, owner_id: str, submission_id: str, idea_index: Any) -> Product:
        """
        Create a product from one generated idea and queue it for review.

        Raises:
            ConflictError: if the owner already has a pending product or the idea is already published
            NotFoundError: if the submission or idea does not exist
            PreconditionError: if the submission is not completed or the owner is suspended
        """
        if isinstance(idea_index, bool) or not isinstance(idea_index, int):
            try:
                idea_index = int(idea_index)
            except (TypeError, ValueError):
                raise ValidationError("Please provide a valid idea index", ideaIndex=idea_index)

        owner = self.users.get(owner_id)
        if owner and not owner.is_active:
            raise PreconditionError(
                "Suspended accounts cannot publish products",
                required=AccountStatus.ACTIVE,
                actual=owner.status,
            )

        pending = self.products.find_pending_for_owner(owner_id)
        if pending:
            raise ConflictError(
                "You already have a product pending verification. "
                "Please wait for admin approval before submitting another product.",
                conflict_id=pending.id,
            )

        submission = self.submissions.get(submission_id, owner_id)
        if not submission:
            raise NotFoundError("Submission not found", submission_id=submission_id)
        if submission.status != SubmissionStatus.COMPLETED:
            raise PreconditionError(
                "Only ideas of completed submissions can be published",
                required=SubmissionStatus.COMPLETED,
                actual=submission.status,
            )
        if not 0 <= idea_index < len(submission.productIdeas):
            raise NotFoundError("Product idea not found", submission_id=submission_id, ideaIndex=idea_index)

        idea = submission.productIdeas[idea_index]
        if idea.isPublished:
            raise ConflictError("This idea has already been published", conflict_id=idea.publishedProductId)

        product = Product.from_idea(submission, idea_index)
        try:
            self.products.create(product)
        except DuplicateDocumentError:
            pending = self.products.find_pending_for_owner(owner_id)
            if pending:
                raise ConflictError("You already have a product pending verification", conflict_id=pending.id)
            raise ConflictError("This idea has already been published")

        if not self.submissions.mark_idea_published(submission.id, idea_index, product.id):
            self.products.delete(product.id, DELETABLE_STATUSES)
            raise ConflictError("This idea has already been published")

        logger.info(f"Product {product.id} submitted for review by {owner_id}")
        self._notify("notify_admin_product_submitted", product, owner)
        return product

    def delete_product(self, product_id: str, owner_id: str):
        """Delete a pending or rejected product and free its idea for republishing."""
        product = self._get_product(product_id, owner_id)
        if product.status not in DELETABLE_STATUSES:
            raise PreconditionError(
                "Only pending or rejected products can be deleted",
                required=DELETABLE_STATUSES,
                actual=product.status,
            )
        if not self.products.delete(product.id, DELETABLE_STATUSES):
            raise ConflictError("Product was modified by another request, please retry", conflict_id=product.id)
        self.submissions.clear_idea_publication(product.submissionId, product.ideaIndex, product.id)
        logger.info(f"Deleted product {product.id}")

    # Product moderation (admin)

    def approve(self, product_id: str, reviewer_id: str, notes: Optional[str] = None) -> dict:
        product = self._get_product(product_id)
        product.approve(reviewer_id, notes)

        owner = self.users.get(product.ownerId)
        if owner and not owner.is_active:
            raise PreconditionError(
                "Cannot approve a product while its owner is suspended",
                required=AccountStatus.ACTIVE,
                actual=owner.status,
            )
        self._save_product(product, ProductStatus.PENDING_VERIFICATION)

        user_verified = False
        if owner and owner.verify(reviewer_id):
            user_verified = self.users.set_verified(owner)
            if user_verified:
                logger.info(f"User {owner.id} verified by first approval")
        logger.info(f"Product {product.id} approved by {reviewer_id}")

        if owner:
            self._notify("notify_user_product_approved", owner, product, user_verified)
        return {**product.summary(), "userVerified": user_verified}

    def reject(self, product_id: str, reviewer_id: str, reason: str, notes: Optional[str] = None) -> dict:
        product = self._get_product(product_id)
        product.reject(reviewer_id, reason, notes)
        self._save_product(product, ProductStatus.PENDING_VERIFICATION)
        logger.info(f"Product {product.id} rejected by {reviewer_id}")

        owner = self.users.get(product.ownerId)
        if owner:
            self._notify("notify_user_product_rejected", owner, product, product.rejectionReason)
        return product.summary()

    def deactivate(
        self,
        product_id: str,
        reason: str,
        deactivation_type: Union[DeactivationType, str] = DeactivationType.ADMIN_ACTION,
        actor_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict:
        try:
            deactivation_type = DeactivationType(deactivation_type)
        except ValueError:
            raise ValidationError("Unknown deactivation type", deactivationType=deactivation_type)
        if deactivation_type not in ADMIN_DEACTIVATION_TYPES:
            raise ValidationError(
                "Deactivation type must be admin_action or policy_violation",
                deactivationType=deactivation_type.value,
            )

        product = self._get_product(product_id)
        product.deactivate(actor_id, reason, deactivation_type, notes)
        self._save_product(product, ProductStatus.APPROVED)
        logger.info(f"Product {product.id} deactivated ({deactivation_type.value})")

        owner = self.users.get(product.ownerId)
        if owner:
            self._notify("notify_user_product_deactivated", owner, product, product.deactivationReason)
        return product.summary()

    def reactivate(self, product_id: str, notes: Optional[str] = None) -> dict:
        product = self._get_product(product_id)
        owner = self.users.get(product.ownerId)
        if not owner or not owner.is_active:
            raise PreconditionError(
                "Cannot reactivate product: owner account is suspended. Reactivate the user first.",
                required=AccountStatus.ACTIVE,
                actual=owner.status if owner else None,
            )

        product.reactivate(notes)
        self._save_product(product, ProductStatus.DEACTIVATED)
        logger.info(f"Product {product.id} reactivated")

        self._notify("notify_user_product_reactivated", owner, product)
        return product.summary()

    # User cascades (admin)

    def suspend_user(self, user_id: str, reason: str, actor_id: Optional[str] = None) -> dict:
        """
        Suspend an account and deactivate every approved product it owns.

        Returns:
            The user summary plus the number of products deactivated
        """
        user = self._get_user(user_id)
        user.suspend(reason)
        if not self.users.save(user, expected_status=AccountStatus.ACTIVE):
            raise ConflictError("User was modified by another request, please retry", conflict_id=user.id)

        count = self.products.update_many(
            {"ownerId": user.id, "status": ProductStatus.APPROVED},
            Product.deactivation_fields(
                f"User suspended: {user.suspensionReason}",
                DeactivationType.USER_SUSPENSION,
                actor_id,
            ),
        )
        logger.info(f"User {user.id} suspended, {count} products deactivated")

        self._notify("notify_user_suspended", user, user.suspensionReason)
        return {**user.summary(), "productsDeactivated": count}

    def reactivate_user(self, user_id: str, reactivate_products: bool = True) -> dict:
        """
        Reactivate a suspended account. Only products deactivated by the
        suspension itself are restored.
        """
        user = self._get_user(user_id)
        user.reactivate()
        if not self.users.save(user, expected_status=AccountStatus.SUSPENDED):
            raise ConflictError("User was modified by another request, please retry", conflict_id=user.id)

        count = 0
        if reactivate_products:
            count = self.products.update_many(
                {
                    "ownerId": user.id,
                    "status": ProductStatus.DEACTIVATED,
                    "deactivationType": DeactivationType.USER_SUSPENSION,
                },
                Product.reactivation_fields(ProductStatus.APPROVED),
            )
        logger.info(f"User {user.id} reactivated, {count} products restored")

        self._notify("notify_user_reactivated", user, count)
        return {**user.summary(), "productsReactivated": count}

    # Reports

    def report_product(
        self,
        product_id: str,
        reporter_email: str,
        reason: Union[ReportReason, str],
        details: Optional[str] = None,
    ) -> Report:
        reporter_email = (reporter_email or "").strip().lower()
        if not reporter_email:
            raise ValidationError("Please provide your email")
        try:
            reason = ReportReason(reason)
        except ValueError:
            raise ValidationError("Invalid report reason", reason=reason)

        product = self._get_product(product_id)
        if not product.is_live:
            raise PreconditionError(
                "Only published products can be reported",
                required=ProductStatus.APPROVED,
                actual=product.status,
            )

        existing = self.reports.find_pending(product.id, reporter_email)
        if existing:
            raise ConflictError("You have already reported this product", conflict_id=existing.id)

        report = Report(productId=product.id, reporterEmail=reporter_email, reason=reason, details=details)
        self.reports.create(report)
        self.products.increment(product.id, "reportCount")
        logger.info(f"Product {product.id} reported for {reason.value}")
        return report

    def resolve_report(
        self,
        report_id: str,
        action: Union[ReportAction, str],
        resolved_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict:
        try:
            action = ReportAction(action)
        except ValueError:
            raise ValidationError("Action must be dismiss or deactivate", action=action)

        report = self.reports.get(report_id)
        if not report:
            raise NotFoundError("Report not found", report_id=report_id)
        report.resolve(action, resolved_by, notes)
        if not self.reports.save_resolution(report):
            raise ConflictError("Report was resolved by another request", conflict_id=report.id)
        logger.info(f"Report {report.id} resolved with {action.value}")

        product_deactivated = False
        if action == ReportAction.DEACTIVATE:
            product_deactivated = self._deactivate_reported(report, resolved_by, notes)
        return {**report.summary(), "productDeactivated": product_deactivated}

    def _deactivate_reported(self, report: Report, actor_id: Optional[str], notes: Optional[str]) -> bool:
        product = self.products.get(report.productId)
        if not product:
            logger.warning(f"Report {report.id} points at deleted product {report.productId}, skipping deactivation")
            return False
        if product.status != ProductStatus.APPROVED:
            logger.info(f"Product {product.id} is {product.status.value}, skipping report deactivation")
            return False

        reason = f"Report resolved: {report.reason.value}"
        if report.details:
            reason = f"{reason} ({report.details})"
        product.deactivate(actor_id, reason, DeactivationType.POLICY_VIOLATION, notes)
        if not self.products.save_transition(product, ProductStatus.APPROVED):
            logger.warning(f"Product {product.id} changed before report deactivation could be saved")
            return False

        owner = self.users.get(product.ownerId)
        if owner:
            self._notify("notify_user_product_deactivated_from_report", owner, product, report)
        return True

    def _report_entry(self, report: Report) -> Dict[str, Any]:
        product = self.products.get(report.productId)
        return {
            **report.summary(),
            "productName": product.name if product else DELETED_PRODUCT_NAME,
            "reporterEmail": report.reporterEmail,
            "details": report.details,
            "createdAt": report.createdAt,
        }

    def list_reports(self, pending_only: bool = True) -> List[Dict[str, Any]]:
        selector = {"status": ReportStatus.PENDING} if pending_only else {}
        return [self._report_entry(report) for report in self.reports.list(selector)]

    def send_daily_report_summary(self, day: Optional[date] = None) -> int:
        """
        Send one summary of the reports created on ``day`` (UTC, default today).

        Returns:
            Number of reports in the summary; nothing is sent when it is zero
        """
        day = day or utcnow().date()
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        reports = self.reports.created_between(start, start + timedelta(days=1))
        if not reports:
            logger.info(f"No reports created on {day.isoformat()}, skipping summary")
            return 0
        self._notify("send_daily_reports_summary", [self._report_entry(report) for report in reports])
        logger.info(f"Daily report summary sent with {len(reports)} reports")
        return len(reports)

    # Reads

    def get_product(self, product_id: str, viewer_id: Optional[str] = None) -> Product:
        """
        Owners and admins see any of their products; everyone else only sees
        live products, and each such view is counted.
        """
        product = self._get_product(product_id)
        viewer = self.users.get(viewer_id) if viewer_id else None
        if viewer and (viewer.is_admin or viewer.id == product.ownerId):
            return product
        if not product.is_live:
            raise NotFoundError("Product not found", product_id=product_id)
        self.products.increment(product.id, "viewCount")
        product.viewCount += 1
        return product

    def list_owner_products(self, owner_id: str, page: int = 1, limit: int = 20) -> dict:
        page, limit = max(1, page), max(1, limit)
        selector = {"ownerId": owner_id}
        counts = {status.value: self.products.count({**selector, "status": status}) for status in ProductStatus}
        return {
            "products": self.products.list(selector, skip=(page - 1) * limit, limit=limit),
            "total": sum(counts.values()),
            "page": page,
            "counts": counts,
        }

    def list_pending_products(self) -> List[Product]:
        return self.products.list(
            {"status": ProductStatus.PENDING_VERIFICATION}, sort=[("createdAt", ASCENDING)]
        )

    def list_deactivated_products(
        self, deactivation_type: Optional[Union[DeactivationType, str]] = None
    ) -> List[Product]:
        selector: Dict[str, Any] = {"status": ProductStatus.DEACTIVATED}
        if deactivation_type is not None:
            try:
                selector["deactivationType"] = DeactivationType(deactivation_type)
            except ValueError:
                raise ValidationError("Unknown deactivation type", deactivationType=deactivation_type)
        return self.products.list(selector, sort=[("deactivatedAt", DESCENDING)])

    def public_catalog(self, page: int = 1, limit: int = 20) -> dict:
        page, limit = max(1, page), max(1, limit)
        total = self.products.count(LIVE_SELECTOR)
        return {
            "products": self.products.list(
                LIVE_SELECTOR, sort=[("publishedAt", DESCENDING)], skip=(page - 1) * limit, limit=limit
            ),
            "total": total,
            "page": page,
            "stats": {"totalProducts": total, **self.products.impact_totals(LIVE_SELECTOR)},
        }

    def dashboard_stats(self) -> dict:
        return {
            "users": {
                "total": self.users.count({}),
                "verified": self.users.count({"isVerified": True}),
                "suspended": self.users.count({"status": AccountStatus.SUSPENDED}),
            },
            "products": {
                "total": self.products.count({}),
                **{status.value: self.products.count({"status": status}) for status in ProductStatus},
            },
            "reports": {
                "total": self.reports.count({}),
                "pending": self.reports.count({"status": ReportStatus.PENDING}),
            },
            "impact": self.products.impact_totals({"status": ProductStatus.APPROVED}),
        }
