"""
Notification Service: fire-and-forget events for users and admins.

Delivery failures are logged and never propagate to the caller.
"""

import json
from typing import Any, Dict, List, Optional

import requests

from reloop.models.base import plain
from reloop.utils.logger import logger
from reloop.utils.utils import utcnow


class NotificationService:
    """Service for outgoing notifications."""

    def __init__(self, admin_email: str, webhook_url: Optional[str] = None, timeout: int = 10):
        """
        Initialize the notification service.

        Args:
            admin_email: Recipient of admin-facing events
            webhook_url: Endpoint that receives events as JSON; events are only logged when unset
            timeout: HTTP timeout in seconds
        """
        self.admin_email = admin_email
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, event: str, recipient: Optional[str], payload: Dict[str, Any]) -> bool:
        """
        Deliver one event.

        Returns:
            True if delivery succeeded, False otherwise
        """
        try:
            if not recipient:
                logger.warning(f"Skipping {event} notification: no recipient")
                return False
            body = {
                "event": event,
                "recipient": recipient,
                "payload": plain(payload),
                "sentAt": utcnow().isoformat(),
            }
            if not self.webhook_url:
                logger.info(f"Notification {event} -> {recipient}")
                return True
            response = requests.post(
                self.webhook_url,
                data=json.dumps(body, default=str),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            logger.info(f"Delivered {event} notification to {recipient}")
            return True
        except Exception as e:
            logger.error(f"Failed to send {event} notification: {e}")
            return False

    def notify_admin_product_submitted(self, product, user) -> bool:
        return self.send("admin_product_submitted", self.admin_email, {
            "product": {"id": product.id, "name": product.name, "material": product.material,
                        "industry": product.industry, "createdAt": product.createdAt},
            "user": {"name": user.name if user else None, "email": user.email if user else None,
                     "companyName": user.companyName if user else None,
                     "isVerified": user.isVerified if user else None},
        })

    def notify_user_product_approved(self, user, product, was_verified: bool) -> bool:
        return self.send("product_approved", user.email, {
            "product": {"name": product.name, "material": product.material, "publishedAt": product.publishedAt},
            "wasVerified": was_verified,
        })

    def notify_user_product_rejected(self, user, product, reason: str) -> bool:
        return self.send("product_rejected", user.email, {
            "product": {"name": product.name, "material": product.material, "reviewedAt": product.reviewedAt},
            "reason": reason,
        })

    def notify_user_product_deactivated(self, user, product, reason: str) -> bool:
        return self.send("product_deactivated", user.email, {
            "product": {"name": product.name, "material": product.material},
            "reason": reason,
        })

    def notify_user_product_reactivated(self, user, product) -> bool:
        return self.send("product_reactivated", user.email, {
            "product": {"name": product.name, "material": product.material},
        })

    def notify_user_product_deactivated_from_report(self, user, product, report) -> bool:
        return self.send("product_deactivated_from_report", user.email, {
            "product": {"name": product.name, "material": product.material},
            "report": {"reason": report.reason, "reporterEmail": report.reporterEmail,
                       "deactivationReason": product.deactivationReason},
        })

    def notify_user_suspended(self, user, reason: str) -> bool:
        return self.send("user_suspended", user.email, {
            "user": {"name": user.name, "email": user.email},
            "reason": reason,
        })

    def notify_user_reactivated(self, user, products_reactivated: int) -> bool:
        return self.send("user_reactivated", user.email, {
            "user": {"name": user.name, "email": user.email},
            "productsReactivated": products_reactivated,
        })

    def send_daily_reports_summary(self, reports: List[Dict[str, Any]]) -> bool:
        return self.send("daily_reports_summary", self.admin_email, {
            "count": len(reports),
            "reports": reports,
        })
