"""
Hosted payment-link processor.

Payments are collected on pre-built gateway pages (one link per package,
or per referral code slot). This processor hands out those links, keeps
track of payments it created, and parses the gateway's webhook payloads.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional, Dict, Any

from core.models import PaymentStatus, utcnow
from payment.base import PaymentProcessor

logger = logging.getLogger(__name__)

# Gateway event names that map onto our statuses
_STATUS_ALIASES = {
    "paid": PaymentStatus.COMPLETED,
    "captured": PaymentStatus.COMPLETED,
    "succeeded": PaymentStatus.COMPLETED,
    "authorized": PaymentStatus.PROCESSING,
    "created": PaymentStatus.PENDING,
    "cancelled": PaymentStatus.FAILED,
    "expired": PaymentStatus.FAILED,
}


def parse_status(value: Any) -> Optional[PaymentStatus]:
    """Map a gateway status string onto PaymentStatus."""
    if isinstance(value, PaymentStatus):
        return value
    text = str(value or "").strip().lower()
    if not text:
        return None
    try:
        return PaymentStatus(text)
    except ValueError:
        return _STATUS_ALIASES.get(text)


def sign_webhook_body(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of a webhook body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class PaymentLinkProcessor(PaymentProcessor):
    """Payment processor for hosted payment links."""

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret or None
        self.payments: Dict[str, Dict[str, Any]] = {}

    async def create_payment(
        self,
        enrollment_id: int,
        amount: int,
        currency: str,
        description: str,
        payment_link: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        payment_id = f"plink_{enrollment_id}_{secrets.token_hex(8)}"
        self.payments[payment_id] = {
            "payment_id": payment_id,
            "enrollment_id": enrollment_id,
            "amount": amount,
            "currency": currency,
            "description": description,
            "metadata": metadata or {},
            "status": PaymentStatus.PENDING,
            "created_at": utcnow().isoformat(),
        }
        return {
            "payment_id": payment_id,
            "payment_url": payment_link,
            "status": PaymentStatus.PENDING,
        }

    async def check_payment_status(self, payment_id: str) -> PaymentStatus:
        payment = self.payments.get(payment_id)
        if payment is None:
            return PaymentStatus.FAILED
        return PaymentStatus(payment["status"])

    def verify_webhook_signature(self, body: bytes, signature: Optional[str]) -> bool:
        """
        Check the ``X-Webhook-Signature`` header against the body.

        Without a configured secret every body is accepted.
        """
        if not self.webhook_secret:
            return True
        if not signature:
            return False
        expected = sign_webhook_body(self.webhook_secret, body)
        return hmac.compare_digest(signature.strip().lower(), expected)

    async def process_webhook(self, webhook_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Parse ``{"payment_id", "enrollment_id", "status", "amount"}``.

        Gateways that nest the event under ``payload``/``object`` are
        unwrapped first. An event naming a different enrollment than the
        one its payment was created for is dropped.
        """
        data = webhook_data.get("payload") or webhook_data.get("object") or webhook_data
        if not isinstance(data, dict):
            return None

        payment_id = data.get("payment_id") or data.get("id")
        enrollment_id = data.get("enrollment_id")
        if enrollment_id is None:
            enrollment_id = (data.get("notes") or data.get("metadata") or {}).get("enrollment_id")
        status = parse_status(data.get("status"))

        if not payment_id or enrollment_id is None or status is None:
            logger.warning(f"⚠️ Unusable payment webhook: {webhook_data}")
            return None

        try:
            enrollment_id = int(enrollment_id)
        except (TypeError, ValueError):
            logger.warning(f"⚠️ Invalid enrollment_id in webhook: {enrollment_id!r}")
            return None

        payment_id = str(payment_id)
        payment = self.payments.get(payment_id)
        if payment is not None:
            if payment["enrollment_id"] != enrollment_id:
                logger.warning(
                    f"⚠️ Webhook for {payment_id} names enrollment {enrollment_id}, "
                    f"payment belongs to {payment['enrollment_id']}"
                )
                return None
            payment["status"] = status

        return {
            "payment_id": payment_id,
            "enrollment_id": enrollment_id,
            "status": status,
            "amount": data.get("amount"),
        }
