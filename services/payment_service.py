"""
Payment service for out-of-band payment status transitions.

Enrollment rows are inserted as pending. Starting a payment binds the
processor's payment id to the row; the gateway later reports the outcome
via webhook, and only an event for that bound payment id can move the
row. On completion one use of the referral code is counted.
"""

import logging
from typing import Optional, Dict, Any

from core.config import Config
from core.database import Database
from core.models import PaymentStatus
from payment.base import PaymentProcessor
from services.enrollment_service import EnrollmentResult
from services.referral_service import ReferralService

logger = logging.getLogger(__name__)

_TERMINAL = (PaymentStatus.COMPLETED, PaymentStatus.FAILED)


def _parse_amount(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class PaymentService:
    """Service for payment processing operations."""

    def __init__(self, db: Database, payment_processor: PaymentProcessor):
        self.db = db
        self.payment_processor = payment_processor
        self.referral_service = ReferralService(db)

    async def initiate_payment(self, result: EnrollmentResult) -> Dict[str, Any]:
        """Register the payment for a fresh enrollment and return its link."""
        enrollment = result.enrollment
        payment = await self.payment_processor.create_payment(
            enrollment_id=enrollment.id,
            amount=result.pricing.final_price,
            currency=Config.PAYMENT_CURRENCY,
            description=f"SkillRas {enrollment.package_selected.title()} Package",
            payment_link=result.payment_link,
            metadata={
                "email": enrollment.email,
                "package": enrollment.package_selected,
                "referral_code": enrollment.referral_code,
            },
        )
        await self.db.set_enrollment_payment_id(enrollment.id, payment["payment_id"])
        return payment

    async def process_webhook(self, webhook_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply a gateway webhook to its enrollment.

        Events are dropped when the payment id was not issued for the named
        enrollment, or when a completion carries no amount or too little.
        Idempotent on payment_id, and a completed enrollment is never
        changed again, so its referral code is counted once.
        """
        payment_data = await self.payment_processor.process_webhook(webhook_data)
        if not payment_data:
            return None

        payment_id = payment_data["payment_id"]
        enrollment_id = payment_data["enrollment_id"]
        status: PaymentStatus = payment_data["status"]
        logger.info(f"🔄 Payment {payment_id}: enrollment={enrollment_id} status={status.value}")

        if await self.db.is_payment_processed(payment_id):
            logger.info(f"   Payment {payment_id} already processed; skipping.")
            return {"payment_id": payment_id, "enrollment_id": enrollment_id,
                    "status": status.value, "already_processed": True}

        enrollment = await self.db.get_enrollment(enrollment_id)
        if enrollment is None:
            logger.error(f"   ❌ Enrollment {enrollment_id} not found for payment {payment_id}")
            return None

        if not enrollment.payment_id or enrollment.payment_id != payment_id:
            logger.error(
                f"   ❌ Payment {payment_id} was not issued for enrollment {enrollment_id}"
            )
            return None

        if enrollment.payment_status == PaymentStatus.COMPLETED:
            if status != PaymentStatus.COMPLETED:
                logger.warning(
                    f"   ⚠️ Ignoring {status.value} for already completed enrollment {enrollment_id}"
                )
                return None
            logger.info(f"   Enrollment {enrollment_id} already completed; skipping.")
            return {"payment_id": payment_id, "enrollment_id": enrollment_id,
                    "status": status.value, "already_processed": True}

        if status == PaymentStatus.COMPLETED:
            paid = _parse_amount(payment_data.get("amount"))
            if paid is None or paid < enrollment.final_price:
                logger.error(
                    f"   ❌ Payment amount mismatch: received={payment_data.get('amount')!r} "
                    f"expected>={enrollment.final_price}"
                )
                return None

        if not await self.db.update_enrollment_status(enrollment_id, status):
            # Another event completed the row first
            logger.info(f"   Enrollment {enrollment_id} was completed concurrently")
            return {"payment_id": payment_id, "enrollment_id": enrollment_id,
                    "status": status.value, "already_processed": True}

        if status in _TERMINAL:
            await self.db.try_mark_payment_processed(payment_id)

        redeemed = None
        if status == PaymentStatus.COMPLETED and enrollment.referral_code:
            redeemed = await self.referral_service.redeem(enrollment.referral_code)

        logger.info(f"   ✅ Enrollment {enrollment_id} is now {status.value}")
        return {
            "payment_id": payment_id,
            "enrollment_id": enrollment_id,
            "status": status.value,
            "referral_redeemed": redeemed,
        }
