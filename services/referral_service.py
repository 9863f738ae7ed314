"""
Referral service for referral, coupon and affiliate codes.

Handles code verification before enrollment and usage counting once a
payment completes.
"""

import logging
from datetime import datetime
from typing import Optional, List

from core.database import Database
from core.errors import ReferralVerificationError, ReferralFailure
from core.models import ReferralCode, CodeType

logger = logging.getLogger(__name__)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class ReferralService:
    """Service for referral code management."""

    def __init__(self, db: Database):
        self.db = db

    async def verify_code(self, code: str, now: Optional[datetime] = None) -> ReferralCode:
        """
        Verify a code and return its record.

        Raises ReferralVerificationError with the specific reason when the
        code is empty, unknown, inactive, expired or used up.
        """
        code = normalize_code(code)
        if not code:
            raise ReferralVerificationError(ReferralFailure.EMPTY)

        record = await self.db.get_referral_code(code)
        if record is None:
            logger.info(f"Referral code {code} not found")
            raise ReferralVerificationError(ReferralFailure.NOT_FOUND)
        if not record.is_active:
            raise ReferralVerificationError(ReferralFailure.INACTIVE)
        if record.is_expired(now):
            raise ReferralVerificationError(ReferralFailure.EXPIRED)
        if record.is_exhausted():
            raise ReferralVerificationError(ReferralFailure.EXHAUSTED)

        logger.info(f"✅ Referral code {code} verified ({record.discount_percentage}% off)")
        return record

    async def redeem(self, code: str) -> bool:
        """Count one use of a code. Returns False if the cap or expiry was hit."""
        code = normalize_code(code)
        if not code:
            return False
        redeemed = await self.db.increment_referral_code_use(code)
        if not redeemed:
            logger.warning(f"⚠️ Referral code {code} could not be redeemed (inactive, expired or exhausted)")
        return redeemed

    async def create_code(
        self,
        code: str,
        code_type: CodeType,
        discount_percentage: int,
        **kwargs,
    ) -> ReferralCode:
        """Create a new code; discount must be within 0-100."""
        if not 0 <= int(discount_percentage) <= 100:
            raise ValueError("discount_percentage must be between 0 and 100")
        return await self.db.create_referral_code(
            normalize_code(code), code_type, int(discount_percentage), **kwargs
        )

    async def deactivate_code(self, code: str) -> bool:
        return await self.db.deactivate_referral_code(normalize_code(code))

    async def list_codes_for_referrer(self, email: str) -> List[ReferralCode]:
        return await self.db.list_referral_codes(referrer_email=email)
