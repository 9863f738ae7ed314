"""
Affiliate earnings tracker.

An affiliate owns an ``affiliate``-type referral code. Every enrollment
that used the code counts towards their earnings once its payment
completes; enrollments still waiting on payment are shown as potential
earnings.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List

from core.database import Database
from core.errors import NoAffiliateCodeError, ValidationError
from core.models import PaidUser, PaymentStatus, PackageTier, utcnow, to_naive_utc
from services.entitlement_service import EntitlementService
from utils.validators import validate_photo_link

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)
MONTH = timedelta(days=30)

# Commission percentage by the affiliate's own package
COMMISSION_RATES = {
    PackageTier.STARTER.value: 30,
    PackageTier.PROFESSIONAL.value: 50,
    PackageTier.ENTERPRISE.value: 70,
}


def commission_rate(package_id: Optional[str]) -> int:
    if not package_id:
        return 0
    return COMMISSION_RATES.get(str(package_id).strip().lower(), 0)


@dataclass
class EarningsReport:
    affiliate_code: str
    total_earnings: int
    weekly_earnings: int
    monthly_earnings: int
    pending_earnings: int
    total_referrals: int
    weekly_referrals: int
    monthly_referrals: int
    pending_referrals: int
    user_package: Optional[str] = None
    commission_rate: int = 0
    photo_link: Optional[str] = None
    referred_users: List[PaidUser] = field(default_factory=list)


def _sum_final(rows: List[PaidUser]) -> int:
    return sum(row.final_price or 0 for row in rows)


class EarningsService:
    """Service for affiliate earnings."""

    def __init__(self, db: Database, entitlements: EntitlementService):
        self.db = db
        self.entitlements = entitlements

    async def get_earnings(self, email: str, now: Optional[datetime] = None) -> EarningsReport:
        """Build the earnings report for the affiliate owning email."""
        code = await self.db.get_affiliate_code(email)
        if code is None:
            raise NoAffiliateCodeError()

        now = to_naive_utc(now) or utcnow()
        referred = await self.db.get_enrollments_by_referral_code(code.code)
        completed = [r for r in referred if r.payment_status == PaymentStatus.COMPLETED]
        pending = [r for r in referred if r.payment_status != PaymentStatus.COMPLETED]
        weekly = [r for r in completed if r.created_at >= now - WEEK]
        monthly = [r for r in completed if r.created_at >= now - MONTH]

        user_package = await self.entitlements.resolve_user_package(email)
        latest = await self.db.get_latest_enrollment(email)

        report = EarningsReport(
            affiliate_code=code.code,
            total_earnings=_sum_final(completed),
            weekly_earnings=_sum_final(weekly),
            monthly_earnings=_sum_final(monthly),
            pending_earnings=_sum_final(pending),
            total_referrals=len(referred),
            weekly_referrals=sum(1 for r in referred if r.created_at >= now - WEEK),
            monthly_referrals=sum(1 for r in referred if r.created_at >= now - MONTH),
            pending_referrals=len(pending),
            user_package=user_package,
            commission_rate=commission_rate(user_package),
            photo_link=latest.photo_link if latest else None,
            referred_users=referred,
        )
        logger.info(
            f"💰 Earnings for {email} ({code.code}): total={report.total_earnings} "
            f"pending={report.pending_earnings} referrals={report.total_referrals}"
        )
        return report

    async def update_photo_link(self, email: str, photo_link: Optional[str]) -> int:
        """Set (or clear, with an empty value) the affiliate's profile photo."""
        photo_link = (photo_link or "").strip()
        error = validate_photo_link(photo_link)
        if error:
            raise ValidationError({"photo_link": error})
        return await self.db.update_photo_link(email, photo_link or None)
