import asyncio
from datetime import timedelta

import pytest

from conftest import open_db
from core.errors import NoAffiliateCodeError, ValidationError
from core.models import CodeType, PaymentStatus
from services.earnings_service import EarningsService, commission_rate
from services.entitlement_service import EntitlementService


async def _referred(db, email, final_price, status, created_at, code="ASHA2026"):
    return await db.create_enrollment(
        name=email.split("@")[0], email=email, phone="9876543210",
        package_selected="starter", original_price=7999, discount_percentage=0,
        discount_amount=0, final_price=final_price, payment_link=None,
        referral_code=code, payment_status=status, created_at=created_at,
    )


def test_commission_rates() -> None:
    assert commission_rate("starter") == 30
    assert commission_rate("professional") == 50
    assert commission_rate("enterprise") == 70
    assert commission_rate(None) == 0
    assert commission_rate("platinum") == 0


def test_earnings_windows(catalog, now) -> None:
    async def scenario():
        db = await open_db()
        try:
            await db.create_referral_code(
                "ASHA2026", CodeType.AFFILIATE, 10, referrer_email="asha@example.com"
            )
            await db.create_enrollment(
                name="Asha", email="asha@example.com", phone="9876543210",
                package_selected="enterprise", original_price=13200, discount_percentage=0,
                discount_amount=0, final_price=13200, payment_link=None,
                payment_status=PaymentStatus.COMPLETED, created_at=now - timedelta(days=90),
            )
            await _referred(db, "a@example.com", 1000, PaymentStatus.COMPLETED, now - timedelta(days=2))
            await _referred(db, "b@example.com", 2000, PaymentStatus.COMPLETED, now - timedelta(days=10))
            await _referred(db, "c@example.com", 4000, PaymentStatus.COMPLETED, now - timedelta(days=45))
            await _referred(db, "d@example.com", 500, PaymentStatus.PENDING, now - timedelta(days=1))
            await _referred(db, "e@example.com", 9999, PaymentStatus.COMPLETED, now, code="OTHER")

            service = EarningsService(db, EntitlementService(db, catalog))
            return await service.get_earnings("asha@example.com", now=now)
        finally:
            await db.close()

    report = asyncio.run(scenario())
    assert report.affiliate_code == "ASHA2026"
    assert report.total_earnings == 7000
    assert report.weekly_earnings == 1000
    assert report.monthly_earnings == 3000
    assert report.pending_earnings == 500
    assert report.total_referrals == 4
    assert report.weekly_referrals == 2
    assert report.monthly_referrals == 3
    assert report.pending_referrals == 1
    assert report.user_package == "enterprise"
    assert report.commission_rate == 70
    assert [r.email for r in report.referred_users] == [
        "d@example.com", "a@example.com", "b@example.com", "c@example.com"
    ]


def test_no_affiliate_code(catalog) -> None:
    async def scenario():
        db = await open_db()
        try:
            await db.create_referral_code("PLAIN", CodeType.REFERRAL, 10, referrer_email="asha@example.com")
            await EarningsService(db, EntitlementService(db, catalog)).get_earnings("asha@example.com")
        finally:
            await db.close()

    with pytest.raises(NoAffiliateCodeError) as exc:
        asyncio.run(scenario())
    assert exc.value.message == "No affiliate code found for your account."


def test_update_photo_link(catalog, now) -> None:
    async def scenario():
        db = await open_db()
        try:
            await _referred(db, "asha@example.com", 0, PaymentStatus.COMPLETED, now)
            service = EarningsService(db, EntitlementService(db, catalog))
            with pytest.raises(ValidationError):
                await service.update_photo_link("asha@example.com", "ftp://photo")
            updated = await service.update_photo_link("asha@example.com", "https://img.example.com/a.jpg")
            stored = (await db.get_latest_enrollment("asha@example.com")).photo_link
            await service.update_photo_link("asha@example.com", "")
            cleared = (await db.get_latest_enrollment("asha@example.com")).photo_link
            return updated, stored, cleared
        finally:
            await db.close()

    assert asyncio.run(scenario()) == (1, "https://img.example.com/a.jpg", None)
