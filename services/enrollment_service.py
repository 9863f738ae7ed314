"""
Enrollment service for package purchases.

Coordinates form validation, referral verification, pricing and the
enrollment insert. The inserted row starts as ``pending``; payment status
moves on later through PaymentService.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Mapping

from core.database import Database
from core.errors import ValidationError, DataStoreError, NotFoundError
from core.models import PaidUser, ReferralCode
from services.catalog_loader import CatalogLoader
from services.pricing import Pricing, calculate_pricing, get_payment_link
from services.referral_service import normalize_code
from utils.validators import validate_enrollment_form, normalize_field

logger = logging.getLogger(__name__)


@dataclass
class EnrollmentResult:
    """Outcome of a successful enrollment submission."""
    enrollment: PaidUser
    pricing: Pricing
    payment_link: str


class EnrollmentService:
    """Service for enrollment submissions."""

    def __init__(self, db: Database, catalog: CatalogLoader):
        self.db = db
        self.catalog = catalog

    def quote(self, package_id: str, referral: Optional[ReferralCode] = None) -> tuple:
        """Return (package, pricing, payment_link) for a package and optional code."""
        package = self.catalog.get_package(package_id)
        if package is None:
            raise NotFoundError(f"Unknown package: {package_id}")
        return package, calculate_pricing(package, referral), get_payment_link(package, referral)

    async def submit(
        self,
        form: Mapping[str, object],
        package_id: str,
        course_id: Optional[str] = None,
        verified_referral: Optional[ReferralCode] = None,
    ) -> EnrollmentResult:
        """
        Validate and store an enrollment.

        Args:
            form: raw form fields (name, email, phone, age, qualification,
                state, pincode, referral_code)
            package_id: selected package
            course_id: course the user enrolled from, if any
            verified_referral: record returned by ReferralService.verify_code
                for the code in the form
        """
        fields = {k: normalize_field(k, None if v is None else str(v)) for k, v in form.items()}

        code = normalize_code(fields.get("referral_code"))
        code_verified = verified_referral is not None and verified_referral.code == code
        errors = validate_enrollment_form(fields, code_verified=code_verified)
        if errors:
            raise ValidationError(errors)

        referral = verified_referral if code else None
        package, pricing, payment_link = self.quote(package_id, referral)

        course_name = None
        if course_id:
            course = self.catalog.get_course(course_id)
            course_name = course.name if course else None

        age = fields.get("age", "").strip()
        try:
            enrollment = await self.db.create_enrollment(
                name=fields["name"].strip(),
                email=fields["email"].strip().lower(),
                phone=fields["phone"],
                age=int(age) if age else None,
                qualification=fields.get("qualification") or None,
                state=fields.get("state"),
                pincode=fields.get("pincode"),
                course_id=course_id,
                course_name=course_name,
                package_selected=package.id,
                original_price=pricing.original_price,
                referral_code=code or None,
                referrer_name=referral.referrer_name if referral else None,
                discount_percentage=pricing.discount_percentage,
                discount_amount=pricing.discount_amount,
                final_price=pricing.final_price,
                payment_link=payment_link,
            )
        except Exception as e:
            logger.error(f"❌ Enrollment insert failed for {fields.get('email')}: {e}", exc_info=True)
            raise DataStoreError("Failed to process enrollment. Please try again.") from e

        logger.info(
            f"✅ Enrollment {enrollment.id}: {enrollment.email} → {package.id} "
            f"(final {pricing.final_price}, code={code or '-'})"
        )
        return EnrollmentResult(enrollment=enrollment, pricing=pricing, payment_link=payment_link)
