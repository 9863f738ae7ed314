"""
Lead capture for product downloads.

A visitor submits their contact details together with a product code;
a valid code unlocks the product's download link and the contact is stored
as a lead.
"""

import logging
from dataclasses import dataclass
from typing import Mapping

from core.database import Database
from core.errors import ValidationError, InvalidProductCodeError, AlreadyRegisteredError, DataStoreError
from core.models import Lead, Product
from utils.validators import validate_download_form

logger = logging.getLogger(__name__)


@dataclass
class LeadResult:
    lead: Lead
    product: Product


class LeadService:
    """Service for download-form submissions."""

    def __init__(self, db: Database):
        self.db = db

    async def submit(self, form: Mapping[str, object]) -> LeadResult:
        """Validate the form, check the product code and store the lead."""
        errors = validate_download_form(form)
        if errors:
            raise ValidationError(errors)

        product_code = str(form["product_code"]).strip().upper()
        product = await self.db.get_product_by_code(product_code)
        if product is None:
            logger.info(f"Unknown product code {product_code}")
            raise InvalidProductCodeError()

        email = str(form["email"]).strip().lower()
        try:
            lead = await self.db.create_lead(
                name=str(form["name"]).strip(),
                email=email,
                phone=str(form["phone"]).strip(),
                product_code=product.code,
            )
        except AlreadyRegisteredError:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to store lead for {email}: {e}", exc_info=True)
            raise DataStoreError("An error occurred. Please try again.") from e

        logger.info(f"✅ Lead stored: {email} → {product.code}")
        return LeadResult(lead=lead, product=product)
