"""
Pricing and payment-link selection for package enrollment.

Pure functions; nothing here touches the data store.
"""

from dataclasses import dataclass
from typing import Optional

from core.models import Package, ReferralCode


@dataclass(frozen=True)
class Pricing:
    """Price breakdown shown before payment."""
    original_price: int
    discount_percentage: int
    discount_amount: int
    final_price: int


def calculate_pricing(package: Package, referral: Optional[ReferralCode] = None) -> Pricing:
    """
    Apply a verified referral discount to a package price.

    discount_amount = floor(price * pct / 100); the percentage is clamped
    to [0, 100] so the final price stays within [0, price].
    """
    price = max(0, int(package.price))
    percentage = int(referral.discount_percentage) if referral else 0
    percentage = min(100, max(0, percentage))
    discount_amount = price * percentage // 100
    return Pricing(
        original_price=price,
        discount_percentage=percentage,
        discount_amount=discount_amount,
        final_price=price - discount_amount,
    )


def get_payment_link(package: Package, referral: Optional[ReferralCode] = None) -> str:
    """
    Pick the payment link for a package.

    Order: the referral's slot for this package, the referral's primary
    link, then the package's own default link.
    """
    if referral is not None:
        link = referral.link_for_package(package.id) or referral.payment_link
        if link:
            return link
    return package.payment_link
