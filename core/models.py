"""
Data models for the SkillRas learning platform.

This module defines all data structures used throughout the system:
- Package tiers and their fixed ranking
- Users and enrollment (paid user) records
- Referral, coupon and affiliate codes
- Static catalog entities (packages, courses, modules, chapters)
- Download-form products and leads
"""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List


class PackageTier(str, Enum):
    """Purchasable package tiers."""
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


# Fixed package ranking; anything unknown ranks 0
PACKAGE_HIERARCHY = {
    PackageTier.STARTER.value: 1,
    PackageTier.PROFESSIONAL.value: 2,
    PackageTier.ENTERPRISE.value: 3,
}

# Referral payment-link slot per package
PAYMENT_LINK_SLOTS = {
    PackageTier.STARTER.value: "payment_link",
    PackageTier.PROFESSIONAL.value: "payment_link2",
    PackageTier.ENTERPRISE.value: "payment_link3",
}


def package_rank(package_id: Optional[str]) -> int:
    """Return the rank of a package id (0 for unknown or missing)."""
    if package_id is None:
        return 0
    key = package_id.value if isinstance(package_id, PackageTier) else str(package_id)
    return PACKAGE_HIERARCHY.get(key.strip().lower(), 0)


def utcnow() -> datetime:
    """Current time as naive UTC, the form every stored timestamp uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC. Naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PaymentStatus(str, Enum):
    """Enrollment payment status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CodeType(str, Enum):
    """Kinds of discount codes."""
    REFERRAL = "referral"
    COUPON = "coupon"
    AFFILIATE = "affiliate"


@dataclass
class User:
    """Registered account."""
    id: int
    name: str
    email: str
    phone: Optional[str]
    password_hash: Optional[str]
    created_at: datetime


@dataclass
class PaidUser:
    """One enrollment attempt (row of ``paid_users``)."""
    id: int
    name: str
    email: str
    phone: str
    course_id: Optional[str]
    course_name: Optional[str]
    package_selected: str
    original_price: int
    discount_percentage: int
    discount_amount: int
    final_price: int
    payment_status: PaymentStatus
    created_at: datetime
    age: Optional[int] = None
    qualification: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    referral_code: Optional[str] = None
    referrer_name: Optional[str] = None
    payment_link: Optional[str] = None
    photo_link: Optional[str] = None
    # Issued by the payment processor when the payment is started
    payment_id: Optional[str] = None

    def grants_access(self) -> bool:
        """Only completed payments unlock content."""
        return self.payment_status == PaymentStatus.COMPLETED


@dataclass
class ReferralCode:
    """Referral, coupon or affiliate discount code."""
    id: int
    code: str
    code_type: CodeType
    discount_percentage: int
    current_usage: int
    is_active: bool
    referrer_name: Optional[str] = None
    referrer_email: Optional[str] = None
    description: Optional[str] = None
    max_usage: Optional[int] = None
    payment_link: Optional[str] = None
    payment_link2: Optional[str] = None
    payment_link3: Optional[str] = None
    valid_until: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.valid_until is None:
            return False
        return to_naive_utc(self.valid_until) < (to_naive_utc(now) or utcnow())

    def is_exhausted(self) -> bool:
        # Unset (null or 0) max_usage means unlimited
        return bool(self.max_usage) and self.current_usage >= self.max_usage

    def link_for_package(self, package_id: str) -> Optional[str]:
        """Return the payment link slot matching the package, if filled."""
        slot = PAYMENT_LINK_SLOTS.get(package_id)
        if slot is None:
            return None
        return getattr(self, slot) or None


@dataclass
class Resource:
    """Downloadable chapter resource."""
    title: str
    url: str
    type: str


@dataclass
class Chapter:
    """Single video chapter."""
    id: str
    title: str
    duration: Optional[str] = None
    video_id: Optional[str] = None
    description: Optional[str] = None
    downloadable_resources: List[Resource] = field(default_factory=list)


@dataclass
class Module:
    """Group of chapters."""
    id: str
    title: str
    chapters: List[Chapter] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class Course:
    """Static course definition."""
    id: str
    name: str
    modules: List[Module] = field(default_factory=list)
    description: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    coming_soon: bool = False

    def chapter_ids(self) -> List[str]:
        """All chapter ids across the module tree, in order."""
        return [chapter.id for module in self.modules for chapter in module.chapters]


@dataclass
class Package:
    """Static package definition."""
    id: str
    name: str
    price: int
    original_price: int
    payment_link: str
    courses: List[str] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    description: Optional[str] = None

    @property
    def rank(self) -> int:
        return package_rank(self.id)


@dataclass
class Product:
    """Downloadable product unlocked by a product code."""
    id: int
    code: str
    name: str
    download_url: Optional[str]
    created_at: datetime


@dataclass
class Lead:
    """Download-form submission."""
    id: int
    name: str
    email: str
    phone: str
    product_code: Optional[str]
    created_at: datetime
