"""
Entitlement service for package-tiered access control.

Handles resolving a user's purchased package and deciding which packages,
courses and features it unlocks.

Access is monotonic in package rank (starter < professional < enterprise).
Course access is derived from the package → course table of the catalog:
a course requires the lowest-ranked package that lists it, so
``check_course_access`` always agrees with ``has_access_to_package``.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List

from core.database import Database
from core.models import PaidUser, package_rank
from services.catalog_loader import CatalogLoader

logger = logging.getLogger(__name__)


def has_access_to_package(user_package: Optional[str], required_package: str) -> bool:
    """Return True iff rank(user_package) >= rank(required_package)."""
    if not user_package:
        return False
    return package_rank(user_package) >= package_rank(required_package)


@dataclass
class CourseAccess:
    """Result of a course access check."""
    has_access: bool
    required_package: Optional[str] = None
    user_package: Optional[str] = None
    available_courses: List[str] = field(default_factory=list)


class EntitlementService:
    """Service for entitlement checks."""

    def __init__(self, db: Database, catalog: CatalogLoader):
        self.db = db
        self.catalog = catalog

    async def resolve_user_package(self, email: Optional[str]) -> Optional[str]:
        """
        Return the package a user has paid for, or None.

        Only enrollments with a completed payment count; if several exist
        the highest-ranked package wins.
        """
        if not email or not email.strip():
            return None
        enrollments = await self.db.get_completed_enrollments(email)
        best: Optional[PaidUser] = None
        for enrollment in enrollments:
            if not enrollment.grants_access():
                continue
            if best is None or package_rank(enrollment.package_selected) > package_rank(best.package_selected):
                best = enrollment
        if best is None:
            logger.debug(f"No completed enrollment for {email}")
            return None
        return best.package_selected

    def get_courses_for_package(self, package_id: str) -> List[str]:
        """Course ids listed directly for a package."""
        package = self.catalog.get_package(package_id)
        return list(package.courses) if package else []

    def get_available_courses(self, user_package: Optional[str]) -> List[str]:
        """All course ids unlocked by a package, including lower tiers."""
        if not user_package:
            return []
        user_rank = package_rank(user_package)
        if user_rank == 0:
            return []
        available: List[str] = []
        for package in self.catalog.get_packages():
            if package.rank == 0 or package.rank > user_rank:
                continue
            for course_id in package.courses:
                if course_id not in available:
                    available.append(course_id)
        return available

    def get_required_package_for_course(self, course_id: str) -> Optional[str]:
        """Lowest-ranked package that lists the course, or None."""
        for package in self.catalog.get_packages():
            if package.rank > 0 and course_id in package.courses:
                return package.id
        return None

    def check_course_access(self, course_id: str, user_package: Optional[str]) -> CourseAccess:
        """Check if a package unlocks a specific course."""
        required = self.get_required_package_for_course(course_id)
        if not user_package:
            return CourseAccess(has_access=False, required_package=required)

        return CourseAccess(
            has_access=required is not None and has_access_to_package(user_package, required),
            required_package=required,
            user_package=user_package,
            available_courses=self.get_available_courses(user_package),
        )

    def can_upgrade_to_access_course(self, course_id: str, user_package: Optional[str]) -> bool:
        """True when buying a higher package would unlock the course."""
        if not user_package:
            # Not logged in or not paid: any purchase is an upgrade
            return True
        required = self.get_required_package_for_course(course_id)
        if not required:
            return False
        return package_rank(user_package) < package_rank(required)
