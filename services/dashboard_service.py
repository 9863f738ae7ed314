"""
Learner dashboard summary.

Combines the user's resolved package, the courses it unlocks and the
device-local progress for each of them.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List

from services.entitlement_service import EntitlementService
from services.progress_service import ProgressTracker

logger = logging.getLogger(__name__)


@dataclass
class CourseProgressSummary:
    id: str
    name: str
    percent: int
    completed: bool
    coming_soon: bool = False
    next_chapter_id: Optional[str] = None
    next_chapter_title: Optional[str] = None


@dataclass
class Dashboard:
    user_package: Optional[str]
    payment_required: bool
    courses: List[CourseProgressSummary] = field(default_factory=list)
    certificates_available: List[str] = field(default_factory=list)


class DashboardService:
    """Builds the learner dashboard."""

    def __init__(self, entitlements: EntitlementService):
        self.entitlements = entitlements
        self.catalog = entitlements.catalog

    async def build(self, email: Optional[str], tracker: ProgressTracker) -> Dashboard:
        """
        Summarise what a user can watch and how far they got.

        Without a completed payment the dashboard is empty and flags that a
        payment is required.
        """
        user_package = await self.entitlements.resolve_user_package(email)
        if not user_package:
            return Dashboard(user_package=None, payment_required=True)

        summaries: List[CourseProgressSummary] = []
        certificates: List[str] = []
        for course_id in self.entitlements.get_available_courses(user_package):
            course = self.catalog.get_course(course_id)
            if course is None:
                continue
            completed = tracker.is_course_completed(course_id)
            upcoming = tracker.next_chapter(course_id)
            summaries.append(CourseProgressSummary(
                id=course.id,
                name=course.name,
                percent=tracker.percent_complete(course_id),
                completed=completed,
                coming_soon=course.coming_soon,
                next_chapter_id=upcoming.id if upcoming else None,
                next_chapter_title=upcoming.title if upcoming else None,
            ))
            if completed:
                certificates.append(course.id)

        logger.info(f"📊 Dashboard for {email}: {user_package}, {len(summaries)} courses")
        return Dashboard(
            user_package=user_package,
            payment_required=False,
            courses=summaries,
            certificates_available=certificates,
        )
