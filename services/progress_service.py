"""
Progress tracker for course chapters.

Completed chapter ids are stored per course as a JSON list under
``course_progress_<course_id>`` in an injected KeyValueStorage. Older
clients kept Premiere Pro progress under a dedicated key; it is still read
(and migrated on first write) so learners don't lose their ticks.
"""

import json
import logging
from typing import Optional, List, Tuple

from core.models import Course, Chapter
from services.catalog_loader import CatalogLoader
from storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

PROGRESS_KEY_PREFIX = "course_progress_"

LEGACY_PROGRESS_KEYS = {
    "premiere-pro": "premierepro_completed_chapters",
}


def progress_key(course_id: str) -> str:
    return f"{PROGRESS_KEY_PREFIX}{course_id}"


class ProgressTracker:
    """Per-device chapter completion tracking."""

    def __init__(self, storage: KeyValueStorage, catalog: CatalogLoader):
        self.storage = storage
        self.catalog = catalog

    def _load(self, key: str) -> Optional[List[str]]:
        raw = self.storage.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"⚠️ Corrupt progress data under {key}; treating as empty")
            return []
        if not isinstance(data, list):
            logger.warning(f"⚠️ Progress data under {key} is not a list; treating as empty")
            return []
        # Legacy entries were numeric ids
        return [str(item) for item in data]

    def _save(self, course_id: str, chapter_ids: List[str]) -> None:
        self.storage.set(progress_key(course_id), json.dumps(chapter_ids))
        legacy_key = LEGACY_PROGRESS_KEYS.get(course_id)
        if legacy_key and self.storage.get(legacy_key) is not None:
            self.storage.remove(legacy_key)

    def completed_chapters(self, course_id: str) -> List[str]:
        """Completed chapter ids for a course, in completion order."""
        stored = self._load(progress_key(course_id))
        if stored is None:
            legacy_key = LEGACY_PROGRESS_KEYS.get(course_id)
            stored = self._load(legacy_key) if legacy_key else None
        return stored or []

    def mark_complete(self, course_id: str, chapter_id: str) -> List[str]:
        """Add a chapter to the completed set. Adding twice is a no-op."""
        chapter_id = str(chapter_id)
        completed = self.completed_chapters(course_id)
        if chapter_id not in completed:
            completed.append(chapter_id)
            self._save(course_id, completed)
        return completed

    def mark_incomplete(self, course_id: str, chapter_id: str) -> List[str]:
        """Remove a chapter from the completed set."""
        chapter_id = str(chapter_id)
        completed = self.completed_chapters(course_id)
        if chapter_id in completed:
            completed = [c for c in completed if c != chapter_id]
            self._save(course_id, completed)
        return completed

    def toggle(self, course_id: str, chapter_id: str) -> bool:
        """Flip a chapter's state. Returns True if it is now complete."""
        if str(chapter_id) in self.completed_chapters(course_id):
            self.mark_incomplete(course_id, chapter_id)
            return False
        self.mark_complete(course_id, chapter_id)
        return True

    def reset(self, course_id: str) -> None:
        self.storage.remove(progress_key(course_id))
        legacy_key = LEGACY_PROGRESS_KEYS.get(course_id)
        if legacy_key:
            self.storage.remove(legacy_key)

    def _course(self, course_id: str) -> Optional[Course]:
        course = self.catalog.get_course(course_id)
        if course is None:
            logger.warning(f"⚠️ Unknown course: {course_id}")
        return course

    def percent_complete(self, course_id: str) -> int:
        """
        Rounded percentage of the course's chapters that are completed.

        Ids that are no longer part of the course are ignored; a course
        without chapters is 0% complete.
        """
        course = self._course(course_id)
        if course is None:
            return 0
        chapter_ids = course.chapter_ids()
        if not chapter_ids:
            return 0
        completed = set(self.completed_chapters(course_id))
        done = sum(1 for chapter_id in chapter_ids if chapter_id in completed)
        # Round half up (12.5 -> 13)
        total = len(chapter_ids)
        return (done * 200 + total) // (2 * total)

    def is_course_completed(self, course_id: str) -> bool:
        """True only when the course has chapters and every one is completed."""
        course = self._course(course_id)
        if course is None:
            return False
        chapter_ids = course.chapter_ids()
        if not chapter_ids:
            return False
        completed = set(self.completed_chapters(course_id))
        return all(chapter_id in completed for chapter_id in chapter_ids)

    def completed_courses(self) -> List[Course]:
        """Catalog courses that are 100% complete on this device."""
        return [c for c in self.catalog.get_courses() if self.is_course_completed(c.id)]

    def next_chapter(self, course_id: str) -> Optional[Chapter]:
        """First chapter, in course order, that is not completed yet."""
        course = self._course(course_id)
        if course is None:
            return None
        completed = set(self.completed_chapters(course_id))
        for module in course.modules:
            for chapter in module.chapters:
                if chapter.id not in completed:
                    return chapter
        return None

    def adjacent_chapters(self, course_id: str, chapter_id: str) -> Tuple[Optional[Chapter], Optional[Chapter]]:
        """(previous, next) chapters around chapter_id in course order."""
        course = self._course(course_id)
        if course is None:
            return None, None
        chapters = [chapter for module in course.modules for chapter in module.chapters]
        ids = [chapter.id for chapter in chapters]
        if str(chapter_id) not in ids:
            return None, None
        index = ids.index(str(chapter_id))
        previous = chapters[index - 1] if index > 0 else None
        following = chapters[index + 1] if index < len(chapters) - 1 else None
        return previous, following
