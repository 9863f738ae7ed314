"""
Loader for the static package and course catalog.

Reads data/packages.json and data/courses.json and converts them into
Package / Course dataclasses. The package table is the single source of
truth for which courses each package unlocks.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

from core.config import Config
from core.models import Package, Course, Module, Chapter, Resource, package_rank

logger = logging.getLogger(__name__)


class CatalogLoader:
    """Static catalog of packages and courses."""

    def __init__(self, catalog_dir: str = None):
        """
        Args:
            catalog_dir: Directory holding packages.json and courses.json
                (defaults to Config.CATALOG_DIR)
        """
        self.catalog_dir = Path(catalog_dir or Config.CATALOG_DIR)
        self._packages: Dict[str, Package] = {}
        self._courses: Dict[str, Course] = {}
        self._load()

    def _read_json(self, name: str) -> Dict[str, Any]:
        path = self.catalog_dir / name
        if not path.exists():
            logger.error(f"❌ Catalog file {path.absolute()} not found")
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"❌ Failed to read catalog file {path}: {e}", exc_info=True)
            return {}

    def _load(self):
        packages_data = self._read_json("packages.json").get("packages", [])
        courses_data = self._read_json("courses.json").get("courses", [])

        self._courses = {}
        for item in courses_data:
            course = self._parse_course(item)
            self._courses[course.id] = course

        packages = [self._parse_package(item) for item in packages_data]
        # Keep packages ordered by rank so lookups walk starter → enterprise
        packages.sort(key=lambda p: p.rank)
        self._packages = {p.id: p for p in packages}

        for package in packages:
            unknown = [c for c in package.courses if c not in self._courses]
            if unknown:
                logger.warning(f"⚠️ Package '{package.id}' lists unknown courses: {unknown}")

        logger.info(
            f"✅ Catalog loaded: {len(self._packages)} packages, {len(self._courses)} courses "
            f"from {self.catalog_dir.absolute()}"
        )

    def reload(self):
        """Re-read catalog files from disk."""
        self._load()

    @staticmethod
    def _parse_package(item: Dict[str, Any]) -> Package:
        package_id = str(item["id"]).strip().lower()
        if package_rank(package_id) == 0:
            logger.warning(f"⚠️ Package '{package_id}' has no rank; it will never grant access")
        return Package(
            id=package_id,
            name=item.get("name", package_id),
            description=item.get("description"),
            price=int(item.get("price", 0)),
            original_price=int(item.get("original_price", item.get("price", 0))),
            payment_link=item.get("payment_link", ""),
            courses=[str(c) for c in item.get("courses", [])],
            features=list(item.get("features", [])),
        )

    @staticmethod
    def _parse_course(item: Dict[str, Any]) -> Course:
        modules = []
        for module_data in item.get("modules", []):
            chapters = [
                Chapter(
                    id=str(ch["id"]),
                    title=ch.get("title", ""),
                    duration=ch.get("duration"),
                    video_id=ch.get("video_id"),
                    description=ch.get("description"),
                    downloadable_resources=[
                        Resource(title=r["title"], url=r["url"], type=r.get("type", ""))
                        for r in ch.get("downloadable_resources", [])
                    ],
                )
                for ch in module_data.get("chapters", [])
            ]
            modules.append(Module(
                id=str(module_data["id"]),
                title=module_data.get("title", ""),
                description=module_data.get("description"),
                chapters=chapters,
            ))
        return Course(
            id=str(item["id"]),
            name=item.get("name", item["id"]),
            description=item.get("description"),
            author=item.get("author"),
            category=item.get("category"),
            coming_soon=bool(item.get("coming_soon", False)),
            modules=modules,
        )

    def get_package(self, package_id: Optional[str]) -> Optional[Package]:
        if not package_id:
            return None
        return self._packages.get(str(package_id).strip().lower())

    def get_course(self, course_id: str) -> Optional[Course]:
        return self._courses.get(course_id)

    def get_packages(self) -> List[Package]:
        """All packages ordered by rank."""
        return list(self._packages.values())

    def get_courses(self) -> List[Course]:
        return list(self._courses.values())
