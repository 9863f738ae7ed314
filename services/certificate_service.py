"""
Certificate service for completed courses.

Renders the learner's name and the course title onto the certificate
background and returns the result as a JPEG.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List

from PIL import Image, ImageDraw, ImageFont

from core.config import Config
from core.errors import CertificateNotAvailableError
from core.models import Course
from services.catalog_loader import CatalogLoader
from services.progress_service import ProgressTracker

logger = logging.getLogger(__name__)

CANVAS_SIZE = (1920, 1357)
JPEG_QUALITY = 85

# Text boxes as fractions of the canvas: (top, left, width)
NAME_BOX = (0.380, 0.247, 0.505)
COURSE_BOX = (0.550, 0.247, 0.505)
NAME_FONT_SIZE = 96
COURSE_FONT_SIZE = 38
NAME_COLOR = (0x22, 0x22, 0x22)
COURSE_COLOR = (0x33, 0x33, 0x33)


@dataclass
class Certificate:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


class CertificateService:
    """Service for certificate eligibility and rendering."""

    def __init__(self, catalog: CatalogLoader, template_path: str = None, font_path: str = None):
        self.catalog = catalog
        self.template_path = template_path if template_path is not None else Config.CERTIFICATE_TEMPLATE_PATH
        self.font_path = font_path if font_path is not None else Config.CERTIFICATE_FONT_PATH

    def eligible_courses(self, tracker: ProgressTracker) -> List[Course]:
        """Courses whose certificate can be downloaded on this device."""
        return tracker.completed_courses()

    def _background(self) -> Image.Image:
        if self.template_path:
            path = Path(self.template_path)
            if path.exists():
                img = Image.open(path)
                if img.mode != "RGB":
                    img = img.convert("RGB")
                if img.size != CANVAS_SIZE:
                    img = img.resize(CANVAS_SIZE, Image.Resampling.LANCZOS)
                return img
            logger.warning(f"⚠️ Certificate template {path} not found, using a blank canvas")
        return Image.new("RGB", CANVAS_SIZE, (255, 255, 255))

    def _font(self, size: int):
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size)
            except OSError as e:
                logger.warning(f"⚠️ Could not load font {self.font_path}: {e}")
        return ImageFont.load_default(size=size)

    @staticmethod
    def _draw_centered(draw: ImageDraw.ImageDraw, text: str, box, font, fill) -> None:
        top, left, width = box
        canvas_w, canvas_h = CANVAS_SIZE
        x0 = canvas_w * left
        box_w = canvas_w * width
        left_px, _, right_px, _ = draw.textbbox((0, 0), text, font=font)
        text_w = right_px - left_px
        draw.text((x0 + (box_w - text_w) / 2, canvas_h * top), text, font=font, fill=fill)

    def render(self, name: str, course_name: str) -> bytes:
        """Draw name and course onto the certificate and return JPEG bytes."""
        img = self._background()
        draw = ImageDraw.Draw(img)
        self._draw_centered(draw, name, NAME_BOX, self._font(NAME_FONT_SIZE), NAME_COLOR)
        self._draw_centered(draw, course_name, COURSE_BOX, self._font(COURSE_FONT_SIZE), COURSE_COLOR)

        buffer = io.BytesIO()
        img.save(buffer, "JPEG", quality=JPEG_QUALITY, optimize=True)
        return buffer.getvalue()

    def generate(self, user_name: Optional[str], course_id: str, tracker: ProgressTracker) -> Certificate:
        """
        Produce the certificate for a finished course.

        Raises CertificateNotAvailableError when the user has no name on
        file or the course is not 100% complete.
        """
        name = (user_name or "").strip()
        if not name:
            raise CertificateNotAvailableError("Please add your name to your profile to get a certificate.")

        course = self.catalog.get_course(course_id)
        if course is None or not tracker.is_course_completed(course_id):
            raise CertificateNotAvailableError(
                "You need to finish 100% of a course to download its certificate."
            )

        content = self.render(name, course.name)
        logger.info(f"🎓 Certificate generated for {name}: {course.name} ({len(content)} bytes)")
        return Certificate(filename=f"certificate-{name}-{course.name}.jpg", content=content)
