import asyncio
import io

import pytest
from PIL import Image

from conftest import open_db
from core.errors import CertificateNotAvailableError
from core.models import PaymentStatus
from services.certificate_service import CANVAS_SIZE, CertificateService
from services.dashboard_service import DashboardService
from services.entitlement_service import EntitlementService
from services.progress_service import ProgressTracker
from storage.memory import MemoryStorage


def _finished_excel(catalog) -> ProgressTracker:
    tracker = ProgressTracker(MemoryStorage(), catalog)
    for chapter_id in catalog.get_course("excel").chapter_ids():
        tracker.mark_complete("excel", chapter_id)
    return tracker


def test_render_produces_jpeg_on_blank_canvas(catalog) -> None:
    content = CertificateService(catalog, template_path="", font_path="").render("Ravi Kumar", "MS Excel Mastery")
    img = Image.open(io.BytesIO(content))
    assert img.format == "JPEG"
    assert img.size == CANVAS_SIZE


def test_render_uses_template(catalog, tmp_path) -> None:
    template = tmp_path / "template.png"
    Image.new("RGBA", (800, 600), (10, 20, 30, 255)).save(template)
    content = CertificateService(catalog, template_path=str(template), font_path="").render("A", "B")
    img = Image.open(io.BytesIO(content))
    assert img.size == CANVAS_SIZE
    r, g, b = img.convert("RGB").getpixel((5, 5))
    assert r < 40 and g < 50 and b < 60


def test_generate_requires_completion_and_name(catalog) -> None:
    service = CertificateService(catalog, template_path="", font_path="")
    tracker = _finished_excel(catalog)
    assert [c.id for c in service.eligible_courses(tracker)] == ["excel"]

    certificate = service.generate("Ravi", "excel", tracker)
    assert certificate.filename == "certificate-Ravi-MS Excel Mastery.jpg"
    assert certificate.content[:2] == b"\xff\xd8"

    with pytest.raises(CertificateNotAvailableError):
        service.generate("Ravi", "premiere-pro", tracker)
    with pytest.raises(CertificateNotAvailableError):
        service.generate("  ", "excel", tracker)
    with pytest.raises(CertificateNotAvailableError):
        service.generate("Ravi", "new-course", tracker)


def test_dashboard(catalog) -> None:
    async def scenario():
        db = await open_db()
        try:
            await db.create_enrollment(
                name="Ravi", email="ravi@example.com", phone="9876543210",
                package_selected="enterprise", original_price=13200, discount_percentage=0,
                discount_amount=0, final_price=13200, payment_link=None,
                payment_status=PaymentStatus.COMPLETED,
            )
            service = DashboardService(EntitlementService(db, catalog))
            tracker = _finished_excel(catalog)
            tracker.mark_complete("premiere-pro", "1")
            paid = await service.build("ravi@example.com", tracker)
            unpaid = await service.build("ghost@example.com", tracker)
            return paid, unpaid
        finally:
            await db.close()

    paid, unpaid = asyncio.run(scenario())
    assert unpaid.payment_required is True
    assert unpaid.courses == []

    assert paid.user_package == "enterprise"
    assert paid.payment_required is False
    summaries = {c.id: c for c in paid.courses}
    assert list(summaries) == ["premiere-pro", "after-effects", "excel"]
    assert summaries["premiere-pro"].percent == 17
    assert summaries["premiere-pro"].next_chapter_id == "2"
    assert summaries["excel"].completed is True
    assert summaries["excel"].next_chapter_id is None
    assert paid.certificates_available == ["excel"]
