from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.database import Database  # noqa: E402
from core.models import CodeType, ReferralCode  # noqa: E402
from services.catalog_loader import CatalogLoader  # noqa: E402


async def open_db() -> Database:
    """In-memory database with the schema applied.

    aiosqlite connections are bound to the loop that opened them, so each
    test opens its own inside the coroutine it passes to ``asyncio.run``.
    """
    db = Database(":memory:")
    await db.connect()
    return db


def make_code(**overrides: Any) -> ReferralCode:
    values: dict[str, Any] = {
        "id": 1,
        "code": "FRIEND20",
        "code_type": CodeType.REFERRAL,
        "discount_percentage": 20,
        "current_usage": 0,
        "is_active": True,
        "referrer_name": "Asha",
    }
    values.update(overrides)
    return ReferralCode(**values)


VALID_ENROLLMENT = {
    "name": "Ravi Kumar",
    "email": "ravi@example.com",
    "phone": "9876543210",
    "age": "24",
    "qualification": "Graduate",
    "state": "Karnataka",
    "pincode": "560001",
    "referral_code": "",
}


@pytest.fixture(scope="session")
def catalog() -> CatalogLoader:
    return CatalogLoader(str(ROOT / "data"))


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 1, 12, 0, 0)
