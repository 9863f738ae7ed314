"""
Configuration management for the SkillRas learning platform.

Loads configuration from environment variables and provides
centralized access to all system settings.
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


def _get_env_value(key: str, default: str = "") -> str:
    """Read an environment variable with surrounding whitespace removed."""
    value = os.environ.get(key, "")
    if not value:
        value = os.getenv(key, default)
    # Trailing spaces are a common copy/paste mistake in hosting dashboards
    return value.strip() if value else default


class Config:
    """Application configuration."""

    # Database
    DATABASE_PATH: str = _get_env_value("DATABASE_PATH", "./data/skillras.db")

    # Static catalog (packages.json / courses.json)
    CATALOG_DIR: str = _get_env_value("CATALOG_DIR", str(PROJECT_ROOT / "data"))

    # Device-local progress cache (JSON key/value file)
    PROGRESS_STORE_PATH: str = _get_env_value("PROGRESS_STORE_PATH", "./data/progress.json")

    # Certificates
    # Background image; when empty a plain white canvas is used
    CERTIFICATE_TEMPLATE_PATH: str = _get_env_value("CERTIFICATE_TEMPLATE_PATH", "")
    # Optional TrueType font for the name/course lines
    CERTIFICATE_FONT_PATH: str = _get_env_value("CERTIFICATE_FONT_PATH", "")

    # HTTP server
    PORT: int = int(_get_env_value("PORT", "8080") or "8080")

    # Payments
    PAYMENT_CURRENCY: str = _get_env_value("PAYMENT_CURRENCY", "INR")
    # Shared secret for the X-Webhook-Signature header; empty disables the check
    PAYMENT_WEBHOOK_SECRET: str = _get_env_value("PAYMENT_WEBHOOK_SECRET", "")

    # Auth
    SESSION_TTL_HOURS: int = int(_get_env_value("SESSION_TTL_HOURS", "24") or "24")

    # Logging
    LOG_LEVEL: str = _get_env_value("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> bool:
        """Validate that required configuration is present."""
        catalog_dir = Path(cls.CATALOG_DIR)
        packages_ok = (catalog_dir / "packages.json").exists()
        courses_ok = (catalog_dir / "courses.json").exists()
        if not packages_ok or not courses_ok:
            logger.error(f"❌ Catalog files missing in {catalog_dir.absolute()}")
        return packages_ok and courses_ok

    @classmethod
    def ensure_data_directory(cls):
        """Ensure data directory exists for database."""
        if cls.DATABASE_PATH == ":memory:":
            return
        db_path = Path(cls.DATABASE_PATH)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"⚠️ Could not create database directory: {e}")
            # Fall back to the current directory
            cls.DATABASE_PATH = "skillras.db"
