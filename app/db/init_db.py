"""Initialize database tables."""
import logging
from pathlib import Path
from sqlalchemy import inspect

from app.db.session import engine, Base
from app.db.models import (
    Application, ApkVersion, CompanyUser, DeviceCommand, DeviceEnrollment, DeviceNote, EnrollmentToken,
    PhysicalDevice, Policy,
)
from app.core.config import settings

logger = logging.getLogger(__name__)

EXPECTED_TABLES = [
    "policies",
    "apk_versions",
    "company_users",
    "applications",
    "enrollment_tokens",
    "physical_devices",
    "device_enrollments",
    "device_commands",
    "device_notes",
]


def init_db(bind=None):
    """Create all database tables."""
    bind = bind or engine

    if str(bind.url).startswith("sqlite"):
        db_path = bind.url.database
        if db_path and db_path != ":memory:":
            db_file = Path(db_path).resolve()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Database file path: {db_file}")

    # Referenced so every model is registered with Base.metadata
    _ = ApkVersion, DeviceCommand, DeviceEnrollment, EnrollmentToken, PhysicalDevice, Policy

    try:
        Base.metadata.create_all(bind=bind)
        tables = inspect(bind).get_table_names()
        missing_tables = [t for t in EXPECTED_TABLES if t not in tables]
        if missing_tables:
            logger.warning(f"Some tables were not created: {missing_tables}")
        else:
            logger.info(f"All expected tables present: {EXPECTED_TABLES}")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    logger.info(f"Initializing database for {settings.environment}")
    init_db()
    logger.info("Database initialization complete")
