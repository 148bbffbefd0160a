"""Pytest configuration and fixtures."""
import pytest
import os
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient
from typing import Dict, Generator, Tuple

# Set test environment variables BEFORE importing app modules
# This prevents pydantic-settings from trying to read .env file
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SERVER_URL"] = "https://mdm.test"

# Ensure .env file is not read during tests
if "ENV_FILE" in os.environ:
    del os.environ["ENV_FILE"]

from app.db.models import ApkVersion, Application, CompanyUser, DeviceEnrollment, Policy, utcnow
from app.db.session import build_engine, get_db
from app.db.init_db import init_db
from app.main import app
from app.core.config import settings

from utils import OPERATOR_ID, OTHER_OPERATOR_ID, operator_headers as build_operator_headers


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database and route the app's get_db to it."""
    engine = build_engine("sqlite:///:memory:")
    init_db(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Override get_db dependency - this ensures FastAPI uses our test database
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Clear dependency overrides after test
        app.dependency_overrides.clear()
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database tables created."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def operator_headers() -> Dict[str, str]:
    return build_operator_headers(OPERATOR_ID)


@pytest.fixture
def other_operator_headers() -> Dict[str, str]:
    return build_operator_headers(OTHER_OPERATOR_ID)


@pytest.fixture
def current_apk(test_db: Session) -> ApkVersion:
    """A registered, current DPC binary so token creation passes its precheck."""
    apk = ApkVersion(
        version="1.0.0",
        version_code=1,
        file_name="mdm-client-1.0.0.apk",
        file_size=4_200_000,
        storage_url="https://storage.test/apk/mdm-client-1.0.0.apk",
        signature_checksum="q83vEjRWeJCrze8SNFZ4kKvN7xI0VniQq83vEjRWeJA",
        uploaded_by=OPERATOR_ID,
        uploaded_at=utcnow(),
        is_current=True,
        download_count=0,
    )
    test_db.add(apk)
    test_db.commit()
    test_db.refresh(apk)
    return apk


@pytest.fixture
def test_policy(test_db: Session) -> Policy:
    """Default policy owned by OPERATOR_ID."""
    policy = Policy(
        owner_id=OPERATOR_ID,
        name="Warehouse scanners",
        password_required=True,
        password_min_length=6,
        password_quality="numeric",
        camera_disabled=True,
        wifi_configs=[{"ssid": "warehouse", "password": "secret", "security": "WPA2"}],
        kiosk_enabled=True,
        kiosk_package_names=["com.example.scanner"],
        is_default=True,
    )
    test_db.add(policy)
    test_db.commit()
    test_db.refresh(policy)
    return policy


@pytest.fixture
def test_enrollment(test_db: Session, test_policy: Policy) -> Tuple[str, DeviceEnrollment]:
    """Enrollment owned by OPERATOR_ID; returns (bearer_token, enrollment)."""
    now = utcnow()
    enrollment = DeviceEnrollment(
        device_id="SN-TEST-0001",
        owner_id=OPERATOR_ID,
        android_id="a1b2c3d4e5f60718",
        model="Pixel 7",
        manufacturer="Google",
        android_version="14",
        is_device_owner=True,
        policy_id=test_policy.id,
        api_token="test-bearer-token-0001",
        ping_interval=settings.default_ping_interval_minutes,
        last_heartbeat=now,
        registered_at=now,
    )
    test_db.add(enrollment)
    test_db.commit()
    test_db.refresh(enrollment)
    return enrollment.api_token, enrollment


@pytest.fixture
def company_user(test_db: Session) -> CompanyUser:
    """Company user owned by OPERATOR_ID."""
    now = utcnow()
    user = CompanyUser(
        owner_id=OPERATOR_ID,
        company_name="Acme Logistics",
        contact_person_name="Dana Reyes",
        contact_person_email="dana@acme.test",
        created_at=now,
        updated_at=now,
    )
    test_db.add(user)
    test_db.commit()
    test_db.refresh(user)
    return user


@pytest.fixture
def catalog_app(test_db: Session) -> Application:
    """Catalog application owned by OPERATOR_ID."""
    application = Application(
        owner_id=OPERATOR_ID,
        name="Scanner",
        package_name="com.example.scanner",
        version_name="2.3.0",
        version_code=23,
        file_size=8_100_000,
        storage_url="https://storage.test/apps/scanner-2.3.0.apk",
        uploaded_at=utcnow(),
    )
    test_db.add(application)
    test_db.commit()
    test_db.refresh(application)
    return application
