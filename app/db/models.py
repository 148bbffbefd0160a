from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, Text, JSON, Index,
    Enum as SQLEnum, UniqueConstraint, true,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid
import enum

from app.db.session import Base


def generate_uuid():
    """Generate a UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CommandStatus(str, enum.Enum):
    """Device command status enum."""
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CommandStatus.COMPLETED, CommandStatus.FAILED)


class ConnectionStatus(str, enum.Enum):
    """Connection status, derived from heartbeat age and never stored."""
    ONLINE = "online"
    OFFLINE = "offline"


class Policy(Base):
    """Device policy pushed to enrolled devices."""

    __tablename__ = "policies"

    id = Column(String, primary_key=True, default=generate_uuid)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Password requirements
    password_required = Column(Boolean, nullable=False, default=False)
    password_min_length = Column(Integer, nullable=True)
    password_quality = Column(String, nullable=True)

    # Device restrictions
    camera_disabled = Column(Boolean, nullable=False, default=False)
    screen_capture_disabled = Column(Boolean, nullable=False, default=False)
    bluetooth_disabled = Column(Boolean, nullable=False, default=False)
    usb_file_transfer_disabled = Column(Boolean, nullable=False, default=False)
    factory_reset_disabled = Column(Boolean, nullable=False, default=False)

    # [{"ssid": ..., "password": ..., "security": ...}]
    wifi_configs = Column(JSON, nullable=False, default=list)

    # Kiosk mode
    kiosk_enabled = Column(Boolean, nullable=False, default=False)
    kiosk_package_names = Column(JSON, nullable=False, default=list)

    status_bar_disabled = Column(Boolean, nullable=False, default=False)
    system_apps_disabled = Column(JSON, nullable=False, default=list)

    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # At most one default policy per operator
        Index(
            "uq_policies_default_per_owner",
            "owner_id",
            unique=True,
            sqlite_where=is_default == true(),
            postgresql_where=is_default == true(),
        ),
    )


class ApkVersion(Base):
    """Metadata for an uploaded DPC client binary. The binary lives in object storage."""

    __tablename__ = "apk_versions"

    id = Column(String, primary_key=True, default=generate_uuid)
    version = Column(String, nullable=False)
    version_code = Column(Integer, nullable=False)
    file_name = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    storage_url = Column(Text, nullable=False)
    signature_checksum = Column(String, nullable=False)  # base64 SHA-256 of the signing cert
    uploaded_by = Column(String, nullable=False)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)
    is_current = Column(Boolean, nullable=False, default=False, index=True)
    download_count = Column(Integer, nullable=False, default=0)


class CompanyUser(Base):
    """End customer a device is handed to. Owned by an operator."""

    __tablename__ = "company_users"

    id = Column(String, primary_key=True, default=generate_uuid)
    owner_id = Column(String, nullable=False, index=True)
    company_name = Column(String, nullable=False)
    contact_person_name = Column(String, nullable=False)
    contact_person_email = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("owner_id", "contact_person_email", name="uq_company_users_owner_email"),
    )


class Application(Base):
    """App in the operator's catalog, installable through install_apk commands."""

    __tablename__ = "applications"

    id = Column(String, primary_key=True, default=generate_uuid)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    package_name = Column(String, nullable=False)
    version_name = Column(String, nullable=False)
    version_code = Column(Integer, nullable=False)
    file_size = Column(Integer, nullable=False)
    storage_url = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)


class EnrollmentToken(Base):
    """Single-use enrollment token embedded in a provisioning QR code."""

    __tablename__ = "enrollment_tokens"

    id = Column(String, primary_key=True, default=generate_uuid)
    token = Column(String, unique=True, nullable=False, index=True)
    owner_id = Column(String, nullable=False, index=True)
    policy_id = Column(String, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False)
    company_user_id = Column(String, ForeignKey("company_users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)

    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime, nullable=True)
    used_by_device_id = Column(String, nullable=True)

    # Snapshots taken at creation so later uploads don't invalidate the QR code
    server_url = Column(String, nullable=False)
    apk_version = Column(String, nullable=False)

    policy = relationship("Policy")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.expires_at


class PhysicalDevice(Base):
    """Physical handset. Survives factory resets and re-enrollment."""

    __tablename__ = "physical_devices"

    id = Column(String, primary_key=True, default=generate_uuid)
    ssa_id = Column(String, unique=True, nullable=True, index=True)
    serial_number = Column(String, nullable=True, index=True)
    brand = Column(String, nullable=False)
    model = Column(String, nullable=False)
    manufacturer = Column(String, nullable=False)
    build_fingerprint = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    enrollments = relationship("DeviceEnrollment", back_populates="physical_device")


class DeviceEnrollment(Base):
    """One managed instance of a physical device, keyed by serial number."""

    __tablename__ = "device_enrollments"

    device_id = Column(String, primary_key=True)  # serial number
    owner_id = Column(String, nullable=False, index=True)
    android_id = Column(String, nullable=True)
    model = Column(String, nullable=False)
    manufacturer = Column(String, nullable=False)
    android_version = Column(String, nullable=False)
    is_device_owner = Column(Boolean, nullable=False, default=True)
    policy_id = Column(String, ForeignKey("policies.id"), nullable=True, index=True)
    company_user_id = Column(String, ForeignKey("company_users.id"), nullable=True, index=True)
    api_token = Column(String, unique=True, nullable=False, index=True)
    ping_interval = Column(Integer, nullable=False, default=15)  # minutes
    last_heartbeat = Column(DateTime, nullable=False, default=utcnow)
    registered_at = Column(DateTime, nullable=False, default=utcnow)
    physical_device_id = Column(String, ForeignKey("physical_devices.id"), nullable=True, index=True)

    policy = relationship("Policy")
    physical_device = relationship("PhysicalDevice", back_populates="enrollments")
    commands = relationship(
        "DeviceCommand",
        back_populates="enrollment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def connection_status(self, multiplier: int, now: Optional[datetime] = None) -> ConnectionStatus:
        """Online while the last heartbeat is at most `multiplier` ping intervals old."""
        window = timedelta(minutes=self.ping_interval * multiplier)
        if (now or utcnow()) - self.last_heartbeat <= window:
            return ConnectionStatus.ONLINE
        return ConnectionStatus.OFFLINE


class DeviceCommand(Base):
    """Queued command awaiting pickup by a device."""

    __tablename__ = "device_commands"

    # Integer key doubles as the FIFO order for pending commands
    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(
        String,
        ForeignKey("device_enrollments.device_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    command_type = Column(String, nullable=False)
    parameters = Column(JSON, nullable=False, default=dict)
    status = Column(
        SQLEnum(CommandStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CommandStatus.PENDING,
        index=True,
    )
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    executed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    enrollment = relationship("DeviceEnrollment", back_populates="commands")


class DeviceNote(Base):
    """Operator's free-form notes, tags and display name for one of their devices."""

    __tablename__ = "device_notes"

    id = Column(String, primary_key=True, default=generate_uuid)
    device_id = Column(
        String,
        ForeignKey("device_enrollments.device_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id = Column(String, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    custom_name = Column(String, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("device_id", "owner_id", name="uq_device_notes_device_owner"),
    )
