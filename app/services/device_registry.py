"""
Device enrollment registry.

One row per enrollment, keyed by serial number. The bearer token is minted on
first registration and returned unchanged on every re-registration.
"""
import logging
import secrets
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidArgumentError, NotFoundError, UnauthorizedError
from app.core.logging_config import preview
from app.db.models import DeviceEnrollment, utcnow
from app.services.company_user_service import get_owned_company_user
from app.services.policy_service import get_owned_policy

logger = logging.getLogger(__name__)

UPSERT_ATTEMPTS = 2


def generate_api_token() -> str:
    """Generate a secure random opaque token."""
    return secrets.token_urlsafe(32)


def register_or_update(
    db: Session,
    serial_number: str,
    model: str,
    manufacturer: str,
    android_version: str,
    is_device_owner: bool = True,
    android_id: Optional[str] = None,
    policy_id: Optional[str] = None,
    owner_id: Optional[str] = None,
    company_user_id: Optional[str] = None,
    physical_device_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[DeviceEnrollment, bool]:
    """
    Upsert the enrollment for `serial_number`.

    Returns (enrollment, created). Two concurrent first registrations race on
    the primary key; the loser rolls back and takes the update path.
    """
    now = now or utcnow()

    for attempt in range(UPSERT_ATTEMPTS):
        enrollment = db.query(DeviceEnrollment).filter(DeviceEnrollment.device_id == serial_number).first()

        if enrollment:
            enrollment.model = model
            enrollment.manufacturer = manufacturer
            enrollment.android_version = android_version
            enrollment.is_device_owner = is_device_owner
            enrollment.last_heartbeat = now
            if android_id:
                enrollment.android_id = android_id
            if physical_device_id:
                enrollment.physical_device_id = physical_device_id
            if owner_id and owner_id != enrollment.owner_id:
                # Company users are per operator; a new owner starts without one
                enrollment.company_user_id = None
                enrollment.owner_id = owner_id
            if company_user_id:
                enrollment.company_user_id = company_user_id
            if policy_id:
                enrollment.policy_id = policy_id
            db.commit()
            db.refresh(enrollment)
            logger.info(f"Re-registered device {serial_number}, keeping token {preview(enrollment.api_token)}")
            return enrollment, False

        enrollment = DeviceEnrollment(
            device_id=serial_number,
            owner_id=owner_id or settings.unassigned_owner_id,
            android_id=android_id,
            model=model,
            manufacturer=manufacturer,
            android_version=android_version,
            is_device_owner=is_device_owner,
            policy_id=policy_id,
            company_user_id=company_user_id,
            api_token=generate_api_token(),
            ping_interval=settings.default_ping_interval_minutes,
            last_heartbeat=now,
            registered_at=now,
            physical_device_id=physical_device_id,
        )
        db.add(enrollment)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Concurrent registration for {serial_number}, retrying as update (attempt {attempt + 1})")
            continue

        db.refresh(enrollment)
        logger.info(f"Registered new device {serial_number} for owner {enrollment.owner_id}")
        return enrollment, True

    raise HTTPException(status_code=500, detail="Failed to register device")


def validate_bearer_token(db: Session, api_token: str) -> Optional[DeviceEnrollment]:
    """Indexed lookup gating every device call. None for any unknown token."""
    if not api_token:
        return None
    return db.query(DeviceEnrollment).filter(DeviceEnrollment.api_token == api_token).first()


def update_heartbeat(db: Session, enrollment: DeviceEnrollment, now: Optional[datetime] = None) -> DeviceEnrollment:
    enrollment.last_heartbeat = now or utcnow()
    db.commit()
    db.refresh(enrollment)
    return enrollment


def validate_ping_interval(minutes: int) -> None:
    low, high = settings.min_ping_interval_minutes, settings.max_ping_interval_minutes
    if isinstance(minutes, bool) or not isinstance(minutes, int) or not low <= minutes <= high:
        raise InvalidArgumentError(
            f"Ping interval must be between {low} and {high} minutes",
            field="ping_interval",
        )


def update_ping_interval(db: Session, enrollment: DeviceEnrollment, minutes: int) -> DeviceEnrollment:
    validate_ping_interval(minutes)
    enrollment.ping_interval = minutes
    db.commit()
    db.refresh(enrollment)
    logger.info(f"Ping interval for {enrollment.device_id} set to {minutes} min")
    return enrollment


def get_owned_enrollment(db: Session, device_id: str, operator_id: str) -> DeviceEnrollment:
    """
    Raises:
        NotFoundError: no enrollment with this device id
        UnauthorizedError: enrollment belongs to another operator
    """
    enrollment = db.query(DeviceEnrollment).filter(DeviceEnrollment.device_id == device_id).first()
    if not enrollment:
        raise NotFoundError("Device", device_id)
    if enrollment.owner_id != operator_id:
        raise UnauthorizedError("Device belongs to another operator")
    return enrollment


def list_enrollments(db: Session, operator_id: str) -> List[DeviceEnrollment]:
    return (
        db.query(DeviceEnrollment)
        .filter(DeviceEnrollment.owner_id == operator_id)
        .order_by(DeviceEnrollment.registered_at.desc())
        .all()
    )


def assign_policy(db: Session, device_id: str, policy_id: str, operator_id: str) -> DeviceEnrollment:
    enrollment = get_owned_enrollment(db, device_id, operator_id)
    policy = get_owned_policy(db, policy_id, operator_id)
    enrollment.policy_id = policy.id
    db.commit()
    db.refresh(enrollment)
    logger.info(f"Assigned policy {policy.id} to device {device_id}")
    return enrollment


def delete_enrollment(db: Session, device_id: str, operator_id: str) -> None:
    """Delete the enrollment; its commands go with it. The physical device record stays."""
    enrollment = get_owned_enrollment(db, device_id, operator_id)
    db.delete(enrollment)
    db.commit()
    logger.info(f"Deleted enrollment {device_id} for operator {operator_id}")


def check_registration_policy(db: Session, serial_number: str, policy_id: str) -> str:
    """
    Policy a device names for itself on a registration without enrollment token.

    Only a policy of the operator that owns the enrollment is accepted. A device
    that is new or still unassigned has no such operator, so no policy qualifies.

    Raises:
        NotFoundError: policy does not exist
        UnauthorizedError: policy belongs to a different operator than the enrollment
    """
    enrollment = db.query(DeviceEnrollment).filter(DeviceEnrollment.device_id == serial_number).first()
    owner_id = enrollment.owner_id if enrollment else settings.unassigned_owner_id
    try:
        return get_owned_policy(db, policy_id, owner_id).id
    except UnauthorizedError:
        logger.warning(f"Rejected self-assigned policy {policy_id} for device {serial_number} (owner {owner_id})")
        raise


def assign_company_user(
    db: Session, device_id: str, company_user_id: Optional[str], operator_id: str
) -> DeviceEnrollment:
    """Hand the device to one of the operator's company users; None clears the assignment."""
    enrollment = get_owned_enrollment(db, device_id, operator_id)
    if company_user_id:
        company_user_id = get_owned_company_user(db, company_user_id, operator_id).id
    enrollment.company_user_id = company_user_id
    db.commit()
    db.refresh(enrollment)
    logger.info(f"Assigned company user {company_user_id} to device {device_id}")
    return enrollment
