"""
Physical device identity resolution.

Matches an enrolling handset to an existing `PhysicalDevice` so repeated
enrollments (factory reset, re-provisioning) don't create duplicates.

Order of trust:
1. SSAID, exact match.
2. Serial number, only when it passes the validity filter and the stored
   brand and model agree (OEMs ship placeholder or reused serials).
3. Otherwise a new record carrying whichever identifiers were valid.
"""
import logging
import re
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.logging_config import preview
from app.db.models import PhysicalDevice, utcnow

logger = logging.getLogger(__name__)

SSAID_PLACEHOLDERS = {"", "0", "unknown"}

# 16 hex chars is the shape of an ANDROID_ID, not a hardware serial
_ANDROID_ID_SHAPE = re.compile(r"^[0-9a-fA-F]{16}$")
_ALL_ZEROS = re.compile(r"^0+$")

RESOLVE_ATTEMPTS = 2


def is_valid_ssaid(ssa_id: Optional[str]) -> bool:
    if ssa_id is None:
        return False
    return ssa_id.strip().lower() not in SSAID_PLACEHOLDERS


def is_valid_serial(serial_number: Optional[str], ssa_id: Optional[str] = None) -> bool:
    """
    Reject serials that can't identify hardware.

    Empty, "unknown", all zeros, ANDROID_ID-shaped, or equal to the SSAID
    (a client-side collision artifact).
    """
    if serial_number is None:
        return False
    serial = serial_number.strip()
    if not serial or serial.lower() == "unknown":
        return False
    if _ALL_ZEROS.match(serial):
        return False
    if _ANDROID_ID_SHAPE.match(serial):
        return False
    if ssa_id and serial == ssa_id.strip():
        return False
    return True


def _touch(db: Session, device: PhysicalDevice, now: datetime) -> str:
    device.updated_at = now
    db.commit()
    return device.id


def resolve_device(
    db: Session,
    brand: str,
    model: str,
    manufacturer: str,
    ssa_id: Optional[str] = None,
    serial_number: Optional[str] = None,
    build_fingerprint: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Return the PhysicalDevice id for these signals, creating a record if none matches."""
    now = now or utcnow()
    ssa_id = ssa_id if is_valid_ssaid(ssa_id) else None
    serial_number = serial_number if is_valid_serial(serial_number, ssa_id) else None

    for attempt in range(RESOLVE_ATTEMPTS):
        if ssa_id:
            device = db.query(PhysicalDevice).filter(PhysicalDevice.ssa_id == ssa_id).first()
            if device:
                logger.debug(f"Physical device {device.id} matched by SSAID {preview(ssa_id)}")
                return _touch(db, device, now)

        if serial_number:
            device = (
                db.query(PhysicalDevice)
                .filter(
                    PhysicalDevice.serial_number == serial_number,
                    PhysicalDevice.brand == brand,
                    PhysicalDevice.model == model,
                )
                .first()
            )
            if device:
                logger.debug(f"Physical device {device.id} matched by serial {serial_number} ({brand} {model})")
                return _touch(db, device, now)

        device = PhysicalDevice(
            ssa_id=ssa_id,
            serial_number=serial_number,
            brand=brand,
            model=model,
            manufacturer=manufacturer,
            build_fingerprint=build_fingerprint,
            created_at=now,
            updated_at=now,
        )
        db.add(device)
        try:
            db.commit()
        except IntegrityError:
            # Another request inserted the same SSAID first; its row wins
            db.rollback()
            logger.warning(f"Concurrent insert for SSAID {preview(ssa_id)}, retrying lookup (attempt {attempt + 1})")
            continue

        logger.info(
            f"Created physical device {device.id} ({manufacturer} {model}, "
            f"ssaid={'yes' if ssa_id else 'no'}, serial={'yes' if serial_number else 'no'})"
        )
        return device.id

    raise HTTPException(status_code=500, detail="Failed to resolve physical device")
