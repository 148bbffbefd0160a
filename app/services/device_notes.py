"""Operator notes, tags and display names for enrolled devices."""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidStateError, NotFoundError
from app.db.models import DeviceNote, utcnow
from app.schemas.notes import DeviceNoteUpdate
from app.services.device_registry import get_owned_enrollment

logger = logging.getLogger(__name__)

UPSERT_ATTEMPTS = 2


def get_note(db: Session, device_id: str, operator_id: str) -> Optional[DeviceNote]:
    return (
        db.query(DeviceNote)
        .filter(DeviceNote.device_id == device_id, DeviceNote.owner_id == operator_id)
        .first()
    )


def list_notes(db: Session, operator_id: str) -> List[DeviceNote]:
    return db.query(DeviceNote).filter(DeviceNote.owner_id == operator_id).all()


def update_note(db: Session, device_id: str, operator_id: str, request: DeviceNoteUpdate) -> DeviceNote:
    """Create or patch the caller's note for one of their devices. Null fields keep the stored value."""
    get_owned_enrollment(db, device_id, operator_id)

    for attempt in range(UPSERT_ATTEMPTS):
        note = get_note(db, device_id, operator_id)
        if note:
            if request.notes is not None:
                note.notes = request.notes
            if request.tags is not None:
                note.tags = request.tags
            if request.custom_name is not None:
                note.custom_name = request.custom_name
            note.updated_at = utcnow()
            db.commit()
            db.refresh(note)
            return note

        note = DeviceNote(
            device_id=device_id,
            owner_id=operator_id,
            notes=request.notes,
            tags=request.tags or [],
            custom_name=request.custom_name,
            updated_at=utcnow(),
        )
        db.add(note)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Concurrent note creation for {device_id}, retrying as update (attempt {attempt + 1})")
            continue
        db.refresh(note)
        logger.info(f"Created notes for device {device_id}")
        return note

    raise InvalidStateError("Could not save device notes due to concurrent updates")


def delete_note(db: Session, device_id: str, operator_id: str) -> None:
    note = get_note(db, device_id, operator_id)
    if not note:
        raise NotFoundError("Device notes", device_id)
    db.delete(note)
    db.commit()
    logger.info(f"Deleted notes for device {device_id}")
