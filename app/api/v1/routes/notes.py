from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.notes import DeviceNoteResponse, DeviceNoteUpdate
from app.services import device_notes

router = APIRouter()


@router.get("/device-notes", response_model=List[DeviceNoteResponse])
async def list_device_notes(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return device_notes.list_notes(db, operator_id)


@router.get("/enrollments/{device_id}/notes", response_model=Optional[DeviceNoteResponse])
async def get_device_notes(
    device_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """null until the operator saves notes for the device."""
    return device_notes.get_note(db, device_id, operator_id)


@router.put("/enrollments/{device_id}/notes", response_model=DeviceNoteResponse)
async def update_device_notes(
    device_id: str,
    request: DeviceNoteUpdate,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """
    Create or patch notes; fields left out keep their value.

    Errors:
        - 403 UNAUTHORIZED: device belongs to another operator
        - 404 NOT_FOUND: unknown device id
    """
    return device_notes.update_note(db, device_id, operator_id, request)


@router.delete("/enrollments/{device_id}/notes", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device_notes(
    device_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    device_notes.delete_note(db, device_id, operator_id)
