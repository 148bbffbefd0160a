"""Tests for per-device operator notes."""
import pytest

from app.core.errors import NotFoundError, UnauthorizedError
from app.db.models import DeviceEnrollment, DeviceNote
from app.schemas.notes import DeviceNoteUpdate
from app.services import device_notes, device_registry

from utils import OPERATOR_ID, OTHER_OPERATOR_ID

DEVICE_ID = "SN-TEST-0001"


class TestDeviceNotes:
    def test_no_notes_yet(self, test_db, test_enrollment):
        assert device_notes.get_note(test_db, DEVICE_ID, OPERATOR_ID) is None

    def test_create(self, test_db, test_enrollment):
        note = device_notes.update_note(
            test_db, DEVICE_ID, OPERATOR_ID,
            DeviceNoteUpdate(notes="Cracked screen", tags=["dock-3"], custom_name="Scanner 12"),
        )
        assert note.notes == "Cracked screen"
        assert note.tags == ["dock-3"]
        assert note.custom_name == "Scanner 12"

    def test_partial_update_keeps_other_fields(self, test_db, test_enrollment):
        device_notes.update_note(
            test_db, DEVICE_ID, OPERATOR_ID, DeviceNoteUpdate(notes="Cracked screen", tags=["dock-3"])
        )
        note = device_notes.update_note(test_db, DEVICE_ID, OPERATOR_ID, DeviceNoteUpdate(custom_name="Scanner 12"))

        assert note.notes == "Cracked screen"
        assert note.tags == ["dock-3"]
        assert note.custom_name == "Scanner 12"
        assert test_db.query(DeviceNote).count() == 1

    def test_foreign_device(self, test_db, test_enrollment):
        with pytest.raises(UnauthorizedError):
            device_notes.update_note(test_db, DEVICE_ID, OTHER_OPERATOR_ID, DeviceNoteUpdate(notes="mine now"))

    def test_unknown_device(self, test_db):
        with pytest.raises(NotFoundError):
            device_notes.update_note(test_db, "SN-NOPE", OPERATOR_ID, DeviceNoteUpdate(notes="x"))

    def test_list_and_delete(self, test_db, test_enrollment):
        device_notes.update_note(test_db, DEVICE_ID, OPERATOR_ID, DeviceNoteUpdate(notes="x"))
        assert [n.device_id for n in device_notes.list_notes(test_db, OPERATOR_ID)] == [DEVICE_ID]
        assert device_notes.list_notes(test_db, OTHER_OPERATOR_ID) == []

        device_notes.delete_note(test_db, DEVICE_ID, OPERATOR_ID)
        assert device_notes.get_note(test_db, DEVICE_ID, OPERATOR_ID) is None

    def test_delete_missing(self, test_db, test_enrollment):
        with pytest.raises(NotFoundError):
            device_notes.delete_note(test_db, DEVICE_ID, OPERATOR_ID)

    def test_removed_with_enrollment(self, test_db, test_enrollment):
        device_notes.update_note(test_db, DEVICE_ID, OPERATOR_ID, DeviceNoteUpdate(notes="x"))
        device_registry.delete_enrollment(test_db, DEVICE_ID, OPERATOR_ID)

        test_db.expire_all()
        assert test_db.query(DeviceEnrollment).count() == 0
        assert test_db.query(DeviceNote).count() == 0
