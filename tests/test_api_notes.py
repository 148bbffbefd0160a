"""Integration tests for device notes endpoints."""
import pytest
from fastapi import status

from utils import CONSOLE

NOTES_URL = f"{CONSOLE}/enrollments/SN-TEST-0001/notes"


class TestDeviceNotesEndpoints:
    def test_empty(self, client, operator_headers, test_enrollment):
        response = client.get(NOTES_URL, headers=operator_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json() is None

    def test_upsert_and_list(self, client, operator_headers, test_enrollment):
        first = client.put(NOTES_URL, headers=operator_headers, json={"notes": "Loaner", "tags": ["floor-2"]})
        assert first.status_code == status.HTTP_200_OK

        second = client.put(NOTES_URL, headers=operator_headers, json={"custom_name": "Front desk"})
        data = second.json()
        assert data["notes"] == "Loaner"
        assert data["tags"] == ["floor-2"]
        assert data["custom_name"] == "Front desk"

        listed = client.get(f"{CONSOLE}/device-notes", headers=operator_headers).json()
        assert [n["device_id"] for n in listed] == ["SN-TEST-0001"]

    def test_foreign_device(self, client, other_operator_headers, test_enrollment):
        response = client.put(NOTES_URL, headers=other_operator_headers, json={"notes": "hi"})
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete(self, client, operator_headers, test_enrollment):
        client.put(NOTES_URL, headers=operator_headers, json={"notes": "x"})
        assert client.delete(NOTES_URL, headers=operator_headers).status_code == status.HTTP_204_NO_CONTENT
        assert client.delete(NOTES_URL, headers=operator_headers).status_code == status.HTTP_404_NOT_FOUND
