"""Integration tests for company user endpoints."""
import pytest
from fastapi import status

from app.db.models import DeviceEnrollment

from utils import CONSOLE, create_register_data

USER_BODY = {
    "company_name": "Northwind Traders",
    "contact_person_name": "Ari Moss",
    "contact_person_email": "ari@northwind.test",
}


class TestCompanyUserEndpoints:
    """/api/v1/console/company-users"""

    def test_crud(self, client, operator_headers):
        created = client.post(f"{CONSOLE}/company-users", headers=operator_headers, json=USER_BODY)
        assert created.status_code == status.HTTP_201_CREATED
        user_id = created.json()["id"]

        fetched = client.get(f"{CONSOLE}/company-users/{user_id}", headers=operator_headers)
        assert fetched.json()["contact_person_email"] == "ari@northwind.test"

        updated = client.put(
            f"{CONSOLE}/company-users/{user_id}",
            headers=operator_headers,
            json={**USER_BODY, "company_name": "Northwind Ltd"},
        )
        assert updated.status_code == status.HTTP_200_OK
        assert updated.json()["company_name"] == "Northwind Ltd"

        listed = client.get(f"{CONSOLE}/company-users", headers=operator_headers).json()
        assert [u["id"] for u in listed] == [user_id]

        deleted = client.delete(f"{CONSOLE}/company-users/{user_id}", headers=operator_headers)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

    def test_duplicate_email(self, client, operator_headers):
        client.post(f"{CONSOLE}/company-users", headers=operator_headers, json=USER_BODY)
        response = client.post(f"{CONSOLE}/company-users", headers=operator_headers, json=USER_BODY)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["code"] == "INVALID_STATE"

    def test_invalid_email(self, client, operator_headers):
        response = client.post(
            f"{CONSOLE}/company-users",
            headers=operator_headers,
            json={**USER_BODY, "contact_person_email": "not-an-email"},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_foreign_user(self, client, other_operator_headers, company_user):
        response = client.get(f"{CONSOLE}/company-users/{company_user.id}", headers=other_operator_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete_with_assigned_device(self, client, operator_headers, test_enrollment, company_user):
        client.put(
            f"{CONSOLE}/enrollments/SN-TEST-0001/company-user",
            headers=operator_headers,
            json={"company_user_id": company_user.id},
        )
        response = client.delete(f"{CONSOLE}/company-users/{company_user.id}", headers=operator_headers)
        assert response.status_code == status.HTTP_409_CONFLICT


class TestCompanyUserEnrollmentFlow:
    """Token -> registration -> enrollment carries the company user."""

    def test_token_binding_reaches_enrollment(self, client, test_db, operator_headers, test_policy, current_apk, company_user):
        created = client.post(
            f"{CONSOLE}/enrollment-tokens",
            headers=operator_headers,
            json={"policy_id": test_policy.id, "company_user_id": company_user.id},
        )
        assert created.status_code == status.HTTP_201_CREATED
        token = created.json()["token"]
        assert token["company_user_id"] == company_user.id

        validation = client.post("/api/v1/validate-token", json={"enrollmentToken": token["token"]}).json()
        assert validation["companyUserId"] == company_user.id

        registered = client.post("/api/v1/register", json=create_register_data(enrollment_token=token["token"]))
        assert registered.status_code == status.HTTP_200_OK

        enrollment = client.get(f"{CONSOLE}/enrollments/SN-REG-0001", headers=operator_headers).json()
        assert enrollment["company_user_id"] == company_user.id

    def test_token_with_foreign_company_user(self, client, other_operator_headers, current_apk, company_user):
        policy = client.post(f"{CONSOLE}/policies", headers=other_operator_headers, json={"name": "Bob"}).json()
        response = client.post(
            f"{CONSOLE}/enrollment-tokens",
            headers=other_operator_headers,
            json={"policy_id": policy["id"], "company_user_id": company_user.id},
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_reassign_and_clear(self, client, test_db, operator_headers, test_enrollment, company_user):
        assigned = client.put(
            f"{CONSOLE}/enrollments/SN-TEST-0001/company-user",
            headers=operator_headers,
            json={"company_user_id": company_user.id},
        )
        assert assigned.status_code == status.HTTP_200_OK
        assert assigned.json()["company_user_id"] == company_user.id

        cleared = client.put(
            f"{CONSOLE}/enrollments/SN-TEST-0001/company-user",
            headers=operator_headers,
            json={"company_user_id": None},
        )
        assert cleared.json()["company_user_id"] is None

        test_db.expire_all()
        assert test_db.query(DeviceEnrollment).one().company_user_id is None
