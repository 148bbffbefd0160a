"""Tests for company user management."""
import pytest

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.db.models import CompanyUser, EnrollmentToken
from app.schemas.company_users import CompanyUserRequest
from app.services import company_user_service, token_store

from utils import OPERATOR_ID, OTHER_OPERATOR_ID


def user_request(email="lee@harbor.test", company="Harbor Freight Co"):
    return CompanyUserRequest(company_name=company, contact_person_name="Lee Park", contact_person_email=email)


class TestCreateCompanyUser:
    def test_create(self, test_db):
        user = company_user_service.create_company_user(test_db, OPERATOR_ID, user_request())
        assert user.owner_id == OPERATOR_ID
        assert user.company_name == "Harbor Freight Co"
        assert user.created_at == user.updated_at

    def test_duplicate_email_for_same_operator(self, test_db, company_user):
        with pytest.raises(InvalidStateError):
            company_user_service.create_company_user(test_db, OPERATOR_ID, user_request(email=company_user.contact_person_email))
        assert test_db.query(CompanyUser).count() == 1

    def test_same_email_for_other_operator(self, test_db, company_user):
        user = company_user_service.create_company_user(
            test_db, OTHER_OPERATOR_ID, user_request(email=company_user.contact_person_email)
        )
        assert user.owner_id == OTHER_OPERATOR_ID


class TestUpdateCompanyUser:
    def test_update(self, test_db, company_user):
        updated = company_user_service.update_company_user(
            test_db, company_user.id, OPERATOR_ID, user_request(company="Acme Freight")
        )
        assert updated.company_name == "Acme Freight"
        assert updated.contact_person_email == "lee@harbor.test"

    def test_update_to_taken_email(self, test_db, company_user):
        other = company_user_service.create_company_user(test_db, OPERATOR_ID, user_request())
        with pytest.raises(InvalidStateError):
            company_user_service.update_company_user(
                test_db, other.id, OPERATOR_ID, user_request(email=company_user.contact_person_email)
            )

    def test_update_foreign(self, test_db, company_user):
        with pytest.raises(UnauthorizedError):
            company_user_service.update_company_user(test_db, company_user.id, OTHER_OPERATOR_ID, user_request())


class TestListAndDelete:
    def test_list_scoped_to_operator(self, test_db, company_user):
        company_user_service.create_company_user(test_db, OTHER_OPERATOR_ID, user_request())
        users = company_user_service.list_company_users(test_db, OPERATOR_ID)
        assert [u.id for u in users] == [company_user.id]

    def test_delete(self, test_db, company_user):
        company_user_service.delete_company_user(test_db, company_user.id, OPERATOR_ID)
        assert test_db.query(CompanyUser).count() == 0

    def test_delete_missing(self, test_db):
        with pytest.raises(NotFoundError):
            company_user_service.delete_company_user(test_db, "no-such-user", OPERATOR_ID)

    def test_delete_blocked_by_assigned_device(self, test_db, test_enrollment, company_user):
        _, enrollment = test_enrollment
        enrollment.company_user_id = company_user.id
        test_db.commit()

        with pytest.raises(InvalidStateError) as exc_info:
            company_user_service.delete_company_user(test_db, company_user.id, OPERATOR_ID)
        assert exc_info.value.detail["details"] == {"enrollments": 1}

    def test_delete_unbinds_outstanding_tokens(self, test_db, test_policy, current_apk, company_user):
        token = token_store.create_token(test_db, OPERATOR_ID, test_policy.id, company_user_id=company_user.id)
        company_user_service.delete_company_user(test_db, company_user.id, OPERATOR_ID)

        test_db.expire_all()
        assert test_db.query(EnrollmentToken).filter(EnrollmentToken.id == token.id).one().company_user_id is None
