"""Tests for the application catalog."""
import pytest

from app.core.errors import NotFoundError, UnauthorizedError
from app.db.models import Application
from app.schemas.applications import SaveApplicationRequest
from app.services import application_catalog

from utils import OPERATOR_ID, OTHER_OPERATOR_ID


def app_request(**overrides):
    fields = dict(
        name="Inventory",
        package_name="com.example.inventory",
        version_name="1.4.2",
        version_code=142,
        file_size=5_300_000,
        storage_url="https://storage.test/apps/inventory-1.4.2.apk",
    )
    fields.update(overrides)
    return SaveApplicationRequest(**fields)


class TestApplicationCatalog:
    def test_save(self, test_db):
        application = application_catalog.save_application(test_db, OPERATOR_ID, app_request(description="Stock counts"))
        assert application.owner_id == OPERATOR_ID
        assert application.package_name == "com.example.inventory"
        assert application.description == "Stock counts"
        assert application.uploaded_at is not None

    def test_list_scoped_to_operator(self, test_db, catalog_app):
        application_catalog.save_application(test_db, OTHER_OPERATOR_ID, app_request())
        assert [a.id for a in application_catalog.list_applications(test_db, OPERATOR_ID)] == [catalog_app.id]

    def test_get_foreign(self, test_db, catalog_app):
        with pytest.raises(UnauthorizedError):
            application_catalog.get_owned_application(test_db, catalog_app.id, OTHER_OPERATOR_ID)

    def test_get_missing(self, test_db):
        with pytest.raises(NotFoundError):
            application_catalog.get_owned_application(test_db, "no-such-app", OPERATOR_ID)

    def test_delete(self, test_db, catalog_app):
        application_catalog.delete_application(test_db, catalog_app.id, OPERATOR_ID)
        assert test_db.query(Application).count() == 0

    def test_delete_foreign(self, test_db, catalog_app):
        with pytest.raises(UnauthorizedError):
            application_catalog.delete_application(test_db, catalog_app.id, OTHER_OPERATOR_ID)
        assert test_db.query(Application).count() == 1
