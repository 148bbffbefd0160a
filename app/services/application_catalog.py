"""
Application catalog.

Operator-owned APK metadata. The binaries live in object storage; entries
supply the download URL and package name for install_apk commands.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, UnauthorizedError
from app.db.models import Application, utcnow
from app.schemas.applications import SaveApplicationRequest

logger = logging.getLogger(__name__)


def save_application(db: Session, operator_id: str, request: SaveApplicationRequest) -> Application:
    application = Application(owner_id=operator_id, uploaded_at=utcnow(), **request.model_dump())
    db.add(application)
    db.commit()
    db.refresh(application)
    logger.info(
        f"Saved application {application.id} {application.package_name} "
        f"{application.version_name} for operator {operator_id}"
    )
    return application


def get_owned_application(db: Session, application_id: str, operator_id: str) -> Application:
    """
    Raises:
        NotFoundError: no such application
        UnauthorizedError: application belongs to another operator
    """
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise NotFoundError("Application", application_id)
    if application.owner_id != operator_id:
        raise UnauthorizedError("Application belongs to another operator")
    return application


def list_applications(db: Session, operator_id: str) -> List[Application]:
    return (
        db.query(Application)
        .filter(Application.owner_id == operator_id)
        .order_by(Application.uploaded_at.desc())
        .all()
    )


def delete_application(db: Session, application_id: str, operator_id: str) -> None:
    """Drops the catalog entry. Already queued install commands keep their copied URL."""
    application = get_owned_application(db, application_id, operator_id)
    db.delete(application)
    db.commit()
    logger.info(f"Deleted application {application_id} for operator {operator_id}")
