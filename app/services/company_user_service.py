"""Company users: the customers an operator hands enrolled devices to."""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.db.models import CompanyUser, DeviceEnrollment, utcnow
from app.schemas.company_users import CompanyUserRequest

logger = logging.getLogger(__name__)


def get_owned_company_user(db: Session, company_user_id: str, operator_id: str) -> CompanyUser:
    """
    Raises:
        NotFoundError: company user does not exist
        UnauthorizedError: company user belongs to another operator
    """
    user = db.query(CompanyUser).filter(CompanyUser.id == company_user_id).first()
    if not user:
        raise NotFoundError("Company user", company_user_id)
    if user.owner_id != operator_id:
        raise UnauthorizedError("Company user belongs to another operator")
    return user


def _email_conflict(email: str) -> InvalidStateError:
    return InvalidStateError(
        "A company user with this email already exists",
        details={"contact_person_email": email},
    )


def create_company_user(db: Session, operator_id: str, request: CompanyUserRequest) -> CompanyUser:
    now = utcnow()
    user = CompanyUser(owner_id=operator_id, created_at=now, updated_at=now, **request.model_dump())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _email_conflict(request.contact_person_email)
    db.refresh(user)
    logger.info(f"Created company user {user.id} '{user.company_name}' for operator {operator_id}")
    return user


def update_company_user(
    db: Session, company_user_id: str, operator_id: str, request: CompanyUserRequest
) -> CompanyUser:
    user = get_owned_company_user(db, company_user_id, operator_id)
    for key, value in request.model_dump().items():
        setattr(user, key, value)
    user.updated_at = utcnow()
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _email_conflict(request.contact_person_email)
    db.refresh(user)
    logger.info(f"Updated company user {company_user_id}")
    return user


def list_company_users(db: Session, operator_id: str) -> List[CompanyUser]:
    return (
        db.query(CompanyUser)
        .filter(CompanyUser.owner_id == operator_id)
        .order_by(CompanyUser.created_at.desc())
        .all()
    )


def delete_company_user(db: Session, company_user_id: str, operator_id: str) -> None:
    """Blocked while devices are assigned; outstanding tokens just lose the binding."""
    user = get_owned_company_user(db, company_user_id, operator_id)

    assigned = db.query(DeviceEnrollment).filter(DeviceEnrollment.company_user_id == company_user_id).count()
    if assigned:
        raise InvalidStateError(
            f"Cannot delete company user: {assigned} device(s) are assigned; reassign them first",
            details={"enrollments": assigned},
        )

    db.delete(user)
    db.commit()
    logger.info(f"Deleted company user {company_user_id} for operator {operator_id}")
