"""
Enrollment token store.

Tokens are created by an operator, validated by unauthenticated provisioning
devices and consumed once by device registration. Reading a consumed token
stays possible (APK download after a factory reset re-scans the same QR code);
single use is enforced by `consume_token` alone.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidArgumentError, NotFoundError, TokenRejectedError, UnauthorizedError
from app.core.logging_config import preview
from app.db.models import CompanyUser, DeviceEnrollment, EnrollmentToken, Policy, utcnow
from app.schemas.tokens import TokenValidation
from app.services.apk_service import require_current_apk

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
ALREADY_USED = "already_used"
EXPIRED = "expired"


def generate_enrollment_token() -> str:
    """Version-4 UUID: 122 random bits."""
    return str(uuid.uuid4())


def create_token(
    db: Session,
    operator_id: str,
    policy_id: str,
    ttl_seconds: Optional[int] = None,
    company_user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> EnrollmentToken:
    """
    Issue a token bound to one of the operator's policies.

    Raises:
        InvalidArgumentError: TTL outside the configured bounds
        NotFoundError: policy or company user missing or owned by someone else
        PrecheckFailedError: no current DPC binary to provision with
    """
    ttl = settings.default_token_ttl_seconds if ttl_seconds is None else ttl_seconds
    if not settings.min_token_ttl_seconds <= ttl <= settings.max_token_ttl_seconds:
        raise InvalidArgumentError(
            f"ttl_seconds must be between {settings.min_token_ttl_seconds} "
            f"and {settings.max_token_ttl_seconds}",
            field="ttl_seconds",
        )

    policy = db.query(Policy).filter(Policy.id == policy_id, Policy.owner_id == operator_id).first()
    if not policy:
        raise NotFoundError("Policy", policy_id)

    if company_user_id:
        company_user = (
            db.query(CompanyUser)
            .filter(CompanyUser.id == company_user_id, CompanyUser.owner_id == operator_id)
            .first()
        )
        if not company_user:
            raise NotFoundError("Company user", company_user_id)

    apk = require_current_apk(db)

    now = now or utcnow()
    token = EnrollmentToken(
        token=generate_enrollment_token(),
        owner_id=operator_id,
        policy_id=policy.id,
        company_user_id=company_user_id,
        created_at=now,
        expires_at=now + timedelta(seconds=ttl),
        used=False,
        server_url=settings.server_url,
        apk_version=apk.version,
    )
    db.add(token)
    db.commit()
    db.refresh(token)

    logger.info(
        f"Created enrollment token {preview(token.token)} for policy {policy.id}, "
        f"expires {token.expires_at.isoformat()}, apk {apk.version}"
    )
    return token


def get_by_value(db: Session, token_value: str) -> Optional[EnrollmentToken]:
    return db.query(EnrollmentToken).filter(EnrollmentToken.token == token_value).first()


def validate_token(
    db: Session,
    token_value: str,
    allow_used: bool = False,
    now: Optional[datetime] = None,
) -> TokenValidation:
    """
    Pure read. Reasons are checked in the order not_found, already_used, expired.

    `allow_used` is for APK download, which keeps working after consumption.
    """
    token = get_by_value(db, token_value) if token_value else None
    if not token:
        return TokenValidation(valid=False, reason=NOT_FOUND)
    if token.used and not allow_used:
        return TokenValidation(valid=False, reason=ALREADY_USED)
    if token.is_expired(now):
        return TokenValidation(valid=False, reason=EXPIRED)
    return TokenValidation(
        valid=True,
        policy_id=token.policy_id,
        server_url=token.server_url,
        owner_id=token.owner_id,
        company_user_id=token.company_user_id,
    )


def consume_token(db: Session, token_value: str, device_id: str, now: Optional[datetime] = None) -> bool:
    """
    Mark the token used by `device_id`.

    Conditional update on `used = false`, so exactly one caller records its
    device id; any later call is a no-op. Returns True for the winning call.
    """
    result = db.execute(
        update(EnrollmentToken)
        .where(EnrollmentToken.token == token_value, EnrollmentToken.used.is_(False))
        .values(used=True, used_at=now or utcnow(), used_by_device_id=device_id)
    )
    db.commit()

    consumed = result.rowcount == 1
    if consumed:
        logger.info(f"Enrollment token {preview(token_value)} consumed by device {device_id}")
    else:
        logger.debug(f"Enrollment token {preview(token_value)} already consumed, ignoring")
    return consumed


def claim_token(db: Session, token_value: str, device_id: str, now: Optional[datetime] = None) -> EnrollmentToken:
    """
    Consume a token on behalf of `device_id`, tolerating retries by that same device.

    Raises:
        TokenRejectedError: unknown, expired, or already consumed by another device
    """
    token = get_by_value(db, token_value) if token_value else None
    if not token:
        raise TokenRejectedError(NOT_FOUND)
    if token.is_expired(now):
        raise TokenRejectedError(EXPIRED)

    if not consume_token(db, token_value, device_id, now):
        db.refresh(token)
        if token.used_by_device_id != device_id:
            logger.warning(
                f"Enrollment token {preview(token_value)} reuse by {device_id} rejected, "
                f"consumed by {token.used_by_device_id}"
            )
            raise TokenRejectedError(ALREADY_USED)
    else:
        db.refresh(token)
    return token


def list_tokens(db: Session, operator_id: str) -> List[EnrollmentToken]:
    return (
        db.query(EnrollmentToken)
        .filter(EnrollmentToken.owner_id == operator_id)
        .order_by(EnrollmentToken.created_at.desc())
        .limit(settings.token_list_limit)
        .all()
    )


def get_owned_token(db: Session, token_id: str, operator_id: str) -> EnrollmentToken:
    token = db.query(EnrollmentToken).filter(EnrollmentToken.id == token_id).first()
    if not token:
        raise NotFoundError("Enrollment token", token_id)
    if token.owner_id != operator_id:
        raise UnauthorizedError("Enrollment token belongs to another operator")
    return token


def token_status(db: Session, token_id: str, operator_id: str):
    """
    Enrollment-completion poll for the QR screen.

    Returns (token, enrollment) where enrollment is None until a device registered with it.
    """
    token = get_owned_token(db, token_id, operator_id)
    if not token.used or not token.used_by_device_id:
        return token, None
    enrollment = (
        db.query(DeviceEnrollment)
        .filter(DeviceEnrollment.device_id == token.used_by_device_id)
        .first()
    )
    return token, enrollment


def delete_token(db: Session, token_id: str, operator_id: str) -> None:
    token = get_owned_token(db, token_id, operator_id)
    db.delete(token)
    db.commit()
    logger.info(f"Deleted enrollment token {token_id}")
