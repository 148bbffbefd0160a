"""DPC client binary registry: metadata, current-version flag and download counter."""
import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, PrecheckFailedError
from app.db.models import ApkVersion, utcnow
from app.schemas.apk import RegisterApkRequest

logger = logging.getLogger(__name__)


def get_current_apk(db: Session) -> Optional[ApkVersion]:
    return db.query(ApkVersion).filter(ApkVersion.is_current.is_(True)).first()


def require_current_apk(db: Session) -> ApkVersion:
    """Current binary, or PrecheckFailedError when nothing has been uploaded."""
    apk = get_current_apk(db)
    if not apk:
        raise PrecheckFailedError("No DPC APK uploaded. Please upload the client APK first.")
    return apk


def register_apk(db: Session, operator_id: str, request: RegisterApkRequest) -> ApkVersion:
    """Record a newly uploaded binary and make it the only current one."""
    db.execute(
        update(ApkVersion)
        .where(ApkVersion.is_current.is_(True))
        .values(is_current=False)
    )
    apk = ApkVersion(
        version=request.version,
        version_code=request.version_code,
        file_name=request.file_name,
        file_size=request.file_size,
        storage_url=request.storage_url,
        signature_checksum=request.signature_checksum,
        uploaded_by=operator_id,
        uploaded_at=utcnow(),
        is_current=True,
        download_count=0,
    )
    db.add(apk)
    db.commit()
    db.refresh(apk)

    logger.info(f"Registered DPC APK {apk.version} ({apk.version_code}) as current")
    return apk


def set_current_apk(db: Session, apk_id: str) -> ApkVersion:
    apk = db.query(ApkVersion).filter(ApkVersion.id == apk_id).first()
    if not apk:
        raise NotFoundError("APK", apk_id)

    db.execute(
        update(ApkVersion)
        .where(ApkVersion.is_current.is_(True), ApkVersion.id != apk_id)
        .values(is_current=False)
    )
    apk.is_current = True
    db.commit()
    db.refresh(apk)

    logger.info(f"DPC APK {apk.version} is now current")
    return apk


def list_apks(db: Session) -> List[ApkVersion]:
    return (
        db.query(ApkVersion)
        .order_by(ApkVersion.uploaded_at.desc())
        .limit(settings.apk_list_limit)
        .all()
    )


def delete_apk(db: Session, apk_id: str) -> None:
    """
    Remove the metadata row. The binary itself belongs to the object store;
    outstanding tokens keep their version snapshot.
    """
    apk = db.query(ApkVersion).filter(ApkVersion.id == apk_id).first()
    if not apk:
        raise NotFoundError("APK", apk_id)
    db.delete(apk)
    db.commit()
    logger.info(f"Deleted DPC APK {apk_id}")


def record_download(db: Session, apk_id: str) -> None:
    """Atomic increment in the store; concurrent downloads never lose a count."""
    db.execute(
        update(ApkVersion)
        .where(ApkVersion.id == apk_id)
        .values(download_count=ApkVersion.download_count + 1)
    )
    db.commit()
