from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.apk import ApkResponse, RegisterApkRequest
from app.core.errors import TokenRejectedError
from app.core.logging_config import preview
from app.services import apk_service, token_store

logger = logging.getLogger(__name__)

router = APIRouter()

# Reached by the Android setup wizard, which carries no session
download_router = APIRouter()


@router.post("/apk", response_model=ApkResponse, status_code=status.HTTP_201_CREATED)
async def register_apk(
    request: RegisterApkRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Record a binary already uploaded to object storage and make it current."""
    return apk_service.register_apk(db, operator_id, request)


@router.get("/apk", response_model=List[ApkResponse])
async def list_apks(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return apk_service.list_apks(db)


@router.get("/apk/current", response_model=Optional[ApkResponse])
async def current_apk(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return apk_service.get_current_apk(db)


@router.put("/apk/{apk_id}/current", response_model=ApkResponse)
async def set_current_apk(
    apk_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return apk_service.set_current_apk(db, apk_id)


@router.delete("/apk/{apk_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_apk(
    apk_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    apk_service.delete_apk(db, apk_id)


@download_router.get("/apk/download")
async def download_apk(
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """
    Redirect to the current binary in object storage.

    A consumed token keeps working until it expires, so a device that was
    factory reset can scan the same QR code again.
    """
    validation = token_store.validate_token(db, token, allow_used=True)
    if not validation.valid:
        raise TokenRejectedError(validation.reason)

    apk = apk_service.require_current_apk(db)
    apk_service.record_download(db, apk.id)
    logger.info(f"APK {apk.version} download for token {preview(token)}")
    return RedirectResponse(url=apk.storage_url, status_code=status.HTTP_302_FOUND)
