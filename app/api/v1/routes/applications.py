from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_current_operator
from app.db.session import get_db
from app.schemas.applications import ApplicationResponse, DownloadUrlResponse, SaveApplicationRequest
from app.services import application_catalog

router = APIRouter()


@router.post("/applications", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def save_application(
    request: SaveApplicationRequest,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Record an APK already uploaded to object storage in the caller's catalog."""
    return application_catalog.save_application(db, operator_id, request)


@router.get("/applications", response_model=List[ApplicationResponse])
async def list_applications(
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    """Newest upload first."""
    return application_catalog.list_applications(db, operator_id)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    return application_catalog.get_owned_application(db, application_id, operator_id)


@router.get("/applications/{application_id}/download-url", response_model=DownloadUrlResponse)
async def application_download_url(
    application_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    application = application_catalog.get_owned_application(db, application_id, operator_id)
    return DownloadUrlResponse(download_url=application.storage_url)


@router.delete("/applications/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: str,
    operator_id: str = Depends(get_current_operator),
    db: Session = Depends(get_db)
):
    application_catalog.delete_application(db, application_id, operator_id)
