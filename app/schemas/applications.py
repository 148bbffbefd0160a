"""Pydantic schemas for the application catalog."""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class SaveApplicationRequest(BaseModel):
    """Metadata for an APK already uploaded to object storage."""

    name: str = Field(..., min_length=1, max_length=200)
    package_name: str = Field(..., min_length=1, max_length=255, description="e.g. 'com.example.scanner'")
    version_name: str = Field(..., min_length=1)
    version_code: int = Field(..., ge=1)
    file_size: int = Field(..., ge=1)
    storage_url: str = Field(..., min_length=1)
    description: Optional[str] = None


class ApplicationResponse(BaseModel):
    id: str
    name: str
    package_name: str
    version_name: str
    version_code: int
    file_size: int
    storage_url: str
    description: Optional[str] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True


class DownloadUrlResponse(BaseModel):
    download_url: str
