"""Pydantic schemas for DPC binary metadata."""
from pydantic import BaseModel, Field
from datetime import datetime


class RegisterApkRequest(BaseModel):
    """Metadata for a binary already uploaded to object storage."""

    version: str = Field(..., min_length=1, description="Version name (e.g., '1.0.0')")
    version_code: int = Field(..., ge=1)
    file_name: str = Field(..., min_length=1)
    file_size: int = Field(..., ge=1)
    storage_url: str = Field(..., min_length=1, description="Fetchable URL returned by the object store")
    signature_checksum: str = Field(..., min_length=1, description="Base64 SHA-256 of the signing certificate")


class ApkResponse(BaseModel):
    id: str
    version: str
    version_code: int
    file_name: str
    file_size: int
    storage_url: str
    signature_checksum: str
    uploaded_by: str
    uploaded_at: datetime
    is_current: bool
    download_count: int

    class Config:
        from_attributes = True
