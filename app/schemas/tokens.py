"""Pydantic schemas for enrollment token endpoints."""
from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime

from app.schemas.base import DeviceModel
from app.schemas.enrollments import EnrollmentResponse

TokenRejection = Literal["not_found", "already_used", "expired"]


class CreateTokenRequest(BaseModel):
    policy_id: str = Field(..., description="Policy applied to the enrolling device")
    ttl_seconds: Optional[int] = Field(None, description="Lifetime in seconds (defaults to one hour)")
    company_user_id: Optional[str] = Field(None, description="Company user the enrolled device is handed to")


class TokenResponse(BaseModel):
    id: str
    token: str
    policy_id: str
    company_user_id: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    used: bool
    used_at: Optional[datetime] = None
    used_by_device_id: Optional[str] = None
    server_url: str
    apk_version: str

    class Config:
        from_attributes = True


class CreateTokenResponse(BaseModel):
    """A fresh token plus the JSON document to render as a provisioning QR code."""

    token: TokenResponse
    provisioning_payload: Dict[str, Any]


class TokenStatusResponse(BaseModel):
    used: bool
    used_at: Optional[datetime] = None
    enrollment: Optional[EnrollmentResponse] = None


class TokenValidation(DeviceModel):
    """Outcome of a token lookup. `reason` is only set when `valid` is false."""

    valid: bool
    reason: Optional[TokenRejection] = None
    policy_id: Optional[str] = None
    server_url: Optional[str] = None
    owner_id: Optional[str] = None
    company_user_id: Optional[str] = None


class ValidateTokenRequest(DeviceModel):
    enrollment_token: str
