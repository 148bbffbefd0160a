"""Pydantic schemas for operator-facing enrollment endpoints."""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class EnrollmentResponse(BaseModel):
    device_id: str
    owner_id: str
    model: str
    manufacturer: str
    android_version: str
    is_device_owner: bool
    policy_id: Optional[str] = None
    company_user_id: Optional[str] = None
    ping_interval: int
    last_heartbeat: datetime
    registered_at: datetime
    status: str = Field(..., description="online/offline, derived from heartbeat age")
    physical_device_id: Optional[str] = None


class AssignPolicyRequest(BaseModel):
    policy_id: str


class AssignCompanyUserRequest(BaseModel):
    company_user_id: Optional[str] = Field(None, description="null clears the assignment")


class PingIntervalRequest(BaseModel):
    ping_interval: int = Field(..., description="Check-in interval in minutes (1-180)")


class DeleteEnrollmentResponse(BaseModel):
    deleted: bool
    wipe_command_id: Optional[int] = None
