"""Pydantic schemas for device-facing provisioning and check-in endpoints."""
from pydantic import Field
from typing import Optional
from datetime import datetime

from app.schemas.base import DeviceModel
from app.schemas.policies import DevicePolicyDocument


class ProvisionDeviceInfo(DeviceModel):
    serial_number: str = Field(..., description="Hardware serial reported by the DPC")
    model: Optional[str] = None
    manufacturer: Optional[str] = None


class ProvisionRequest(DeviceModel):
    enrollment_token: str
    device_info: ProvisionDeviceInfo


class ProvisionResponse(DeviceModel):
    success: bool = True
    policy: DevicePolicyDocument
    server_url: str
    ping_interval: int


class RegisterDeviceRequest(DeviceModel):
    """Hardware descriptors sent by the DPC after provisioning."""

    serial_number: str = Field(..., description="Externally visible device id")
    model: str = Field(..., description="Device model (e.g., 'Pixel 6')")
    manufacturer: str = Field(..., description="Manufacturer (e.g., 'Google')")
    android_version: str = Field(..., description="Android release (e.g., '14')")
    enrollment_token: Optional[str] = None
    ssa_id: Optional[str] = Field(None, description="App-scoped ANDROID_ID")
    android_id: Optional[str] = Field(None, description="Legacy ANDROID_ID field")
    brand: Optional[str] = None
    build_fingerprint: Optional[str] = None
    is_device_owner: bool = True
    policy_id: Optional[str] = None


class RegisterDeviceResponse(DeviceModel):
    success: bool = True
    device_id: str
    api_token: str = Field(..., description="Bearer token for every later device call")
    policy_id: Optional[str] = None
    ping_interval: int


class HeartbeatResponse(DeviceModel):
    success: bool = True
    status: str
    ping_interval: int
    server_time: datetime


class DevicePingIntervalRequest(DeviceModel):
    ping_interval: int


class DevicePolicyResponse(DeviceModel):
    success: bool = True
    policy: Optional[DevicePolicyDocument] = None
