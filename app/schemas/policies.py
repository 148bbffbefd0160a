"""Pydantic schemas for policy endpoints."""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

from app.schemas.base import DeviceModel

PasswordQuality = Literal["numeric", "alphabetic", "alphanumeric", "complex"]
WifiSecurity = Literal["WPA2", "WPA3", "WEP", "OPEN"]


class WifiConfig(DeviceModel):
    ssid: str = Field(..., min_length=1, max_length=32)
    password: Optional[str] = None
    security: WifiSecurity = "WPA2"


class PolicyCreate(BaseModel):
    """Request schema for creating a policy."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None

    password_required: bool = False
    password_min_length: Optional[int] = Field(None, ge=0, le=64)
    password_quality: Optional[PasswordQuality] = None

    camera_disabled: bool = False
    screen_capture_disabled: bool = False
    bluetooth_disabled: bool = False
    usb_file_transfer_disabled: bool = False
    factory_reset_disabled: bool = False

    wifi_configs: List[WifiConfig] = Field(default_factory=list)

    kiosk_enabled: bool = False
    kiosk_package_names: List[str] = Field(default_factory=list)

    status_bar_disabled: bool = False
    system_apps_disabled: List[str] = Field(default_factory=list)

    is_default: bool = False


class PolicyUpdate(BaseModel):
    """Partial update; only fields that are sent are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    password_required: Optional[bool] = None
    password_min_length: Optional[int] = Field(None, ge=0, le=64)
    password_quality: Optional[PasswordQuality] = None
    camera_disabled: Optional[bool] = None
    screen_capture_disabled: Optional[bool] = None
    bluetooth_disabled: Optional[bool] = None
    usb_file_transfer_disabled: Optional[bool] = None
    factory_reset_disabled: Optional[bool] = None
    wifi_configs: Optional[List[WifiConfig]] = None
    kiosk_enabled: Optional[bool] = None
    kiosk_package_names: Optional[List[str]] = None
    status_bar_disabled: Optional[bool] = None
    system_apps_disabled: Optional[List[str]] = None
    is_default: Optional[bool] = None


class PolicyResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    password_required: bool
    password_min_length: Optional[int] = None
    password_quality: Optional[str] = None
    camera_disabled: bool
    screen_capture_disabled: bool
    bluetooth_disabled: bool
    usb_file_transfer_disabled: bool
    factory_reset_disabled: bool
    wifi_configs: List[dict]
    kiosk_enabled: bool
    kiosk_package_names: List[str]
    status_bar_disabled: bool
    system_apps_disabled: List[str]
    is_default: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DevicePolicyDocument(DeviceModel):
    """Policy as the DPC client reads it."""

    name: str
    description: Optional[str] = None
    password_required: bool
    password_min_length: Optional[int] = None
    password_quality: Optional[str] = None
    camera_disabled: bool
    screen_capture_disabled: bool
    bluetooth_disabled: bool
    usb_file_transfer_disabled: bool
    factory_reset_disabled: bool
    wifi_configs: List[WifiConfig] = Field(default_factory=list)
    kiosk_enabled: bool
    kiosk_package_names: List[str] = Field(default_factory=list)
    status_bar_disabled: bool
    system_apps_disabled: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
