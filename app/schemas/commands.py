"""Pydantic schemas for the device command queue."""
from pydantic import BaseModel, Field, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime

from app.db.models import CommandStatus
from app.schemas.base import DeviceModel


class LockCommand(DeviceModel):
    type: Literal["lock"] = "lock"


class WipeCommand(DeviceModel):
    type: Literal["wipe"] = "wipe"


class RebootCommand(DeviceModel):
    type: Literal["reboot"] = "reboot"


class UpdatePolicyCommand(DeviceModel):
    type: Literal["update_policy"] = "update_policy"
    policy_id: Optional[str] = Field(None, description="Assign this policy before the device refetches")


class InstallApkCommand(DeviceModel):
    """Either a catalog `application_id` or an explicit `apk_url` plus `package_name`."""

    type: Literal["install_apk"] = "install_apk"
    application_id: Optional[str] = None
    apk_url: Optional[str] = Field(None, min_length=1)
    package_name: Optional[str] = Field(None, min_length=1)
    app_name: Optional[str] = None

    @model_validator(mode="after")
    def check_source(self):
        if not self.application_id and not (self.apk_url and self.package_name):
            raise ValueError("install_apk needs application_id or both apk_url and package_name")
        return self


CommandSpec = Annotated[
    Union[LockCommand, WipeCommand, RebootCommand, UpdatePolicyCommand, InstallApkCommand],
    Field(discriminator="type"),
]


def command_parameters(command: DeviceModel) -> Dict[str, Any]:
    """Parameters as stored and handed to the device (camelCase, no type tag)."""
    return command.model_dump(by_alias=True, exclude={"type"}, exclude_none=True)


class CreateCommandRequest(BaseModel):
    device_id: str
    command: CommandSpec


class CreateCommandResponse(BaseModel):
    command_id: int
    status: str
    expected_within_minutes: int = Field(
        ..., description="Device picks the command up on its next check-in"
    )


class CommandResponse(BaseModel):
    id: int
    device_id: str
    command_type: str
    parameters: Dict[str, Any]
    status: CommandStatus
    error: Optional[str] = None
    created_at: datetime
    executed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CleanupRequest(BaseModel):
    older_than_days: Optional[int] = Field(None, ge=0)


class CleanupResponse(BaseModel):
    deleted: int


class PendingCommand(DeviceModel):
    command_id: int
    action: str
    parameters: Dict[str, Any]
    created_at: datetime


class PendingCommandsResponse(DeviceModel):
    commands: List[PendingCommand]


class CommandStatusUpdate(DeviceModel):
    status: Literal["executing", "completed", "failed"]
    error: Optional[str] = None
