"""Shared pydantic base for the device-facing wire format."""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class DeviceModel(BaseModel):
    """camelCase on the wire (what the Android client sends), snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
