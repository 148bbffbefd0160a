"""Pydantic schemas for per-device operator notes."""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class DeviceNoteUpdate(BaseModel):
    """Fields left out (or null) keep their stored value."""

    notes: Optional[str] = Field(None, max_length=5000)
    tags: Optional[List[str]] = None
    custom_name: Optional[str] = Field(None, max_length=200)


class DeviceNoteResponse(BaseModel):
    device_id: str
    notes: Optional[str] = None
    tags: List[str]
    custom_name: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True
