"""Pydantic schemas for company user endpoints."""
from pydantic import BaseModel, Field
from datetime import datetime

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CompanyUserRequest(BaseModel):
    """Create and update share the same full set of fields."""

    company_name: str = Field(..., min_length=1, max_length=200)
    contact_person_name: str = Field(..., min_length=1, max_length=200)
    contact_person_email: str = Field(..., max_length=320, pattern=EMAIL_PATTERN)


class CompanyUserResponse(BaseModel):
    id: str
    company_name: str
    contact_person_name: str
    contact_person_email: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
