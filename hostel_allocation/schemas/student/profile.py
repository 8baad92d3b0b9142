"""
Student profile creation schemas.
"""

from datetime import date as Date
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from hostel_allocation.core.utils import TextUtils
from hostel_allocation.schemas.common.base import BaseCreateSchema, BaseSchema
from hostel_allocation.schemas.common.bulk import BulkReport

__all__ = [
    "StudentProfileCreate",
    "CreatedProfile",
    "ProfileCreationReport",
]


class StudentProfileCreate(BaseCreateSchema):
    """Account plus profile for one student."""

    email: EmailStr
    name: str = Field(..., min_length=1)
    roll_number: str = Field(..., min_length=1)
    password: Optional[str] = Field(default=None, description="Defaults to the roll number")
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    department: Optional[str] = None
    degree: Optional[str] = None
    gender: Optional[str] = None
    admission_date: Optional[Date] = None
    guardian: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_email: Optional[EmailStr] = None
    is_day_scholar: bool = False

    @field_validator("roll_number", mode="before")
    @classmethod
    def normalize_roll_number(cls, v):
        return TextUtils.normalize_roll_number(v) if v is not None else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return TextUtils.normalize_email(v)


class CreatedProfile(BaseSchema):
    row_index: int
    student_profile_id: str
    user_id: str
    email: str
    roll_number: str


class ProfileCreationReport(BulkReport):
    """Per-row result of bulk profile creation."""

    created: List[CreatedProfile] = Field(default_factory=list)
