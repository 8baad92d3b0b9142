"""
Allocation schemas: single allocation requests and responses, and the
roster rows and report used by bulk allocation.
"""

from datetime import date as Date
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from hostel_allocation.core.utils import TextUtils
from hostel_allocation.models.base.enums import AllocationStatus
from hostel_allocation.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema
from hostel_allocation.schemas.common.bulk import BulkReport

__all__ = [
    "AllocationCreate",
    "AllocationResponse",
    "RosterRow",
    "BulkRowOutcome",
    "BulkAllocationReport",
]


class AllocationCreate(BaseCreateSchema):
    """Request to put one student into one bed."""

    room_id: str = Field(..., min_length=1)
    student_profile_id: str = Field(..., min_length=1)
    bed_number: int
    unit_id: Optional[str] = None
    hostel_id: Optional[str] = None


class AllocationResponse(BaseResponseSchema):
    """Allocation as returned to callers."""

    hostel_id: str
    room_id: str
    unit_id: Optional[str] = None
    student_profile_id: str
    user_id: Optional[str] = None
    bed_number: int
    status: AllocationStatus
    display_room_number: str


class RosterRow(BaseSchema):
    """
    One row of a bulk allocation upload.

    ``unit`` and ``room`` are the human numbers printed on doors, not ids.
    ``email`` and ``name`` are only needed when the roll number does not
    yet have a profile and one should be created.
    """

    roll_number: str = Field(..., min_length=1)
    room: str = Field(..., min_length=1)
    bed_number: int
    unit: Optional[str] = None

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
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
        """Roll numbers are matched case-insensitively."""
        return TextUtils.normalize_roll_number(v) if v is not None else v

    @field_validator("room", "unit", mode="before")
    @classmethod
    def normalize_codes(cls, v):
        return TextUtils.normalize_code(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return TextUtils.normalize_email(v)

    @model_validator(mode="after")
    def validate_profile_fields(self) -> "RosterRow":
        """An email only makes sense together with the name of the account to create."""
        if self.email and not self.name:
            raise ValueError("name is required when email is provided")
        return self

    @property
    def can_create_profile(self) -> bool:
        return bool(self.email and self.name)


class BulkRowOutcome(BaseSchema):
    """An accepted roster row."""

    row_index: int
    roll_number: str
    allocation_id: str
    room_id: str
    bed_number: int
    action: str = Field(..., description="allocated, moved or unchanged")
    profile_created: bool = False


class BulkAllocationReport(BulkReport):
    """Per-row result of ``bulk_allocate``."""

    hostel_id: str
    successes: List[BulkRowOutcome] = Field(default_factory=list)

    @property
    def profiles_created(self) -> int:
        return sum(1 for s in self.successes if s.profile_created)
