"""
Hostel setup and listing schemas.
"""

from typing import List, Optional

from pydantic import Field, computed_field, field_validator, model_validator

from hostel_allocation.core.utils import TextUtils
from hostel_allocation.models.base.enums import HostelGender, HostelType, RoomStatus
from hostel_allocation.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = [
    "UnitCreate",
    "RoomCreate",
    "HostelCreate",
    "HostelResponse",
    "HostelStats",
    "UnitSummary",
    "RoomOccupant",
    "RoomListing",
]


class UnitCreate(BaseCreateSchema):
    """Unit to create inside a unit-based hostel."""

    unit_number: str = Field(..., min_length=1)
    floor: Optional[int] = Field(default=None, ge=0)
    common_area_details: Optional[str] = None

    @field_validator("unit_number", mode="before")
    @classmethod
    def normalize_unit_number(cls, v):
        return TextUtils.normalize_code(v)


class RoomCreate(BaseCreateSchema):
    """Room to create; ``unit_number`` is required in unit-based hostels."""

    room_number: str = Field(..., min_length=1)
    capacity: int = Field(..., ge=1)
    unit_number: Optional[str] = None
    status: RoomStatus = RoomStatus.ACTIVE

    @field_validator("room_number", "unit_number", mode="before")
    @classmethod
    def normalize_codes(cls, v):
        return TextUtils.normalize_code(v)


class HostelCreate(BaseCreateSchema):
    """A new hostel together with its units and rooms."""

    name: str = Field(..., min_length=1, max_length=255)
    type: HostelType
    gender: HostelGender
    units: List[UnitCreate] = Field(default_factory=list)
    rooms: List[RoomCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_layout(self) -> "HostelCreate":
        """Room-only hostels have no units; unit-based rooms must name one."""
        if self.type == HostelType.ROOM_ONLY:
            if self.units:
                raise ValueError("room-only hostels cannot define units")
            if any(room.unit_number for room in self.rooms):
                raise ValueError("rooms of a room-only hostel cannot reference a unit")
        else:
            missing = [room.room_number for room in self.rooms if not room.unit_number]
            if missing:
                raise ValueError(f"rooms without unit_number: {', '.join(missing)}")
        return self


class HostelResponse(BaseResponseSchema):
    name: str
    type: HostelType
    gender: HostelGender
    is_archived: bool


class HostelStats(BaseSchema):
    """Listing row for a hostel with occupancy figures."""

    id: str
    name: str
    type: HostelType
    gender: HostelGender
    is_archived: bool
    total_rooms: int = 0
    active_rooms: int = 0
    occupied_rooms: int = 0
    vacant_rooms: int = 0
    total_capacity: int = 0
    active_capacity: int = 0
    active_occupancy: int = 0

    @computed_field
    @property
    def occupancy_rate(self) -> int:
        """Percentage of active beds in use, rounded."""
        if not self.active_capacity:
            return 0
        return round(self.active_occupancy / self.active_capacity * 100)


class UnitSummary(BaseSchema):
    id: str
    unit_number: str
    floor: int
    common_area_details: Optional[str] = None
    room_count: int
    capacity: int
    occupancy: int


class RoomOccupant(BaseSchema):
    allocation_id: str
    student_profile_id: str
    roll_number: str
    name: Optional[str] = None
    bed_number: int


class RoomListing(BaseSchema):
    """Room with its current occupants."""

    id: str
    room_number: str
    unit_id: Optional[str] = None
    unit_number: Optional[str] = None
    capacity: int
    occupancy: int
    status: RoomStatus
    occupants: List[RoomOccupant] = Field(default_factory=list)
