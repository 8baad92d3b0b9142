"""
Room schemas: catalog responses and desired-state input for reconciliation.
"""

from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from hostel_allocation.core.utils import TextUtils
from hostel_allocation.models.base.enums import RoomStatus
from hostel_allocation.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = [
    "RoomResponse",
    "RoomStateChange",
    "RoomReconcileReport",
]


class RoomResponse(BaseResponseSchema):
    """Room as stored."""

    hostel_id: str
    unit_id: Optional[str] = None
    room_number: str
    capacity: int
    occupancy: int
    status: RoomStatus
    original_capacity: Optional[int] = None


class RoomStateChange(BaseSchema):
    """
    Desired state of one room.

    Omitted fields are left unchanged.
    """

    room_number: str = Field(..., min_length=1)
    unit_number: Optional[str] = None
    status: Optional[RoomStatus] = None
    capacity: Optional[int] = Field(default=None, ge=1)

    @field_validator("room_number", "unit_number", mode="before")
    @classmethod
    def normalize_codes(cls, v):
        return TextUtils.normalize_code(v)

    @model_validator(mode="after")
    def validate_has_change(self) -> "RoomStateChange":
        if self.status is None and self.capacity is None:
            raise ValueError("status or capacity must be provided")
        return self


class RoomReconcileReport(BaseSchema):
    """Rooms touched by ``bulk_reconcile_rooms``, grouped by change."""

    hostel_id: str
    activated: List[str] = Field(default_factory=list)
    deactivated: List[str] = Field(default_factory=list)
    capacity_changed: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)

    @property
    def updated_room_ids(self) -> List[str]:
        return self.activated + self.deactivated + self.capacity_changed
