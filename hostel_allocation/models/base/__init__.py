from hostel_allocation.models.base.base_model import Base, BaseModel, TimestampModel
from hostel_allocation.models.base.enums import (
    AllocationStatus,
    HostelGender,
    HostelType,
    RoomChangeStatus,
    RoomStatus,
    StudentStatus,
    UserRole,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "AllocationStatus",
    "HostelGender",
    "HostelType",
    "RoomChangeStatus",
    "RoomStatus",
    "StudentStatus",
    "UserRole",
]
