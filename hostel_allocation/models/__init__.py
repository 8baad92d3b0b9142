"""
ORM models. Importing this package registers every table on ``Base.metadata``.
"""

from hostel_allocation.models.base import Base, BaseModel, TimestampModel
from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.models.hostel.unit import Unit
from hostel_allocation.models.room.room import Room
from hostel_allocation.models.room.room_allocation import RoomAllocation
from hostel_allocation.models.student.room_change_request import RoomChangeRequest
from hostel_allocation.models.student.student_profile import StudentProfile
from hostel_allocation.models.student.user import User

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "Hostel",
    "Unit",
    "Room",
    "RoomAllocation",
    "RoomChangeRequest",
    "StudentProfile",
    "User",
]
