from hostel_allocation.repositories.base.base_repository import BaseRepository
from hostel_allocation.repositories.hostel.hostel_repository import HostelRepository
from hostel_allocation.repositories.hostel.unit_repository import UnitRepository
from hostel_allocation.repositories.room.room_allocation_repository import RoomAllocationRepository
from hostel_allocation.repositories.room.room_repository import RoomRepository
from hostel_allocation.repositories.student.room_change_request_repository import (
    RoomChangeRequestRepository,
)
from hostel_allocation.repositories.student.student_profile_repository import StudentProfileRepository
from hostel_allocation.repositories.student.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "HostelRepository",
    "UnitRepository",
    "RoomRepository",
    "RoomAllocationRepository",
    "RoomChangeRequestRepository",
    "StudentProfileRepository",
    "UserRepository",
]
