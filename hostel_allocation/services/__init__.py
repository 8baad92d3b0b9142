from hostel_allocation.services.base.base_service import BaseService
from hostel_allocation.services.base.transaction_manager import TransactionContext, TransactionManager
from hostel_allocation.services.base.unit_of_work import UnitOfWork
from hostel_allocation.services.hostel.hostel_service import HostelService
from hostel_allocation.services.room.allocation_service import AllocationRules, AllocationService
from hostel_allocation.services.room.bulk_allocation_service import BulkAllocationService
from hostel_allocation.services.room.room_change_service import RoomChangeService
from hostel_allocation.services.room.room_lifecycle_service import RoomLifecycleService
from hostel_allocation.services.sheet.occupancy_projection_service import OccupancyProjectionService
from hostel_allocation.services.student.student_profile_service import StudentProfileService

__all__ = [
    "BaseService",
    "TransactionContext",
    "TransactionManager",
    "UnitOfWork",
    "AllocationRules",
    "AllocationService",
    "BulkAllocationService",
    "RoomLifecycleService",
    "RoomChangeService",
    "HostelService",
    "OccupancyProjectionService",
    "StudentProfileService",
]
