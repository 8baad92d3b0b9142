"""
Read-only projections: per-bed hostel sheet, degree by hostel summary,
and occupancy drift findings.
"""

from datetime import date as Date
from typing import Dict, List, Optional

from pydantic import Field

from hostel_allocation.models.base.enums import HostelGender, HostelType, RoomStatus
from hostel_allocation.schemas.common.base import BaseSchema

__all__ = [
    "SheetColumn",
    "SheetRow",
    "SheetHostel",
    "HostelSheet",
    "SummaryColumn",
    "AllocationSummary",
    "OccupancyDrift",
]


class SheetColumn(BaseSchema):
    """Column definition consumed by table front ends."""

    accessor_key: str
    header: str
    category: str
    hidden: bool = False


class SheetRow(BaseSchema):
    """One bed of an Active room, or the bed-0 placeholder of an Inactive room."""

    # Location
    unit_number: Optional[str] = None
    unit_floor: Optional[int] = None
    room_number: str
    bed_number: int
    display_room: str
    room_status: RoomStatus

    # Room
    room_id: str
    unit_id: Optional[str] = None
    room_capacity: int
    room_occupancy: int

    # Allocation
    is_allocated: bool = False
    allocation_id: Optional[str] = None

    # Student
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    student_phone: Optional[str] = None
    student_profile_image: Optional[str] = None
    roll_number: Optional[str] = None
    department: Optional[str] = None
    degree: Optional[str] = None
    gender: Optional[str] = None
    admission_date: Optional[Date] = None
    guardian: Optional[str] = None
    guardian_phone: Optional[str] = None
    student_status: Optional[str] = None
    is_day_scholar: bool = False
    student_profile_id: Optional[str] = None
    user_id: Optional[str] = None


class SheetHostel(BaseSchema):
    id: str
    name: str
    type: HostelType
    gender: HostelGender


class HostelSheet(BaseSchema):
    hostel: SheetHostel
    columns: List[SheetColumn]
    rows: List[SheetRow] = Field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)


class SummaryColumn(BaseSchema):
    accessor_key: str
    header: str
    category: str
    hostel_id: Optional[str] = None


class AllocationSummary(BaseSchema):
    """
    Degree by hostel matrix.

    Each entry of ``rows`` maps ``"degree"`` to the row label, every hostel
    name to its count and ``"Total"`` to the row sum. The last row is the
    ``"Total"`` row.
    """

    headers: List[str]
    columns: List[SummaryColumn] = Field(default_factory=list)
    rows: List[Dict[str, object]]
    grand_total: int
    hostel_count: int = 0
    degree_count: int = 0


class OccupancyDrift(BaseSchema):
    """A room whose cached occupancy disagrees with its Active allocations."""

    room_id: str
    hostel_id: str
    room_number: str
    status: RoomStatus
    capacity: int
    stored_occupancy: int
    active_allocations: int
