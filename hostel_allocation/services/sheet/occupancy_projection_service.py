"""
Read-only occupancy projections.

Builds the per-bed sheet of a hostel, the degree by hostel allocation
summary and an audit of cached room occupancy. Nothing here writes.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from hostel_allocation.core.exceptions import HostelNotFoundError
from hostel_allocation.core.utils import RoomLabelUtils, SortUtils
from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.models.room.room import Room
from hostel_allocation.models.room.room_allocation import RoomAllocation
from hostel_allocation.schemas.sheet.sheet import (
    AllocationSummary,
    HostelSheet,
    OccupancyDrift,
    SheetColumn,
    SheetHostel,
    SheetRow,
    SummaryColumn,
)
from hostel_allocation.services.base.base_service import BaseService

UNKNOWN_DEGREE = "Unknown"
TOTAL = "Total"

UNIT_COLUMNS = [
    SheetColumn(accessor_key="unit_number", header="Unit", category="location"),
    SheetColumn(accessor_key="unit_floor", header="Floor", category="location"),
]

SHEET_COLUMNS = [
    SheetColumn(accessor_key="room_number", header="Room", category="location"),
    SheetColumn(accessor_key="bed_number", header="Bed", category="location"),
    SheetColumn(accessor_key="display_room", header="Room Display", category="location"),
    SheetColumn(accessor_key="room_status", header="Room Status", category="location"),
    SheetColumn(accessor_key="room_capacity", header="Capacity", category="room"),
    SheetColumn(accessor_key="room_occupancy", header="Occupancy", category="room"),
    SheetColumn(accessor_key="is_allocated", header="Allocated", category="allocation"),
    SheetColumn(accessor_key="student_name", header="Student Name", category="student"),
    SheetColumn(accessor_key="roll_number", header="Roll Number", category="student"),
    SheetColumn(accessor_key="student_email", header="Email", category="student"),
    SheetColumn(accessor_key="student_phone", header="Phone", category="student"),
    SheetColumn(accessor_key="department", header="Department", category="student"),
    SheetColumn(accessor_key="degree", header="Degree", category="student"),
    SheetColumn(accessor_key="gender", header="Gender", category="student"),
    SheetColumn(accessor_key="admission_date", header="Admission Date", category="student"),
    SheetColumn(accessor_key="guardian", header="Guardian", category="student"),
    SheetColumn(accessor_key="guardian_phone", header="Guardian Phone", category="student"),
    SheetColumn(accessor_key="student_status", header="Student Status", category="student"),
    SheetColumn(accessor_key="is_day_scholar", header="Day Scholar", category="student"),
    SheetColumn(accessor_key="student_profile_image", header="Profile Image", category="student"),
    SheetColumn(accessor_key="room_id", header="Room ID", category="ids", hidden=True),
    SheetColumn(accessor_key="unit_id", header="Unit ID", category="ids", hidden=True),
    SheetColumn(accessor_key="allocation_id", header="Allocation ID", category="ids", hidden=True),
    SheetColumn(accessor_key="student_profile_id", header="Student Profile ID", category="ids", hidden=True),
    SheetColumn(accessor_key="user_id", header="User ID", category="ids", hidden=True),
]


def _room_sort_key(room: Room):
    unit_number = room.unit.unit_number if room.unit is not None else None
    return SortUtils.natural_key(unit_number), SortUtils.natural_key(room.room_number)


def _degree_sort_key(degree: str):
    return (degree == UNKNOWN_DEGREE, degree.lower())


class OccupancyProjectionService(BaseService):
    """Read models over rooms and Active allocations."""

    # -------------------------------------------------------------------------
    # Hostel sheet
    # -------------------------------------------------------------------------

    def project_sheet(self, hostel_id: str) -> HostelSheet:
        """
        One row per bed of every Active room, and a single ``bed_number = 0``
        row for every Inactive room, in natural unit/room/bed order.

        Raises:
            HostelNotFoundError: If the hostel does not exist
        """
        hostel = self.uow.hostels.find_by_id(hostel_id)
        if hostel is None:
            raise HostelNotFoundError(hostel_id)

        rooms = sorted(self.uow.rooms.find_by_hostel_with_units(hostel_id), key=_room_sort_key)
        by_bed: Dict[Tuple[str, int], RoomAllocation] = {
            (a.room_id, a.bed_number): a
            for a in self.uow.allocations.find_active_by_hostel(hostel_id, with_students=True)
        }

        rows = []
        for room in rooms:
            if room.is_active:
                rows.extend(
                    self._sheet_row(room, bed, by_bed.get((room.id, bed)))
                    for bed in range(1, room.capacity + 1)
                )
            else:
                rows.append(self._sheet_row(room, 0, None))

        columns = (UNIT_COLUMNS if hostel.is_unit_based else []) + SHEET_COLUMNS
        self._logger.debug(f"Projected sheet for hostel {hostel_id}: {len(rows)} rows")
        return HostelSheet(
            hostel=SheetHostel(id=hostel.id, name=hostel.name, type=hostel.type, gender=hostel.gender),
            columns=columns,
            rows=rows,
        )

    @staticmethod
    def _sheet_row(room: Room, bed_number: int, allocation: Optional[RoomAllocation]) -> SheetRow:
        unit = room.unit
        unit_number = unit.unit_number if unit is not None else None
        row = {
            "unit_number": unit_number,
            "unit_floor": unit.floor if unit is not None else None,
            "room_number": room.room_number,
            "bed_number": bed_number,
            "display_room": RoomLabelUtils.sheet_label(room.room_number, bed_number, unit_number),
            "room_status": room.status,
            "room_id": room.id,
            "unit_id": room.unit_id,
            "room_capacity": room.capacity if room.is_active else (room.original_capacity or 0),
            "room_occupancy": room.occupancy,
        }

        if allocation is not None:
            profile = allocation.student_profile
            user = profile.user
            row.update({
                "is_allocated": True,
                "allocation_id": allocation.id,
                "student_name": user.name if user is not None else None,
                "student_email": user.email if user is not None else None,
                "student_phone": user.phone if user is not None else None,
                "student_profile_image": user.profile_image if user is not None else None,
                "roll_number": profile.roll_number,
                "department": profile.department,
                "degree": profile.degree,
                "gender": profile.gender,
                "admission_date": profile.admission_date,
                "guardian": profile.guardian,
                "guardian_phone": profile.guardian_phone,
                "student_status": profile.status,
                "is_day_scholar": profile.is_day_scholar,
                "student_profile_id": profile.id,
                "user_id": profile.user_id,
            })
        return SheetRow(**row)

    # -------------------------------------------------------------------------
    # Degree by hostel summary
    # -------------------------------------------------------------------------

    def project_allocation_summary(self) -> AllocationSummary:
        """
        Count Active allocations per degree and non-archived hostel.

        Students without a degree are counted under ``"Unknown"``, which
        sorts last. A trailing ``"Total"`` row holds the column sums.
        """
        hostels: List[Hostel] = self.uow.hostels.find_listed(archived=False)
        names = {hostel.id: hostel.name for hostel in hostels}

        counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for allocation in self.uow.allocations.find_active_in_hostels(names):
            degree = (allocation.student_profile.degree or "").strip() or UNKNOWN_DEGREE
            counts[degree][names[allocation.hostel_id]] += 1

        hostel_names = [hostel.name for hostel in hostels]
        rows = []
        for degree in sorted(counts, key=_degree_sort_key):
            row = {"degree": degree}
            row.update({name: counts[degree].get(name, 0) for name in hostel_names})
            row[TOTAL] = sum(counts[degree].values())
            rows.append(row)

        totals = {"degree": TOTAL}
        totals.update({name: sum(r[name] for r in rows) for name in hostel_names})
        grand_total = sum(r[TOTAL] for r in rows)
        totals[TOTAL] = grand_total
        rows.append(totals)

        columns = [SummaryColumn(accessor_key="degree", header="Degree", category="label")]
        columns.extend(
            SummaryColumn(accessor_key=hostel.name, header=hostel.name, category="hostel", hostel_id=hostel.id)
            for hostel in hostels
        )
        columns.append(SummaryColumn(accessor_key=TOTAL, header=TOTAL, category="total"))

        return AllocationSummary(
            headers=["Degree", *hostel_names, TOTAL],
            columns=columns,
            rows=rows,
            grand_total=grand_total,
            hostel_count=len(hostels),
            degree_count=len(rows) - 1,
        )

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    def audit_occupancy(self, hostel_id: Optional[str] = None) -> List[OccupancyDrift]:
        """Rooms whose cached occupancy differs from their count of Active allocations."""
        if hostel_id is not None:
            if self.uow.hostels.find_by_id(hostel_id) is None:
                raise HostelNotFoundError(hostel_id)
            rooms = self.uow.rooms.find_by_hostel(hostel_id)
        else:
            rooms = self.uow.rooms.find_all()

        actual = self.uow.allocations.active_counts_by_room(hostel_id)
        drift = [
            OccupancyDrift(
                room_id=room.id,
                hostel_id=room.hostel_id,
                room_number=room.room_number,
                status=room.status,
                capacity=room.capacity,
                stored_occupancy=room.occupancy,
                active_allocations=actual.get(room.id, 0),
            )
            for room in rooms
            if room.occupancy != actual.get(room.id, 0)
        ]
        if drift:
            self._logger.warning(f"Occupancy drift found in {len(drift)} room(s)")
        return drift
