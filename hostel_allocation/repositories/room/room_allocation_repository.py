"""
Room allocation repository.

Most lookups only consider Active allocations; Vacated rows are kept as
history and are invisible to the consistency checks.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload

from hostel_allocation.models.base.enums import AllocationStatus
from hostel_allocation.models.room.room_allocation import RoomAllocation
from hostel_allocation.models.student.student_profile import StudentProfile
from hostel_allocation.repositories.base.base_repository import BaseRepository

ACTIVE = AllocationStatus.ACTIVE.value


class RoomAllocationRepository(BaseRepository[RoomAllocation]):
    """Repository for bed allocations."""

    def __init__(self, session: Session):
        super().__init__(RoomAllocation, session)

    # ============================================================================
    # SINGLE LOOKUPS
    # ============================================================================

    def find_active(self, allocation_id: str) -> Optional[RoomAllocation]:
        query = select(RoomAllocation).where(
            RoomAllocation.id == allocation_id,
            RoomAllocation.status == ACTIVE,
        )
        return self.session.execute(query).scalar_one_or_none()

    def find_active_by_student(self, student_profile_id: str) -> Optional[RoomAllocation]:
        query = select(RoomAllocation).where(
            RoomAllocation.student_profile_id == student_profile_id,
            RoomAllocation.status == ACTIVE,
        )
        return self.session.execute(query).scalar_one_or_none()

    def find_active_by_bed(self, room_id: str, bed_number: int) -> Optional[RoomAllocation]:
        query = select(RoomAllocation).where(
            RoomAllocation.room_id == room_id,
            RoomAllocation.bed_number == bed_number,
            RoomAllocation.status == ACTIVE,
        )
        return self.session.execute(query).scalar_one_or_none()

    def count_active_by_room(self, room_id: str) -> int:
        query = select(func.count()).select_from(RoomAllocation).where(
            RoomAllocation.room_id == room_id,
            RoomAllocation.status == ACTIVE,
        )
        return self.session.execute(query).scalar_one()

    # ============================================================================
    # BATCH LOOKUPS
    # ============================================================================

    def find_active_by_students(self, student_profile_ids: Iterable[str]) -> Dict[str, RoomAllocation]:
        """Active allocations keyed by student profile id."""
        ids = {i for i in student_profile_ids if i is not None}
        if not ids:
            return {}
        query = select(RoomAllocation).where(
            RoomAllocation.student_profile_id.in_(ids),
            RoomAllocation.status == ACTIVE,
        )
        return {a.student_profile_id: a for a in self.session.execute(query).scalars()}

    def find_active_by_rooms(self, room_ids: Iterable[str]) -> List[RoomAllocation]:
        ids = {i for i in room_ids if i is not None}
        if not ids:
            return []
        query = select(RoomAllocation).where(
            RoomAllocation.room_id.in_(ids),
            RoomAllocation.status == ACTIVE,
        )
        return list(self.session.execute(query).scalars().all())

    def find_active_by_hostel(self, hostel_id: str, with_students: bool = False) -> List[RoomAllocation]:
        query = select(RoomAllocation).where(
            RoomAllocation.hostel_id == hostel_id,
            RoomAllocation.status == ACTIVE,
        )
        if with_students:
            query = query.options(
                joinedload(RoomAllocation.student_profile).joinedload(StudentProfile.user)
            )
        return list(self.session.execute(query).unique().scalars().all())

    def find_active_in_hostels(self, hostel_ids: Iterable[str]) -> List[RoomAllocation]:
        ids = list(hostel_ids)
        if not ids:
            return []
        query = (
            select(RoomAllocation)
            .where(RoomAllocation.hostel_id.in_(ids), RoomAllocation.status == ACTIVE)
            .options(joinedload(RoomAllocation.student_profile))
        )
        return list(self.session.execute(query).unique().scalars().all())

    def active_counts_by_room(self, hostel_id: Optional[str] = None) -> Dict[str, int]:
        """Number of Active allocations per room id."""
        query = (
            select(RoomAllocation.room_id, func.count())
            .where(RoomAllocation.status == ACTIVE)
            .group_by(RoomAllocation.room_id)
        )
        if hostel_id is not None:
            query = query.where(RoomAllocation.hostel_id == hostel_id)
        return {room_id: count for room_id, count in self.session.execute(query)}

    # ============================================================================
    # CASCADE DELETES
    # ============================================================================

    def ids_by_room(self, room_id: str) -> List[str]:
        query = select(RoomAllocation.id).where(RoomAllocation.room_id == room_id)
        return list(self.session.execute(query).scalars().all())

    def ids_by_hostel(self, hostel_id: str) -> List[str]:
        query = select(RoomAllocation.id).where(RoomAllocation.hostel_id == hostel_id)
        return list(self.session.execute(query).scalars().all())

    def delete_by_ids(self, allocation_ids: Iterable[str]) -> int:
        """Hard delete allocations; returns the number of rows removed."""
        ids = list(allocation_ids)
        if not ids:
            return 0
        result = self.session.execute(
            delete(RoomAllocation)
            .where(RoomAllocation.id.in_(ids))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
