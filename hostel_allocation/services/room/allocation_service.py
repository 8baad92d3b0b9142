"""
Allocation consistency engine.

Every operation here touches some of ``rooms.occupancy``, the
``room_allocations`` rows and ``student_profiles.current_room_allocation_id``
and runs as one transaction, so those three never disagree once committed.
"""

from datetime import datetime, timezone
from typing import Callable, Collection, Optional

from hostel_allocation.core.exceptions import (
    AllocationNotFoundError,
    BedOccupiedError,
    HostelNotFoundError,
    InvalidBedError,
    RoomFullError,
    RoomInactiveError,
    RoomNotFoundError,
    StudentAlreadyAllocatedError,
    StudentNotFoundError,
    UnitMismatchError,
    UnitRequiredError,
)
from hostel_allocation.models.base.enums import AllocationStatus
from hostel_allocation.models.hostel.hostel import Hostel
from hostel_allocation.models.room.room import Room
from hostel_allocation.models.room.room_allocation import RoomAllocation
from hostel_allocation.models.student.student_profile import StudentProfile
from hostel_allocation.services.base.base_service import BaseService

BedHolder = Callable[[str, int], Optional[RoomAllocation]]


class AllocationRules:
    """
    Target validation shared by single and bulk allocation.

    Checks run in a fixed order and the first violation is raised:
    addressing, room active, capacity, bed range, bed free.
    Callers supply the occupancy they believe the room has, which lets the
    bulk processor account for rows accepted earlier in the same batch.
    """

    @staticmethod
    def check_addressing(hostel: Hostel, room: Room, unit_id: Optional[str]) -> None:
        if hostel.is_unit_based:
            if not unit_id:
                raise UnitRequiredError(hostel.id)
            if unit_id != room.unit_id:
                raise UnitMismatchError(unit_id, room.unit_id)
        elif unit_id is not None and unit_id != room.unit_id:
            raise UnitMismatchError(unit_id, room.unit_id)

    @staticmethod
    def check_room_accepts(room: Room, occupancy: int) -> None:
        if not room.is_active:
            raise RoomInactiveError(room.room_number, room.id)
        if occupancy >= room.capacity:
            raise RoomFullError(room.room_number, room.capacity, occupancy)

    @staticmethod
    def check_bed(
        room: Room,
        bed_number: int,
        holder: BedHolder,
        moving: Optional[RoomAllocation] = None,
        claimed_beds: Collection[int] = (),
    ) -> None:
        if not isinstance(bed_number, int) or isinstance(bed_number, bool) or not 1 <= bed_number <= room.capacity:
            raise InvalidBedError(bed_number, room.capacity)
        if bed_number in claimed_beds:
            raise BedOccupiedError(room.room_number, bed_number)
        current = holder(room.id, bed_number)
        if current is not None and (moving is None or current.id != moving.id):
            raise BedOccupiedError(room.room_number, bed_number)


class AllocationService(BaseService):
    """
    Allocate, deallocate and reassign single beds.

    All three operations are retried by the transaction manager when the
    database rejects them because a concurrent writer got there first;
    the retry re-runs validation, so the caller sees the same typed error
    a sequential caller would have seen.
    """

    # -------------------------------------------------------------------------
    # Allocate
    # -------------------------------------------------------------------------

    def allocate(
        self,
        room_id: str,
        student_profile_id: str,
        bed_number: int,
        actor_id: Optional[str] = None,
        unit_id: Optional[str] = None,
        hostel_id: Optional[str] = None,
    ) -> RoomAllocation:
        """
        Put a student into a bed.

        Args:
            room_id: Target room
            student_profile_id: Student to allocate
            bed_number: 1-based bed inside the room
            actor_id: User performing the change, stored for audit
            unit_id: Required for unit-based hostels; must own the room
            hostel_id: When given, the room must belong to this hostel

        Returns:
            The new Active allocation

        Raises:
            HostelNotFoundError, RoomNotFoundError, StudentNotFoundError,
            UnitRequiredError, UnitMismatchError, RoomInactiveError,
            RoomFullError, InvalidBedError, BedOccupiedError,
            StudentAlreadyAllocatedError, TransactionConflictError
        """
        allocation = self._atomic(
            "allocate",
            lambda ctx: self._allocate(room_id, student_profile_id, bed_number, actor_id, unit_id, hostel_id),
        )
        self._log_operation(
            "allocate",
            {"allocation_id": allocation.id, "room_id": room_id, "bed": bed_number,
             "student_profile_id": student_profile_id},
        )
        return allocation

    def _allocate(
        self,
        room_id: str,
        student_profile_id: str,
        bed_number: int,
        actor_id: Optional[str],
        unit_id: Optional[str],
        hostel_id: Optional[str],
    ) -> RoomAllocation:
        hostel, room = self._resolve_target(room_id, hostel_id)
        profile = self._resolve_student(student_profile_id)
        AllocationRules.check_addressing(hostel, room, unit_id)
        AllocationRules.check_room_accepts(room, room.occupancy)
        AllocationRules.check_bed(room, bed_number, self.uow.allocations.find_active_by_bed)

        existing = self.uow.allocations.find_active_by_student(profile.id)
        if existing is not None:
            raise StudentAlreadyAllocatedError(profile.id, existing.id)

        return self.write_allocation(room, profile, bed_number, actor_id)

    def write_allocation(
        self,
        room: Room,
        profile: StudentProfile,
        bed_number: int,
        actor_id: Optional[str],
    ) -> RoomAllocation:
        """
        Insert an Active allocation, bump the room counter and point the
        profile at it. Must run inside an open transaction.
        """
        allocation = self.uow.allocations.create({
            "hostel_id": room.hostel_id,
            "room_id": room.id,
            "unit_id": room.unit_id,
            "student_profile_id": profile.id,
            "user_id": profile.user_id,
            "bed_number": bed_number,
            "status": AllocationStatus.ACTIVE.value,
            "created_by": actor_id,
            "last_updated_by": actor_id,
        })
        self.uow.rooms.adjust_occupancy(room, +1)
        self.uow.profiles.set_current_allocation(profile, allocation.id)
        return allocation

    # -------------------------------------------------------------------------
    # Deallocate
    # -------------------------------------------------------------------------

    def deallocate(self, allocation_id: str, actor_id: Optional[str] = None) -> None:
        """
        Vacate an Active allocation.

        The row is kept with ``status = Vacated`` as history; it no longer
        counts toward occupancy or either uniqueness rule.

        Raises:
            AllocationNotFoundError: If no Active allocation has this id
        """
        room_id = self._atomic("deallocate", lambda ctx: self._deallocate(allocation_id, actor_id))
        self._log_operation("deallocate", {"allocation_id": allocation_id, "room_id": room_id})

    def _deallocate(self, allocation_id: str, actor_id: Optional[str]) -> str:
        allocation = self.uow.allocations.find_active(allocation_id)
        if allocation is None:
            raise AllocationNotFoundError(allocation_id)

        room = self.uow.rooms.get_for_update(allocation.room_id)
        self.uow.allocations.update(allocation, {
            "status": AllocationStatus.VACATED.value,
            "vacated_at": datetime.now(timezone.utc),
            "last_updated_by": actor_id,
        })
        self.uow.rooms.adjust_occupancy(room, -1)

        profile = self.uow.profiles.find_by_id(allocation.student_profile_id)
        if profile is not None and profile.current_room_allocation_id == allocation.id:
            self.uow.profiles.set_current_allocation(profile, None)
        return room.id

    # -------------------------------------------------------------------------
    # Reassign
    # -------------------------------------------------------------------------

    def reassign(
        self,
        student_profile_id: str,
        new_room_id: str,
        new_bed_number: int,
        actor_id: Optional[str] = None,
        unit_id: Optional[str] = None,
    ) -> RoomAllocation:
        """
        Move a student's Active allocation to another bed, keeping its id.

        Args:
            student_profile_id: Student whose allocation moves
            new_room_id: Target room; may equal the current room
            new_bed_number: Target bed
            actor_id: User performing the change
            unit_id: Required when the target hostel is unit-based

        Returns:
            The same allocation row, rewritten

        Raises:
            AllocationNotFoundError: If the student holds no Active allocation
            Any target validation error raised by ``allocate``
        """
        allocation = self._atomic(
            "reassign",
            lambda ctx: self.relocate(student_profile_id, new_room_id, new_bed_number, actor_id, unit_id),
        )
        self._log_operation(
            "reassign",
            {"allocation_id": allocation.id, "room_id": new_room_id, "bed": new_bed_number,
             "student_profile_id": student_profile_id},
        )
        return allocation

    def relocate(
        self,
        student_profile_id: str,
        new_room_id: str,
        new_bed_number: int,
        actor_id: Optional[str],
        unit_id: Optional[str],
    ) -> RoomAllocation:
        """Validated move of a student's allocation. Must run inside an open transaction."""
        allocation = self.uow.allocations.find_active_by_student(student_profile_id)
        if allocation is None:
            raise AllocationNotFoundError(student_profile_id, "Student has no active allocation")

        hostel, room = self._resolve_target(new_room_id, None)
        AllocationRules.check_addressing(hostel, room, unit_id)
        same_room = allocation.room_id == room.id
        # The moving record already counts toward its own room.
        effective_occupancy = room.occupancy - 1 if same_room else room.occupancy
        AllocationRules.check_room_accepts(room, effective_occupancy)
        AllocationRules.check_bed(
            room, new_bed_number, self.uow.allocations.find_active_by_bed, moving=allocation
        )

        profile = self.uow.profiles.find_by_id(student_profile_id)
        return self.move_allocation(allocation, room, new_bed_number, actor_id, profile)

    def move_allocation(
        self,
        allocation: RoomAllocation,
        room: Room,
        bed_number: int,
        actor_id: Optional[str],
        profile: Optional[StudentProfile] = None,
    ) -> RoomAllocation:
        """
        Rewrite an allocation in place and move the occupancy counters.
        Must run inside an open transaction.
        """
        if allocation.room_id == room.id and allocation.bed_number == bed_number:
            return allocation

        if allocation.room_id != room.id:
            old_room = self.uow.rooms.get_for_update(allocation.room_id)
            self.uow.rooms.adjust_occupancy(old_room, -1)
            self.uow.rooms.adjust_occupancy(room, +1)

        self.uow.allocations.update(allocation, {
            "hostel_id": room.hostel_id,
            "room_id": room.id,
            "unit_id": room.unit_id,
            "bed_number": bed_number,
            "last_updated_by": actor_id,
        })
        if profile is not None and profile.current_room_allocation_id != allocation.id:
            self.uow.profiles.set_current_allocation(profile, allocation.id)
        return allocation

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _resolve_target(self, room_id: str, hostel_id: Optional[str]):
        if hostel_id is not None and self.uow.hostels.find_by_id(hostel_id) is None:
            raise HostelNotFoundError(hostel_id)
        room = self.uow.rooms.get_for_update(room_id)
        if room is None or (hostel_id is not None and room.hostel_id != hostel_id):
            raise RoomNotFoundError(room_id)
        hostel = self.uow.hostels.find_by_id(room.hostel_id)
        if hostel is None:
            raise HostelNotFoundError(room.hostel_id)
        return hostel, room

    def _resolve_student(self, student_profile_id: str) -> StudentProfile:
        profile = self.uow.profiles.find_by_id(student_profile_id)
        if profile is None:
            raise StudentNotFoundError(student_profile_id)
        return profile
