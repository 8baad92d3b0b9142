"""Tests for single allocate / deallocate / reassign."""

import pytest

from hostel_allocation.core.exceptions import (
    AllocationNotFoundError,
    BedOccupiedError,
    ErrorCode,
    InvalidBedError,
    RoomFullError,
    RoomInactiveError,
    RoomNotFoundError,
    StudentAlreadyAllocatedError,
    StudentNotFoundError,
    UnitMismatchError,
    UnitRequiredError,
)
from hostel_allocation.models import Room, RoomAllocation, StudentProfile
from hostel_allocation.models.base.enums import AllocationStatus
from hostel_allocation.services import AllocationService, RoomLifecycleService


@pytest.fixture
def service(uow):
    return AllocationService(uow)


@pytest.fixture
def block(factory):
    return factory.unit_hostel()


@pytest.fixture
def annex(factory):
    return factory.room_only_hostel()


class TestAllocate:
    def test_allocates_bed_and_updates_counters(self, service, factory, block):
        room = factory.room(block, "101", "A")
        student = factory.student()

        allocation = service.allocate(room.id, student.id, 1, unit_id=room.unit_id)

        assert allocation.status == AllocationStatus.ACTIVE.value
        assert allocation.hostel_id == block.id
        assert allocation.unit_id == room.unit_id
        assert allocation.user_id == student.user_id
        assert factory.reload(Room, room.id).occupancy == 1
        assert factory.reload(StudentProfile, student.id).current_room_allocation_id == allocation.id

    def test_display_room_number_includes_unit(self, service, factory, block, uow):
        room = factory.room(block, "101", "A")
        student = factory.student()
        allocation = service.allocate(room.id, student.id, 2, unit_id=room.unit_id)

        assert factory.reload(RoomAllocation, allocation.id).display_room_number == "A101-2"

    def test_room_only_hostel_needs_no_unit(self, service, factory, annex):
        room = factory.room(annex, "3")
        student = factory.student()

        allocation = service.allocate(room.id, student.id, 2)

        assert allocation.unit_id is None
        assert factory.reload(RoomAllocation, allocation.id).display_room_number == "3-2"

    def test_unit_required_in_unit_based_hostel(self, service, factory, block):
        room = factory.room(block, "101", "A")
        student = factory.student()

        with pytest.raises(UnitRequiredError) as exc_info:
            service.allocate(room.id, student.id, 1)
        assert exc_info.value.error_code == ErrorCode.UNIT_REQUIRED

    def test_unit_must_own_room(self, service, factory, block):
        room = factory.room(block, "101", "A")
        other_unit = factory.room(block, "101", "B").unit_id
        student = factory.student()

        with pytest.raises(UnitMismatchError):
            service.allocate(room.id, student.id, 1, unit_id=other_unit)

    def test_unit_given_for_room_only_hostel_is_mismatch(self, service, factory, block, annex):
        room = factory.room(annex, "1")
        unit_id = factory.room(block, "101", "A").unit_id
        student = factory.student()

        with pytest.raises(UnitMismatchError):
            service.allocate(room.id, student.id, 1, unit_id=unit_id)

    def test_unknown_room_and_student(self, service, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()

        with pytest.raises(RoomNotFoundError):
            service.allocate("missing-room", student.id, 1)
        with pytest.raises(StudentNotFoundError):
            service.allocate(room.id, "missing-student", 1)

    def test_room_must_belong_to_given_hostel(self, service, factory, block, annex):
        room = factory.room(annex, "1")
        student = factory.student()

        with pytest.raises(RoomNotFoundError):
            service.allocate(room.id, student.id, 1, hostel_id=block.id)

    def test_inactive_room_rejected(self, service, factory, annex, uow):
        room = factory.room(annex, "1")
        RoomLifecycleService(uow).deactivate_room(room.id)
        student = factory.student()

        with pytest.raises(RoomInactiveError):
            service.allocate(room.id, student.id, 1)

    def test_capacity_checked_before_bed(self, service, factory, annex):
        room = factory.room(annex, "1")
        first, second, third = factory.students(3)
        service.allocate(room.id, first.id, 1)
        service.allocate(room.id, second.id, 2)

        with pytest.raises(RoomFullError) as exc_info:
            service.allocate(room.id, third.id, 3)
        assert exc_info.value.status_code == 409
        assert factory.reload(Room, room.id).occupancy == 2

    @pytest.mark.parametrize("bed", [0, -1, 3])
    def test_bed_out_of_range(self, service, factory, annex, bed):
        room = factory.room(annex, "1")
        student = factory.student()

        with pytest.raises(InvalidBedError):
            service.allocate(room.id, student.id, bed)

    def test_bed_occupied(self, service, factory, annex):
        room = factory.room(annex, "1")
        first, second = factory.students(2)
        service.allocate(room.id, first.id, 1)

        with pytest.raises(BedOccupiedError):
            service.allocate(room.id, second.id, 1)
        assert factory.reload(Room, room.id).occupancy == 1
        assert factory.reload(StudentProfile, second.id).current_room_allocation_id is None

    def test_student_already_allocated(self, service, factory, annex):
        first_room = factory.room(annex, "1")
        second_room = factory.room(annex, "2")
        student = factory.student()
        service.allocate(first_room.id, student.id, 1)

        with pytest.raises(StudentAlreadyAllocatedError):
            service.allocate(second_room.id, student.id, 1)
        assert factory.reload(Room, second_room.id).occupancy == 0


class TestDeallocate:
    def test_vacates_and_clears_counters(self, service, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()
        allocation_id = service.allocate(room.id, student.id, 1).id

        service.deallocate(allocation_id)

        allocation = factory.reload(RoomAllocation, allocation_id)
        assert allocation.status == AllocationStatus.VACATED.value
        assert allocation.vacated_at is not None
        assert factory.reload(Room, room.id).occupancy == 0
        assert factory.reload(StudentProfile, student.id).current_room_allocation_id is None

    def test_bed_and_student_are_free_again(self, service, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()
        allocation_id = service.allocate(room.id, student.id, 1).id
        service.deallocate(allocation_id)

        again = service.allocate(room.id, student.id, 1)

        assert again.id != allocation_id
        assert factory.reload(Room, room.id).occupancy == 1

    def test_unknown_or_vacated_allocation(self, service, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()
        allocation_id = service.allocate(room.id, student.id, 1).id
        service.deallocate(allocation_id)

        with pytest.raises(AllocationNotFoundError):
            service.deallocate(allocation_id)
        with pytest.raises(AllocationNotFoundError):
            service.deallocate("missing")
        assert factory.reload(Room, room.id).occupancy == 0


class TestReassign:
    def test_moves_between_rooms_keeping_id(self, service, factory, block):
        source = factory.room(block, "101", "A")
        target = factory.room(block, "102", "B")
        student = factory.student()
        allocation_id = service.allocate(source.id, student.id, 1, unit_id=source.unit_id).id

        moved = service.reassign(student.id, target.id, 2, unit_id=target.unit_id)

        assert moved.id == allocation_id
        assert moved.room_id == target.id
        assert moved.unit_id == target.unit_id
        assert moved.bed_number == 2
        assert factory.reload(Room, source.id).occupancy == 0
        assert factory.reload(Room, target.id).occupancy == 1
        assert factory.reload(StudentProfile, student.id).current_room_allocation_id == allocation_id

    def test_move_within_room_keeps_occupancy(self, service, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()
        service.allocate(room.id, student.id, 1)

        moved = service.reassign(student.id, room.id, 2)

        assert moved.bed_number == 2
        assert factory.reload(Room, room.id).occupancy == 1

    def test_same_bed_in_full_room_is_noop(self, service, factory, annex):
        room = factory.room(annex, "1")
        first, second = factory.students(2)
        allocation_id = service.allocate(room.id, first.id, 1).id
        service.allocate(room.id, second.id, 2)

        moved = service.reassign(first.id, room.id, 1)

        assert moved.id == allocation_id
        assert factory.reload(Room, room.id).occupancy == 2

    def test_target_bed_taken(self, service, factory, annex):
        source = factory.room(annex, "1")
        target = factory.room(annex, "2")
        first, second = factory.students(2)
        service.allocate(source.id, first.id, 1)
        service.allocate(target.id, second.id, 1)

        with pytest.raises(BedOccupiedError):
            service.reassign(first.id, target.id, 1)
        assert factory.reload(Room, source.id).occupancy == 1
        assert factory.reload(Room, target.id).occupancy == 1

    def test_target_room_full(self, service, factory, annex):
        source = factory.room(annex, "1")
        target = factory.room(annex, "2")
        mover, a, b = factory.students(3)
        service.allocate(source.id, mover.id, 1)
        service.allocate(target.id, a.id, 1)
        service.allocate(target.id, b.id, 2)

        with pytest.raises(RoomFullError):
            service.reassign(mover.id, target.id, 1)

    def test_student_without_allocation(self, service, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()

        with pytest.raises(AllocationNotFoundError):
            service.reassign(student.id, room.id, 1)
