"""Tests for room activation, deactivation, reconciliation and hostel-wide changes."""

import pytest

from hostel_allocation.core.exceptions import (
    CapacityBelowOccupancyError,
    HostelNotFoundError,
    RoomNotFoundError,
    UnitRequiredError,
    ValidationError,
)
from hostel_allocation.models import Hostel, Room, RoomAllocation, StudentProfile
from hostel_allocation.models.base.enums import RoomStatus
from hostel_allocation.services import AllocationService, RoomLifecycleService


@pytest.fixture
def service(uow):
    return RoomLifecycleService(uow)


@pytest.fixture
def allocations(uow):
    return AllocationService(uow)


@pytest.fixture
def annex(factory):
    return factory.room_only_hostel(capacity=3)


class TestDeactivateRoom:
    def test_deletes_allocations_and_zeroes_room(self, service, allocations, factory, annex):
        room = factory.room(annex, "1")
        a, b = factory.students(2)
        first = allocations.allocate(room.id, a.id, 1).id
        second = allocations.allocate(room.id, b.id, 2).id
        allocations.deallocate(second)

        service.deactivate_room(room.id)

        stored = factory.reload(Room, room.id)
        assert stored.status == RoomStatus.INACTIVE.value
        assert stored.capacity == 0
        assert stored.original_capacity == 3
        assert stored.occupancy == 0
        assert factory.uow.session.get(RoomAllocation, first) is None
        assert factory.uow.session.get(RoomAllocation, second) is None
        assert factory.reload(StudentProfile, a.id).current_room_allocation_id is None

    def test_is_idempotent(self, service, factory, annex):
        room = factory.room(annex, "1")
        service.deactivate_room(room.id)

        service.deactivate_room(room.id)

        stored = factory.reload(Room, room.id)
        assert stored.original_capacity == 3
        assert stored.capacity == 0

    def test_unknown_room(self, service):
        with pytest.raises(RoomNotFoundError):
            service.deactivate_room("missing")


class TestActivateRoom:
    def test_restores_original_capacity(self, service, factory, annex):
        room = factory.room(annex, "1")
        service.deactivate_room(room.id)

        service.activate_room(room.id)

        stored = factory.reload(Room, room.id)
        assert stored.status == RoomStatus.ACTIVE.value
        assert stored.capacity == 3
        assert stored.occupancy == 0
        assert stored.original_capacity is None

    def test_explicit_capacity_wins(self, service, factory, annex):
        room = factory.room(annex, "1")
        service.deactivate_room(room.id)

        service.activate_room(room.id, capacity=5)

        assert factory.reload(Room, room.id).capacity == 5

    def test_capacity_rewrite_on_active_room_respects_occupancy(self, service, allocations, factory, annex):
        room = factory.room(annex, "1")
        a, b = factory.students(2)
        allocations.allocate(room.id, a.id, 1)
        allocations.allocate(room.id, b.id, 2)

        with pytest.raises(CapacityBelowOccupancyError):
            service.activate_room(room.id, capacity=1)
        assert factory.reload(Room, room.id).capacity == 3

    def test_rejects_non_positive_capacity(self, service, factory, annex):
        room = factory.room(annex, "1")

        with pytest.raises(ValidationError):
            service.activate_room(room.id, capacity=0)


class TestBulkReconcileRooms:
    def test_applies_mixed_changes(self, service, allocations, factory):
        block = factory.unit_hostel(units=("A",), rooms=("101", "102", "103", "104"), capacity=2)
        r101 = factory.room(block, "101", "A")
        r102 = factory.room(block, "102", "A")
        r103 = factory.room(block, "103", "A")
        r104 = factory.room(block, "104", "A")
        student = factory.student()
        allocations.allocate(r101.id, student.id, 1, unit_id=r101.unit_id)
        service.deactivate_room(r103.id)

        report = service.bulk_reconcile_rooms(block.id, [
            {"unit_number": "A", "room_number": "101", "status": "Inactive"},
            {"unit_number": "A", "room_number": "102", "capacity": 4},
            {"unit_number": "A", "room_number": "103", "status": "Active"},
            {"unit_number": "A", "room_number": "104", "status": "Active"},
        ])

        assert report.deactivated == [r101.id]
        assert report.capacity_changed == [r102.id]
        assert report.activated == [r103.id]
        assert report.unchanged == [r104.id]
        assert set(report.updated_room_ids) == {r101.id, r102.id, r103.id}
        assert factory.reload(Room, r101.id).occupancy == 0
        assert factory.reload(Room, r102.id).capacity == 4
        assert factory.reload(Room, r103.id).capacity == 2
        assert factory.reload(StudentProfile, student.id).current_room_allocation_id is None

    def test_rejection_rolls_back_whole_batch(self, service, allocations, factory, annex):
        room1 = factory.room(annex, "1")
        room2 = factory.room(annex, "2")
        a, b = factory.students(2)
        allocations.allocate(room2.id, a.id, 1)
        allocations.allocate(room2.id, b.id, 2)

        with pytest.raises(CapacityBelowOccupancyError):
            service.bulk_reconcile_rooms(annex.id, [
                {"room_number": "1", "status": "Inactive"},
                {"room_number": "2", "capacity": 1},
            ])
        assert factory.reload(Room, room1.id).status == RoomStatus.ACTIVE.value
        assert factory.reload(Room, room2.id).capacity == 3

    def test_invalid_entries(self, service, factory, annex):
        with pytest.raises(ValidationError):
            service.bulk_reconcile_rooms(annex.id, [{"room_number": "1"}])
        with pytest.raises(ValidationError):
            service.bulk_reconcile_rooms(annex.id, [
                {"room_number": "1", "status": "Inactive"},
                {"room_number": "1", "capacity": 2},
            ])
        with pytest.raises(RoomNotFoundError):
            service.bulk_reconcile_rooms(annex.id, [{"room_number": "99", "status": "Inactive"}])

    def test_unit_based_hostel_needs_unit_number(self, service, factory):
        block = factory.unit_hostel()
        with pytest.raises(UnitRequiredError):
            service.bulk_reconcile_rooms(block.id, [{"room_number": "101", "status": "Inactive"}])


class TestHostelWide:
    def test_archive_toggles_flag_only(self, service, allocations, factory, annex):
        room = factory.room(annex, "1")
        student = factory.student()
        allocations.allocate(room.id, student.id, 1)

        service.archive_hostel(annex.id)
        assert factory.reload(Hostel, annex.id).is_archived is True
        assert factory.reload(Room, room.id).occupancy == 1

        service.archive_hostel(annex.id, archived=False)
        assert factory.reload(Hostel, annex.id).is_archived is False

    def test_reset_removes_every_allocation(self, service, allocations, factory, annex):
        rooms = [factory.room(annex, n) for n in ("1", "2")]
        students = factory.students(3)
        allocations.allocate(rooms[0].id, students[0].id, 1)
        allocations.allocate(rooms[0].id, students[1].id, 2)
        allocations.allocate(rooms[1].id, students[2].id, 1)

        removed = service.reset_hostel_allocations(annex.id)

        assert removed == 3
        assert all(factory.reload(Room, r.id).occupancy == 0 for r in rooms)
        assert all(
            factory.reload(StudentProfile, s.id).current_room_allocation_id is None for s in students
        )
        assert factory.uow.allocations.find_active_by_hostel(annex.id) == []

    def test_unknown_hostel(self, service):
        with pytest.raises(HostelNotFoundError):
            service.reset_hostel_allocations("missing")
        with pytest.raises(HostelNotFoundError):
            service.archive_hostel("missing")
