"""Tests for hostel setup and listings."""

import pytest

from hostel_allocation.core.exceptions import (
    DuplicateEntryError,
    HostelNotFoundError,
    UnitNotFoundError,
    ValidationError,
)
from hostel_allocation.models.base.enums import RoomStatus
from hostel_allocation.services import AllocationService, HostelService, RoomLifecycleService


@pytest.fixture
def service(uow):
    return HostelService(uow)


class TestCreateHostel:
    def test_creates_units_and_rooms(self, service, uow):
        hostel = service.create_hostel({
            "name": "Block A",
            "type": "unit-based",
            "gender": "Male",
            "units": [{"unit_number": "A", "floor": 1}],
            "rooms": [
                {"unit_number": "A", "room_number": "101", "capacity": 2},
                {"unit_number": "A", "room_number": "102", "capacity": 3, "status": "Inactive"},
            ],
        })

        rooms = {r.room_number: r for r in uow.rooms.find_by_hostel(hostel.id)}
        assert hostel.is_unit_based
        assert rooms["101"].capacity == 2
        assert rooms["101"].occupancy == 0
        assert rooms["102"].status == RoomStatus.INACTIVE.value
        assert rooms["102"].capacity == 0
        assert rooms["102"].original_capacity == 3

    def test_layout_must_match_type(self, service):
        with pytest.raises(ValidationError):
            service.create_hostel({
                "name": "Annex", "type": "room-only", "gender": "Female",
                "units": [{"unit_number": "A"}],
            })
        with pytest.raises(ValidationError):
            service.create_hostel({
                "name": "Block", "type": "unit-based", "gender": "Male",
                "rooms": [{"room_number": "1", "capacity": 2}],
            })

    def test_duplicates_rejected(self, service, factory):
        factory.room_only_hostel(name="Annex")
        with pytest.raises(DuplicateEntryError):
            factory.room_only_hostel(name="Annex")
        with pytest.raises(DuplicateEntryError):
            service.create_hostel({
                "name": "Other", "type": "room-only", "gender": "Co-ed",
                "rooms": [{"room_number": "1", "capacity": 1}, {"room_number": "1", "capacity": 2}],
            })

    def test_room_referencing_unknown_unit(self, service):
        with pytest.raises(UnitNotFoundError):
            service.create_hostel({
                "name": "Block", "type": "unit-based", "gender": "Male",
                "units": [{"unit_number": "A"}],
                "rooms": [{"unit_number": "B", "room_number": "1", "capacity": 2}],
            })


class TestAddRooms:
    def test_reuses_existing_units(self, service, factory, uow):
        block = factory.unit_hostel(units=("A",), rooms=("101",))

        created = service.add_rooms(
            block.id,
            units=[{"unit_number": "A"}, {"unit_number": "B", "floor": 2}],
            rooms=[{"unit_number": "A", "room_number": "102", "capacity": 2},
                   {"unit_number": "B", "room_number": "101", "capacity": 1}],
        )

        assert len(created) == 2
        assert {u.unit_number for u in uow.units.find_by_hostel(block.id)} == {"A", "B"}

    def test_existing_room_rejected(self, service, factory):
        block = factory.unit_hostel(units=("A",), rooms=("101",))

        with pytest.raises(DuplicateEntryError):
            service.add_rooms(block.id, rooms=[{"unit_number": "A", "room_number": "101", "capacity": 2}])

    def test_unknown_hostel(self, service):
        with pytest.raises(HostelNotFoundError):
            service.add_rooms("missing", rooms=[{"room_number": "1", "capacity": 1}])


class TestListings:
    def test_list_hostels_with_stats(self, service, factory, uow):
        annex = factory.room_only_hostel(name="Annex", rooms=("1", "2", "3"), capacity=2)
        factory.room_only_hostel(name="Archived")
        RoomLifecycleService(uow).archive_hostel(factory.uow.hostels.find_by_name("Archived").id)
        RoomLifecycleService(uow).deactivate_room(factory.room(annex, "3").id)
        AllocationService(uow).allocate(factory.room(annex, "1").id, factory.student().id, 1)

        listing = service.list_hostels()

        assert [h.name for h in listing] == ["Annex"]
        stats = listing[0]
        assert stats.total_rooms == 3
        assert stats.active_rooms == 2
        assert stats.occupied_rooms == 1
        assert stats.vacant_rooms == 1
        assert stats.total_capacity == 6
        assert stats.active_capacity == 4
        assert stats.active_occupancy == 1
        assert stats.occupancy_rate == 25
        assert [h.name for h in service.list_hostels(archived=None)] == ["Annex", "Archived"]

    def test_list_units_counts_active_rooms(self, service, factory, uow):
        block = factory.unit_hostel(units=("B", "A"), rooms=("101", "102"), capacity=2)
        RoomLifecycleService(uow).deactivate_room(factory.room(block, "102", "A").id)

        units = service.list_units(block.id)

        assert [u.unit_number for u in units] == ["A", "B"]
        assert units[0].room_count == 2
        assert units[0].capacity == 2
        assert units[1].capacity == 4

    def test_list_rooms_with_occupants(self, service, factory, uow):
        block = factory.unit_hostel()
        room = factory.room(block, "101", "A")
        student = factory.student()
        allocation_id = AllocationService(uow).allocate(room.id, student.id, 2, unit_id=room.unit_id).id

        listing = service.list_rooms(block.id, unit_id=room.unit_id)

        assert [r.room_number for r in listing] == ["101", "102"]
        occupant = listing[0].occupants[0]
        assert occupant.allocation_id == allocation_id
        assert occupant.roll_number == student.roll_number
        assert occupant.bed_number == 2
        assert listing[0].unit_number == "A"
